from __future__ import annotations

from datetime import datetime, timedelta

from app.extensions import db
from app.models import MetaTrackingEvent, RentalBooking, RentalListing
from app.utils.log import get_logger

RANGE_DAYS = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}
DEFAULT_RANGE = "30d"
BOOKING_STATUSES = ("pending", "payment_started", "confirmed", "cancelled", "completed")


def resolve_range(range_key: str | None) -> str:
    key = (range_key or "").strip().lower()
    return key if key in RANGE_DAYS else DEFAULT_RANGE


def range_start(range_key: str | None, now: datetime | None = None) -> datetime:
    now = now or datetime.utcnow()
    return now - timedelta(days=RANGE_DAYS[resolve_range(range_key)])


def rental_analytics_summary(range_key: str | None = DEFAULT_RANGE, now: datetime | None = None) -> dict:
    range_key = resolve_range(range_key)
    start = range_start(range_key, now)
    try:
        all_listings = RentalListing.query.all()
        bookings = RentalBooking.query.filter(RentalBooking.created_at >= start).all()
        events = MetaTrackingEvent.query.filter(MetaTrackingEvent.created_at >= start).all()
    except Exception as e:
        try:
            db.session.rollback()
        except Exception:
            pass
        get_logger().error("Rental analytics query error: %s", e)
        return {"ok": False, "error": f"analytics_read_failed:{e}"}

    confirmed = [b for b in bookings if (b.booking_status or "") in ("confirmed", "completed")]
    revenue = sum(float(b.total_amount or 0.0) for b in confirmed)

    by_name: dict = {}
    for e in events:
        row = by_name.setdefault(e.event_name, {"event_name": e.event_name, "count": 0, "total_value": 0.0})
        row["count"] += 1
        row["total_value"] += float(e.event_value or 0.0)
    for row in by_name.values():
        row["avg_value"] = row["total_value"] / row["count"] if row["count"] else 0.0

    return {
        "ok": True,
        "range": range_key,
        "overview": {
            "total_listings": len(all_listings),
            "active_listings": sum(1 for x in all_listings if x.is_active),
            "new_listings": sum(1 for x in all_listings if x.created_at and x.created_at >= start),
            "total_bookings": len(bookings),
            "confirmed_bookings": len(confirmed),
            "total_revenue": revenue,
            "average_booking_value": (revenue / len(confirmed)) if confirmed else 0.0,
            "conversion_rate": (len(confirmed) / len(bookings) * 100) if bookings else 0.0,
        },
        "bookings_by_status": [
            {"status": s, "count": sum(1 for b in bookings if (b.booking_status or "pending") == s)}
            for s in BOOKING_STATUSES
        ],
        "meta_tracking": {
            "total_events": len(events),
            "sent_events": sum(1 for e in events if e.sent),
            "total_value": sum(float(e.event_value or 0.0) for e in events),
            "by_event": sorted(by_name.values(), key=lambda r: r["count"], reverse=True),
        },
    }
