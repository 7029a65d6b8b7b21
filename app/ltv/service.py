from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from app.extensions import db
from app.ltv.history import load_booking_history, to_record
from app.ltv.metrics import calculate_ltv_metrics
from app.ltv.optimization import (
    calculate_meta_optimization,
    calculate_revenue_optimization,
    generate_customer_recommendations,
)
from app.ltv.predictive import generate_predictive_analytics
from app.ltv.segments import segment_customer
from app.ltv.types import BookingRecord, CustomerLTVProfile
from app.models import RentalBooking, User
from app.utils.log import get_logger


def build_profile(customer_id: int, bookings: Sequence[BookingRecord], now: datetime | None = None) -> CustomerLTVProfile:
    """Score one guest from a non-empty booking history (newest first)."""
    now = now or datetime.utcnow()
    metrics = calculate_ltv_metrics(bookings, now)
    predictive = generate_predictive_analytics(bookings, metrics, now)
    segment = segment_customer(bookings, metrics)
    return CustomerLTVProfile(
        customer_id=int(customer_id),
        customer_segment=segment,
        ltv_metrics=metrics,
        predictive_analytics=predictive,
        revenue_optimization=calculate_revenue_optimization(bookings, segment, predictive),
        meta_optimization=calculate_meta_optimization(segment, metrics, predictive),
    )


def compute_customer_profile(customer_id: int, now: datetime | None = None) -> dict:
    """Load history and score it.

    `profile` is None when the guest has no bookings; that is not an error.
    """
    history = load_booking_history(customer_id)
    if not history.get("ok"):
        return {"ok": False, "profile": None, "error": history.get("error") or "history_read_failed"}

    bookings = history.get("bookings") or []
    if not bookings:
        get_logger().info("No booking history found for customer %s", customer_id)
        return {"ok": True, "profile": None}

    try:
        profile = build_profile(customer_id, bookings, now)
    except Exception as e:
        return {"ok": False, "profile": None, "error": f"ltv_calculation_failed:{e}"}
    return {"ok": True, "profile": profile}


def calculate_customer_ltv(customer_id: int, now: datetime | None = None) -> Optional[CustomerLTVProfile]:
    result = compute_customer_profile(customer_id, now)
    if not result.get("ok"):
        get_logger().error("LTV calculation error for customer %s: %s", customer_id, result.get("error"))
        return None
    return result.get("profile")


def _group_by_guest(rows: Iterable[RentalBooking]) -> Dict[int, List[RentalBooking]]:
    groups: Dict[int, List[RentalBooking]] = {}
    for b in rows:
        if b.guest_user_id is None:
            continue
        groups.setdefault(int(b.guest_user_id), []).append(b)
    return groups


def get_high_value_customers(
    *,
    min_ltv: float = 5000.0,
    min_bookings: int = 2,
    segments: Sequence[str] | None = None,
    limit: int = 50,
    now: datetime | None = None,
) -> dict:
    now = now or datetime.utcnow()
    try:
        rows = (
            RentalBooking.query
            .filter(RentalBooking.created_at >= now - timedelta(days=365))
            .order_by(RentalBooking.created_at.desc(), RentalBooking.id.desc())
            .all()
        )
        recent_by_guest = {gid: [to_record(b) for b in group] for gid, group in _group_by_guest(rows).items()}
    except Exception as e:
        try:
            db.session.rollback()
        except Exception:
            pass
        get_logger().error("High-value customers query error: %s", e)
        return {"ok": False, "customers": [], "error": f"history_read_failed:{e}"}

    wanted = set(segments or [])
    customers = []
    for customer_id, recent in recent_by_guest.items():
        if len(recent) < min_bookings and not any(b.total_amount >= min_ltv for b in recent):
            continue

        profile = calculate_customer_ltv(customer_id, now)
        if profile is None:
            continue
        if profile.predictive_analytics.predicted_ltv_12_months < min_ltv:
            continue
        if wanted and profile.customer_segment not in wanted:
            continue

        newest = recent[0]
        email, phone = newest.guest_email, newest.guest_phone
        if not email or not phone:
            try:
                user = db.session.get(User, customer_id)
            except Exception:
                user = None
            if user is not None:
                email = email or user.email
                phone = phone or user.phone

        customers.append({
            "customer_id": customer_id,
            "customer_profile": profile,
            "contact_info": {"email": email or None, "phone": phone or None},
            "last_booking": newest.created_at,
            "recommended_actions": generate_customer_recommendations(profile),
        })

    customers.sort(key=lambda c: c["customer_profile"].meta_optimization.meta_value_score, reverse=True)
    return {"ok": True, "customers": customers[: max(int(limit), 0)]}
