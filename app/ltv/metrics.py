from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Sequence

from app.ltv.types import BookingRecord, LTVMetrics

DAY_SECONDS = 24 * 60 * 60
YEAR_SECONDS = 365 * DAY_SECONDS

# Creation month -> season. A season is "active" above this share of bookings.
SEASONS: Dict[str, tuple] = {
    "winter": (12, 1, 2),
    "spring": (3, 4, 5),
    "summer": (6, 7, 8),
    "fall": (9, 10, 11),
}
SEASON_SHARE_THRESHOLD = 0.3


def _now(now: datetime | None) -> datetime:
    return now or datetime.utcnow()


def _day_start(d) -> datetime:
    return datetime(d.year, d.month, d.day)


def seasonal_patterns(months: Sequence[int]) -> List[str]:
    total = len(months)
    if total == 0:
        return []
    patterns = []
    for season, season_months in SEASONS.items():
        count = sum(1 for m in months if m in season_months)
        if count / total > SEASON_SHARE_THRESHOLD:
            patterns.append(season)
    return patterns


def booking_frequency(bookings: Sequence[BookingRecord], now: datetime | None = None) -> float:
    """Bookings per year, never dividing by less than one year."""
    if not bookings:
        return 0.0
    oldest = min(b.created_at for b in bookings)
    years = max((_now(now) - oldest).total_seconds() / YEAR_SECONDS, 1.0)
    return len(bookings) / years


def average_lead_time(bookings: Sequence[BookingRecord]) -> float:
    lead_times = []
    for b in bookings:
        if not b.check_in_date or not b.created_at:
            continue
        days = (_day_start(b.check_in_date) - b.created_at).total_seconds() / DAY_SECONDS
        lead_times.append(max(0.0, days))
    if not lead_times:
        return 0.0
    return sum(lead_times) / len(lead_times)


def calculate_ltv_metrics(bookings: Sequence[BookingRecord], now: datetime | None = None) -> LTVMetrics:
    if not bookings:
        raise ValueError("LTV metrics need at least one booking")

    n = len(bookings)
    total_revenue = sum(float(b.total_amount or 0.0) for b in bookings)

    property_types: List[str] = []
    for b in bookings:
        ptype = (b.property_type or "").strip()
        if ptype and ptype not in property_types:
            property_types.append(ptype)

    ratings = [float(b.review_rating) for b in bookings if b.review_rating is not None]
    cancelled = sum(1 for b in bookings if b.booking_status == "cancelled")

    return LTVMetrics(
        total_bookings=n,
        total_revenue=total_revenue,
        average_booking_value=total_revenue / n,
        booking_frequency=booking_frequency(bookings, now),
        seasonal_patterns=seasonal_patterns([b.created_at.month for b in bookings]),
        preferred_property_types=property_types,
        booking_lead_time=average_lead_time(bookings),
        average_stay_duration=sum(int(b.number_of_nights or 0) for b in bookings) / n,
        cancellation_rate=cancelled / n,
        review_score_average=(sum(ratings) / len(ratings)) if ratings else 0.0,
    )
