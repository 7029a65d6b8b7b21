"""Customer segmentation.

Rules are checked top to bottom and the first match wins, so a guest who
looks like both an investor and a luxury seeker is an investor.
"""

from __future__ import annotations

from typing import Callable, Sequence, Tuple

from app.ltv.types import BookingRecord, LTVMetrics
from app.utils.local_cities import is_local_city

DEFAULT_SEGMENT = "budget_traveler"

SegmentPredicate = Callable[[Sequence[BookingRecord], LTVMetrics], bool]


def _is_property_investor(bookings: Sequence[BookingRecord], m: LTVMetrics) -> bool:
    return (
        m.booking_frequency > 3
        and any((b.number_of_nights or 0) > 30 for b in bookings)
        and len(m.preferred_property_types) > 1
    )


def _is_business_traveler(bookings: Sequence[BookingRecord], m: LTVMetrics) -> bool:
    return m.booking_lead_time < 7 and m.average_stay_duration < 5 and m.booking_frequency > 2


def _is_luxury_seeker(bookings: Sequence[BookingRecord], m: LTVMetrics) -> bool:
    return m.average_booking_value > 3000 and m.review_score_average > 4.5


def _is_repeat_family(bookings: Sequence[BookingRecord], m: LTVMetrics) -> bool:
    return (
        m.booking_frequency > 1
        and m.average_stay_duration > 7
        and any((b.number_of_guests or 0) > 2 for b in bookings)
    )


def _is_local_resident(bookings: Sequence[BookingRecord], m: LTVMetrics) -> bool:
    return any(is_local_city(b.city) for b in bookings)


SEGMENT_RULES: Tuple[Tuple[str, SegmentPredicate], ...] = (
    ("property_investor", _is_property_investor),
    ("business_traveler", _is_business_traveler),
    ("luxury_seeker", _is_luxury_seeker),
    ("repeat_family", _is_repeat_family),
    ("local_resident", _is_local_resident),
)


def segment_customer(bookings: Sequence[BookingRecord], metrics: LTVMetrics) -> str:
    for label, predicate in SEGMENT_RULES:
        if predicate(bookings, metrics):
            return label
    return DEFAULT_SEGMENT
