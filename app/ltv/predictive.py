from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Sequence

from app.ltv.metrics import DAY_SECONDS
from app.ltv.types import BookingRecord, LTVMetrics, PredictiveAnalytics

RECENT_WINDOW_DAYS = 180

# Fixed heuristics, not fitted.
LTV_12_GROWTH = 1.2
LTV_24_GROWTH = 1.1
DORMANT_CHURN = 0.8
MIN_CHURN = 0.1
MIN_NEXT_BOOKING = 0.1


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def price_variation(bookings: Sequence[BookingRecord]) -> float:
    """Coefficient of variation of the per-night price."""
    if len(bookings) < 2:
        return 0.0
    prices = []
    for b in bookings:
        if b.nightly_rate:
            prices.append(float(b.nightly_rate))
        else:
            prices.append(float(b.total_amount or 0.0) / (b.number_of_nights or 1))
    mean = sum(prices) / len(prices)
    if mean == 0:
        return 0.0
    variance = sum((p - mean) ** 2 for p in prices) / len(prices)
    return math.sqrt(variance) / mean


def price_sensitivity(variation: float) -> str:
    if variation > 0.3:
        return "high"
    if variation > 0.15:
        return "medium"
    return "low"


def generate_predictive_analytics(
    bookings: Sequence[BookingRecord],
    metrics: LTVMetrics,
    now: datetime | None = None,
) -> PredictiveAnalytics:
    now = now or datetime.utcnow()
    cutoff = now - timedelta(days=RECENT_WINDOW_DAYS)
    recent = [b for b in bookings if b.created_at > cutoff]

    ltv_12 = metrics.average_booking_value * metrics.booking_frequency * LTV_12_GROWTH
    ltv_24 = ltv_12 * 2 * LTV_24_GROWTH

    if recent:
        churn = max(MIN_CHURN, 0.5 - metrics.booking_frequency * 0.1)
    else:
        churn = DORMANT_CHURN

    if metrics.average_booking_value > 0:
        if recent:
            avg_recent = sum(float(b.total_amount or 0.0) for b in recent) / len(recent)
        else:
            avg_recent = metrics.average_booking_value
        upsell = avg_recent / metrics.average_booking_value
    else:
        upsell = 0.0

    referral = (metrics.review_score_average / 5) * (metrics.booking_frequency / 2)

    if bookings:
        last = max(b.created_at for b in bookings)
        days_since_last = (now - last).total_seconds() / DAY_SECONDS
    else:
        days_since_last = 999.0
    next_booking = max(MIN_NEXT_BOOKING, 1 - days_since_last / 365)

    return PredictiveAnalytics(
        predicted_ltv_12_months=ltv_12,
        predicted_ltv_24_months=ltv_24,
        churn_probability=clamp(churn),
        upsell_potential=clamp(upsell),
        referral_likelihood=clamp(referral),
        next_booking_probability=clamp(next_booking),
        price_sensitivity=price_sensitivity(price_variation(bookings)),
    )
