from __future__ import annotations

import math
from typing import Dict, List, Sequence

from app.ltv.predictive import clamp
from app.ltv.types import (
    BookingRecord,
    CustomerLTVProfile,
    InvestmentSignals,
    LTVMetrics,
    MetaOptimization,
    PredictiveAnalytics,
    RevenueOptimization,
)

MONTH_NAMES = ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec")

MARKETING_CHANNELS: Dict[str, List[str]] = {
    "luxury_seeker": ["instagram", "facebook"],
    "business_traveler": ["linkedin", "google_ads"],
}
DEFAULT_MARKETING_CHANNELS = ["facebook", "whatsapp"]

COMMUNICATION_STYLES: Dict[str, str] = {
    "business_traveler": "email",
    "local_resident": "whatsapp",
}
DEFAULT_COMMUNICATION_STYLE = "sms"

SEGMENT_META_POINTS: Dict[str, int] = {
    "property_investor": 20,
    "luxury_seeker": 18,
    "business_traveler": 15,
    "repeat_family": 12,
    "local_resident": 8,
    "budget_traveler": 5,
}

LTV_SCORE_REFERENCE = 10000.0
MAX_META_VALUE = 5000.0
META_VALUE_SHARE = 0.10


def pricing_tier(upsell_potential: float) -> str:
    if upsell_potential > 0.7:
        return "premium"
    if upsell_potential > 0.4:
        return "standard"
    return "budget"


def seasonal_windows(months: Sequence[int]) -> List[str]:
    """Months booked noticeably more often than average (> 1.5x)."""
    counts = [0] * 12
    for m in months:
        counts[m - 1] += 1
    avg = sum(counts) / 12
    return [MONTH_NAMES[i] for i, c in enumerate(counts) if c > avg * 1.5]


def investment_signals(bookings: Sequence[BookingRecord], segment: str) -> InvestmentSignals:
    listings = {b.rental_listing_id for b in bookings}
    return InvestmentSignals(
        multiple_property_interest=len(bookings) > 2 and len(listings) > 1,
        long_term_booking_patterns=any((b.number_of_nights or 0) > 30 for b in bookings),
        business_booking_indicators=segment == "business_traveler",
        luxury_preference_signals=segment == "luxury_seeker",
    )


def calculate_revenue_optimization(
    bookings: Sequence[BookingRecord],
    segment: str,
    predictive: PredictiveAnalytics,
) -> RevenueOptimization:
    return RevenueOptimization(
        optimal_pricing_tier=pricing_tier(predictive.upsell_potential),
        best_marketing_channels=list(MARKETING_CHANNELS.get(segment, DEFAULT_MARKETING_CHANNELS)),
        preferred_communication_style=COMMUNICATION_STYLES.get(segment, DEFAULT_COMMUNICATION_STYLE),
        seasonal_booking_windows=seasonal_windows([b.created_at.month for b in bookings]),
        investment_signals=investment_signals(bookings, segment),
    )


def raw_meta_value_score(segment: str, metrics: LTVMetrics, predictive: PredictiveAnalytics) -> float:
    score = 0.0
    score += min(40.0, (predictive.predicted_ltv_12_months / LTV_SCORE_REFERENCE) * 40)
    score += min(20.0, metrics.booking_frequency * 5)
    score += SEGMENT_META_POINTS.get(segment, SEGMENT_META_POINTS["budget_traveler"])
    score += min(20.0, (1 - predictive.churn_probability) * 20)
    return score


def round_score(raw_score: float) -> int:
    # half-up rounding
    return int(clamp(math.floor(raw_score + 0.5), 0, 100))


def meta_value_score(segment: str, metrics: LTVMetrics, predictive: PredictiveAnalytics) -> int:
    return round_score(raw_meta_value_score(segment, metrics, predictive))


def recommended_meta_events(score: float, metrics: LTVMetrics, predictive: PredictiveAnalytics) -> List[str]:
    events = []
    if score >= 80:
        events.append("Purchase")
    if predictive.next_booking_probability > 0.6:
        events.append("Subscribe")
    if metrics.booking_frequency > 2:
        events.append("AddToCart")
    events.append("Lead")
    return events


def calculate_meta_optimization(
    segment: str,
    metrics: LTVMetrics,
    predictive: PredictiveAnalytics,
) -> MetaOptimization:
    # events are chosen on the unrounded score
    raw_score = raw_meta_value_score(segment, metrics, predictive)
    score = round_score(raw_score)
    optimal_value = clamp(predictive.predicted_ltv_12_months * META_VALUE_SHARE, 0.0, MAX_META_VALUE)
    return MetaOptimization(
        meta_value_score=score,
        recommended_meta_events=recommended_meta_events(raw_score, metrics, predictive),
        optimal_meta_value=optimal_value,
        conversion_probability=predictive.next_booking_probability,
    )


def generate_customer_recommendations(profile: CustomerLTVProfile) -> List[str]:
    recommendations = []
    if profile.meta_optimization.meta_value_score >= 80:
        recommendations.append("VIP customer treatment - assign dedicated account manager")
    if profile.customer_segment == "property_investor":
        recommendations.append("Offer bulk booking discounts and investment consultation")
    if profile.predictive_analytics.churn_probability > 0.6:
        recommendations.append("Send retention campaign with personalized offers")
    if profile.predictive_analytics.next_booking_probability > 0.7:
        recommendations.append("Send proactive booking suggestions within 2 weeks")
    if profile.ltv_metrics.review_score_average > 4.5:
        recommendations.append("Request referrals and testimonials")
    return recommendations
