from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import List, Optional


@dataclass(frozen=True)
class BookingRecord:
    """Read-only snapshot of one rental booking and what hangs off it."""

    id: int
    created_at: datetime
    total_amount: float = 0.0
    number_of_nights: int = 0
    number_of_guests: int = 1
    nightly_rate: Optional[float] = None
    booking_status: str = "pending"
    payment_status: str = "unpaid"
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    guest_user_id: Optional[int] = None
    guest_email: Optional[str] = None
    guest_phone: Optional[str] = None
    rental_listing_id: Optional[int] = None
    property_type: Optional[str] = None
    city: Optional[str] = None
    review_rating: Optional[float] = None
    review_text: Optional[str] = None


@dataclass
class LTVMetrics:
    total_bookings: int
    total_revenue: float
    average_booking_value: float
    booking_frequency: float  # bookings per year
    seasonal_patterns: List[str]
    preferred_property_types: List[str]
    booking_lead_time: float  # days in advance
    average_stay_duration: float  # nights
    cancellation_rate: float
    review_score_average: float


@dataclass
class PredictiveAnalytics:
    predicted_ltv_12_months: float
    predicted_ltv_24_months: float
    churn_probability: float
    upsell_potential: float
    referral_likelihood: float
    next_booking_probability: float
    price_sensitivity: str  # low / medium / high


@dataclass
class InvestmentSignals:
    multiple_property_interest: bool = False
    long_term_booking_patterns: bool = False
    business_booking_indicators: bool = False
    luxury_preference_signals: bool = False


@dataclass
class RevenueOptimization:
    optimal_pricing_tier: str
    best_marketing_channels: List[str]
    preferred_communication_style: str
    seasonal_booking_windows: List[str]
    investment_signals: InvestmentSignals = field(default_factory=InvestmentSignals)


@dataclass
class MetaOptimization:
    meta_value_score: int  # 0-100
    recommended_meta_events: List[str]
    optimal_meta_value: float
    conversion_probability: float


@dataclass
class CustomerLTVProfile:
    customer_id: int
    customer_segment: str
    ltv_metrics: LTVMetrics
    predictive_analytics: PredictiveAnalytics
    revenue_optimization: RevenueOptimization
    meta_optimization: MetaOptimization

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class MetaEventDecision:
    should_send: bool
    event_name: str
    value: float

    def to_dict(self) -> dict:
        return asdict(self)
