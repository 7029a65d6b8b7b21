"""Rental customer lifetime-value scoring and Meta event dispatch."""

from .events import RENTAL_EVENT_STAGES, determine_meta_event, dispatch_rental_event, track_rental_booking_event  # noqa: F401
from .service import build_profile, calculate_customer_ltv, compute_customer_profile, get_high_value_customers  # noqa: F401
