"""Rental lifecycle -> Meta conversion events.

The dispatcher is stateless: callers hand it a stage label and it decides
whether, under which name and at what value the stage is reported. Stages
are not enforced as a state machine; skipping or replaying them is allowed.
"""

from __future__ import annotations

import json
import time
from datetime import datetime
from typing import Any, Optional

from app.extensions import db
from app.ltv.service import calculate_customer_ltv
from app.ltv.types import CustomerLTVProfile, MetaEventDecision
from app.models import MetaTrackingEvent
from app.utils.best_effort import best_effort
from app.utils.log import get_logger
from app.utils.meta_client import MetaConversionsClient, get_meta_client

RENTAL_EVENT_STAGES = (
    "search_started",
    "property_viewed",
    "booking_initiated",
    "payment_started",
    "booking_confirmed",
    "stay_completed",
    "review_left",
)

MAX_LTV_MULTIPLIER = 3.0
DEFAULT_BOOKING_VALUE = 100.0


def ltv_multiplier(profile: CustomerLTVProfile | None) -> float:
    if profile is None:
        return 1.0
    return min(MAX_LTV_MULTIPLIER, profile.meta_optimization.meta_value_score / 50)


def determine_meta_event(
    event_type: str,
    profile: CustomerLTVProfile | None,
    booking_value: float | None = 0.0,
) -> MetaEventDecision:
    base_value = float(booking_value or 0.0) or DEFAULT_BOOKING_VALUE
    m = ltv_multiplier(profile)
    segment = profile.customer_segment if profile is not None else None
    score = profile.meta_optimization.meta_value_score if profile is not None else 0

    if event_type == "search_started":
        return MetaEventDecision(True, "Search", 25 * m)
    if event_type == "property_viewed":
        return MetaEventDecision(True, "ViewContent", 50 * m)
    if event_type == "booking_initiated":
        name = "AddToCart" if segment == "property_investor" else "InitiateCheckout"
        return MetaEventDecision(True, name, base_value * 0.3 * m)
    if event_type == "payment_started":
        return MetaEventDecision(True, "AddPaymentInfo", base_value * 0.5 * m)
    if event_type == "booking_confirmed":
        name = "Purchase" if profile is not None and score >= 70 else "CompleteRegistration"
        return MetaEventDecision(True, name, base_value * 0.8 * m)
    if event_type == "stay_completed":
        return MetaEventDecision(True, "Purchase", base_value * m)
    if event_type == "review_left":
        repeat_guest = profile is not None and profile.ltv_metrics.booking_frequency > 1
        return MetaEventDecision(repeat_guest, "Subscribe", 200 * m)

    return MetaEventDecision(False, "ViewContent", 0.0)


def _click_ids(tracking_params: dict | None) -> tuple:
    params = tracking_params or {}
    fbc = (params.get("fbc") or "").strip() or None
    fbp = (params.get("fbp") or "").strip() or None
    fbclid = (params.get("fbclid") or "").strip()
    if not fbc and fbclid:
        # Meta's click-id cookie format: fb.<subdomain index>.<creation ms>.<fbclid>
        fbc = f"fb.1.{int(time.time() * 1000)}.{fbclid}"
    return fbc, fbp


def _record_event(
    *,
    event_type: str,
    decision: MetaEventDecision,
    result: dict,
    customer_id: Optional[int],
    booking_id: Optional[int],
    segment: Optional[str],
    custom_data: dict,
) -> None:
    try:
        row = MetaTrackingEvent(
            event_name=decision.event_name,
            event_stage=event_type,
            event_value=float(decision.value),
            event_id=(result.get("event_id") or None),
            customer_id=int(customer_id) if customer_id is not None else None,
            booking_id=int(booking_id) if booking_id is not None else None,
            customer_segment=segment,
            sent=bool(result.get("ok")),
            error=(result.get("error") or "")[:240] or None,
            meta=json.dumps(custom_data, default=str),
        )
        db.session.add(row)
        db.session.commit()
    except Exception as e:
        try:
            db.session.rollback()
        except Exception:
            pass
        get_logger().warning("could not record meta event %s: %s", decision.event_name, e)


def dispatch_rental_event(
    event_type: str,
    *,
    customer_id: int | None = None,
    booking_id: int | None = None,
    rental_listing_id: int | None = None,
    booking_value: float | None = 0.0,
    search_filters: Any = None,
    user_info: dict | None = None,
    tracking_params: dict | None = None,
    client: MetaConversionsClient | None = None,
    now: datetime | None = None,
) -> dict:
    if event_type not in RENTAL_EVENT_STAGES:
        return {"ok": False, "meta_event_sent": False, "error": f"unknown_event_type:{event_type}"}

    profile = calculate_customer_ltv(customer_id, now) if customer_id is not None else None
    decision = determine_meta_event(event_type, profile, booking_value)

    out = {
        "ok": True,
        "meta_event_sent": False,
        "should_send": decision.should_send,
        "event_name": decision.event_name,
        "value": decision.value,
        "profile": profile,
    }
    if not decision.should_send:
        return out
    if client is None:
        out["error"] = "meta_not_configured"
        return out

    segment = profile.customer_segment if profile is not None else None
    custom_data = {
        "content_category": "rental_marketplace",
        "rental_event_type": event_type,
        "customer_segment": segment or "unknown",
        "ltv_score": profile.meta_optimization.meta_value_score if profile is not None else 0,
        "predicted_ltv": profile.predictive_analytics.predicted_ltv_12_months if profile is not None else 0,
        "booking_frequency": profile.ltv_metrics.booking_frequency if profile is not None else 0,
        "rental_listing_id": rental_listing_id,
        "booking_id": booking_id,
        "search_filters": search_filters,
    }
    info = user_info or {}
    fbc, fbp = _click_ids(tracking_params)

    result = client.track_conversion(
        event_name=decision.event_name,
        value=decision.value,
        email=info.get("email"),
        phone=info.get("phone"),
        ip_address=info.get("ip_address"),
        user_agent=info.get("user_agent"),
        fbc=fbc,
        fbp=fbp,
        custom_data=custom_data,
    )
    out["meta_event_sent"] = bool(result.get("ok"))
    if not result.get("ok"):
        out["error"] = result.get("error") or "meta_send_failed"

    _record_event(
        event_type=event_type,
        decision=decision,
        result=result,
        customer_id=customer_id,
        booking_id=booking_id,
        segment=segment,
        custom_data=custom_data,
    )
    return out


def track_rental_booking_event(event_type: str, **kwargs: Any) -> dict:
    """Best-effort entry point for booking handlers; never raises."""
    if kwargs.get("client") is None:
        kwargs["client"] = get_meta_client()
    result = best_effort("rental_event_tracking", dispatch_rental_event, event_type, **kwargs)
    result.setdefault("meta_event_sent", False)
    return result
