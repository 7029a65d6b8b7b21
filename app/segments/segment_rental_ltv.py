from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.extensions import db
from app.ltv.analytics import rental_analytics_summary
from app.ltv.events import RENTAL_EVENT_STAGES, track_rental_booking_event
from app.ltv.optimization import generate_customer_recommendations
from app.ltv.service import compute_customer_profile, get_high_value_customers
from app.models import User
from app.utils.jwt_utils import user_id_from_request

rental_ltv_bp = Blueprint("rental_ltv_bp", __name__, url_prefix="/api")


def _current_user() -> User | None:
    uid = user_id_from_request()
    if not uid:
        return None
    return db.session.get(User, int(uid))


def _require_admin():
    u = _current_user()
    if not u:
        return None, (jsonify({"message": "Unauthorized"}), 401)
    if (u.role or "").strip().lower() != "admin":
        return None, (jsonify({"message": "Forbidden"}), 403)
    return u, None


def _int_arg(name: str, default: int) -> int:
    raw = (request.args.get(name) or "").strip()
    try:
        return int(raw) if raw else default
    except Exception:
        return default


def _float_arg(name: str, default: float) -> float:
    raw = (request.args.get(name) or "").strip()
    try:
        return float(raw) if raw else default
    except Exception:
        return default


@rental_ltv_bp.post("/rentals/events")
def track_event():
    payload = request.get_json(silent=True) or {}
    event_type = (payload.get("event_type") or "").strip()
    if event_type not in RENTAL_EVENT_STAGES:
        return jsonify({"message": f"event_type must be one of {', '.join(RENTAL_EVENT_STAGES)}"}), 400

    def _opt_int(key):
        try:
            return int(payload.get(key)) if payload.get(key) is not None else None
        except Exception:
            return None

    try:
        booking_value = float(payload.get("booking_value") or 0.0)
    except Exception:
        booking_value = 0.0

    # the profile is only ever the caller's own
    customer_id = user_id_from_request()
    user_info = payload.get("user_info") if isinstance(payload.get("user_info"), dict) else {}
    user_info = dict(user_info)
    user_info.setdefault("ip_address", request.headers.get("X-Forwarded-For", request.remote_addr or "").split(",")[0].strip() or None)
    user_info.setdefault("user_agent", request.headers.get("User-Agent") or None)
    tracking = payload.get("tracking_params") if isinstance(payload.get("tracking_params"), dict) else {}

    result = track_rental_booking_event(
        event_type,
        customer_id=customer_id,
        booking_id=_opt_int("booking_id"),
        rental_listing_id=_opt_int("rental_listing_id"),
        booking_value=booking_value,
        search_filters=payload.get("search_filters"),
        user_info=user_info,
        tracking_params={
            "fbclid": tracking.get("fbclid"),
            "fbc": tracking.get("fbc") or request.cookies.get("_fbc"),
            "fbp": tracking.get("fbp") or request.cookies.get("_fbp"),
        },
    )
    profile = result.get("profile")
    return jsonify({
        "ok": bool(result.get("ok")),
        "meta_event_sent": bool(result.get("meta_event_sent")),
        "event_name": result.get("event_name"),
        "customer_segment": profile.customer_segment if profile is not None else None,
    }), 200


@rental_ltv_bp.get("/admin/rentals/customers/<int:customer_id>/ltv")
def customer_ltv(customer_id: int):
    _, err = _require_admin()
    if err:
        return err

    result = compute_customer_profile(customer_id)
    if not result.get("ok"):
        return jsonify({"message": "LTV calculation failed"}), 500
    profile = result.get("profile")
    if profile is None:
        return jsonify({"message": "No booking history"}), 404
    return jsonify({
        "ok": True,
        "profile": profile.to_dict(),
        "recommended_actions": generate_customer_recommendations(profile),
    }), 200


@rental_ltv_bp.get("/admin/rentals/high-value-customers")
def high_value_customers():
    _, err = _require_admin()
    if err:
        return err

    raw_segments = (request.args.get("segments") or "").strip()
    segments = [s.strip() for s in raw_segments.split(",") if s.strip()] or None
    limit = min(max(_int_arg("limit", 50), 1), 200)

    result = get_high_value_customers(
        min_ltv=_float_arg("min_ltv", 5000.0),
        min_bookings=_int_arg("min_bookings", 2),
        segments=segments,
        limit=limit,
    )
    if not result.get("ok"):
        return jsonify({"message": "High-value customer query failed"}), 500

    items = []
    for c in result.get("customers") or []:
        items.append({
            "customer_id": c["customer_id"],
            "customer_profile": c["customer_profile"].to_dict(),
            "contact_info": c["contact_info"],
            "last_booking": c["last_booking"].isoformat() if c["last_booking"] else None,
            "recommended_actions": c["recommended_actions"],
        })
    return jsonify({"ok": True, "items": items}), 200


@rental_ltv_bp.get("/admin/analytics/rentals")
def rental_analytics():
    _, err = _require_admin()
    if err:
        return err

    summary = rental_analytics_summary(request.args.get("range") or "30d")
    if not summary.get("ok"):
        return jsonify({"message": "Failed to fetch rental analytics"}), 500
    return jsonify(summary), 200
