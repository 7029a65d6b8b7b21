from __future__ import annotations

from datetime import datetime, date

from flask import Blueprint, jsonify, request

from app.extensions import db
from app.ltv.events import track_rental_booking_event
from app.models import User, RentalListing, RentalBooking, RentalReview, Property
from app.utils.jwt_utils import user_id_from_request

rentals_bp = Blueprint("rentals_bp", __name__, url_prefix="/api")

# status change -> lifecycle stage reported to Meta
STATUS_EVENTS = {
    "payment_started": "payment_started",
    "confirmed": "booking_confirmed",
    "completed": "stay_completed",
    "cancelled": None,
}
PAYMENT_STATUS_FOR = {
    "payment_started": "processing",
    "confirmed": "paid",
}


def _current_user() -> User | None:
    uid = _current_user_id()
    if not uid:
        return None
    return db.session.get(User, int(uid))


def _current_user_id() -> int | None:
    return user_id_from_request()


def _role(u: User | None) -> str:
    if not u:
        return "guest"
    return (getattr(u, "role", None) or "guest").strip().lower()


def _client_ip() -> str | None:
    return request.headers.get("X-Forwarded-For", request.remote_addr or "").split(",")[0].strip() or None


def _user_info(booking: RentalBooking, u: User | None) -> dict:
    return {
        "email": booking.guest_email or (u.email if u else None),
        "phone": booking.guest_phone or (u.phone if u else None),
        "ip_address": _client_ip(),
        "user_agent": request.headers.get("User-Agent") or None,
    }


def _tracking_params(payload: dict) -> dict:
    raw = payload.get("tracking_params") if isinstance(payload.get("tracking_params"), dict) else {}
    return {
        "fbclid": raw.get("fbclid") or request.args.get("fbclid"),
        "fbc": raw.get("fbc") or request.cookies.get("_fbc"),
        "fbp": raw.get("fbp") or request.cookies.get("_fbp"),
    }


def _track(stage: str, booking: RentalBooking, u: User | None, payload: dict) -> dict:
    return track_rental_booking_event(
        stage,
        customer_id=int(booking.guest_user_id) if booking.guest_user_id is not None else None,
        booking_id=int(booking.id),
        rental_listing_id=int(booking.rental_listing_id),
        booking_value=float(booking.total_amount or 0.0),
        user_info=_user_info(booking, u),
        tracking_params=_tracking_params(payload),
    )


def _can_manage(u: User, booking: RentalBooking, status: str) -> bool:
    if _role(u) == "admin":
        return True
    listing = booking.listing
    if listing is not None and listing.owner_id is not None and int(listing.owner_id) == int(u.id):
        return True
    # guests can only withdraw their own booking
    is_guest = booking.guest_user_id is not None and int(booking.guest_user_id) == int(u.id)
    return is_guest and status == "cancelled"


@rentals_bp.get("/rentals")
def list_rentals():
    city = (request.args.get("city") or "").strip()

    raw_limit = (request.args.get("limit") or "").strip()
    try:
        limit = int(raw_limit) if raw_limit else 50
    except Exception:
        limit = 50
    if limit <= 0:
        limit = 50
    if limit > 200:
        limit = 200

    q = RentalListing.query.filter(RentalListing.is_active.is_(True))
    if city:
        q = q.join(Property, RentalListing.property_id == Property.id).filter(Property.city.ilike(city))

    items = q.order_by(RentalListing.created_at.desc()).limit(limit).all()

    u = _current_user() if city else None
    if u is not None:
        track_rental_booking_event(
            "search_started",
            customer_id=int(u.id),
            search_filters={"city": city},
            user_info={
                "email": u.email,
                "phone": u.phone,
                "ip_address": _client_ip(),
                "user_agent": request.headers.get("User-Agent") or None,
            },
            tracking_params=_tracking_params({}),
        )
    return jsonify({"ok": True, "items": [x.to_dict() for x in items]}), 200


@rentals_bp.post("/rentals/<int:listing_id>/book")
def book_rental(listing_id: int):
    u = _current_user()
    if not u:
        return jsonify({"message": "Unauthorized"}), 401

    payload = request.get_json(silent=True) or {}
    check_in_raw = (payload.get("check_in") or "").strip()
    check_out_raw = (payload.get("check_out") or "").strip()

    try:
        check_in = date.fromisoformat(check_in_raw)
        check_out = date.fromisoformat(check_out_raw)
    except Exception:
        return jsonify({"message": "Invalid check_in/check_out (use YYYY-MM-DD)"}), 400

    if check_out <= check_in:
        return jsonify({"message": "check_out must be after check_in"}), 400

    listing = db.session.get(RentalListing, listing_id)
    if not listing or not listing.is_active:
        return jsonify({"message": "Not found"}), 404

    try:
        guests = int(payload.get("guests") or 1)
    except Exception:
        guests = 1
    if guests < 1 or guests > int(listing.max_guests or 1):
        return jsonify({"message": f"Guests must be between 1 and {int(listing.max_guests or 1)}"}), 400

    nights = (check_out - check_in).days
    nightly_rate = float(listing.nightly_rate or 0.0)
    total = round(nightly_rate * nights, 2)

    b = RentalBooking(
        rental_listing_id=listing_id,
        guest_user_id=int(u.id),
        guest_name=(payload.get("guest_name") or u.name or "").strip(),
        guest_email=(payload.get("guest_email") or u.email or "").strip(),
        guest_phone=(payload.get("guest_phone") or u.phone or "").strip(),
        check_in_date=check_in,
        check_out_date=check_out,
        number_of_nights=nights,
        number_of_guests=guests,
        nightly_rate=nightly_rate,
        total_amount=total,
        booking_status="pending",
    )

    try:
        db.session.add(b)
        listing.total_bookings = int(listing.total_bookings or 0) + 1
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        return jsonify({"message": "Booking failed", "error": str(e)}), 500

    tracking = _track("booking_initiated", b, u, payload)
    return jsonify({"ok": True, "booking": b.to_dict(), "meta_event_sent": bool(tracking.get("meta_event_sent"))}), 201


@rentals_bp.post("/rental_bookings/<int:booking_id>/status")
def update_booking_status(booking_id: int):
    u = _current_user()
    if not u:
        return jsonify({"message": "Unauthorized"}), 401

    payload = request.get_json(silent=True) or {}
    status = (payload.get("status") or "").strip().lower()
    if status not in STATUS_EVENTS:
        return jsonify({"message": f"status must be one of {', '.join(STATUS_EVENTS)}"}), 400

    b = db.session.get(RentalBooking, booking_id)
    if not b:
        return jsonify({"message": "Not found"}), 404
    if not _can_manage(u, b, status):
        return jsonify({"message": "Forbidden"}), 403

    b.booking_status = status
    if status in PAYMENT_STATUS_FOR:
        b.payment_status = PAYMENT_STATUS_FOR[status]
    b.updated_at = datetime.utcnow()
    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        return jsonify({"message": "Status update failed", "error": str(e)}), 500

    meta_event_sent = False
    stage = STATUS_EVENTS[status]
    if stage:
        meta_event_sent = bool(_track(stage, b, u, payload).get("meta_event_sent"))
    return jsonify({"ok": True, "booking": b.to_dict(), "meta_event_sent": meta_event_sent}), 200


@rentals_bp.post("/rental_bookings/<int:booking_id>/review")
def review_booking(booking_id: int):
    u = _current_user()
    if not u:
        return jsonify({"message": "Unauthorized"}), 401

    payload = request.get_json(silent=True) or {}
    try:
        rating = float(payload.get("rating"))
    except Exception:
        return jsonify({"message": "rating is required"}), 400
    if rating < 1 or rating > 5:
        return jsonify({"message": "rating must be between 1 and 5"}), 400

    b = db.session.get(RentalBooking, booking_id)
    if not b:
        return jsonify({"message": "Not found"}), 404
    if b.guest_user_id is None or int(b.guest_user_id) != int(u.id):
        return jsonify({"message": "Forbidden"}), 403
    if (b.booking_status or "") != "completed":
        return jsonify({"message": "Only completed stays can be reviewed"}), 400
    if b.review is not None:
        return jsonify({"message": "Booking already reviewed"}), 409

    review = RentalReview(booking_id=int(b.id), overall_rating=rating, review_text=(payload.get("review_text") or "").strip())

    # Simple aggregate update
    try:
        listing = b.listing
        if listing is not None:
            reviewed = (
                RentalReview.query.join(RentalBooking, RentalReview.booking_id == RentalBooking.id)
                .filter(RentalBooking.rental_listing_id == listing.id)
                .count()
            )
            current = float(listing.average_rating or 0.0)
            listing.average_rating = ((current * reviewed) + rating) / max(reviewed + 1, 1)
        db.session.add(review)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        return jsonify({"message": "Review failed", "error": str(e)}), 500

    tracking = _track("review_left", b, u, payload)
    return jsonify({"ok": True, "review": review.to_dict(), "meta_event_sent": bool(tracking.get("meta_event_sent"))}), 201
