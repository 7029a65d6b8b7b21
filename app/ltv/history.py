from __future__ import annotations

from typing import List

from app.extensions import db
from app.ltv.types import BookingRecord
from app.models import RentalBooking
from app.utils.log import get_logger


def to_record(booking: RentalBooking) -> BookingRecord:
    listing = booking.listing
    prop = listing.property if listing is not None else None
    review = booking.review
    return BookingRecord(
        id=int(booking.id),
        created_at=booking.created_at,
        total_amount=float(booking.total_amount or 0.0),
        number_of_nights=int(booking.number_of_nights or 0),
        number_of_guests=int(booking.number_of_guests or 0),
        nightly_rate=float(booking.nightly_rate) if booking.nightly_rate is not None else None,
        booking_status=(booking.booking_status or "pending").strip().lower(),
        payment_status=(booking.payment_status or "unpaid").strip().lower(),
        check_in_date=booking.check_in_date,
        check_out_date=booking.check_out_date,
        guest_user_id=int(booking.guest_user_id) if booking.guest_user_id is not None else None,
        guest_email=booking.guest_email,
        guest_phone=booking.guest_phone,
        rental_listing_id=int(booking.rental_listing_id) if booking.rental_listing_id is not None else None,
        property_type=(prop.property_type if prop is not None else None) or None,
        city=(prop.city if prop is not None else None) or None,
        review_rating=float(review.overall_rating) if review is not None and review.overall_rating is not None else None,
        review_text=review.review_text if review is not None else None,
    )


def load_booking_history(customer_id: int) -> dict:
    """All bookings of one guest, newest first, as plain records."""
    try:
        rows: List[RentalBooking] = (
            RentalBooking.query
            .filter(RentalBooking.guest_user_id == int(customer_id))
            .order_by(RentalBooking.created_at.desc(), RentalBooking.id.desc())
            .all()
        )
        return {"ok": True, "bookings": [to_record(b) for b in rows]}
    except Exception as e:
        try:
            db.session.rollback()
        except Exception:
            pass
        get_logger().error("booking history read failed for customer %s: %s", customer_id, e)
        return {"ok": False, "bookings": [], "error": f"history_read_failed:{e}"}
