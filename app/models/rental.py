from datetime import datetime

from app.extensions import db


class Property(db.Model):

    __tablename__ = "properties"

    id = db.Column(db.Integer, primary_key=True)

    title = db.Column(db.String(160), nullable=False, default="")
    property_type = db.Column(db.String(64), nullable=True)  # apartment, villa, studio, penthouse, etc.
    price = db.Column(db.Float, nullable=True)

    location = db.Column(db.String(160), nullable=True)
    city = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title or "",
            "property_type": self.property_type or "",
            "price": float(self.price) if self.price is not None else None,
            "location": self.location or "",
            "city": self.city or "",
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class RentalListing(db.Model):

    __tablename__ = "rental_listings"

    id = db.Column(db.Integer, primary_key=True)

    property_id = db.Column(db.Integer, db.ForeignKey("properties.id"), nullable=True, index=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    title = db.Column(db.String(160), nullable=False, default="")
    nightly_rate = db.Column(db.Float, nullable=False, default=0.0)
    max_guests = db.Column(db.Integer, nullable=False, default=2)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    total_bookings = db.Column(db.Integer, nullable=False, default=0)
    average_rating = db.Column(db.Float, nullable=False, default=0.0)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    property = db.relationship("Property", lazy="joined")

    def to_dict(self):
        prop = self.property
        return {
            "id": self.id,
            "property_id": int(self.property_id) if self.property_id is not None else None,
            "owner_id": int(self.owner_id) if self.owner_id is not None else None,
            "title": self.title or "",
            "nightly_rate": float(self.nightly_rate or 0.0),
            "max_guests": int(self.max_guests or 0),
            "is_active": bool(self.is_active),
            "total_bookings": int(self.total_bookings or 0),
            "average_rating": float(self.average_rating or 0.0),
            "property_type": (prop.property_type if prop else None) or "",
            "city": (prop.city if prop else None) or "",
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class RentalBooking(db.Model):
    __tablename__ = "rental_bookings"

    id = db.Column(db.Integer, primary_key=True)
    rental_listing_id = db.Column(db.Integer, db.ForeignKey("rental_listings.id"), nullable=False, index=True)

    guest_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    guest_name = db.Column(db.String(120), nullable=True)
    guest_email = db.Column(db.String(255), nullable=True)
    guest_phone = db.Column(db.String(64), nullable=True)

    check_in_date = db.Column(db.Date, nullable=True)
    check_out_date = db.Column(db.Date, nullable=True)

    number_of_nights = db.Column(db.Integer, nullable=False, default=1)
    number_of_guests = db.Column(db.Integer, nullable=False, default=1)
    nightly_rate = db.Column(db.Float, nullable=True)
    total_amount = db.Column(db.Float, nullable=False, default=0.0)

    # pending/payment_started/confirmed/cancelled/completed
    booking_status = db.Column(db.String(24), nullable=False, default="pending")
    payment_status = db.Column(db.String(24), nullable=False, default="unpaid")

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    listing = db.relationship("RentalListing", lazy="joined")
    review = db.relationship("RentalReview", uselist=False, lazy="joined", back_populates="booking")

    def to_dict(self):
        return {
            "id": self.id,
            "rental_listing_id": self.rental_listing_id,
            "guest_user_id": int(self.guest_user_id) if self.guest_user_id is not None else None,
            "guest_name": self.guest_name or "",
            "guest_email": self.guest_email or "",
            "guest_phone": self.guest_phone or "",
            "check_in_date": self.check_in_date.isoformat() if self.check_in_date else None,
            "check_out_date": self.check_out_date.isoformat() if self.check_out_date else None,
            "number_of_nights": int(self.number_of_nights or 0),
            "number_of_guests": int(self.number_of_guests or 0),
            "nightly_rate": float(self.nightly_rate) if self.nightly_rate is not None else None,
            "total_amount": float(self.total_amount or 0.0),
            "booking_status": self.booking_status or "pending",
            "payment_status": self.payment_status or "unpaid",
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class RentalReview(db.Model):
    __tablename__ = "rental_reviews"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("rental_bookings.id"), nullable=False, unique=True, index=True)

    overall_rating = db.Column(db.Float, nullable=False, default=0.0)  # 1-5
    review_text = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    booking = db.relationship("RentalBooking", back_populates="review")

    def to_dict(self):
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "overall_rating": float(self.overall_rating or 0.0),
            "review_text": self.review_text or "",
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
