"""
Shared fixtures: an in-memory app, plain booking records and DB seed helpers
"""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from app import create_app
from app.config import MetaConfig
from app.extensions import db
from app.ltv.types import BookingRecord
from app.models import User, Property, RentalListing, RentalBooking, RentalReview
from app.utils.jwt_utils import create_access_token

NOW = datetime(2026, 6, 15, 12, 0, 0)


@pytest.fixture
def app():
    """Flask app over in-memory SQLite, with no Meta client configured"""
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "SECRET_KEY": "test-secret-key-0123456789",
        },
        meta_config=MetaConfig(),
    )
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def fake_meta_client():
    fake = MagicMock()
    fake.track_conversion.return_value = {"ok": True, "event_id": "e" * 32, "response": {"events_received": 1}}
    return fake


@pytest.fixture
def make_record():
    """Build a BookingRecord created `days_ago` days before NOW"""
    counter = {"id": 0}

    def _make(
        days_ago=10,
        amount=1000.0,
        nights=3,
        guests=1,
        status="confirmed",
        lead_days=14,
        property_type=None,
        city=None,
        rating=None,
        listing_id=1,
        nightly_rate=None,
        created_at=None,
        now=NOW,
    ):
        counter["id"] += 1
        created = created_at or (now - timedelta(days=days_ago))
        check_in = (created + timedelta(days=lead_days)).date() if lead_days is not None else None
        return BookingRecord(
            id=counter["id"],
            created_at=created,
            total_amount=amount,
            number_of_nights=nights,
            number_of_guests=guests,
            nightly_rate=nightly_rate,
            booking_status=status,
            check_in_date=check_in,
            guest_user_id=1,
            rental_listing_id=listing_id,
            property_type=property_type,
            city=city,
            review_rating=rating,
        )

    return _make


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(role="guest", email=None, phone=None):
        counter["n"] += 1
        u = User(
            name=f"User {counter['n']}",
            email=email or f"user{counter['n']}@example.com",
            phone=phone,
            role=role,
        )
        db.session.add(u)
        db.session.commit()
        return u

    return _make


@pytest.fixture
def make_listing(app):
    def _make(city="Dubai", property_type="apartment", nightly_rate=500.0, owner=None, max_guests=4):
        prop = Property(title=f"{property_type} in {city}", property_type=property_type, city=city)
        db.session.add(prop)
        db.session.flush()
        listing = RentalListing(
            property_id=prop.id,
            owner_id=owner.id if owner else None,
            title=prop.title,
            nightly_rate=nightly_rate,
            max_guests=max_guests,
        )
        db.session.add(listing)
        db.session.commit()
        return listing

    return _make


@pytest.fixture
def make_booking(app):
    def _make(guest, listing, days_ago=10, amount=1000.0, nights=3, guests=1, status="confirmed", rating=None, email=None):
        created = datetime.utcnow() - timedelta(days=days_ago)
        b = RentalBooking(
            rental_listing_id=listing.id,
            guest_user_id=guest.id,
            guest_email=email if email is not None else guest.email,
            check_in_date=(created + timedelta(days=14)).date(),
            check_out_date=(created + timedelta(days=14 + nights)).date(),
            number_of_nights=nights,
            number_of_guests=guests,
            nightly_rate=amount / nights if nights else None,
            total_amount=amount,
            booking_status=status,
            created_at=created,
        )
        db.session.add(b)
        db.session.flush()
        if rating is not None:
            db.session.add(RentalReview(booking_id=b.id, overall_rating=rating))
        db.session.commit()
        return b

    return _make


@pytest.fixture
def auth_headers(app):
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers
