"""
DB-backed tests for history loading, profile computation and reporting
"""

from unittest.mock import patch

import pytest

from app.extensions import db
from app.ltv.analytics import rental_analytics_summary
from app.ltv.history import load_booking_history
from app.ltv.service import calculate_customer_ltv, compute_customer_profile, get_high_value_customers
from app.models import MetaTrackingEvent


class TestHistory:

    def test_newest_first_with_listing_and_review(self, app, make_user, make_listing, make_booking):
        guest = make_user()
        listing = make_listing(city="Giza", property_type="villa")
        old = make_booking(guest, listing, days_ago=90, rating=4)
        new = make_booking(guest, listing, days_ago=5)

        result = load_booking_history(guest.id)

        assert result["ok"] is True
        records = result["bookings"]
        assert [r.id for r in records] == [new.id, old.id]
        assert records[1].review_rating == 4.0
        assert records[0].review_rating is None
        assert records[0].city == "Giza"
        assert records[0].property_type == "villa"

    def test_read_failure_is_reported(self, app):
        with patch("app.ltv.history.RentalBooking") as booking_model:
            booking_model.query.filter.side_effect = RuntimeError("db down")
            result = load_booking_history(1)

        assert result["ok"] is False
        assert result["bookings"] == []
        assert result["error"].startswith("history_read_failed:")


class TestCustomerProfile:

    def test_no_history_is_not_an_error(self, app, make_user):
        guest = make_user()

        assert compute_customer_profile(guest.id) == {"ok": True, "profile": None}
        assert calculate_customer_ltv(guest.id) is None

    def test_local_guest(self, app, make_user, make_listing, make_booking):
        guest = make_user()
        listing = make_listing(city="Cairo")
        make_booking(guest, listing, days_ago=30)
        make_booking(guest, listing, days_ago=200, status="cancelled")

        profile = calculate_customer_ltv(guest.id)

        assert profile is not None
        assert profile.customer_id == guest.id
        assert profile.customer_segment == "local_resident"
        assert profile.ltv_metrics.total_bookings == 2
        assert profile.ltv_metrics.cancellation_rate == 0.5
        assert profile.revenue_optimization.preferred_communication_style == "whatsapp"

    def test_other_guests_are_ignored(self, app, make_user, make_listing, make_booking):
        guest, other = make_user(), make_user()
        listing = make_listing()
        make_booking(guest, listing)
        make_booking(other, listing)
        make_booking(other, listing)

        assert calculate_customer_ltv(guest.id).ltv_metrics.total_bookings == 1

    def test_persistence_failure_yields_no_profile(self, app):
        with patch("app.ltv.history.RentalBooking") as booking_model:
            booking_model.query.filter.side_effect = RuntimeError("db down")

            result = compute_customer_profile(1)
            profile = calculate_customer_ltv(1)

        assert result["ok"] is False
        assert profile is None


class TestHighValueCustomers:

    @pytest.fixture
    def guests(self, make_user, make_listing, make_booking):
        listing = make_listing(city="Dubai")
        frequent, one_off, modest, big_spender = make_user(), make_user(), make_user(), make_user()
        for days in (10, 40, 80):
            make_booking(frequent, listing, days_ago=days, amount=3000.0)
        make_booking(one_off, listing, days_ago=15, amount=500.0)
        for days in (20, 90):
            make_booking(modest, listing, days_ago=days, amount=1000.0)
        make_booking(big_spender, listing, days_ago=25, amount=6000.0)
        return {"frequent": frequent, "one_off": one_off, "modest": modest, "big_spender": big_spender}

    def test_filters_on_predicted_ltv(self, app, guests):
        result = get_high_value_customers()

        assert result["ok"] is True
        ids = [c["customer_id"] for c in result["customers"]]
        assert set(ids) == {guests["frequent"].id, guests["big_spender"].id}

    def test_sorted_by_meta_value_score(self, app, guests):
        customers = get_high_value_customers()["customers"]
        scores = [c["customer_profile"].meta_optimization.meta_value_score for c in customers]

        assert scores == sorted(scores, reverse=True)

    def test_contact_info_and_actions(self, app, guests):
        customers = {c["customer_id"]: c for c in get_high_value_customers()["customers"]}
        entry = customers[guests["frequent"].id]

        assert entry["contact_info"] == {"email": guests["frequent"].email, "phone": None}
        assert entry["last_booking"] is not None
        assert isinstance(entry["recommended_actions"], list)

    def test_segment_filter(self, app, guests):
        assert get_high_value_customers(segments=["luxury_seeker"])["customers"] == []
        assert len(get_high_value_customers(segments=["budget_traveler"])["customers"]) == 2

    def test_limit(self, app, guests):
        assert len(get_high_value_customers(limit=1)["customers"]) == 1


class TestAnalyticsSummary:

    def test_summary(self, app, make_user, make_listing, make_booking):
        guest = make_user()
        listing = make_listing()
        make_booking(guest, listing, days_ago=1, amount=1000.0, status="confirmed")
        make_booking(guest, listing, days_ago=2, amount=2000.0, status="completed")
        make_booking(guest, listing, days_ago=3, amount=500.0, status="pending")
        make_booking(guest, listing, days_ago=20, amount=700.0, status="cancelled")
        db.session.add_all([
            MetaTrackingEvent(event_name="Purchase", event_value=100.0, sent=True),
            MetaTrackingEvent(event_name="Purchase", event_value=300.0, sent=True),
            MetaTrackingEvent(event_name="Search", event_value=25.0, sent=False),
        ])
        db.session.commit()

        summary = rental_analytics_summary("30d")

        assert summary["ok"] is True
        overview = summary["overview"]
        assert overview["total_listings"] == 1
        assert overview["total_bookings"] == 4
        assert overview["confirmed_bookings"] == 2
        assert overview["total_revenue"] == 3000.0
        assert overview["average_booking_value"] == 1500.0
        assert overview["conversion_rate"] == 50.0
        by_status = {row["status"]: row["count"] for row in summary["bookings_by_status"]}
        assert by_status == {"pending": 1, "payment_started": 0, "confirmed": 1, "cancelled": 1, "completed": 1}
        tracking = summary["meta_tracking"]
        assert tracking["total_events"] == 3
        assert tracking["sent_events"] == 2
        assert tracking["total_value"] == 425.0
        assert tracking["by_event"][0] == {"event_name": "Purchase", "count": 2, "total_value": 400.0, "avg_value": 200.0}

    def test_range_narrows_window(self, app, make_user, make_listing, make_booking):
        guest = make_user()
        listing = make_listing()
        make_booking(guest, listing, days_ago=1)
        make_booking(guest, listing, days_ago=20)

        assert rental_analytics_summary("7d")["overview"]["total_bookings"] == 1

        fallback = rental_analytics_summary("bogus")
        assert fallback["range"] == "30d"
        assert fallback["overview"]["total_bookings"] == 2
