"""
Tests for the Meta Conversions API client against a mocked requests session
"""

from unittest.mock import MagicMock

import pytest
import requests

from app.config import MetaConfig
from app.utils.identity import hash_email, hash_phone
from app.utils.meta_client import MetaConversionsClient, build_meta_client, get_meta_client


def _response(status_code=200, body=None, raw=b"{}"):
    r = MagicMock()
    r.status_code = status_code
    r.content = raw
    if isinstance(body, Exception):
        r.json.side_effect = body
    else:
        r.json.return_value = body if body is not None else {"events_received": 1}
    return r


@pytest.fixture
def config():
    return MetaConfig(access_token="token-123", pixel_id="998877", environment="dev", test_event_code="TEST42")


@pytest.fixture
def session():
    s = MagicMock()
    s.post.return_value = _response()
    return s


class TestTrackConversion:

    def test_posts_hashed_event(self, config, session):
        client = MetaConversionsClient(config, session=session)

        result = client.track_conversion(
            event_name="Purchase",
            value=1500,
            email="Guest@Example.com",
            phone="01012345678",
            ip_address="10.0.0.1",
            user_agent="pytest",
            custom_data={"booking_id": 5, "rental_listing_id": None},
        )

        assert result["ok"] is True
        assert len(result["event_id"]) == 32

        args, kwargs = session.post.call_args
        assert args[0] == "https://graph.facebook.com/v18.0/998877/events"
        assert kwargs["headers"]["Authorization"] == "Bearer token-123"
        assert kwargs["timeout"] == 10.0

        payload = kwargs["json"]
        assert payload["test_event_code"] == "TEST42"
        assert payload["partner_agent"] == "openbeit-platform-v1.0"
        event = payload["data"][0]
        assert event["event_name"] == "Purchase"
        assert event["action_source"] == "website"
        assert event["event_id"] == result["event_id"]
        assert event["user_data"]["em"] == [hash_email("guest@example.com")]
        assert event["user_data"]["ph"] == [hash_phone("201012345678")]
        assert event["user_data"]["client_ip_address"] == "10.0.0.1"
        assert event["custom_data"] == {"currency": "EGP", "value": 1500.0, "booking_id": 5}

    def test_production_omits_test_event_code(self, config, session):
        config.environment = "production"
        MetaConversionsClient(config, session=session).track_conversion(event_name="Lead")

        assert "test_event_code" not in session.post.call_args.kwargs["json"]

    def test_missing_identity_is_left_out(self, config, session):
        MetaConversionsClient(config, session=session).track_conversion(event_name="Search", email="", phone=None)

        user_data = session.post.call_args.kwargs["json"]["data"][0]["user_data"]
        assert "em" not in user_data
        assert "ph" not in user_data

    def test_unknown_action_source_falls_back_to_website(self, config, session):
        MetaConversionsClient(config, session=session).track_conversion(event_name="Lead", action_source="carrier_pigeon")

        assert session.post.call_args.kwargs["json"]["data"][0]["action_source"] == "website"

    def test_api_error_message_is_returned(self, config, session):
        session.post.return_value = _response(400, {"error": {"message": "Invalid parameter"}})

        result = MetaConversionsClient(config, session=session).track_conversion(event_name="Lead")

        assert result == {"ok": False, "error": "Invalid parameter"}

    def test_http_error_without_body(self, config, session):
        session.post.return_value = _response(500, ValueError("no json"), raw=b"<html>")

        result = MetaConversionsClient(config, session=session).track_conversion(event_name="Lead")

        assert result == {"ok": False, "error": "meta_http_500"}

    def test_unreadable_success_body(self, config, session):
        session.post.return_value = _response(200, ValueError("no json"), raw=b"ok")

        result = MetaConversionsClient(config, session=session).track_conversion(event_name="Lead")

        assert result == {"ok": False, "error": "meta_bad_response"}

    def test_transport_error_is_captured(self, config, session):
        session.post.side_effect = requests.ConnectionError("refused")

        result = MetaConversionsClient(config, session=session).track_conversion(event_name="Lead")

        assert result["ok"] is False
        assert result["error"].startswith("meta_exception:")

    def test_unconfigured_client_does_not_post(self, session):
        result = MetaConversionsClient(MetaConfig(), session=session).track_conversion(event_name="Lead")

        assert result == {"ok": False, "error": "meta_not_configured"}
        session.post.assert_not_called()


class TestTrackRentalBooking:

    def test_sends_purchase_with_rental_details(self, config, session):
        result = MetaConversionsClient(config, session=session).track_rental_booking(
            email="guest@example.com", property_id=12, nights=4, total_amount=2400.0,
        )

        assert result["ok"] is True
        event = session.post.call_args.kwargs["json"]["data"][0]
        assert event["event_name"] == "Purchase"
        assert event["custom_data"]["content_category"] == "rental_booking"
        assert event["custom_data"]["property_id"] == "12"
        assert event["custom_data"]["rental_nights"] == 4
        assert event["custom_data"]["value"] == 2400.0


class TestClientWiring:

    def test_unconfigured_settings_build_no_client(self):
        assert build_meta_client(MetaConfig()) is None
        assert build_meta_client(None) is None

    def test_configured_settings_build_client(self, config):
        assert isinstance(build_meta_client(config), MetaConversionsClient)

    def test_events_url_uses_version(self):
        assert MetaConfig(pixel_id="1", api_version="v19.0").events_url == "https://graph.facebook.com/v19.0/1/events"

    def test_no_client_outside_app_context(self):
        assert get_meta_client() is None

    def test_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("META_CONVERSIONS_API_ACCESS_TOKEN", " tok ")
        monkeypatch.setenv("META_PIXEL_ID", "42")
        monkeypatch.setenv("META_CURRENCY", "usd")
        monkeypatch.setenv("META_TIMEOUT_SECONDS", "not-a-number")

        config = MetaConfig.from_env()

        assert config.is_configured
        assert config.access_token == "tok"
        assert config.currency == "USD"
        assert config.timeout_seconds == 10.0
