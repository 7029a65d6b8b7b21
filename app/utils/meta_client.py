from __future__ import annotations

import time
from typing import Any

import requests
from flask import current_app, has_app_context

from app.config import MetaConfig
from app.utils.identity import generate_event_id, hash_email, hash_phone
from app.utils.log import get_logger

ACTION_SOURCES = {"website", "email", "phone_call", "chat"}


class MetaConversionsClient:
    """Server-side sender for Meta Conversions API events.

    Every call returns a result dict and never raises; there is no retry.
    """

    def __init__(self, config: MetaConfig, session: requests.Session | None = None):
        self.config = config
        self.session = session or requests.Session()

    def build_user_data(
        self,
        *,
        email: str | None = None,
        phone: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        fbc: str | None = None,
        fbp: str | None = None,
    ) -> dict:
        user_data: dict[str, Any] = {}
        em = hash_email(email)
        if em:
            user_data["em"] = [em]
        ph = hash_phone(phone)
        if ph:
            user_data["ph"] = [ph]
        if ip_address:
            user_data["client_ip_address"] = ip_address
        if user_agent:
            user_data["client_user_agent"] = user_agent
        if fbc:
            user_data["fbc"] = fbc
        if fbp:
            user_data["fbp"] = fbp
        return user_data

    def build_payload(
        self,
        *,
        event_name: str,
        user_data: dict,
        custom_data: dict,
        identity: str | None = None,
        action_source: str = "website",
        event_source_url: str | None = None,
        event_time: int | None = None,
    ) -> dict:
        now = int(event_time) if event_time is not None else int(time.time())
        source = action_source if action_source in ACTION_SOURCES else "website"
        event = {
            "event_name": event_name,
            "event_time": now,
            "action_source": source,
            "event_source_url": event_source_url or self.config.event_source_url,
            "user_data": user_data,
            "custom_data": custom_data,
            "event_id": generate_event_id(event_name, identity),
        }
        payload: dict[str, Any] = {"data": [event], "partner_agent": self.config.partner_agent}
        if not self.config.is_production and self.config.test_event_code:
            payload["test_event_code"] = self.config.test_event_code
        return payload

    def track_conversion(
        self,
        *,
        event_name: str,
        value: float | None = None,
        currency: str | None = None,
        email: str | None = None,
        phone: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        fbc: str | None = None,
        fbp: str | None = None,
        custom_data: dict | None = None,
        event_source_url: str | None = None,
        action_source: str = "website",
    ) -> dict:
        log = get_logger()
        if not self.config.is_configured:
            log.warning("Meta Conversions API not configured; skipping %s", event_name)
            return {"ok": False, "error": "meta_not_configured"}

        try:
            user_data = self.build_user_data(
                email=email, phone=phone, ip_address=ip_address, user_agent=user_agent, fbc=fbc, fbp=fbp,
            )
            data = {"currency": currency or self.config.currency, "value": float(value or 0.0)}
            data.update({k: v for k, v in (custom_data or {}).items() if v is not None})

            payload = self.build_payload(
                event_name=event_name,
                user_data=user_data,
                custom_data=data,
                identity=email or phone,
                action_source=action_source,
                event_source_url=event_source_url,
            )
            event_id = payload["data"][0]["event_id"]

            headers = {"Authorization": f"Bearer {self.config.access_token}", "Content-Type": "application/json"}
            r = self.session.post(self.config.events_url, headers=headers, json=payload, timeout=self.config.timeout_seconds)
            try:
                j = r.json() if r.content else {}
            except ValueError:
                j = None

            if not (200 <= r.status_code < 300):
                message = ""
                if isinstance(j, dict):
                    message = (j.get("error") or {}).get("message") or ""
                log.error("Meta Conversions API error for %s: %s", event_name, message or f"HTTP {r.status_code}")
                return {"ok": False, "error": message or f"meta_http_{r.status_code}"}

            if not isinstance(j, dict):
                log.error("Meta Conversions API returned an unreadable body for %s", event_name)
                return {"ok": False, "error": "meta_bad_response"}

            if not self.config.is_production:
                log.info(
                    "Meta conversion sent: %s value=%s identity=%s",
                    event_name, data.get("value"), "email_provided" if email else "no_email",
                )
            return {"ok": True, "event_id": event_id, "response": j}
        except Exception as e:
            log.error("Meta Conversions API exception for %s: %s", event_name, e)
            return {"ok": False, "error": f"meta_exception:{e}"}

    def track_rental_booking(
        self,
        *,
        email: str | None,
        phone: str | None = None,
        property_id: str | int | None = None,
        nights: int = 0,
        total_amount: float = 0.0,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> dict:
        return self.track_conversion(
            event_name="Purchase",
            value=total_amount,
            email=email,
            phone=phone,
            ip_address=ip_address,
            user_agent=user_agent,
            custom_data={
                "content_category": "rental_booking",
                "content_name": "Rental Property Booking",
                "property_id": str(property_id) if property_id is not None else None,
                "rental_nights": int(nights or 0),
            },
        )


def build_meta_client(config: MetaConfig | None, session: requests.Session | None = None) -> MetaConversionsClient | None:
    if config is None or not config.is_configured:
        get_logger().warning("Meta Conversions API: missing access token or pixel id; conversion events disabled")
        return None
    return MetaConversionsClient(config, session=session)


def get_meta_client() -> MetaConversionsClient | None:
    if not has_app_context():
        return None
    return current_app.extensions.get("meta_conversions")
