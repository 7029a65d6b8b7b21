from datetime import datetime
import json

from app.extensions import db


class MetaTrackingEvent(db.Model):
    __tablename__ = "meta_tracking_events"

    id = db.Column(db.Integer, primary_key=True)

    event_name = db.Column(db.String(64), nullable=False, index=True)
    event_stage = db.Column(db.String(32), nullable=True)  # rental lifecycle stage
    event_value = db.Column(db.Float, nullable=False, default=0.0)
    event_id = db.Column(db.String(32), nullable=True)

    customer_id = db.Column(db.Integer, nullable=True, index=True)
    booking_id = db.Column(db.Integer, nullable=True)
    customer_segment = db.Column(db.String(32), nullable=True)

    # sent -> accepted by the API; failed -> attempted and rejected
    sent = db.Column(db.Boolean, nullable=False, default=False)
    error = db.Column(db.String(240), nullable=True)

    meta = db.Column(db.Text, nullable=True)  # JSON of the custom data sent

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    def to_dict(self):
        try:
            meta = json.loads(self.meta) if self.meta else {}
        except Exception:
            meta = {}
        return {
            "id": self.id,
            "event_name": self.event_name,
            "event_stage": self.event_stage or "",
            "event_value": float(self.event_value or 0.0),
            "event_id": self.event_id or "",
            "customer_id": int(self.customer_id) if self.customer_id is not None else None,
            "booking_id": int(self.booking_id) if self.booking_id is not None else None,
            "customer_segment": self.customer_segment or "",
            "sent": bool(self.sent),
            "error": self.error or "",
            "meta": meta,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
