import logging
import os

from flask import Flask, jsonify
from sqlalchemy import text

from app.config import Config, MetaConfig, is_production_env
from app.extensions import db, migrate, cors
from app.segments.segment_rentals import rentals_bp
from app.segments.segment_rental_ltv import rental_ltv_bp
from app.utils.meta_client import build_meta_client


def create_app(overrides: dict | None = None, meta_config: MetaConfig | None = None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    env = (app.config.get("ENV") or "dev").strip().lower()

    # Production safety checks
    if is_production_env(env):
        secret = (app.config.get("SECRET_KEY") or "").strip()
        if not secret or len(secret) < 16 or secret == "dev-secret":
            raise RuntimeError("SECRET_KEY must be set and at least 16 chars in production")
        if not (os.getenv("DATABASE_URL") or "").strip() and not (os.getenv("SQLALCHEMY_DATABASE_URI") or "").strip():
            raise RuntimeError("DATABASE_URL (or SQLALCHEMY_DATABASE_URI) must be set in production")

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL") or "INFO").upper(), logging.INFO))

    # Ensure instance dir exists for SQLite paths
    if str(app.config.get("SQLALCHEMY_DATABASE_URI", "")).startswith("sqlite:///") and ":memory:" not in app.config["SQLALCHEMY_DATABASE_URI"]:
        os.makedirs(Config.INSTANCE_DIR, exist_ok=True)

    # CORS configuration
    cors_origins = (app.config.get("CORS_ORIGINS") or "").strip()
    if is_production_env(env):
        origins = [o.strip() for o in cors_origins.split(",") if o.strip()]
    else:
        origins = ["*"] if not cors_origins else [o.strip() for o in cors_origins.split(",") if o.strip()]
    cors.init_app(app, resources={r"/api/*": {"origins": origins}})

    # Init extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Meta Conversions API client, injected once; None when not configured
    with app.app_context():
        app.extensions["meta_conversions"] = build_meta_client(meta_config or MetaConfig.from_env())

    # Register API routes
    app.register_blueprint(rentals_bp)
    app.register_blueprint(rental_ltv_bp)

    with app.app_context():
        db.create_all()

    # Health check
    @app.get("/api/health")
    def health():
        db_state = "ok"
        try:
            db.session.execute(text("SELECT 1"))
        except Exception:
            db_state = "fail"
        return jsonify({
            "ok": True,
            "service": "rentals-ltv-backend",
            "env": env,
            "db": db_state,
            "meta_conversions": app.extensions.get("meta_conversions") is not None,
        })

    return app
