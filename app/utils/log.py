from __future__ import annotations

import logging

from flask import current_app, has_app_context


def get_logger() -> logging.Logger:
    """Flask's app logger when an app is active, else the package logger."""
    if has_app_context():
        return current_app.logger
    return logging.getLogger("app")
