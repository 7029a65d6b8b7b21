from __future__ import annotations

from typing import Any, Callable

from app.utils.log import get_logger


def best_effort(label: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> dict:
    """Run an analytics call so that it can never break the caller.

    Failures (raised or reported through `ok: False`) are logged and handed
    back as a result dict.
    """
    try:
        result = fn(*args, **kwargs)
    except Exception as e:
        get_logger().exception("%s raised: %s", label, e)
        return {"ok": False, "error": f"{label}_exception:{e}"}

    if not isinstance(result, dict):
        return {"ok": True, "result": result}
    if not result.get("ok"):
        get_logger().warning("%s failed: %s", label, result.get("error") or "unknown")
    return result
