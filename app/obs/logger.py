"""Structured JSON logging to stdout.

Low overhead, minimal dependencies, safe for production stdout collectors.
"""

from typing import Any, Dict
from datetime import datetime, timezone
import json

from app.obs.context import request_id_var, caller_var


def _mask_caller(value: Any) -> Any:
    s = str(value) if value is not None else ""
    if not s:
        return None
    if len(s) <= 4:
        return "***"
    return f"***{s[-4:]}"


def log_event(event: str, **fields: Any) -> None:
    now = datetime.now(timezone.utc).isoformat()
    payload: Dict[str, Any] = {
        "ts": now,
        "level": fields.pop("level", "INFO"),
        "event": event,
        "request_id": request_id_var.get(),
    }
    if "caller" not in fields:
        payload["caller"] = _mask_caller(caller_var.get())

    for k, v in fields.items():
        if k in ("caller", "user_id"):
            payload["caller"] = _mask_caller(v)
        else:
            payload[k] = v

    try:
        print(json.dumps(payload, separators=(",", ":"), default=str))
    except Exception:
        # As a last resort, avoid crashing the app due to logging
        pass
