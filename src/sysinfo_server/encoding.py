"""JSON encoding of snapshot models and the REST response envelope."""

import json
from dataclasses import asdict, is_dataclass
from datetime import datetime
from typing import Any

from sysinfo_server.errors import SerializationError

SUCCESS_MSG = "Success"


def _default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_jsonable(obj: Any) -> Any:
    """Convert a model (or plain value) into JSON-compatible builtins."""
    if is_dataclass(obj) and not isinstance(obj, type):
        obj = asdict(obj)
    try:
        return json.loads(json.dumps(obj, default=_default, allow_nan=False))
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Serialization error: {exc}") from exc


def dumps(obj: Any, *, pretty: bool = True) -> str:
    """Encode a model as JSON text."""
    try:
        return json.dumps(to_jsonable(obj), indent=2 if pretty else None)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Serialization error: {exc}") from exc


def ok(data: Any) -> dict[str, Any]:
    """Success envelope: code 0."""
    return {"code": 0, "msg": SUCCESS_MSG, "data": to_jsonable(data)}


def error(code: int, msg: str) -> dict[str, Any]:
    """Failure envelope: non-zero code, no data."""
    return {"code": code, "msg": msg, "data": None}
