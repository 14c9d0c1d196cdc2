# backend/app/db/firestore_codec.py
#
# Firestore REST typed-value wrappers <-> plain Python values.
# The rest of the app never sees "stringValue"/"mapValue" and friends.

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.models.job_models import JobSnapshot


# -------------------------------------------------------------
# TIMESTAMPS
# -------------------------------------------------------------
def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def parse_timestamp(raw: str) -> datetime:
    # Firestore returns up to nanosecond precision, datetime holds microseconds
    text = raw.rstrip("Z")
    if "." in text:
        head, frac = text.split(".", 1)
        text = f"{head}.{frac[:6].ljust(6, '0')}"
    return datetime.fromisoformat(text).replace(tzinfo=timezone.utc)


# -------------------------------------------------------------
# SINGLE VALUES
# -------------------------------------------------------------
def encode_value(value: Any) -> Dict[str, Any]:
    if value is None:
        return {"nullValue": None}
    # bool first, it is a subclass of int
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": format_timestamp(value)}
    if isinstance(value, (list, tuple)):
        if not value:
            return {"arrayValue": {}}
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def decode_value(wrapped: Dict[str, Any]) -> Any:
    if "nullValue" in wrapped:
        return None
    if "booleanValue" in wrapped:
        return bool(wrapped["booleanValue"])
    if "integerValue" in wrapped:
        return int(wrapped["integerValue"])
    if "doubleValue" in wrapped:
        return float(wrapped["doubleValue"])
    if "stringValue" in wrapped:
        return wrapped["stringValue"]
    if "timestampValue" in wrapped:
        return parse_timestamp(wrapped["timestampValue"])
    if "arrayValue" in wrapped:
        return [decode_value(v) for v in (wrapped["arrayValue"] or {}).get("values", [])]
    if "mapValue" in wrapped:
        return decode_fields((wrapped["mapValue"] or {}).get("fields", {}))
    raise ValueError(f"Unsupported Firestore value: {sorted(wrapped)}")


# -------------------------------------------------------------
# WHOLE DOCUMENTS
# -------------------------------------------------------------
def encode_fields(data: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    return {key: encode_value(value) for key, value in data.items()}


def decode_fields(fields: Optional[Dict[str, Dict[str, Any]]]) -> Dict[str, Any]:
    return {key: decode_value(value) for key, value in (fields or {}).items()}


def job_fields(snapshot: JobSnapshot) -> Dict[str, Any]:
    """Plain dict of the stored fields (jobId is the document key, not a field)."""
    data = snapshot.model_dump(mode="python", by_alias=True, exclude={"job_id"})
    data["status"] = snapshot.status.value
    return data


def document_to_snapshot(job_id: str, document: Dict[str, Any]) -> JobSnapshot:
    data = decode_fields(document.get("fields"))

    return JobSnapshot(
        jobId=job_id,
        status=data.get("status") or "processing",
        destination=data.get("destination") or "",
        durationDays=data.get("durationDays") or 0,
        createdAt=data.get("createdAt"),
        completedAt=data.get("completedAt"),
        itinerary=data.get("itinerary") or [],
        error=data.get("error"),
    )


def itinerary_values(days: List[Any]) -> List[Dict[str, Any]]:
    return [d.model_dump() if hasattr(d, "model_dump") else dict(d) for d in days]
