import json
import uuid
from datetime import datetime, timezone

def build_event(event_type: str, data: dict, source: str | None = None) -> dict:
    event = {
        "event_id": str(uuid.uuid4()),
        "event_type": event_type,
        "occurred_at": datetime.now(timezone.utc).isoformat(),
        "data": data,
    }
    if source:
        event["source"] = source
    return event

def to_json(event: dict) -> str:
    # datetimes in payloads go out as ISO strings
    return json.dumps(event, separators=(",", ":"), ensure_ascii=False, default=_iso)

def _iso(value):
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"{type(value).__name__} is not JSON serializable")
