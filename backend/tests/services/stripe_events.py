"""Stripe Events — builders for signed webhook payloads.

Invariants:
    - Signatures follow Stripe's v1 scheme: HMAC-SHA256 over "{timestamp}.{payload}"
    - Timestamps are current, so the SDK's 300s tolerance always passes
"""

import hashlib
import hmac
import json
import time


def signed_event(event: dict, secret: str) -> tuple[bytes, dict]:
    """(payload, headers) carrying a valid stripe-signature for `event`."""
    payload = json.dumps(event)
    timestamp = int(time.time())
    signature = hmac.new(
        secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256,
    ).hexdigest()
    return payload.encode(), {
        "stripe-signature": f"t={timestamp},v1={signature}",
        "content-type": "application/json",
    }


def event(event_type: str, obj: dict, event_id: str = "evt_test") -> dict:
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": obj},
    }
