"""Wire encoding for order payloads: compact UTF-8 JSON, key order preserved."""
from __future__ import annotations

import json
from typing import Any

from order_service.app.domain.errors import SerializationError

CONTENT_TYPE = "application/json"


def encode_payload(payload: Any) -> bytes:
    """
    Encode a payload to the bytes that are published.
    Rejects what JSON cannot carry losslessly: circular references, non-JSON types,
    NaN/Infinity and lone surrogates.
    """
    try:
        text = json.dumps(payload, ensure_ascii=False, allow_nan=False, separators=(",", ":"))
        return text.encode("utf-8")
    except (TypeError, ValueError, RecursionError) as e:
        raise SerializationError(str(e)) from e
