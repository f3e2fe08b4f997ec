"""
Session record encoding.

A record is the base64 encoding of the UTF-8 JSON text of the session
fields. The same string is stored in Redis and used for change detection,
so encoding must be deterministic: keys keep insertion order and JSON is
written compactly.
"""

import base64
import binascii
import json
from typing import Any, Dict, Mapping, Union

from redis_session.core.errors import MalformedRecord


def encode(fields: Mapping[str, Any]) -> str:
    """
    Encode session fields into a base64-wrapped JSON record.

    Args:
        fields: JSON-representable mapping of session data

    Returns:
        ASCII record string
    """
    body = json.dumps(dict(fields), separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(body.encode("utf-8")).decode("ascii")


def decode(record: Union[str, bytes]) -> Dict[str, Any]:
    """
    Decode a stored record back into session fields.

    Args:
        record: Record string (or raw bytes as returned by Redis)

    Returns:
        The session fields

    Raises:
        MalformedRecord: If the record is not base64, not UTF-8, not JSON,
            does not hold a JSON object, or holds text that cannot be
            encoded again (lone surrogate escapes such as ``"\\ud800"``)
    """
    # non-ASCII text and bad UTF-8 both surface as ValueError
    try:
        body = base64.b64decode(record, validate=True).decode("utf-8")
        fields = json.loads(body)
    except (binascii.Error, ValueError) as e:
        raise MalformedRecord(f"Session record could not be decoded: {e}") from e

    if not isinstance(fields, dict):
        raise MalformedRecord(
            f"Session record holds {type(fields).__name__}, expected an object"
        )

    # every loaded session is re-encoded for change detection
    try:
        encode(fields)
    except UnicodeEncodeError as e:
        raise MalformedRecord(f"Session record holds text that cannot be re-encoded: {e}") from e
    return fields
