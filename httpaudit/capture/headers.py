"""
Header Serialization
====================
Renders header and trailer multi-maps as compact JSON text.
"""

import json
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from ..exceptions import HeaderSerializationError

HeaderMap = Dict[str, List[str]]

# Characters allowed in a header field name (RFC 7230 token)
_TOKEN_CHARS = frozenset(
    "!#$%&'*+-.^_`|~0123456789"
    "abcdefghijklmnopqrstuvwxyz"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
)


def canonical_header_key(key: str) -> str:
    """
    Return the canonical form of a header name ("content-type" -> "Content-Type").

    Names holding characters outside the token set are returned unchanged.
    """
    if not key or any(ch not in _TOKEN_CHARS for ch in key):
        return key
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


def header_map_from_raw(raw_headers: Iterable[Tuple[bytes, bytes]]) -> HeaderMap:
    """Build a canonical multi-map from ASGI raw header pairs, keeping value order."""
    headers: HeaderMap = {}
    for raw_key, raw_value in raw_headers:
        key = canonical_header_key(raw_key.decode("latin-1"))
        headers.setdefault(key, []).append(raw_value.decode("latin-1"))
    return headers


def header_tokens(values: Iterable[str]) -> List[str]:
    """Split comma separated header values into lower-case tokens."""
    return [
        token.strip().lower()
        for value in values
        for token in value.split(",")
        if token.strip()
    ]


def serialize_headers(headers: Mapping[str, Sequence[str]]) -> str:
    """
    Render a header multi-map as JSON text.

    Args:
        headers: Mapping of header name to its list of values

    Returns:
        Compact JSON object with sorted keys, every value a JSON array

    Raises:
        HeaderSerializationError: if a key or value is not a string
    """
    prepared: Dict[str, List[str]] = {}
    for key, values in (headers or {}).items():
        if not isinstance(key, str):
            raise HeaderSerializationError(f"header name {key!r} is not a string")
        if isinstance(values, (str, bytes)):
            raise HeaderSerializationError(
                f"header {key!r} must map to a list of values, got {type(values).__name__}"
            )
        value_list = list(values)
        for value in value_list:
            if not isinstance(value, str):
                raise HeaderSerializationError(
                    f"header {key!r} has non-text value {value!r}"
                )
        prepared[key] = value_list

    try:
        return json.dumps(prepared, sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise HeaderSerializationError(str(e)) from e


def parse_headers(text: str) -> HeaderMap:
    """Parse text produced by serialize_headers back into a multi-map."""
    if not text:
        return {}
    data = json.loads(text)
    if data is None:
        return {}
    return {key: list(values) for key, values in data.items()}
