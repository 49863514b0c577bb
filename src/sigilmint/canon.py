"""
SigilMint Canonical JSON Module

Deterministic, order-independent normalization of arbitrary structured values
and a hand-built writer that turns them into one exact byte sequence.

CRITICAL: This is the byte contract for every seal and identity.
All content hashing MUST go through canonical_json_bytes().

Writer rules:
1. Object keys sorted by code point (insertion order discarded)
2. Array order preserved (it is semantically significant)
3. No whitespace between tokens; "," between siblings, ":" after keys
4. Strings double-quoted; only quote, backslash and U+0000..U+001F escaped
5. All other Unicode written as literal UTF-8

Unlike a strict RFC 8785 encoder, canonicalize() is total: it never raises.
Cycles become CIRCULAR_SENTINEL and unrecognized objects are stringified.
This is a lossy-but-safe fallback, not an error path. Monetary micro-unit
quantities must already be decimal strings when they reach this module.

Usage:
    from sigilmint.canon import canonical_json_bytes, parse_canonical

    data = canonical_json_bytes({"b": 1, "a": "1500000"})
    assert data == b'{"a":"1500000","b":1}'
    assert parse_canonical(data) == {"a": "1500000", "b": 1}
"""

import dataclasses
import json
import math
from collections.abc import Mapping
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Union

__all__ = [
    'CIRCULAR_SENTINEL',
    'UNSERIALIZABLE_SENTINEL',
    'CanonicalValue',
    'canonicalize',
    'canonical_json_string',
    'canonical_json_bytes',
    'parse_canonical',
]

CIRCULAR_SENTINEL = "[Circular]"
UNSERIALIZABLE_SENTINEL = "[Unserializable]"

CanonicalValue = Union[None, str, int, float, bool, List[Any], Dict[str, Any]]

# Largest integer a double represents exactly; integral floats below it print as ints
_MAX_SAFE_INTEGER = 2 ** 53

# Control characters that must be escaped (0x00-0x1F)
CONTROL_CHAR_MAP = {
    '\x00': '\\u0000', '\x01': '\\u0001', '\x02': '\\u0002', '\x03': '\\u0003',
    '\x04': '\\u0004', '\x05': '\\u0005', '\x06': '\\u0006', '\x07': '\\u0007',
    '\x08': '\\b',     '\x09': '\\t',     '\x0a': '\\n',     '\x0b': '\\u000b',
    '\x0c': '\\f',     '\x0d': '\\r',     '\x0e': '\\u000e', '\x0f': '\\u000f',
    '\x10': '\\u0010', '\x11': '\\u0011', '\x12': '\\u0012', '\x13': '\\u0013',
    '\x14': '\\u0014', '\x15': '\\u0015', '\x16': '\\u0016', '\x17': '\\u0017',
    '\x18': '\\u0018', '\x19': '\\u0019', '\x1a': '\\u001a', '\x1b': '\\u001b',
    '\x1c': '\\u001c', '\x1d': '\\u001d', '\x1e': '\\u001e', '\x1f': '\\u001f',
}


# ============================================================================
# NORMALIZATION
# ============================================================================

def _stringify(value: Any) -> str:
    try:
        return str(value)
    except Exception:  # str() of arbitrary objects can raise anything
        return UNSERIALIZABLE_SENTINEL


def _normalize(value: Any, active: set) -> CanonicalValue:
    if value is None or isinstance(value, (bool, str)):
        return value

    if isinstance(value, int):
        return int(value)

    if isinstance(value, float):
        if math.isfinite(value):
            return value
        return _stringify(value)

    if isinstance(value, Decimal):
        return str(value)

    if isinstance(value, Enum):
        return _normalize(value.value, active)

    is_dataclass_instance = dataclasses.is_dataclass(value) and not isinstance(value, type)
    if not (is_dataclass_instance or isinstance(value, (Mapping, list, tuple))):
        return _stringify(value)

    # Only containers on the current path are cycles; shared siblings are expanded
    marker = id(value)
    if marker in active:
        return CIRCULAR_SENTINEL
    active.add(marker)
    try:
        if is_dataclass_instance:
            items = [(f.name, getattr(value, f.name)) for f in dataclasses.fields(value)]
            return _normalize_items(items, active)
        if isinstance(value, Mapping):
            return _normalize_items(list(value.items()), active)
        return [_normalize(item, active) for item in value]
    finally:
        active.discard(marker)


def _normalize_items(items: List[Any], active: set) -> Dict[str, CanonicalValue]:
    # Keys that stringify alike collide. A str key wins, then the lowest
    # (type name, encoded value), so insertion order never matters.
    groups: Dict[str, List[Any]] = {}
    for key, item in items:
        text = key if isinstance(key, str) else _stringify(key)
        groups.setdefault(text, []).append((key, _normalize(item, active)))

    out: Dict[str, CanonicalValue] = {}
    for text in sorted(groups):
        candidates = groups[text]
        if len(candidates) > 1:
            candidates = sorted(
                candidates,
                key=lambda kv: (not isinstance(kv[0], str), type(kv[0]).__name__, _encode_value(kv[1])),
            )
        out[text] = candidates[0][1]
    return out


def canonicalize(value: Any) -> CanonicalValue:
    """
    Normalize any value into a CanonicalValue tree.

    Total: never raises. Mappings come back with keys in ascending code-point
    order, tuples become lists, Decimals become decimal strings, Enums become
    their values, dataclasses become field mappings, non-finite floats and
    unknown objects become strings, cycles become CIRCULAR_SENTINEL.

    Examples:
        >>> canonicalize({"b": 1, "a": (2, 3)})
        {'a': [2, 3], 'b': 1}
        >>> loop = []
        >>> loop.append(loop)
        >>> canonicalize(loop)
        ['[Circular]']
    """
    return _normalize(value, set())


# ============================================================================
# WRITER
# ============================================================================

def _escape_string(s: str) -> str:
    result = []
    for char in s:
        if char == '\\':
            result.append('\\\\')
        elif char == '"':
            result.append('\\"')
        elif char in CONTROL_CHAR_MAP:
            result.append(CONTROL_CHAR_MAP[char])
        else:
            result.append(char)
    return ''.join(result)


def _encode_number(value: Union[int, float]) -> str:
    if isinstance(value, int):
        return str(value)
    if value.is_integer() and abs(value) < _MAX_SAFE_INTEGER:
        return str(int(value))
    return repr(value)


def _encode_value(value: CanonicalValue) -> str:
    if value is None:
        return 'null'

    if isinstance(value, bool):
        # Must check bool before int (bool is subclass of int in Python)
        return 'true' if value else 'false'

    if isinstance(value, (int, float)):
        return _encode_number(value)

    if isinstance(value, str):
        return f'"{_escape_string(value)}"'

    if isinstance(value, list):
        return '[' + ','.join(_encode_value(item) for item in value) + ']'

    pairs = [f'"{_escape_string(key)}":{_encode_value(value[key])}' for key in sorted(value)]
    return '{' + ','.join(pairs) + '}'


def canonical_json_string(value: Any) -> str:
    """
    Convert any value to its canonical JSON string.

    Example:
        >>> canonical_json_string({"lockedStakeMicro": "1500000", "side": "YES", "marketId": "m1"})
        '{"lockedStakeMicro":"1500000","marketId":"m1","side":"YES"}'
    """
    return _encode_value(canonicalize(value))


def canonical_json_bytes(value: Any) -> bytes:
    """
    Convert any value to canonical JSON bytes (UTF-8).

    This is THE function for all content hashing in SigilMint.

    Raises:
        UnicodeEncodeError: If a string holds a lone surrogate (not encodable)
    """
    return canonical_json_string(value).encode('utf-8')


def parse_canonical(data: Union[str, bytes]) -> Any:
    """
    Parse canonical JSON text or bytes back into Python values.

    Inverse of canonical_json_string() for JSON-shaped values under the
    decimal-string convention.
    """
    if isinstance(data, (bytes, bytearray)):
        data = bytes(data).decode('utf-8')
    return json.loads(data)
