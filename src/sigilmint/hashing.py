"""
SigilMint Hashing

SHA-256 digests over canonical bytes, plus domain-separated derived
identifiers.

Two consumers:
- Content hash: digest_hex(canonical_json_bytes(payload))
- Derived identifier: digest_hex(f"{domain}:{logical_id}:{reference}")

Derived identifiers are deliberately distinct from content hashes: the
domain prefix keeps each artifact kind in its own namespace, and an id can
stay stable across schema revisions that leave its reference material alone.

Digest failure is fatal. It raises DigestError and is never replaced by a
placeholder value.
"""

import hashlib
import re
from typing import Any, Union

from .canon import canonical_json_bytes
from .exceptions import DigestError

__all__ = [
    'HASH_ALGORITHM',
    'DOMAIN_POSITION',
    'DOMAIN_RESOLUTION',
    'HEX_PATTERN',
    'digest_hex',
    'content_hash',
    'derive_identifier',
    'hex_to_decimal',
    'is_digest_hex',
]

HASH_ALGORITHM = "sha256"

# Artifact-kind domain tags
DOMAIN_POSITION = "SM:POS"
DOMAIN_RESOLUTION = "SM:RES"

HEX_PATTERN = re.compile(r'^[0-9a-fA-F]+$')
_DIGEST_PATTERN = re.compile(r'^[0-9a-f]{64}$')


def digest_hex(data: Union[bytes, str], algorithm: str = HASH_ALGORITHM) -> str:
    """
    Compute a hex digest of bytes (strings are UTF-8 encoded first).

    Args:
        data: Bytes or text to hash
        algorithm: hashlib algorithm name (default sha256)

    Returns:
        Lowercase hex digest (64 chars for sha256)

    Raises:
        DigestError: If the algorithm is unavailable or the text cannot be
            encoded

    Example:
        >>> digest_hex(b"")
        'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'
    """
    try:
        raw = data.encode('utf-8') if isinstance(data, str) else bytes(data)
        hasher = hashlib.new(algorithm)
    except (ValueError, TypeError) as e:
        raise DigestError(
            message=f"Digest primitive failed: {e}",
            details={"algorithm": algorithm, "internal_error": type(e).__name__},
        ) from e
    hasher.update(raw)
    return hasher.hexdigest()


def content_hash(payload: Any) -> str:
    """Content hash of a payload: digest of its canonical JSON bytes."""
    try:
        data = canonical_json_bytes(payload)
    except UnicodeEncodeError as e:
        raise DigestError(
            message="Canonical form is not UTF-8 encodable",
            details={"internal_error": type(e).__name__},
        ) from e
    return digest_hex(data)


def derive_identifier(domain: str, logical_id: str, reference: str) -> str:
    """
    Derive a domain-separated identifier.

    Args:
        domain: Short artifact-kind tag (e.g. "SM:POS")
        logical_id: Logical record id (e.g. position id)
        reference: Reference material, typically a content-hash prefix

    Returns:
        Hex digest of "domain:logical_id:reference"
    """
    return digest_hex(f"{domain}:{logical_id}:{reference}")


def hex_to_decimal(hex_text: str) -> str:
    """
    Reinterpret hex digits as a non-negative integer, in decimal.

    An optional 0x prefix is accepted. Non-hex input yields "0".

    Example:
        >>> hex_to_decimal("ff")
        '255'
    """
    clean = str(hex_text or "").strip()
    if clean[:2].lower() == "0x":
        clean = clean[2:]
    if not HEX_PATTERN.fullmatch(clean):
        return "0"
    try:
        return str(int(clean, 16))
    except ValueError:
        # Beyond the interpreter's int-to-str digit limit
        return "0"


def is_digest_hex(value: Any) -> bool:
    """Check if value is a lowercase 64-char hex digest."""
    return isinstance(value, str) and _DIGEST_PATTERN.fullmatch(value) is not None
