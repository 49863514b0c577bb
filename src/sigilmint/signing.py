"""
SigilMint Detached Signatures

Ed25519 (RFC 8032) signatures over an artifact's content hash, written next
to an exported container as "<stable_id>.sig".

The signed message is the ASCII content-hash hex, so a signature can be
checked against the container alone: hash the bytes, verify the signature.
A signature attests who exported the artifact. It says nothing about the
proof assurance tier recorded inside the seal.

Keys and signatures travel as lowercase hex text:
- private key: 32-byte seed (64 hex chars)
- public key:  32 bytes (64 hex chars)
- signature:   64 bytes (128 hex chars)
"""

from pathlib import Path
from typing import Tuple, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from .exceptions import SignatureInvalidError
from .hashing import is_digest_hex

__all__ = [
    'KEY_LENGTH',
    'SIGNATURE_LENGTH',
    'sign_bytes',
    'verify_signature',
    'generate_ed25519_keypair',
    'sign_content_hash',
    'verify_content_hash',
    'read_hex_file',
    'write_hex_file',
]

KEY_LENGTH = 32
SIGNATURE_LENGTH = 64


def _check_bytes(value: bytes, what: str, length: int) -> None:
    if not isinstance(value, bytes):
        raise SignatureInvalidError(
            message=f"{what} must be bytes",
            details={"provided_type": type(value).__name__, "expected_type": "bytes"},
        )
    if len(value) != length:
        raise SignatureInvalidError(
            message=f"{what} must be exactly {length} bytes",
            details={"provided_length": len(value), "expected_length": length},
        )


def sign_bytes(private_key: bytes, data: bytes) -> bytes:
    """
    Sign data with a 32-byte Ed25519 seed. Deterministic.

    Raises:
        SignatureInvalidError: If the key is not 32 bytes
    """
    _check_bytes(private_key, "Private key", KEY_LENGTH)
    try:
        return ed25519.Ed25519PrivateKey.from_private_bytes(private_key).sign(data)
    except (ValueError, TypeError) as e:
        raise SignatureInvalidError(
            message=f"Invalid private key format: {e}",
            details={"internal_error": type(e).__name__},
        ) from e


def verify_signature(public_key: bytes, data: bytes, signature: bytes) -> bool:
    """
    Verify an Ed25519 signature.

    A well-formed signature that does not verify returns False. Only
    malformed keys or signatures raise.

    Raises:
        SignatureInvalidError: If the key is not 32 bytes or the signature
            not 64 bytes
    """
    _check_bytes(public_key, "Public key", KEY_LENGTH)
    _check_bytes(signature, "Signature", SIGNATURE_LENGTH)
    try:
        ed25519.Ed25519PublicKey.from_public_bytes(public_key).verify(signature, data)
        return True
    except (ValueError, TypeError) as e:
        raise SignatureInvalidError(
            message=f"Invalid public key format: {e}",
            details={"internal_error": type(e).__name__},
        ) from e
    except InvalidSignature:
        return False


def generate_ed25519_keypair() -> Tuple[bytes, bytes]:
    """Fresh (private seed, public key) pair, 32 raw bytes each."""
    private_key = ed25519.Ed25519PrivateKey.generate()
    private_bytes = private_key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_bytes = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return private_bytes, public_bytes


def _content_hash_message(content_hash: str) -> bytes:
    if not is_digest_hex(content_hash):
        raise SignatureInvalidError(
            message="Content hash must be 64 lowercase hex characters",
            details={"value": str(content_hash)[:80]},
        )
    return content_hash.encode("ascii")


def sign_content_hash(private_key: bytes, content_hash: str) -> str:
    """Sign an artifact content hash; returns the signature as hex."""
    return sign_bytes(private_key, _content_hash_message(content_hash)).hex()


def verify_content_hash(public_key: bytes, content_hash: str, signature_hex: str) -> bool:
    """Check a hex signature over an artifact content hash."""
    try:
        signature = bytes.fromhex(signature_hex.strip())
    except (ValueError, AttributeError) as e:
        raise SignatureInvalidError(
            message="Signature is not valid hex",
            details={"internal_error": type(e).__name__},
        ) from e
    return verify_signature(public_key, _content_hash_message(content_hash), signature)


def read_hex_file(path: Union[str, Path]) -> bytes:
    """Read a hex-encoded key or signature file."""
    text = Path(path).read_text(encoding="utf-8").strip()
    try:
        return bytes.fromhex(text)
    except ValueError as e:
        raise SignatureInvalidError(
            message=f"{Path(path).name} does not contain hex",
            details={"path": str(path)},
        ) from e


def write_hex_file(path: Union[str, Path], data: bytes) -> Path:
    """Write bytes as a hex line; returns the path written."""
    target = Path(path)
    target.write_text(data.hex() + "\n", encoding="utf-8")
    return target
