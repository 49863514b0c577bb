"""
SigilMint Artifact Identity

Permanent identity of a fully assembled container:

    content_hash = digest_hex(container bytes)
    stable_id    = derive_identifier(f"{domain}:SIGIL", logical_id, content_hash[:24])

Identity is computed only from the final bytes, so it is idempotent:
identifying the same container twice yields the same pair. Failure raises
IdentityError and no partial identity is ever returned.
"""

from dataclasses import dataclass
from typing import Union

from .exceptions import IdentityError, SigilMintError
from .hashing import derive_identifier, digest_hex

__all__ = [
    'STABLE_ID_REFERENCE_CHARS',
    'ArtifactIdentity',
    'identify',
    'verify_identity',
]

# Content-hash prefix length folded into the stable id
STABLE_ID_REFERENCE_CHARS = 24


@dataclass(frozen=True)
class ArtifactIdentity:
    content_hash: str
    stable_id: str

    def to_dict(self) -> dict:
        return {"contentHash": self.content_hash, "stableId": self.stable_id}


def _container_bytes(container: Union[str, bytes]) -> bytes:
    if isinstance(container, str):
        return container.encode("utf-8")
    return bytes(container)


def identify(container: Union[str, bytes], logical_id: str, domain: str) -> ArtifactIdentity:
    """
    Compute the content hash and stable id of a container.

    Args:
        container: Final container text or bytes
        logical_id: Logical record id (position id or market id)
        domain: Artifact-kind domain tag ("SM:POS" or "SM:RES")

    Raises:
        IdentityError: If the container cannot be encoded or hashed
    """
    try:
        data = _container_bytes(container)
        content_hash = digest_hex(data)
        stable_id = derive_identifier(
            f"{domain}:SIGIL", logical_id, content_hash[:STABLE_ID_REFERENCE_CHARS]
        )
    except (SigilMintError, UnicodeEncodeError, TypeError) as e:
        raise IdentityError(
            f"Could not derive artifact identity: {e}",
            details={"internal_error": type(e).__name__, "domain": domain},
        ) from e
    return ArtifactIdentity(content_hash=content_hash, stable_id=stable_id)


def verify_identity(
    container: Union[str, bytes],
    logical_id: str,
    domain: str,
    expected: ArtifactIdentity,
) -> bool:
    """Recompute identity and compare with an expected one."""
    return identify(container, logical_id, domain) == expected
