"""
SigilMint Seal

The seal binds a payload to its canonical hash and carries the assurance
verdict resolved from whatever proof evidence the inputs supplied.

Construction:
    view      = payload without proof-carrier keys
    bytes     = canonical_json_bytes(view)
    hash      = digest_hex(bytes)
    public in = first claimed by a source, else
                hex_to_decimal(digest_hex(f"{domain}:POSEIDON:{hash}"))

The derived public input is a domain-separated SHA-256 read as a decimal
integer. It is a stable stand-in for a circuit's Poseidon output, not a
Poseidon hash. A proof supplied by a source is carried, never verified here.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence

from .assurance import AssuranceResult, extract_proof_fields, first_defined, resolve_assurance
from .canon import canonical_json_bytes, canonicalize
from .hashing import DOMAIN_POSITION, HASH_ALGORITHM, digest_hex, hex_to_decimal
from .payload import seal_canonical_view

__all__ = [
    'SEAL_SCHEME',
    'DEFAULT_PROOF_HINTS',
    'ArtifactSeal',
    'derive_public_input',
    'build_seal',
    'seal_consistency',
]

SEAL_SCHEME = "groth16-poseidon"

DEFAULT_PROOF_HINTS: Dict[str, Any] = {
    "scheme": SEAL_SCHEME,
    "verify": {
        "mode": "offline-or-api",
        "statement": "canonicalHashHex",
        "publicInput": "zkPoseidonHashDec",
    },
}


@dataclass(frozen=True)
class ArtifactSeal:
    """Canonical hash, public input and assurance verdict for one payload."""
    canonical_hash_hex: str
    canonical_bytes_len: int
    public_input_dec: str
    assurance: AssuranceResult
    scheme: str = SEAL_SCHEME
    canonical_hash_alg: str = HASH_ALGORITHM
    proof_hints: Dict[str, Any] = field(default_factory=lambda: canonicalize(DEFAULT_PROOF_HINTS))

    @property
    def ok(self) -> bool:
        return self.assurance.ok

    @property
    def tier(self) -> str:
        return self.assurance.tier.value

    def to_dict(self) -> Dict[str, Any]:
        """Wire form embedded in the container (keys are camelCase)."""
        out: Dict[str, Any] = {
            "scheme": self.scheme,
            "canonicalHashAlg": self.canonical_hash_alg,
            "canonicalHashHex": self.canonical_hash_hex,
            "canonicalBytesLen": self.canonical_bytes_len,
            "zkPoseidonHashDec": self.public_input_dec,
            "zkOk": self.assurance.ok,
            "zkAssurance": self.assurance.tier.value,
            "proofHints": canonicalize(self.proof_hints),
            "matches": self.assurance.matches.to_dict(),
        }
        if self.assurance.proof is not None:
            out["zkProof"] = self.assurance.proof.to_dict()
        if self.assurance.public_inputs is not None:
            out["zkPublicInputs"] = list(self.assurance.public_inputs)
        if self.assurance.verified_by is not None:
            out["verifiedBy"] = self.assurance.verified_by
        return out


def derive_public_input(canonical_hash_hex: str, domain: str = DOMAIN_POSITION) -> str:
    """Domain-separated public input for a canonical hash, in decimal."""
    return hex_to_decimal(digest_hex(f"{domain}:POSEIDON:{canonical_hash_hex}"))


def build_seal(
    payload: Mapping[str, Any],
    sources: Sequence[Any] = (),
    linked: Any = None,
    domain: str = DOMAIN_POSITION,
) -> ArtifactSeal:
    """
    Seal a payload.

    Args:
        payload: The payload; also the first (highest priority) proof source
        sources: Further untrusted proof sources in priority order
        linked: Secondary linked record compared for seal-match
        domain: Artifact-kind domain tag used for the derived public input

    Raises:
        DigestError: If the digest primitive fails
    """
    data = canonical_json_bytes(seal_canonical_view(payload))
    canonical_hash_hex = digest_hex(data)

    primary = [payload, *sources]
    claimed = first_defined(
        [extract_proof_fields(source) for source in primary],
        lambda z: z.public_input_dec,
    )
    public_input_dec = claimed if claimed is not None else derive_public_input(canonical_hash_hex, domain)

    assurance = resolve_assurance(
        primary,
        canonical_hash_hex=canonical_hash_hex,
        public_input_dec=public_input_dec,
        linked=linked,
    )
    hints = canonicalize(assurance.proof_hints if assurance.proof_hints is not None else DEFAULT_PROOF_HINTS)

    return ArtifactSeal(
        canonical_hash_hex=canonical_hash_hex,
        canonical_bytes_len=len(data),
        public_input_dec=public_input_dec,
        assurance=assurance,
        proof_hints=hints,
    )


def seal_consistency(payload: Mapping[str, Any], seal: Mapping[str, Any]) -> Dict[str, Optional[bool]]:
    """
    Recompute the canonical hash of a payload and compare it with a wire seal.

    Returns a dict of named checks; None means the seal omitted the field.
    """
    data = canonical_json_bytes(seal_canonical_view(payload))
    claimed_hash = seal.get("canonicalHashHex")
    claimed_len = seal.get("canonicalBytesLen")
    return {
        "canonical_hash": (
            str(claimed_hash).lower() == digest_hex(data) if claimed_hash is not None else None
        ),
        "canonical_bytes_len": (
            claimed_len == len(data) if claimed_len is not None else None
        ),
    }
