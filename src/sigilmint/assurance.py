"""
SigilMint Proof Assurance

Merges proof-related fields from several optional, untrusted source records
into one assurance verdict.

Sources are any-shaped records (embedded payload, owning ledger record,
linked vault owner). Each is wrapped in a SourceRecord whose probes are total:
absent, malformed or wrongly-typed fields come back as None, never as an
exception. Extracts are merged first-defined-wins in priority order, except
the verified flag, which is OR-ed across every source.

Tier precedence (strongest first):
    proof-present  > verified-flag > seal-match > none

- proof-present: a structurally valid Groth16 proof, or a non-empty public
  input list. Self-verifiable, independent of any other record.
- verified-flag: some source asserts verification (True, "true", 1, "1").
- seal-match: the linked record's canonical hash AND public input both equal
  this artifact's own. Structural consistency only; no signature is checked.
- none: nothing above holds.

This module detects the shape and presence of a proof. It does not verify
the proof against a verifying key.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Tuple, TypeVar

from .canon import canonicalize

__all__ = [
    'AssuranceTier',
    'Groth16Proof',
    'ProofExtract',
    'SealMatches',
    'AssuranceResult',
    'SourceRecord',
    'is_truthy_flag',
    'normalize_groth16_proof',
    'extract_proof_fields',
    'first_defined',
    'any_flag',
    'merge_extracts',
    'resolve_assurance',
]

T = TypeVar("T")

# Nested proof wrappers deeper than this are treated as absent
MAX_PROOF_NESTING = 8


class AssuranceTier(str, Enum):
    """Strict-precedence assurance tiers (declaration order = strength)."""
    PROOF_PRESENT = "proof-present"
    VERIFIED_FLAG = "verified-flag"
    SEAL_MATCH = "seal-match"
    NONE = "none"

    @property
    def rank(self) -> int:
        """Higher is stronger."""
        return {
            AssuranceTier.PROOF_PRESENT: 3,
            AssuranceTier.VERIFIED_FLAG: 2,
            AssuranceTier.SEAL_MATCH: 1,
            AssuranceTier.NONE: 0,
        }[self]


@dataclass(frozen=True)
class Groth16Proof:
    """
    Groth16 proof points as decimal-string coordinates.

    pi_a and pi_c are single points, pi_b a point over the extension field
    (a pair of pairs). snarkjs emits projective triples; both forms are kept
    verbatim.
    """
    pi_a: Tuple[str, ...]
    pi_b: Tuple[Tuple[str, ...], ...]
    pi_c: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pi_a": list(self.pi_a),
            "pi_b": [list(row) for row in self.pi_b],
            "pi_c": list(self.pi_c),
        }


@dataclass(frozen=True)
class ProofExtract:
    """Optional probe results for a single source record."""
    canonical_hash_hex: Optional[str] = None
    public_input_dec: Optional[str] = None
    proof: Optional[Groth16Proof] = None
    public_inputs: Optional[Tuple[str, ...]] = None
    proof_hints: Optional[Dict[str, Any]] = None
    verified_flag: bool = False
    verified_by: Optional[str] = None


@dataclass(frozen=True)
class SealMatches:
    """Cross-record comparisons against the linked record (None = not comparable)."""
    canonical: Optional[bool] = None
    public_input: Optional[bool] = None

    @property
    def both(self) -> bool:
        return self.canonical is True and self.public_input is True

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.canonical is not None:
            out["vaultCanonical"] = self.canonical
        if self.public_input is not None:
            out["vaultPoseidon"] = self.public_input
        return out


@dataclass(frozen=True)
class AssuranceResult:
    """Merged assurance verdict. `ok` is derived from the tier."""
    tier: AssuranceTier
    proof: Optional[Groth16Proof] = None
    public_inputs: Optional[Tuple[str, ...]] = None
    proof_hints: Optional[Dict[str, Any]] = None
    verified_by: Optional[str] = None
    matches: SealMatches = field(default_factory=SealMatches)

    @property
    def ok(self) -> bool:
        return self.tier is not AssuranceTier.NONE


# ============================================================================
# TOTAL PROBES
# ============================================================================

def _get(record: Any, key: str) -> Any:
    if not isinstance(record, Mapping):
        return None
    try:
        return record.get(key)
    except Exception:  # hostile Mapping implementations; probes must stay total
        return None


def _nested(record: Any, outer: str, inner: str) -> Any:
    return _get(_get(record, outer), inner)


def _is_string_list(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and all(isinstance(x, str) for x in value)


def _is_point(value: Any) -> bool:
    return _is_string_list(value) and len(value) >= 2


def _is_point2(value: Any) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) >= 2
        and all(_is_point(row) for row in value)
    )


def _plain_number_text(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and math.isfinite(value):
        return str(int(value)) if value.is_integer() else repr(value)
    return None


def is_truthy_flag(value: Any) -> bool:
    """
    Accepted verified-flag encodings: True, "true", 1, "1".

    >>> [is_truthy_flag(v) for v in (True, "true", 1, "1", "yes", 2, False)]
    [True, True, True, True, False, False, False]
    """
    if value is True:
        return True
    if isinstance(value, str):
        return value in ("true", "1")
    if isinstance(value, int) and not isinstance(value, bool):
        return value == 1
    return False


def normalize_groth16_proof(value: Any, _depth: int = 0) -> Optional[Groth16Proof]:
    """
    Recognize a Groth16 proof under either field naming.

    Accepted shapes:
    - snarkjs: {"pi_a": [...], "pi_b": [[...], ...], "pi_c": [...]}
    - short:   {"a": [...], "b": [[...], ...], "c": [...]}
    - wrapper: {"proof": <any of the above>} (unwrapped recursively)

    Points need at least two string coordinates.
    """
    if not isinstance(value, Mapping) or _depth > MAX_PROOF_NESTING:
        return None

    for a_key, b_key, c_key in (("pi_a", "pi_b", "pi_c"), ("a", "b", "c")):
        a, b, c = _get(value, a_key), _get(value, b_key), _get(value, c_key)
        if _is_point(a) and _is_point2(b) and _is_point(c):
            return Groth16Proof(
                pi_a=tuple(a),
                pi_b=tuple(tuple(row) for row in b),
                pi_c=tuple(c),
            )

    return normalize_groth16_proof(_get(value, "proof"), _depth + 1)


class SourceRecord:
    """
    Opaque untrusted record with a fixed set of total probes.

    Every probe returns an optional typed value and never raises, whatever
    the wrapped object is.
    """

    __slots__ = ("raw",)

    def __init__(self, raw: Any) -> None:
        self.raw = raw

    def canonical_hash_hex(self) -> Optional[str]:
        for key in ("canonicalHashHex", "canonicalHash"):
            value = _get(self.raw, key)
            if isinstance(value, str):
                return value
        return None

    def public_input_dec(self) -> Optional[str]:
        candidates = (
            ("zkPoseidonHashDec", str),
            ("zkPoseidonHash", str),
            ("zkPoseidonHash", int),
            ("zkPoseidonHashDec", int),
            ("zkPoseidon", str),
        )
        for key, kind in candidates:
            value = _get(self.raw, key)
            if kind is str and isinstance(value, str):
                return value
            if kind is int:
                text = _plain_number_text(value)
                if text is not None:
                    return text
        return None

    def public_inputs(self) -> Optional[Tuple[str, ...]]:
        for key in ("zkPublicInputs", "publicInputs", "inputs"):
            value = _get(self.raw, key)
            if _is_string_list(value) and value:
                return tuple(value)
        return None

    def proof_hints(self) -> Optional[Dict[str, Any]]:
        value = _get(self.raw, "proofHints")
        if isinstance(value, Mapping):
            # Detached from the caller's record
            return canonicalize(value)
        return None

    def proof(self) -> Optional[Groth16Proof]:
        candidates = (
            _get(self.raw, "zkProof"),
            _get(self.raw, "proof"),
            _get(self.raw, "groth16Proof"),
            _get(self.raw, "proofBundle"),
            _nested(self.raw, "proofBundle", "proof"),
            _nested(self.raw, "zk", "proof"),
            _nested(self.raw, "zk", "zkProof"),
            _nested(self.raw, "zk", "groth16Proof"),
        )
        for candidate in candidates:
            proof = normalize_groth16_proof(candidate)
            if proof is not None:
                return proof
        return None

    def verified_flag(self) -> bool:
        return any(is_truthy_flag(v) for v in (
            _get(self.raw, "zkOk"),
            _get(self.raw, "zkVerified"),
            _get(self.raw, "verified"),
            _nested(self.raw, "zk", "ok"),
            _nested(self.raw, "zk", "verified"),
        ))

    def verified_by(self) -> Optional[str]:
        for value in (
            _get(self.raw, "verifiedBy"),
            _get(self.raw, "zkVerifier"),
            _nested(self.raw, "zk", "verifier"),
        ):
            if isinstance(value, str):
                return value
        return None

    def extract(self) -> ProofExtract:
        return ProofExtract(
            canonical_hash_hex=self.canonical_hash_hex(),
            public_input_dec=self.public_input_dec(),
            proof=self.proof(),
            public_inputs=self.public_inputs(),
            proof_hints=self.proof_hints(),
            verified_flag=self.verified_flag(),
            verified_by=self.verified_by(),
        )


def extract_proof_fields(record: Any) -> ProofExtract:
    """Run every probe over one record."""
    return SourceRecord(record).extract()


# ============================================================================
# MERGE COMBINATORS
# ============================================================================

def first_defined(extracts: Iterable[ProofExtract], accessor: Callable[[ProofExtract], Optional[T]]) -> Optional[T]:
    """First non-None accessor result in priority order."""
    for extract in extracts:
        value = accessor(extract)
        if value is not None:
            return value
    return None


def any_flag(extracts: Iterable[ProofExtract], accessor: Callable[[ProofExtract], bool]) -> bool:
    """Logical OR of a boolean accessor across all extracts."""
    return any(bool(accessor(extract)) for extract in extracts)


def merge_extracts(extracts: Sequence[ProofExtract]) -> ProofExtract:
    """Merge extracts: first-defined per field, OR for verified_flag."""
    return ProofExtract(
        canonical_hash_hex=first_defined(extracts, lambda z: z.canonical_hash_hex),
        public_input_dec=first_defined(extracts, lambda z: z.public_input_dec),
        proof=first_defined(extracts, lambda z: z.proof),
        public_inputs=first_defined(extracts, lambda z: z.public_inputs),
        proof_hints=first_defined(extracts, lambda z: z.proof_hints),
        verified_flag=any_flag(extracts, lambda z: z.verified_flag),
        verified_by=first_defined(extracts, lambda z: z.verified_by),
    )


# ============================================================================
# RESOLUTION
# ============================================================================

def resolve_assurance(
    sources: Sequence[Any],
    *,
    canonical_hash_hex: str,
    public_input_dec: str,
    linked: Any = None,
) -> AssuranceResult:
    """
    Resolve the assurance tier for an artifact.

    Args:
        sources: Untrusted records in priority order (embedded payload first)
        canonical_hash_hex: This artifact's own canonical hash
        public_input_dec: This artifact's own public input
        linked: Secondary linked record (vault owner). Merged at lowest
            priority and the only record compared for seal-match.

    Returns:
        AssuranceResult with the strongest tier the evidence supports

    Example:
        >>> resolve_assurance([{"zkOk": "true"}], canonical_hash_hex="ab", public_input_dec="1").tier
        <AssuranceTier.VERIFIED_FLAG: 'verified-flag'>
    """
    extracts = [extract_proof_fields(source) for source in sources]
    linked_extract = extract_proof_fields(linked) if linked is not None else ProofExtract()
    merged = merge_extracts(extracts + [linked_extract])

    matches = SealMatches(
        canonical=(
            linked_extract.canonical_hash_hex.lower() == canonical_hash_hex.lower()
            if linked_extract.canonical_hash_hex is not None else None
        ),
        public_input=(
            linked_extract.public_input_dec == public_input_dec
            if linked_extract.public_input_dec is not None else None
        ),
    )

    proof_present = merged.proof is not None or bool(merged.public_inputs)
    if proof_present:
        tier = AssuranceTier.PROOF_PRESENT
    elif merged.verified_flag:
        tier = AssuranceTier.VERIFIED_FLAG
    elif matches.both:
        tier = AssuranceTier.SEAL_MATCH
    else:
        tier = AssuranceTier.NONE

    return AssuranceResult(
        tier=tier,
        proof=merged.proof,
        public_inputs=merged.public_inputs,
        proof_hints=merged.proof_hints,
        verified_by=merged.verified_by,
        matches=matches,
    )
