"""
SigilMint Mint Pipeline

Orchestrates one mint, strictly forward:

    payload -> seal -> geometry -> assembly -> identity

Every function here is pure over its inputs: no shared state is written and
nothing is cached between mints, so concurrent mints need no coordination.
A failure at any stage raises exactly one SigilMintError whose
details["stage"] names the stage. No partially built artifact escapes.

Usage:
    from sigilmint.mint import mint_position_sigil

    artifact = mint_position_sigil(position_record, vault_record)
    artifact.stable_id, artifact.content_hash, artifact.svg_text
"""

import base64
import logging
import time
from collections.abc import Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Sequence, Union

from .canon import canonicalize
from .container import (
    ContainerBlocks,
    assemble_position,
    assemble_resolution,
    display_amounts,
    read_container,
)
from .exceptions import (
    STAGE_ASSEMBLY,
    STAGE_GEOMETRY,
    STAGE_IDENTITY,
    STAGE_PAYLOAD,
    STAGE_SEAL,
    InputInvalidError,
    SigilMintError,
    wrap_internal_exception,
)
from .geometry import GeometryParams, build_geometry
from .hashing import DOMAIN_POSITION, DOMAIN_RESOLUTION, digest_hex
from .identity import ArtifactIdentity, identify
from .payload import KIND_POSITION, KIND_RESOLUTION, build_position_payload, detect_usd_per_phi
from .seal import ArtifactSeal, build_seal, seal_consistency
from .validators import validate_payload

__all__ = [
    'DOMAINS',
    'MintedArtifact',
    'VerificationReport',
    'position_seed',
    'resolution_seed',
    'mint_position_sigil',
    'mint_position_from_payload',
    'mint_resolution_sigil',
    'inspect_artifact',
    'checks_pass',
    'REQUIRED_CHECKS',
]

logger = logging.getLogger(__name__)

DOMAINS = {
    KIND_POSITION: DOMAIN_POSITION,
    KIND_RESOLUTION: DOMAIN_RESOLUTION,
}

# A container whose seal omits these cannot pass inspection
REQUIRED_CHECKS = ("canonical_hash", "canonical_bytes_len")


@dataclass(frozen=True)
class MintedArtifact:
    """A finished sigil. Immutable; a changed record mints a new artifact."""
    kind: str
    content_hash: str
    stable_id: str
    payload: Dict[str, Any]
    seal: ArtifactSeal
    svg_text: str

    @property
    def identity(self) -> ArtifactIdentity:
        return ArtifactIdentity(content_hash=self.content_hash, stable_id=self.stable_id)

    @property
    def svg_bytes(self) -> bytes:
        return self.svg_text.encode("utf-8")

    @property
    def data_uri(self) -> str:
        """Transient display reference. Computed on access and never persisted."""
        return "data:image/svg+xml;base64," + base64.b64encode(self.svg_bytes).decode("ascii")

    def to_manifest(self) -> Dict[str, Any]:
        """JSON-ready summary written next to the exported container."""
        return {
            "kind": self.kind,
            "contentHash": self.content_hash,
            "stableId": self.stable_id,
            "payload": canonicalize(self.payload),
            "seal": self.seal.to_dict(),
        }


@contextmanager
def _stage(name: str) -> Iterator[None]:
    try:
        yield
    except SigilMintError as e:
        e.details.setdefault("stage", name)
        logger.warning("Mint stage '%s' failed: %s", name, e)
        raise
    except Exception as e:
        logger.warning("Mint stage '%s' failed: %s: %s", name, type(e).__name__, e)
        raise wrap_internal_exception(e, stage=name) from e


def position_seed(payload: Mapping[str, Any]) -> str:
    """Geometry seed for a position sigil."""
    return digest_hex(
        f"SM:POS:SEED:{payload['positionId']}:{payload['lockId']}:{payload['userPhiKey']}"
    )


def resolution_seed(payload: Mapping[str, Any]) -> str:
    """Geometry seed for a resolution sigil."""
    return digest_hex(
        f"SM:RES:{payload['marketId']}:{payload['outcome']}:{payload['finalPulse']}:"
        f"{payload['oracle']['provider']}"
    )


def _finish(
    kind: str,
    payload: Dict[str, Any],
    seal: ArtifactSeal,
    svg_text: str,
    logical_id: str,
    started: float,
) -> MintedArtifact:
    with _stage(STAGE_IDENTITY):
        identity = identify(svg_text, logical_id, DOMAINS[kind])

    artifact = MintedArtifact(
        kind=kind,
        content_hash=identity.content_hash,
        stable_id=identity.stable_id,
        payload=payload,
        seal=seal,
        svg_text=svg_text,
    )
    logger.info(
        "Minted %s sigil",
        kind,
        extra={
            "kind": kind,
            "content_hash_short": identity.content_hash[:16],
            "stable_id_short": identity.stable_id[:16],
            "tier": seal.tier,
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
        },
    )
    return artifact


def mint_position_from_payload(
    payload: Mapping[str, Any],
    vault: Optional[Mapping[str, Any]] = None,
    position: Optional[Mapping[str, Any]] = None,
) -> MintedArtifact:
    """
    Mint a position sigil from an already built SM-POS-1 payload.

    Args:
        payload: Position payload; validated against its schema
        vault: Optional vault record; its owner is the seal-match witness
            and it may carry a USD display rate
        position: Optional position record used as an extra proof source

    Raises:
        SigilMintError: Subclass carrying details["stage"]
    """
    started = time.perf_counter()

    with _stage(STAGE_PAYLOAD):
        # Detached from the caller; equal to the embedded block
        payload = canonicalize(payload)
        if validate_payload(payload) != KIND_POSITION:
            raise InputInvalidError(
                "Expected a position payload",
                details={"kind": payload.get("kind")},
            )

    with _stage(STAGE_SEAL):
        sources = []
        if isinstance(position, Mapping):
            # The entry outranks the position it belongs to
            if isinstance(position.get("entry"), Mapping):
                sources.append(position["entry"])
            sources.append(position)
        linked = vault.get("owner") if isinstance(vault, Mapping) else None
        seal = build_seal(payload, sources=sources, linked=linked, domain=DOMAIN_POSITION)
        seal_dict = seal.to_dict()

    with _stage(STAGE_GEOMETRY):
        geometry: GeometryParams = build_geometry(position_seed(payload), payload["side"])
        amounts = display_amounts(payload["lockedStakeMicro"], detect_usd_per_phi(vault))

    with _stage(STAGE_ASSEMBLY):
        svg_text = assemble_position(payload, seal_dict, geometry, amounts)

    return _finish(KIND_POSITION, payload, seal, svg_text, payload["positionId"], started)


def mint_position_sigil(position: Mapping[str, Any], vault: Mapping[str, Any]) -> MintedArtifact:
    """
    Mint a position sigil from ledger records.

    Builds the SM-POS-1 payload from the position and its vault, then runs
    the rest of the pipeline.
    """
    with _stage(STAGE_PAYLOAD):
        payload = build_position_payload(position, vault)
    return mint_position_from_payload(payload, vault=vault, position=position)


def mint_resolution_sigil(
    payload: Mapping[str, Any],
    sources: Sequence[Any] = (),
    linked: Any = None,
) -> MintedArtifact:
    """
    Mint a resolution sigil from an SM-RES-1 payload.

    Args:
        payload: Resolution payload; validated against its schema
        sources: Extra untrusted proof sources in priority order
        linked: Optional linked record compared for seal-match
    """
    started = time.perf_counter()

    with _stage(STAGE_PAYLOAD):
        # Detached from the caller; equal to the embedded block
        payload = canonicalize(payload)
        if validate_payload(payload) != KIND_RESOLUTION:
            raise InputInvalidError(
                "Expected a resolution payload",
                details={"kind": payload.get("kind")},
            )

    with _stage(STAGE_SEAL):
        seal = build_seal(payload, sources=sources, linked=linked, domain=DOMAIN_RESOLUTION)
        seal_dict = seal.to_dict()

    with _stage(STAGE_GEOMETRY):
        geometry = build_geometry(resolution_seed(payload), payload["outcome"])

    with _stage(STAGE_ASSEMBLY):
        svg_text = assemble_resolution(payload, seal_dict, geometry)

    return _finish(KIND_RESOLUTION, payload, seal, svg_text, payload["marketId"], started)


# =============================================================================
# INSPECTION
# =============================================================================

def checks_pass(checks: Mapping[str, Optional[bool]]) -> bool:
    """
    Verdict over named checks.

    Required checks must have run and passed. Any other check may be None
    (could not run) but must not be False.
    """
    if any(checks.get(name) is not True for name in REQUIRED_CHECKS):
        return False
    return all(result is not False for result in checks.values())


@dataclass(frozen=True)
class VerificationReport:
    """Result of re-reading a container and recomputing its hashes."""
    blocks: ContainerBlocks
    kind: Optional[str]
    checks: Dict[str, Optional[bool]]
    identity: Optional[ArtifactIdentity] = None

    @property
    def ok(self) -> bool:
        return checks_pass(self.checks)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "kind": self.kind,
            "checks": dict(self.checks),
            "identity": self.identity.to_dict() if self.identity else None,
            "payload": self.blocks.payload,
            "seal": self.blocks.seal,
            "attributes": dict(self.blocks.attributes),
        }


def inspect_artifact(
    svg: Union[str, bytes],
    logical_id: Optional[str] = None,
    kind: Optional[str] = None,
    expected_stable_id: Optional[str] = None,
) -> VerificationReport:
    """
    Read a container, recompute its seal hash and (optionally) its identity.

    The logical id defaults to the payload's positionId or marketId and the
    kind to the payload's kind.

    Raises:
        AssemblyError: If the container cannot be read
    """
    blocks = read_container(svg)
    payload = blocks.payload if isinstance(blocks.payload, dict) else {}
    seal = blocks.seal if isinstance(blocks.seal, dict) else {}

    kind = kind or payload.get("kind")
    checks = seal_consistency(payload, seal)
    checks["payload_hash_attribute"] = (
        blocks.attributes.get("data-payload-hash") == seal.get("canonicalHashHex")
        if "data-payload-hash" in blocks.attributes else None
    )

    identity = None
    if kind in DOMAINS:
        if logical_id is None:
            logical_id = payload.get("positionId") if kind == KIND_POSITION else payload.get("marketId")
        if logical_id is not None:
            identity = identify(svg, str(logical_id), DOMAINS[kind])
    if expected_stable_id is not None:
        checks["stable_id"] = identity is not None and identity.stable_id == expected_stable_id

    return VerificationReport(blocks=blocks, kind=kind, checks=checks, identity=identity)
