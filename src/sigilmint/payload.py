"""
SigilMint Payload Construction

Builds the versioned, schema-tagged payloads that get sealed:

- SM-POS-1 (kind "position"): one trading position, built from a position
  ledger record and the owning vault record.
- SM-RES-1 (kind "resolution"): one market resolution outcome.

Monetary quantities are carried as non-negative decimal strings in
micro-units (1 PHI = 1_000_000 micro). Native floats are refused so that no
precision is lost before canonicalization.

Proof fields found anywhere on the inputs (payload, position, entry, vault
owner) are copied into the position payload so that the minted sigil carries
its own evidence.

Display amounts (PHI with six decimals, USD at a detected rate) are computed
here too but never enter the seal.
"""

import math
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from .assurance import extract_proof_fields, merge_extracts
from .exceptions import InputInvalidError

__all__ = [
    'POSITION_VERSION',
    'RESOLUTION_VERSION',
    'KIND_POSITION',
    'KIND_RESOLUTION',
    'PROOF_CARRIER_KEYS',
    'MICRO_PER_PHI',
    'KaiMoment',
    'coerce_kai_moment',
    'micro_decimal',
    'build_position_payload',
    'build_resolution_payload',
    'seal_canonical_view',
    'micro_to_phi_dec6',
    'phi_dec6_to_float',
    'format_usd2',
    'detect_usd_per_phi',
]

POSITION_VERSION = "SM-POS-1"
RESOLUTION_VERSION = "SM-RES-1"
KIND_POSITION = "position"
KIND_RESOLUTION = "resolution"

VALID_SIDES = ("YES", "NO")
VALID_OUTCOMES = ("YES", "NO", "VOID")

# Keys that carry proof evidence rather than the sealed statement
PROOF_CARRIER_KEYS = frozenset({
    "zkProof",
    "zkPublicInputs",
    "zkPoseidonHash",
    "proofHints",
    "zkOk",
    "verifiedBy",
})

MICRO_PER_PHI = 1_000_000

_MICRO_PATTERN = re.compile(r'^[0-9]+$')
_NEGATIVE_PATTERN = re.compile(r'^-[0-9]+$')
_PHI_DEC6_PATTERN = re.compile(r'^([0-9]+)\.([0-9]{6})$')


# =============================================================================
# KAI MOMENT
# =============================================================================

@dataclass(frozen=True)
class KaiMoment:
    """A pulse/beat/step position on the Kai clock (all non-negative)."""
    pulse: int
    beat: int
    step_index: int

    def to_dict(self) -> Dict[str, int]:
        return {"pulse": self.pulse, "beat": self.beat, "stepIndex": self.step_index}


def _non_negative_floor(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    floored = math.floor(value)
    return floored if floored > 0 else 0


def coerce_kai_moment(value: Any) -> KaiMoment:
    """
    Coerce any value into a KaiMoment. Never raises.

    Non-numeric and non-finite fields become 0, negatives clamp to 0, floats
    are floored.

    >>> coerce_kai_moment({"pulse": 7.9, "beat": -3})
    KaiMoment(pulse=7, beat=0, step_index=0)
    """
    if not isinstance(value, Mapping):
        return KaiMoment(pulse=0, beat=0, step_index=0)
    return KaiMoment(
        pulse=_non_negative_floor(value.get("pulse")),
        beat=_non_negative_floor(value.get("beat")),
        step_index=_non_negative_floor(value.get("stepIndex")),
    )


# =============================================================================
# MICRO QUANTITIES
# =============================================================================

def micro_decimal(value: Any, field_name: str = "amount") -> str:
    """
    Normalize a micro-unit quantity to a non-negative decimal string.

    Accepts ints and decimal-digit strings. Negative quantities clamp to "0".

    Raises:
        InputInvalidError: For floats, bools and non-numeric strings

    >>> micro_decimal(1500000)
    '1500000'
    >>> micro_decimal("-12")
    '0'
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InputInvalidError(
            f"{field_name} must be an integer or decimal string, not {type(value).__name__}",
            details={"field": field_name, "provided_type": type(value).__name__},
        )
    if isinstance(value, int):
        return str(value) if value > 0 else "0"
    if isinstance(value, str):
        text = value.strip()
        if _MICRO_PATTERN.fullmatch(text):
            return str(int(text))
        if _NEGATIVE_PATTERN.fullmatch(text):
            return "0"
    raise InputInvalidError(
        f"{field_name} must be a non-negative decimal string",
        details={"field": field_name, "value": str(value)[:64]},
    )


def _require(record: Any, key: str, where: str) -> Any:
    value = record.get(key) if isinstance(record, Mapping) else None
    if value is None or value == "":
        raise InputInvalidError(
            f"{where}.{key} is required",
            details={"field": f"{where}.{key}"},
        )
    return value


def _mapping(record: Any, key: str) -> Mapping:
    value = record.get(key) if isinstance(record, Mapping) else None
    return value if isinstance(value, Mapping) else {}


# =============================================================================
# PAYLOAD BUILDERS
# =============================================================================

def build_position_payload(position: Mapping, vault: Mapping) -> Dict[str, Any]:
    """
    Build an SM-POS-1 payload from a position record and its vault.

    Expected record shapes (extra fields are ignored):
        position: {id, marketId, status?, entry: {side, sharesMicro,
                   avgPriceMicro, worstPriceMicro, feeMicro, totalCostMicro,
                   openedAt, venue?, marketDefinitionHash?},
                   lock: {lockedStakeMicro, vaultId, lockId},
                   resolution?: {outcome, resolvedPulse},
                   settlement?: {creditedMicro, debitedMicro}}
        vault:    {owner: {userPhiKey, kaiSignature}}

    Raises:
        InputInvalidError: If a required identity field is missing or a
            quantity is not a valid micro amount
    """
    if not isinstance(position, Mapping) or not isinstance(vault, Mapping):
        raise InputInvalidError(
            "position and vault must be mappings",
            details={
                "position_type": type(position).__name__,
                "vault_type": type(vault).__name__,
            },
        )

    owner = _mapping(vault, "owner")
    entry = _mapping(position, "entry")
    lock = _mapping(position, "lock")

    side = str(_require(entry, "side", "position.entry"))
    if side not in VALID_SIDES:
        raise InputInvalidError(
            f"position.entry.side must be one of {', '.join(VALID_SIDES)}",
            details={"field": "position.entry.side", "value": side[:16]},
        )

    payload: Dict[str, Any] = {
        "v": POSITION_VERSION,
        "kind": KIND_POSITION,
        "userPhiKey": str(_require(owner, "userPhiKey", "vault.owner")),
        "kaiSignature": str(_require(owner, "kaiSignature", "vault.owner")),
        "marketId": str(_require(position, "marketId", "position")),
        "positionId": str(_require(position, "id", "position")),
        "side": side,
        "lockedStakeMicro": micro_decimal(lock.get("lockedStakeMicro", 0), "lockedStakeMicro"),
        "sharesMicro": micro_decimal(entry.get("sharesMicro", 0), "sharesMicro"),
        "avgPriceMicro": micro_decimal(entry.get("avgPriceMicro", 0), "avgPriceMicro"),
        "worstPriceMicro": micro_decimal(entry.get("worstPriceMicro", 0), "worstPriceMicro"),
        "feeMicro": micro_decimal(entry.get("feeMicro", 0), "feeMicro"),
        "totalCostMicro": micro_decimal(entry.get("totalCostMicro", 0), "totalCostMicro"),
        "vaultId": str(_require(lock, "vaultId", "position.lock")),
        "lockId": str(_require(lock, "lockId", "position.lock")),
        "openedAt": coerce_kai_moment(entry.get("openedAt")).to_dict(),
        "label": f"Position {side}",
    }

    if isinstance(entry.get("venue"), str):
        payload["venue"] = entry["venue"]
    if isinstance(entry.get("marketDefinitionHash"), str):
        payload["marketDefinitionHash"] = entry["marketDefinitionHash"]

    resolution = _mapping(position, "resolution")
    if resolution:
        settlement = _mapping(position, "settlement")
        block: Dict[str, Any] = {
            "outcome": str(resolution.get("outcome", "")),
            "resolvedPulse": _non_negative_floor(resolution.get("resolvedPulse")),
        }
        if isinstance(position.get("status"), str):
            block["status"] = position["status"]
        if settlement:
            block["creditedMicro"] = micro_decimal(settlement.get("creditedMicro", 0), "creditedMicro")
            block["debitedMicro"] = micro_decimal(settlement.get("debitedMicro", 0), "debitedMicro")
        payload["resolution"] = block

    # Preserve any proof bundle carried by the inputs. The owner record is the
    # seal-match witness, so its claimed public input is never adopted.
    merged = merge_extracts([
        extract_proof_fields(position),
        extract_proof_fields(entry),
        replace(extract_proof_fields(owner), public_input_dec=None),
    ])
    if merged.proof is not None:
        payload["zkProof"] = merged.proof.to_dict()
    if merged.public_inputs is not None:
        payload["zkPublicInputs"] = list(merged.public_inputs)
    if merged.public_input_dec is not None:
        payload["zkPoseidonHash"] = merged.public_input_dec
    if merged.proof_hints is not None:
        payload["proofHints"] = merged.proof_hints
    if merged.verified_flag:
        payload["zkOk"] = True
    if merged.verified_by is not None:
        payload["verifiedBy"] = merged.verified_by

    return payload


def build_resolution_payload(
    market_id: str,
    outcome: str,
    final_pulse: int,
    oracle: Mapping,
    evidence: Optional[Mapping] = None,
) -> Dict[str, Any]:
    """
    Build an SM-RES-1 payload for a resolved market.

    Args:
        market_id: Market identifier
        outcome: "YES", "NO" or "VOID"
        final_pulse: Kai pulse at which the market resolved
        oracle: Oracle attribution; must carry a "provider"
        evidence: Optional {"urls": [...], "hashes": [...], "summary": "..."}

    Raises:
        InputInvalidError: On unknown outcome or missing oracle provider
    """
    if outcome not in VALID_OUTCOMES:
        raise InputInvalidError(
            f"outcome must be one of {', '.join(VALID_OUTCOMES)}",
            details={"field": "outcome", "value": str(outcome)[:16]},
        )
    provider = _require(oracle, "provider", "oracle")

    payload: Dict[str, Any] = {
        "v": RESOLUTION_VERSION,
        "kind": KIND_RESOLUTION,
        "marketId": str(market_id),
        "outcome": outcome,
        "finalPulse": _non_negative_floor(final_pulse),
        "oracle": {**dict(oracle), "provider": str(provider)},
    }

    if evidence:
        block: Dict[str, Any] = {}
        urls = evidence.get("urls")
        hashes = evidence.get("hashes")
        if isinstance(urls, (list, tuple)):
            block["urls"] = [str(u) for u in urls]
        if isinstance(hashes, (list, tuple)):
            block["hashes"] = [str(h) for h in hashes]
        if isinstance(evidence.get("summary"), str) and evidence["summary"].strip():
            block["summary"] = evidence["summary"]
        if block:
            payload["evidence"] = block

    return payload


def seal_canonical_view(payload: Mapping) -> Dict[str, Any]:
    """The sealed statement: the payload without its proof-carrier keys."""
    return {k: v for k, v in payload.items() if k not in PROOF_CARRIER_KEYS}


# =============================================================================
# DISPLAY AMOUNTS
# =============================================================================

def micro_to_phi_dec6(micro: str) -> str:
    """
    Format a micro amount as PHI with exactly six decimals.

    >>> micro_to_phi_dec6("1500000")
    '1.500000'
    >>> micro_to_phi_dec6("oops")
    '0.000000'
    """
    if not isinstance(micro, str) or not _MICRO_PATTERN.fullmatch(micro):
        return "0.000000"
    whole, frac = divmod(int(micro), MICRO_PER_PHI)
    return f"{whole}.{frac:06d}"


def phi_dec6_to_float(phi_dec6: str) -> float:
    """Parse a six-decimal PHI string for display arithmetic (0.0 if malformed)."""
    match = _PHI_DEC6_PATTERN.fullmatch(phi_dec6 or "")
    if not match:
        return 0.0
    return int(match.group(1)) + int(match.group(2)) / 1e6


def format_usd2(usd: float) -> str:
    """Two-decimal USD text ("0.00" for non-finite input)."""
    if not isinstance(usd, (int, float)) or not math.isfinite(usd):
        return "0.00"
    return f"{usd:.2f}"


def _positive_rate(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return None
    if isinstance(value, (int, float)) and math.isfinite(value) and value > 0:
        return float(value)
    return None


def detect_usd_per_phi(vault: Optional[Mapping]) -> Optional[float]:
    """
    Find a USD-per-PHI display rate.

    The SM_USD_PER_PHI environment variable wins; otherwise the vault is
    probed for usdPerPhi, phiUsd, usd_rate, usdRate, pricing.usdPerPhi,
    owner.usdPerPhi and owner.phiUsd. Returns None when nothing usable is
    found.
    """
    override = _positive_rate(os.getenv("SM_USD_PER_PHI"))
    if override is not None:
        return override
    if not isinstance(vault, Mapping):
        return None

    pricing = _mapping(vault, "pricing")
    owner = _mapping(vault, "owner")
    candidates = (
        vault.get("usdPerPhi"),
        vault.get("phiUsd"),
        vault.get("usd_rate"),
        vault.get("usdRate"),
        pricing.get("usdPerPhi"),
        owner.get("usdPerPhi"),
        owner.get("phiUsd"),
    )
    for candidate in candidates:
        rate = _positive_rate(candidate)
        if rate is not None:
            return rate
    return None
