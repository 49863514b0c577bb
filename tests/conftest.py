"""Shared pytest configuration: path setup for service & src imports, plus sample records."""

import re
import sys
from pathlib import Path

import pytest

# Repository root
_ROOT = Path(__file__).resolve().parent.parent

# Allow ``from sigilmint import ...`` (src is the package root)
sys.path.insert(0, str(_ROOT / "src"))

# Allow ``from service.routers import ...`` (service is a sub-package)
sys.path.insert(0, str(_ROOT))


@pytest.fixture
def groth16_proof():
    """A structurally valid snarkjs-style proof (projective triples)."""
    return {
        "pi_a": ["1111", "2222", "1"],
        "pi_b": [["3333", "4444"], ["5555", "6666"], ["1", "0"]],
        "pi_c": ["7777", "8888", "1"],
        "protocol": "groth16",
        "curve": "bn128",
    }


@pytest.fixture
def position_record():
    """Position ledger record as the trading engine stores it."""
    return {
        "id": "pos-0001",
        "marketId": "mkt-rain-tomorrow",
        "status": "open",
        "entry": {
            "side": "YES",
            "sharesMicro": "2500000",
            "avgPriceMicro": 600000,
            "worstPriceMicro": "620000",
            "feeMicro": "1500",
            "totalCostMicro": "1501500",
            "openedAt": {"pulse": 9876543, "beat": 12, "stepIndex": 7},
            "venue": "amm",
        },
        "lock": {
            "lockedStakeMicro": "1500000",
            "vaultId": "vault-42",
            "lockId": "lock-7",
        },
    }


@pytest.fixture
def vault_record():
    """Vault record whose owner signs for the position."""
    return {
        "vaultId": "vault-42",
        "owner": {
            "userPhiKey": "phikey-abc123",
            "kaiSignature": "kaisig-deadbeef",
        },
    }


@pytest.fixture
def resolution_payload():
    """A valid SM-RES-1 payload."""
    return {
        "v": "SM-RES-1",
        "kind": "resolution",
        "marketId": "mkt-rain-tomorrow",
        "outcome": "YES",
        "finalPulse": 9900000,
        "oracle": {"provider": "weather-oracle", "feed": "station-12"},
        "evidence": {
            "urls": ["https://example.org/obs/12"],
            "hashes": ["ab" * 32],
            "summary": "Rain recorded at 06:10",
        },
    }


@pytest.fixture
def strip_seal_hashes():
    """
    Return a function that removes the seal's hash and length fields and the
    payload-hash attribute from a container, asserting each was present.
    """
    def strip(svg):
        for pattern in (
            r'"canonicalHashHex":"[0-9a-f]{64}",',
            r'"canonicalBytesLen":[0-9]+,',
            r'\s+data-payload-hash="[0-9a-f]{64}"',
        ):
            svg, count = re.subn(pattern, "", svg, count=1)
            assert count == 1, pattern
        return svg
    return strip
