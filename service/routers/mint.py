"""Mint endpoints for position and resolution sigils."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from sigilmint.exceptions import InputInvalidError
from sigilmint.mint import (
    MintedArtifact,
    mint_position_from_payload,
    mint_position_sigil,
    mint_resolution_sigil,
)

router = APIRouter(prefix="/mint", tags=["Mint"])


class PositionMintRequest(BaseModel):
    """
    Mint a position sigil.

    Send either ledger records (position + vault) or a ready SM-POS-1
    payload (payload, with optional vault and position).
    """
    position: Optional[Dict[str, Any]] = None
    vault: Optional[Dict[str, Any]] = None
    payload: Optional[Dict[str, Any]] = None


class ResolutionMintRequest(BaseModel):
    """Mint a resolution sigil from an SM-RES-1 payload."""
    payload: Dict[str, Any]
    sources: List[Any] = Field(default_factory=list)
    linked: Optional[Dict[str, Any]] = None


class MintResponse(BaseModel):
    """A minted artifact."""
    kind: str
    content_hash: str
    stable_id: str
    assurance: str
    zk_ok: bool
    payload: Dict[str, Any]
    seal: Dict[str, Any]
    svg: str


def to_response(artifact: MintedArtifact) -> MintResponse:
    return MintResponse(
        kind=artifact.kind,
        content_hash=artifact.content_hash,
        stable_id=artifact.stable_id,
        assurance=artifact.seal.tier,
        zk_ok=artifact.seal.ok,
        payload=artifact.payload,
        seal=artifact.seal.to_dict(),
        svg=artifact.svg_text,
    )


@router.post("/position", response_model=MintResponse)
async def mint_position(body: PositionMintRequest, request: Request):
    """
    Mint a position sigil.

    The vault owner record is the seal-match witness and may carry a USD
    display rate. Errors: 422 for invalid input or schema, 500 otherwise.
    """
    if body.payload is not None:
        artifact = await run_in_threadpool(
            mint_position_from_payload, body.payload, body.vault, body.position
        )
    elif body.position is not None and body.vault is not None:
        artifact = await run_in_threadpool(mint_position_sigil, body.position, body.vault)
    else:
        raise InputInvalidError(
            "Provide either 'payload' or both 'position' and 'vault'",
            details={"stage": "payload"},
            request_id=getattr(request.state, "request_id", None),
        )
    return to_response(artifact)


@router.post("/resolution", response_model=MintResponse)
async def mint_resolution(body: ResolutionMintRequest):
    """Mint a resolution sigil. Extra sources are untrusted proof evidence."""
    artifact = await run_in_threadpool(
        mint_resolution_sigil, body.payload, body.sources, body.linked
    )
    return to_response(artifact)
