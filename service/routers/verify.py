"""Verification endpoint for exported containers."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from sigilmint.exceptions import AssemblyError
from sigilmint.mint import inspect_artifact

router = APIRouter(tags=["Verification"])


class VerifyRequest(BaseModel):
    """Container to verify, with optional identity expectations."""
    svg: str
    logical_id: Optional[str] = None
    kind: Optional[str] = None
    stable_id: Optional[str] = None


class VerifyResponse(BaseModel):
    """Verification result."""
    valid: bool
    kind: Optional[str] = None
    checks: Dict[str, Optional[bool]]
    content_hash: Optional[str] = None
    stable_id: Optional[str] = None
    assurance: Optional[str] = None
    payload: Dict[str, Any]
    seal: Dict[str, Any]


@router.post("/verify", response_model=VerifyResponse)
async def verify_container(request: VerifyRequest):
    """
    Re-read a container and recompute its hashes.

    Checks:
    1. The seal's canonical hash matches the embedded payload
    2. The seal's canonical byte length matches
    3. The root data-payload-hash attribute matches the seal
    4. The recomputed stable id matches, when one is supplied

    The proof itself is not verified cryptographically; the assurance tier
    is reported as recorded.
    """
    try:
        report = await run_in_threadpool(
            inspect_artifact, request.svg, request.logical_id, request.kind, request.stable_id
        )
    except AssemblyError as e:
        raise HTTPException(status_code=422, detail=e.to_dict())

    seal = report.blocks.seal if isinstance(report.blocks.seal, dict) else {}
    return VerifyResponse(
        valid=report.ok,
        kind=report.kind,
        checks=report.checks,
        content_hash=report.identity.content_hash if report.identity else None,
        stable_id=report.identity.stable_id if report.identity else None,
        assurance=seal.get("zkAssurance"),
        payload=report.blocks.payload if isinstance(report.blocks.payload, dict) else {},
        seal=seal,
    )
