"""
SigilMint FastAPI Service

REST API for minting and inspecting sigils.

Endpoints:
    GET  /health           - Liveness probe (process alive)
    GET  /version          - Version info
    POST /mint/position    - Mint a position sigil
    POST /mint/resolution  - Mint a resolution sigil
    POST /verify           - Re-read a container and recompute its hashes

Mints are CPU-bound and synchronous; routes run them in the threadpool so
the event loop stays responsive. A cancelled request discards only its own
local state.
"""

import json
import logging
import os
import sys
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from sigilmint import __version__
from sigilmint.canon import CIRCULAR_SENTINEL
from sigilmint.exceptions import InputInvalidError, SchemaInvalidError, SigilMintError
from sigilmint.hashing import HASH_ALGORITHM
from sigilmint.payload import POSITION_VERSION, RESOLUTION_VERSION
from sigilmint.seal import SEAL_SCHEME

from service.routers import mint, verify

# =============================================================================
# Configuration
# =============================================================================

SM_ENGINE_VERSION = os.getenv("SM_ENGINE_VERSION", __version__)
SM_LOG_LEVEL = os.getenv("SM_LOG_LEVEL", "INFO")
SM_DOCS_ENABLED = os.getenv("SM_DOCS_ENABLED", "true").lower() == "true"
SM_MAX_REQUEST_SIZE = int(os.getenv("SM_MAX_REQUEST_SIZE", "1048576"))  # 1MB default

# =============================================================================
# Logging Setup (Structured JSON)
# =============================================================================

_EXTRA_FIELDS = (
    "request_id",
    "kind",
    "content_hash_short",
    "stable_id_short",
    "tier",
    "stage",
    "duration_ms",
)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in _EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)
        return json.dumps(log_entry)


# Configure logging for the library and the service
logger = logging.getLogger("sigilmint")
logger.setLevel(getattr(logging, SM_LOG_LEVEL.upper()))
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)

# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(
    title="SigilMint",
    description="Deterministic sigil minting service",
    version=SM_ENGINE_VERSION,
    docs_url="/docs" if SM_DOCS_ENABLED else None,
    redoc_url="/redoc" if SM_DOCS_ENABLED else None,
    openapi_url="/openapi.json" if SM_DOCS_ENABLED else None,
)

app.include_router(mint.router)
app.include_router(verify.router)

# =============================================================================
# Response Models
# =============================================================================


class HealthResponse(BaseModel):
    """Liveness probe response."""
    status: str
    timestamp: str
    engine_version: str


class VersionResponse(BaseModel):
    """Version info response."""
    engine_version: str
    position_payload_version: str
    resolution_payload_version: str
    seal_scheme: str
    hash_algorithm: str
    circular_sentinel: str


# =============================================================================
# Middleware
# =============================================================================

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add request ID to all requests."""
    request_id = str(uuid.uuid4())[:8]
    request.state.request_id = request_id
    request.state.start_time = time.time()

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def limit_request_size(request: Request, call_next):
    """Limit request body size."""
    if request.method == "POST":
        content_length = request.headers.get("content-length")
        if content_length:
            try:
                declared = int(content_length)
            except ValueError:
                declared = -1
            if declared < 0:
                return JSONResponse(
                    status_code=400,
                    content={
                        "code": "INVALID_CONTENT_LENGTH",
                        "message": "Content-Length must be a non-negative integer",
                        "details": {"content_length": content_length[:32]},
                        "request_id": getattr(request.state, "request_id", "unknown"),
                    }
                )
            if declared > SM_MAX_REQUEST_SIZE:
                return JSONResponse(
                    status_code=413,
                    content={
                        "code": "REQUEST_TOO_LARGE",
                        "message": "Request too large",
                        "details": {"max_size": SM_MAX_REQUEST_SIZE},
                        "request_id": getattr(request.state, "request_id", "unknown"),
                    }
                )
    return await call_next(request)


# =============================================================================
# Error Handling
# =============================================================================

def error_status(error: SigilMintError) -> int:
    """422 for caller input problems, 500 for everything else."""
    if isinstance(error, (InputInvalidError, SchemaInvalidError)):
        return 422
    return 500


@app.exception_handler(SigilMintError)
async def sigilmint_error_handler(request: Request, exc: SigilMintError):
    request_id = getattr(request.state, "request_id", "unknown")
    if exc.request_id is None:
        exc.request_id = request_id
    logger.warning(
        f"Request failed: {exc}",
        extra={"request_id": request_id, "stage": exc.stage or "unknown"},
    )
    return JSONResponse(status_code=error_status(exc), content=exc.to_dict())


# =============================================================================
# Health / Info Endpoints
# =============================================================================

@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Liveness probe - checks if process is alive."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        engine_version=SM_ENGINE_VERSION,
    )


@app.get("/version", response_model=VersionResponse, tags=["Info"])
async def version_info():
    """Return version information for the engine and its wire formats."""
    return VersionResponse(
        engine_version=SM_ENGINE_VERSION,
        position_payload_version=POSITION_VERSION,
        resolution_payload_version=RESOLUTION_VERSION,
        seal_scheme=SEAL_SCHEME,
        hash_algorithm=HASH_ALGORITHM,
        circular_sentinel=CIRCULAR_SENTINEL,
    )


@app.on_event("startup")
async def startup_event():
    """Log startup info."""
    logger.info("SigilMint starting", extra={"request_id": "startup"})
    logger.info(f"Engine: v{SM_ENGINE_VERSION}")
    logger.info(f"Docs enabled: {SM_DOCS_ENABLED}")


@app.on_event("shutdown")
async def shutdown_event():
    """Log shutdown."""
    logger.info("SigilMint shutting down")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.getenv("SM_HOST", "0.0.0.0"), port=int(os.getenv("SM_PORT", "8000")))
