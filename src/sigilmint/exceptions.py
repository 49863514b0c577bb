"""
SigilMint Exception Hierarchy

Every failure of the mint pipeline surfaces as exactly one SigilMintError with
a deterministic code and a details dict naming the stage that failed.

Error Codes:
- SM_INPUT_INVALID: Input record unusable (missing identity, wrong type)
- SM_SCHEMA_INVALID: Payload does not conform to its JSON Schema
- SM_DIGEST_FAILED: Underlying digest primitive unavailable or failed
- SM_ASSEMBLY_FAILED: Container could not be encoded or did not round-trip
- SM_IDENTITY_FAILED: Content hash / stable id derivation failed
- SM_SIGNATURE_INVALID: Detached signature malformed or key unusable
- SM_INTERNAL_ERROR: Unexpected internal error (catch-all)

Canonicalization and proof-source extraction never raise; they degrade to
sentinels and absent values instead.
"""

from typing import Any, Dict, Optional
import json

__all__ = [
    # Exception classes
    'SigilMintError',
    'InputInvalidError',
    'SchemaInvalidError',
    'DigestError',
    'AssemblyError',
    'IdentityError',
    'SignatureInvalidError',
    'InternalError',
    # Pipeline stages
    'STAGE_PAYLOAD',
    'STAGE_SEAL',
    'STAGE_GEOMETRY',
    'STAGE_ASSEMBLY',
    'STAGE_IDENTITY',
    # Mapping utilities
    'EXCEPTION_MAP',
    'wrap_internal_exception',
]


STAGE_PAYLOAD = "payload"
STAGE_SEAL = "seal"
STAGE_GEOMETRY = "geometry"
STAGE_ASSEMBLY = "assembly"
STAGE_IDENTITY = "identity"


class SigilMintError(Exception):
    """
    Base exception for all SigilMint errors.

    Provides a consistent interface for error handling with:
    - code: A deterministic error code (SM_*)
    - message: Human-readable error description
    - details: Additional context as a dictionary (includes "stage" when
      raised from the mint pipeline)
    - request_id: Optional request identifier for tracing
    """

    code: str = "SM_INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details if details is not None else {}
        self.request_id = request_id

    @property
    def stage(self) -> Optional[str]:
        """Pipeline stage that failed, when known."""
        return self.details.get("stage")

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize error to a dictionary.

        Returns:
            Dictionary with code, message, details, and optionally request_id
        """
        result: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }
        if self.request_id is not None:
            result["request_id"] = self.request_id
        return result

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialize error to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"request_id={self.request_id!r})"
        )


class InputInvalidError(SigilMintError):
    """
    Input record unusable.

    Raised when a ledger or vault record lacks what payload construction
    needs (owner keys, position id) or has the wrong shape entirely.
    """

    code: str = "SM_INPUT_INVALID"


class SchemaInvalidError(SigilMintError):
    """
    Payload failed JSON Schema validation.

    details["errors"] lists up to ten "path: message" strings.
    """

    code: str = "SM_SCHEMA_INVALID"


class DigestError(SigilMintError):
    """
    Digest primitive failed.

    Fatal to the mint. Never defaulted to a placeholder hash.
    """

    code: str = "SM_DIGEST_FAILED"


class AssemblyError(SigilMintError):
    """
    Container assembly failed.

    Raised on encoding errors and when the embedded blocks do not parse back
    to exactly the payload and seal that were embedded.
    """

    code: str = "SM_ASSEMBLY_FAILED"


class IdentityError(SigilMintError):
    """Content hash or stable identifier could not be derived."""

    code: str = "SM_IDENTITY_FAILED"


class SignatureInvalidError(SigilMintError):
    """
    Cryptographic signature invalid or missing.

    Raised for malformed keys or signatures. A well-formed signature that
    does not verify is reported as False, not raised.
    """

    code: str = "SM_SIGNATURE_INVALID"


class InternalError(SigilMintError):
    """Unexpected internal error."""

    code: str = "SM_INTERNAL_ERROR"


# =============================================================================
# EXCEPTION MAPPING
# =============================================================================

EXCEPTION_MAP: Dict[type, type] = {
    UnicodeEncodeError: AssemblyError,
    UnicodeDecodeError: AssemblyError,
    ValueError: InputInvalidError,
    TypeError: InputInvalidError,
    KeyError: InputInvalidError,
}


def wrap_internal_exception(
    exc: Exception,
    default_message: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
    stage: Optional[str] = None,
) -> SigilMintError:
    """
    Wrap an internal exception as a SigilMintError.

    SigilMintError instances pass through unchanged except that a missing
    stage is filled in. Known built-in exception types map through
    EXCEPTION_MAP; anything else becomes InternalError.

    Use with exception chaining to preserve traceback:
        try:
            build_seal(payload)
        except Exception as e:
            raise wrap_internal_exception(e, stage=STAGE_SEAL) from e
    """
    if isinstance(exc, SigilMintError):
        if stage is not None:
            exc.details.setdefault("stage", stage)
        return exc

    error_class = InternalError
    for exc_type in type(exc).__mro__:
        if exc_type in EXCEPTION_MAP:
            error_class = EXCEPTION_MAP[exc_type]
            break

    error_details = details.copy() if details else {}
    error_details["internal_error"] = type(exc).__name__
    if stage is not None:
        error_details["stage"] = stage

    return error_class(
        message=default_message or str(exc),
        details=error_details,
        request_id=request_id
    )
