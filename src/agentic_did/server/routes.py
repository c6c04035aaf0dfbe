"""Route handler functions for the agentic-did HTTP server.

Each function accepts parsed request data and returns a tuple of
(status_code, response_dict). The HTTP handler in app.py calls these
functions and serializes the results to JSON.
"""
from __future__ import annotations

from typing import Optional

from pydantic import ValidationError

from agentic_did import __version__
from agentic_did.errors import ErrorKind, ResourceExhaustedError
from agentic_did.server.models import (
    ChallengeRequest,
    ChallengeResponse,
    ErrorResponse,
    HealthResponse,
    JWKSResponse,
    PresentRequest,
    PresentResponse,
)
from agentic_did.service import VerifierService

# HTTP status for each failure kind.
STATUS_FOR_KIND: dict[ErrorKind, int] = {
    ErrorKind.MALFORMED_VP: 400,
    ErrorKind.CHALLENGE_INVALID_OR_REUSED: 401,
    ErrorKind.POSSESSION_PROOF_INVALID: 401,
    ErrorKind.CREDENTIAL_EXPIRED: 401,
    ErrorKind.CREDENTIAL_STATE_UNKNOWN: 401,
    ErrorKind.DISCLOSURE_PROOF_INVALID: 401,
    ErrorKind.CREDENTIAL_REVOKED: 403,
    ErrorKind.POLICY_MISMATCH: 403,
    ErrorKind.RESOURCE_EXHAUSTED: 429,
    ErrorKind.ORACLE_UNAVAILABLE: 503,
    ErrorKind.ISSUANCE_FAILED: 503,
}


# Module-level shared state
_service: Optional[VerifierService] = None


def configure(service: VerifierService) -> None:
    """Install the service the routes delegate to."""
    global _service
    _service = service


def get_service() -> VerifierService:
    """Return the installed service, building a default one on first use."""
    global _service
    if _service is None:
        _service = VerifierService.build()
    return _service


def reset_state(service: Optional[VerifierService] = None) -> None:
    """Reset shared state — used in tests and for clean restarts."""
    global _service
    if _service is not None:
        _service.close()
    _service = service


def handle_challenge(
    body: dict[str, object], caller_id: Optional[str] = None
) -> tuple[int, dict[str, object]]:
    """Handle POST /challenge.

    Parameters
    ----------
    body:
        Parsed JSON request body.
    caller_id:
        Identity of the caller for rate limiting (the client address).

    Returns
    -------
    tuple[int, dict[str, object]]
        HTTP status code and response dictionary.
    """
    try:
        request = ChallengeRequest.model_validate(body)
    except ValidationError as exc:
        return 422, ErrorResponse(error="Validation error", detail=str(exc)).model_dump()

    try:
        challenge = get_service().get_challenge(request.audience, caller_id=caller_id)
    except ValueError as exc:
        return 422, ErrorResponse(error="Validation error", detail=str(exc)).model_dump()
    except ResourceExhaustedError as exc:
        return 429, ErrorResponse(
            error="Too many requests", kind=exc.kind.value, detail=exc.detail
        ).model_dump()

    response = ChallengeResponse(
        nonce=challenge.nonce,
        audience=challenge.audience,
        expires_at=challenge.expires_at.isoformat(),
        exp=challenge.expires_at_epoch,
    )
    return 201, response.model_dump()


def handle_present(body: dict[str, object]) -> tuple[int, dict[str, object]]:
    """Handle POST /present.

    Returns
    -------
    tuple[int, dict[str, object]]
        200 with the capability token, or the status for the failure kind
        with ``{error, kind, detail, retryable}``.
    """
    try:
        request = PresentRequest.model_validate(body)
    except ValidationError as exc:
        return 400, ErrorResponse(
            error="Presentation rejected",
            kind=ErrorKind.MALFORMED_VP.value,
            detail=str(exc),
        ).model_dump()

    result = get_service().present_vp(request.vp, request.nonce)
    if result.ok and result.token is not None:
        response = PresentResponse(
            role=result.token.role.value,
            scopes=sorted(result.scopes),
            token=result.token.encoded,
            expires_at=result.token.expires_at.isoformat(),
        )
        return 200, response.model_dump()

    if result.error is None:
        return 500, ErrorResponse(
            error="Internal error",
            detail="verifier returned neither a token nor a failure kind",
        ).model_dump()
    status = STATUS_FOR_KIND[result.error]
    error = "Service unavailable" if result.retryable else "Presentation rejected"
    return status, ErrorResponse(
        error=error,
        kind=result.error.value,
        detail=result.detail,
        retryable=result.retryable,
    ).model_dump()


def handle_health() -> tuple[int, dict[str, object]]:
    """Handle GET /health."""
    service = get_service()
    response = HealthResponse(version=__version__, issuer=service.capability_issuer.issuer)
    return 200, response.model_dump()


def handle_jwks() -> tuple[int, dict[str, object]]:
    """Handle GET /.well-known/jwks.json."""
    response = JWKSResponse(keys=[get_service().capability_issuer.public_jwk()])
    return 200, response.model_dump()


__all__ = [
    "STATUS_FOR_KIND",
    "configure",
    "get_service",
    "handle_challenge",
    "handle_health",
    "handle_jwks",
    "handle_present",
    "reset_state",
]
