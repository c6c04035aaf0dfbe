"""HttpCredentialStateOracle — client adapter for a remote credential-state service.

The remote service exposes ``POST <base_url>/receipts/verify`` accepting
``{"cred_hash": ..., "attestation": ...}`` and answering
``{"status": "valid|expired|revoked|unknown", "policy": {"role": ..., "scopes": [...]}}``.

Every request carries an explicit timeout. There is no retry loop here;
callers that want one wrap this adapter.
"""
from __future__ import annotations

import logging
from typing import Optional

import requests

from agentic_did.errors import OracleUnavailableError
from agentic_did.oracle.base import CredentialPolicy, CredentialStatus, OracleResponse

logger = logging.getLogger(__name__)


class HttpCredentialStateOracle:
    """Credential-state oracle reached over HTTP.

    Parameters
    ----------
    base_url:
        Base URL of the oracle service (e.g. ``"http://localhost:8788"``).
    timeout_seconds:
        Connect and read timeout for every request.
    session:
        Optional :class:`requests.Session` to reuse connections.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 2.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._url = base_url.rstrip("/") + "/receipts/verify"
        self._timeout = timeout_seconds
        self._session = session or requests.Session()

    def lookup(self, cred_hash: str, attestation: str) -> OracleResponse:
        """Query the remote oracle.

        Raises
        ------
        OracleUnavailableError
            On timeouts, connection errors, 5xx responses and unparsable bodies.
        """
        try:
            response = self._session.post(
                self._url,
                json={"cred_hash": cred_hash, "attestation": attestation},
                timeout=self._timeout,
            )
        except requests.Timeout as exc:
            logger.error("Credential-state oracle timed out after %.1fs", self._timeout)
            raise OracleUnavailableError(f"oracle timed out after {self._timeout}s") from exc
        except requests.RequestException as exc:
            logger.error("Credential-state oracle unreachable: %s", exc)
            raise OracleUnavailableError(f"oracle unreachable: {exc}") from exc

        if response.status_code == 404:
            return OracleResponse(status=CredentialStatus.UNKNOWN)
        if response.status_code >= 500:
            raise OracleUnavailableError(f"oracle returned HTTP {response.status_code}")
        if response.status_code != 200:
            logger.warning("Oracle rejected lookup with HTTP %d", response.status_code)
            return OracleResponse(status=CredentialStatus.UNKNOWN)

        try:
            body = response.json()
            status = CredentialStatus(str(body["status"]))
            raw_policy = body.get("policy")
            policy = CredentialPolicy.from_dict(raw_policy) if raw_policy else None
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise OracleUnavailableError(f"oracle sent an unparsable response: {exc}") from exc

        return OracleResponse(status=status, policy=policy)


__all__ = ["HttpCredentialStateOracle"]
