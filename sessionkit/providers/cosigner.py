"""
Cosigner (guardian) provider.

Every session transaction needs a second signature from a remote cosigner.
The request carries the session (hash, owner approval, cache flag and the
session key's signature) plus either the invoke transaction or the outside
execution typed data. The response is the cosigner's Starknet signature.

Endpoints:
    POST {base_url}/cosigner/signSession     direct invoke transactions
    POST {base_url}/cosigner/signSessionEFO  outside executions

Numbers that can exceed 2**53 (fees, amounts, nonces, calldata) travel as
decimal strings. Requests are never retried here; callers own retry and
timeout policy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import httpx

from .base import Provider
from ..config import settings
from ..core.errors import SessionError, UnsupportedTransactionVersionError
from ..core.execution.calldata import get_execute_calldata
from ..core.execution.models import Call, InvocationDetails, resource_bounds_to_dict
from ..core.felt import FeltLike, chain_id_to_int, to_decimal_str, to_hex, to_int
from ..core.session.models import Session

logger = logging.getLogger(__name__)

SIGN_SESSION_PATH = "/cosigner/signSession"
SIGN_SESSION_EFO_PATH = "/cosigner/signSessionEFO"


class CosignerError(SessionError):
    """Base cosigner provider error."""
    pass


class SignSessionError(CosignerError):
    """Cosigner rejected or failed to process the signing request."""
    def __init__(self, message: str, cause: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message if cause is None else f"{message}: {cause}")
        self.cause = cause
        self.status_code = status_code


class CosignerConnectionError(CosignerError):
    """Cosigner could not be reached (network failure or timeout)."""
    pass


class CosignerResponseError(CosignerError):
    """Cosigner answered with a body that is not a signature."""
    pass


@dataclass
class CosignerConfig:
    """Cosigner provider configuration."""
    base_url: str = "https://cloud.argent-api.com/v1"
    timeout_s: Optional[float] = None  # None: caller applies timeouts
    api_key: str = ""


@dataclass(frozen=True)
class CosignerSignature:
    public_key: int
    r: int
    s: int

    @property
    def signature(self) -> Tuple[int, int]:
        return (self.r, self.s)

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "CosignerSignature":
        try:
            signature = data["signature"]
            return cls(
                public_key=to_int(signature["publicKey"]),
                r=to_int(signature["r"]),
                s=to_int(signature["s"]),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CosignerResponseError(f"Malformed cosigner response: {data!r}") from e


def _stringify_numbers(value: Any) -> Any:
    """Render ints as decimal strings throughout a JSON-like structure."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, dict):
        return {k: _stringify_numbers(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_stringify_numbers(v) for v in value]
    return value


def build_session_body(
    session: Session,
    session_signature: Sequence[FeltLike],
    cache_authorization: bool,
) -> Dict[str, Any]:
    r, s = session_signature
    return {
        "sessionHash": to_hex(session.hash),
        "sessionAuthorisation": [to_decimal_str(v) for v in session.authorization_signature],
        "cacheAuthorisation": bool(cache_authorization),
        "sessionSignature": {
            "type": "StarknetKey",
            "signer": {
                "publicKey": to_hex(session.session_key.public_key),
                "r": to_decimal_str(r),
                "s": to_decimal_str(s),
            },
        },
    }


def build_transaction_body(calls: Sequence[Call], details: InvocationDetails) -> Dict[str, Any]:
    """
    Invoke transaction body, shaped by the transaction version.

    Raises:
        UnsupportedTransactionVersionError: For versions outside the legacy and V3 families
    """
    version = details.version
    calldata = [str(v) for v in get_execute_calldata(calls, details.cairo_version)]

    if version.is_legacy:
        return {
            "contractAddress": details.wallet_address,
            "calldata": calldata,
            "maxFee": str(details.max_fee),
            "nonce": str(details.nonce),
            "version": str(version.as_int),
            "chainId": str(chain_id_to_int(details.chain_id)),
        }
    elif version.is_resource_bounds:
        return {
            "sender_address": details.wallet_address,
            "calldata": calldata,
            "nonce": str(details.nonce),
            "version": str(version.as_int),
            "chain_id": str(chain_id_to_int(details.chain_id)),
            "resource_bounds": resource_bounds_to_dict(details.resource_bounds),
            "tip": str(details.tip),
            "paymaster_data": [to_decimal_str(v) for v in details.paymaster_data],
            "account_deployment_data": [to_decimal_str(v) for v in details.account_deployment_data],
            "nonce_data_availability_mode": details.nonce_data_availability_mode.name,
            "fee_data_availability_mode": details.fee_data_availability_mode.name,
        }
    raise UnsupportedTransactionVersionError(version)


def build_sign_session_body(
    session: Session,
    calls: Sequence[Call],
    details: InvocationDetails,
    session_signature: Sequence[FeltLike],
    cache_authorization: bool,
) -> Dict[str, Any]:
    return {
        "session": build_session_body(session, session_signature, cache_authorization),
        "transaction": build_transaction_body(calls, details),
    }


def build_sign_session_efo_body(
    session: Session,
    account_address: str,
    outside_execution_typed_data: Dict[str, Any],
    session_signature: Sequence[FeltLike],
    cache_authorization: bool,
) -> Dict[str, Any]:
    return {
        "session": build_session_body(session, session_signature, cache_authorization),
        "message": {
            "type": "eip712",
            "accountAddress": account_address,
            "chain": "starknet",
            "message": _stringify_numbers(outside_execution_typed_data),
        },
    }


class CosignerProvider(Provider):
    """
    HTTP client for the remote cosigner.

    Usage:
        provider = get_cosigner_provider()

        signature = await provider.sign_session(
            session=session,
            calls=calls,
            details=details,
            session_signature=(r, s),
            cache_authorization=False,
        )
    """

    name = "cosigner"

    def __init__(self, config: Optional[CosignerConfig] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._config = config or CosignerConfig(
            base_url=settings.cosigner_base_url,
            timeout_s=settings.cosigner_timeout_seconds,
            api_key=settings.cosigner_api_key,
        )
        self.timeout_s = self._config.timeout_s
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {
                "Content-Type": "application/json",
                "User-Agent": "sessionkit/1.0",
            }
            if self._config.api_key:
                headers["x-api-key"] = self._config.api_key

            self._client = httpx.AsyncClient(
                base_url=self._config.base_url,
                headers=headers,
                timeout=self._config.timeout_s,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def ready(self) -> bool:
        """Check if provider is configured."""
        return bool(self._config.base_url)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "disabled", "reason": "Cosigner base URL not configured"}
        return {"status": "configured", "base_url": self._config.base_url}

    async def _post_for_signature(self, path: str, payload: Dict[str, Any]) -> CosignerSignature:
        try:
            client = self._get_client()
            response = await client.post(path, json=payload)
        except httpx.RequestError as e:
            logger.error(f"Cosigner request to {path} failed: {e}")
            raise CosignerConnectionError(f"Cosigner request failed: {e}") from e

        if not response.is_success:
            try:
                cause = response.json().get("status")
            except (ValueError, AttributeError):
                cause = response.text
            logger.error(f"Cosigner rejected {path}: {response.status_code} - {cause}")
            raise SignSessionError("Sign session error", cause=cause, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise CosignerResponseError(f"Cosigner returned non-JSON body: {response.text!r}") from e
        return CosignerSignature.from_response(data)

    async def sign_session(
        self,
        session: Session,
        calls: Sequence[Call],
        details: InvocationDetails,
        session_signature: Sequence[FeltLike],
        cache_authorization: bool,
    ) -> CosignerSignature:
        """
        Request a cosignature for a direct invoke transaction.

        Args:
            session: The approved session
            calls: Calls in the transaction
            details: Signing details (version selects the body shape)
            session_signature: Session key (r, s)
            cache_authorization: Cache flag bound into the session signature

        Returns:
            CosignerSignature

        Raises:
            SignSessionError: Cosigner answered with a non-success status
            CosignerConnectionError: Network failure or timeout
            CosignerResponseError: Success status with an unusable body
        """
        payload = build_sign_session_body(session, calls, details, session_signature, cache_authorization)
        logger.debug(f"Requesting cosignature for session {to_hex(session.hash)}")
        return await self._post_for_signature(SIGN_SESSION_PATH, payload)

    async def sign_session_efo(
        self,
        session: Session,
        account_address: str,
        outside_execution_typed_data: Dict[str, Any],
        session_signature: Sequence[FeltLike],
        cache_authorization: bool,
    ) -> CosignerSignature:
        """Request a cosignature for an outside execution; errors as in sign_session."""
        payload = build_sign_session_efo_body(
            session,
            account_address,
            outside_execution_typed_data,
            session_signature,
            cache_authorization,
        )
        logger.debug(f"Requesting outside execution cosignature for session {to_hex(session.hash)}")
        return await self._post_for_signature(SIGN_SESSION_EFO_PATH, payload)


_cosigner_provider: Optional[CosignerProvider] = None


def get_cosigner_provider() -> CosignerProvider:
    global _cosigner_provider
    if _cosigner_provider is None:
        _cosigner_provider = CosignerProvider()
    return _cosigner_provider
