"""
Session account.

Turns a persisted Session into transaction signatures. Each build follows the
same order:

    1. permission proofs for every call (fails fast on a disallowed call)
    2. transaction or outside execution hash
    3. session key signature over (hash, session hash, cache flag)
    4. cosigner signature (the only network round-trip)
    5. token assembly

Builds share nothing but the immutable Session, so concurrent builds for the
same session are independent.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import structlog

from sessionkit.core.execution.calldata import get_execute_calldata
from sessionkit.core.execution.models import Call, InvocationDetails
from sessionkit.core.execution.outside_execution import (
    EXECUTE_FROM_OUTSIDE_ENTRYPOINT,
    OutsideExecutionParams,
    build_outside_execution,
    build_outside_execution_typed_data,
    get_typed_data_message_hash,
    outside_execution_from_typed_data,
)
from sessionkit.core.execution.tx_hash import calculate_invoke_transaction_hash
from sessionkit.core.felt import FeltLike, to_hex, to_int_list
from sessionkit.providers.cosigner import CosignerProvider, CosignerSignature, get_cosigner_provider

from .codec import MessageSigner, get_session_typed_data
from .models import Session
from .permissions import get_session_proofs
from .signer import SessionSigner, sign_tx_and_session
from .token import SignerSignature, build_session_signature, compile_session_token

logger = logging.getLogger(__name__)


class SessionAccount:
    """
    Signs transactions for an account on behalf of an approved session.

    Usage:
        account = SessionAccount(session, cosigner=get_cosigner_provider())

        # Direct invoke
        signature = await account.sign_transaction(calls, details)

        # Relayed execution
        call = await account.create_outside_execution_call(calls)
    """

    def __init__(
        self,
        session: Session,
        cosigner: Optional[CosignerProvider] = None,
        cache_authorization: bool = False,
        message_signer: Optional[MessageSigner] = None,
    ) -> None:
        self.session = session
        self.cosigner = cosigner or get_cosigner_provider()
        self.cache_authorization = cache_authorization
        self._message_signer = message_signer

    @property
    def address(self) -> str:
        return self.session.account_address

    def _session_typed_data(self) -> Dict[str, Any]:
        return get_session_typed_data(self.session.to_off_chain(), self.session.chain_id)

    def _compile_signature(
        self,
        calls: Sequence[Call],
        proofs: List[List[int]],
        session_signature: Sequence[int],
        cosigner_signature: CosignerSignature,
    ) -> List[str]:
        token = compile_session_token(
            off_chain=self.session.to_off_chain(),
            calls=calls,
            session_public_key=self.session.session_key.public_key,
            session_signature=session_signature,
            session_authorization=self.session.authorization_signature,
            guardian_signature=SignerSignature.starknet(
                cosigner_signature.public_key, cosigner_signature.signature
            ),
            cache_authorization=self.cache_authorization,
            proofs=proofs,
        )
        return [to_hex(v) for v in build_session_signature(token)]

    async def sign_transaction(self, calls: Sequence[Call], details: InvocationDetails) -> List[str]:
        """
        Build the session token signature for an invoke transaction.

        Raises:
            CallNotAllowedError: A call is outside the session's permissions
            UnsupportedTransactionVersionError: details.version is not V1, V2 or V3
            SignSessionError / CosignerConnectionError: Cosigner failures
        """
        proofs = get_session_proofs(self.session.allowed_methods, calls)
        compiled_calldata = get_execute_calldata(calls, details.cairo_version)
        transaction_hash = calculate_invoke_transaction_hash(details, compiled_calldata)
        return await self._sign_transaction_hash(transaction_hash, calls, details, proofs)

    async def get_session_signature_for_transaction(
        self,
        transaction_hash: FeltLike,
        calls: Sequence[Call],
        details: InvocationDetails,
    ) -> List[str]:
        """Session token signature for an already computed transaction hash."""
        proofs = get_session_proofs(self.session.allowed_methods, calls)
        return await self._sign_transaction_hash(transaction_hash, calls, details, proofs)

    async def _sign_transaction_hash(
        self,
        transaction_hash: FeltLike,
        calls: Sequence[Call],
        details: InvocationDetails,
        proofs: List[List[int]],
    ) -> List[str]:
        with structlog.contextvars.bound_contextvars(
            session_hash=to_hex(self.session.hash),
            account=self.address,
        ):
            session_signature = sign_tx_and_session(
                transaction_hash,
                self.address,
                self._session_typed_data(),
                self.cache_authorization,
                self.session.session_key,
            )
            cosigner_signature = await self.cosigner.sign_session(
                session=self.session,
                calls=calls,
                details=details,
                session_signature=session_signature,
                cache_authorization=self.cache_authorization,
            )
            logger.info("Session transaction signed (%d calls, version %s)", len(calls), details.version.value)
            return self._compile_signature(calls, proofs, session_signature, cosigner_signature)

    def create_outside_execution_typed_data(
        self,
        calls: Sequence[Call],
        params: Optional[OutsideExecutionParams] = None,
    ) -> Dict[str, Any]:
        params = params or OutsideExecutionParams()
        outside_execution = build_outside_execution(
            calls,
            caller=params.caller,
            execute_after=params.execute_after,
            execute_before=params.execute_before,
            nonce=params.nonce,
        )
        return build_outside_execution_typed_data(outside_execution, self.session.chain_id, params.version)

    async def sign_outside_execution(self, typed_data: Dict[str, Any], calls: Sequence[Call]) -> List[str]:
        """
        Session token signature over an outside execution.

        Raises:
            CallNotAllowedError: A call is outside the session's permissions
            SignSessionError / CosignerConnectionError: Cosigner failures
        """
        proofs = get_session_proofs(self.session.allowed_methods, calls)
        message_hash = get_typed_data_message_hash(typed_data, self.address)

        with structlog.contextvars.bound_contextvars(
            session_hash=to_hex(self.session.hash),
            account=self.address,
        ):
            session_signature = sign_tx_and_session(
                message_hash,
                self.address,
                self._session_typed_data(),
                self.cache_authorization,
                self.session.session_key,
            )
            cosigner_signature = await self.cosigner.sign_session_efo(
                session=self.session,
                account_address=self.address,
                outside_execution_typed_data=typed_data,
                session_signature=session_signature,
                cache_authorization=self.cache_authorization,
            )
            logger.info("Outside execution signed (%d calls)", len(calls))
            return self._compile_signature(calls, proofs, session_signature, cosigner_signature)

    async def create_outside_execution_call(
        self,
        calls: Sequence[Call],
        params: Optional[OutsideExecutionParams] = None,
    ) -> Call:
        """The execute_from_outside_v2 call a relayer submits to the account."""
        typed_data = self.create_outside_execution_typed_data(calls, params)
        signature = await self.sign_outside_execution(typed_data, calls)
        outside_execution = outside_execution_from_typed_data(typed_data)
        return Call(
            contract_address=self.address,
            entrypoint=EXECUTE_FROM_OUTSIDE_ENTRYPOINT,
            calldata=tuple([*outside_execution.to_calldata(), len(signature), *to_int_list(signature)]),
        )

    def get_signer(self) -> SessionSigner:
        message_signer = self._message_signer.sign_message if self._message_signer is not None else None
        return SessionSigner(self.sign_transaction, message_signer)
