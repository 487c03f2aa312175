"""
Session signer.

The session key never signs a transaction hash directly. It signs

    poseidon(transaction_hash, session_message_hash, cache_authorization)

so the signature is bound to one transaction, one session and one value of
the cache flag.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from poseidon_py.poseidon_hash import poseidon_hash_many
from starknet_py.hash.utils import message_signature

from sessionkit.core.errors import SessionError
from sessionkit.core.execution.models import Call, InvocationDetails
from sessionkit.core.execution.outside_execution import get_typed_data_message_hash
from sessionkit.core.felt import FeltLike, to_int

from .models import SessionKeyPair

logger = logging.getLogger(__name__)

TransactionSigner = Callable[[Sequence[Call], InvocationDetails], Awaitable[List[str]]]
MessageSignerFn = Callable[[Dict[str, Any], str], Awaitable[List[str]]]


def get_session_signed_hash(
    transaction_hash: FeltLike,
    session_message_hash: int,
    cache_authorization: bool,
) -> int:
    return poseidon_hash_many([to_int(transaction_hash), session_message_hash, int(bool(cache_authorization))])


def sign_tx_and_session(
    transaction_hash: FeltLike,
    account_address: FeltLike,
    session_typed_data: Dict[str, Any],
    cache_authorization: bool,
    session_key: SessionKeyPair,
) -> Tuple[int, int]:
    """
    Sign a transaction hash under a session with the session key.

    Args:
        transaction_hash: Hash of the invoke transaction or outside execution
        account_address: Account the session belongs to
        session_typed_data: The session's revision 1 typed data
        cache_authorization: Whether the cosigner may cache the owner's approval
        session_key: Session key pair

    Returns:
        (r, s)
    """
    session_message_hash = get_typed_data_message_hash(session_typed_data, account_address)
    signed_hash = get_session_signed_hash(transaction_hash, session_message_hash, cache_authorization)
    return message_signature(signed_hash, session_key.private_key)


class SessionSigner:
    """
    Account signer backed by a session.

    Built by composition: the transaction path is an injected coroutine
    producing the full session token, and message signing is delegated to an
    optional owner signer. Raw hash signing is not offered because a session
    key signature is only meaningful together with its session.
    """

    def __init__(
        self,
        sign_transaction: TransactionSigner,
        sign_message: Optional[MessageSignerFn] = None,
    ) -> None:
        self._sign_transaction = sign_transaction
        self._sign_message = sign_message

    async def sign_transaction(self, calls: Sequence[Call], details: InvocationDetails) -> List[str]:
        return await self._sign_transaction(calls, details)

    async def sign_message(self, typed_data: Dict[str, Any], account_address: str) -> List[str]:
        if self._sign_message is None:
            raise SessionError("Message signing is not supported by this session signer")
        return await self._sign_message(typed_data, account_address)

    async def sign_raw(self, msg_hash: FeltLike) -> List[str]:
        raise SessionError("Raw hash signing is not supported by session signers")
