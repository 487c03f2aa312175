"""
Tests for session key signatures and the session signer adapter.
"""

from unittest.mock import AsyncMock

import pytest
from poseidon_py.poseidon_hash import poseidon_hash_many
from starknet_py.hash.utils import verify_message_signature

from sessionkit.config import SN_SEPOLIA
from sessionkit.core.errors import SessionError
from sessionkit.core.execution.models import Call, InvocationDetails
from sessionkit.core.session.codec import get_session_key_guid, get_session_message_hash, get_session_typed_data
from sessionkit.core.session.models import AllowedMethod, OffChainSession, SessionKeyPair
from sessionkit.core.session.signer import SessionSigner, get_session_signed_hash, sign_tx_and_session

ACCOUNT = "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"
TOKEN = "0x049d36570d4e46f48e99674bd3fcc84644ddd6b96f7c741b1562b82f9e004dc7"
TX_HASH = 0x2B1A5E3F4C7D9E0A1B2C3D4E5F60718293A4B5C6D7E8F90A1B2C3D4E5F6071

SESSION_KEY = SessionKeyPair.from_private_key(0x1F2E3D4C5B6A)
OFF_CHAIN = OffChainSession(
    expires_at=1234567890,
    allowed_methods=(AllowedMethod(TOKEN, "transfer"),),
    metadata="{}",
    session_key_guid=get_session_key_guid(SESSION_KEY.public_key),
)
TYPED_DATA = get_session_typed_data(OFF_CHAIN, SN_SEPOLIA)


class TestSignTxAndSession:
    def test_signature_verifies_over_combined_hash(self):
        r, s = sign_tx_and_session(TX_HASH, ACCOUNT, TYPED_DATA, False, SESSION_KEY)

        session_hash = get_session_message_hash(OFF_CHAIN, SN_SEPOLIA, ACCOUNT)
        combined = poseidon_hash_many([TX_HASH, session_hash, 0])
        assert verify_message_signature(combined, [r, s], SESSION_KEY.public_key)

    def test_deterministic(self):
        first = sign_tx_and_session(TX_HASH, ACCOUNT, TYPED_DATA, False, SESSION_KEY)
        second = sign_tx_and_session(hex(TX_HASH), ACCOUNT, TYPED_DATA, False, SESSION_KEY)
        assert first == second

    def test_cache_flag_is_bound(self):
        uncached = sign_tx_and_session(TX_HASH, ACCOUNT, TYPED_DATA, False, SESSION_KEY)
        cached = sign_tx_and_session(TX_HASH, ACCOUNT, TYPED_DATA, True, SESSION_KEY)
        assert uncached != cached

        session_hash = get_session_message_hash(OFF_CHAIN, SN_SEPOLIA, ACCOUNT)
        flipped = get_session_signed_hash(TX_HASH, session_hash, False)
        assert not verify_message_signature(flipped, list(cached), SESSION_KEY.public_key)

    def test_transaction_hash_is_bound(self):
        first = sign_tx_and_session(TX_HASH, ACCOUNT, TYPED_DATA, False, SESSION_KEY)
        second = sign_tx_and_session(TX_HASH + 1, ACCOUNT, TYPED_DATA, False, SESSION_KEY)
        assert first != second


class TestSessionSigner:
    @pytest.mark.asyncio
    async def test_sign_transaction_delegates(self):
        sign_transaction = AsyncMock(return_value=["0x1", "0x2"])
        signer = SessionSigner(sign_transaction)
        calls = [Call(TOKEN, "transfer", [1, 2])]
        details = InvocationDetails(wallet_address=ACCOUNT, chain_id=SN_SEPOLIA, nonce=1, version="0x1")

        assert await signer.sign_transaction(calls, details) == ["0x1", "0x2"]
        sign_transaction.assert_awaited_once_with(calls, details)

    @pytest.mark.asyncio
    async def test_sign_message_delegates_to_owner(self):
        sign_message = AsyncMock(return_value=["0x3", "0x4"])
        signer = SessionSigner(AsyncMock(), sign_message)

        assert await signer.sign_message({"message": {}}, ACCOUNT) == ["0x3", "0x4"]
        sign_message.assert_awaited_once_with({"message": {}}, ACCOUNT)

    @pytest.mark.asyncio
    async def test_sign_message_unsupported_without_owner(self):
        signer = SessionSigner(AsyncMock())
        with pytest.raises(SessionError):
            await signer.sign_message({"message": {}}, ACCOUNT)

    @pytest.mark.asyncio
    async def test_sign_raw_unsupported(self):
        signer = SessionSigner(AsyncMock())
        with pytest.raises(SessionError):
            await signer.sign_raw(TX_HASH)
