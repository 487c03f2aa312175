"""
Session codec.

Single place where a session's derived values are computed:

- the on-chain commitment (expiry, permission root, metadata hash, key GUID)
- the revision 1 typed data the owner signs
- the session message hash under the account's domain
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Awaitable, Dict, List, Optional, Protocol, Sequence, Tuple, Union

from poseidon_py.poseidon_hash import poseidon_hash, poseidon_hash_many
from starknet_py.cairo.felt import encode_shortstring
from starknet_py.serialization.data_serializers import ByteArraySerializer

from sessionkit.config import settings
from sessionkit.core.errors import InvalidMetadataError, SessionError
from sessionkit.core.execution.outside_execution import get_typed_data_message_hash
from sessionkit.core.felt import FeltLike, chain_id_to_hex, to_hex, to_int

from .models import (
    AllowedMethod,
    OffChainSession,
    OnChainSession,
    Session,
    SessionKeyPair,
    SessionMetadata,
    normalize_signature,
)
from .permissions import get_allowed_methods_root

logger = logging.getLogger(__name__)

SESSION_DOMAIN_NAME = "SessionAccount.session"
SESSION_DOMAIN_VERSION = "0x31"
SESSION_VERSION = "1"
STARKNET_SIGNER_TAG = encode_shortstring("Starknet Signer")

SESSION_TYPES: Dict[str, List[Dict[str, str]]] = {
    "StarknetDomain": [
        {"name": "name", "type": "shortstring"},
        {"name": "version", "type": "shortstring"},
        {"name": "chainId", "type": "shortstring"},
        {"name": "revision", "type": "shortstring"},
    ],
    "Allowed Method": [
        {"name": "Contract Address", "type": "ContractAddress"},
        {"name": "selector", "type": "selector"},
    ],
    "Session": [
        {"name": "Expires At", "type": "timestamp"},
        {"name": "Allowed Methods", "type": "merkletree", "contains": "Allowed Method"},
        {"name": "Metadata", "type": "string"},
        {"name": "Session Key", "type": "felt"},
    ],
}


class MessageSigner(Protocol):
    """Owner-side signer asked to approve a session."""

    def sign_message(self, typed_data: Dict[str, Any], account_address: str) -> Awaitable[Sequence[FeltLike]]:
        ...


def ensure_ascii_metadata(metadata: str) -> str:
    """
    Raises:
        InvalidMetadataError: If ``metadata`` is not an ASCII string
    """
    if not isinstance(metadata, str) or not metadata.isascii():
        raise InvalidMetadataError(f"Session metadata must be an ASCII string, got {metadata!r}")
    return metadata


def byte_array_from_string(text: str) -> Tuple[List[int], int, int]:
    """
    Split ``text`` into the Cairo ByteArray layout.

    Returns:
        (full 31-byte words, pending word, pending word length in bytes)
    """
    serialized = ByteArraySerializer().serialize(ensure_ascii_metadata(text))
    words = serialized[0]
    return list(serialized[1:1 + words]), serialized[-2], serialized[-1]


def hash_metadata(metadata: str) -> int:
    return poseidon_hash_many(ByteArraySerializer().serialize(ensure_ascii_metadata(metadata)))


def get_session_key_guid(public_key: FeltLike) -> int:
    """GUID of a Starknet session key, as the account contract derives it."""
    return poseidon_hash(STARKNET_SIGNER_TAG, to_int(public_key))


def compile_session(off_chain: OffChainSession) -> OnChainSession:
    return OnChainSession(
        expires_at=off_chain.expires_at,
        allowed_methods_root=get_allowed_methods_root(off_chain.allowed_methods),
        metadata_hash=hash_metadata(off_chain.metadata),
        session_key_guid=off_chain.session_key_guid,
    )


def get_session_domain(chain_id: FeltLike) -> Dict[str, str]:
    return {
        "name": SESSION_DOMAIN_NAME,
        "version": SESSION_DOMAIN_VERSION,
        "chainId": chain_id_to_hex(chain_id),
        "revision": "1",
    }


def get_session_typed_data(off_chain: OffChainSession, chain_id: FeltLike) -> Dict[str, Any]:
    return {
        "types": SESSION_TYPES,
        "primaryType": "Session",
        "domain": get_session_domain(chain_id),
        "message": {
            "Expires At": off_chain.expires_at,
            "Allowed Methods": [m.to_typed_data() for m in off_chain.allowed_methods],
            "Metadata": off_chain.metadata,
            "Session Key": to_hex(off_chain.session_key_guid),
        },
    }


def get_session_message_hash(off_chain: OffChainSession, chain_id: FeltLike, account_address: FeltLike) -> int:
    return get_typed_data_message_hash(get_session_typed_data(off_chain, chain_id), account_address)


def _metadata_to_str(metadata: Union[SessionMetadata, Dict[str, Any], str]) -> str:
    if isinstance(metadata, SessionMetadata):
        return metadata.to_json()
    if isinstance(metadata, dict):
        return json.dumps(metadata, separators=(",", ":"), ensure_ascii=True)
    return ensure_ascii_metadata(metadata)


def create_session_request(
    allowed_methods: Sequence[AllowedMethod],
    expires_at: int,
    metadata: Union[SessionMetadata, Dict[str, Any], str],
    public_key: Optional[FeltLike],
) -> OffChainSession:
    """
    Describe a new session for the owner to approve.

    Dict and SessionMetadata metadata is serialized with non-ASCII characters
    escaped; a raw string must already be ASCII.

    Raises:
        SessionError: If no session public key is supplied
        InvalidMetadataError: If string metadata is not ASCII
    """
    if public_key is None or public_key == "":
        raise SessionError("session public key is required")
    return OffChainSession(
        expires_at=expires_at,
        allowed_methods=tuple(allowed_methods),
        metadata=_metadata_to_str(metadata),
        session_key_guid=get_session_key_guid(public_key),
    )


def build_session(
    off_chain: OffChainSession,
    session_key: SessionKeyPair,
    account_address: str,
    chain_id: FeltLike,
    authorization_signature: Sequence[FeltLike],
) -> Session:
    """Materialize an approved session; its hash is computed here, once."""
    ensure_ascii_metadata(off_chain.metadata)
    session_hash = get_session_message_hash(off_chain, chain_id, account_address)
    logger.debug("Built session %s for %s", hex(session_hash), account_address)
    return Session(
        session_key_guid=off_chain.session_key_guid,
        hash=session_hash,
        version=SESSION_VERSION,
        account_address=account_address,
        chain_id=chain_id_to_hex(chain_id),
        expires_at=off_chain.expires_at,
        allowed_methods=off_chain.allowed_methods,
        metadata=off_chain.metadata,
        authorization_signature=tuple(normalize_signature(authorization_signature)),
        session_key=session_key,
    )


async def open_session(
    message_signer: MessageSigner,
    account_address: str,
    allowed_methods: Sequence[AllowedMethod],
    session_key: Optional[SessionKeyPair],
    chain_id: Optional[FeltLike] = None,
    expires_at: Optional[int] = None,
    metadata: Union[SessionMetadata, Dict[str, Any], str] = "{}",
    ttl_s: int = 24 * 60 * 60,
) -> Session:
    """
    Ask the account owner to approve a new session and return it.

    Args:
        message_signer: Owner signer exposing ``sign_message(typed_data, account_address)``
        account_address: Account the session acts for
        allowed_methods: Ordered permission list
        session_key: Dapp-generated session key pair
        chain_id: Target chain (default: settings.default_chain_id)
        expires_at: Unix expiry (default: now + ttl_s)
        metadata: Session metadata, structured or as a JSON string
        ttl_s: Lifetime used when ``expires_at`` is not given

    Raises:
        SessionError: If the session key is missing
    """
    if session_key is None:
        raise SessionError("session public key is required")
    chain_id = chain_id if chain_id is not None else settings.default_chain_id
    if expires_at is None:
        expires_at = int(time.time()) + ttl_s

    off_chain = create_session_request(allowed_methods, expires_at, metadata, session_key.public_key)
    typed_data = get_session_typed_data(off_chain, chain_id)
    signature = await message_signer.sign_message(typed_data, account_address)
    logger.info("Session approved by owner of %s, expires at %s", account_address, expires_at)

    return build_session(off_chain, session_key, account_address, chain_id, signature)
