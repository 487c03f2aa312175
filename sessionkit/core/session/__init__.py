"""
Session Module

Session keys scoped to a list of allowed methods:
- Permission tree: Merkle root over allowed methods, one proof per call
- Codec: On-chain commitment and owner-signed typed data
- Signer: Session key signature bound to tx hash, session and cache flag
- Token: The session token the account verifies

SessionAccount (which also talks to the cosigner) lives in
sessionkit.core.session.account.

Usage:
    from sessionkit.core.session import (
        AllowedMethod,
        SessionKeyPair,
        open_session,
    )

    session = await open_session(
        owner,
        account_address="0x...",
        allowed_methods=[AllowedMethod("0x...", "transfer")],
        session_key=SessionKeyPair.generate(),
    )
"""

from .models import (
    AllowedMethod,
    MetadataTxFee,
    OffChainSession,
    OnChainSession,
    Session,
    SessionKeyPair,
    SessionMetadata,
)
from .permissions import (
    ALLOWED_METHOD_TYPE_HASH,
    PermissionTree,
    allowed_method_leaf,
    build_permission_tree,
    find_allowed_method_index,
    get_allowed_methods_root,
    get_proof,
    get_proof_for_call,
    get_session_proofs,
    resolve_selector,
    verify_proof,
)
from .codec import (
    SESSION_DOMAIN_NAME,
    SESSION_TYPES,
    byte_array_from_string,
    build_session,
    compile_session,
    create_session_request,
    get_session_domain,
    get_session_key_guid,
    get_session_message_hash,
    get_session_typed_data,
    hash_metadata,
    open_session,
)
from .signer import SessionSigner, sign_tx_and_session
from .token import (
    SESSION_MAGIC,
    SessionToken,
    SignerSignature,
    SignerType,
    build_session_signature,
    compile_session_token,
)

__all__ = [
    # Models
    "AllowedMethod",
    "MetadataTxFee",
    "OffChainSession",
    "OnChainSession",
    "Session",
    "SessionKeyPair",
    "SessionMetadata",
    # Permissions
    "ALLOWED_METHOD_TYPE_HASH",
    "PermissionTree",
    "allowed_method_leaf",
    "build_permission_tree",
    "find_allowed_method_index",
    "get_allowed_methods_root",
    "get_proof",
    "get_proof_for_call",
    "get_session_proofs",
    "resolve_selector",
    "verify_proof",
    # Codec
    "SESSION_DOMAIN_NAME",
    "SESSION_TYPES",
    "byte_array_from_string",
    "build_session",
    "compile_session",
    "create_session_request",
    "get_session_domain",
    "get_session_key_guid",
    "get_session_message_hash",
    "get_session_typed_data",
    "hash_metadata",
    "open_session",
    # Signer
    "SessionSigner",
    "sign_tx_and_session",
    # Token
    "SESSION_MAGIC",
    "SessionToken",
    "SignerSignature",
    "SignerType",
    "build_session_signature",
    "compile_session_token",
]
