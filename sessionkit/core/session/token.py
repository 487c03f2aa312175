"""
Session token compiler.

A session token is the account signature for one transaction. The verifier
decodes it positionally, so field order here is the wire format:

    SESSION_MAGIC
    session            expires_at, allowed_methods_root, metadata_hash, session_key_guid
    cache_authorization
    session_authorization   length-prefixed owner signature
    session_signature       SignerSignature enum
    guardian_signature      SignerSignature enum
    proofs                  length-prefixed array of length-prefixed proofs
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from starknet_py.cairo.felt import encode_shortstring

from sessionkit.core.errors import UnsupportedSignerTypeError
from sessionkit.core.execution.models import Call
from sessionkit.core.felt import FeltLike, to_int

from .codec import compile_session
from .models import OffChainSession, OnChainSession
from .permissions import get_session_proofs

SESSION_MAGIC = encode_shortstring("session-token")


class SignerType(IntEnum):
    """Signer schemes known to the account; the value is the enum variant index."""
    STARKNET = 0
    SECP256K1 = 1
    SECP256R1 = 2
    EIP191 = 3
    WEBAUTHN = 4

    @property
    def variant_name(self) -> str:
        return {
            SignerType.STARKNET: "Starknet",
            SignerType.SECP256K1: "Secp256k1",
            SignerType.SECP256R1: "Secp256r1",
            SignerType.EIP191: "Eip191",
            SignerType.WEBAUTHN: "Webauthn",
        }[self]


@dataclass(frozen=True)
class SignerSignature:
    """Tagged signature. Only Starknet keys are populated by this protocol."""
    public_key: int
    r: int
    s: int
    signer_type: SignerType = SignerType.STARKNET

    def __post_init__(self) -> None:
        signer_type = SignerType(self.signer_type)
        if signer_type != SignerType.STARKNET:
            raise UnsupportedSignerTypeError(f"Signer type {signer_type.variant_name} is not supported")
        object.__setattr__(self, "signer_type", signer_type)
        object.__setattr__(self, "public_key", to_int(self.public_key))
        object.__setattr__(self, "r", to_int(self.r))
        object.__setattr__(self, "s", to_int(self.s))

    @classmethod
    def starknet(cls, public_key: FeltLike, signature: Sequence[FeltLike]) -> "SignerSignature":
        r, s = signature
        return cls(public_key=to_int(public_key), r=to_int(r), s=to_int(s))

    def to_enum_dict(self) -> Dict[str, Optional[Dict[str, int]]]:
        """Every variant present; unpopulated ones are explicit None."""
        variants: Dict[str, Optional[Dict[str, int]]] = {t.variant_name: None for t in SignerType}
        variants[self.signer_type.variant_name] = {"pubkey": self.public_key, "r": self.r, "s": self.s}
        return variants

    def to_calldata(self) -> List[int]:
        return [int(self.signer_type), self.public_key, self.r, self.s]


@dataclass(frozen=True)
class SessionToken:
    session: OnChainSession
    cache_authorization: bool
    session_authorization: Tuple[int, ...]
    session_signature: SignerSignature
    guardian_signature: SignerSignature
    proofs: Tuple[Tuple[int, ...], ...]

    def to_calldata(self) -> List[int]:
        calldata: List[int] = [
            *self.session.to_calldata(),
            int(self.cache_authorization),
            len(self.session_authorization),
            *self.session_authorization,
            *self.session_signature.to_calldata(),
            *self.guardian_signature.to_calldata(),
            len(self.proofs),
        ]
        for proof in self.proofs:
            calldata.extend([len(proof), *proof])
        return calldata

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session": self.session.to_calldata(),
            "cacheAuthorization": self.cache_authorization,
            "sessionAuthorization": list(self.session_authorization),
            "sessionSignature": self.session_signature.to_enum_dict(),
            "guardianSignature": self.guardian_signature.to_enum_dict(),
            "proofs": [list(p) for p in self.proofs],
        }


def compile_session_token(
    off_chain: OffChainSession,
    calls: Sequence[Call],
    session_public_key: FeltLike,
    session_signature: Sequence[FeltLike],
    session_authorization: Sequence[FeltLike],
    guardian_signature: SignerSignature,
    cache_authorization: bool,
    proofs: Optional[Sequence[Sequence[int]]] = None,
) -> SessionToken:
    """
    Assemble the session token for ``calls``.

    Proofs are computed first, so a disallowed call fails before anything
    else is assembled. Callers that already validated the calls may pass
    the proofs they computed.

    Raises:
        CallNotAllowedError: If any call is outside the session's permissions
    """
    if proofs is None:
        proofs = get_session_proofs(off_chain.allowed_methods, calls)
    return SessionToken(
        session=compile_session(off_chain),
        cache_authorization=bool(cache_authorization),
        session_authorization=tuple(to_int(v) for v in session_authorization),
        session_signature=SignerSignature.starknet(session_public_key, session_signature),
        guardian_signature=guardian_signature,
        proofs=tuple(tuple(p) for p in proofs),
    )


def build_session_signature(token: SessionToken) -> List[int]:
    """Final account signature: magic tag followed by the token."""
    return [SESSION_MAGIC, *token.to_calldata()]
