"""
Session models.

A session is a time-boxed, method-scoped delegation of transaction authority
from an account owner to an ephemeral session key. The owner signs the
off-chain session description once; every transaction then carries the
on-chain commitment derived from it.
"""

from __future__ import annotations

import json
import secrets
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from starknet_py.constants import EC_ORDER
from starknet_py.hash.utils import private_to_stark_key

from sessionkit.core.felt import FeltLike, to_hex, to_int


@dataclass(frozen=True)
class AllowedMethod:
    """One permitted (contract, method) pair. ``selector`` is a name or a hex selector."""
    contract_address: str
    selector: str

    def to_typed_data(self) -> Dict[str, str]:
        return {"Contract Address": self.contract_address, "selector": self.selector}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AllowedMethod":
        return cls(
            contract_address=data.get("Contract Address") or data["contractAddress"],
            selector=data["selector"],
        )


@dataclass(frozen=True)
class MetadataTxFee:
    token_address: str
    max_amount: str

    def to_dict(self) -> Dict[str, str]:
        return {"tokenAddress": self.token_address, "maxAmount": self.max_amount}


@dataclass(frozen=True)
class SessionMetadata:
    """Structured session metadata; committed on-chain only through its JSON string."""
    project_id: str
    tx_fees: Tuple[MetadataTxFee, ...] = ()
    project_signature: Optional[Tuple[str, ...]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "projectID": self.project_id,
            "txFees": [fee.to_dict() for fee in self.tx_fees],
        }
        if self.project_signature is not None:
            data["projectSignature"] = list(self.project_signature)
        return data

    def to_json(self) -> str:
        # compact separators match JSON.stringify, which wallets hash
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=True)


@dataclass(frozen=True)
class OffChainSession:
    """
    Human readable session description signed by the owner.

    The order of ``allowed_methods`` fixes the Merkle leaf order, and with it
    every proof.
    """
    expires_at: int
    allowed_methods: Tuple[AllowedMethod, ...]
    metadata: str
    session_key_guid: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "allowed_methods", tuple(self.allowed_methods))
        object.__setattr__(self, "session_key_guid", to_int(self.session_key_guid))
        object.__setattr__(self, "expires_at", int(self.expires_at))


@dataclass(frozen=True)
class OnChainSession:
    """Commitment the account contract verifies; derived only via the session codec."""
    expires_at: int
    allowed_methods_root: int
    metadata_hash: int
    session_key_guid: int

    def to_calldata(self) -> List[int]:
        return [
            self.expires_at,
            self.allowed_methods_root,
            self.metadata_hash,
            self.session_key_guid,
        ]


@dataclass(frozen=True)
class SessionKeyPair:
    """Ephemeral session key. Never leaves the dapp."""
    private_key: int = field(repr=False)
    public_key: int

    @classmethod
    def from_private_key(cls, private_key: FeltLike) -> "SessionKeyPair":
        key = to_int(private_key)
        if not 0 < key < EC_ORDER:
            raise ValueError("Session private key must be in [1, EC_ORDER)")
        return cls(private_key=key, public_key=private_to_stark_key(key))

    @classmethod
    def generate(cls) -> "SessionKeyPair":
        return cls.from_private_key(secrets.randbelow(EC_ORDER - 1) + 1)


@dataclass(frozen=True)
class Session:
    """
    A materialized session, as persisted by the caller.

    ``hash`` is the typed-data hash of the off-chain session under the
    account's domain, computed once at creation; ``authorization_signature``
    is the owner's signature over it and is reused for every transaction.
    """
    session_key_guid: int
    hash: int
    version: str
    account_address: str
    chain_id: str
    expires_at: int
    allowed_methods: Tuple[AllowedMethod, ...]
    metadata: str
    authorization_signature: Tuple[int, ...]
    session_key: SessionKeyPair

    def __post_init__(self) -> None:
        object.__setattr__(self, "allowed_methods", tuple(self.allowed_methods))
        object.__setattr__(
            self,
            "authorization_signature",
            tuple(to_int(v) for v in self.authorization_signature),
        )

    def to_off_chain(self) -> OffChainSession:
        return OffChainSession(
            expires_at=self.expires_at,
            allowed_methods=self.allowed_methods,
            metadata=self.metadata,
            session_key_guid=self.session_key_guid,
        )

    def to_dict(self, include_private_key: bool = False) -> Dict[str, Any]:
        """Convert to dictionary for caller-side storage."""
        session_key: Dict[str, str] = {"publicKey": to_hex(self.session_key.public_key)}
        if include_private_key:
            session_key["privateKey"] = to_hex(self.session_key.private_key)
        return {
            "sessionKeyGuid": to_hex(self.session_key_guid),
            "hash": to_hex(self.hash),
            "version": self.version,
            "address": self.account_address,
            "chainId": self.chain_id,
            "expiresAt": self.expires_at,
            "allowedMethods": [m.to_typed_data() for m in self.allowed_methods],
            "metadata": self.metadata,
            "authorisationSignature": [to_hex(v) for v in self.authorization_signature],
            "sessionKey": session_key,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], session_key: Optional[SessionKeyPair] = None) -> "Session":
        """Create from dictionary (from storage). The key pair may be supplied separately."""
        if session_key is None:
            private_key = (data.get("sessionKey") or {}).get("privateKey")
            if private_key is None:
                raise ValueError("Session key pair is required to restore a session")
            session_key = SessionKeyPair.from_private_key(private_key)
        return cls(
            session_key_guid=to_int(data["sessionKeyGuid"]),
            hash=to_int(data["hash"]),
            version=str(data.get("version", "1")),
            account_address=data["address"],
            chain_id=data["chainId"],
            expires_at=int(data["expiresAt"]),
            allowed_methods=tuple(AllowedMethod.from_dict(m) for m in data["allowedMethods"]),
            metadata=data["metadata"],
            authorization_signature=tuple(data["authorisationSignature"]),
            session_key=session_key,
        )


def normalize_signature(signature: Sequence[FeltLike]) -> List[int]:
    """Owner signatures arrive as hex or decimal strings; the token carries ints."""
    return [to_int(v) for v in signature]
