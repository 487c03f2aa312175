"""
Relayed ("outside") execution envelopes.

An outside execution lets a third party submit calls on behalf of the
account through ``execute_from_outside_v2``. It is signed as revision 1
typed data under its own domain, so its hash can never collide with a
direct invoke transaction hash.
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from starknet_py.cairo.felt import encode_shortstring
from starknet_py.constants import EC_ORDER
from starknet_py.utils.typed_data import TypedData

from sessionkit.core.felt import FeltLike, chain_id_to_hex, to_hex, to_int, to_int_list

from .models import Call

logger = logging.getLogger(__name__)

ANY_CALLER = hex(encode_shortstring("ANY_CALLER"))
OUTSIDE_EXECUTION_DOMAIN_NAME = "Account.execute_from_outside"
EXECUTE_FROM_OUTSIDE_ENTRYPOINT = "execute_from_outside_v2"

# Default validity window relative to now
EXECUTE_AFTER_OFFSET_S = 10 * 60
EXECUTE_BEFORE_OFFSET_S = 20 * 60

OUTSIDE_EXECUTION_TYPES: Dict[str, List[Dict[str, str]]] = {
    "StarknetDomain": [
        {"name": "name", "type": "shortstring"},
        {"name": "version", "type": "shortstring"},
        {"name": "chainId", "type": "shortstring"},
        {"name": "revision", "type": "shortstring"},
    ],
    "OutsideExecution": [
        {"name": "Caller", "type": "ContractAddress"},
        {"name": "Nonce", "type": "felt"},
        {"name": "Execute After", "type": "u128"},
        {"name": "Execute Before", "type": "u128"},
        {"name": "Calls", "type": "Call*"},
    ],
    "Call": [
        {"name": "To", "type": "ContractAddress"},
        {"name": "Selector", "type": "selector"},
        {"name": "Calldata", "type": "felt*"},
    ],
}


@dataclass(frozen=True)
class OutsideCall:
    to: str
    selector: int
    calldata: Sequence[int] = ()

    @classmethod
    def from_call(cls, call: Call) -> "OutsideCall":
        return cls(
            to=call.contract_address,
            selector=call.selector,
            calldata=tuple(call.compiled_calldata),
        )


@dataclass(frozen=True)
class OutsideExecution:
    caller: str
    nonce: int
    execute_after: int
    execute_before: int
    calls: Sequence[OutsideCall] = field(default_factory=tuple)

    def to_calldata(self) -> List[int]:
        """Serialize the struct the way execute_from_outside_v2 decodes it."""
        calldata = [
            to_int(self.caller),
            self.nonce,
            self.execute_after,
            self.execute_before,
            len(self.calls),
        ]
        for call in self.calls:
            calldata.extend([to_int(call.to), call.selector, len(call.calldata), *call.calldata])
        return calldata


@dataclass
class OutsideExecutionParams:
    """Optional overrides for the envelope; unset fields get protocol defaults."""
    caller: Optional[str] = None
    execute_after: Optional[int] = None
    execute_before: Optional[int] = None
    nonce: Optional[FeltLike] = None
    version: str = "1"


def random_nonce() -> int:
    return secrets.randbelow(EC_ORDER - 1) + 1


def build_outside_execution(
    calls: Sequence[Call],
    caller: Optional[str] = None,
    execute_after: Optional[int] = None,
    execute_before: Optional[int] = None,
    nonce: Optional[FeltLike] = None,
    now: Optional[float] = None,
) -> OutsideExecution:
    """
    Build an outside execution envelope, filling protocol defaults.

    Args:
        calls: Calls the relayer will execute
        caller: Allowed relayer address (default: ANY_CALLER)
        execute_after: Unix timestamp lower bound (default: now - 10 min)
        execute_before: Unix timestamp upper bound (default: now + 20 min)
        nonce: Envelope nonce (default: random felt from a CSPRNG)
        now: Clock override, seconds since epoch

    Returns:
        OutsideExecution ready to be turned into typed data
    """
    current = time.time() if now is None else now
    return OutsideExecution(
        caller=caller or ANY_CALLER,
        nonce=to_int(nonce) if nonce is not None else random_nonce(),
        execute_after=execute_after if execute_after is not None else int(current - EXECUTE_AFTER_OFFSET_S),
        execute_before=execute_before if execute_before is not None else int(current + EXECUTE_BEFORE_OFFSET_S),
        calls=tuple(OutsideCall.from_call(call) for call in calls),
    )


def get_outside_execution_domain(chain_id: FeltLike, version: str = "1") -> Dict[str, str]:
    return {
        "name": OUTSIDE_EXECUTION_DOMAIN_NAME,
        "version": version,
        "chainId": chain_id_to_hex(chain_id),
        "revision": "1",
    }


def build_outside_execution_typed_data(
    outside_execution: OutsideExecution,
    chain_id: FeltLike,
    version: str = "1",
) -> Dict[str, Any]:
    """Full structured message; forwarded verbatim to the cosigner."""
    return {
        "types": OUTSIDE_EXECUTION_TYPES,
        "primaryType": "OutsideExecution",
        "domain": get_outside_execution_domain(chain_id, version),
        "message": {
            "Caller": to_hex(outside_execution.caller),
            "Nonce": to_hex(outside_execution.nonce),
            "Execute After": outside_execution.execute_after,
            "Execute Before": outside_execution.execute_before,
            "Calls": [
                {
                    "To": to_hex(call.to),
                    "Selector": to_hex(call.selector),
                    "Calldata": [to_hex(value) for value in call.calldata],
                }
                for call in outside_execution.calls
            ],
        },
    }


def get_typed_data_message_hash(typed_data: Dict[str, Any], account_address: FeltLike) -> int:
    return TypedData.from_dict(typed_data).message_hash(to_int(account_address))


def get_outside_execution_message_hash(
    outside_execution: OutsideExecution,
    account_address: FeltLike,
    chain_id: FeltLike,
    version: str = "1",
) -> int:
    typed_data = build_outside_execution_typed_data(outside_execution, chain_id, version)
    return get_typed_data_message_hash(typed_data, account_address)


def outside_execution_from_typed_data(typed_data: Dict[str, Any]) -> OutsideExecution:
    """Recover the envelope from its typed-data form (used when only the message is at hand)."""
    message = typed_data["message"]
    return OutsideExecution(
        caller=message["Caller"],
        nonce=to_int(message["Nonce"]),
        execute_after=to_int(message["Execute After"]),
        execute_before=to_int(message["Execute Before"]),
        calls=tuple(
            OutsideCall(
                to=call["To"],
                selector=to_int(call["Selector"]),
                calldata=tuple(to_int_list(call["Calldata"])),
            )
            for call in message["Calls"]
        ),
    )
