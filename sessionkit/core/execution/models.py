"""
Transaction execution models and types.

Resource bounds and data availability modes are starknet-py's own
``client_models`` types, so the same objects flow into the library's
transaction hashing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Sequence, Union

from starknet_py.hash.selector import get_selector_from_name
from starknet_py.net.client_models import DAMode, ResourceBounds, ResourceBoundsMapping

from sessionkit.core.errors import UnsupportedTransactionVersionError
from sessionkit.core.felt import FeltLike, is_hex, to_int, to_int_list

# Query versions carry bit 128 so they can never be replayed as real transactions.
QUERY_VERSION_BASE = 2**128

RESOURCE_NAMES = ("l1_gas", "l2_gas", "l1_data_gas")


class TransactionVersion(str, Enum):
    """Invoke transaction versions the session protocol signs."""
    V1 = "0x1"
    F1 = hex(QUERY_VERSION_BASE + 1)
    V2 = "0x2"
    F2 = hex(QUERY_VERSION_BASE + 2)
    V3 = "0x3"
    F3 = hex(QUERY_VERSION_BASE + 3)

    @classmethod
    def parse(cls, value: Union["TransactionVersion", FeltLike]) -> "TransactionVersion":
        if isinstance(value, TransactionVersion):
            return value
        try:
            numeric = to_int(value)
        except (AttributeError, TypeError, ValueError) as exc:
            raise UnsupportedTransactionVersionError(value) from exc
        for version in cls:
            if to_int(version.value) == numeric:
                return version
        raise UnsupportedTransactionVersionError(value)

    @property
    def is_legacy(self) -> bool:
        """Legacy fee model (max_fee)."""
        return self in (
            TransactionVersion.V1,
            TransactionVersion.F1,
            TransactionVersion.V2,
            TransactionVersion.F2,
        )

    @property
    def is_resource_bounds(self) -> bool:
        """Resource-bounds fee model (tip, per-resource bounds, DA modes)."""
        return self in (TransactionVersion.V3, TransactionVersion.F3)

    @property
    def as_int(self) -> int:
        return to_int(self.value)


def parse_da_mode(value: Union[DAMode, int, str]) -> DAMode:
    """Accept a DAMode, its name ("L1"/"L2") or its numeric value."""
    if isinstance(value, DAMode):
        return value
    if isinstance(value, str) and value.upper() in DAMode.__members__:
        return DAMode[value.upper()]
    return DAMode(to_int(value))


def resource_bounds_from_dict(data: Dict[str, Any]) -> ResourceBoundsMapping:
    """Build bounds from an RPC-style dict; a missing resource gets zero bounds."""
    bounds = {}
    for name in RESOURCE_NAMES:
        entry = data.get(name) or {}
        bounds[name] = ResourceBounds(
            max_amount=to_int(entry.get("max_amount", 0)),
            max_price_per_unit=to_int(entry.get("max_price_per_unit", 0)),
        )
    return ResourceBoundsMapping(**bounds)


def resource_bounds_to_dict(resource_bounds: ResourceBoundsMapping) -> Dict[str, Dict[str, str]]:
    return {
        name: {
            "max_amount": str(getattr(resource_bounds, name).max_amount),
            "max_price_per_unit": str(getattr(resource_bounds, name).max_price_per_unit),
        }
        for name in RESOURCE_NAMES
    }


@dataclass(frozen=True)
class Call:
    """
    A single contract call.

    ``entrypoint`` is either a human readable entrypoint name or a hex selector.
    """
    contract_address: str
    entrypoint: str
    calldata: Sequence[FeltLike] = ()

    @property
    def selector(self) -> int:
        if is_hex(self.entrypoint):
            return to_int(self.entrypoint)
        return get_selector_from_name(self.entrypoint)

    @property
    def compiled_calldata(self) -> List[int]:
        return to_int_list(self.calldata)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Call":
        return cls(
            contract_address=data["contractAddress"],
            entrypoint=data["entrypoint"],
            calldata=tuple(data.get("calldata") or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contractAddress": self.contract_address,
            "entrypoint": self.entrypoint,
            "calldata": [str(v) for v in self.compiled_calldata],
        }


@dataclass(frozen=True)
class InvocationDetails:
    """
    Per-transaction signing details handed to the signer by the execution client.

    Legacy versions read ``max_fee``; resource-bounds versions read
    ``resource_bounds``, ``tip``, ``paymaster_data``, ``account_deployment_data``
    and the two data availability modes.
    """
    wallet_address: str
    chain_id: FeltLike
    nonce: int
    version: TransactionVersion
    cairo_version: str = "1"

    # Legacy fee model
    max_fee: int = 0

    # Resource-bounds fee model
    resource_bounds: ResourceBoundsMapping = field(default_factory=ResourceBoundsMapping.init_with_zeros)
    tip: int = 0
    paymaster_data: Sequence[FeltLike] = ()
    account_deployment_data: Sequence[FeltLike] = ()
    nonce_data_availability_mode: DAMode = DAMode.L1
    fee_data_availability_mode: DAMode = DAMode.L1

    def __post_init__(self) -> None:
        object.__setattr__(self, "version", TransactionVersion.parse(self.version))
        object.__setattr__(self, "nonce_data_availability_mode", parse_da_mode(self.nonce_data_availability_mode))
        object.__setattr__(self, "fee_data_availability_mode", parse_da_mode(self.fee_data_availability_mode))
        if isinstance(self.resource_bounds, dict):
            object.__setattr__(self, "resource_bounds", resource_bounds_from_dict(self.resource_bounds))
