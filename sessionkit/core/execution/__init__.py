"""
Transaction Hashing Layer

Computes what a session key signs:
- InvocationDetails / TransactionVersion: Signing details for V1, V2 and V3 invokes
- calculate_invoke_transaction_hash: Version-branched invoke hash
- Outside execution: Typed data and hash for execute_from_outside_v2

Usage:
    from sessionkit.core.execution import (
        Call,
        InvocationDetails,
        calculate_calls_transaction_hash,
    )

    details = InvocationDetails(
        wallet_address="0x...",
        chain_id="SN_SEPOLIA",
        nonce=3,
        version="0x3",
        resource_bounds={"l1_gas": {...}, "l2_gas": {...}, "l1_data_gas": {...}},
    )
    tx_hash = calculate_calls_transaction_hash(calls, details)
"""

from .models import (
    Call,
    InvocationDetails,
    TransactionVersion,
    parse_da_mode,
    resource_bounds_from_dict,
    resource_bounds_to_dict,
)
from .calldata import get_execute_calldata
from .tx_hash import (
    calculate_calls_transaction_hash,
    calculate_invoke_transaction_hash,
)
from .outside_execution import (
    ANY_CALLER,
    EXECUTE_FROM_OUTSIDE_ENTRYPOINT,
    OutsideCall,
    OutsideExecution,
    OutsideExecutionParams,
    build_outside_execution,
    build_outside_execution_typed_data,
    get_outside_execution_message_hash,
    get_typed_data_message_hash,
    outside_execution_from_typed_data,
)

__all__ = [
    # Models
    "Call",
    "InvocationDetails",
    "TransactionVersion",
    "parse_da_mode",
    "resource_bounds_from_dict",
    "resource_bounds_to_dict",
    # Calldata
    "get_execute_calldata",
    # Hashing
    "calculate_calls_transaction_hash",
    "calculate_invoke_transaction_hash",
    # Outside execution
    "ANY_CALLER",
    "EXECUTE_FROM_OUTSIDE_ENTRYPOINT",
    "OutsideCall",
    "OutsideExecution",
    "OutsideExecutionParams",
    "build_outside_execution",
    "build_outside_execution_typed_data",
    "get_outside_execution_message_hash",
    "get_typed_data_message_hash",
    "outside_execution_from_typed_data",
]
