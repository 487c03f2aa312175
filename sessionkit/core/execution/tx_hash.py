"""
Invoke transaction hashing.

Computes the canonical hash a session signature is built over, branching on
the transaction format version:

- legacy (V1, V2): starknet-py's Pedersen invoke hash over the max_fee model
- resource bounds (V3): starknet-py's Poseidon invoke hash over tip,
  per-resource bounds, paymaster data, data availability modes and account
  deployment data

Any other version is rejected with UnsupportedTransactionVersionError.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from starknet_py.hash.transaction import (
    CommonTransactionV3Fields,
    TransactionHashPrefix,
    compute_invoke_transaction_hash,
    compute_invoke_v3_transaction_hash,
)

from sessionkit.core.errors import UnsupportedTransactionVersionError
from sessionkit.core.felt import FeltLike, chain_id_to_int, to_int, to_int_list

from .calldata import get_execute_calldata
from .models import Call, InvocationDetails

logger = logging.getLogger(__name__)


def calculate_invoke_transaction_hash(
    details: InvocationDetails,
    compiled_calldata: Sequence[FeltLike],
) -> int:
    """
    Hash an invoke transaction for the version named in ``details``.

    Args:
        details: Signing details supplied by the execution client
        compiled_calldata: The account's __execute__ calldata

    Returns:
        The transaction hash as an int

    Raises:
        UnsupportedTransactionVersionError: For any version outside the
            legacy and resource-bounds families
    """
    version = details.version
    sender_address = to_int(details.wallet_address)
    chain_id = chain_id_to_int(details.chain_id)
    calldata = to_int_list(compiled_calldata)

    if version.is_legacy:
        tx_hash = compute_invoke_transaction_hash(
            version=version.as_int,
            sender_address=sender_address,
            calldata=calldata,
            max_fee=details.max_fee,
            chain_id=chain_id,
            nonce=details.nonce,
        )
    elif version.is_resource_bounds:
        common_fields = CommonTransactionV3Fields(
            tx_prefix=TransactionHashPrefix.INVOKE,
            version=version.as_int,
            address=sender_address,
            tip=details.tip,
            resource_bounds=details.resource_bounds,
            paymaster_data=to_int_list(details.paymaster_data),
            chain_id=chain_id,
            nonce=details.nonce,
            nonce_data_availability_mode=details.nonce_data_availability_mode,
            fee_data_availability_mode=details.fee_data_availability_mode,
        )
        tx_hash = compute_invoke_v3_transaction_hash(
            account_deployment_data=to_int_list(details.account_deployment_data),
            calldata=calldata,
            common_fields=common_fields,
        )
    else:
        raise UnsupportedTransactionVersionError(version)

    logger.debug("Computed invoke hash %s for version %s", hex(tx_hash), version.value)
    return tx_hash


def calculate_calls_transaction_hash(
    calls: Sequence[Call],
    details: InvocationDetails,
    compiled_calldata: Optional[List[int]] = None,
) -> int:
    """Encode ``calls`` for the account and hash the resulting invoke transaction."""
    if compiled_calldata is None:
        compiled_calldata = get_execute_calldata(calls, details.cairo_version)
    return calculate_invoke_transaction_hash(details, compiled_calldata)
