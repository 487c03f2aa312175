"""
Account ``__execute__`` calldata builders.
"""

from __future__ import annotations

from typing import List, Sequence

from sessionkit.core.felt import to_int

from .models import Call


def _encode_cairo1(calls: Sequence[Call]) -> List[int]:
    calldata = [len(calls)]
    for call in calls:
        args = call.compiled_calldata
        calldata.extend([to_int(call.contract_address), call.selector, len(args), *args])
    return calldata


def _encode_cairo0(calls: Sequence[Call]) -> List[int]:
    # call array (to, selector, offset, len) followed by one flattened calldata array
    call_array: List[int] = []
    flat: List[int] = []
    for call in calls:
        args = call.compiled_calldata
        call_array.extend([to_int(call.contract_address), call.selector, len(flat), len(args)])
        flat.extend(args)
    return [len(calls), *call_array, len(flat), *flat]


def get_execute_calldata(calls: Sequence[Call], cairo_version: str = "1") -> List[int]:
    """
    Build calldata for the account's __execute__ entrypoint.
    """
    if str(cairo_version) == "0":
        return _encode_cairo0(calls)
    return _encode_cairo1(calls)
