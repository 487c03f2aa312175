"""
Felt normalisation helpers.

Starknet values reach us as ints, hex strings or decimal strings depending on
the source (wallet, RPC, JSON bodies). Everything is normalised to ``int``
before hashing and rendered back to text only at the wire boundary.
"""

from __future__ import annotations

from typing import Iterable, List, Union

from starknet_py.cairo.felt import encode_shortstring

FeltLike = Union[int, str]


def is_hex(value: str) -> bool:
    return value[:2].lower() == "0x"


def to_int(value: FeltLike) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    text = value.strip()
    if is_hex(text):
        return int(text, 16)
    return int(text, 10)


def to_hex(value: FeltLike) -> str:
    return hex(to_int(value))


def to_decimal_str(value: FeltLike) -> str:
    return str(to_int(value))


def to_int_list(values: Iterable[FeltLike]) -> List[int]:
    return [to_int(v) for v in values]


def addresses_equal(left: FeltLike, right: FeltLike) -> bool:
    """Compare two contract addresses canonically (leading zeros and case ignored)."""
    return to_int(left) == to_int(right)


def chain_id_to_int(chain_id: FeltLike) -> int:
    """Accept ``SN_SEPOLIA``-style names as well as their numeric encodings."""
    if isinstance(chain_id, str):
        text = chain_id.strip()
        if not is_hex(text) and not text.isdigit():
            return encode_shortstring(text)
    return to_int(chain_id)


def chain_id_to_hex(chain_id: FeltLike) -> str:
    return hex(chain_id_to_int(chain_id))
