"""
Permission tree for session allowed methods.

Every allowed (contract, selector) pair becomes a Poseidon leaf; the leaves
form starknet-py's Merkle tree, whose root is committed in the on-chain
session and also hashed by ``TypedData`` for the ``merkletree`` field. Each
call in a transaction must ship a proof that its leaf belongs to that root.

Tree shape:
    - sibling pairs are hashed in ascending order, so proofs carry no
      left/right flags
    - an odd node at the end of a level is paired with 0
    - a single-leaf tree's root is the leaf itself
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from poseidon_py.poseidon_hash import poseidon_hash_many
from starknet_py.hash.hash_method import HashMethod
from starknet_py.hash.selector import get_selector_from_name
from starknet_py.utils.merkle_tree import MerkleTree

from sessionkit.core.errors import CallNotAllowedError, EmptyPermissionsError, ProofIndexError
from sessionkit.core.execution.models import Call
from sessionkit.core.felt import is_hex, to_int

from .models import AllowedMethod

logger = logging.getLogger(__name__)

ALLOWED_METHOD_TYPE_HASH = get_selector_from_name(
    '"Allowed Method"("Contract Address":"ContractAddress","selector":"selector")'
)


class PermissionTree:
    """
    Poseidon Merkle tree over permission leaves.

    ``levels`` comes from starknet-py's tree: ``levels[0]`` is the leaf list
    and the last level holds only the root.
    """

    hash_method = HashMethod.POSEIDON

    def __init__(self, leaves: Sequence[int]):
        if not leaves:
            raise EmptyPermissionsError("Cannot build a permission tree with no allowed methods")
        self._tree = MerkleTree(list(leaves), self.hash_method)
        self.leaves: List[int] = self._tree.leaves
        self.levels: List[List[int]] = self._tree.levels

    @property
    def root(self) -> int:
        return self._tree.root_hash

    def proof(self, index: int) -> List[int]:
        """Sibling path from leaf ``index`` to the root."""
        if not 0 <= index < len(self.leaves):
            raise ProofIndexError(index, len(self.leaves))
        path = []
        for level in self.levels[:-1]:
            sibling = index ^ 1
            path.append(level[sibling] if sibling < len(level) else 0)
            index //= 2
        return path

    @classmethod
    def verify(cls, root: int, leaf: int, proof: Sequence[int]) -> bool:
        node = leaf
        for sibling in proof:
            node = cls.hash_method.hash(*sorted((node, sibling)))
        return node == root


def resolve_selector(selector: str) -> int:
    if is_hex(selector):
        return to_int(selector)
    return get_selector_from_name(selector)


def allowed_method_leaf(method: AllowedMethod) -> int:
    return poseidon_hash_many(
        [
            ALLOWED_METHOD_TYPE_HASH,
            to_int(method.contract_address),
            resolve_selector(method.selector),
        ]
    )


def build_permission_tree(allowed_methods: Sequence[AllowedMethod]) -> PermissionTree:
    return PermissionTree([allowed_method_leaf(m) for m in allowed_methods])


def get_allowed_methods_root(allowed_methods: Sequence[AllowedMethod]) -> int:
    return build_permission_tree(allowed_methods).root


def get_proof(allowed_methods: Sequence[AllowedMethod], index: int) -> List[int]:
    return build_permission_tree(allowed_methods).proof(index)


def method_matches_call(method: AllowedMethod, call: Call) -> bool:
    """
    Whether ``call`` is covered by ``method``.

    Addresses are compared numerically. A hex entrypoint is compared against
    the method's resolved selector; a named entrypoint must equal the
    method's selector string exactly.
    """
    if to_int(method.contract_address) != to_int(call.contract_address):
        return False
    if is_hex(call.entrypoint):
        return resolve_selector(method.selector) == to_int(call.entrypoint)
    return method.selector == call.entrypoint


def find_allowed_method_index(allowed_methods: Sequence[AllowedMethod], call: Call) -> Optional[int]:
    for index, method in enumerate(allowed_methods):
        if method_matches_call(method, call):
            return index
    return None


def _proof_for_call(tree: PermissionTree, allowed_methods: Sequence[AllowedMethod], call: Call) -> List[int]:
    index = find_allowed_method_index(allowed_methods, call)
    if index is None:
        logger.debug("Call %s::%s not in session permissions", call.contract_address, call.entrypoint)
        raise CallNotAllowedError(call.contract_address, call.entrypoint)
    return tree.proof(index)


def get_proof_for_call(allowed_methods: Sequence[AllowedMethod], call: Call) -> List[int]:
    """
    Proof that ``call`` is permitted.

    Raises:
        CallNotAllowedError: If no allowed method matches the call
    """
    return _proof_for_call(build_permission_tree(allowed_methods), allowed_methods, call)


def get_session_proofs(allowed_methods: Sequence[AllowedMethod], calls: Sequence[Call]) -> List[List[int]]:
    """One proof per call, in call order. Fails on the first disallowed call."""
    tree = build_permission_tree(allowed_methods)
    return [_proof_for_call(tree, allowed_methods, call) for call in calls]


def verify_proof(root: int, leaf: int, proof: Sequence[int]) -> bool:
    return PermissionTree.verify(root, leaf, proof)
