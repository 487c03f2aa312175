"""
Tests for the session permission tree.
"""

import pytest
from poseidon_py.poseidon_hash import poseidon_hash, poseidon_hash_many
from starknet_py.hash.hash_method import HashMethod
from starknet_py.hash.selector import get_selector_from_name
from starknet_py.utils.merkle_tree import MerkleTree

from sessionkit.core.errors import CallNotAllowedError, EmptyPermissionsError, ProofIndexError
from sessionkit.core.execution.models import Call
from sessionkit.core.session.models import AllowedMethod
from sessionkit.core.session.permissions import (
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

TOKEN = "0x049d36570d4e46f48e99674bd3fcc84644ddd6b96f7c741b1562b82f9e004dc7"
ROUTER = "0x041fd22b238fa21cfcf5dd45a8548974d8263b3a531a60388411c5e230f97023"

METHODS = [
    AllowedMethod(TOKEN, "approve"),
    AllowedMethod(TOKEN, "transfer"),
    AllowedMethod(ROUTER, "swap"),
]


class TestPermissionTree:
    def test_single_leaf_is_root(self):
        tree = PermissionTree([42])
        assert tree.root == 42
        assert tree.proof(0) == []

    def test_pair_is_hashed_in_sorted_order(self):
        assert PermissionTree([5, 3]).root == poseidon_hash(3, 5)
        assert PermissionTree([3, 5]).root == poseidon_hash(3, 5)

    def test_odd_node_is_paired_with_zero(self):
        tree = PermissionTree([7, 8, 9])
        expected_root = PermissionTree([poseidon_hash(7, 8), poseidon_hash(0, 9)]).root
        assert tree.root == expected_root
        assert tree.proof(2)[0] == 0

    @pytest.mark.parametrize("size", [1, 2, 3, 4, 5, 7, 8, 9])
    def test_every_proof_verifies(self, size):
        leaves = [poseidon_hash(i, 1) for i in range(size)]
        tree = PermissionTree(leaves)
        for index, leaf in enumerate(leaves):
            assert PermissionTree.verify(tree.root, leaf, tree.proof(index))

    def test_proof_does_not_verify_foreign_leaf(self):
        tree = PermissionTree([1, 2, 3, 4])
        assert not PermissionTree.verify(tree.root, 5, tree.proof(0))

    def test_reordered_proof_does_not_verify(self):
        leaves = [poseidon_hash(i, 7) for i in range(5)]
        tree = PermissionTree(leaves)
        proof = tree.proof(0)
        assert len(proof) == 3

        swapped = [proof[1], proof[0], proof[2]]
        assert not PermissionTree.verify(tree.root, leaves[0], swapped)
        assert not PermissionTree.verify(tree.root, leaves[0], list(reversed(proof)))

    def test_tampered_or_borrowed_proof_does_not_verify(self):
        leaves = [poseidon_hash(i, 7) for i in range(4)]
        tree = PermissionTree(leaves)

        tampered = tree.proof(1)
        tampered[0] = leaves[2]
        assert not PermissionTree.verify(tree.root, leaves[1], tampered)
        assert not PermissionTree.verify(tree.root, leaves[1], tree.proof(2))
        assert not PermissionTree.verify(tree.root, leaves[1], tree.proof(1)[:-1])

    def test_levels_come_from_library_tree(self):
        leaves = [11, 12, 13]
        library_tree = MerkleTree(list(leaves), HashMethod.POSEIDON)
        tree = PermissionTree(leaves)

        assert tree.root == library_tree.root_hash
        assert tree.levels == library_tree.levels
        assert tree.levels[0] == leaves
        assert tree.levels[-1] == [tree.root]

    def test_empty_tree_rejected(self):
        with pytest.raises(EmptyPermissionsError):
            PermissionTree([])

    def test_proof_index_out_of_range(self):
        tree = PermissionTree([1, 2, 3])
        with pytest.raises(ProofIndexError) as exc_info:
            tree.proof(3)
        assert isinstance(exc_info.value, IndexError)
        assert exc_info.value.size == 3

        with pytest.raises(ProofIndexError):
            tree.proof(-1)


class TestLeaves:
    def test_resolve_selector(self):
        assert resolve_selector("transfer") == get_selector_from_name("transfer")
        assert resolve_selector("0x1234") == 0x1234

    def test_leaf_layout(self):
        method = AllowedMethod(TOKEN, "transfer")
        expected = poseidon_hash_many(
            [ALLOWED_METHOD_TYPE_HASH, int(TOKEN, 16), get_selector_from_name("transfer")]
        )
        assert allowed_method_leaf(method) == expected

    def test_named_and_hex_selector_produce_same_leaf(self):
        named = AllowedMethod(TOKEN, "transfer")
        hexed = AllowedMethod(TOKEN, hex(get_selector_from_name("transfer")))
        assert allowed_method_leaf(named) == allowed_method_leaf(hexed)

    def test_root_is_deterministic(self):
        assert get_allowed_methods_root(METHODS) == get_allowed_methods_root(list(METHODS))

    def test_root_depends_on_methods(self):
        assert get_allowed_methods_root(METHODS) != get_allowed_methods_root(METHODS[:2])


class TestCallMatching:
    def test_named_entrypoint_matches_exactly(self):
        assert find_allowed_method_index(METHODS, Call(TOKEN, "transfer")) == 1
        assert find_allowed_method_index(METHODS, Call(TOKEN, "Transfer")) is None

    def test_address_compared_numerically(self):
        padded = "0x" + ROUTER[2:].lstrip("0").upper().rjust(64, "0")
        assert find_allowed_method_index(METHODS, Call(padded, "swap")) == 2

    def test_hex_entrypoint_matches_resolved_selector(self):
        call = Call(TOKEN, hex(get_selector_from_name("approve")))
        assert find_allowed_method_index(METHODS, call) == 0

    def test_named_entrypoint_does_not_match_hex_method(self):
        methods = [AllowedMethod(TOKEN, hex(get_selector_from_name("transfer")))]
        assert find_allowed_method_index(methods, Call(TOKEN, "transfer")) is None

    def test_first_match_wins(self):
        methods = [AllowedMethod(TOKEN, "transfer"), AllowedMethod(TOKEN, "transfer")]
        assert find_allowed_method_index(methods, Call(TOKEN, "transfer")) == 0


class TestProofs:
    def test_round_trip_scenario(self):
        """Allowed call proves against the root; a foreign contract is rejected."""
        methods = [AllowedMethod("0xA", "transfer")]
        root = get_allowed_methods_root(methods)

        proof = get_proof_for_call(methods, Call("0xA", "transfer"))
        assert verify_proof(root, allowed_method_leaf(methods[0]), proof)

        with pytest.raises(CallNotAllowedError) as exc_info:
            get_proof_for_call(methods, Call("0xB", "transfer"))
        assert exc_info.value.contract_address == "0xB"
        assert exc_info.value.entrypoint == "transfer"

    def test_session_proofs_follow_call_order(self):
        calls = [Call(ROUTER, "swap"), Call(TOKEN, "approve")]
        proofs = get_session_proofs(METHODS, calls)

        assert proofs == [get_proof(METHODS, 2), get_proof(METHODS, 0)]
        root = build_permission_tree(METHODS).root
        assert verify_proof(root, allowed_method_leaf(METHODS[2]), proofs[0])
        assert verify_proof(root, allowed_method_leaf(METHODS[0]), proofs[1])

    def test_session_proofs_fail_on_any_disallowed_call(self):
        calls = [Call(TOKEN, "transfer"), Call(ROUTER, "drain")]
        with pytest.raises(CallNotAllowedError):
            get_session_proofs(METHODS, calls)

    def test_empty_permissions_rejected(self):
        with pytest.raises(EmptyPermissionsError):
            get_allowed_methods_root([])

    def test_proof_out_of_range(self):
        with pytest.raises(ProofIndexError):
            get_proof(METHODS, len(METHODS))
