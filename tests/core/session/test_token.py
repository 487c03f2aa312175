"""
Tests for session token assembly and its calldata layout.
"""

import pytest
from starknet_py.cairo.felt import encode_shortstring

from sessionkit.core.errors import CallNotAllowedError, UnsupportedSignerTypeError
from sessionkit.core.execution.models import Call
from sessionkit.core.session.codec import compile_session, get_session_key_guid
from sessionkit.core.session.models import AllowedMethod, OffChainSession
from sessionkit.core.session.permissions import get_session_proofs
from sessionkit.core.session.token import (
    SESSION_MAGIC,
    SignerSignature,
    SignerType,
    build_session_signature,
    compile_session_token,
)

TOKEN = "0x049d36570d4e46f48e99674bd3fcc84644ddd6b96f7c741b1562b82f9e004dc7"
ROUTER = "0x041fd22b238fa21cfcf5dd45a8548974d8263b3a531a60388411c5e230f97023"

OFF_CHAIN = OffChainSession(
    expires_at=1234567890,
    allowed_methods=(
        AllowedMethod(TOKEN, "approve"),
        AllowedMethod(TOKEN, "transfer"),
        AllowedMethod(ROUTER, "swap"),
    ),
    metadata="{}",
    session_key_guid=get_session_key_guid(0x51),
)
GUARDIAN = SignerSignature.starknet(0x61, (0x62, 0x63))


def compile_for(calls, cache_authorization=False):
    return compile_session_token(
        off_chain=OFF_CHAIN,
        calls=calls,
        session_public_key=0x51,
        session_signature=(0x52, 0x53),
        session_authorization=["0x123", "0x456"],
        guardian_signature=GUARDIAN,
        cache_authorization=cache_authorization,
    )


class TestSignerSignature:
    def test_calldata_is_variant_then_fields(self):
        assert GUARDIAN.to_calldata() == [0, 0x61, 0x62, 0x63]

    def test_enum_dict_keeps_every_variant(self):
        variants = GUARDIAN.to_enum_dict()
        assert list(variants) == ["Starknet", "Secp256k1", "Secp256r1", "Eip191", "Webauthn"]
        assert variants["Starknet"] == {"pubkey": 0x61, "r": 0x62, "s": 0x63}
        assert all(variants[name] is None for name in list(variants)[1:])

    def test_accepts_hex_strings(self):
        signature = SignerSignature.starknet("0x61", ["0x62", "99"])
        assert signature == GUARDIAN

    @pytest.mark.parametrize("signer_type", [SignerType.SECP256K1, SignerType.WEBAUTHN, 3])
    def test_reserved_variants_rejected(self, signer_type):
        with pytest.raises(UnsupportedSignerTypeError):
            SignerSignature(public_key=1, r=2, s=3, signer_type=signer_type)


class TestCompileSessionToken:
    def test_magic_is_shortstring(self):
        assert SESSION_MAGIC == encode_shortstring("session-token")

    def test_token_fields(self):
        calls = [Call(ROUTER, "swap"), Call(TOKEN, "transfer")]
        token = compile_for(calls, cache_authorization=True)

        assert token.session == compile_session(OFF_CHAIN)
        assert token.cache_authorization is True
        assert token.session_authorization == (0x123, 0x456)
        assert token.session_signature == SignerSignature.starknet(0x51, (0x52, 0x53))
        assert token.guardian_signature == GUARDIAN
        assert [list(p) for p in token.proofs] == get_session_proofs(OFF_CHAIN.allowed_methods, calls)

    def test_calldata_layout(self):
        calls = [Call(ROUTER, "swap"), Call(TOKEN, "transfer")]
        token = compile_for(calls)
        on_chain = compile_session(OFF_CHAIN)
        proofs = get_session_proofs(OFF_CHAIN.allowed_methods, calls)

        expected = [
            *on_chain.to_calldata(),
            0,
            2, 0x123, 0x456,
            0, 0x51, 0x52, 0x53,
            0, 0x61, 0x62, 0x63,
            2,
        ]
        for proof in proofs:
            expected.extend([len(proof), *proof])

        assert token.to_calldata() == expected
        assert build_session_signature(token) == [SESSION_MAGIC, *expected]

    def test_disallowed_call_fails_whole_token(self):
        with pytest.raises(CallNotAllowedError):
            compile_for([Call(TOKEN, "transfer"), Call(ROUTER, "withdraw")])

    def test_precomputed_proofs_are_used(self):
        calls = [Call(TOKEN, "approve")]
        proofs = get_session_proofs(OFF_CHAIN.allowed_methods, calls)
        token = compile_session_token(
            off_chain=OFF_CHAIN,
            calls=calls,
            session_public_key=0x51,
            session_signature=(0x52, 0x53),
            session_authorization=[1, 2],
            guardian_signature=GUARDIAN,
            cache_authorization=False,
            proofs=proofs,
        )
        assert token.proofs == tuple(tuple(p) for p in proofs)
        assert token.session_authorization == (1, 2)

    def test_to_dict(self):
        token = compile_for([Call(TOKEN, "transfer")])
        data = token.to_dict()
        assert data["cacheAuthorization"] is False
        assert data["sessionAuthorization"] == [0x123, 0x456]
        assert data["guardianSignature"]["Starknet"]["pubkey"] == 0x61
        assert data["guardianSignature"]["Secp256r1"] is None
