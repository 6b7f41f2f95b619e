"""
Digest Signing Test Suite

Raw-digest ECDSA signing, compact serialization and recovery.
"""

import unittest

from web3 import Web3

from avs_operator import (
    ConfigurationError,
    DigestSignature,
    OperatorIdentity,
    recover_signer,
    sign_digest,
    verify_digest_signature,
)

from .fakes import OPERATOR_ADDRESS, OPERATOR_KEY, OTHER_ADDRESS, OTHER_KEY

DIGEST = bytes(Web3.keccak(text="operator registration digest"))


class TestOperatorIdentity(unittest.TestCase):

    def test_address_derived_from_key(self):
        identity = OperatorIdentity.from_private_key(OPERATOR_KEY)
        self.assertEqual(identity.address, OPERATOR_ADDRESS)

    def test_key_without_prefix_accepted(self):
        identity = OperatorIdentity.from_private_key(OTHER_KEY[2:])
        self.assertEqual(identity.address, OTHER_ADDRESS)

    def test_invalid_key_rejected(self):
        with self.assertRaises(ConfigurationError):
            OperatorIdentity.from_private_key("0x1234")

    def test_private_key_not_in_repr(self):
        identity = OperatorIdentity.from_private_key(OPERATOR_KEY)
        self.assertNotIn(OPERATOR_KEY[2:], repr(identity))


class TestSignDigest(unittest.TestCase):

    def test_signature_recovers_to_signer(self):
        signature = sign_digest(DIGEST, OPERATOR_KEY)
        self.assertEqual(recover_signer(DIGEST, signature), OPERATOR_ADDRESS)

    def test_deterministic(self):
        first = sign_digest(DIGEST, OPERATOR_KEY)
        second = sign_digest(DIGEST, OPERATOR_KEY)
        self.assertEqual(first, second)

    def test_identity_signs_same_as_function(self):
        identity = OperatorIdentity.from_private_key(OPERATOR_KEY)
        self.assertEqual(identity.sign_digest(DIGEST), sign_digest(DIGEST, OPERATOR_KEY))

    def test_hex_digest_accepted(self):
        signature = sign_digest("0x" + DIGEST.hex(), OPERATOR_KEY)
        self.assertEqual(signature, sign_digest(DIGEST, OPERATOR_KEY))

    def test_digest_must_be_32_bytes(self):
        with self.assertRaises(ValueError):
            sign_digest(DIGEST[:31], OPERATOR_KEY)
        with self.assertRaises(ValueError):
            sign_digest(DIGEST + b"\x00", OPERATOR_KEY)

    def test_different_digest_different_signature(self):
        other = bytes(Web3.keccak(text="another digest"))
        self.assertNotEqual(sign_digest(DIGEST, OPERATOR_KEY), sign_digest(other, OPERATOR_KEY))

    def test_raw_digest_not_prefixed(self):
        # Signing the digest as an EIP-191 message would recover to a
        # different address over the raw digest.
        from eth_account import Account
        from eth_account.messages import encode_defunct

        prefixed = Account.sign_message(encode_defunct(primitive=DIGEST), OPERATOR_KEY)
        self.assertNotEqual(
            recover_signer(DIGEST, bytes(prefixed.signature)),
            OPERATOR_ADDRESS
        )


class TestSerialization(unittest.TestCase):

    def setUp(self):
        self.signature = sign_digest(DIGEST, OPERATOR_KEY)

    def test_compact_form(self):
        raw = self.signature.serialized
        self.assertEqual(len(raw), 65)
        self.assertIn(raw[64], (27, 28))
        self.assertEqual(int.from_bytes(raw[:32], "big"), self.signature.r)
        self.assertEqual(int.from_bytes(raw[32:64], "big"), self.signature.s)

    def test_parse_back(self):
        self.assertEqual(DigestSignature.from_bytes(self.signature.serialized), self.signature)
        self.assertEqual(DigestSignature.from_bytes(self.signature.to_hex()), self.signature)

    def test_parse_zero_based_recovery_id(self):
        raw = bytearray(self.signature.serialized)
        raw[64] -= 27
        self.assertEqual(DigestSignature.from_bytes(bytes(raw)), self.signature)

    def test_parse_rejects_bad_input(self):
        with self.assertRaises(ValueError):
            DigestSignature.from_bytes(self.signature.serialized[:64])
        raw = bytearray(self.signature.serialized)
        raw[64] = 5
        with self.assertRaises(ValueError):
            DigestSignature.from_bytes(bytes(raw))

    def test_to_dict(self):
        d = self.signature.to_dict()
        self.assertEqual(d["v"], self.signature.v)
        self.assertEqual(d["serialized"], "0x" + self.signature.serialized.hex())


class TestVerify(unittest.TestCase):

    def test_valid(self):
        signature = sign_digest(DIGEST, OPERATOR_KEY)
        self.assertTrue(verify_digest_signature(DIGEST, signature, OPERATOR_ADDRESS))
        self.assertTrue(verify_digest_signature(DIGEST, signature.serialized, OPERATOR_ADDRESS.lower()))

    def test_wrong_signer(self):
        signature = sign_digest(DIGEST, OTHER_KEY)
        self.assertFalse(verify_digest_signature(DIGEST, signature, OPERATOR_ADDRESS))

    def test_wrong_digest(self):
        signature = sign_digest(DIGEST, OPERATOR_KEY)
        other = bytes(Web3.keccak(text="tampered"))
        self.assertFalse(verify_digest_signature(other, signature, OPERATOR_ADDRESS))

    def test_malformed_signature(self):
        self.assertFalse(verify_digest_signature(DIGEST, b"\x00" * 10, OPERATOR_ADDRESS))


if __name__ == "__main__":
    unittest.main()
