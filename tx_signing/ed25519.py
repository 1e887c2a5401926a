# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Ed25519 keys and signatures.

Ed25519 is the default single-signer scheme. Public keys are 32 bytes and
signatures 64 bytes; verification is delegated to PyNaCl (libsodium).

Examples:
    Signing sign bytes and verifying them::

        private_key = PrivateKey.random()
        signature = private_key.sign(sign_bytes)

        private_key.public_key().verify(sign_bytes, signature.data())  # True
"""

from __future__ import annotations

import unittest

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from . import asymmetric_crypto
from .bcs import Deserializer, Serializer


class PrivateKey(asymmetric_crypto.PrivateKey):
    LENGTH: int = 32

    key: SigningKey

    def __init__(self, key: SigningKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self.key == other.key

    def __str__(self):
        return f"Ed25519 private key for {self.public_key()}"

    @staticmethod
    def from_seed(seed: bytes) -> PrivateKey:
        """Build a key from a 32-byte seed; used for reproducible fixtures."""
        if len(seed) != PrivateKey.LENGTH:
            raise ValueError(f"Seed must be {PrivateKey.LENGTH} bytes")
        return PrivateKey(SigningKey(seed))

    def public_key(self) -> PublicKey:
        return PublicKey(self.key.verify_key)

    @staticmethod
    def random() -> PrivateKey:
        return PrivateKey(SigningKey.generate())

    def sign(self, data: bytes) -> Signature:
        return Signature(self.key.sign(data).signature)

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.key.encode())


class PublicKey(asymmetric_crypto.PublicKey):
    """Ed25519 public key.

    Attributes:
        LENGTH: The byte length of Ed25519 public keys (32)
        key: The underlying NaCl VerifyKey instance
    """

    LENGTH: int = 32

    key: VerifyKey

    def __init__(self, key: VerifyKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.key == other.key

    def __hash__(self):
        return hash(self.to_crypto_bytes())

    def __str__(self) -> str:
        return f"0x{self.key.encode().hex()}"

    def __repr__(self) -> str:
        return f"ed25519.PublicKey({self})"

    @staticmethod
    def from_str(value: str) -> PublicKey:
        if value[0:2] == "0x":
            value = value[2:]
        return PublicKey.from_crypto_bytes(bytes.fromhex(value))

    @staticmethod
    def from_crypto_bytes(indata: bytes) -> PublicKey:
        if len(indata) != PublicKey.LENGTH:
            raise ValueError("Length mismatch")
        return PublicKey(VerifyKey(indata))

    def verify(self, data: bytes, signature: bytes) -> bool:
        """Verify a raw 64-byte signature over ``data``.

        Signatures of the wrong length and signatures that fail the curve
        check are both reported as False.
        """
        if len(signature) != Signature.LENGTH:
            return False
        try:
            self.key.verify(data, signature)
        except BadSignatureError:
            return False
        return True

    def to_crypto_bytes(self) -> bytes:
        return self.key.encode()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> PublicKey:
        return PublicKey.from_crypto_bytes(deserializer.to_bytes())

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.key.encode())


class Signature(asymmetric_crypto.Signature):
    LENGTH: int = 64

    signature: bytes

    def __init__(self, signature: bytes):
        self.signature = signature

    def __eq__(self, other: object):
        if not isinstance(other, Signature):
            return NotImplemented
        return self.signature == other.signature

    def __str__(self) -> str:
        return f"0x{self.signature.hex()}"

    def data(self) -> bytes:
        return self.signature

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Signature:
        signature = deserializer.to_bytes()
        if len(signature) != Signature.LENGTH:
            raise Exception("Length mismatch")

        return Signature(signature)

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.signature)


class Test(unittest.TestCase):
    # RFC 8032, section 7.1, test 2.
    SEED = "4ccd089b28ff96da9db6c346ec114e0f5b8a319f35aba624da8cf6ed4fb8a6fb"
    PUBLIC = "3d4017c3e843895a92b70aa74d1b7ebc9c982ccf2ec4968cc0cd55f12af4660c"
    MESSAGE = "72"
    SIGNATURE = (
        "92a009a9f0d4cab8720e820b5f642540a2b27b5416503f8fb3762223ebdb69da"
        "085ac1e43e15996e458f3613d0f11d8c387b2eaeb4302aeeb00d291612bb0c00"
    )

    def test_rfc8032_vector(self):
        private_key = PrivateKey.from_seed(bytes.fromhex(self.SEED))
        public_key = private_key.public_key()
        self.assertEqual(public_key.to_crypto_bytes().hex(), self.PUBLIC)

        signature = private_key.sign(bytes.fromhex(self.MESSAGE))
        self.assertEqual(signature.data().hex(), self.SIGNATURE)
        self.assertTrue(
            public_key.verify(bytes.fromhex(self.MESSAGE), signature.data())
        )

    def test_sign_and_verify(self):
        in_value = b"test_message"

        private_key = PrivateKey.random()
        public_key = private_key.public_key()

        signature = private_key.sign(in_value)
        self.assertTrue(public_key.verify(in_value, signature.data()))
        self.assertFalse(public_key.verify(b"other_message", signature.data()))
        self.assertFalse(
            PrivateKey.random().public_key().verify(in_value, signature.data())
        )

    def test_malformed_signature(self):
        public_key = PrivateKey.random().public_key()
        self.assertFalse(public_key.verify(b"data", b"\x00" * 10))
        self.assertFalse(public_key.verify(b"data", b"\x00" * Signature.LENGTH))

    def test_public_key_serialization(self):
        public_key = PrivateKey.random().public_key()

        ser = Serializer()
        public_key.serialize(ser)
        self.assertEqual(PublicKey.deserialize(Deserializer(ser.output())), public_key)
        self.assertEqual(PublicKey.from_str(str(public_key)), public_key)

    def test_public_key_length_checked(self):
        with self.assertRaises(ValueError):
            PublicKey.from_crypto_bytes(b"\x01" * 31)

    def test_signature_serialization(self):
        signature = PrivateKey.random().sign(b"another_message")

        ser = Serializer()
        signature.serialize(ser)
        self.assertEqual(Signature.deserialize(Deserializer(ser.output())), signature)


if __name__ == "__main__":
    unittest.main()
