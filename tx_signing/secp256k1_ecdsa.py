# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
secp256k1 ECDSA keys and signatures.

Key Properties:
- **Curve**: secp256k1
- **Hash Function**: SHA-256 of the sign bytes
- **Public keys**: 33-byte SEC1 compressed points
- **Signatures**: 64 bytes, ``r || s``, big-endian
- **Deterministic**: RFC 6979 nonces
- **Normalized**: signing always produces ``s <= n/2`` and verification
  rejects the malleable high-S twin of a valid signature

The ecdsa library performs the curve arithmetic.

Examples:
    Sign and verify::

        private_key = PrivateKey.random()
        signature = private_key.sign(sign_bytes)
        private_key.public_key().verify(sign_bytes, signature.data())  # True
"""

from __future__ import annotations

import hashlib
import unittest

from ecdsa import BadSignatureError, SECP256k1, SigningKey, VerifyingKey, util
from ecdsa.errors import MalformedPointError

from . import asymmetric_crypto
from .bcs import Deserializer, Serializer

_ORDER = SECP256k1.generator.order()


class PrivateKey(asymmetric_crypto.PrivateKey):
    LENGTH: int = 32

    key: SigningKey

    def __init__(self, key: SigningKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self.key.to_string() == other.key.to_string()

    def __str__(self):
        return f"secp256k1 private key for {self.public_key()}"

    @staticmethod
    def from_secret(secret: bytes) -> PrivateKey:
        if len(secret) != PrivateKey.LENGTH:
            raise ValueError(f"Secret must be {PrivateKey.LENGTH} bytes")
        return PrivateKey(
            SigningKey.from_string(secret, SECP256k1, hashfunc=hashlib.sha256)
        )

    def public_key(self) -> PublicKey:
        return PublicKey(self.key.verifying_key)

    @staticmethod
    def random() -> PrivateKey:
        return PrivateKey(SigningKey.generate(curve=SECP256k1, hashfunc=hashlib.sha256))

    def sign(self, data: bytes) -> Signature:
        sig = self.key.sign_deterministic(data, hashfunc=hashlib.sha256)
        r, s = util.sigdecode_string(sig, _ORDER)
        # Both s and -s verify; only the low half is accepted.
        if s > (_ORDER // 2):
            sig = util.sigencode_string(r, _ORDER - s, _ORDER)
        return Signature(sig)

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.key.to_string())


class PublicKey(asymmetric_crypto.PublicKey):
    """secp256k1 public key in compressed form.

    Attributes:
        LENGTH: compressed key length (33)
        key: The underlying ecdsa VerifyingKey
    """

    LENGTH: int = 33

    key: VerifyingKey

    def __init__(self, key: VerifyingKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.to_crypto_bytes() == other.to_crypto_bytes()

    def __hash__(self):
        return hash(self.to_crypto_bytes())

    def __str__(self) -> str:
        return f"0x{self.to_crypto_bytes().hex()}"

    def __repr__(self) -> str:
        return f"secp256k1_ecdsa.PublicKey({self})"

    @staticmethod
    def from_str(value: str) -> PublicKey:
        if value[0:2] == "0x":
            value = value[2:]
        return PublicKey.from_crypto_bytes(bytes.fromhex(value))

    @staticmethod
    def from_crypto_bytes(indata: bytes) -> PublicKey:
        if len(indata) != PublicKey.LENGTH:
            raise ValueError("Length mismatch")
        try:
            key = VerifyingKey.from_string(indata, SECP256k1, hashlib.sha256)
        except MalformedPointError as e:
            raise ValueError(f"Invalid secp256k1 point: {e}") from e
        return PublicKey(key)

    def verify(self, data: bytes, signature: bytes) -> bool:
        if len(signature) != Signature.LENGTH:
            return False
        _, s = util.sigdecode_string(signature, _ORDER)
        if s > (_ORDER // 2):
            return False
        try:
            return self.key.verify(signature, data, hashfunc=hashlib.sha256)
        except BadSignatureError:
            return False

    def to_crypto_bytes(self) -> bytes:
        return self.key.to_string("compressed")

    @staticmethod
    def deserialize(deserializer: Deserializer) -> PublicKey:
        return PublicKey.from_crypto_bytes(deserializer.to_bytes())

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.to_crypto_bytes())


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
    def test_sign_and_verify(self):
        in_value = b"test_message"

        private_key = PrivateKey.random()
        public_key = private_key.public_key()

        signature = private_key.sign(in_value)
        self.assertEqual(len(signature.data()), Signature.LENGTH)
        self.assertTrue(public_key.verify(in_value, signature.data()))
        self.assertFalse(public_key.verify(b"other_message", signature.data()))

    def test_deterministic(self):
        private_key = PrivateKey.from_secret(b"\x01" * 32)
        self.assertEqual(private_key.sign(b"msg"), private_key.sign(b"msg"))

    def test_high_s_rejected(self):
        private_key = PrivateKey.random()
        signature = private_key.sign(b"payload").data()
        r, s = util.sigdecode_string(signature, _ORDER)
        self.assertLessEqual(s, _ORDER // 2)

        malleated = util.sigencode_string(r, _ORDER - s, _ORDER)
        self.assertFalse(private_key.public_key().verify(b"payload", malleated))

    def test_compressed_public_key(self):
        public_key = PrivateKey.random().public_key()
        crypto_bytes = public_key.to_crypto_bytes()
        self.assertEqual(len(crypto_bytes), PublicKey.LENGTH)
        self.assertIn(crypto_bytes[0], (2, 3))
        self.assertEqual(PublicKey.from_crypto_bytes(crypto_bytes), public_key)
        self.assertEqual(PublicKey.from_str(str(public_key)), public_key)

    def test_invalid_point(self):
        with self.assertRaises(ValueError):
            PublicKey.from_crypto_bytes(b"\x05" + b"\x00" * 32)

    def test_malformed_signature(self):
        public_key = PrivateKey.random().public_key()
        self.assertFalse(public_key.verify(b"data", b"\x01" * 63))

    def test_public_key_serialization(self):
        public_key = PrivateKey.random().public_key()

        ser = Serializer()
        public_key.serialize(ser)
        self.assertEqual(PublicKey.deserialize(Deserializer(ser.output())), public_key)


if __name__ == "__main__":
    unittest.main()
