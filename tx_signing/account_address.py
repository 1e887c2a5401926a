# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Account addresses carried in signer data.

An address is 32 bytes derived from a public key: SHA3-256 over the key's
crypto bytes followed by a one-byte scheme suffix, so keys of different types
(or a multisig key and one of its members) never share an address. Addresses
appear in the amino-JSON and textual renderings of signer data; they are not
used to authorize anything here.

Examples:
    Deriving and printing::

        address = AccountAddress.from_key(private_key.public_key())
        str(address)  # "0x...", 64 hex characters

        AccountAddress.from_str("0x1")  # special addresses may be short
"""

from __future__ import annotations

import hashlib
import unittest

from . import asymmetric_crypto, ed25519, multisig, secp256k1_ecdsa
from .bcs import Deserializer, Serializer


class AuthKeyScheme:
    """Scheme suffixes appended to key bytes when deriving an address."""

    Ed25519: bytes = b"\x00"
    Secp256k1Ecdsa: bytes = b"\x02"
    Multisig: bytes = b"\x03"


class ParseAddressError(Exception):
    """Raised when text or bytes cannot be parsed into an AccountAddress."""


class AccountAddress:
    address: bytes
    LENGTH: int = 32

    def __init__(self, address: bytes):
        self.address = address
        if len(address) != AccountAddress.LENGTH:
            raise ParseAddressError("Expected address of length 32")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AccountAddress):
            return NotImplemented
        return self.address == other.address

    def __hash__(self):
        return hash(self.address)

    def __str__(self):
        """Special addresses (0x0 through 0xf) print short, all others long."""
        suffix = self.address.hex()
        if self.is_special():
            suffix = suffix.lstrip("0") or "0"
        return f"0x{suffix}"

    def __repr__(self):
        return self.__str__()

    def is_special(self):
        return all(b == 0 for b in self.address[:-1]) and self.address[-1] < 0b10000

    @staticmethod
    def from_str(address: str) -> AccountAddress:
        """Parse a ``0x``-prefixed address.

        Long form must have exactly 64 hex characters; the short form is only
        accepted for special addresses.
        """
        if not address.startswith("0x"):
            raise ParseAddressError("Hex string must start with a leading 0x.")

        addr = address[2:]
        if len(addr) == AccountAddress.LENGTH * 2:
            pass
        elif len(addr) == 1:
            addr = "0" * (AccountAddress.LENGTH * 2 - 1) + addr
        else:
            raise ParseAddressError(
                "Address must be 64 hex characters, or a single hex character "
                "for special addresses."
            )

        try:
            return AccountAddress(bytes.fromhex(addr))
        except ValueError as e:
            raise ParseAddressError(f"Invalid hex in address: {address}") from e

    @staticmethod
    def from_key(key: asymmetric_crypto.PublicKey) -> AccountAddress:
        hasher = hashlib.sha3_256()
        hasher.update(key.to_crypto_bytes())

        if isinstance(key, ed25519.PublicKey):
            hasher.update(AuthKeyScheme.Ed25519)
        elif isinstance(key, secp256k1_ecdsa.PublicKey):
            hasher.update(AuthKeyScheme.Secp256k1Ecdsa)
        elif isinstance(key, multisig.MultiPublicKey):
            hasher.update(AuthKeyScheme.Multisig)
        else:
            raise Exception("Unsupported asymmetric_crypto.PublicKey key type.")

        return AccountAddress(hasher.digest())

    @staticmethod
    def deserialize(deserializer: Deserializer) -> AccountAddress:
        return AccountAddress(deserializer.fixed_bytes(AccountAddress.LENGTH))

    def serialize(self, serializer: Serializer):
        serializer.fixed_bytes(self.address)


class Test(unittest.TestCase):
    def test_from_key_ed25519(self):
        seed = bytes.fromhex(
            "4ccd089b28ff96da9db6c346ec114e0f5b8a319f35aba624da8cf6ed4fb8a6fb"
        )
        public_key = ed25519.PrivateKey.from_seed(seed).public_key()

        expected = hashlib.sha3_256(public_key.to_crypto_bytes() + b"\x00").digest()
        self.assertEqual(AccountAddress.from_key(public_key).address, expected)

    def test_schemes_do_not_collide(self):
        ed_key = ed25519.PrivateKey.random().public_key()
        secp_key = secp256k1_ecdsa.PrivateKey.random().public_key()
        multi_key = multisig.MultiPublicKey([ed_key, secp_key], 1)

        addresses = {
            AccountAddress.from_key(ed_key),
            AccountAddress.from_key(secp_key),
            AccountAddress.from_key(multi_key),
        }
        self.assertEqual(len(addresses), 3)

    def test_from_str(self):
        self.assertEqual(
            AccountAddress.from_str("0x1"), AccountAddress(b"\x00" * 31 + b"\x01")
        )
        long_form = "0x" + "ca843279e3427144cead5e4d5999a3d0" * 2
        self.assertEqual(str(AccountAddress.from_str(long_form)), long_form)
        self.assertEqual(str(AccountAddress(b"\x00" * 32)), "0x0")

        for invalid in ("1", "0x10", "0x" + "zz" * 32):
            with self.assertRaises(ParseAddressError):
                AccountAddress.from_str(invalid)

    def test_serialization(self):
        address = AccountAddress(bytes(range(32)))
        ser = Serializer()
        address.serialize(ser)
        self.assertEqual(ser.output(), bytes(range(32)))
        self.assertEqual(AccountAddress.deserialize(Deserializer(ser.output())), address)


if __name__ == "__main__":
    unittest.main()
