# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Threshold (multisig) public keys.

A :class:`MultiPublicKey` holds an ordered list of member keys and a threshold.
It cannot verify a flat signature; instead it verifies
:class:`~tx_signing.signature_data.MultiSignatureData`, where every nested
signer may have signed under its own sign mode and members may themselves be
multisig keys.

Threshold Mechanics:
    1. The bit array must have one bit per member key
    2. The number of nested signatures must match the number of set bits and
       lie between the threshold and the member count
    3. At least ``threshold`` bits must be set
    4. Every nested signature must verify against the member at its index,
       using the sign bytes of its own sign mode

Constraints:
    MIN_KEYS (2), MAX_KEYS (32), MIN_THRESHOLD (1)

Examples:
    A 2-of-3 key with members signing in different modes::

        multi_key = MultiPublicKey([key_a, key_b, key_c], threshold=2)
        data = MultiSignatureData.from_key_map(
            multi_key,
            [
                (key_a, SingleSignatureData(SignMode.DIRECT, sig_a)),
                (key_c, SingleSignatureData(SignMode.TEXTUAL, sig_c)),
            ],
        )
        multi_key.verify_multisignature(get_sign_bytes, data)

Note:
    Nested leaf verifications are not cached: this routine always performs the
    member checks itself.
"""

from __future__ import annotations

import unittest
from typing import Callable, Dict, List

from . import asymmetric_crypto, ed25519, secp256k1_ecdsa
from .bcs import Serializer
from .errors import (
    EncodingError,
    InvalidSignatureError,
    NotMultisigCapableError,
    UnrecognizedSignatureDataError,
    UnsupportedSignModeError,
)
from .sign_mode import SignMode
from .signature_data import (
    CompactBitArray,
    MultiSignatureData,
    SignatureData,
    SingleSignatureData,
)


class MultiPublicKey(asymmetric_crypto.PublicKey, asymmetric_crypto.MultisigPublicKey):
    keys: List[asymmetric_crypto.PublicKey]
    threshold: int

    MIN_KEYS = 2
    MAX_KEYS = 32
    MIN_THRESHOLD = 1

    def __init__(self, keys: List[asymmetric_crypto.PublicKey], threshold: int):
        assert (
            self.MIN_KEYS <= len(keys) <= self.MAX_KEYS
        ), f"Must have between {self.MIN_KEYS} and {self.MAX_KEYS} keys."
        assert (
            self.MIN_THRESHOLD <= threshold <= len(keys)
        ), f"Threshold must be between {self.MIN_THRESHOLD} and {len(keys)}."

        self.keys = list(keys)
        self.threshold = threshold

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultiPublicKey):
            return NotImplemented
        return self.to_crypto_bytes() == other.to_crypto_bytes()

    def __hash__(self):
        return hash(self.to_crypto_bytes())

    def __str__(self) -> str:
        return f"{self.threshold}-of-{len(self.keys)} multisig public key"

    def verify(self, data: bytes, signature: bytes) -> bool:
        """Always False: a multisig key only verifies multi signature data."""
        return False

    def verify_multisignature(
        self,
        get_sign_bytes: Callable[[SignMode], bytes],
        data: MultiSignatureData,
    ) -> None:
        bit_array = data.bit_array
        signatures = data.signatures
        size = bit_array.count()

        if size != len(self.keys):
            raise InvalidSignatureError(
                f"bit array size is incorrect, expecting: {len(self.keys)}, got: {size}"
            )
        if len(signatures) < self.threshold or len(signatures) > size:
            raise InvalidSignatureError(
                f"signature size is incorrect: {len(signatures)}"
            )
        set_bits = bit_array.num_true_bits_before(size)
        if set_bits < self.threshold:
            raise InvalidSignatureError(
                f"not enough signatures set, have {set_bits}, expected {self.threshold}"
            )
        if set_bits != len(signatures):
            raise InvalidSignatureError(
                f"bit array marks {set_bits} signers but {len(signatures)} signatures were given"
            )

        sig_index = 0
        for index in range(size):
            if not bit_array.get_index(index):
                continue
            nested = signatures[sig_index]
            member = self.keys[index]
            if isinstance(nested, SingleSignatureData):
                sign_bytes = get_sign_bytes(nested.sign_mode)
                if not member.verify(sign_bytes, nested.signature):
                    raise InvalidSignatureError(
                        f"unable to verify signature at index {index}"
                    )
            elif isinstance(nested, MultiSignatureData):
                if not isinstance(member, asymmetric_crypto.MultisigPublicKey):
                    raise NotMultisigCapableError(member)
                member.verify_multisignature(get_sign_bytes, nested)
            else:
                raise UnrecognizedSignatureDataError(nested)
            sig_index += 1

    def to_crypto_bytes(self) -> bytes:
        ser = Serializer()
        ser.sequence([key.to_crypto_bytes() for key in self.keys], Serializer.to_bytes)
        ser.u8(self.threshold)
        return ser.output()

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.to_crypto_bytes())


class Test(unittest.TestCase):
    def setUp(self):
        self.private_keys = [
            ed25519.PrivateKey.random(),
            secp256k1_ecdsa.PrivateKey.random(),
            ed25519.PrivateKey.random(),
        ]
        self.public_keys = [key.public_key() for key in self.private_keys]
        self.multi_key = MultiPublicKey(self.public_keys, 2)
        self.sign_bytes: Dict[SignMode, bytes] = {
            SignMode.DIRECT: b"direct sign bytes",
            SignMode.LEGACY_AMINO_JSON: b'{"amino":"json"}',
            SignMode.TEXTUAL: b"textual sign bytes",
        }

    def get_sign_bytes(self, mode: SignMode) -> bytes:
        if mode not in self.sign_bytes:
            raise UnsupportedSignModeError(mode)
        return self.sign_bytes[mode]

    def sign(self, index: int, mode: SignMode) -> SingleSignatureData:
        signature = self.private_keys[index].sign(self.sign_bytes[mode])
        return SingleSignatureData(mode, signature.data())

    def test_threshold_met_with_mixed_modes(self):
        data = MultiSignatureData.from_key_map(
            self.multi_key,
            [
                (self.public_keys[2], self.sign(2, SignMode.TEXTUAL)),
                (self.public_keys[1], self.sign(1, SignMode.LEGACY_AMINO_JSON)),
            ],
        )
        self.assertEqual(data.bit_array.true_indices(), [1, 2])
        self.multi_key.verify_multisignature(self.get_sign_bytes, data)

    def test_all_members_sign(self):
        data = MultiSignatureData.from_key_map(
            self.multi_key,
            [(key, self.sign(i, SignMode.DIRECT)) for i, key in enumerate(self.public_keys)],
        )
        self.multi_key.verify_multisignature(self.get_sign_bytes, data)

    def test_below_threshold(self):
        data = MultiSignatureData.from_key_map(
            self.multi_key, [(self.public_keys[0], self.sign(0, SignMode.DIRECT))]
        )
        with self.assertRaisesRegex(InvalidSignatureError, "signature size"):
            self.multi_key.verify_multisignature(self.get_sign_bytes, data)

    def test_one_invalid_member(self):
        bad = SingleSignatureData(
            SignMode.DIRECT, self.private_keys[0].sign(b"something else").data()
        )
        data = MultiSignatureData.from_key_map(
            self.multi_key,
            [(self.public_keys[0], bad), (self.public_keys[1], self.sign(1, SignMode.DIRECT))],
        )
        with self.assertRaisesRegex(InvalidSignatureError, "index 0"):
            self.multi_key.verify_multisignature(self.get_sign_bytes, data)

    def test_signature_at_wrong_index(self):
        bits = CompactBitArray(3)
        bits.set_index(0, True)
        bits.set_index(1, True)
        # Signatures of members 0 and 2, but the bit array claims 0 and 1.
        data = MultiSignatureData(
            bits, (self.sign(0, SignMode.DIRECT), self.sign(2, SignMode.DIRECT))
        )
        with self.assertRaisesRegex(InvalidSignatureError, "index 1"):
            self.multi_key.verify_multisignature(self.get_sign_bytes, data)

    def test_bit_array_size_mismatch(self):
        bits = CompactBitArray(2)
        bits.set_index(0, True)
        bits.set_index(1, True)
        data = MultiSignatureData(
            bits, (self.sign(0, SignMode.DIRECT), self.sign(1, SignMode.DIRECT))
        )
        with self.assertRaisesRegex(InvalidSignatureError, "bit array size"):
            self.multi_key.verify_multisignature(self.get_sign_bytes, data)

    def test_bits_and_signatures_disagree(self):
        bits = CompactBitArray(3)
        bits.set_index(0, True)
        data = MultiSignatureData(
            bits, (self.sign(0, SignMode.DIRECT), self.sign(1, SignMode.DIRECT))
        )
        with self.assertRaises(InvalidSignatureError):
            self.multi_key.verify_multisignature(self.get_sign_bytes, data)

    def test_callback_errors_propagate(self):
        data = MultiSignatureData.from_key_map(
            self.multi_key,
            [
                (self.public_keys[0], SingleSignatureData(SignMode.DIRECT_AUX, b"\x00" * 64)),
                (self.public_keys[1], self.sign(1, SignMode.DIRECT)),
            ],
        )
        with self.assertRaises(UnsupportedSignModeError):
            self.multi_key.verify_multisignature(self.get_sign_bytes, data)

        def failing(mode: SignMode) -> bytes:
            raise EncodingError("malformed transaction")

        with self.assertRaises(EncodingError):
            self.multi_key.verify_multisignature(failing, data)

    def test_nested_multisig(self):
        inner = MultiPublicKey(self.public_keys[1:], 1)
        outer_private = ed25519.PrivateKey.random()
        outer = MultiPublicKey([outer_private.public_key(), inner], 2)

        inner_data = MultiSignatureData.from_key_map(
            inner, [(self.public_keys[2], self.sign(2, SignMode.TEXTUAL))]
        )
        outer_data = MultiSignatureData.from_key_map(
            outer,
            [
                (
                    outer_private.public_key(),
                    SingleSignatureData(
                        SignMode.DIRECT,
                        outer_private.sign(self.sign_bytes[SignMode.DIRECT]).data(),
                    ),
                ),
                (inner, inner_data),
            ],
        )
        outer.verify_multisignature(self.get_sign_bytes, outer_data)

    def test_nested_data_for_single_member(self):
        bits = CompactBitArray(3)
        bits.set_index(0, True)
        bits.set_index(1, True)
        nested_bits = CompactBitArray(2)
        data = MultiSignatureData(
            bits,
            (
                self.sign(0, SignMode.DIRECT),
                MultiSignatureData(nested_bits, ()),
            ),
        )
        with self.assertRaises(NotMultisigCapableError):
            self.multi_key.verify_multisignature(self.get_sign_bytes, data)

    def test_unrecognized_nested_data(self):
        bits = CompactBitArray(3)
        bits.set_index(0, True)
        bits.set_index(1, True)
        data = MultiSignatureData(bits, (self.sign(0, SignMode.DIRECT), b"raw"))  # type: ignore[arg-type]
        with self.assertRaises(UnrecognizedSignatureDataError):
            self.multi_key.verify_multisignature(self.get_sign_bytes, data)

    def test_flat_verify_is_false(self):
        signature = self.private_keys[0].sign(b"payload").data()
        self.assertFalse(self.multi_key.verify(b"payload", signature))

    def test_capabilities(self):
        self.assertIsInstance(self.multi_key, asymmetric_crypto.MultisigPublicKey)
        self.assertNotIsInstance(self.public_keys[0], asymmetric_crypto.MultisigPublicKey)
        self.assertNotIsInstance(self.public_keys[1], asymmetric_crypto.MultisigPublicKey)

    def test_range_checks(self):
        keys = [ed25519.PrivateKey.random().public_key() for _ in range(MultiPublicKey.MAX_KEYS + 1)]
        with self.assertRaisesRegex(AssertionError, "Must have between 2 and 32 keys."):
            MultiPublicKey([keys[0]], 1)
        with self.assertRaisesRegex(AssertionError, "Must have between 2 and 32 keys."):
            MultiPublicKey(keys, 1)
        with self.assertRaisesRegex(AssertionError, "Threshold must be between 1 and 4."):
            MultiPublicKey(keys[0:4], 0)
        with self.assertRaisesRegex(AssertionError, "Threshold must be between 1 and 4."):
            MultiPublicKey(keys[0:4], 5)

    def test_crypto_bytes(self):
        keys = self.public_keys[:2]
        expected = (
            b"\x02"
            + b"\x20" + keys[0].to_crypto_bytes()
            + b"\x21" + keys[1].to_crypto_bytes()
            + b"\x01"
        )
        self.assertEqual(MultiPublicKey(keys, 1).to_crypto_bytes(), expected)
        self.assertNotEqual(MultiPublicKey(keys, 1), MultiPublicKey(keys, 2))


if __name__ == "__main__":
    unittest.main()
