# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Signature data: the tagged union handed to the verifier.

Exactly one variant is active per value:

- :class:`SingleSignatureData` – one signature produced under one sign mode.
- :class:`MultiSignatureData` – nested signature data for a threshold key, with
  a :class:`CompactBitArray` recording which of the key's members signed.
  Nested entries are ordered by member index and may themselves be single or
  multi, each using its own sign mode.

The verifier dispatches on the variant; anything else is rejected with
UnrecognizedSignatureDataError.

Serialization Format:
    Variant tag (uleb128, SINGLE = 0, MULTI = 1) followed by

    - single: sign mode (uleb128) and signature (bytes)
    - multi: bit array (uleb128 size, packed bytes) and the nested sequence

Examples:
    Collecting signatures for a 2-of-3 key::

        data = MultiSignatureData.from_key_map(
            multi_key,
            [
                (key_a, SingleSignatureData(SignMode.DIRECT, sig_a)),
                (key_c, SingleSignatureData(SignMode.LEGACY_AMINO_JSON, sig_c)),
            ],
        )
        data.bit_array.get_index(1)  # False, key_b did not sign
"""

from __future__ import annotations

import typing
import unittest
from dataclasses import dataclass
from typing import List, Tuple, Union

from .bcs import Deserializer, Serializer
from .errors import UnrecognizedSignatureDataError
from .sign_mode import SignMode

if typing.TYPE_CHECKING:
    from .asymmetric_crypto import PublicKey
    from .multisig import MultiPublicKey


class CompactBitArray:
    """Fixed-size bit array, one bit per multisig member.

    Bit ``i`` lives in byte ``i // 8`` at mask ``0x80 >> (i % 8)``, so the
    first member is the most significant bit of the first byte.
    """

    size: int
    elems: bytearray

    def __init__(self, size: int, elems: bytes = b""):
        assert size >= 0, "Bit array size must not be negative"
        num_bytes = (size + 7) // 8
        if elems:
            assert len(elems) == num_bytes, (
                f"Expected {num_bytes} bytes for {size} bits, got {len(elems)}"
            )
            unused = num_bytes * 8 - size
            assert unused == 0 or elems[-1] & ((1 << unused) - 1) == 0, (
                "Bits beyond the array size must be unset"
            )
            self.elems = bytearray(elems)
        else:
            self.elems = bytearray(num_bytes)
        self.size = size

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CompactBitArray):
            return NotImplemented
        return self.size == other.size and self.elems == other.elems

    def __str__(self) -> str:
        return "".join("x" if self.get_index(i) else "_" for i in range(self.size))

    def __repr__(self) -> str:
        return f"CompactBitArray({self})"

    def count(self) -> int:
        return self.size

    def get_index(self, index: int) -> bool:
        if index < 0 or index >= self.size:
            return False
        return self.elems[index >> 3] & (0x80 >> (index % 8)) != 0

    def set_index(self, index: int, value: bool) -> bool:
        """Set bit ``index``; returns False when the index is out of range."""
        if index < 0 or index >= self.size:
            return False
        mask = 0x80 >> (index % 8)
        if value:
            self.elems[index >> 3] |= mask
        else:
            self.elems[index >> 3] &= ~mask & 0xFF
        return True

    def num_true_bits_before(self, index: int) -> int:
        return sum(1 for i in range(min(index, self.size)) if self.get_index(i))

    def true_indices(self) -> List[int]:
        return [i for i in range(self.size) if self.get_index(i)]

    @staticmethod
    def deserialize(deserializer: Deserializer) -> CompactBitArray:
        size = deserializer.uleb128()
        elems = deserializer.fixed_bytes((size + 7) // 8)
        try:
            return CompactBitArray(size, elems)
        except AssertionError as e:
            raise Exception(f"Invalid bit array: {e}") from e

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.size)
        serializer.fixed_bytes(bytes(self.elems))


@dataclass(frozen=True)
class SingleSignatureData:
    sign_mode: SignMode
    signature: bytes

    def __str__(self) -> str:
        return f"{self.sign_mode.name}:0x{self.signature.hex()}"

    def serialize(self, serializer: Serializer):
        serializer.uleb128(int(self.sign_mode))
        serializer.to_bytes(self.signature)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> SingleSignatureData:
        value = deserializer.uleb128()
        try:
            sign_mode = SignMode(value)
        except ValueError:
            raise Exception(f"Unknown sign mode value: {value}") from None
        return SingleSignatureData(sign_mode, deserializer.to_bytes())


@dataclass(frozen=True)
class MultiSignatureData:
    bit_array: CompactBitArray
    signatures: Tuple[SignatureData, ...]

    def __str__(self) -> str:
        return f"[{self.bit_array}] {', '.join(str(s) for s in self.signatures)}"

    @staticmethod
    def from_key_map(
        public_key: MultiPublicKey,
        signatures_map: List[Tuple[PublicKey, SignatureData]],
    ) -> MultiSignatureData:
        """Build multi signature data from (member key, signature data) pairs.

        Each member key is located in ``public_key.keys``; nested signatures
        are ordered by that index regardless of input order.

        :raises ValueError: if a key is not a member or appears twice
        """
        bit_array = CompactBitArray(len(public_key.keys))
        indexed: List[Tuple[int, SignatureData]] = []
        for member_key, signature_data in signatures_map:
            index = public_key.keys.index(member_key)
            if bit_array.get_index(index):
                raise ValueError(f"Duplicate signature for key index {index}")
            bit_array.set_index(index, True)
            indexed.append((index, signature_data))

        indexed.sort(key=lambda entry: entry[0])
        return MultiSignatureData(bit_array, tuple(data for _, data in indexed))

    def serialize(self, serializer: Serializer):
        serializer.struct(self.bit_array)
        serializer.sequence(self.signatures, serialize_signature_data)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultiSignatureData:
        bit_array = deserializer.struct(CompactBitArray)
        signatures = deserializer.sequence(deserialize_signature_data)
        return MultiSignatureData(bit_array, tuple(signatures))


SignatureData = Union[SingleSignatureData, MultiSignatureData]

SINGLE: int = 0
MULTI: int = 1


def serialize_signature_data(serializer: Serializer, data: SignatureData):
    if isinstance(data, SingleSignatureData):
        serializer.uleb128(SINGLE)
    elif isinstance(data, MultiSignatureData):
        serializer.uleb128(MULTI)
    else:
        raise UnrecognizedSignatureDataError(data)
    serializer.struct(data)


def deserialize_signature_data(deserializer: Deserializer) -> SignatureData:
    variant = deserializer.uleb128()
    if variant == SINGLE:
        return deserializer.struct(SingleSignatureData)
    elif variant == MULTI:
        return deserializer.struct(MultiSignatureData)
    raise UnrecognizedSignatureDataError(variant)


def signature_data_to_bytes(data: SignatureData) -> bytes:
    ser = Serializer()
    serialize_signature_data(ser, data)
    return ser.output()


def signature_data_from_bytes(indata: bytes) -> SignatureData:
    der = Deserializer(indata)
    data = deserialize_signature_data(der)
    if der.remaining() != 0:
        raise Exception(f"Unexpected trailing bytes: {der.remaining()}")
    return data


class Test(unittest.TestCase):
    def test_bit_array_layout(self):
        bits = CompactBitArray(10)
        self.assertEqual(len(bits.elems), 2)
        bits.set_index(0, True)
        bits.set_index(9, True)
        self.assertEqual(bytes(bits.elems), b"\x80\x40")
        self.assertEqual(str(bits), "x________x")
        self.assertEqual(bits.true_indices(), [0, 9])
        self.assertEqual(bits.num_true_bits_before(9), 1)
        self.assertEqual(bits.num_true_bits_before(10), 2)

        bits.set_index(0, False)
        self.assertFalse(bits.get_index(0))
        self.assertFalse(bits.set_index(10, True))
        self.assertFalse(bits.get_index(10))

    def test_bit_array_rejects_stray_bits(self):
        with self.assertRaises(AssertionError):
            CompactBitArray(3, b"\x01")
        with self.assertRaises(AssertionError):
            CompactBitArray(3, b"\x00\x00")

    def test_bit_array_serialization(self):
        bits = CompactBitArray(3)
        bits.set_index(1, True)
        ser = Serializer()
        bits.serialize(ser)
        self.assertEqual(ser.output().hex(), "0340")
        self.assertEqual(CompactBitArray.deserialize(Deserializer(ser.output())), bits)

        with self.assertRaisesRegex(Exception, "Invalid bit array"):
            CompactBitArray.deserialize(Deserializer(bytes.fromhex("0301")))

    def test_single_encoding(self):
        data = SingleSignatureData(SignMode.LEGACY_AMINO_JSON, b"\xaa\xbb")
        self.assertEqual(signature_data_to_bytes(data).hex(), "007f02aabb")
        self.assertEqual(signature_data_from_bytes(bytes.fromhex("007f02aabb")), data)

    def test_nested_encoding(self):
        inner_bits = CompactBitArray(2)
        inner_bits.set_index(1, True)
        inner = MultiSignatureData(
            inner_bits, (SingleSignatureData(SignMode.TEXTUAL, b"\x02"),)
        )
        outer_bits = CompactBitArray(2)
        outer_bits.set_index(0, True)
        outer_bits.set_index(1, True)
        outer = MultiSignatureData(
            outer_bits, (SingleSignatureData(SignMode.DIRECT, b"\x01"), inner)
        )

        self.assertEqual(signature_data_from_bytes(signature_data_to_bytes(outer)), outer)

    def test_unknown_variant(self):
        with self.assertRaises(UnrecognizedSignatureDataError):
            signature_data_from_bytes(bytes.fromhex("0200"))
        with self.assertRaises(UnrecognizedSignatureDataError):
            signature_data_to_bytes("not signature data")  # type: ignore[arg-type]

    def test_trailing_bytes_rejected(self):
        with self.assertRaisesRegex(Exception, "trailing"):
            signature_data_from_bytes(bytes.fromhex("000100ff"))


if __name__ == "__main__":
    unittest.main()
