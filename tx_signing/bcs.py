# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Binary Canonical Serialization (BCS) used for every deterministic encoding in
tx_signing.

Sign bytes are hashed, signed and used as verification cache keys, so the same
logical value must always produce the same bytes. BCS gives exactly one valid
encoding per value: fixed-width little-endian integers, ULEB128 lengths, and
structs encoded field by field in declaration order.

Learn more at https://github.com/diem/bcs

Examples:
    Encoding a sign document by hand::

        ser = Serializer()
        ser.to_bytes(body_bytes)
        ser.str(chain_id)
        ser.u64(account_number)
        sign_bytes = ser.output()

    Types that implement ``serialize``/``deserialize`` plug into
    ``Serializer.struct`` and ``Deserializer.struct``::

        class Coin:
            def serialize(self, serializer: Serializer):
                serializer.str(self.denom)
                serializer.u128(self.amount)
"""

from __future__ import annotations

import io
import typing
import unittest
from typing import List

from typing_extensions import Protocol

MAX_U8 = 2**8 - 1
MAX_U32 = 2**32 - 1
MAX_U64 = 2**64 - 1
MAX_U128 = 2**128 - 1


class Deserializable(Protocol):
    """Objects that can be rebuilt from a BCS byte stream."""

    @classmethod
    def from_bytes(cls, indata: bytes) -> Deserializable:
        """Decode a complete value; trailing bytes are rejected."""
        der = Deserializer(indata)
        value = der.struct(cls)
        if der.remaining() != 0:
            raise Exception(f"Unexpected trailing bytes: {der.remaining()}")
        return value

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Deserializable:
        ...


class Serializable(Protocol):
    """Objects that can be written to a BCS byte stream."""

    def to_bytes(self) -> bytes:
        ser = Serializer()
        ser.struct(self)
        return ser.output()

    def serialize(self, serializer: Serializer):
        ...


class Deserializer:
    """Reads BCS values from a byte buffer, front to back.

    Every read either returns a complete value or raises; a short buffer is
    never padded.
    """

    _input: io.BytesIO
    _length: int

    def __init__(self, data: bytes):
        self._length = len(data)
        self._input = io.BytesIO(data)

    def remaining(self) -> int:
        return self._length - self._input.tell()

    def bool(self) -> bool:
        value = self._read_int(1)
        if value == 0:
            return False
        elif value == 1:
            return True
        else:
            raise Exception(f"Unexpected boolean value: {value}")

    def to_bytes(self) -> bytes:
        """Read a ULEB128 length followed by that many raw bytes."""
        return self._read(self.uleb128())

    def fixed_bytes(self, length: int) -> bytes:
        return self._read(length)

    def sequence(
        self,
        value_decoder: typing.Callable[[Deserializer], typing.Any],
    ) -> List[typing.Any]:
        length = self.uleb128()
        values: List = []
        while len(values) < length:
            values.append(value_decoder(self))
        return values

    def str(self) -> str:
        return self.to_bytes().decode()

    def struct(self, struct: typing.Any) -> typing.Any:
        return struct.deserialize(self)

    def u8(self) -> int:
        return self._read_int(1)

    def u32(self) -> int:
        return self._read_int(4)

    def u64(self) -> int:
        return self._read_int(8)

    def u128(self) -> int:
        return self._read_int(16)

    def uleb128(self) -> int:
        """Read a ULEB128 integer bounded to the u32 range.

        Non-canonical encodings (redundant trailing zero groups) are rejected
        so that every length has a single byte representation.
        """
        value = 0
        shift = 0
        consumed = 0

        while value <= MAX_U32:
            byte = self._read_int(1)
            consumed += 1
            value |= (byte & 0x7F) << shift
            if byte & 0x80 == 0:
                if byte == 0 and consumed > 1:
                    raise Exception("Non-canonical uleb128 encoding")
                break
            shift += 7

        if value > MAX_U32:
            raise Exception("Unexpectedly large uleb128 value")

        return value

    def _read(self, length: int) -> bytes:
        value = self._input.read(length)
        if value is None or len(value) < length:
            actual_length = 0 if value is None else len(value)
            raise Exception(
                f"Unexpected end of input. Requested: {length}, found: {actual_length}"
            )
        return value

    def _read_int(self, length: int) -> int:
        return int.from_bytes(self._read(length), byteorder="little", signed=False)


class Serializer:
    """Accumulates BCS-encoded values into an in-memory buffer.

    Integer writers range check their input and raise instead of truncating,
    which is what lets sign-mode handlers report malformed transactions as
    encoding failures.
    """

    _output: io.BytesIO

    def __init__(self):
        self._output = io.BytesIO()

    def output(self) -> bytes:
        return self._output.getvalue()

    def bool(self, value: bool):
        self._write_int(int(value), 1)

    def to_bytes(self, value: bytes):
        self.uleb128(len(value))
        self._output.write(value)

    def fixed_bytes(self, value):
        self._output.write(value)

    @staticmethod
    def sequence_serializer(
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        return lambda self, values: self.sequence(values, value_encoder)

    def sequence(
        self,
        values: typing.Sequence[typing.Any],
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        self.uleb128(len(values))
        for value in values:
            self.fixed_bytes(encoder(value, value_encoder))

    def str(self, value: str):
        self.to_bytes(value.encode())

    def struct(self, value: typing.Any):
        value.serialize(self)

    def u8(self, value: int):
        self._check_range(value, MAX_U8, "u8")
        self._write_int(value, 1)

    def u32(self, value: int):
        self._check_range(value, MAX_U32, "u32")
        self._write_int(value, 4)

    def u64(self, value: int):
        self._check_range(value, MAX_U64, "u64")
        self._write_int(value, 8)

    def u128(self, value: int):
        self._check_range(value, MAX_U128, "u128")
        self._write_int(value, 16)

    def uleb128(self, value: int):
        self._check_range(value, MAX_U32, "uleb128")

        while value >= 0x80:
            # Low 7 bits with the continuation bit set.
            self.u8((value & 0x7F) | 0x80)
            value >>= 7

        self.u8(value & 0x7F)

    @staticmethod
    def _check_range(value: int, maximum: int, name: str):
        if not isinstance(value, int) or isinstance(value, bool):
            raise Exception(f"Cannot encode {value!r} into {name}")
        if value < 0 or value > maximum:
            raise Exception(f"Cannot encode {value} into {name}")

    def _write_int(self, value: int, length: int):
        self._output.write(value.to_bytes(length, "little", signed=False))


def encoder(
    value: typing.Any, encoder: typing.Callable[[Serializer, typing.Any], typing.Any]
) -> bytes:
    """Encode a single value with ``encoder`` into a fresh buffer."""
    ser = Serializer()
    encoder(ser, value)
    return ser.output()


class Test(unittest.TestCase):
    def test_uleb128_vectors(self):
        vectors = {
            0: "00",
            127: "7f",
            128: "8001",
            300: "ac02",
            16384: "808001",
            MAX_U32: "ffffffff0f",
        }
        for value, expected in vectors.items():
            ser = Serializer()
            ser.uleb128(value)
            self.assertEqual(ser.output().hex(), expected)
            self.assertEqual(Deserializer(ser.output()).uleb128(), value)

    def test_uleb128_rejects_non_canonical(self):
        with self.assertRaises(Exception):
            Deserializer(bytes.fromhex("8000")).uleb128()

    def test_uleb128_rejects_overflow(self):
        with self.assertRaises(Exception):
            Serializer().uleb128(MAX_U32 + 1)
        with self.assertRaises(Exception):
            Deserializer(bytes.fromhex("ffffffff1f")).uleb128()

    def test_integers_are_little_endian(self):
        ser = Serializer()
        ser.u32(1)
        ser.u64(0x0102)
        self.assertEqual(ser.output().hex(), "01000000" + "0201000000000000")

    def test_integer_range_checks(self):
        with self.assertRaises(Exception):
            Serializer().u8(256)
        with self.assertRaises(Exception):
            Serializer().u64(-1)
        with self.assertRaises(Exception):
            Serializer().u128(MAX_U128 + 1)
        with self.assertRaises(Exception):
            Serializer().u64(True)

    def test_bytes_and_str(self):
        ser = Serializer()
        ser.to_bytes(b"\x01\x02")
        ser.str("chain")
        der = Deserializer(ser.output())
        self.assertEqual(der.to_bytes(), b"\x01\x02")
        self.assertEqual(der.str(), "chain")
        self.assertEqual(der.remaining(), 0)

    def test_sequence(self):
        in_value = ["a", "abc", "def"]

        ser = Serializer()
        ser.sequence(in_value, Serializer.str)
        der = Deserializer(ser.output())

        self.assertEqual(der.sequence(Deserializer.str), in_value)

    def test_sequence_serializer(self):
        ser = Serializer()
        Serializer.sequence_serializer(Serializer.u8)(ser, [1, 2])
        self.assertEqual(ser.output().hex(), "020102")

    def test_bool_error(self):
        with self.assertRaises(Exception):
            Deserializer(b"\x02").bool()

    def test_short_input(self):
        with self.assertRaisesRegex(Exception, "Unexpected end of input"):
            Deserializer(b"\x05ab").to_bytes()


if __name__ == "__main__":
    unittest.main()
