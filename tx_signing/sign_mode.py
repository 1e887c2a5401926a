# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Sign modes and the conversions between their two representations.

A sign mode selects the canonicalization algorithm that produced the bytes a
signer actually signed. Signature data carries the internal :class:`SignMode`;
sign-mode handlers are addressed by the external :class:`ApiSignMode`. Both
enums share the numeric values used on the wire.

Only DIRECT, TEXTUAL, DIRECT_AUX and LEGACY_AMINO_JSON convert. UNSPECIFIED is
rejected rather than treated as a default, and so is every other value
(including EIP_191 and integers that are not enum members).

Examples:
    Round trip::

        mode = api_sign_mode_to_internal(ApiSignMode.DIRECT)
        assert internal_sign_mode_to_api(mode) == ApiSignMode.DIRECT

    Rejection::

        api_sign_mode_to_internal(ApiSignMode.UNSPECIFIED)
        # raises UnsupportedSignModeError
"""

from __future__ import annotations

import unittest
from enum import IntEnum
from typing import Iterable, List, Union

from .errors import UnsupportedSignModeError


class SignMode(IntEnum):
    """Internal sign mode, as carried by single signature data."""

    UNSPECIFIED = 0
    DIRECT = 1
    TEXTUAL = 2
    DIRECT_AUX = 3
    LEGACY_AMINO_JSON = 127
    EIP_191 = 191


class ApiSignMode(IntEnum):
    """External sign mode, used to address sign-mode handlers."""

    UNSPECIFIED = 0
    DIRECT = 1
    TEXTUAL = 2
    DIRECT_AUX = 3
    LEGACY_AMINO_JSON = 127
    EIP_191 = 191


_API_TO_INTERNAL = {
    ApiSignMode.DIRECT: SignMode.DIRECT,
    ApiSignMode.LEGACY_AMINO_JSON: SignMode.LEGACY_AMINO_JSON,
    ApiSignMode.TEXTUAL: SignMode.TEXTUAL,
    ApiSignMode.DIRECT_AUX: SignMode.DIRECT_AUX,
}

_INTERNAL_TO_API = {internal: api for api, internal in _API_TO_INTERNAL.items()}


def api_sign_mode_to_internal(mode: Union[ApiSignMode, int]) -> SignMode:
    """Convert an external sign mode to the internal representation.

    :raises UnsupportedSignModeError: for UNSPECIFIED, EIP_191, internal
        enum members and any unknown value
    """
    if isinstance(mode, SignMode):
        raise UnsupportedSignModeError(mode)
    try:
        return _API_TO_INTERNAL[ApiSignMode(mode)]
    except (KeyError, ValueError, TypeError):
        raise UnsupportedSignModeError(mode) from None


def internal_sign_mode_to_api(mode: Union[SignMode, int]) -> ApiSignMode:
    """Convert an internal sign mode to the external representation.

    :raises UnsupportedSignModeError: for UNSPECIFIED, EIP_191, external
        enum members and any unknown value
    """
    if isinstance(mode, ApiSignMode):
        raise UnsupportedSignModeError(mode)
    try:
        return _INTERNAL_TO_API[SignMode(mode)]
    except (KeyError, ValueError, TypeError):
        raise UnsupportedSignModeError(mode) from None


def api_sign_modes_to_internal(modes: Iterable[Union[ApiSignMode, int]]) -> List[SignMode]:
    """Convert a list of external sign modes, failing on the first unsupported one."""
    return [api_sign_mode_to_internal(mode) for mode in modes]


def parse_sign_mode(name: str) -> ApiSignMode:
    """Parse a mode name such as ``DIRECT`` or ``SIGN_MODE_DIRECT`` (any case)."""
    normalized = name.strip().upper()
    if normalized.startswith("SIGN_MODE_"):
        normalized = normalized[len("SIGN_MODE_") :]
    try:
        mode = ApiSignMode[normalized]
    except KeyError:
        raise UnsupportedSignModeError(name) from None
    api_sign_mode_to_internal(mode)
    return mode


SUPPORTED_MODES = tuple(_API_TO_INTERNAL)


class Test(unittest.TestCase):
    def test_round_trip(self):
        for mode in SUPPORTED_MODES:
            internal = api_sign_mode_to_internal(mode)
            self.assertIsInstance(internal, SignMode)
            self.assertEqual(internal.name, mode.name)
            self.assertEqual(internal_sign_mode_to_api(internal), mode)

    def test_round_trip_from_internal(self):
        for mode in SignMode:
            if mode in (SignMode.UNSPECIFIED, SignMode.EIP_191):
                continue
            self.assertEqual(
                api_sign_mode_to_internal(internal_sign_mode_to_api(mode)), mode
            )

    def test_unspecified_rejected(self):
        with self.assertRaises(UnsupportedSignModeError):
            api_sign_mode_to_internal(ApiSignMode.UNSPECIFIED)
        with self.assertRaises(UnsupportedSignModeError):
            internal_sign_mode_to_api(SignMode.UNSPECIFIED)

    def test_unknown_values_rejected(self):
        for value in (ApiSignMode.EIP_191, 4, 126, -1, 1000):
            with self.assertRaises(UnsupportedSignModeError):
                api_sign_mode_to_internal(value)
        for value in (SignMode.EIP_191, 4, 126, -1, 1000):
            with self.assertRaises(UnsupportedSignModeError):
                internal_sign_mode_to_api(value)

    def test_plain_integers_convert(self):
        self.assertEqual(api_sign_mode_to_internal(127), SignMode.LEGACY_AMINO_JSON)
        self.assertEqual(internal_sign_mode_to_api(3), ApiSignMode.DIRECT_AUX)

    def test_wrong_enum_rejected(self):
        with self.assertRaises(UnsupportedSignModeError):
            api_sign_mode_to_internal(SignMode.DIRECT)
        with self.assertRaises(UnsupportedSignModeError):
            internal_sign_mode_to_api(ApiSignMode.DIRECT)

    def test_list_conversion(self):
        self.assertEqual(
            api_sign_modes_to_internal([ApiSignMode.DIRECT, ApiSignMode.TEXTUAL]),
            [SignMode.DIRECT, SignMode.TEXTUAL],
        )
        with self.assertRaises(UnsupportedSignModeError):
            api_sign_modes_to_internal([ApiSignMode.DIRECT, ApiSignMode.UNSPECIFIED])

    def test_parse_sign_mode(self):
        self.assertEqual(parse_sign_mode("direct"), ApiSignMode.DIRECT)
        self.assertEqual(
            parse_sign_mode("SIGN_MODE_LEGACY_AMINO_JSON"),
            ApiSignMode.LEGACY_AMINO_JSON,
        )
        with self.assertRaises(UnsupportedSignModeError):
            parse_sign_mode("unspecified")
        with self.assertRaises(UnsupportedSignModeError):
            parse_sign_mode("bogus")


if __name__ == "__main__":
    unittest.main()
