# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Registry of sign-mode handlers.

A handler turns (signer data, transaction view) into the canonical bytes a
signer committed to under one sign mode. :class:`HandlerMap` dispatches on the
external sign mode and normalizes failures: an unregistered mode raises
UnsupportedSignModeError and any other failure raised while encoding becomes
an EncodingError chained to its cause.

Examples:
    Using the default handlers::

        handlers = default_handler_map()
        handlers.default_mode()  # ApiSignMode.DIRECT
        sign_bytes = handlers.get_sign_bytes(ApiSignMode.TEXTUAL, signer, tx)
"""

from __future__ import annotations

import logging
import unittest
from typing import Dict, List, Sequence

from typing_extensions import Protocol

from .errors import EncodingError, UnsupportedSignModeError, VerificationError
from .sign_mode import ApiSignMode
from .tx_data import SignerData, TxData

logger = logging.getLogger(__name__)


class SignModeHandler(Protocol):
    def mode(self) -> ApiSignMode:
        ...

    def get_sign_bytes(self, signer_data: SignerData, tx_data: TxData) -> bytes:
        """Canonical bytes for ``tx_data`` signed by ``signer_data``."""
        ...


class HandlerMap:
    _handlers: Dict[ApiSignMode, SignModeHandler]
    _default_mode: ApiSignMode

    def __init__(self, handlers: Sequence[SignModeHandler]):
        if len(handlers) == 0:
            raise ValueError("At least one sign mode handler is required")

        self._handlers = {}
        for handler in handlers:
            mode = handler.mode()
            if mode in self._handlers:
                raise ValueError(f"Duplicate sign mode handler for {mode.name}")
            self._handlers[mode] = handler
        self._default_mode = handlers[0].mode()

    def default_mode(self) -> ApiSignMode:
        return self._default_mode

    def supported_modes(self) -> List[ApiSignMode]:
        return list(self._handlers)

    def get_sign_bytes(
        self, mode: ApiSignMode, signer_data: SignerData, tx_data: TxData
    ) -> bytes:
        handler = self._handlers.get(mode)
        if handler is None:
            raise UnsupportedSignModeError(mode)

        try:
            sign_bytes = handler.get_sign_bytes(signer_data, tx_data)
        except VerificationError:
            raise
        except Exception as e:
            raise EncodingError(
                f"unable to encode {handler.mode().name} sign bytes: {e}"
            ) from e

        logger.debug(f"{handler.mode().name} sign bytes: {len(sign_bytes)} bytes")
        return sign_bytes


def default_handler_map() -> HandlerMap:
    """Handlers for every supported mode, DIRECT first (the default)."""
    from .sign_mode_amino_json import SignModeLegacyAminoJSONHandler
    from .sign_mode_direct import SignModeDirectHandler
    from .sign_mode_direct_aux import SignModeDirectAuxHandler
    from .sign_mode_textual import SignModeTextualHandler

    return HandlerMap(
        [
            SignModeDirectHandler(),
            SignModeTextualHandler(),
            SignModeDirectAuxHandler(),
            SignModeLegacyAminoJSONHandler(),
        ]
    )


class _StaticHandler(SignModeHandler):
    def __init__(self, mode: ApiSignMode, output: bytes = b"static"):
        self._mode = mode
        self._output = output

    def mode(self) -> ApiSignMode:
        return self._mode

    def get_sign_bytes(self, signer_data: SignerData, tx_data: TxData) -> bytes:
        return self._output


class _FailingHandler(_StaticHandler):
    def __init__(self, mode: ApiSignMode, error: Exception):
        super().__init__(mode)
        self._error = error

    def get_sign_bytes(self, signer_data: SignerData, tx_data: TxData) -> bytes:
        raise self._error


class Test(unittest.TestCase):
    def test_dispatch_and_default(self):
        handlers = HandlerMap(
            [
                _StaticHandler(ApiSignMode.TEXTUAL, b"textual"),
                _StaticHandler(ApiSignMode.DIRECT, b"direct"),
            ]
        )
        self.assertEqual(handlers.default_mode(), ApiSignMode.TEXTUAL)
        self.assertEqual(
            handlers.supported_modes(), [ApiSignMode.TEXTUAL, ApiSignMode.DIRECT]
        )
        self.assertEqual(
            handlers.get_sign_bytes(ApiSignMode.DIRECT, None, None), b"direct"  # type: ignore[arg-type]
        )

    def test_unregistered_mode(self):
        handlers = HandlerMap([_StaticHandler(ApiSignMode.DIRECT)])
        with self.assertRaises(UnsupportedSignModeError):
            handlers.get_sign_bytes(ApiSignMode.TEXTUAL, None, None)  # type: ignore[arg-type]

    def test_registration_errors(self):
        with self.assertRaisesRegex(ValueError, "Duplicate"):
            HandlerMap(
                [_StaticHandler(ApiSignMode.DIRECT), _StaticHandler(ApiSignMode.DIRECT)]
            )
        with self.assertRaises(ValueError):
            HandlerMap([])

    def test_failures_become_encoding_errors(self):
        cause = Exception("Cannot encode -1 into u64")
        handlers = HandlerMap([_FailingHandler(ApiSignMode.DIRECT, cause)])
        with self.assertRaises(EncodingError) as context:
            handlers.get_sign_bytes(ApiSignMode.DIRECT, None, None)  # type: ignore[arg-type]
        self.assertIs(context.exception.__cause__, cause)

    def test_taxonomy_errors_pass_through(self):
        error = EncodingError("missing public key")
        handlers = HandlerMap([_FailingHandler(ApiSignMode.DIRECT_AUX, error)])
        with self.assertRaises(EncodingError) as context:
            handlers.get_sign_bytes(ApiSignMode.DIRECT_AUX, None, None)  # type: ignore[arg-type]
        self.assertIs(context.exception, error)

    def test_default_handler_map(self):
        handlers = default_handler_map()
        self.assertEqual(handlers.default_mode(), ApiSignMode.DIRECT)
        self.assertEqual(
            set(handlers.supported_modes()),
            {
                ApiSignMode.DIRECT,
                ApiSignMode.TEXTUAL,
                ApiSignMode.DIRECT_AUX,
                ApiSignMode.LEGACY_AMINO_JSON,
            },
        )


if __name__ == "__main__":
    unittest.main()
