# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Failure taxonomy for signature verification.

Every failure raised by the verifier, the handler map or a key's threshold
routine is a :class:`VerificationError` whose ``kind`` tells callers whether the
input was malformed, cryptographically invalid, or rejected by the verification
cache policy. Nothing in this package retries or suppresses these errors; the
surrounding pipeline decides whether a failure rejects a transaction at
admission or aborts it at delivery.

Examples:
    Distinguishing failure classes::

        try:
            verify_signature(pub_key, signer_data, sig_data, handlers, tx, cache)
        except InvalidSignatureError:
            reject("bad signature")
        except VerificationError as e:
            reject(f"{e.kind.value}: {e.message}")
"""

from __future__ import annotations

import unittest
from enum import Enum


class ErrorKind(Enum):
    UNSUPPORTED_MODE = "unsupported_mode"
    ENCODING_ERROR = "encoding_error"
    INVALID_SIGNATURE = "invalid_signature"
    SIGNATURE_MISMATCH = "signature_mismatch"
    NOT_MULTISIG_CAPABLE = "not_multisig_capable"
    UNRECOGNIZED_SIGNATURE_DATA = "unrecognized_signature_data"


class VerificationError(Exception):
    """Base class for every verification failure."""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class UnsupportedSignModeError(VerificationError):
    """A sign mode is unspecified, unknown, or has no registered handler."""

    kind = ErrorKind.UNSUPPORTED_MODE

    def __init__(self, mode: object):
        self.mode = mode
        super().__init__(f"unsupported sign mode {_mode_name(mode)}")


class EncodingError(VerificationError):
    """A handler could not produce sign bytes from the transaction data."""

    kind = ErrorKind.ENCODING_ERROR


class InvalidSignatureError(VerificationError):
    """The cryptographic check, or a multisig threshold check, failed."""

    kind = ErrorKind.INVALID_SIGNATURE


class SignatureMismatchError(VerificationError):
    """A cached verification exists but was recorded for a different key."""

    kind = ErrorKind.SIGNATURE_MISMATCH


class NotMultisigCapableError(VerificationError):
    kind = ErrorKind.NOT_MULTISIG_CAPABLE

    def __init__(self, pub_key: object):
        self.pub_key = pub_key
        super().__init__(
            f"expected a multisig public key, got {type(pub_key).__name__}"
        )


class UnrecognizedSignatureDataError(VerificationError):
    kind = ErrorKind.UNRECOGNIZED_SIGNATURE_DATA

    def __init__(self, signature_data: object):
        self.signature_data = signature_data
        super().__init__(
            f"unexpected signature data {type(signature_data).__name__}"
        )


def _mode_name(mode: object) -> str:
    name = getattr(mode, "name", None)
    if name is not None:
        return f"SIGN_MODE_{name}"
    return repr(mode)


class Test(unittest.TestCase):
    def test_kind_in_message(self):
        error = InvalidSignatureError("unable to verify single signer signature")
        self.assertEqual(
            str(error), "invalid_signature: unable to verify single signer signature"
        )
        self.assertIsInstance(error, VerificationError)

    def test_unsupported_mode_message(self):
        self.assertEqual(
            str(UnsupportedSignModeError(191)), "unsupported_mode: unsupported sign mode 191"
        )

    def test_every_kind_has_an_error(self):
        kinds = {
            cls.kind
            for cls in (
                UnsupportedSignModeError,
                EncodingError,
                InvalidSignatureError,
                SignatureMismatchError,
                NotMultisigCapableError,
                UnrecognizedSignatureDataError,
            )
        }
        self.assertEqual(kinds, set(ErrorKind))

    def test_type_names_in_messages(self):
        self.assertIn("bytes", str(UnrecognizedSignatureDataError(b"")))
        self.assertIn("str", str(NotMultisigCapableError("key")))


if __name__ == "__main__":
    unittest.main()
