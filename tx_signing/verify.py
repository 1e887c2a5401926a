# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Signature verification against a transaction view.

:func:`verify_signature` checks that ``signature_data`` was produced by
``pub_key`` over the sign bytes of ``tx_data``. It dispatches on the
signature data variant:

- **Single**: the signature's sign mode selects a handler, the handler's sign
  bytes are verified with the key.
- **Multi**: the key must be multisig capable; it runs its own threshold
  policy and asks for sign bytes per nested sign mode through a callback.

Verification Cache:
    With a cache, single signatures follow a one-time policy. A successful
    real verification stores the key's crypto bytes under the
    (sign bytes, signature) pair. The next check of the same pair consumes the
    entry and succeeds only when the claimed key matches the stored one; a
    third check verifies for real again. Multi signature aggregates are never
    cached here.

Examples:
    Admission followed by delivery::

        verifier = SignatureVerifier(default_handler_map(), VerificationCache())
        verifier.verify(pub_key, signer, signature_data, tx)  # real check
        verifier.verify(pub_key, signer, signature_data, tx)  # cache hit
"""

from __future__ import annotations

import logging
import unittest
import unittest.mock
from typing import Optional

from . import asymmetric_crypto, ed25519, secp256k1_ecdsa
from .cache import VerificationCache, signature_cache_key
from .errors import (
    EncodingError,
    InvalidSignatureError,
    NotMultisigCapableError,
    SignatureMismatchError,
    UnrecognizedSignatureDataError,
    UnsupportedSignModeError,
)
from .handler_map import HandlerMap, default_handler_map
from .multisig import MultiPublicKey
from .sign_mode import ApiSignMode, SignMode, internal_sign_mode_to_api
from .signature_data import (
    CompactBitArray,
    MultiSignatureData,
    SignatureData,
    SingleSignatureData,
)
from .tx_data import SignerData, TxData, sample_tx_data

logger = logging.getLogger(__name__)


def verify_signature(
    pub_key: asymmetric_crypto.PublicKey,
    signer_data: SignerData,
    signature_data: SignatureData,
    handler_map: HandlerMap,
    tx_data: TxData,
    cache: Optional[VerificationCache] = None,
):
    """Raise a VerificationError unless ``signature_data`` is valid for ``pub_key``."""
    if isinstance(signature_data, SingleSignatureData):
        api_mode = internal_sign_mode_to_api(signature_data.sign_mode)
        sign_bytes = handler_map.get_sign_bytes(api_mode, signer_data, tx_data)
        _verify_single(pub_key, sign_bytes, signature_data.signature, cache)

    elif isinstance(signature_data, MultiSignatureData):
        if not isinstance(pub_key, asymmetric_crypto.MultisigPublicKey):
            raise NotMultisigCapableError(pub_key)

        def get_sign_bytes(mode: SignMode) -> bytes:
            return handler_map.get_sign_bytes(
                internal_sign_mode_to_api(mode), signer_data, tx_data
            )

        pub_key.verify_multisignature(get_sign_bytes, signature_data)

    else:
        raise UnrecognizedSignatureDataError(signature_data)


def _verify_single(
    pub_key: asymmetric_crypto.PublicKey,
    sign_bytes: bytes,
    signature: bytes,
    cache: Optional[VerificationCache],
):
    if cache is None:
        if not pub_key.verify(sign_bytes, signature):
            raise InvalidSignatureError("unable to verify single signer signature")
        return

    key = signature_cache_key(sign_bytes, signature)
    cached = cache.consume(key)
    if cached is not None:
        logger.debug(f"Verification cache hit for {key}")
        if cached != pub_key.to_crypto_bytes():
            logger.warning(f"Verification cache hit for {key} with a different public key")
            raise SignatureMismatchError(
                "cached signature was verified with a different public key"
            )
        return

    logger.debug(f"Verification cache miss for {key}")
    if not pub_key.verify(sign_bytes, signature):
        raise InvalidSignatureError("unable to verify single signer signature")
    cache.add(key, pub_key.to_crypto_bytes())


class SignatureVerifier:
    """Binds a handler map and an optional shared cache."""

    handler_map: HandlerMap
    cache: Optional[VerificationCache]

    def __init__(self, handler_map: HandlerMap, cache: Optional[VerificationCache] = None):
        self.handler_map = handler_map
        self.cache = cache

    def verify(
        self,
        pub_key: asymmetric_crypto.PublicKey,
        signer_data: SignerData,
        signature_data: SignatureData,
        tx_data: TxData,
    ):
        verify_signature(
            pub_key, signer_data, signature_data, self.handler_map, tx_data, self.cache
        )


class Test(unittest.TestCase):
    def setUp(self):
        self.handlers = default_handler_map()
        self.private_key = ed25519.PrivateKey.random()
        self.pub_key = self.private_key.public_key()
        self.signer = SignerData.for_key("testing-1", 42, 7, self.pub_key)
        self.tx = sample_tx_data("verify")

    def sign(
        self,
        private_key: asymmetric_crypto.PrivateKey,
        mode: SignMode = SignMode.DIRECT,
        signer: Optional[SignerData] = None,
    ) -> SingleSignatureData:
        sign_bytes = self.handlers.get_sign_bytes(
            internal_sign_mode_to_api(mode), signer or self.signer, self.tx
        )
        return SingleSignatureData(mode, private_key.sign(sign_bytes).data())

    def cache_key(self, data: SingleSignatureData) -> str:
        sign_bytes = self.handlers.get_sign_bytes(
            internal_sign_mode_to_api(data.sign_mode), self.signer, self.tx
        )
        return signature_cache_key(sign_bytes, data.signature)

    def test_every_mode_without_cache(self):
        for mode in (
            SignMode.DIRECT,
            SignMode.TEXTUAL,
            SignMode.DIRECT_AUX,
            SignMode.LEGACY_AMINO_JSON,
        ):
            data = self.sign(self.private_key, mode)
            verify_signature(self.pub_key, self.signer, data, self.handlers, self.tx)

    def test_wrong_key_without_cache(self):
        data = self.sign(self.private_key)
        other = ed25519.PrivateKey.random().public_key()
        with self.assertRaises(InvalidSignatureError):
            verify_signature(other, self.signer, data, self.handlers, self.tx)

    def test_secp256k1(self):
        private_key = secp256k1_ecdsa.PrivateKey.random()
        signer = SignerData.for_key("testing-1", 42, 7, private_key.public_key())
        data = self.sign(private_key, SignMode.LEGACY_AMINO_JSON, signer)
        verify_signature(private_key.public_key(), signer, data, self.handlers, self.tx)

    def test_miss_hit_miss(self):
        cache = VerificationCache(16)
        data = self.sign(self.private_key)
        key = self.cache_key(data)

        verify_signature(self.pub_key, self.signer, data, self.handlers, self.tx, cache)
        self.assertEqual(len(cache), 1)
        self.assertEqual(cache.get(key), self.pub_key.to_crypto_bytes())

        with unittest.mock.patch.object(
            ed25519.PublicKey, "verify", side_effect=AssertionError("not expected")
        ):
            verify_signature(self.pub_key, self.signer, data, self.handlers, self.tx, cache)
        self.assertEqual(len(cache), 0)

        with unittest.mock.patch.object(
            ed25519.PublicKey, "verify", autospec=True, return_value=True
        ) as real_verify:
            verify_signature(self.pub_key, self.signer, data, self.handlers, self.tx, cache)
        real_verify.assert_called_once()
        self.assertIn(key, cache)

    def test_hit_with_different_key(self):
        cache = VerificationCache(16)
        data = self.sign(self.private_key)
        verify_signature(self.pub_key, self.signer, data, self.handlers, self.tx, cache)

        other = ed25519.PrivateKey.random().public_key()
        with self.assertRaises(SignatureMismatchError):
            verify_signature(other, self.signer, data, self.handlers, self.tx, cache)
        # The entry was spent by the rejected attempt.
        self.assertEqual(len(cache), 0)

    def test_poisoned_entry(self):
        cache = VerificationCache(16)
        data = self.sign(self.private_key)
        other = ed25519.PrivateKey.random().public_key()
        cache.add(self.cache_key(data), other.to_crypto_bytes())

        with self.assertRaises(SignatureMismatchError):
            verify_signature(self.pub_key, self.signer, data, self.handlers, self.tx, cache)

    def test_invalid_signature_not_cached(self):
        cache = VerificationCache(16)
        data = SingleSignatureData(SignMode.DIRECT, b"\x00" * 64)
        with self.assertRaises(InvalidSignatureError):
            verify_signature(self.pub_key, self.signer, data, self.handlers, self.tx, cache)
        self.assertEqual(len(cache), 0)

    def test_evicted_entry_is_verified_again(self):
        cache = VerificationCache(1)
        first = self.sign(self.private_key)
        second = self.sign(self.private_key, SignMode.TEXTUAL)
        verify_signature(self.pub_key, self.signer, first, self.handlers, self.tx, cache)
        verify_signature(self.pub_key, self.signer, second, self.handlers, self.tx, cache)
        self.assertNotIn(self.cache_key(first), cache)

        with unittest.mock.patch.object(
            ed25519.PublicKey, "verify", autospec=True, return_value=False
        ):
            with self.assertRaises(InvalidSignatureError):
                verify_signature(
                    self.pub_key, self.signer, first, self.handlers, self.tx, cache
                )

    def test_sign_bytes_match_across_cache_paths(self):
        cache = VerificationCache(16)
        data = self.sign(self.private_key, SignMode.TEXTUAL)
        before = self.cache_key(data)
        verify_signature(self.pub_key, self.signer, data, self.handlers, self.tx, cache)
        self.assertIn(before, cache)
        verify_signature(self.pub_key, self.signer, data, self.handlers, self.tx, cache)
        self.assertEqual(before, self.cache_key(data))

    def test_unsupported_modes(self):
        for mode in (SignMode.UNSPECIFIED, SignMode.EIP_191):
            data = SingleSignatureData(mode, b"\x00" * 64)
            with self.assertRaises(UnsupportedSignModeError):
                verify_signature(self.pub_key, self.signer, data, self.handlers, self.tx)

        from .sign_mode_direct import SignModeDirectHandler

        direct_only = HandlerMap([SignModeDirectHandler()])
        data = self.sign(self.private_key, SignMode.TEXTUAL)
        with self.assertRaises(UnsupportedSignModeError):
            verify_signature(self.pub_key, self.signer, data, direct_only, self.tx)

    def test_encoding_error_propagates(self):
        signer = SignerData("testing-1", 42, 7, self.signer.address)
        data = SingleSignatureData(SignMode.DIRECT_AUX, b"\x00" * 64)
        with self.assertRaises(EncodingError):
            verify_signature(self.pub_key, signer, data, self.handlers, self.tx)

    def test_unrecognized_signature_data(self):
        for cache in (None, VerificationCache(4)):
            with self.assertRaises(UnrecognizedSignatureDataError):
                verify_signature(
                    self.pub_key, self.signer, b"raw", self.handlers, self.tx, cache  # type: ignore[arg-type]
                )

    def test_multisig_with_mixed_modes(self):
        private_keys = [
            ed25519.PrivateKey.random(),
            secp256k1_ecdsa.PrivateKey.random(),
            ed25519.PrivateKey.random(),
        ]
        keys = [key.public_key() for key in private_keys]
        multi_key = MultiPublicKey(keys, 2)
        signer = SignerData.for_key("testing-1", 42, 7, multi_key)

        data = MultiSignatureData.from_key_map(
            multi_key,
            [
                (keys[0], self.sign(private_keys[0], SignMode.DIRECT, signer)),
                (keys[1], self.sign(private_keys[1], SignMode.LEGACY_AMINO_JSON, signer)),
            ],
        )
        cache = VerificationCache(16)
        verifier = SignatureVerifier(self.handlers, cache)
        verifier.verify(multi_key, signer, data, self.tx)
        verifier.verify(multi_key, signer, data, self.tx)
        self.assertEqual(len(cache), 0)

        below = MultiSignatureData.from_key_map(
            multi_key, [(keys[2], self.sign(private_keys[2], SignMode.TEXTUAL, signer))]
        )
        with self.assertRaises(InvalidSignatureError):
            verifier.verify(multi_key, signer, below, self.tx)

    def test_multi_data_for_single_key(self):
        data = MultiSignatureData(CompactBitArray(2), ())
        with self.assertRaises(NotMultisigCapableError):
            verify_signature(self.pub_key, self.signer, data, self.handlers, self.tx)

    def test_verifier_binds_cache(self):
        cache = VerificationCache(4)
        verifier = SignatureVerifier(self.handlers, cache)
        verifier.verify(self.pub_key, self.signer, self.sign(self.private_key), self.tx)
        self.assertEqual(len(cache), 1)
        self.assertEqual(verifier.handler_map.default_mode(), ApiSignMode.DIRECT)


if __name__ == "__main__":
    unittest.main()
