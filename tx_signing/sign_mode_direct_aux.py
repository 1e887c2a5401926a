# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
SIGN_MODE_DIRECT_AUX: for auxiliary signers that do not pay fees.

The signer commits to the body bytes but not the auth info (so the fee can be
set by someone else afterwards). It also commits to its own public key and
sequence, which the auth info would otherwise carry. Sign bytes are the BCS
encoding of::

    SignDocDirectAux {
        body_bytes: bytes,
        public_key: bytes,
        chain_id: str,
        account_number: u64,
        sequence: u64,
    }
"""

from __future__ import annotations

import unittest
from dataclasses import dataclass

from . import ed25519
from .bcs import Serializer
from .errors import EncodingError
from .handler_map import SignModeHandler
from .sign_mode import ApiSignMode
from .tx_data import AuthInfo, Fee, SignerData, TxData, sample_tx_data


@dataclass(frozen=True)
class SignDocDirectAux:
    body_bytes: bytes
    public_key: bytes
    chain_id: str
    account_number: int
    sequence: int

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.body_bytes)
        serializer.to_bytes(self.public_key)
        serializer.str(self.chain_id)
        serializer.u64(self.account_number)
        serializer.u64(self.sequence)


class SignModeDirectAuxHandler(SignModeHandler):
    def mode(self) -> ApiSignMode:
        return ApiSignMode.DIRECT_AUX

    def get_sign_bytes(self, signer_data: SignerData, tx_data: TxData) -> bytes:
        if signer_data.pub_key is None:
            raise EncodingError(
                f"signer {signer_data.address} has no public key for DIRECT_AUX"
            )

        doc = SignDocDirectAux(
            tx_data.body_bytes(),
            signer_data.pub_key.to_crypto_bytes(),
            signer_data.chain_id,
            signer_data.account_number,
            signer_data.sequence,
        )
        ser = Serializer()
        ser.struct(doc)
        return ser.output()


class Test(unittest.TestCase):
    def setUp(self):
        self.public_key = ed25519.PrivateKey.random().public_key()
        self.signer = SignerData.for_key("testing-1", 42, 7, self.public_key)

    def test_sign_doc_layout(self):
        tx = sample_tx_data("aux")
        sign_bytes = SignModeDirectAuxHandler().get_sign_bytes(self.signer, tx)

        expected = Serializer()
        expected.to_bytes(tx.body_bytes())
        expected.to_bytes(self.public_key.to_crypto_bytes())
        expected.str("testing-1")
        expected.u64(42)
        expected.u64(7)
        self.assertEqual(sign_bytes, expected.output())

    def test_fee_not_committed(self):
        handler = SignModeDirectAuxHandler()
        tx = sample_tx_data("aux")
        refeed = TxData(tx.body, AuthInfo(tx.auth_info.signer_infos, Fee((), 1)))
        self.assertEqual(
            handler.get_sign_bytes(self.signer, tx),
            handler.get_sign_bytes(self.signer, refeed),
        )

    def test_sequence_committed(self):
        handler = SignModeDirectAuxHandler()
        tx = sample_tx_data()
        next_sequence = SignerData("testing-1", 42, 8, self.signer.address, self.public_key)
        self.assertNotEqual(
            handler.get_sign_bytes(self.signer, tx),
            handler.get_sign_bytes(next_sequence, tx),
        )

    def test_missing_public_key(self):
        signer = SignerData("testing-1", 42, 7, self.signer.address)
        with self.assertRaises(EncodingError):
            SignModeDirectAuxHandler().get_sign_bytes(signer, sample_tx_data())


if __name__ == "__main__":
    unittest.main()
