# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
SIGN_MODE_DIRECT: the signer commits to the exact body and auth info bytes.

Sign bytes are the BCS encoding of::

    SignDoc {
        body_bytes: bytes,
        auth_info_bytes: bytes,
        chain_id: str,
        account_number: u64,
    }
"""

from __future__ import annotations

import unittest
from dataclasses import dataclass

from . import ed25519
from .bcs import Serializer
from .handler_map import SignModeHandler
from .sign_mode import ApiSignMode
from .tx_data import SignerData, TxData, sample_tx_data


@dataclass(frozen=True)
class SignDoc:
    body_bytes: bytes
    auth_info_bytes: bytes
    chain_id: str
    account_number: int

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.body_bytes)
        serializer.to_bytes(self.auth_info_bytes)
        serializer.str(self.chain_id)
        serializer.u64(self.account_number)


class SignModeDirectHandler(SignModeHandler):
    def mode(self) -> ApiSignMode:
        return ApiSignMode.DIRECT

    def get_sign_bytes(self, signer_data: SignerData, tx_data: TxData) -> bytes:
        doc = SignDoc(
            tx_data.body_bytes(),
            tx_data.auth_info_bytes(),
            signer_data.chain_id,
            signer_data.account_number,
        )
        ser = Serializer()
        ser.struct(doc)
        return ser.output()


class Test(unittest.TestCase):
    def setUp(self):
        public_key = ed25519.PrivateKey.random().public_key()
        self.signer = SignerData.for_key("testing-1", 42, 7, public_key)
        self.tx = sample_tx_data("hello")

    def test_sign_doc_layout(self):
        sign_bytes = SignModeDirectHandler().get_sign_bytes(self.signer, self.tx)

        expected = Serializer()
        expected.to_bytes(self.tx.body_bytes())
        expected.to_bytes(self.tx.auth_info_bytes())
        expected.str("testing-1")
        expected.u64(42)
        self.assertEqual(sign_bytes, expected.output())
        self.assertTrue(sign_bytes.endswith((42).to_bytes(8, "little")))

    def test_bound_to_chain_and_account(self):
        handler = SignModeDirectHandler()
        base = handler.get_sign_bytes(self.signer, self.tx)
        self.assertEqual(base, handler.get_sign_bytes(self.signer, self.tx))

        other_chain = SignerData("testing-2", 42, 7, self.signer.address, self.signer.pub_key)
        other_account = SignerData("testing-1", 43, 7, self.signer.address, self.signer.pub_key)
        self.assertNotEqual(base, handler.get_sign_bytes(other_chain, self.tx))
        self.assertNotEqual(base, handler.get_sign_bytes(other_account, self.tx))
        self.assertNotEqual(base, handler.get_sign_bytes(self.signer, sample_tx_data("bye")))

    def test_negative_account_number_fails(self):
        signer = SignerData("testing-1", -1, 7, self.signer.address)
        with self.assertRaises(Exception):
            SignModeDirectHandler().get_sign_bytes(signer, self.tx)


if __name__ == "__main__":
    unittest.main()
