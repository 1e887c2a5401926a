# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
SIGN_MODE_LEGACY_AMINO_JSON: the human readable JSON document used by
hardware wallets that predate byte-oriented sign modes.

The document is compact UTF-8 JSON with keys sorted at every level. Integers
are rendered as decimal strings so no consumer loses precision, messages are
tagged with their amino name (falling back to the type URL), and the optional
fields (fee payer, fee granter, timeout height) are omitted when empty.
"""

from __future__ import annotations

import json
import unittest
from typing import Any, Dict

from . import ed25519
from .bcs import Deserializer, Serializer
from .handler_map import SignModeHandler
from .sign_mode import ApiSignMode
from .tx_data import (
    AuthInfo,
    Coin,
    Fee,
    Message,
    SignerData,
    TxBody,
    TxData,
    sample_tx_data,
)


def _message_json(message: Message) -> Dict[str, Any]:
    return {
        "type": message.amino_name or message.type_url,
        "value": message.plain_value(),
    }


def _fee_json(fee: Fee) -> Dict[str, Any]:
    fee_json: Dict[str, Any] = {
        "amount": [
            {"amount": str(_non_negative(coin.amount, "amount")), "denom": coin.denom}
            for coin in fee.amount
        ],
        "gas": str(_non_negative(fee.gas_limit, "gas")),
    }
    if fee.payer:
        fee_json["payer"] = fee.payer
    if fee.granter:
        fee_json["granter"] = fee.granter
    return fee_json


def _non_negative(value: int, name: str) -> int:
    if value < 0:
        raise ValueError(f"{name} must not be negative: {value}")
    return value


def sign_doc(signer_data: SignerData, tx_data: TxData) -> Dict[str, Any]:
    """The amino sign document as a JSON-compatible dict."""
    doc: Dict[str, Any] = {
        "account_number": str(_non_negative(signer_data.account_number, "account_number")),
        "chain_id": signer_data.chain_id,
        "fee": _fee_json(tx_data.auth_info.fee),
        "memo": tx_data.body.memo,
        "msgs": [_message_json(message) for message in tx_data.body.messages],
        "sequence": str(_non_negative(signer_data.sequence, "sequence")),
    }
    if tx_data.body.timeout_height:
        doc["timeout_height"] = str(
            _non_negative(tx_data.body.timeout_height, "timeout_height")
        )
    return doc


class SignModeLegacyAminoJSONHandler(SignModeHandler):
    def mode(self) -> ApiSignMode:
        return ApiSignMode.LEGACY_AMINO_JSON

    def get_sign_bytes(self, signer_data: SignerData, tx_data: TxData) -> bytes:
        return json.dumps(
            sign_doc(signer_data, tx_data),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        ).encode("utf-8")


class Test(unittest.TestCase):
    def setUp(self):
        public_key = ed25519.PrivateKey.random().public_key()
        self.signer = SignerData.for_key("cosmoshub-4", 12, 3, public_key)

    def test_document(self):
        sign_bytes = SignModeLegacyAminoJSONHandler().get_sign_bytes(
            self.signer, sample_tx_data("rent")
        )
        expected = (
            '{"account_number":"12","chain_id":"cosmoshub-4",'
            '"fee":{"amount":[{"amount":"500","denom":"uatom"}],"gas":"200000"},'
            '"memo":"rent",'
            '"msgs":[{"type":"cosmos-sdk/MsgSend","value":{'
            '"amount":[{"amount":"10","denom":"uatom"}],'
            '"from_address":"cosmos1sender","to_address":"cosmos1receiver"}}],'
            '"sequence":"3"}'
        )
        self.assertEqual(sign_bytes.decode("utf-8"), expected)

    def test_optional_fields(self):
        tx = TxData(
            TxBody((Message("/pkg.MsgNoAmino", {"b": 2, "a": 1}),), "", 99),
            AuthInfo((), Fee((Coin("uatom", 1),), 10, "payer1", "granter1")),
        )
        doc = json.loads(SignModeLegacyAminoJSONHandler().get_sign_bytes(self.signer, tx))
        self.assertEqual(doc["timeout_height"], "99")
        self.assertEqual(doc["fee"]["payer"], "payer1")
        self.assertEqual(doc["fee"]["granter"], "granter1")
        self.assertEqual(doc["msgs"][0]["type"], "/pkg.MsgNoAmino")

        plain = json.loads(
            SignModeLegacyAminoJSONHandler().get_sign_bytes(self.signer, sample_tx_data())
        )
        self.assertNotIn("timeout_height", plain)
        self.assertNotIn("payer", plain["fee"])
        self.assertNotIn("granter", plain["fee"])

    def test_unicode_memo(self):
        sign_bytes = SignModeLegacyAminoJSONHandler().get_sign_bytes(
            self.signer, sample_tx_data("café")
        )
        self.assertIn('"memo":"café"'.encode("utf-8"), sign_bytes)

    def test_negative_sequence_fails(self):
        signer = SignerData("cosmoshub-4", 12, -3, self.signer.address)
        with self.assertRaises(ValueError):
            SignModeLegacyAminoJSONHandler().get_sign_bytes(signer, sample_tx_data())

    def test_decoded_view_signs_the_same(self):
        tx = sample_tx_data("rent")
        ser = Serializer()
        tx.serialize(ser)
        decoded = TxData.deserialize(Deserializer(ser.output()))

        handler = SignModeLegacyAminoJSONHandler()
        self.assertEqual(
            handler.get_sign_bytes(self.signer, decoded),
            handler.get_sign_bytes(self.signer, tx),
        )


if __name__ == "__main__":
    unittest.main()
