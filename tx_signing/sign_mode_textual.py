# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
SIGN_MODE_TEXTUAL: the signer commits to what a device screen shows.

The transaction is rendered into an ordered list of :class:`Screen` values.
Each screen has a title, content, an indentation level and an expert flag
(expert screens are only shown to users who ask for them). The sign bytes are
the BCS encoding of the screen sequence, so anything that changes what a user
would read also changes the bytes. The last screen holds the SHA-256 hash of
the body and auth info bytes, which ties the rendering to the exact encoded
transaction.

Screen order:
    chain id, account number, sequence, address, public key (expert),
    message count, each message and its fields, memo, fees,
    fee payer (expert), fee granter (expert), gas limit (expert),
    timeout height, hash of raw bytes (expert)

Examples:
    Showing screens to a user::

        for screen in render_screens(signer, tx):
            print("  " * screen.indent + f"{screen.title}: {screen.content}")
"""

from __future__ import annotations

import hashlib
import json
import unittest
from dataclasses import dataclass
from typing import Any, List

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


@dataclass(frozen=True)
class Screen:
    title: str
    content: str
    indent: int = 0
    expert: bool = False

    def serialize(self, serializer: Serializer):
        serializer.str(self.title)
        serializer.str(self.content)
        serializer.u8(self.indent)
        serializer.bool(self.expert)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Screen:
        title = deserializer.str()
        content = deserializer.str()
        return Screen(title, content, deserializer.u8(), deserializer.bool())


def _value_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, separators=(",", ":"), allow_nan=False)


def _count(value: int, name: str) -> str:
    if value < 0:
        raise ValueError(f"{name} must not be negative: {value}")
    return str(value)


def _message_screens(index: int, total: int, message: Message) -> List[Screen]:
    screens = [
        Screen(
            f"Message ({index + 1}/{total})",
            message.amino_name or message.type_url,
            indent=1,
        )
    ]
    value = message.plain_value()
    for key in sorted(value):
        screens.append(Screen(key, _value_text(value[key]), indent=2))
    return screens


def render_screens(signer_data: SignerData, tx_data: TxData) -> List[Screen]:
    body = tx_data.body
    fee = tx_data.auth_info.fee

    screens = [
        Screen("Chain id", signer_data.chain_id),
        Screen("Account number", _count(signer_data.account_number, "account number")),
        Screen("Sequence", _count(signer_data.sequence, "sequence")),
        Screen("Address", str(signer_data.address)),
    ]
    if signer_data.pub_key is not None:
        screens.append(
            Screen(
                "Public key",
                f"0x{signer_data.pub_key.to_crypto_bytes().hex()}",
                expert=True,
            )
        )

    total = len(body.messages)
    screens.append(
        Screen("", f"This transaction has {total} Message{'' if total == 1 else 's'}")
    )
    for index, message in enumerate(body.messages):
        screens.extend(_message_screens(index, total, message))

    if body.memo:
        screens.append(Screen("Memo", body.memo))
    if fee.amount:
        screens.append(Screen("Fees", ", ".join(str(coin) for coin in fee.amount)))
    if fee.payer:
        screens.append(Screen("Fee payer", fee.payer, expert=True))
    if fee.granter:
        screens.append(Screen("Fee granter", fee.granter, expert=True))
    screens.append(Screen("Gas limit", _count(fee.gas_limit, "gas limit"), expert=True))
    if body.timeout_height:
        screens.append(Screen("Timeout height", _count(body.timeout_height, "timeout height")))

    raw_hash = hashlib.sha256(tx_data.body_bytes() + tx_data.auth_info_bytes())
    screens.append(Screen("Hash of raw bytes", raw_hash.hexdigest(), expert=True))
    return screens


class SignModeTextualHandler(SignModeHandler):
    def mode(self) -> ApiSignMode:
        return ApiSignMode.TEXTUAL

    def get_sign_bytes(self, signer_data: SignerData, tx_data: TxData) -> bytes:
        ser = Serializer()
        ser.sequence(render_screens(signer_data, tx_data), Serializer.struct)
        return ser.output()


class Test(unittest.TestCase):
    def setUp(self):
        self.public_key = ed25519.PrivateKey.random().public_key()
        self.signer = SignerData.for_key("cosmoshub-4", 12, 3, self.public_key)

    def test_screens(self):
        tx = sample_tx_data("rent")
        screens = render_screens(self.signer, tx)

        self.assertEqual(screens[0], Screen("Chain id", "cosmoshub-4"))
        self.assertEqual(screens[1], Screen("Account number", "12"))
        self.assertEqual(screens[2], Screen("Sequence", "3"))
        self.assertEqual(screens[3], Screen("Address", str(self.signer.address)))
        self.assertEqual(
            screens[4],
            Screen("Public key", f"0x{self.public_key.to_crypto_bytes().hex()}", 0, True),
        )
        self.assertEqual(screens[5].content, "This transaction has 1 Message")
        self.assertEqual(
            screens[6], Screen("Message (1/1)", "cosmos-sdk/MsgSend", indent=1)
        )
        self.assertEqual(
            [s.title for s in screens[7:10]], ["amount", "from_address", "to_address"]
        )
        self.assertEqual(screens[7].content, '[{"amount":"10","denom":"uatom"}]')
        self.assertEqual(screens[8], Screen("from_address", "cosmos1sender", indent=2))
        self.assertIn(Screen("Memo", "rent"), screens)
        self.assertIn(Screen("Fees", "500 uatom"), screens)
        self.assertIn(Screen("Gas limit", "200000", expert=True), screens)

        expected_hash = hashlib.sha256(tx.body_bytes() + tx.auth_info_bytes()).hexdigest()
        self.assertEqual(screens[-1], Screen("Hash of raw bytes", expected_hash, expert=True))

    def test_optional_screens(self):
        tx = TxData(
            TxBody((Message("/a.B", {}), Message("/a.C", {})), "", 50),
            AuthInfo((), Fee((Coin("uatom", 1), Coin("stake", 2)), 9, "payer1", "granter1")),
        )
        signer = SignerData("chain", 1, 0, self.signer.address)
        titles = [screen.title for screen in render_screens(signer, tx)]

        self.assertNotIn("Public key", titles)
        self.assertNotIn("Memo", titles)
        self.assertIn("Fee payer", titles)
        self.assertIn("Fee granter", titles)
        self.assertIn("Timeout height", titles)
        self.assertIn("Message (2/2)", titles)
        self.assertIn(Screen("Fees", "1 uatom, 2 stake"), render_screens(signer, tx))

    def test_sign_bytes_encode_screens(self):
        tx = sample_tx_data()
        sign_bytes = SignModeTextualHandler().get_sign_bytes(self.signer, tx)

        der = Deserializer(sign_bytes)
        decoded = der.sequence(Screen.deserialize)
        self.assertEqual(der.remaining(), 0)
        self.assertEqual(decoded, render_screens(self.signer, tx))

    def test_bytes_follow_transaction(self):
        handler = SignModeTextualHandler()
        self.assertNotEqual(
            handler.get_sign_bytes(self.signer, sample_tx_data("a")),
            handler.get_sign_bytes(self.signer, sample_tx_data("b")),
        )

    def test_decoded_view_signs_the_same(self):
        tx = sample_tx_data("rent")
        ser = Serializer()
        tx.serialize(ser)
        decoded = TxData.deserialize(Deserializer(ser.output()))

        handler = SignModeTextualHandler()
        self.assertEqual(
            handler.get_sign_bytes(self.signer, decoded),
            handler.get_sign_bytes(self.signer, tx),
        )


if __name__ == "__main__":
    unittest.main()
