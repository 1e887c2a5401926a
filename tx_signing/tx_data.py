# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Transaction view and signer data consumed by the sign-mode handlers.

:class:`TxData` is a read-only view of a transaction: its body (messages,
memo, timeout height) and its auth info (signer infos and fee). Handlers
never see a decoded wire transaction, only this view, and
:meth:`TxData.body_bytes` / :meth:`TxData.auth_info_bytes` provide the
canonical BCS encodings that byte-oriented sign modes commit to.

:class:`SignerData` carries the per-signer context (chain id, account number,
sequence, address and public key). Both are request scoped and never cached.

Examples:
    Building a view from a JSON document::

        tx = TxData.from_dict(
            {
                "body": {
                    "messages": [
                        {
                            "type_url": "/cosmos.bank.v1beta1.MsgSend",
                            "amino_name": "cosmos-sdk/MsgSend",
                            "value": {"from_address": "...", "to_address": "..."},
                        }
                    ],
                    "memo": "rent",
                },
                "auth_info": {
                    "signer_infos": [
                        {"public_key": "0x...", "mode": "direct", "sequence": 3}
                    ],
                    "fee": {"amount": [{"denom": "uatom", "amount": "500"}], "gas_limit": 200000},
                },
            }
        )
        signer = SignerData.for_key("cosmoshub-4", 12, 3, public_key)
"""

from __future__ import annotations

import json
import unittest
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from . import asymmetric_crypto, ed25519
from .account_address import AccountAddress
from .bcs import Deserializer, Serializer
from .sign_mode import ApiSignMode, parse_sign_mode


@dataclass(frozen=True)
class SignerData:
    chain_id: str
    account_number: int
    sequence: int
    address: AccountAddress
    pub_key: Optional[asymmetric_crypto.PublicKey] = None

    @staticmethod
    def for_key(
        chain_id: str,
        account_number: int,
        sequence: int,
        pub_key: asymmetric_crypto.PublicKey,
        address: Optional[AccountAddress] = None,
    ) -> SignerData:
        """Signer data for ``pub_key``; the address is derived when not given."""
        if address is None:
            address = AccountAddress.from_key(pub_key)
        return SignerData(chain_id, account_number, sequence, address, pub_key)


@dataclass(frozen=True)
class Coin:
    denom: str
    amount: int

    def __str__(self) -> str:
        return f"{self.amount} {self.denom}"

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> Coin:
        return Coin(data["denom"], int(data["amount"]))

    def serialize(self, serializer: Serializer):
        serializer.str(self.denom)
        serializer.u128(self.amount)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Coin:
        return Coin(deserializer.str(), deserializer.u128())


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


def _json_default(value: Any) -> Any:
    if isinstance(value, MappingProxyType):
        return dict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


@dataclass(frozen=True)
class Message:
    """A transaction message.

    ``value`` is a JSON-compatible mapping, frozen on construction so the sign
    bytes cannot change after a signature was checked. ``amino_name`` is the
    legacy type name used by the human readable renderings and is not part of
    the body bytes.
    """

    type_url: str
    value: Mapping[str, Any] = field(hash=False)
    amino_name: str = ""

    def __post_init__(self):
        object.__setattr__(self, "value", _freeze(self.value))

    def value_json(self) -> str:
        return json.dumps(
            self.value,
            sort_keys=True,
            separators=(",", ":"),
            allow_nan=False,
            default=_json_default,
        )

    def plain_value(self) -> Dict[str, Any]:
        """A mutable copy of ``value`` with plain dicts and lists."""
        return json.loads(self.value_json())

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> Message:
        value = data.get("value", {})
        if not isinstance(value, dict):
            raise ValueError(f"Message value must be an object, got {type(value).__name__}")
        return Message(data["type_url"], value, data.get("amino_name", ""))

    def serialize(self, serializer: Serializer):
        serializer.str(self.type_url)
        serializer.str(self.value_json())

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Message:
        type_url = deserializer.str()
        return Message(type_url, json.loads(deserializer.str()))


@dataclass(frozen=True)
class TxBody:
    messages: Tuple[Message, ...]
    memo: str = ""
    timeout_height: int = 0

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> TxBody:
        return TxBody(
            tuple(Message.from_dict(m) for m in data.get("messages", [])),
            data.get("memo", ""),
            int(data.get("timeout_height", 0)),
        )

    def serialize(self, serializer: Serializer):
        serializer.sequence(self.messages, Serializer.struct)
        serializer.str(self.memo)
        serializer.u64(self.timeout_height)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> TxBody:
        messages = deserializer.sequence(Message.deserialize)
        return TxBody(tuple(messages), deserializer.str(), deserializer.u64())


@dataclass(frozen=True)
class Fee:
    amount: Tuple[Coin, ...]
    gas_limit: int
    payer: str = ""
    granter: str = ""

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> Fee:
        return Fee(
            tuple(Coin.from_dict(c) for c in data.get("amount", [])),
            int(data.get("gas_limit", 0)),
            data.get("payer", ""),
            data.get("granter", ""),
        )

    def serialize(self, serializer: Serializer):
        serializer.sequence(self.amount, Serializer.struct)
        serializer.u64(self.gas_limit)
        serializer.str(self.payer)
        serializer.str(self.granter)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Fee:
        amount = tuple(deserializer.sequence(Coin.deserialize))
        gas_limit = deserializer.u64()
        return Fee(amount, gas_limit, deserializer.str(), deserializer.str())


@dataclass(frozen=True)
class SignerInfo:
    public_key: bytes
    sign_mode: ApiSignMode
    sequence: int

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> SignerInfo:
        public_key = data.get("public_key", "")
        if public_key[0:2] == "0x":
            public_key = public_key[2:]
        return SignerInfo(
            bytes.fromhex(public_key),
            parse_sign_mode(data.get("mode", "direct")),
            int(data.get("sequence", 0)),
        )

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.public_key)
        serializer.uleb128(int(self.sign_mode))
        serializer.u64(self.sequence)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> SignerInfo:
        public_key = deserializer.to_bytes()
        value = deserializer.uleb128()
        try:
            sign_mode = ApiSignMode(value)
        except ValueError:
            raise Exception(f"Unknown sign mode value: {value}") from None
        return SignerInfo(public_key, sign_mode, deserializer.u64())


@dataclass(frozen=True)
class AuthInfo:
    signer_infos: Tuple[SignerInfo, ...]
    fee: Fee

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> AuthInfo:
        return AuthInfo(
            tuple(SignerInfo.from_dict(s) for s in data.get("signer_infos", [])),
            Fee.from_dict(data.get("fee", {})),
        )

    def serialize(self, serializer: Serializer):
        serializer.sequence(self.signer_infos, Serializer.struct)
        serializer.struct(self.fee)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> AuthInfo:
        signer_infos = tuple(deserializer.sequence(SignerInfo.deserialize))
        return AuthInfo(signer_infos, deserializer.struct(Fee))


@dataclass(frozen=True)
class TxData:
    body: TxBody
    auth_info: AuthInfo

    def body_bytes(self) -> bytes:
        ser = Serializer()
        ser.struct(self.body)
        return ser.output()

    def auth_info_bytes(self) -> bytes:
        ser = Serializer()
        ser.struct(self.auth_info)
        return ser.output()

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> TxData:
        return TxData(
            TxBody.from_dict(data.get("body", {})),
            AuthInfo.from_dict(data.get("auth_info", {})),
        )

    def serialize(self, serializer: Serializer):
        serializer.struct(self.body)
        serializer.struct(self.auth_info)
        # Amino names sit outside the body bytes, so they trail the view.
        serializer.sequence(
            [message.amino_name for message in self.body.messages], Serializer.str
        )

    @staticmethod
    def deserialize(deserializer: Deserializer) -> TxData:
        body = deserializer.struct(TxBody)
        auth_info = deserializer.struct(AuthInfo)
        amino_names = deserializer.sequence(Deserializer.str)
        if len(amino_names) != len(body.messages):
            raise Exception(
                f"Expected {len(body.messages)} amino names, got {len(amino_names)}"
            )
        messages = tuple(
            replace(message, amino_name=name)
            for message, name in zip(body.messages, amino_names)
        )
        return TxData(replace(body, messages=messages), auth_info)


def sample_tx_data(memo: str = "", sign_mode: ApiSignMode = ApiSignMode.DIRECT) -> TxData:
    """A small bank-send transaction used by tests across the package."""
    return TxData(
        TxBody(
            (
                Message(
                    "/cosmos.bank.v1beta1.MsgSend",
                    {
                        "amount": [{"amount": "10", "denom": "uatom"}],
                        "from_address": "cosmos1sender",
                        "to_address": "cosmos1receiver",
                    },
                    "cosmos-sdk/MsgSend",
                ),
            ),
            memo,
        ),
        AuthInfo(
            (SignerInfo(b"\x01" * 32, sign_mode, 7),),
            Fee((Coin("uatom", 500),), 200_000),
        ),
    )


class Test(unittest.TestCase):
    def test_body_bytes(self):
        body = TxBody((Message("/a.B", {"z": 1, "a": [True, None]}),), "m", 5)
        tx = TxData(body, AuthInfo((), Fee((), 0)))

        ser = Serializer()
        ser.uleb128(1)
        ser.str("/a.B")
        ser.str('{"a":[true,null],"z":1}')
        ser.str("m")
        ser.u64(5)
        self.assertEqual(tx.body_bytes(), ser.output())

    def test_auth_info_bytes(self):
        auth_info = AuthInfo(
            (SignerInfo(b"\xab", ApiSignMode.LEGACY_AMINO_JSON, 2),),
            Fee((Coin("uatom", 1),), 3, "payer"),
        )
        tx = TxData(TxBody(()), auth_info)
        expected = (
            "01"  # one signer info
            + "01ab"
            + "7f"
            + "0200000000000000"
            + "01"  # one coin
            + "05" + b"uatom".hex()
            + "01" + "00" * 15
            + "0300000000000000"
            + "05" + b"payer".hex()
            + "00"
        )
        self.assertEqual(tx.auth_info_bytes().hex(), expected)

    def test_deterministic_encoding(self):
        first = sample_tx_data("memo")
        second = sample_tx_data("memo")
        self.assertEqual(first.body_bytes(), second.body_bytes())
        self.assertNotEqual(first.body_bytes(), sample_tx_data("other").body_bytes())

    def test_serialization_round_trip(self):
        tx = sample_tx_data("memo")
        ser = Serializer()
        tx.serialize(ser)
        der = Deserializer(ser.output())
        decoded = TxData.deserialize(der)
        self.assertEqual(decoded, tx)
        self.assertEqual(der.remaining(), 0)
        self.assertEqual(decoded.body.messages[0].amino_name, "cosmos-sdk/MsgSend")
        self.assertEqual(decoded.body_bytes(), tx.body_bytes())

    def test_amino_names_must_match_messages(self):
        tx = sample_tx_data("memo")
        ser = Serializer()
        ser.struct(tx.body)
        ser.struct(tx.auth_info)
        ser.sequence([], Serializer.str)
        with self.assertRaises(Exception):
            TxData.deserialize(Deserializer(ser.output()))

    def test_message_value_is_frozen(self):
        value = {"amount": [{"amount": "10", "denom": "uatom"}], "to": "cosmos1a"}
        message = Message("/a.B", value)
        before = message.value_json()

        value["to"] = "cosmos1b"
        value["amount"][0]["amount"] = "99"
        self.assertEqual(message.value_json(), before)

        with self.assertRaises(TypeError):
            message.value["to"] = "cosmos1c"  # type: ignore[index]
        with self.assertRaises(TypeError):
            message.value["amount"][0]["amount"] = "1"
        with self.assertRaises(AttributeError):
            message.value["amount"].append({})

        plain = message.plain_value()
        plain["to"] = "cosmos1d"
        self.assertEqual(message.value_json(), before)
        self.assertEqual(message, Message("/a.B", json.loads(before)))

    def test_out_of_range_values_fail(self):
        negative = TxData(TxBody((), timeout_height=-1), AuthInfo((), Fee((), 0)))
        with self.assertRaises(Exception):
            negative.body_bytes()

        huge = TxData(TxBody(()), AuthInfo((), Fee((Coin("uatom", 2**128),), 0)))
        with self.assertRaises(Exception):
            huge.auth_info_bytes()

        not_json = TxData(TxBody((Message("/a.B", {"x": b"raw"}),)), AuthInfo((), Fee((), 0)))
        with self.assertRaises(TypeError):
            not_json.body_bytes()

    def test_from_dict(self):
        tx = TxData.from_dict(
            {
                "body": {
                    "messages": [
                        {
                            "type_url": "/cosmos.bank.v1beta1.MsgSend",
                            "amino_name": "cosmos-sdk/MsgSend",
                            "value": {"to_address": "cosmos1receiver"},
                        }
                    ],
                    "memo": "rent",
                    "timeout_height": "9",
                },
                "auth_info": {
                    "signer_infos": [
                        {"public_key": "0x0102", "mode": "SIGN_MODE_TEXTUAL", "sequence": 4}
                    ],
                    "fee": {
                        "amount": [{"denom": "uatom", "amount": "500"}],
                        "gas_limit": 200000,
                        "granter": "cosmos1granter",
                    },
                },
            }
        )
        self.assertEqual(tx.body.memo, "rent")
        self.assertEqual(tx.body.timeout_height, 9)
        self.assertEqual(tx.body.messages[0].amino_name, "cosmos-sdk/MsgSend")
        self.assertEqual(
            tx.auth_info.signer_infos[0],
            SignerInfo(b"\x01\x02", ApiSignMode.TEXTUAL, 4),
        )
        self.assertEqual(tx.auth_info.fee, Fee((Coin("uatom", 500),), 200000, "", "cosmos1granter"))

    def test_signer_data_for_key(self):
        public_key = ed25519.PrivateKey.random().public_key()
        signer = SignerData.for_key("chain", 1, 2, public_key)
        self.assertEqual(signer.address, AccountAddress.from_key(public_key))
        self.assertEqual(signer.pub_key, public_key)

        address = AccountAddress.from_str("0x1")
        self.assertEqual(SignerData.for_key("chain", 1, 2, public_key, address).address, address)


if __name__ == "__main__":
    unittest.main()
