# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Command-line interface for inspecting sign bytes and verifying signatures.

Supported Commands:
- sign-modes: List the sign modes of the default handler map
- sign-bytes: Print the hex sign bytes of a request's transaction
- verify: Verify a request's signature, printing ``ok`` or the failure

Request files are JSON documents::

    {
        "signer": {
            "chain_id": "cosmoshub-4",
            "account_number": 12,
            "sequence": 3,
            "public_key": {"ed25519": "0x..."}
        },
        "tx": {"body": {...}, "auth_info": {...}},
        "signature": {"single": {"mode": "direct", "signature": "0x..."}}
    }

Public keys are ``{"ed25519": hex}``, ``{"secp256k1": hex}`` or
``{"multisig": {"threshold": 2, "keys": [...]}}``. Multi signatures are
``{"multi": {"bit_array": "x_x", "signatures": [...]}}`` where ``x`` marks a
member that signed. See :meth:`tx_signing.tx_data.TxData.from_dict` for the
transaction layout.

Exit status is 0 on success, 1 when verification fails and 2 when the request
is malformed.

Examples:
    Verifying a request::

        python -m tx_signing.cli verify --request request.json

    Sign bytes for a specific mode::

        python -m tx_signing.cli sign-bytes --request request.json --mode textual
"""

from __future__ import annotations

import argparse
import contextlib
import io
import json
import logging
import os
import sys
import tempfile
import unittest
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from . import asymmetric_crypto, ed25519, secp256k1_ecdsa
from .account_address import AccountAddress, ParseAddressError
from .errors import VerificationError
from .handler_map import default_handler_map
from .multisig import MultiPublicKey
from .sign_mode import (
    ApiSignMode,
    api_sign_mode_to_internal,
    internal_sign_mode_to_api,
    parse_sign_mode,
)
from .signature_data import (
    CompactBitArray,
    MultiSignatureData,
    SignatureData,
    SingleSignatureData,
)
from .tx_data import SignerData, TxData, sample_tx_data
from .verify import verify_signature

COMMANDS = ["sign-modes", "sign-bytes", "verify"]


@dataclass(frozen=True)
class Request:
    pub_key: asymmetric_crypto.PublicKey
    signer_data: SignerData
    tx_data: TxData
    signature_data: Optional[SignatureData]


def _hex(value: str) -> bytes:
    if value[0:2] == "0x":
        value = value[2:]
    return bytes.fromhex(value)


def parse_public_key(data: Dict[str, Any]) -> asymmetric_crypto.PublicKey:
    if len(data) != 1:
        raise ValueError(f"Public key must have exactly one type, got {sorted(data)}")
    if "ed25519" in data:
        return ed25519.PublicKey.from_crypto_bytes(_hex(data["ed25519"]))
    if "secp256k1" in data:
        return secp256k1_ecdsa.PublicKey.from_crypto_bytes(_hex(data["secp256k1"]))
    if "multisig" in data:
        multisig = data["multisig"]
        keys = [parse_public_key(key) for key in multisig["keys"]]
        return MultiPublicKey(keys, int(multisig["threshold"]))
    raise ValueError(f"Unknown public key type: {next(iter(data))}")


def parse_signature_data(data: Dict[str, Any]) -> SignatureData:
    if "single" in data:
        single = data["single"]
        mode = api_sign_mode_to_internal(parse_sign_mode(single["mode"]))
        return SingleSignatureData(mode, _hex(single["signature"]))
    if "multi" in data:
        multi = data["multi"]
        marks = multi["bit_array"]
        bit_array = CompactBitArray(len(marks))
        for index, mark in enumerate(marks):
            if mark not in ("x", "_"):
                raise ValueError(f"Bit array marks must be 'x' or '_', got {mark!r}")
            bit_array.set_index(index, mark == "x")
        signatures = tuple(parse_signature_data(s) for s in multi["signatures"])
        return MultiSignatureData(bit_array, signatures)
    raise ValueError(f"Unknown signature data: {sorted(data)}")


def parse_request(data: Dict[str, Any]) -> Request:
    signer = data["signer"]
    pub_key = parse_public_key(signer["public_key"])
    address = signer.get("address")
    signer_data = SignerData.for_key(
        signer["chain_id"],
        int(signer["account_number"]),
        int(signer["sequence"]),
        pub_key,
        AccountAddress.from_str(address) if address is not None else None,
    )
    signature = data.get("signature")
    return Request(
        pub_key,
        signer_data,
        TxData.from_dict(data["tx"]),
        parse_signature_data(signature) if signature is not None else None,
    )


def load_request(path: str) -> Request:
    with open(path, encoding="utf-8") as f:
        return parse_request(json.load(f))


def main(args: List[str]) -> int:
    parser = argparse.ArgumentParser(description="Transaction signature tools")
    parser.add_argument(
        "command", type=str, help="The command to execute", choices=COMMANDS
    )
    parser.add_argument(
        "--request", help="Path to a JSON request file", type=str
    )
    parser.add_argument(
        "--mode",
        help="Sign mode for sign-bytes, e.g. 'direct' or 'SIGN_MODE_TEXTUAL'",
        type=str,
    )
    parser.add_argument(
        "--verbose", help="Log debug output to stderr", action="store_true"
    )
    parsed_args = parser.parse_args(args)

    if parsed_args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    handlers = default_handler_map()

    if parsed_args.command == "sign-modes":
        for supported in handlers.supported_modes():
            print(f"SIGN_MODE_{supported.name}")
        return 0

    if parsed_args.request is None:
        parser.error("Missing required argument '--request'")

    try:
        request = load_request(parsed_args.request)
        mode: Optional[ApiSignMode] = None
        if parsed_args.mode is not None:
            mode = parse_sign_mode(parsed_args.mode)
    except FileNotFoundError:
        parser.error(f"Request file not found: {parsed_args.request}")
    except OSError as e:
        parser.error(f"Cannot read request file: {e}")
    except VerificationError as e:
        parser.error(f"Invalid request: {e}")
    except (KeyError, TypeError, ValueError, AssertionError, ParseAddressError) as e:
        parser.error(f"Invalid request: {e!r}")

    if parsed_args.command == "sign-bytes":
        if mode is None:
            if isinstance(request.signature_data, SingleSignatureData):
                mode = internal_sign_mode_to_api(request.signature_data.sign_mode)
            else:
                mode = handlers.default_mode()
        try:
            sign_bytes = handlers.get_sign_bytes(mode, request.signer_data, request.tx_data)
        except VerificationError as e:
            print(e)
            return 1
        print(sign_bytes.hex())
        return 0

    if request.signature_data is None:
        parser.error("Request has no signature to verify")

    try:
        verify_signature(
            request.pub_key,
            request.signer_data,
            request.signature_data,
            handlers,
            request.tx_data,
        )
    except VerificationError as e:
        print(e)
        return 1
    print("ok")
    return 0


def console_main():
    sys.exit(main(sys.argv[1:]))


class Test(unittest.TestCase):
    def setUp(self):
        self.private_key = ed25519.PrivateKey.random()
        self.tx = sample_tx_data("cli")
        self.tx_json = {
            "body": {
                "messages": [
                    {
                        "type_url": message.type_url,
                        "amino_name": message.amino_name,
                        "value": message.plain_value(),
                    }
                    for message in self.tx.body.messages
                ],
                "memo": self.tx.body.memo,
            },
            "auth_info": {
                "signer_infos": [
                    {"public_key": "01" * 32, "mode": "direct", "sequence": 7}
                ],
                "fee": {
                    "amount": [{"denom": "uatom", "amount": "500"}],
                    "gas_limit": 200000,
                },
            },
        }
        self.assertEqual(TxData.from_dict(self.tx_json), self.tx)
        self.signer = SignerData.for_key("testing-1", 42, 7, self.private_key.public_key())
        self.directory = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.directory.cleanup()

    def signer_json(self, public_key: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "chain_id": "testing-1",
            "account_number": 42,
            "sequence": 7,
            "public_key": public_key,
        }

    def write_request(self, request: Dict[str, Any]) -> str:
        path = os.path.join(self.directory.name, "request.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump(request, f)
        return path

    def run_cli(self, args: List[str]):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            status = main(args)
        return status, out.getvalue().strip()

    def single_request(self, mode: str, signature: bytes) -> str:
        return self.write_request(
            {
                "signer": self.signer_json(
                    {"ed25519": str(self.private_key.public_key())}
                ),
                "tx": self.tx_json,
                "signature": {"single": {"mode": mode, "signature": signature.hex()}},
            }
        )

    def test_sign_modes(self):
        status, output = self.run_cli(["sign-modes"])
        self.assertEqual(status, 0)
        self.assertEqual(
            output.splitlines(),
            [
                "SIGN_MODE_DIRECT",
                "SIGN_MODE_TEXTUAL",
                "SIGN_MODE_DIRECT_AUX",
                "SIGN_MODE_LEGACY_AMINO_JSON",
            ],
        )

    def test_sign_bytes(self):
        path = self.single_request("textual", b"\x00" * 64)
        handlers = default_handler_map()

        status, output = self.run_cli(["sign-bytes", "--request", path])
        self.assertEqual(status, 0)
        expected = handlers.get_sign_bytes(ApiSignMode.TEXTUAL, self.signer, self.tx)
        self.assertEqual(output, expected.hex())

        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                main(["sign-bytes", "--request", path, "--mode", "amino_json"])

        status, output = self.run_cli(
            ["sign-bytes", "--request", path, "--mode", "SIGN_MODE_DIRECT"]
        )
        expected = handlers.get_sign_bytes(ApiSignMode.DIRECT, self.signer, self.tx)
        self.assertEqual(output, expected.hex())

    def test_verify(self):
        handlers = default_handler_map()
        sign_bytes = handlers.get_sign_bytes(
            ApiSignMode.LEGACY_AMINO_JSON, self.signer, self.tx
        )
        signature = self.private_key.sign(sign_bytes).data()

        status, output = self.run_cli(
            ["verify", "--request", self.single_request("legacy_amino_json", signature)]
        )
        self.assertEqual((status, output), (0, "ok"))

        status, output = self.run_cli(
            ["verify", "--request", self.single_request("direct", signature)]
        )
        self.assertEqual(status, 1)
        self.assertTrue(output.startswith("invalid_signature:"))

    def test_verify_multisig(self):
        other = secp256k1_ecdsa.PrivateKey.random()
        multi_key = MultiPublicKey([self.private_key.public_key(), other.public_key()], 1)
        signer = SignerData.for_key("testing-1", 42, 7, multi_key)
        sign_bytes = default_handler_map().get_sign_bytes(ApiSignMode.DIRECT, signer, self.tx)

        path = self.write_request(
            {
                "signer": self.signer_json(
                    {
                        "multisig": {
                            "threshold": 1,
                            "keys": [
                                {"ed25519": str(self.private_key.public_key())},
                                {"secp256k1": str(other.public_key())},
                            ],
                        }
                    }
                ),
                "tx": self.tx_json,
                "signature": {
                    "multi": {
                        "bit_array": "_x",
                        "signatures": [
                            {
                                "single": {
                                    "mode": "direct",
                                    "signature": other.sign(sign_bytes).data().hex(),
                                }
                            }
                        ],
                    }
                },
            }
        )
        self.assertEqual(self.run_cli(["verify", "--request", path]), (0, "ok"))

    def test_malformed_requests(self):
        missing_tx = self.write_request(
            {"signer": self.signer_json({"ed25519": str(self.private_key.public_key())})}
        )
        not_utf8 = os.path.join(self.directory.name, "latin1.json")
        with open(not_utf8, "wb") as f:
            f.write(b"\xff\xfe")
        for args in (
            ["verify"],
            ["verify", "--request", os.path.join(self.directory.name, "missing.json")],
            ["verify", "--request", missing_tx],
            ["sign-bytes", "--request", missing_tx],
            ["verify", "--request", self.directory.name],
            ["verify", "--request", not_utf8],
        ):
            with contextlib.redirect_stderr(io.StringIO()):
                with self.assertRaises(SystemExit) as context:
                    main(args)
            self.assertEqual(context.exception.code, 2)


if __name__ == "__main__":
    console_main()
