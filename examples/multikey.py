# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
A 2-of-3 multisig key with members signing under different sign modes.

Workflow:
    1. Generate two Ed25519 keys and one secp256k1 key
    2. Combine them into a MultiPublicKey with threshold 2
    3. Member 1 signs the amino JSON document, member 3 the textual screens
    4. Verify the aggregate, then show what happens below the threshold

Usage:
    python -m examples.multikey
"""

from tx_signing import ed25519, secp256k1_ecdsa
from tx_signing.errors import VerificationError
from tx_signing.handler_map import default_handler_map
from tx_signing.multisig import MultiPublicKey
from tx_signing.sign_mode import SignMode, internal_sign_mode_to_api
from tx_signing.sign_mode_textual import render_screens
from tx_signing.signature_data import MultiSignatureData, SingleSignatureData
from tx_signing.tx_data import SignerData
from tx_signing.verify import verify_signature

from .common import ACCOUNT_NUMBER, CHAIN_ID, SEQUENCE, transfer


def main():
    handlers = default_handler_map()

    key_1 = secp256k1_ecdsa.PrivateKey.random()
    key_2 = ed25519.PrivateKey.random()
    key_3 = ed25519.PrivateKey.random()

    multi_key = MultiPublicKey(
        [key_1.public_key(), key_2.public_key(), key_3.public_key()], 2
    )
    signer = SignerData.for_key(CHAIN_ID, ACCOUNT_NUMBER, SEQUENCE, multi_key)
    tx = transfer(str(signer.address), "0x1", 1_000, multi_key.to_crypto_bytes())

    print("\n=== What member 3 sees ===")
    for screen in render_screens(signer, tx):
        if not screen.expert:
            print("  " * screen.indent + f"{screen.title}: {screen.content}")

    def sign(key, mode: SignMode) -> SingleSignatureData:
        sign_bytes = handlers.get_sign_bytes(internal_sign_mode_to_api(mode), signer, tx)
        return SingleSignatureData(mode, key.sign(sign_bytes).data())

    data = MultiSignatureData.from_key_map(
        multi_key,
        [
            (key_1.public_key(), sign(key_1, SignMode.LEGACY_AMINO_JSON)),
            (key_3.public_key(), sign(key_3, SignMode.TEXTUAL)),
        ],
    )
    verify_signature(multi_key, signer, data, handlers, tx)
    print(f"\n{multi_key} verified signers {data.bit_array}")

    single = MultiSignatureData.from_key_map(
        multi_key, [(key_2.public_key(), sign(key_2, SignMode.DIRECT))]
    )
    try:
        verify_signature(multi_key, signer, single, handlers, tx)
    except VerificationError as e:
        print(f"one signer is not enough: {e}")


if __name__ == "__main__":
    main()
