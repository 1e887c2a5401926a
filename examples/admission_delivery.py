# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
One verification cache shared by both checks of a transaction.

Workflow:
    1. Sign a transfer under SIGN_MODE_DIRECT
    2. Admission: the cache misses, the signature is verified and recorded
    3. Delivery: the cache hits and the entry is spent
    4. A replayed check verifies for real again

Usage:
    python -m examples.admission_delivery
"""

import logging

from tx_signing.cache import VerificationCache, VerificationCacheConfig
from tx_signing.ed25519 import PrivateKey
from tx_signing.handler_map import default_handler_map
from tx_signing.sign_mode import SignMode
from tx_signing.signature_data import SingleSignatureData
from tx_signing.tx_data import SignerData
from tx_signing.verify import SignatureVerifier

from .common import ACCOUNT_NUMBER, CHAIN_ID, SEQUENCE, transfer


def main():
    logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    handlers = default_handler_map()
    cache = VerificationCache(VerificationCacheConfig.from_env().capacity)
    verifier = SignatureVerifier(handlers, cache)

    alice = PrivateKey.random()
    signer = SignerData.for_key(CHAIN_ID, ACCOUNT_NUMBER, SEQUENCE, alice.public_key())
    tx = transfer(str(signer.address), "0x1", 1_000, alice.public_key().to_crypto_bytes())

    sign_bytes = handlers.get_sign_bytes(handlers.default_mode(), signer, tx)
    signature = SingleSignatureData(SignMode.DIRECT, alice.sign(sign_bytes).data())

    print("\n=== Admission ===")
    verifier.verify(alice.public_key(), signer, signature, tx)
    print(f"cached entries: {len(cache)}")

    print("\n=== Delivery ===")
    verifier.verify(alice.public_key(), signer, signature, tx)
    print(f"cached entries: {len(cache)}")

    print("\n=== Replay ===")
    verifier.verify(alice.public_key(), signer, signature, tx)
    print(f"cached entries: {len(cache)}")


if __name__ == "__main__":
    main()
