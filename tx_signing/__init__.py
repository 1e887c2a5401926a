# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
tx_signing - transaction signature verification across sign modes.

Given a transaction view, a claimed public key and signature data, the package
decides whether the signature is authentic under the sign mode it was
produced with, including threshold (multisig) signatures whose members signed
under different modes. A shared verification cache lets the second check of
a signature (admission, then delivery) skip the curve arithmetic.

Core Features:
- **Sign modes**: DIRECT, DIRECT_AUX, TEXTUAL and LEGACY_AMINO_JSON handlers
  behind a :class:`~tx_signing.handler_map.HandlerMap`
- **Keys**: Ed25519 (PyNaCl), secp256k1 ECDSA (ecdsa) and nested multisig keys
- **Verification cache**: bounded, thread safe, one-time consume on hit
- **Typed failures**: every failure is a
  :class:`~tx_signing.errors.VerificationError` with a ``kind``
- **CLI**: ``python -m tx_signing.cli`` for sign bytes and verification

Quick Start:
    Verify a DIRECT signature::

        from tx_signing.ed25519 import PrivateKey
        from tx_signing.handler_map import default_handler_map
        from tx_signing.sign_mode import SignMode
        from tx_signing.signature_data import SingleSignatureData
        from tx_signing.tx_data import SignerData
        from tx_signing.verify import SignatureVerifier

        handlers = default_handler_map()
        private_key = PrivateKey.random()
        signer = SignerData.for_key("testing-1", 42, 7, private_key.public_key())

        sign_bytes = handlers.get_sign_bytes(handlers.default_mode(), signer, tx)
        data = SingleSignatureData(SignMode.DIRECT, private_key.sign(sign_bytes).data())

        SignatureVerifier(handlers).verify(private_key.public_key(), signer, data, tx)
"""
