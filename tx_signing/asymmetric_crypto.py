# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Key capability protocols.

Verification only relies on what a key can *do*, never on its class:

- :class:`PublicKey` checks a raw signature over sign bytes and exposes the
  canonical key bytes recorded in the verification cache.
- :class:`MultisigPublicKey` is an independent capability. A key that has it
  applies its own threshold policy to nested signatures, each of which may have
  been produced under a different sign mode, so it receives a callback mapping
  a sign mode to the matching sign bytes.
- :class:`PrivateKey` exists so callers can produce signatures to verify; key
  generation and storage are outside this package.

Examples:
    Capability checks::

        if isinstance(pub_key, MultisigPublicKey):
            pub_key.verify_multisignature(get_sign_bytes, multi_data)
        elif not pub_key.verify(sign_bytes, signature):
            ...

Note:
    These are Protocols (structural typing). Concrete keys subclass them to
    document intent, but anything with the right methods qualifies.
"""

from __future__ import annotations

import typing
from typing import Callable

from typing_extensions import Protocol, runtime_checkable

from .bcs import Deserializable, Serializable

if typing.TYPE_CHECKING:
    from .sign_mode import SignMode
    from .signature_data import MultiSignatureData


class PublicKey(Serializable, Protocol):
    def to_crypto_bytes(self) -> bytes:
        """Canonical key bytes.

        These are the bytes stored in, and compared against, verification
        cache entries, so two keys are the same signer exactly when their
        crypto bytes are equal.
        """
        ...

    def verify(self, data: bytes, signature: bytes) -> bool:
        """Return True if ``signature`` is valid over ``data`` for this key.

        Malformed signatures are reported as False rather than raised.
        """
        ...


@runtime_checkable
class MultisigPublicKey(Protocol):
    def verify_multisignature(
        self,
        get_sign_bytes: Callable[[SignMode], bytes],
        data: MultiSignatureData,
    ) -> None:
        """Verify nested signatures against this key's threshold policy.

        :param get_sign_bytes: returns the sign bytes for a nested signer's
            sign mode; may raise UnsupportedSignModeError or EncodingError,
            which must propagate unchanged
        :param data: the multi signature data to check
        :raises VerificationError: when the policy is not satisfied
        """
        ...


class PrivateKey(Serializable, Protocol):
    def public_key(self) -> PublicKey:
        ...

    def sign(self, data: bytes) -> Signature:
        ...


class Signature(Deserializable, Serializable, Protocol):
    def data(self) -> bytes:
        """Raw signature bytes as carried by single signature data."""
        ...
