# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Bounded memo of successful signature verifications.

A transaction's signatures are checked twice in its lifecycle: once when it is
admitted and again when it is delivered. The verifier records every successful
real verification here, keyed by the (sign bytes, signature) pair, and the
second check consumes the entry instead of repeating the curve arithmetic.

The value of an entry is the crypto bytes of the public key that produced the
valid signature; the verifier compares it against the key claimed on the hit,
so a hit never vouches for a different key.

The cache itself is a mechanical memo: it does not know the consume-on-hit
policy, which lives in :mod:`tx_signing.verify`. It is bounded, evicts the
least recently used entry first and is safe to share between threads.

Examples:
    Sharing one cache between admission and delivery::

        cache = VerificationCache(VerificationCacheConfig.from_env().capacity)
        verifier = SignatureVerifier(default_handler_map(), cache)
"""

from __future__ import annotations

import hashlib
import logging
import os
import threading
import unittest
import unittest.mock
from collections import OrderedDict
from typing import Optional

from .bcs import Serializer

logger = logging.getLogger(__name__)


def signature_cache_key(sign_bytes: bytes, signature: bytes) -> str:
    """Hex SHA-256 over the length-prefixed sign bytes and signature."""
    ser = Serializer()
    ser.to_bytes(sign_bytes)
    ser.to_bytes(signature)
    return hashlib.sha256(ser.output()).hexdigest()


class VerificationCacheConfig:
    """Configuration for the verification cache.

    Attributes:
        capacity: Maximum number of entries kept before the least recently
            used one is evicted (default: 10000).

    Examples:
        Overriding from the environment::

            # TX_SIGNING_CACHE_CAPACITY=50000
            config = VerificationCacheConfig.from_env()

    Note:
        Every entry is written by one successful verification and spent by
        the next check of the same pair, so the cache only has to hold the
        signatures of transactions between admission and delivery.
    """

    ENV_CAPACITY = "TX_SIGNING_CACHE_CAPACITY"

    capacity: int = 10_000

    @staticmethod
    def from_env() -> VerificationCacheConfig:
        config = VerificationCacheConfig()
        value = os.environ.get(VerificationCacheConfig.ENV_CAPACITY)
        if value is not None:
            try:
                config.capacity = int(value)
            except ValueError:
                raise ValueError(
                    f"{VerificationCacheConfig.ENV_CAPACITY} must be an integer, got {value!r}"
                ) from None
        if config.capacity <= 0:
            raise ValueError(f"Cache capacity must be positive, got {config.capacity}")
        return config


class VerificationCache:
    capacity: int
    _entries: OrderedDict[str, bytes]
    _lock: threading.Lock

    def __init__(self, capacity: int = VerificationCacheConfig.capacity):
        if capacity <= 0:
            raise ValueError(f"Cache capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._entries = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            value = self._entries.get(key)
            if value is not None:
                self._entries.move_to_end(key)
            return value

    def add(self, key: str, pub_key_bytes: bytes):
        with self._lock:
            self._entries[key] = pub_key_bytes
            self._entries.move_to_end(key)
            while len(self._entries) > self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted verification cache entry {evicted}")

    def remove(self, key: str):
        with self._lock:
            self._entries.pop(key, None)

    def consume(self, key: str) -> Optional[bytes]:
        """Atomically return and remove the entry for ``key``.

        Two callers racing on the same key can never both receive the value.
        """
        with self._lock:
            return self._entries.pop(key, None)

    def clear(self):
        with self._lock:
            self._entries.clear()


class Test(unittest.TestCase):
    def test_cache_key(self):
        key = signature_cache_key(b"sign bytes", b"signature")
        self.assertEqual(key, signature_cache_key(b"sign bytes", b"signature"))
        self.assertEqual(len(key), 64)
        # Moving a byte across the boundary changes the key.
        self.assertNotEqual(
            signature_cache_key(b"ab", b"c"), signature_cache_key(b"a", b"bc")
        )

    def test_add_get_remove(self):
        cache = VerificationCache(4)
        self.assertIsNone(cache.get("k"))
        cache.add("k", b"\x01")
        self.assertIn("k", cache)
        self.assertEqual(cache.get("k"), b"\x01")
        cache.add("k", b"\x02")
        self.assertEqual(cache.get("k"), b"\x02")
        self.assertEqual(len(cache), 1)
        cache.remove("k")
        cache.remove("k")
        self.assertNotIn("k", cache)

    def test_consume_is_one_time(self):
        cache = VerificationCache(4)
        cache.add("k", b"\x01")
        self.assertEqual(cache.consume("k"), b"\x01")
        self.assertIsNone(cache.consume("k"))
        self.assertEqual(len(cache), 0)

    def test_lru_eviction(self):
        cache = VerificationCache(2)
        cache.add("a", b"a")
        cache.add("b", b"b")
        cache.get("a")
        cache.add("c", b"c")

        self.assertIn("a", cache)
        self.assertNotIn("b", cache)
        self.assertIn("c", cache)
        self.assertEqual(len(cache), 2)

    def test_contains_does_not_refresh(self):
        cache = VerificationCache(2)
        cache.add("a", b"a")
        cache.add("b", b"b")
        self.assertIn("a", cache)
        cache.add("c", b"c")
        self.assertNotIn("a", cache)

    def test_concurrent_consume(self):
        cache = VerificationCache(8)
        cache.add("k", b"\x01")
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(cache.consume("k"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual([r for r in results if r is not None], [b"\x01"])

    def test_clear(self):
        cache = VerificationCache(2)
        cache.add("a", b"a")
        cache.clear()
        self.assertEqual(len(cache), 0)

    def test_invalid_capacity(self):
        with self.assertRaises(ValueError):
            VerificationCache(0)

    def test_config_from_env(self):
        with unittest.mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(VerificationCacheConfig.from_env().capacity, 10_000)
        with unittest.mock.patch.dict(os.environ, {"TX_SIGNING_CACHE_CAPACITY": "25"}):
            self.assertEqual(VerificationCacheConfig.from_env().capacity, 25)
        with unittest.mock.patch.dict(os.environ, {"TX_SIGNING_CACHE_CAPACITY": "0"}):
            with self.assertRaises(ValueError):
                VerificationCacheConfig.from_env()
        with unittest.mock.patch.dict(os.environ, {"TX_SIGNING_CACHE_CAPACITY": "many"}):
            with self.assertRaises(ValueError):
                VerificationCacheConfig.from_env()


if __name__ == "__main__":
    unittest.main()
