import typing

from behave import given, then, use_step_matcher, when

from tx_signing import ed25519
from tx_signing.cache import VerificationCache
from tx_signing.errors import VerificationError
from tx_signing.sign_mode import SignMode, internal_sign_mode_to_api
from tx_signing.signature_data import SingleSignatureData
from tx_signing.verify import verify_signature

use_step_matcher("re")


@given(r"a verification cache with capacity (?P<capacity>\d+)")
def given_cache(context: typing.Any, capacity: str):
    context.cache = VerificationCache(int(capacity))


@given(r"an? (?P<mode>[A-Z_]+) signature over the transaction")
def given_signature(context: typing.Any, mode: str):
    sign_mode = SignMode[mode]
    sign_bytes = context.handlers.get_sign_bytes(
        internal_sign_mode_to_api(sign_mode), context.signer, context.tx
    )
    if not hasattr(context, "signatures"):
        context.signatures = {}
    context.signatures[mode] = SingleSignatureData(
        sign_mode, context.private_key.sign(sign_bytes).data()
    )


def verify(context: typing.Any, pub_key: typing.Any, signature_data: typing.Any):
    context.error = None
    try:
        verify_signature(
            pub_key,
            context.signer,
            signature_data,
            context.handlers,
            context.tx,
            context.cache,
        )
    except VerificationError as e:
        context.error = e


@when(r"I verify the (?P<mode>[A-Z_]+) signature(?P<other> with another key)?")
def when_verify(context: typing.Any, mode: str, other: typing.Optional[str] = None):
    pub_key = context.pub_key
    if other:
        pub_key = ed25519.PrivateKey.random().public_key()
    verify(context, pub_key, context.signatures[mode])


@when(r"I verify unrecognized signature data")
def when_verify_unrecognized(context: typing.Any):
    verify(context, context.pub_key, b"not signature data")


@then(r"the cache should hold (?P<count>\d+) entr(?:y|ies)")
def then_cache_size(context: typing.Any, count: str):
    assert len(context.cache) == int(count), (
        "Expected " + count + " entries but got " + str(len(context.cache))
    )
