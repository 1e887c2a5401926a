import typing

from behave import given, then, use_step_matcher

from tx_signing import ed25519, secp256k1_ecdsa
from tx_signing.handler_map import default_handler_map
from tx_signing.tx_data import SignerData, sample_tx_data

# Use regular expressions
use_step_matcher("re")


@given(r"an? (?P<key_type>ed25519|secp256k1) signer on chain (?P<chain_id>\S+)")
def given_signer(context: typing.Any, key_type: str, chain_id: str):
    if key_type == "ed25519":
        context.private_key = ed25519.PrivateKey.random()
    else:
        context.private_key = secp256k1_ecdsa.PrivateKey.random()
    context.pub_key = context.private_key.public_key()
    context.signer = SignerData.for_key(chain_id, 42, 7, context.pub_key)
    context.handlers = default_handler_map()
    context.tx = sample_tx_data("behave")


@then(r"it should succeed")
def then_success(context: typing.Any):
    assert context.error is None, "Expected success but got " + str(context.error)


@then(r"it should fail with (?P<kind>[a-z_]+)")
def then_failure(context: typing.Any, kind: str):
    assert context.error is not None, "Expected " + kind + " but it succeeded"
    assert context.error.kind.value == kind, (
        "Expected " + kind + " but got " + str(context.error)
    )

