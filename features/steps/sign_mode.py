import typing

from behave import given, then, use_step_matcher, when

from tx_signing.errors import VerificationError
from tx_signing.sign_mode import (
    ApiSignMode,
    SignMode,
    api_sign_mode_to_internal,
    internal_sign_mode_to_api,
)

use_step_matcher("re")


def parse_mode(enum: typing.Any, value: str) -> typing.Any:
    if value.isdigit():
        return int(value)
    return enum[value]


@given(r"(?P<side>api|internal) sign mode (?P<value>[A-Z_0-9]+)")
def given_mode(context: typing.Any, side: str, value: str):
    context.input = parse_mode(ApiSignMode if side == "api" else SignMode, value)


@when(r"I convert it to (?P<side>api|internal)")
def when_convert(context: typing.Any, side: str):
    context.output = None
    context.error = None
    try:
        if side == "internal":
            context.output = api_sign_mode_to_internal(context.input)
        else:
            context.output = internal_sign_mode_to_api(context.input)
    except VerificationError as e:
        context.error = e
        return
    context.input = context.output


@then(r"the result should be (?P<side>api|internal) sign mode (?P<name>[A-Z_]+)")
def then_mode(context: typing.Any, side: str, name: str):
    expected = ApiSignMode[name] if side == "api" else SignMode[name]
    assert type(context.output) is type(expected), (
        "Expected " + type(expected).__name__ + " but got " + repr(context.output)
    )
    assert context.output == expected, (
        "Expected " + str(expected) + " but got " + str(context.output)
    )
