# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Shared settings for the tx_signing examples.

Environment Variables:
    TX_SIGNING_CHAIN_ID: chain id the examples sign for (default: testing-1)
    TX_SIGNING_CACHE_CAPACITY: verification cache capacity, read through
        VerificationCacheConfig.from_env()
"""

import os

from tx_signing.sign_mode import ApiSignMode
from tx_signing.tx_data import AuthInfo, Coin, Fee, Message, SignerInfo, TxBody, TxData

CHAIN_ID = os.getenv("TX_SIGNING_CHAIN_ID", "testing-1")
ACCOUNT_NUMBER = 42
SEQUENCE = 7


def transfer(sender: str, receiver: str, amount: int, signer_key: bytes) -> TxData:
    """A one-message bank transfer paying a fixed fee."""
    return TxData(
        TxBody(
            (
                Message(
                    "/cosmos.bank.v1beta1.MsgSend",
                    {
                        "amount": [{"amount": str(amount), "denom": "uatom"}],
                        "from_address": sender,
                        "to_address": receiver,
                    },
                    "cosmos-sdk/MsgSend",
                ),
            ),
            memo="example transfer",
        ),
        AuthInfo(
            (SignerInfo(signer_key, ApiSignMode.DIRECT, SEQUENCE),),
            Fee((Coin("uatom", 500),), 200_000),
        ),
    )
