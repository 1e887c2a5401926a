# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Example scripts for tx_signing.

- admission_delivery.py: one shared cache across the two checks of a transaction
- multikey.py: a 2-of-3 multisig key whose members sign under different modes
- common.py: the transaction both examples sign

Run them from the repository root::

    python -m examples.admission_delivery
    python -m examples.multikey
"""
