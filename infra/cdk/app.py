#!/usr/bin/env python3
from __future__ import annotations

import aws_cdk as cdk

from payment_lookup_bot_stack import PaymentLookupBotStack


app = cdk.App()

PaymentLookupBotStack(
    app,
    "PaymentLookupBotStack",
    env=cdk.Environment(
        account=app.node.try_get_context("account"),
        region=app.node.try_get_context("region"),
    ),
)

app.synth()
