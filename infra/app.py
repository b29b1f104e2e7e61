#!/usr/bin/env python3

import os

import aws_cdk as cdk

from stacks.config import load_config
from stacks.descriptor import assemble
from stacks.stream_share_api_substack import StreamShareApiStack, stack_environment


app = cdk.App()

config = load_config(os.environ, app.node.try_get_context)
# FormatError from here aborts the synth before any resource is declared.
descriptor = assemble(config)

StreamShareApiStack(
    app,
    "GameLiftStreamsGLSInfrastructureStack",
    descriptor=descriptor,
    env=stack_environment(config.account, config.region),
)

app.synth()
