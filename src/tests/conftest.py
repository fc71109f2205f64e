import asyncio
import os
from concurrent.futures import ThreadPoolExecutor
from random import randint

import pulumi
import pytest

from tests.mocks import ImmediateExecutor


@pytest.fixture(scope="session", autouse=True)
def faker_seed():
    return randint(0, 100000)


@pytest.fixture
def pulumi_set_mocks(pulumi_mocks, app_name, stack):
    try:
        loop = asyncio.get_event_loop()
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    loop.set_default_executor(ImmediateExecutor())
    try:
        pulumi.runtime.set_mocks(
            pulumi_mocks,
            project=app_name,
            stack=stack,
            preview=False)
        yield True
    finally:
        loop.set_default_executor(ThreadPoolExecutor())


@pytest.fixture(autouse=True)
def aws_credentials():
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = 'us-west-2'

    yield os.environ


@pytest.fixture(autouse=True)
def isolate_pulumi_config():
    token = pulumi.runtime.config.CONFIG.set({})
    yield
    pulumi.runtime.config.CONFIG.reset(token)
