import asyncio

import pytest

from eliza.domain.action.base_action import Provider
from eliza.domain.context.provider_aggregator import get_providers
from tests.conftest import make_message


def _provider(name, text, delay=0.0):
    async def provide(runtime, message, state):
        await asyncio.sleep(delay)
        return text

    return Provider(name=name, provide=provide)


@pytest.mark.asyncio
async def test_output_follows_registration_order(make_runtime):
    runtime = make_runtime(providers=[
        _provider("slow", "first", delay=0.02),
        _provider("fast", "second"),
    ])

    assert await get_providers(runtime, make_message()) == "first\nsecond"


@pytest.mark.asyncio
async def test_empty_results_are_dropped(make_runtime):
    runtime = make_runtime(providers=[
        _provider("empty", ""),
        _provider("none", None),
        _provider("time", "It is noon."),
    ])

    assert await get_providers(runtime, make_message()) == "It is noon."


@pytest.mark.asyncio
async def test_failing_provider_is_isolated(make_runtime):
    async def broken(runtime, message, state):
        raise RuntimeError("weather service down")

    runtime = make_runtime(providers=[
        _provider("time", "It is noon."),
        Provider(name="weather", provide=broken),
        _provider("mood", "Ada feels curious."),
    ])

    assert await get_providers(runtime, make_message()) == "It is noon.\nAda feels curious."


@pytest.mark.asyncio
async def test_no_providers_yields_empty_string(runtime):
    assert await get_providers(runtime) == ""
