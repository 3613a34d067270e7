"""
Agent base class and concurrency helper tests.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio

from agents.base import Agent, AsyncAgent, capture


class Doubler(Agent):
    def __init__(self):
        super().__init__(name="Doubler")

    def run(self, data):
        if data < 0:
            raise ValueError("negative")
        return data * 2


class AsyncDoubler(AsyncAgent):
    def __init__(self):
        super().__init__(name="AsyncDoubler")

    async def run(self, data):
        await asyncio.sleep(0)
        if data < 0:
            raise ValueError("negative")
        return data * 2


async def _value(v, delay=0.0):
    await asyncio.sleep(delay)
    return v


async def _boom():
    raise RuntimeError("boom")


class TestAgentExecute:
    def test_success_envelope(self):
        result = Doubler().execute(4)
        assert result.success
        assert result.data == 8
        assert result.duration_seconds is not None
        assert "Doubler" in repr(result)

    def test_failure_is_captured(self):
        result = Doubler().execute(-1)
        assert not result.success
        assert result.error == "negative"
        assert result.unwrap_or("fallback") == "fallback"

    def test_async_agent(self):
        assert asyncio.run(AsyncDoubler().execute(3)).data == 6
        assert not asyncio.run(AsyncDoubler().execute(-3)).success


class TestCapture:
    def test_capture_wraps_exceptions(self):
        ok = asyncio.run(capture("ok", _value(1)))
        bad = asyncio.run(capture("bad", _boom()))
        assert ok.success and ok.data == 1
        assert not bad.success
        assert bad.error == "boom"

