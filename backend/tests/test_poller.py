import time

import pytest

from orderdesk.client.poller import wait_for_number


class Fetcher:
    """Returns queued values, one per call."""

    def __init__(self, *values):
        self.values = list(values)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        value = self.values.pop(0) if self.values else None
        if isinstance(value, Exception):
            raise value
        return value


async def test_returns_first_assigned_number():
    fetch = Fetcher(None, "", "#0042", "#9999")

    number = await wait_for_number(fetch, interval=0.01)

    assert number == "#0042"
    assert fetch.calls == 3


async def test_immediate_number_does_not_wait():
    fetch = Fetcher("#0001")
    started = time.monotonic()

    assert await wait_for_number(fetch, interval=1.0) == "#0001"
    assert time.monotonic() - started < 0.5


async def test_gives_up_after_max_attempts():
    fetch = Fetcher()
    started = time.monotonic()

    number = await wait_for_number(fetch)

    assert number is None
    assert fetch.calls == 5
    # Four waits of 0.25s between five attempts
    assert time.monotonic() - started >= 0.95


async def test_custom_attempt_budget():
    fetch = Fetcher()

    assert await wait_for_number(fetch, max_attempts=2, interval=0) is None
    assert fetch.calls == 2


async def test_fetch_error_propagates():
    fetch = Fetcher(None, RuntimeError("boom"))

    with pytest.raises(RuntimeError, match="boom"):
        await wait_for_number(fetch, interval=0.01)
    assert fetch.calls == 2
