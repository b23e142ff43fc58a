import asyncio

import pytest

from mastrfetch.errors import Cancelled
from mastrfetch.services.cancellation import CancelToken


def test_race_returns_result_when_not_cancelled():
    async def go():
        return await CancelToken().race(asyncio.sleep(0, result="done"))

    assert asyncio.run(go()) == "done"


def test_race_aborts_pending_work():
    state = {"finished": False}

    async def slow():
        await asyncio.sleep(10)
        state["finished"] = True

    async def go():
        token = CancelToken()
        asyncio.get_running_loop().call_later(0.01, token.cancel, "stop now")
        await token.race(slow())

    with pytest.raises(Cancelled) as ei:
        asyncio.run(asyncio.wait_for(go(), timeout=5))
    assert ei.value.reason == "stop now"
    assert state["finished"] is False


def test_first_reason_wins_and_precancelled_token_raises():
    token = CancelToken()
    token.cancel("first")
    token.cancel("second")
    assert token.cancelled
    assert token.reason == "first"
    with pytest.raises(Cancelled):
        token.raise_if_cancelled()
    with pytest.raises(Cancelled):
        asyncio.run(token.race(asyncio.sleep(0)))
