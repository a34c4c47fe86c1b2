import asyncio
from types import SimpleNamespace

import pytest
from openai import OpenAIError

from exceptions.exceptions import (
    RunCancelledException,
    RunFailedException,
    RunTimeoutException,
)
from runtime.agents.run_poller import CancelToken, RunPoller


def _poller(gateway, sleep_recorder, **kwargs):
    options = {"poll_interval": 3.0, "max_attempts": 50, "timeout": 600.0}
    options.update(kwargs)
    return RunPoller(gateway, sleep=sleep_recorder, **options)


@pytest.mark.parametrize("pending", [0, 1, 4])
def test_polls_until_completed(fake_openai, gateway, sleep_recorder, pending):
    fake_openai.statuses = ["in_progress"] * pending
    poller = _poller(gateway, sleep_recorder)

    messages = asyncio.run(poller.wait_for_messages("thread_1", "run_1"))

    assert fake_openai.count("runs.retrieve") == pending + 1
    assert fake_openai.count("messages.list") == 1
    assert sleep_recorder.delays == [3.0] * pending
    assert messages.data[0].content[0].text.value == "Hi there"


def test_unknown_statuses_are_treated_as_pending(fake_openai, gateway, sleep_recorder):
    fake_openai.statuses = ["queued", "cancelling", "something_new"]
    poller = _poller(gateway, sleep_recorder)

    asyncio.run(poller.wait_for_messages("thread_1", "run_1"))

    assert fake_openai.count("runs.retrieve") == 4


@pytest.mark.parametrize(
    "status", ["failed", "cancelled", "expired", "incomplete", "requires_action"]
)
def test_terminal_status_raises(fake_openai, gateway, sleep_recorder, status):
    fake_openai.statuses = ["in_progress", status]
    fake_openai.last_error = SimpleNamespace(code="server_error", message="boom")
    poller = _poller(gateway, sleep_recorder)

    with pytest.raises(RunFailedException) as exc_info:
        asyncio.run(poller.wait_for_messages("thread_1", "run_1"))

    assert exc_info.value.status == status
    assert exc_info.value.details == "server_error: boom"
    assert fake_openai.count("messages.list") == 0


@pytest.mark.parametrize("status", ["failed", "cancelled", "expired", "incomplete"])
def test_finished_runs_are_not_cancelled(fake_openai, gateway, sleep_recorder, status):
    fake_openai.statuses = [status]
    poller = _poller(gateway, sleep_recorder)

    with pytest.raises(RunFailedException):
        asyncio.run(poller.wait_for_messages("thread_1", "run_1"))

    assert fake_openai.count("runs.cancel") == 0


def test_requires_action_run_is_cancelled(fake_openai, gateway, sleep_recorder):
    fake_openai.statuses = ["in_progress", "requires_action"]
    poller = _poller(gateway, sleep_recorder)

    with pytest.raises(RunFailedException):
        asyncio.run(poller.wait_for_messages("thread_1", "run_1"))

    assert fake_openai.kwargs_of("runs.cancel") == [{"run_id": "run_1", "thread_id": "thread_1"}]


def test_gives_up_after_max_attempts(fake_openai, gateway, sleep_recorder):
    fake_openai.statuses = ["in_progress"] * 10
    poller = _poller(gateway, sleep_recorder, max_attempts=3)

    with pytest.raises(RunTimeoutException) as exc_info:
        asyncio.run(poller.wait_for_messages("thread_1", "run_1"))

    assert exc_info.value.attempts == 3
    assert exc_info.value.last_status == "in_progress"
    assert fake_openai.count("runs.retrieve") == 3
    assert len(sleep_recorder.delays) == 2
    assert fake_openai.kwargs_of("runs.cancel") == [{"run_id": "run_1", "thread_id": "thread_1"}]


def test_gives_up_after_deadline(fake_openai, gateway, sleep_recorder):
    fake_openai.statuses = ["in_progress"] * 10
    ticks = iter([0.0, 1.0, 5.0, 11.0])
    poller = _poller(gateway, sleep_recorder, timeout=10.0, clock=lambda: next(ticks))

    with pytest.raises(RunTimeoutException) as exc_info:
        asyncio.run(poller.wait_for_messages("thread_1", "run_1"))

    assert exc_info.value.attempts == 3
    assert exc_info.value.elapsed == pytest.approx(11.0)
    assert fake_openai.count("runs.cancel") == 1


def test_failed_cancel_still_reports_timeout(fake_openai, gateway, sleep_recorder):
    fake_openai.statuses = ["in_progress"] * 10

    async def refuse_cancel(thread_id, run_id):
        raise OpenAIError("run already finished")

    gateway.cancel_run = refuse_cancel
    poller = _poller(gateway, sleep_recorder, max_attempts=2)

    with pytest.raises(RunTimeoutException):
        asyncio.run(poller.wait_for_messages("thread_1", "run_1"))


def test_cancel_token_stops_polling_and_cancels_run(fake_openai, gateway):
    fake_openai.statuses = ["in_progress"] * 10
    token = CancelToken()

    async def cancel_after_first_wait(delay):
        token.cancel()

    poller = RunPoller(gateway, poll_interval=3.0, max_attempts=50, timeout=600.0, sleep=cancel_after_first_wait)

    with pytest.raises(RunCancelledException):
        asyncio.run(poller.wait_for_messages("thread_1", "run_1", cancel_token=token))

    assert fake_openai.count("runs.retrieve") == 1
    assert fake_openai.kwargs_of("runs.cancel") == [{"run_id": "run_1", "thread_id": "thread_1"}]


def test_already_cancelled_token_never_queries(fake_openai, gateway, sleep_recorder):
    token = CancelToken()
    token.cancel()
    poller = _poller(gateway, sleep_recorder)

    with pytest.raises(RunCancelledException):
        asyncio.run(poller.wait_for_messages("thread_1", "run_1", cancel_token=token))

    assert fake_openai.count("runs.retrieve") == 0
