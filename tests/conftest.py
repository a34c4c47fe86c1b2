"""Shared fixtures: an in-memory stand-in for the AsyncOpenAI surface."""

import asyncio
from pathlib import Path
from types import SimpleNamespace

import pytest

from core.api.openai_client import AssistantGateway
from runtime.agents.audio_bridge import AudioBridge
from runtime.agents.conversation_agent import ConversationAgent
from runtime.agents.run_poller import RunPoller
from runtime.store.session_store import SessionStore


def text_message(value, role="assistant"):
    return SimpleNamespace(
        role=role,
        content=[SimpleNamespace(type="text", text=SimpleNamespace(value=value))],
    )


class FakeAsyncOpenAI:
    """Records every call and answers like the Assistants / Audio APIs.

    `statuses` are returned by successive runs.retrieve calls; once
    exhausted every run is 'completed'.
    """

    def __init__(
        self,
        statuses=None,
        reply="Hi there",
        transcription="Hello",
        speech=b"ID3-speech",
        instructions="You are a helpful assistant.",
    ):
        self.statuses = list(statuses or [])
        self.reply = reply
        self.transcription = transcription
        self.speech = speech
        self.instructions = instructions
        self.messages = [text_message(reply)]
        self.last_error = None

        self.calls = []
        self.transcribed_files = []
        self._thread_count = 0

        self.beta = SimpleNamespace(
            threads=SimpleNamespace(
                create=self._create_thread,
                messages=SimpleNamespace(
                    create=self._create_message,
                    list=self._list_messages,
                ),
                runs=SimpleNamespace(
                    create=self._create_run,
                    retrieve=self._retrieve_run,
                    cancel=self._cancel_run,
                ),
            ),
            assistants=SimpleNamespace(retrieve=self._retrieve_assistant),
        )
        self.audio = SimpleNamespace(
            transcriptions=SimpleNamespace(create=self._transcribe),
            speech=SimpleNamespace(create=self._speech),
        )

    def count(self, name):
        return sum(1 for call, _ in self.calls if call == name)

    def kwargs_of(self, name):
        return [kwargs for call, kwargs in self.calls if call == name]

    async def _create_thread(self, **kwargs):
        # Give concurrent callers a chance to interleave.
        await asyncio.sleep(0)
        self._thread_count += 1
        self.calls.append(("threads.create", kwargs))
        return SimpleNamespace(id=f"thread_{self._thread_count}")

    async def _create_message(self, **kwargs):
        self.calls.append(("messages.create", kwargs))
        return SimpleNamespace(id=f"msg_{self.count('messages.create')}")

    async def _list_messages(self, **kwargs):
        self.calls.append(("messages.list", kwargs))
        return SimpleNamespace(data=list(self.messages))

    async def _retrieve_assistant(self, assistant_id, **kwargs):
        self.calls.append(("assistants.retrieve", {"assistant_id": assistant_id}))
        return SimpleNamespace(id=assistant_id, instructions=self.instructions)

    async def _create_run(self, **kwargs):
        self.calls.append(("runs.create", kwargs))
        return SimpleNamespace(id=f"run_{self.count('runs.create')}", status="queued")

    async def _retrieve_run(self, **kwargs):
        self.calls.append(("runs.retrieve", kwargs))
        status = self.statuses.pop(0) if self.statuses else "completed"
        return SimpleNamespace(id=kwargs["run_id"], status=status, last_error=self.last_error)

    async def _cancel_run(self, **kwargs):
        self.calls.append(("runs.cancel", kwargs))
        return SimpleNamespace(id=kwargs["run_id"], status="cancelling")

    async def _transcribe(self, **kwargs):
        self.calls.append(("transcriptions.create", kwargs))
        path = Path(kwargs["file"].name)
        self.transcribed_files.append((path, path.exists()))
        return SimpleNamespace(text=self.transcription)

    async def _speech(self, **kwargs):
        self.calls.append(("speech.create", kwargs))
        return SimpleNamespace(content=self.speech)


class SleepRecorder:
    """Replacement for asyncio.sleep that only records the delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class RecordingLogStore:
    def __init__(self):
        self.events = []

    def log_event(self, event_type, payload):
        self.events.append((event_type, payload))

    def types(self):
        return [event_type for event_type, _ in self.events]


@pytest.fixture
def fake_openai():
    return FakeAsyncOpenAI()


@pytest.fixture
def gateway(fake_openai):
    return AssistantGateway(
        client=fake_openai,
        assistant_id="asst_test",
        stt_model="whisper-1",
        tts_model="tts-1",
        tts_voice="alloy",
        speech_format="mp3",
    )


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def log_store():
    return RecordingLogStore()


@pytest.fixture
def make_agent(gateway, sleep_recorder, log_store):
    def _make(output_dir=None, max_attempts=10, timeout=60.0):
        poller = RunPoller(
            gateway,
            poll_interval=3.0,
            max_attempts=max_attempts,
            timeout=timeout,
            sleep=sleep_recorder,
        )
        return ConversationAgent(
            session_store=SessionStore(),
            gateway=gateway,
            run_poller=poller,
            audio_bridge=AudioBridge(gateway, output_dir=output_dir),
            log_store=log_store,
        )

    return _make


@pytest.fixture
def agent(make_agent):
    return make_agent()
