"""
core.api.openai_client

Thin async wrapper around the OpenAI Assistants and Audio APIs for ChatBridge.

Used by:
  - runtime/agents/conversation_agent.py (threads, messages, runs)
  - runtime/agents/run_poller.py (run status, message list)
  - runtime/agents/audio_bridge.py (speech-to-text, text-to-speech)

Every call is delegated to the SDK; errors (openai.OpenAIError) propagate
unchanged.
"""

from __future__ import annotations

import logging
from typing import Any, BinaryIO, Optional

from openai import AsyncOpenAI

from configs.settings import settings


logger = logging.getLogger(__name__)


# -------------------------------------------------------------------
# Shared client
# -------------------------------------------------------------------

_client: Optional[AsyncOpenAI] = None


def get_client() -> AsyncOpenAI:
    """Return the process-wide AsyncOpenAI client, creating it on first use."""
    global _client
    if _client is None:
        _client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
        )
    return _client


# -------------------------------------------------------------------
# Gateway
# -------------------------------------------------------------------


class AssistantGateway:
    """Boundary call surface towards the hosted assistant.

    Parameters
    ----------
    client:
        An ``AsyncOpenAI`` instance (or anything exposing the same
        ``beta.threads`` / ``beta.assistants`` / ``audio`` attributes).
        Defaults to the shared client from :func:`get_client`.
    assistant_id:
        Assistant used for runs. Defaults to ``settings.assistant_id``.
    stt_model, tts_model, tts_voice, speech_format:
        Audio options; default to the corresponding settings.
    """

    def __init__(
        self,
        client: Optional[Any] = None,
        assistant_id: Optional[str] = None,
        stt_model: Optional[str] = None,
        tts_model: Optional[str] = None,
        tts_voice: Optional[str] = None,
        speech_format: Optional[str] = None,
    ) -> None:
        self._client = client
        self._assistant_id = assistant_id
        self.stt_model = stt_model or settings.stt_model
        self.tts_model = tts_model or settings.tts_model
        self.tts_voice = tts_voice or settings.tts_voice
        self.speech_format = speech_format or settings.speech_format

        # Retrieved once; instructions are static for the process lifetime.
        self._assistant: Optional[Any] = None

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = get_client()
        return self._client

    @property
    def assistant_id(self) -> str:
        return self._assistant_id or settings.assistant_id

    # ------------------------------------------------------------------
    # Threads / messages / runs
    # ------------------------------------------------------------------

    async def create_thread(self) -> str:
        thread = await self.client.beta.threads.create()
        logger.debug("Created thread %s", thread.id)
        return thread.id

    async def add_user_message(self, thread_id: str, text: str) -> Any:
        return await self.client.beta.threads.messages.create(
            thread_id=thread_id,
            role="user",
            content=text,
        )

    async def get_assistant(self) -> Any:
        if self._assistant is None:
            self._assistant = await self.client.beta.assistants.retrieve(
                self.assistant_id
            )
        return self._assistant

    async def create_run(self, thread_id: str) -> Any:
        """Start a run on the thread with the assistant's static instructions."""
        assistant = await self.get_assistant()
        params = {"thread_id": thread_id, "assistant_id": assistant.id}
        instructions = getattr(assistant, "instructions", None)
        if instructions:
            params["instructions"] = instructions
        run = await self.client.beta.threads.runs.create(**params)
        logger.debug("Created run %s on thread %s", run.id, thread_id)
        return run

    async def retrieve_run(self, thread_id: str, run_id: str) -> Any:
        return await self.client.beta.threads.runs.retrieve(
            run_id=run_id,
            thread_id=thread_id,
        )

    async def cancel_run(self, thread_id: str, run_id: str) -> Any:
        return await self.client.beta.threads.runs.cancel(
            run_id=run_id,
            thread_id=thread_id,
        )

    async def list_messages(self, thread_id: str) -> Any:
        """Return the thread's messages, most recent first."""
        return await self.client.beta.threads.messages.list(
            thread_id=thread_id,
            order="desc",
        )

    # ------------------------------------------------------------------
    # Audio
    # ------------------------------------------------------------------

    async def transcribe(self, audio_file: BinaryIO) -> str:
        response = await self.client.audio.transcriptions.create(
            model=self.stt_model,
            file=audio_file,
        )
        return (response.text or "").strip()

    async def synthesize_speech(self, text: str) -> bytes:
        response = await self.client.audio.speech.create(
            model=self.tts_model,
            voice=self.tts_voice,
            input=text,
            response_format=self.speech_format,
        )
        return response.content
