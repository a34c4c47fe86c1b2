"""ConversationAgent implementation.

Responsible for:
- making sure a chat id has an assistant thread (ensure_session)
- routing user input by shape: text -> text exchange, audio -> AudioBridge
- running one text exchange: append the user message, start a run, wait
  for it with RunPoller and return the assistant's latest text

Every input yields an AssistantReply; unsupported input shapes are reported
in the reply instead of raising. Service failures, missing sessions and
run failures/timeouts raise (see exceptions/exceptions.py).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from openai import OpenAIError

from exceptions.exceptions import ChatBridgeException, EmptyReplyException
from ..models.api_models import AssistantReply, ReplyType
from ..models.session_models import Session
from .audio_bridge import AudioBridge, AudioInput
from .run_poller import CancelToken, RunPoller


logger = logging.getLogger(__name__)

AUDIO_TYPES = (bytes, bytearray, memoryview)


def extract_reply_text(messages: Any, thread_id: str) -> str:
    """Return the first text block of the most recent message."""
    data = list(getattr(messages, "data", None) or [])
    if not data:
        raise EmptyReplyException(thread_id, "The thread has no messages.")

    for block in getattr(data[0], "content", None) or []:
        if getattr(block, "type", None) == "text":
            return block.text.value

    raise EmptyReplyException(thread_id)


class ConversationAgent:
    """Conversation handling for ChatBridge.

    Parameters
    ----------
    session_store:
        Registry mapping chat ids to assistant threads.
    gateway:
        AssistantGateway (or a compatible fake) used for every remote call.
    run_poller:
        Poller used to wait for runs. Defaults to RunPoller(gateway).
    audio_bridge:
        Voice pipeline. Defaults to AudioBridge(gateway).
    log_store:
        Event sink exposing `log_event(event_type, payload)` (optional).
    """

    def __init__(
        self,
        session_store,
        gateway,
        run_poller: Optional[RunPoller] = None,
        audio_bridge: Optional[AudioBridge] = None,
        log_store: Optional[object] = None,
    ):
        self.session_store = session_store
        self.gateway = gateway
        self.run_poller = run_poller or RunPoller(gateway)
        self.audio_bridge = audio_bridge or AudioBridge(gateway)
        self.log_store = log_store

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def ensure_session(self, chat_id: str) -> Session:
        """Create the chat's assistant thread on first use; no-op afterwards."""
        session, created = await self.session_store.ensure_session(
            chat_id, self.gateway.create_thread
        )
        if created:
            self._log_event(
                "session_created",
                {"chat_id": chat_id, "thread_id": session.thread_id},
            )
        return session

    # ------------------------------------------------------------------
    # Input dispatch
    # ------------------------------------------------------------------

    async def handle_user_input(
        self,
        user_input: Any,
        chat_id: str,
        cancel_token: Optional[CancelToken] = None,
    ) -> AssistantReply:
        """Route `user_input` by type and return the assistant's reply."""
        if isinstance(user_input, str):
            text = await self.handle_text_message(user_input, chat_id, cancel_token)
            return AssistantReply(type=ReplyType.TEXT, chat_id=chat_id, text=text)

        if isinstance(user_input, AUDIO_TYPES):
            return await self.handle_audio_message(
                user_input, chat_id, cancel_token=cancel_token
            )

        input_type = type(user_input).__name__
        logger.warning("Unsupported input type %s for chat_id=%s", input_type, chat_id)
        self._log_event(
            "unsupported_input",
            {"chat_id": chat_id, "input_type": input_type},
        )
        return AssistantReply(
            type=ReplyType.UNSUPPORTED,
            chat_id=chat_id,
            error=f"Unsupported input type: {input_type}",
        )

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def handle_text_message(
        self,
        text: str,
        chat_id: str,
        cancel_token: Optional[CancelToken] = None,
    ) -> str:
        """Send `text` to the chat's thread and return the assistant's answer.

        Requires an existing session (SessionNotFoundException otherwise).
        Exchanges for the same chat id run one at a time.
        """
        session = self.session_store.require_session(chat_id)

        async with self.session_store.exchange_lock(chat_id):
            try:
                await self.gateway.add_user_message(session.thread_id, text)
                run = await self.gateway.create_run(session.thread_id)
                messages = await self.run_poller.wait_for_messages(
                    session.thread_id, run.id, cancel_token
                )
                reply = extract_reply_text(messages, session.thread_id)
            except (ChatBridgeException, OpenAIError) as e:
                self._log_event(
                    "exchange_failed",
                    {
                        "chat_id": chat_id,
                        "thread_id": session.thread_id,
                        "error": type(e).__name__,
                        "details": str(e),
                    },
                )
                raise

        self._log_event(
            "exchange_completed",
            {"chat_id": chat_id, "thread_id": session.thread_id, "run_id": run.id},
        )
        return reply

    async def handle_audio_message(
        self,
        audio: AudioInput,
        chat_id: str,
        filename: Optional[str] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> AssistantReply:
        """Voice exchange: transcribe, answer, synthesize (see AudioBridge)."""
        # Fail before paying for a transcription.
        self.session_store.require_session(chat_id)

        text_exchange_failed = False

        async def exchange(text: str, exchange_chat_id: str) -> str:
            nonlocal text_exchange_failed
            try:
                return await self.handle_text_message(text, exchange_chat_id, cancel_token)
            except (ChatBridgeException, OpenAIError):
                # Already recorded by handle_text_message.
                text_exchange_failed = True
                raise

        try:
            result = await self.audio_bridge.handle(audio, chat_id, exchange, filename=filename)
        except (ChatBridgeException, OpenAIError) as e:
            if not text_exchange_failed:
                self._log_event(
                    "exchange_failed",
                    {
                        "chat_id": chat_id,
                        "stage": "audio",
                        "error": type(e).__name__,
                        "details": str(e),
                    },
                )
            raise

        return AssistantReply(
            type=ReplyType.AUDIO,
            chat_id=chat_id,
            text=result.text,
            transcription=result.transcription,
            audio=result.audio,
            audio_format=result.audio_format,
            audio_path=str(result.audio_path) if result.audio_path else None,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _log_event(self, event_type: str, payload: dict) -> None:
        if self.log_store is None:
            return
        try:
            self.log_store.log_event(event_type=event_type, payload=payload)
        except Exception:
            # Logging failures should not affect main flow.
            logger.debug("Could not record event %s", event_type, exc_info=True)
