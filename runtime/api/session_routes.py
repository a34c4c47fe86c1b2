"""HTTP routes for interacting with the ChatBridge runtime.

Exposes endpoints like:

- POST /assistant/sessions -> ensures an assistant thread for a chat_id
- POST /assistant/messages -> takes (chat_id, message) and returns the
                              assistant's text reply
- POST /assistant/audio    -> takes a chat_id form field and an audio file,
                              returns transcription, reply text and speech
                              (base64)
- GET  /assistant/healthz
"""

import logging
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from openai import OpenAIError

from exceptions.exceptions import (
    ChatBridgeException,
    ConfigurationException,
    EmptyReplyException,
    EmptyTranscriptionException,
    RunCancelledException,
    RunFailedException,
    RunTimeoutException,
    SessionNotFoundException,
)
from ..agents.conversation_agent import ConversationAgent
from ..models.api_models import (
    AssistantReply,
    StartSessionRequest,
    StartSessionResponse,
    TextMessageRequest,
)


logger = logging.getLogger(__name__)

# Router for all assistant-related endpoints
router = APIRouter()


# Module-level reference, to be initialized by the server.
_CONVERSATION_AGENT: Optional[ConversationAgent] = None


def init_routes(conversation_agent: ConversationAgent) -> None:
    """Initialize module-level references used by the route handlers."""
    global _CONVERSATION_AGENT
    _CONVERSATION_AGENT = conversation_agent


def _require_conversation_agent() -> ConversationAgent:
    if _CONVERSATION_AGENT is None:
        raise HTTPException(
            status_code=500,
            detail="ConversationAgent is not configured on the server.",
        )
    return _CONVERSATION_AGENT


def _to_http_exception(error: Exception) -> HTTPException:
    """Map ChatBridge / OpenAI errors to HTTP status codes."""
    if isinstance(error, SessionNotFoundException):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, EmptyTranscriptionException):
        return HTTPException(status_code=422, detail=str(error))
    if isinstance(error, RunTimeoutException):
        return HTTPException(status_code=504, detail=str(error))
    if isinstance(error, (RunFailedException, RunCancelledException, EmptyReplyException)):
        return HTTPException(status_code=502, detail=str(error))
    if isinstance(error, ConfigurationException):
        return HTTPException(status_code=500, detail=str(error))
    if isinstance(error, OpenAIError):
        return HTTPException(status_code=502, detail=f"Assistant service error: {error}")
    return HTTPException(status_code=500, detail="Internal server error")


def _handle_failure(error: Exception, route: str, chat_id: str) -> HTTPException:
    http_error = _to_http_exception(error)
    if isinstance(error, ChatBridgeException) and not isinstance(error, ConfigurationException):
        logger.warning(
            "[ASSISTANT] HTTP %s on %s for chat_id=%s reason=%r",
            http_error.status_code,
            route,
            chat_id,
            http_error.detail,
        )
    else:
        # Log unexpected errors with a full traceback for debugging.
        logger.exception("[ASSISTANT] %s failed for chat_id=%s", route, chat_id)
    return http_error


@router.post("/sessions", response_model=StartSessionResponse)
async def start_session(request: StartSessionRequest) -> StartSessionResponse:
    """Ensure the chat has an assistant thread and return it.

    Calling this again for the same chat_id returns the existing thread.
    """
    agent = _require_conversation_agent()
    try:
        session = await agent.ensure_session(request.chat_id)
    except Exception as e:
        raise _handle_failure(e, "sessions", request.chat_id) from e

    return StartSessionResponse(
        chat_id=session.chat_id,
        thread_id=session.thread_id,
        created_at=session.created_at,
    )


@router.post("/messages", response_model=AssistantReply)
async def send_message(request: TextMessageRequest) -> AssistantReply:
    """Send one text message and wait for the assistant's reply."""
    agent = _require_conversation_agent()
    try:
        return await agent.handle_user_input(request.message, request.chat_id)
    except Exception as e:
        raise _handle_failure(e, "messages", request.chat_id) from e


@router.post("/audio", response_model=AssistantReply)
async def send_audio(
    chat_id: str = Form(...),
    file: UploadFile = File(...),
) -> AssistantReply:
    """Send a voice message; the reply carries text and synthesized speech."""
    agent = _require_conversation_agent()
    audio = await file.read()
    if not audio:
        raise HTTPException(status_code=400, detail="Uploaded audio file is empty")

    try:
        return await agent.handle_audio_message(audio, chat_id, filename=file.filename)
    except Exception as e:
        raise _handle_failure(e, "audio", chat_id) from e


# --------------------------------------------------------
# Endpoint: GET /healthz
# --------------------------------------------------------
@router.get("/healthz")
def health_check():
    """
    Simple health check endpoint for uptime monitoring.
    """
    return {"status": "ok"}
