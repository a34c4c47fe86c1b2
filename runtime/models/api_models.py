"""
Request/response models for the ChatBridge runtime (HTTP API and agent).
"""

import base64
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_serializer


class ReplyType(str, Enum):
    TEXT = "text"
    AUDIO = "audio"
    UNSUPPORTED = "unsupported"


class StartSessionRequest(BaseModel):
    chat_id: str


class StartSessionResponse(BaseModel):
    chat_id: str
    thread_id: str
    created_at: str


class TextMessageRequest(BaseModel):
    chat_id: str
    message: str


class AssistantReply(BaseModel):
    """
    Result of handling one user input.

    type:
      - "text": text holds the assistant's reply
      - "audio": transcription holds what the user said, text the reply,
        audio the synthesized speech (base64 when serialized)
      - "unsupported": the input shape was not recognized; error explains
    """
    type: ReplyType
    chat_id: str
    text: Optional[str] = None
    transcription: Optional[str] = None
    audio: Optional[bytes] = None
    audio_format: Optional[str] = None
    audio_path: Optional[str] = None
    error: Optional[str] = None

    @field_serializer("audio", when_used="json")
    def _encode_audio(self, audio: Optional[bytes]) -> Optional[str]:
        if audio is None:
            return None
        return base64.b64encode(audio).decode("ascii")
