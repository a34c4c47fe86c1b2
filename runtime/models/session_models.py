"""
Session-related models for the ChatBridge runtime.

These describe:
- a Session: the local association chat_id -> OpenAI thread id
- AudioReply: the outcome of one voice exchange
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class Session(BaseModel):
    chat_id: str
    thread_id: str
    created_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


class AudioReply(BaseModel):
    transcription: str
    text: str
    audio: bytes
    audio_format: str
    audio_path: Optional[Path] = None
