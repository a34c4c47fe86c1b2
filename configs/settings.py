from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from exceptions.exceptions import ConfigurationException


load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """
    Central configuration for ChatBridge.

    Values are loaded once from environment variables (with sensible defaults)
    and then exposed via typed properties. The API key and the assistant id
    are only validated when they are first read, so modules that never talk
    to OpenAI can be imported without them.
    """

    def __init__(self) -> None:
        # OpenAI / assistant configuration
        self._openai_api_key = os.getenv("OPENAI_API_KEY") or os.getenv("OPENAI_KEY")
        self._openai_base_url = os.getenv("OPENAI_BASE_URL") or None
        self._assistant_id = (
            os.getenv("OPENAI_ASSISTANT_ID") or os.getenv("OPENAI_ASSISTANT")
        )

        # Run polling
        self._poll_interval = float(os.getenv("CHATBRIDGE_POLL_INTERVAL", "3.0"))
        self._poll_max_attempts = int(os.getenv("CHATBRIDGE_POLL_MAX_ATTEMPTS", "100"))
        self._poll_timeout = float(os.getenv("CHATBRIDGE_POLL_TIMEOUT", "300.0"))

        # Audio models
        self._stt_model = os.getenv("CHATBRIDGE_STT_MODEL", "whisper-1")
        self._tts_model = os.getenv("CHATBRIDGE_TTS_MODEL", "tts-1")
        self._tts_voice = os.getenv("CHATBRIDGE_TTS_VOICE", "alloy")
        self._speech_format = os.getenv("CHATBRIDGE_SPEECH_FORMAT", "mp3")

        # Paths
        speech_dir = os.getenv("CHATBRIDGE_SPEECH_OUTPUT_DIR")
        self._speech_output_dir = Path(speech_dir) if speech_dir else None
        self._runtime_data_dir = Path(
            os.getenv("CHATBRIDGE_RUNTIME_DATA_DIR", "runtime/data")
        )
        self._persist_sessions = _env_bool("CHATBRIDGE_PERSIST_SESSIONS")

        self._log_level = os.getenv("CHATBRIDGE_LOG_LEVEL", "INFO").upper()

    # ------------------------------------------------------------------
    # OpenAI / assistant settings
    # ------------------------------------------------------------------

    @property
    def openai_api_key(self) -> str:
        if not self._openai_api_key:
            raise ConfigurationException(
                "OPENAI_API_KEY",
                "Please export it in your environment or define it in a .env file.",
            )
        return self._openai_api_key

    @property
    def openai_base_url(self) -> Optional[str]:
        return self._openai_base_url

    @property
    def assistant_id(self) -> str:
        if not self._assistant_id:
            raise ConfigurationException(
                "OPENAI_ASSISTANT_ID",
                "Set it to the id of the assistant created on the OpenAI platform.",
            )
        return self._assistant_id

    # ------------------------------------------------------------------
    # Run polling
    # ------------------------------------------------------------------

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    @property
    def poll_max_attempts(self) -> int:
        return self._poll_max_attempts

    @property
    def poll_timeout(self) -> float:
        return self._poll_timeout

    # ------------------------------------------------------------------
    # Audio
    # ------------------------------------------------------------------

    @property
    def stt_model(self) -> str:
        return self._stt_model

    @property
    def tts_model(self) -> str:
        return self._tts_model

    @property
    def tts_voice(self) -> str:
        return self._tts_voice

    @property
    def speech_format(self) -> str:
        return self._speech_format

    # ------------------------------------------------------------------
    # Paths / runtime
    # ------------------------------------------------------------------

    @property
    def speech_output_dir(self) -> Optional[Path]:
        return self._speech_output_dir

    @property
    def runtime_data_dir(self) -> Path:
        return self._runtime_data_dir

    @property
    def persist_sessions(self) -> bool:
        return self._persist_sessions

    @property
    def log_level(self) -> str:
        return self._log_level


settings = Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for the CLI and the HTTP server."""
    logging.basicConfig(
        level=level or settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    # The OpenAI SDK logs every HTTP request at INFO through httpx.
    logging.getLogger("httpx").setLevel(logging.WARNING)
