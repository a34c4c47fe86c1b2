"""AudioBridge: voice in, voice out.

One voice exchange:

1. write the incoming audio to a temporary file unique to this request
2. transcribe it (speech-to-text)
   (an empty transcription stops here with EmptyTranscriptionException)
3. run the transcription through the text exchange
4. synthesize the reply (text-to-speech)
5. remove the temporary input, whatever happened in 2-4

The synthesized speech is returned to the caller and, when an output
directory is configured, also saved there under a unique name.
"""

from __future__ import annotations

import logging
import re
import tempfile
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Union
from uuid import uuid4

from configs.settings import settings
from exceptions.exceptions import EmptyTranscriptionException
from ..models.session_models import AudioReply


logger = logging.getLogger(__name__)

AudioInput = Union[bytes, bytearray, memoryview]
TextExchange = Callable[[str, str], Awaitable[str]]

DEFAULT_INPUT_SUFFIX = ".mp3"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class AudioBridge:
    """Speech-to-text -> text exchange -> text-to-speech.

    Parameters
    ----------
    gateway:
        Object exposing `transcribe(file)` and `synthesize_speech(text)` and
        a `speech_format` attribute (see AssistantGateway).
    output_dir:
        Optional directory where synthesized replies are saved. Defaults to
        `settings.speech_output_dir` (unset: nothing is written).
    """

    def __init__(self, gateway: Any, output_dir: Optional[Path] = None) -> None:
        self.gateway = gateway
        self.output_dir = output_dir if output_dir is not None else settings.speech_output_dir

    async def handle(
        self,
        audio: AudioInput,
        chat_id: str,
        exchange: TextExchange,
        filename: Optional[str] = None,
    ) -> AudioReply:
        suffix = Path(filename).suffix if filename else ""
        suffix = suffix or DEFAULT_INPUT_SUFFIX

        with tempfile.TemporaryDirectory(prefix="chatbridge-") as tmp_dir:
            input_path = Path(tmp_dir) / f"input{suffix}"
            input_path.write_bytes(bytes(audio))

            with input_path.open("rb") as audio_file:
                transcription = await self.gateway.transcribe(audio_file)
            logger.info(
                "Transcribed %d bytes of audio for chat_id=%s (%d chars)",
                len(audio),
                chat_id,
                len(transcription),
            )
            if not transcription:
                raise EmptyTranscriptionException(chat_id)

            reply_text = await exchange(transcription, chat_id)
            speech = await self.gateway.synthesize_speech(reply_text)

        audio_format = self.gateway.speech_format
        audio_path = self._save_speech(chat_id, speech, audio_format)

        return AudioReply(
            transcription=transcription,
            text=reply_text,
            audio=speech,
            audio_format=audio_format,
            audio_path=audio_path,
        )

    def _save_speech(self, chat_id: str, speech: bytes, audio_format: str) -> Optional[Path]:
        if self.output_dir is None:
            return None

        output_dir = Path(self.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        safe_chat_id = _UNSAFE_FILENAME_CHARS.sub("_", chat_id)
        path = output_dir / f"{safe_chat_id}-{uuid4().hex}.{audio_format}"
        path.write_bytes(speech)
        logger.debug("Saved speech reply to %s", path)
        return path
