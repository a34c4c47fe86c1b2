#!/usr/bin/env python3
"""
ChatBridge CLI

Talk to the configured OpenAI assistant from the command line, or start the
HTTP runtime.

Commands:

1) send
   - Ensure a session for CHAT_ID and send one text message:
       chatbridge send my-chat "Hello"

2) voice
   - Send an audio file as a voice message; prints the transcription and the
     reply, and writes the synthesized reply next to the input (or --out):
       chatbridge voice my-chat question.mp3

3) serve
   - Run the FastAPI runtime with uvicorn:
       chatbridge serve --port 8000

Sessions only live as long as the process unless
CHATBRIDGE_PERSIST_SESSIONS=true, in which case `send` and `voice` reuse the
thread stored under CHATBRIDGE_RUNTIME_DATA_DIR.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

# Ensure project root is on sys.path when running as a script
ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from openai import OpenAIError

from configs.settings import configure_logging, settings
from exceptions.exceptions import ChatBridgeException


def _build_agent():
    """Build a ConversationAgent wired like the HTTP runtime."""
    from core.api.openai_client import AssistantGateway
    from runtime.agents.conversation_agent import ConversationAgent
    from runtime.store.session_store import SessionStore

    data_dir = str(settings.runtime_data_dir) if settings.persist_sessions else None
    return ConversationAgent(
        session_store=SessionStore(data_dir=data_dir),
        gateway=AssistantGateway(),
    )


# ---------------------------------------------------------------------------
# send – one text exchange
# ---------------------------------------------------------------------------


async def cmd_send(chat_id: str, text: str) -> str:
    agent = _build_agent()
    session = await agent.ensure_session(chat_id)
    print(f"[ChatBridge] chat_id={chat_id} thread={session.thread_id}", file=sys.stderr)
    reply = await agent.handle_user_input(text, chat_id)
    print(reply.text)
    return reply.text


# ---------------------------------------------------------------------------
# voice – one audio exchange
# ---------------------------------------------------------------------------


def _default_output_path(audio_path: Path, audio_format: str) -> Path:
    return audio_path.with_name(f"{audio_path.stem}_reply.{audio_format}")


async def cmd_voice(chat_id: str, audio_path: str, out_path: Optional[str]) -> Path:
    src = Path(audio_path)
    if not src.is_file():
        raise FileNotFoundError(f"Audio file not found: {audio_path}")

    agent = _build_agent()
    await agent.ensure_session(chat_id)
    reply = await agent.handle_audio_message(src.read_bytes(), chat_id, filename=src.name)

    dest = Path(out_path) if out_path else _default_output_path(src, reply.audio_format)
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_bytes(reply.audio)

    print(f"[ChatBridge] You said: {reply.transcription}")
    print(f"[ChatBridge] Assistant: {reply.text}")
    print(f"[ChatBridge] ✓ Speech written → {dest}")
    return dest


# ---------------------------------------------------------------------------
# serve – HTTP runtime
# ---------------------------------------------------------------------------


def cmd_serve(host: str, port: int, reload: bool) -> None:
    # Lazy import so send/voice work without the server extras loaded.
    import uvicorn

    print(f"[ChatBridge] Starting runtime on http://{host}:{port}")
    uvicorn.run("runtime.api.server:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ChatBridge CLI")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: CHATBRIDGE_LOG_LEVEL or INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # send
    p_send = subparsers.add_parser("send", help="Send a text message to the assistant")
    p_send.add_argument("chat_id", help="Chat identifier (one assistant thread per chat)")
    p_send.add_argument("text", help="Message text")

    # voice
    p_voice = subparsers.add_parser("voice", help="Send an audio file as a voice message")
    p_voice.add_argument("chat_id", help="Chat identifier (one assistant thread per chat)")
    p_voice.add_argument("audio_path", help="Path to the audio file (mp3, wav, m4a, ...)")
    p_voice.add_argument(
        "--out",
        default=None,
        help="Where to write the spoken reply (default: <audio>_reply.<format>)",
    )

    # serve
    p_serve = subparsers.add_parser("serve", help="Run the HTTP runtime")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.add_argument("--reload", action="store_true", help="Reload on code changes")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    command: str = args.command

    try:
        if command == "send":
            asyncio.run(cmd_send(chat_id=args.chat_id, text=args.text))
        elif command == "voice":
            asyncio.run(
                cmd_voice(
                    chat_id=args.chat_id,
                    audio_path=args.audio_path,
                    out_path=args.out,
                )
            )
        elif command == "serve":
            cmd_serve(host=args.host, port=args.port, reload=args.reload)
        else:
            parser.error(f"Unknown command: {command}")
    except (ChatBridgeException, OpenAIError, FileNotFoundError) as e:
        print(f"[ChatBridge] ✗ {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
