"""Session registry for ChatBridge.

Maps a caller-supplied chat id to the OpenAI thread that holds the
conversation, with optional JSON persistence under a data directory.

The design is intentionally simple:
- In-memory access is the primary source of truth during a run.
- Sessions are only ever added, never replaced or evicted.
- A per-chat asyncio.Lock makes get-or-create atomic, so concurrent first
  messages for a new chat id allocate exactly one thread.
- If a data_dir is configured, sessions are also written to
  `data_dir/sessions/<sha256(chat_id)>.json` so that they survive a restart.
"""

import asyncio
import hashlib
import json
import logging
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional, Tuple

from exceptions.exceptions import SessionNotFoundException
from ..models.session_models import Session


logger = logging.getLogger(__name__)


class SessionStore:
    """In-memory + optional file-backed session registry.

    Parameters
    ----------
    data_dir:
        Base directory for storing session JSON files. If provided,
        sessions will be written to and read from
        `data_dir/sessions/<sha256(chat_id)>.json`. If not provided,
        nothing is persisted and the mapping is lost on restart.
    """

    def __init__(self, data_dir: Optional[str] = None) -> None:
        self._sessions: Dict[str, Session] = {}
        self._create_locks: Dict[str, asyncio.Lock] = {}
        self._exchange_locks: Dict[str, asyncio.Lock] = {}

        self._data_dir: Optional[Path] = Path(data_dir) if data_dir else None
        if self._data_dir is not None:
            self._sessions_dir.mkdir(parents=True, exist_ok=True)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, chat_id: object) -> bool:
        return chat_id in self._sessions

    @property
    def _sessions_dir(self) -> Path:
        return self._data_dir / "sessions"

    def _session_path(self, chat_id: str) -> Path:
        # Hashed so that distinct chat ids never share a file.
        digest = hashlib.sha256(chat_id.encode("utf-8")).hexdigest()
        return self._sessions_dir / f"{digest}.json"

    async def ensure_session(
        self,
        chat_id: str,
        create_thread: Callable[[], Awaitable[str]],
    ) -> Tuple[Session, bool]:
        """Return `(session, created)` for `chat_id`, creating it if needed.

        `created` is True only for the call that allocated the thread; a
        session found in memory or reloaded from disk reports False.

        `create_thread` is awaited at most once per chat id, even when
        several callers race on a brand-new chat id. Failures of
        `create_thread` propagate and leave the registry unchanged.
        """
        session = self.get_session(chat_id)
        if session is not None:
            return session, False

        lock = self._create_locks.setdefault(chat_id, asyncio.Lock())
        async with lock:
            # Another task may have created it while we waited for the lock.
            session = self.get_session(chat_id)
            if session is not None:
                return session, False

            thread_id = await create_thread()
            session = Session(chat_id=chat_id, thread_id=thread_id)
            self._sessions[chat_id] = session
            self._persist_session(session)
            logger.info("Created session chat_id=%s thread_id=%s", chat_id, thread_id)
            return session, True

    def get_session(self, chat_id: str) -> Optional[Session]:
        """Retrieve an existing session by chat id.

        Lookup order:
        1. Check the in-memory registry.
        2. If not found and a data_dir is configured, attempt to
           load the session from disk.
        3. If still not found, return None.
        """
        if chat_id in self._sessions:
            return self._sessions[chat_id]

        if self._data_dir is not None:
            path = self._session_path(chat_id)
            if path.is_file():
                try:
                    with path.open("r", encoding="utf-8") as f:
                        session = Session(**json.load(f))
                except (OSError, ValueError):
                    logger.warning("Ignoring unreadable session file %s", path)
                    return None

                if session.chat_id != chat_id:
                    logger.warning(
                        "Session file %s belongs to chat_id=%s, not %s",
                        path,
                        session.chat_id,
                        chat_id,
                    )
                    return None

                self._sessions[chat_id] = session
                return session

        return None

    def require_session(self, chat_id: str) -> Session:
        session = self.get_session(chat_id)
        if session is None:
            raise SessionNotFoundException(chat_id)
        return session

    def exchange_lock(self, chat_id: str) -> asyncio.Lock:
        """Lock serializing exchanges (append + run) for one chat id."""
        return self._exchange_locks.setdefault(chat_id, asyncio.Lock())

    def _persist_session(self, session: Session) -> None:
        """Write the session to disk if a data_dir is configured."""
        if self._data_dir is None:
            return

        sessions_dir = self._sessions_dir
        sessions_dir.mkdir(parents=True, exist_ok=True)
        path = self._session_path(session.chat_id)

        with path.open("w", encoding="utf-8") as f:
            json.dump(session.model_dump(), f, ensure_ascii=False, indent=2)
