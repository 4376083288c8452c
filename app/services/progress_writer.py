import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional, Set

from app.core.config import settings
from app.domain.quiz_progress import QuizState, to_local_snapshot, to_remote_snapshot
from app.services.quiz_store import QuizRemoteStore

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def progress_key(quiz_id: int, admission_number: str) -> str:
    return f"quiz-progress-{quiz_id}-{admission_number}"


class LocalProgressCache:
    """
    Durable key/value cache of in-progress attempts, one JSON file per key.

    Storage problems never interrupt a quiz: failed writes are logged and
    unreadable entries are reported as missing.
    """

    def __init__(self, directory: Optional[str] = None):
        self.directory = Path(directory or settings.PROGRESS_CACHE_DIR)

    def _path(self, key: str) -> Path:
        safe_key = re.sub(r"[^A-Za-z0-9._-]", "_", key)
        return self.directory / f"{safe_key}.json"

    def save(self, key: str, snapshot: Dict[str, Any]) -> bool:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".tmp")
            tmp_path.write_text(json.dumps(snapshot), encoding="utf-8")
            tmp_path.replace(path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not write local quiz progress {key}: {e}")
            return False

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        path = self._path(key)
        try:
            if not path.exists():
                return None
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Error restoring quiz progress {key}: {e}")
            return None
        except OSError as e:
            logger.warning(f"Could not read local quiz progress {key}: {e}")
            return None

        if not isinstance(data, dict):
            logger.error(f"Error restoring quiz progress {key}: not an object")
            return None
        return data

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove local quiz progress {key}: {e}")


class DebouncedRemoteWriter:
    """
    Single-slot remote writer: only the latest snapshot is ever sent.

    Every submit restarts the quiet-period timer. A failed save is logged and
    only retried by the next change.
    """

    def __init__(self, store: QuizRemoteStore, delay: Optional[float] = None):
        self.store = store
        self.delay = settings.PROGRESS_SAVE_DEBOUNCE if delay is None else delay
        self._handle: Optional[asyncio.TimerHandle] = None
        self._latest: Optional[Dict[str, Any]] = None
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def submit(self, snapshot: Dict[str, Any]) -> None:
        """
        Queue `snapshot`, replacing any pending one and restarting the timer.

        Debouncing needs a running event loop. Called from plain synchronous
        code there is no timer to restart, so the snapshot is saved at once
        (one remote write per call) and any pending snapshot is dropped.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, saving quiz progress without debounce")
            self.cancel()
            self._save_now(snapshot)
            return

        self._latest = snapshot
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        snapshot, self._latest = self._latest, None
        if snapshot is None:
            return
        task = asyncio.ensure_future(self._send(snapshot))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    def _save_now(self, snapshot: Dict[str, Any]) -> None:
        try:
            self.store.save_progress(snapshot)
        except Exception as e:
            logger.error(f"Failed to save quiz progress remotely: {e}")

    async def _send(self, snapshot: Dict[str, Any]) -> None:
        try:
            await asyncio.to_thread(self.store.save_progress, snapshot)
            logger.info(
                f"Saved quiz progress for quiz {snapshot.get('quiz_id')} "
                f"({snapshot.get('admission_number')})"
            )
        except Exception as e:
            logger.error(f"Failed to save quiz progress remotely: {e}")

    async def flush(self) -> None:
        """Send any pending snapshot now and wait for in-flight saves"""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        snapshot, self._latest = self._latest, None
        if snapshot is not None:
            await self._send(snapshot)
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    def cancel(self) -> None:
        """Drop the pending snapshot without sending it"""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._latest = None


class ProgressWriter:
    """Writes every state change to the local cache and, debounced, to the remote store"""

    def __init__(self, local: LocalProgressCache, remote: DebouncedRemoteWriter):
        self.local = local
        self.remote = remote

    def write(self, state: QuizState) -> None:
        key = progress_key(state.quiz_id, state.admission_number)
        self.local.save(key, to_local_snapshot(state))
        self.remote.submit(to_remote_snapshot(state))

    def clear(self, quiz_id: int, admission_number: str) -> None:
        self.remote.cancel()
        self.local.remove(progress_key(quiz_id, admission_number))
