# upsc_prep/core/utils.py
import asyncio
import logging
import re
import threading
import time
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from .config import Config, config as default_config
from .session import TestSession

logger = logging.getLogger(__name__)

class MemoryManager:
    """Registry of live test sessions and their countdown tasks"""

    def __init__(self, config: Optional[Config] = None, auto_cleanup: bool = True):
        self.config = config or default_config
        self.sessions: Dict[str, TestSession] = {}
        self.timers: Dict[str, asyncio.Task] = {}
        self._lock = threading.Lock()
        self._cleanup_thread = None
        if auto_cleanup:
            self._start_cleanup_thread()

    @staticmethod
    def session_key(user_id: str, test_id: str) -> str:
        return f"{user_id}:{test_id}"

    def _start_cleanup_thread(self):
        """Start background cleanup thread"""
        if self._cleanup_thread and self._cleanup_thread.is_alive():
            return

        self._cleanup_thread = threading.Thread(target=self._periodic_cleanup, daemon=True)
        self._cleanup_thread.start()
        logger.info("✅ Memory cleanup thread started")

    def _periodic_cleanup(self):
        """Periodic cleanup of expired sessions"""
        while True:
            try:
                time.sleep(self.config.MEMORY_CLEANUP_INTERVAL)
                self.cleanup_expired_data()
            except Exception as e:
                logger.error(f"Cleanup thread error: {e}")

    def cleanup_expired_data(self, now: Optional[float] = None) -> int:
        """Drop sessions older than TEST_EXPIRATION_SECONDS; returns how many"""
        current_time = now if now is not None else time.time()

        with self._lock:
            expired = [
                key for key, session in self.sessions.items()
                if current_time - session.created_at > self.config.TEST_EXPIRATION_SECONDS
            ]
            for key in expired:
                self.sessions.pop(key, None)
                self._cancel_timer_locked(key)

        if expired:
            logger.info(f"🧹 Cleanup: removed {len(expired)} expired test sessions")
        return len(expired)

    # ==================== Sessions ====================

    def add_session(self, session: TestSession):
        key = self.session_key(session.user_id, session.test_id)
        with self._lock:
            self._cancel_timer_locked(key)
            self.sessions[key] = session
        logger.info(f"✅ Session registered: {key} with {len(session)} questions")

    def get_session(self, user_id: str, test_id: str) -> Optional[TestSession]:
        with self._lock:
            return self.sessions.get(self.session_key(user_id, test_id))

    def remove_session(self, user_id: str, test_id: str):
        key = self.session_key(user_id, test_id)
        with self._lock:
            self.sessions.pop(key, None)
            self._cancel_timer_locked(key)
        logger.info(f"✅ Session cleaned up: {key}")

    def user_sessions(self, user_id: str) -> List[TestSession]:
        with self._lock:
            return [s for s in self.sessions.values() if s.user_id == user_id]

    # ==================== Countdown Tasks ====================

    def attach_timer(self, session: TestSession, task: asyncio.Task):
        key = self.session_key(session.user_id, session.test_id)
        with self._lock:
            self._cancel_timer_locked(key)
            self.timers[key] = task

    def cancel_timer(self, user_id: str, test_id: str):
        with self._lock:
            self._cancel_timer_locked(self.session_key(user_id, test_id))

    def release_timer(self, user_id: str, test_id: str, task: asyncio.Task):
        """Forget a finished countdown task without cancelling its successor"""
        key = self.session_key(user_id, test_id)
        with self._lock:
            if self.timers.get(key) is task:
                self.timers.pop(key, None)

    def _cancel_timer_locked(self, key: str):
        task = self.timers.pop(key, None)
        if task is None or task.done():
            return
        loop = task.get_loop()
        if loop.is_closed():
            return
        # The cleanup thread runs outside the event loop
        loop.call_soon_threadsafe(task.cancel)

    # ==================== Stats ====================

    def get_memory_stats(self) -> Dict[str, Any]:
        """Get memory usage statistics"""
        with self._lock:
            sessions = list(self.sessions.values())
            running = sum(1 for task in self.timers.values() if not task.done())

        return {
            "active_tests": sum(1 for s in sessions if not s.submitted),
            "submitted_tests": sum(1 for s in sessions if s.submitted),
            "running_timers": running,
            "cleanup_thread_alive": self._cleanup_thread.is_alive() if self._cleanup_thread else False
        }

    def clear(self):
        with self._lock:
            for key in list(self.timers):
                self._cancel_timer_locked(key)
            self.sessions.clear()


class ValidationUtils:
    """Utility functions for data validation"""

    DATE_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

    @staticmethod
    def validate_user_id(user_id: str) -> bool:
        """User ids become store path segments"""
        if not user_id or not user_id.strip():
            return False
        return not any(ch in user_id for ch in "/.$")

    @staticmethod
    def validate_date_key(date_key: str) -> bool:
        if not date_key or not ValidationUtils.DATE_KEY_PATTERN.match(date_key):
            return False
        try:
            date.fromisoformat(date_key)
            return True
        except ValueError:
            return False

    @staticmethod
    def sanitize_input(input_str: str, max_length: int = 5000) -> str:
        """Sanitize user input"""
        if not input_str:
            return ""

        sanitized = input_str.strip()

        if len(sanitized) > max_length:
            sanitized = sanitized[:max_length]

        return sanitized


class DateTimeUtils:
    """Utility functions for date/time operations"""

    @staticmethod
    def get_current_timestamp() -> float:
        return time.time()

    @staticmethod
    def today() -> date:
        return date.today()

    @staticmethod
    def today_key() -> str:
        """Date key (YYYY-MM-DD) of the current day"""
        return date.today().isoformat()

    @staticmethod
    def iso_now() -> str:
        return datetime.now(timezone.utc).isoformat()


# Global instances
memory_manager = MemoryManager()

# Cleanup function for graceful shutdown
def cleanup_all():
    """Clean up all resources"""
    try:
        memory_manager.cleanup_expired_data()
        memory_manager.clear()
        logger.info("✅ All resources cleaned up")
    except Exception as e:
        logger.error(f"❌ Cleanup failed: {e}")
