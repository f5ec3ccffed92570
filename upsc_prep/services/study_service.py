# upsc_prep/services/study_service.py
import asyncio
import logging
import time
from datetime import date
from typing import Any, Dict, List, Optional

from ..core.ai_services import AIService, get_ai_service
from ..core.analytics import calculate_streak, days_until, round_half_up
from ..core.config import Config, config as default_config
from ..core.database import DocumentStore, get_store
from ..core.exceptions import InvalidInputError, NotFoundError, OutOfRangeError
from ..core.utils import DateTimeUtils, ValidationUtils

logger = logging.getLogger(__name__)

class StudyService:
    """Subjects, study topics, exam date and the home dashboard"""

    def __init__(self, config: Optional[Config] = None, store: Optional[DocumentStore] = None,
                 ai_service: Optional[AIService] = None):
        self.config = config or default_config
        self.store = store or get_store()
        self.ai_service = ai_service or get_ai_service()

    @staticmethod
    def _require_user(user_id: str):
        if not ValidationUtils.validate_user_id(user_id):
            raise InvalidInputError(f"Invalid user id: {user_id!r}")

    def _subjects_path(self, user_id: str) -> str:
        self._require_user(user_id)
        return f"users/{user_id}/subjects"

    # ==================== Subjects ====================

    async def list_subjects(self, user_id: str) -> List[Dict[str, Any]]:
        data = await self.store.read(self._subjects_path(user_id)) or {}
        return [
            {**subject, "id": subject_id, "topics": subject.get("topics") or []}
            for subject_id, subject in data.items()
            if isinstance(subject, dict)
        ]

    async def get_subject(self, user_id: str, subject_id: str) -> Dict[str, Any]:
        subject = await self.store.read(f"{self._subjects_path(user_id)}/{subject_id}")
        if not isinstance(subject, dict):
            raise NotFoundError(f"Subject {subject_id} not found")
        return {**subject, "id": subject_id, "topics": subject.get("topics") or []}

    async def add_subject(self, user_id: str, name: str, start: str, end: str,
                          start_date: str, end_date: str) -> Dict[str, Any]:
        name = ValidationUtils.sanitize_input(name, 200)
        if not all([name, start, end, start_date, end_date]):
            raise InvalidInputError("name, start, end, start_date and end_date are required")
        for value in (start_date, end_date):
            if not ValidationUtils.validate_date_key(value):
                raise InvalidInputError(f"Invalid date: {value}")
        if start_date > end_date:
            raise InvalidInputError("start_date must not be after end_date")

        subject = {
            "name": name,
            "start": start,
            "end": end,
            "start_date": start_date,
            "end_date": end_date,
            "topics": [],
        }
        subject_id = await self.store.push(self._subjects_path(user_id), subject)
        logger.info(f"📚 Subject added for {user_id}: {name} ({subject_id})")
        return {**subject, "id": subject_id}

    async def delete_subject(self, user_id: str, subject_id: str):
        await self.get_subject(user_id, subject_id)
        await self.store.remove(f"{self._subjects_path(user_id)}/{subject_id}")
        logger.info(f"🗑️ Subject deleted for {user_id}: {subject_id}")
        await self.refresh_streak(user_id)

    # ==================== Topics ====================

    async def _write_topics(self, user_id: str, subject_id: str, topics: List[Dict[str, Any]]):
        await self.store.write(f"{self._subjects_path(user_id)}/{subject_id}/topics", topics)

    async def add_topic(self, user_id: str, subject_id: str, name: str) -> Dict[str, Any]:
        name = ValidationUtils.sanitize_input(name, 200)
        if not name:
            raise InvalidInputError("Topic name is required")

        subject = await self.get_subject(user_id, subject_id)
        subject["topics"] = subject["topics"] + [{"name": name, "completed": False}]
        await self._write_topics(user_id, subject_id, subject["topics"])
        return subject

    async def toggle_topic(self, user_id: str, subject_id: str, index: int,
                           today: Optional[date] = None) -> Dict[str, Any]:
        """Flip completion, stamping the completion day, then recompute the streak"""
        subject = await self.get_subject(user_id, subject_id)
        topics = [dict(t) for t in subject["topics"]]
        if not 0 <= index < len(topics):
            raise OutOfRangeError(f"Topic index {index} outside 0..{len(topics) - 1}")

        today = today or DateTimeUtils.today()
        topic = topics[index]
        topic["completed"] = not topic.get("completed", False)
        topic["completed_date"] = today.isoformat() if topic["completed"] else None
        topic["completed_at"] = int(time.time() * 1000) if topic["completed"] else None

        await self._write_topics(user_id, subject_id, topics)
        subject["topics"] = topics

        streak = await self.refresh_streak(user_id, today)
        logger.info(f"✅ Topic toggled: {subject_id}[{index}] completed={topic['completed']} (streak {streak})")
        return {"subject": subject, "streak": streak}

    async def delete_topic(self, user_id: str, subject_id: str, index: int) -> Dict[str, Any]:
        subject = await self.get_subject(user_id, subject_id)
        if not 0 <= index < len(subject["topics"]):
            raise OutOfRangeError(f"Topic index {index} outside 0..{len(subject['topics']) - 1}")

        subject["topics"] = [t for i, t in enumerate(subject["topics"]) if i != index]
        await self._write_topics(user_id, subject_id, subject["topics"])
        return subject

    async def save_topics(self, user_id: str, subject_id: str, names: List[str]) -> Dict[str, Any]:
        """Replace a subject's topics with fresh, uncompleted entries"""
        subject = await self.get_subject(user_id, subject_id)
        cleaned = [ValidationUtils.sanitize_input(n, 200) for n in names]
        subject["topics"] = [{"name": n, "completed": False} for n in cleaned if n]
        await self._write_topics(user_id, subject_id, subject["topics"])
        logger.info(f"💾 Saved {len(subject['topics'])} topics for {subject_id}")
        return subject

    async def generate_topics(self, subject_name: str) -> List[str]:
        return await asyncio.to_thread(self.ai_service.generate_topics, subject_name)

    # ==================== Exam Date & Streak ====================

    async def get_exam_date(self, user_id: str) -> Optional[str]:
        self._require_user(user_id)
        return await self.store.read(f"users/{user_id}/examDate")

    async def set_exam_date(self, user_id: str, exam_date: str) -> str:
        self._require_user(user_id)
        if not ValidationUtils.validate_date_key(exam_date):
            raise InvalidInputError(f"Invalid exam date: {exam_date}")
        await self.store.write(f"users/{user_id}/examDate", exam_date)
        return exam_date

    async def refresh_streak(self, user_id: str, today: Optional[date] = None) -> int:
        subjects = await self.list_subjects(user_id)
        streak = calculate_streak(subjects, today or DateTimeUtils.today())
        await self.store.write(f"users/{user_id}/streak", streak)
        return streak

    # ==================== Dashboard ====================

    async def dashboard(self, user_id: str, today: Optional[date] = None) -> Dict[str, Any]:
        """Streak, days to the exam and progress of subjects scheduled for today"""
        today = today or DateTimeUtils.today()
        today_key = today.isoformat()

        subjects = await self.list_subjects(user_id)
        exam_date = await self.get_exam_date(user_id)

        active = []
        for subject in subjects:
            start_date, end_date = subject.get("start_date"), subject.get("end_date")
            if not (start_date and end_date and start_date <= today_key <= end_date):
                continue
            active.append(self.subject_progress(subject, today))

        return {
            "streak": calculate_streak(subjects, today),
            "exam_date": exam_date,
            "days_to_exam": days_until(exam_date, today) if exam_date else None,
            "active_subjects": active,
            "total_subjects": len(subjects),
        }

    @staticmethod
    def subject_progress(subject: Dict[str, Any], today: date) -> Dict[str, Any]:
        start = date.fromisoformat(subject["start_date"])
        end = date.fromisoformat(subject["end_date"])
        total_days = (end - start).days
        passed_days = (today - start).days
        progress = 100 if total_days <= 0 else min(100, int(round_half_up(passed_days / total_days * 100, 0)))

        topics = subject.get("topics") or []
        completed = [t for t in topics if t.get("completed")]
        pending = [t for t in topics if not t.get("completed")]

        return {
            "id": subject.get("id"),
            "name": subject.get("name"),
            "start": subject.get("start"),
            "end": subject.get("end"),
            "progress": progress,
            "days_left": (end - today).days,
            "completed_topics": len(completed),
            "total_topics": len(topics),
            "recent_completed": completed[-1]["name"] if completed else None,
            "current_task": pending[0]["name"] if pending else None,
            "next_task": pending[1]["name"] if len(pending) > 1 else None,
        }

# Singleton pattern for study service
_study_service = None

def get_study_service() -> StudyService:
    """Get study service instance (singleton)"""
    global _study_service
    if _study_service is None:
        _study_service = StudyService()
    return _study_service
