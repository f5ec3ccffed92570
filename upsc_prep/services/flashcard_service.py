# upsc_prep/services/flashcard_service.py
import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from ..core.ai_services import AIService, get_ai_service
from ..core.config import Config, config as default_config
from ..core.database import DocumentStore, get_store
from ..core.exceptions import InvalidInputError, NotFoundError
from ..core.utils import ValidationUtils

logger = logging.getLogger(__name__)

class FlashCardService:
    """User flash cards: manual entry, AI generation, topic filtering"""

    def __init__(self, config: Optional[Config] = None, store: Optional[DocumentStore] = None,
                 ai_service: Optional[AIService] = None):
        self.config = config or default_config
        self.store = store or get_store()
        self.ai_service = ai_service or get_ai_service()

    @staticmethod
    def _cards_path(user_id: str) -> str:
        if not ValidationUtils.validate_user_id(user_id):
            raise InvalidInputError(f"Invalid user id: {user_id!r}")
        return f"users/{user_id}/flashCards"

    async def list_cards(self, user_id: str, topic: Optional[str] = None) -> Dict[str, Any]:
        """Cards in creation order, optionally filtered to one topic, plus a per-topic grouping"""
        data = await self.store.read(self._cards_path(user_id)) or {}
        cards = [{**card, "id": card_id} for card_id, card in data.items() if isinstance(card, dict)]
        cards.sort(key=lambda c: c.get("created_at") or 0)

        topics = sorted({c.get("topic") for c in cards if c.get("topic")})
        if topic and topic != "all":
            cards = [c for c in cards if c.get("topic") == topic]

        by_topic: Dict[str, List[Dict[str, Any]]] = {}
        for card in cards:
            by_topic.setdefault(card.get("topic") or "General", []).append(card)

        return {"count": len(cards), "topics": topics, "cards": cards, "by_topic": by_topic}

    async def add_card(self, user_id: str, question: str, answer: str, topic: str) -> Dict[str, Any]:
        question = ValidationUtils.sanitize_input(question)
        answer = ValidationUtils.sanitize_input(answer)
        topic = ValidationUtils.sanitize_input(topic, 200)
        if not (question and answer and topic):
            raise InvalidInputError("question, answer and topic are required")

        card = {
            "question": question,
            "answer": answer,
            "topic": topic,
            "created_at": int(time.time() * 1000),
        }
        card_id = await self.store.push(self._cards_path(user_id), card)
        return {**card, "id": card_id}

    async def delete_card(self, user_id: str, card_id: str):
        path = f"{self._cards_path(user_id)}/{card_id}"
        if await self.store.read(path) is None:
            raise NotFoundError(f"Flash card {card_id} not found")
        await self.store.remove(path)
        logger.info(f"🗑️ Flash card deleted for {user_id}: {card_id}")

    async def generate_cards(self, topic: str, num_cards: Optional[int] = None):
        """Generate drafts without saving them"""
        if num_cards is None:
            num_cards = self.config.DEFAULT_FLASHCARDS
        if not 1 <= num_cards <= self.config.MAX_FLASHCARDS:
            raise InvalidInputError(f"num_cards must be between 1 and {self.config.MAX_FLASHCARDS}")
        return await asyncio.to_thread(self.ai_service.generate_flashcards, topic, num_cards)

    async def generate_and_save(self, user_id: str, topic: str,
                                num_cards: Optional[int] = None) -> List[Dict[str, Any]]:
        """Generate cards for a topic and store each one under the user"""
        self._cards_path(user_id)
        drafts = await self.generate_cards(topic, num_cards)

        saved = []
        for draft in drafts:
            saved.append(await self.add_card(user_id, draft.question, draft.answer, topic))

        logger.info(f"✅ Generated and saved {len(saved)} flash cards on '{topic}' for {user_id}")
        return saved

# Singleton pattern for flash card service
_flashcard_service = None

def get_flashcard_service() -> FlashCardService:
    """Get flash card service instance (singleton)"""
    global _flashcard_service
    if _flashcard_service is None:
        _flashcard_service = FlashCardService()
    return _flashcard_service
