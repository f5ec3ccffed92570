# upsc_prep/core/ai_services.py
import json
import logging
import time
from typing import Any, List, Optional

from groq import Groq
from pydantic import ValidationError

from .config import Config, config as default_config
from .dummy_data import DUMMY_FLASHCARDS, DUMMY_QUESTIONS, DUMMY_TOPICS
from .exceptions import ExternalServiceError, GeneratedContentError, InvalidInputError
from .models import FlashCardDraft, Question
from .prompts import PromptFormatter, PromptTemplates

logger = logging.getLogger(__name__)

class AIService:
    """Service for generating test questions, flash cards and syllabus topics"""

    def __init__(self, config: Optional[Config] = None, client: Optional[Groq] = None):
        self.config = config or default_config
        self.client = client
        self.use_dummy = self.config.USE_DUMMY_DATA

        if self.client is None and not self.use_dummy:
            self._init_groq_client()
        elif self.use_dummy:
            logger.info("🔧 AI Service in dummy mode - using mock responses")

    def _init_groq_client(self):
        """Initialize Groq client"""
        if not self.config.GROQ_API_KEY:
            raise ExternalServiceError("GROQ_API_KEY not provided")

        self.client = Groq(api_key=self.config.GROQ_API_KEY, timeout=self.config.GROQ_TIMEOUT)
        logger.info("✅ Groq client initialized")

    # ==================== Generation ====================

    def generate_test_questions(self, topics: List[str], question_count: int) -> List[Question]:
        """Generate a batch of multi-statement MCQs for the given topics"""
        if not topics:
            raise InvalidInputError("At least one topic is required")
        if question_count < 1:
            raise InvalidInputError("question_count must be at least 1")

        logger.info(f"🤖 Generating {question_count} questions on {topics} (dummy: {self.use_dummy})")

        if self.use_dummy:
            raw = self._dummy_questions(topics, question_count)
        else:
            prompt = PromptTemplates.create_test_prompt(topics, question_count)
            raw = self._parse_json_payload(self._call_llm_with_retries(prompt), list)

        questions = self._validate_items(raw, Question, "question")

        if len(questions) != question_count:
            logger.warning(f"Generated {len(questions)} questions, expected {question_count}")

        logger.info(f"✅ Generated {len(questions)} questions successfully")
        return questions

    def generate_flashcards(self, topic: str, card_count: int) -> List[FlashCardDraft]:
        """Generate question/answer revision cards for one topic"""
        if not topic or not topic.strip():
            raise InvalidInputError("Topic is required")
        if card_count < 1:
            raise InvalidInputError("card_count must be at least 1")

        logger.info(f"🤖 Generating {card_count} flash cards on '{topic}' (dummy: {self.use_dummy})")

        if self.use_dummy:
            raw = [DUMMY_FLASHCARDS[i % len(DUMMY_FLASHCARDS)] for i in range(card_count)]
        else:
            prompt = PromptTemplates.create_flashcards_prompt(topic, card_count)
            raw = self._parse_json_payload(self._call_llm_with_retries(prompt), list)

        return self._validate_items(raw, FlashCardDraft, "flash card")

    def generate_topics(self, subject: str) -> List[str]:
        """Generate the list of study topics for a subject"""
        if not subject or not subject.strip():
            raise InvalidInputError("Subject is required")

        logger.info(f"🤖 Generating topics for '{subject}' (dummy: {self.use_dummy})")

        if self.use_dummy:
            return list(DUMMY_TOPICS.get(subject.strip().lower(), DUMMY_TOPICS["default"]))

        prompt = PromptTemplates.create_topics_prompt(subject)
        raw = self._parse_json_payload(self._call_llm_with_retries(prompt), list)

        topics = [item.strip() for item in raw if isinstance(item, str) and item.strip()]
        if not topics:
            raise GeneratedContentError("No topics in generated response")
        return topics

    def _dummy_questions(self, topics: List[str], question_count: int) -> List[dict]:
        """Cycle through dummy questions, preferring the requested topics"""
        wanted = {t.strip().lower() for t in topics}
        pool = [q for q in DUMMY_QUESTIONS if q["topic"].lower() in wanted] or DUMMY_QUESTIONS
        return [pool[i % len(pool)] for i in range(question_count)]

    # ==================== LLM Plumbing ====================

    def _call_llm_with_retries(self, prompt: str, max_tokens: int = None,
                               temperature: float = None, retries: int = None) -> str:
        """Call LLM with retry logic"""
        if max_tokens is None:
            max_tokens = self.config.GROQ_MAX_TOKENS
        if temperature is None:
            temperature = self.config.GROQ_TEMPERATURE
        if retries is None:
            retries = self.config.BATCH_GENERATION_RETRIES

        if not self.client:
            raise ExternalServiceError("AI service not available")

        last_error = None

        for attempt in range(retries):
            try:
                logger.debug(f"LLM call attempt {attempt + 1}/{retries}")

                completion = self.client.chat.completions.create(
                    model=self.config.GROQ_MODEL,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=temperature,
                    max_completion_tokens=max_tokens,
                    top_p=self.config.GROQ_TOP_P
                )

                if not completion.choices:
                    raise ExternalServiceError("LLM returned no response")

                response = (completion.choices[0].message.content or "").strip()
                if not response:
                    raise ExternalServiceError("LLM returned empty content")

                return response

            except Exception as e:
                last_error = e
                logger.warning(f"LLM call attempt {attempt + 1} failed: {e}")
                if attempt < retries - 1:
                    time.sleep(2 ** attempt)

        raise ExternalServiceError(f"LLM call failed after {retries} attempts: {last_error}")

    @staticmethod
    def _parse_json_payload(response: str, expected_type: type) -> Any:
        """Decode a JSON payload, tolerating markdown code fences"""
        text = PromptFormatter.strip_code_fences(response)
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"❌ Generated content is not valid JSON: {e}")
            raise GeneratedContentError(f"Failed to parse generated content: {e}") from e

        if not isinstance(payload, expected_type):
            raise GeneratedContentError(
                f"Expected JSON {expected_type.__name__}, got {type(payload).__name__}"
            )
        return payload

    @staticmethod
    def _validate_items(raw: List[Any], model, label: str) -> list:
        """Validate every generated item; a single bad item fails the request"""
        items = []
        for i, item in enumerate(raw, 1):
            try:
                items.append(model.model_validate(item))
            except ValidationError as e:
                logger.error(f"❌ Generated {label} {i} is malformed: {e}")
                raise GeneratedContentError(f"Generated {label} {i} is malformed: {e}") from e

        if not items:
            raise GeneratedContentError(f"No {label}s in generated response")
        return items

    def health_check(self) -> dict:
        """Check AI service health"""
        if self.use_dummy:
            return {
                "status": "healthy",
                "mode": "dummy",
                "client_ready": True,
                "message": "Running in dummy data mode"
            }

        try:
            if not self.client:
                return {"status": "error", "message": "Client not initialized"}

            start_time = time.time()
            test_response = self.client.chat.completions.create(
                model=self.config.GROQ_MODEL,
                messages=[{"role": "user", "content": "ping"}],
                max_completion_tokens=5
            )
            response_time = time.time() - start_time

            if test_response.choices:
                return {
                    "status": "healthy",
                    "mode": "live",
                    "model": self.config.GROQ_MODEL,
                    "response_time_ms": round(response_time * 1000, 2),
                    "client_ready": True
                }
            return {"status": "error", "message": "No response from LLM"}

        except Exception as e:
            return {"status": "error", "message": str(e)}

# Singleton pattern for AI service
_ai_service = None

def get_ai_service() -> AIService:
    """Get AI service instance (singleton)"""
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService()
    return _ai_service

def close_ai_service():
    """Close AI service instance"""
    global _ai_service
    if _ai_service:
        _ai_service = None
