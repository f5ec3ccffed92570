# upsc_prep/core/prompts.py
from typing import List

class PromptTemplates:
    """Centralized prompt template management"""

    @staticmethod
    def create_test_prompt(topics: List[str], question_count: int) -> str:
        """Prompt for UPSC Prelims multi-statement MCQs"""
        topic_list = ", ".join(topics)
        return f"""Generate {question_count} UPSC Prelims MCQ questions in the multi-statement format.

TOPICS: {topic_list}

REQUIREMENTS:
- Generate exactly {question_count} questions covering the topics above
- Each question should start with 'Consider the following statements:'
- List 2-4 statements as an array
- Options must use the format: (a) 1 only, (b) 1 and 2, (c) 2 and 3, (d) 1, 2 and 3
- "answer" must be copied exactly from one of the options
- Provide a detailed explanation for the correct answer
- Set "topic" to the single topic from the list that the question tests

Respond with JSON only, no commentary:
[{{"question": "...", "statements": ["..."], "options": ["..."], "answer": "...", "explanation": "...", "topic": "..."}}]"""

    @staticmethod
    def create_flashcards_prompt(topic: str, card_count: int) -> str:
        """Prompt for revision flash cards on one topic"""
        return f"""Generate {card_count} flash cards for UPSC preparation on the topic: '{topic}'.

Each card should have a question and a concise answer/explanation.

Respond with JSON only, no commentary:
[{{"question": "...", "answer": "..."}}]"""

    @staticmethod
    def create_topics_prompt(subject: str) -> str:
        """Prompt for the syllabus topics of a subject"""
        return f"""List the most important and relevant topics for UPSC preparation under the subject '{subject}'.

Respond with a JSON array of strings only, no commentary."""


class PromptFormatter:
    """Utility class for cleaning LLM responses"""

    @staticmethod
    def strip_code_fences(response: str) -> str:
        """Remove ```json / ``` markers around a JSON payload"""
        return response.replace("```json", "").replace("```", "").strip()
