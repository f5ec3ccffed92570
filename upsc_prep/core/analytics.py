# upsc_prep/core/analytics.py
"""
Scoring and performance analytics.

``compute_analytics`` reduces one finished test to an ``AnalyticsResult``.
The remaining helpers aggregate stored history for the analytics dashboard
and compute the study streak shown on the home dashboard.
"""

import logging
import math
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Sequence

from .config import Config, config as default_config
from .models import AnalyticsResult, Question, TopicStats

logger = logging.getLogger(__name__)

BAND_SUGGESTIONS = [
    (40, [
        "Focus on building fundamental concepts before attempting tests",
        "Spend more time on theory and basic understanding",
    ]),
    (60, [
        "Good foundation! Work on eliminating silly mistakes",
        "Practice more questions from weak topics",
    ]),
    (80, [
        "Excellent progress! Focus on time management",
        "Work on advanced level questions",
    ]),
    (math.inf, [
        "Outstanding performance! Maintain consistency",
        "Focus on current affairs and recent developments",
    ]),
]

UNATTEMPTED_SUGGESTIONS = [
    "Improve time management - too many questions left unattempted",
    "Practice speed reading and quick elimination techniques",
]

TOPIC_SUGGESTION = "Strengthen your {topic} concepts with focused study"

MAX_STREAK_DAYS = 366
TREND_LENGTH = 10


def round_half_up(value: float, places: int = 2) -> float:
    """Round half away from zero on the decimal representation"""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def generate_suggestions(accuracy: float, topic_analysis: Dict[str, TopicStats],
                         not_attempted: int, config: Optional[Config] = None) -> List[str]:
    """Rule-based suggestions; order is band, unattempted, then weak topics"""
    cfg = config or default_config
    suggestions: List[str] = []

    for upper_bound, band in BAND_SUGGESTIONS:
        if accuracy < upper_bound:
            suggestions.extend(band)
            break

    if not_attempted > cfg.UNATTEMPTED_WARNING_LIMIT:
        suggestions.extend(UNATTEMPTED_SUGGESTIONS)

    for topic, stats in topic_analysis.items():
        if stats.total > 0 and stats.accuracy < cfg.WEAKNESS_THRESHOLD:
            suggestions.append(TOPIC_SUGGESTION.format(topic=topic))

    return suggestions


def compute_analytics(questions: Sequence[Question], answers: Sequence[Optional[str]],
                      config: Optional[Config] = None) -> AnalyticsResult:
    """Score a finished test in a single pass over the questions"""
    cfg = config or default_config

    if len(answers) != len(questions):
        raise ValueError(
            f"answers length {len(answers)} does not match questions length {len(questions)}"
        )

    correct = wrong = not_attempted = 0
    topic_wise: Dict[str, TopicStats] = {}

    for question, answer in zip(questions, answers):
        stats = topic_wise.setdefault(question.topic_label, TopicStats())
        stats.total += 1

        if answer is None:
            not_attempted += 1
        elif answer == question.answer:
            correct += 1
            stats.correct += 1
        else:
            wrong += 1
            stats.wrong += 1

    strengths = []
    weaknesses = []
    for topic, stats in topic_wise.items():
        if stats.total == 0:
            continue
        if stats.accuracy >= cfg.STRENGTH_THRESHOLD:
            strengths.append(topic)
        elif stats.accuracy < cfg.WEAKNESS_THRESHOLD:
            weaknesses.append(topic)

    total_marks = correct * cfg.CORRECT_MARKS - wrong * cfg.WRONG_PENALTY
    accuracy = correct / len(questions) * 100 if questions else 0.0

    return AnalyticsResult(
        correct=correct,
        wrong=wrong,
        not_attempted=not_attempted,
        total_marks=round_half_up(total_marks),
        accuracy=round_half_up(accuracy),
        topic_wise_analysis=topic_wise,
        strengths=strengths,
        weaknesses=weaknesses,
        suggestions=generate_suggestions(accuracy, topic_wise, not_attempted, cfg),
    )


def calculate_overall_stats(history: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Aggregate stored test history entries (newest first) for the dashboard"""
    if not history:
        return None

    total_tests = len(history)
    total_questions = sum(entry.get("total_questions") or 0 for entry in history)
    total_correct = sum((entry.get("analytics") or {}).get("correct", 0) for entry in history)
    total_wrong = sum((entry.get("analytics") or {}).get("wrong", 0) for entry in history)
    average_score = sum(entry.get("score") or 0 for entry in history) / total_tests
    average_accuracy = sum(
        (entry.get("analytics") or {}).get("accuracy", 0) for entry in history
    ) / total_tests

    topic_stats: Dict[str, Dict[str, int]] = {}
    for entry in history:
        topic_wise = (entry.get("analytics") or {}).get("topic_wise_analysis") or {}
        for topic, stats in topic_wise.items():
            bucket = topic_stats.setdefault(topic, {"correct": 0, "wrong": 0, "total": 0})
            bucket["correct"] += stats.get("correct", 0)
            bucket["wrong"] += stats.get("wrong", 0)
            bucket["total"] += stats.get("total", 0)

    trend = [
        {
            "date": entry.get("date_key") or entry.get("date"),
            "score": entry.get("score") or 0,
            "accuracy": (entry.get("analytics") or {}).get("accuracy", 0),
        }
        for entry in reversed(history[:TREND_LENGTH])
    ]

    return {
        "total_tests": total_tests,
        "total_questions": total_questions,
        "total_correct": total_correct,
        "total_wrong": total_wrong,
        "average_score": round_half_up(average_score),
        "average_accuracy": round_half_up(average_accuracy),
        "topic_stats": topic_stats,
        "trend": trend,
    }


def calculate_streak(subjects: List[Dict[str, Any]], today: date) -> int:
    """Consecutive days, ending today, with at least one topic completed"""
    completed_days = set()
    for subject in subjects:
        for topic in subject.get("topics") or []:
            if topic.get("completed") and topic.get("completed_date"):
                completed_days.add(topic["completed_date"])

    streak = 0
    day = today
    while day.isoformat() in completed_days and streak < MAX_STREAK_DAYS:
        streak += 1
        day -= timedelta(days=1)

    return streak


def days_until(target: str, today: date) -> Optional[int]:
    """Whole days from today to an ISO date; None when unparsable"""
    try:
        target_date = date.fromisoformat(target)
    except (TypeError, ValueError):
        logger.warning(f"Unparsable exam date: {target!r}")
        return None
    return (target_date - today).days
