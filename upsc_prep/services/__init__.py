# upsc_prep/services/__init__.py
"""
Business logic services for tests, study tracking, flash cards and current affairs
"""

from .test_service import get_test_service
from .study_service import get_study_service
from .flashcard_service import get_flashcard_service
from .current_affairs_service import get_current_affairs_service

__all__ = [
    "get_test_service",
    "get_study_service",
    "get_flashcard_service",
    "get_current_affairs_service"
]
