# upsc_prep/__init__.py
"""
UPSC Prep - daily mock tests, flash cards, study tracking and current affairs
"""

__version__ = "1.0.0"
__description__ = "Exam preparation backend with AI-generated tests and performance analytics"

from .core.config import config
from .main import app

__all__ = ["app", "config"]
