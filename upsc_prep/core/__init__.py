# upsc_prep/core/__init__.py
"""
Core module containing configuration, session logic, analytics, storage, AI and scraping
"""

from .config import config
from .database import get_store
from .ai_services import get_ai_service
from .scraper import get_scraper

__all__ = [
    "config",
    "get_store",
    "get_ai_service",
    "get_scraper"
]
