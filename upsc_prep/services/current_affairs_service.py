# upsc_prep/services/current_affairs_service.py
import asyncio
import logging
from datetime import date
from typing import Any, Dict, Optional

from ..core.dummy_data import FALLBACK_ARTICLE_TEXT, FALLBACK_CURRENT_AFFAIRS
from ..core.exceptions import ExternalServiceError
from ..core.scraper import SOURCE_NAMES, CurrentAffairsScraper, get_scraper
from ..core.utils import DateTimeUtils

logger = logging.getLogger(__name__)

class CurrentAffairsService:
    """Scraped current affairs with mock fallbacks when the sites are unreachable"""

    def __init__(self, scraper: Optional[CurrentAffairsScraper] = None):
        self.scraper = scraper or get_scraper()

    async def get_feed(self, feed_type: str = "daily", source: str = "nextias",
                       today: Optional[date] = None) -> Dict[str, Any]:
        try:
            items = await asyncio.to_thread(self.scraper.scrape_feed, feed_type, source, today)
        except ExternalServiceError as e:
            logger.warning(f"⚠️ Scraping failed, serving mock data: {e}")
            return {
                "success": False,
                "error": str(e),
                "data": FALLBACK_CURRENT_AFFAIRS,
                "count": len(FALLBACK_CURRENT_AFFAIRS),
                "source": "Mock Data (Scraping Failed)",
                "scraped_at": DateTimeUtils.iso_now(),
            }

        data = [item.model_dump(exclude_none=True) for item in items]
        return {
            "success": True,
            "data": data,
            "count": len(data),
            "source": SOURCE_NAMES.get(source, "Multiple Sources"),
            "scraped_at": DateTimeUtils.iso_now(),
        }

    async def get_article(self, url: str) -> Dict[str, Any]:
        try:
            article = await asyncio.to_thread(self.scraper.scrape_article, url)
        except ExternalServiceError as e:
            logger.warning(f"⚠️ Article scraping failed for {url}: {e}")
            return {
                "success": False,
                "error": str(e),
                "data": {
                    "title": "Article Not Available",
                    "date": DateTimeUtils.today_key(),
                    "content": [FALLBACK_ARTICLE_TEXT],
                    "source": "Error",
                    "scraped_at": DateTimeUtils.iso_now(),
                },
            }

        return {"success": True, "data": article.model_dump(exclude_none=True)}

# Singleton pattern for current affairs service
_current_affairs_service = None

def get_current_affairs_service() -> CurrentAffairsService:
    """Get current affairs service instance (singleton)"""
    global _current_affairs_service
    if _current_affairs_service is None:
        _current_affairs_service = CurrentAffairsService()
    return _current_affairs_service
