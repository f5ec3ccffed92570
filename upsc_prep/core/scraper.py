# upsc_prep/core/scraper.py
"""
Current affairs scraping for NEXT IAS and Vajiram & Ravi.

Both sites change their markup without notice, so every extracted field is
best effort. Fetch failures raise ``ExternalServiceError``; the service layer
decides what to serve instead.
"""

import logging
import re
import threading
from datetime import date, datetime, timezone
from typing import List, Optional
from urllib.parse import unquote

import requests
from bs4 import BeautifulSoup

from .config import Config, config as default_config
from .exceptions import ExternalServiceError, InvalidInputError
from .models import ArticleContent, CurrentAffairsItem

logger = logging.getLogger(__name__)

FEED_TYPES = ("daily", "headlines", "editorial")
SOURCE_NAMES = {"nextias": "NEXT IAS", "vajiram": "Vajiram & Ravi"}

NAVIGATION_WORDS = ("Menu", "Navigation", "UPSC", "Current Affairs")
MIN_TITLE_LENGTH = 10
SNIPPET_LENGTH = 200

ARTICLE_CONTENT_SELECTORS = [
    ".article-content",
    ".entry-content",
    ".post-content",
    ".content-area",
    "article .content",
    ".main-content",
    ".article-body",
    ".post-body",
]
ARTICLE_PARAGRAPH_FALLBACK = "article p, .main p, .content p, .post p"

MALFORMED_URL = re.compile(r"^https?://[^/]+https?://")


def fix_malformed_url(url: str) -> str:
    """Undo doubled hosts such as ``https://a.comhttps://a.com/x``"""
    return MALFORMED_URL.sub("https://", unquote(url).strip())


def absolute_link(link: Optional[str], base_url: str) -> Optional[str]:
    if not link:
        return None
    link = fix_malformed_url(link)
    if link.startswith("http"):
        return link
    return f"{base_url.rstrip('/')}{link}"


def _text(element) -> str:
    return element.get_text(" ", strip=True) if element is not None else ""


def _is_article_title(title: str, extra_excluded: tuple = ()) -> bool:
    if not title or len(title) <= MIN_TITLE_LENGTH:
        return False
    return not any(word in title for word in NAVIGATION_WORDS + extra_excluded)


class CurrentAffairsScraper:
    """Best-effort scraper for the two supported current affairs sites"""

    def __init__(self, config: Optional[Config] = None, session: Optional[requests.Session] = None):
        self.config = config or default_config
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": self.config.SCRAPE_USER_AGENT})
        # Scrapes run in worker threads; requests sessions are not thread-safe
        self._session_lock = threading.Lock()

    def _fetch(self, url: str, label: str) -> BeautifulSoup:
        logger.info(f"🌐 Fetching {label}: {url}")
        try:
            with self._session_lock:
                response = self.session.get(url, timeout=self.config.SCRAPE_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"❌ Failed to fetch {label}: {e}")
            raise ExternalServiceError(f"Failed to fetch {label}: {e}") from e

        return BeautifulSoup(response.text, "html.parser")

    # ==================== Feed ====================

    def scrape_feed(self, feed_type: str = "daily", source: str = "nextias",
                    today: Optional[date] = None) -> List[CurrentAffairsItem]:
        """Scrape one source (or both for any other value), de-duplicated by title"""
        if feed_type not in FEED_TYPES:
            raise InvalidInputError(f"Unknown feed type '{feed_type}', expected one of {FEED_TYPES}")

        today = today or date.today()

        if source == "nextias":
            items = self.scrape_next_ias(feed_type, today)
        elif source == "vajiram":
            items = self.scrape_vajiram(today)
        else:
            items = self.scrape_next_ias(feed_type, today) + self.scrape_vajiram(today)

        seen = set()
        unique = []
        for item in items:
            if item.title in seen:
                continue
            seen.add(item.title)
            unique.append(item)

        unique = unique[:self.config.SCRAPE_MAX_ITEMS]
        logger.info(f"✅ Scraped {len(unique)} {feed_type} items from {source}")
        return unique

    def scrape_next_ias(self, feed_type: str, today: date) -> List[CurrentAffairsItem]:
        url = f"{self.config.NEXT_IAS_BASE_URL}/daily-current-affairs"
        soup = self._fetch(url, "NEXT IAS")
        return self.parse_next_ias(soup, feed_type, today)

    def scrape_vajiram(self, today: date) -> List[CurrentAffairsItem]:
        url = (
            f"{self.config.VAJIRAM_BASE_URL}/current-affairs/upsc-prelims-current-affairs/"
            f"{today:%Y/%m/%d}/"
        )
        soup = self._fetch(url, "Vajiram & Ravi")
        return self.parse_vajiram(soup, today)

    def parse_next_ias(self, soup: BeautifulSoup, feed_type: str, today: date) -> List[CurrentAffairsItem]:
        base_url = self.config.NEXT_IAS_BASE_URL
        date_key = today.isoformat()
        items: List[CurrentAffairsItem] = []

        if feed_type == "daily":
            for heading in soup.find_all(["h3", "h4", "h5"]):
                title = _text(heading)
                if not _is_article_title(title, ("NEXT IAS",)):
                    continue

                container = heading.find_parent(["div", "article", "section"])
                link = context = syllabus = None
                if container is not None:
                    read_more = next(
                        (a for a in container.find_all("a", href=True)
                         if "read more" in _text(a).lower()),
                        None,
                    )
                    link = absolute_link(read_more["href"], base_url) if read_more else None
                    context = _text(container.find(["p", "div"]))[:SNIPPET_LENGTH] or None
                    syllabus = next(
                        (_text(p) for p in container.find_all("p") if "Syllabus:" in _text(p)),
                        None,
                    )

                items.append(CurrentAffairsItem(
                    title=title, date=date_key, category="Current Affairs", type="daily",
                    link=link, context=context, syllabus=syllabus, source="NEXT IAS",
                ))

            if not items:
                for anchor in soup.select('a[href*="/ca/current-affairs/"]'):
                    title = _text(anchor)
                    if len(title) <= MIN_TITLE_LENGTH:
                        continue
                    container = anchor.find_parent(["div", "article", "section"])
                    published = _text(container.select_one(".date, .published-date, time")) if container else ""
                    items.append(CurrentAffairsItem(
                        title=title, date=published or date_key, category="Current Affairs",
                        type="daily", link=absolute_link(anchor.get("href"), base_url),
                        source="NEXT IAS",
                    ))

        else:
            selector, category = {
                "headlines": (".headlines-item, .news-item", "Headlines"),
                "editorial": (".editorial-item, .analysis-item", "Editorial Analysis"),
            }[feed_type]
            for entry in soup.select(selector):
                title = _text(entry.select_one("h3, h4, .title"))
                if not title:
                    continue
                anchor = entry.find("a", href=True)
                items.append(CurrentAffairsItem(
                    title=title, date=date_key, category=category, type=feed_type,
                    link=absolute_link(anchor["href"], base_url) if anchor else None,
                    source="NEXT IAS",
                ))

        return items

    def parse_vajiram(self, soup: BeautifulSoup, today: date) -> List[CurrentAffairsItem]:
        base_url = self.config.VAJIRAM_BASE_URL
        date_key = today.isoformat()
        items: List[CurrentAffairsItem] = []

        for heading in soup.find_all(["h2", "h3", "h4"]):
            title = _text(heading)
            if not _is_article_title(title, ("Vajiram",)):
                continue

            anchor = heading.find("a", href=True) or heading.find_parent("a", href=True)
            sibling = heading.find_next_sibling()
            summary = None
            if sibling is not None and sibling.name in ("p", "div"):
                summary = _text(sibling)[:SNIPPET_LENGTH] or None

            items.append(CurrentAffairsItem(
                title=title, date=date_key, category="Current Affairs", type="daily",
                link=absolute_link(anchor["href"], base_url) if anchor else None,
                summary=summary, source="Vajiram & Ravi",
            ))

        if not items:
            for paragraph in soup.find_all("p"):
                text = _text(paragraph)
                if len(text) <= 50 or "Latest News" not in text:
                    continue
                match = re.match(r"^([^:]+):", text)
                if match:
                    items.append(CurrentAffairsItem(
                        title=match.group(1).strip(), date=date_key, category="Current Affairs",
                        type="daily", summary=text[match.end():].strip(), source="Vajiram & Ravi",
                    ))

        return items

    # ==================== Article ====================

    def scrape_article(self, url: str, today: Optional[date] = None) -> ArticleContent:
        if not url or not url.strip():
            raise InvalidInputError("Article URL is required")

        clean_url = fix_malformed_url(url)
        soup = self._fetch(clean_url, "article")
        return self.parse_article(soup, today or date.today())

    def parse_article(self, soup: BeautifulSoup, today: date) -> ArticleContent:
        title = _text(soup.select_one("h1, .article-title, .entry-title"))
        if not title and soup.title is not None:
            title = _text(soup.title).replace(" - NEXT IAS", "").replace(" | NEXT IAS", "")

        published = (
            _text(soup.select_one(".published-date, .date, time"))
            or _text(soup.select_one(".meta-date"))
            or today.isoformat()
        )

        syllabus = _text(soup.select_one(".syllabus, .gs-syllabus")) or self._labelled_text(soup, "Syllabus")
        context = self._section_text(soup, "Context") or self._labelled_text(soup, "Context")
        background = self._section_text(soup, "Background") or self._labelled_text(soup, "Background")

        content = self._article_paragraphs(soup)

        return ArticleContent(
            title=title or "Untitled",
            date=published,
            syllabus=syllabus or None,
            context=context or None,
            background=background or None,
            content=content,
            source="NEXT IAS",
            scraped_at=datetime.now(timezone.utc).isoformat(),
        )

    @staticmethod
    def _section_text(soup: BeautifulSoup, heading_word: str) -> str:
        for heading in soup.find_all(["h2", "h3"]):
            if heading_word in _text(heading):
                sibling = heading.find_next_sibling("p")
                if sibling is not None:
                    return _text(sibling)
        return ""

    @staticmethod
    def _labelled_text(soup: BeautifulSoup, label: str) -> str:
        """Text of ``<p>Label: ...</p>`` or of the paragraph after ``<strong>Label:</strong>``"""
        marker = f"{label}:"
        for paragraph in soup.find_all("p"):
            if marker in _text(paragraph):
                return _text(paragraph)
        for strong in soup.find_all("strong"):
            if marker in _text(strong):
                sibling = strong.find_next_sibling("p")
                if sibling is not None:
                    return _text(sibling)
        return ""

    def _article_paragraphs(self, soup: BeautifulSoup) -> List[str]:
        elements = []
        for selector in ARTICLE_CONTENT_SELECTORS:
            containers = soup.select(selector)
            if containers:
                for container in containers:
                    elements.extend(container.find_all("p") or [container])
                break
        if not elements:
            elements = soup.select(ARTICLE_PARAGRAPH_FALLBACK)

        content = [
            text for text in (_text(e) for e in elements)
            if len(text) > 20 and "©" not in text and "NEXT IAS" not in text
        ]

        if not content:
            for heading in soup.find_all(["h2", "h3", "h4"]):
                for sibling in heading.find_next_siblings():
                    if sibling.name in ("h2", "h3", "h4"):
                        break
                    if sibling.name == "p" and len(_text(sibling)) > 20:
                        content.append(_text(sibling))

        if not content:
            content = [
                text for text in (_text(p) for p in soup.find_all("p"))
                if len(text) > 50 and "©" not in text and "NEXT IAS" not in text and "Call" not in text
            ]

        return list(dict.fromkeys(content))[:self.config.SCRAPE_MAX_PARAGRAPHS]


# Singleton pattern for scraper
_scraper = None

def get_scraper() -> CurrentAffairsScraper:
    """Get scraper instance (singleton)"""
    global _scraper
    if _scraper is None:
        _scraper = CurrentAffairsScraper()
    return _scraper

def close_scraper():
    """Close scraper HTTP session"""
    global _scraper
    if _scraper:
        _scraper.session.close()
        _scraper = None
