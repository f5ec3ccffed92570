# upsc_prep/core/config.py
import os
from typing import Dict, Any, List
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

class Config:
    """Centralized configuration management"""

    # ==================== API Configuration ====================
    API_TITLE = "UPSC Prep API"
    API_DESCRIPTION = "Daily mock tests, flash cards, study tracking and current affairs"
    API_VERSION = "1.0.0"

    # ==================== Database Configuration ====================
    MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "upsc_prep")
    STORE_COLLECTION = os.getenv("STORE_COLLECTION", "tree")
    MONGO_TIMEOUT_MS = int(os.getenv("MONGO_TIMEOUT_MS", "5000"))
    MONGO_POOL_SIZE = int(os.getenv("MONGO_POOL_SIZE", "10"))

    # ==================== Development Settings ====================
    USE_DUMMY_DATA = os.getenv("USE_DUMMY_DATA", "true").lower() == "true"

    # ==================== Test Configuration ====================
    DEFAULT_QUESTIONS = int(os.getenv("DEFAULT_QUESTIONS", "10"))
    MAX_QUESTIONS = int(os.getenv("MAX_QUESTIONS", "30"))
    SECONDS_PER_QUESTION = int(os.getenv("SECONDS_PER_QUESTION", "60"))

    # Test expiration
    TEST_EXPIRATION_SECONDS = int(os.getenv("TEST_EXPIRATION_SECONDS", "7200"))  # 2 hours
    MEMORY_CLEANUP_INTERVAL = int(os.getenv("MEMORY_CLEANUP_INTERVAL", "1800"))  # 30 minutes

    # ==================== Scoring Configuration ====================
    CORRECT_MARKS = float(os.getenv("CORRECT_MARKS", "2"))
    WRONG_PENALTY = float(os.getenv("WRONG_PENALTY", "0.66"))
    STRENGTH_THRESHOLD = float(os.getenv("STRENGTH_THRESHOLD", "70"))
    WEAKNESS_THRESHOLD = float(os.getenv("WEAKNESS_THRESHOLD", "50"))
    UNATTEMPTED_WARNING_LIMIT = int(os.getenv("UNATTEMPTED_WARNING_LIMIT", "2"))

    # ==================== Flash Card Configuration ====================
    DEFAULT_FLASHCARDS = int(os.getenv("DEFAULT_FLASHCARDS", "5"))
    MAX_FLASHCARDS = int(os.getenv("MAX_FLASHCARDS", "20"))

    # ==================== AI Service Configuration ====================
    # Groq settings
    GROQ_API_KEY = os.getenv("GROQ_API_KEY", "")
    GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    GROQ_TIMEOUT = int(os.getenv("GROQ_TIMEOUT", "60"))
    GROQ_TEMPERATURE = float(os.getenv("GROQ_TEMPERATURE", "0.7"))
    GROQ_MAX_TOKENS = int(os.getenv("GROQ_MAX_TOKENS", "6000"))
    GROQ_TOP_P = float(os.getenv("GROQ_TOP_P", "0.9"))

    # Batch generation settings
    BATCH_GENERATION_RETRIES = int(os.getenv("BATCH_GENERATION_RETRIES", "3"))

    # ==================== Scraping Configuration ====================
    NEXT_IAS_BASE_URL = os.getenv("NEXT_IAS_BASE_URL", "https://www.nextias.com")
    VAJIRAM_BASE_URL = os.getenv("VAJIRAM_BASE_URL", "https://vajiramandravi.com")
    SCRAPE_TIMEOUT = int(os.getenv("SCRAPE_TIMEOUT", "15"))
    SCRAPE_MAX_ITEMS = int(os.getenv("SCRAPE_MAX_ITEMS", "30"))
    SCRAPE_MAX_PARAGRAPHS = int(os.getenv("SCRAPE_MAX_PARAGRAPHS", "20"))
    SCRAPE_USER_AGENT = os.getenv(
        "SCRAPE_USER_AGENT",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    )

    # ==================== Server Configuration ====================
    API_HOST = os.getenv("API_HOST", "0.0.0.0")
    API_PORT = int(os.getenv("API_PORT", "8070"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    DEBUG_MODE = os.getenv("DEBUG_MODE", "false").lower() == "true"
    CORS_ORIGINS: List[str] = os.getenv(
        "CORS_ORIGINS", "http://localhost:3000,http://localhost:5173"
    ).split(",")

    # ==================== Environment Overrides ====================
    @classmethod
    def from_env(cls) -> 'Config':
        """Create config with environment variable overrides"""
        return cls()

    # ==================== Validation ====================
    def validate(self) -> Dict[str, Any]:
        """Validate configuration and return status"""
        issues = []

        if self.DEFAULT_QUESTIONS < 1:
            issues.append("DEFAULT_QUESTIONS must be at least 1")

        if self.DEFAULT_QUESTIONS > self.MAX_QUESTIONS:
            issues.append("DEFAULT_QUESTIONS cannot exceed MAX_QUESTIONS")

        if self.SECONDS_PER_QUESTION < 1:
            issues.append("SECONDS_PER_QUESTION must be at least 1")

        if not (0 <= self.WEAKNESS_THRESHOLD <= self.STRENGTH_THRESHOLD <= 100):
            issues.append("Thresholds must satisfy 0 <= WEAKNESS <= STRENGTH <= 100")

        if not self.USE_DUMMY_DATA and not self.GROQ_API_KEY:
            issues.append("GROQ_API_KEY is required when not using dummy data")

        return {
            "valid": len(issues) == 0,
            "issues": issues,
            "config_loaded": True,
            "using_dummy_data": self.USE_DUMMY_DATA
        }

# Global configuration instance
config = Config.from_env()

# Validate on import
validation_result = config.validate()
if not validation_result["valid"]:
    import logging
    logger = logging.getLogger(__name__)
    logger.warning(f"Configuration issues: {validation_result['issues']}")
