"""
Configuration & Settings
Brand Social Comparative Analytics
"""

from pydantic import BaseModel, Field
from typing import Dict, List, Optional
import os


def _default_universe_keywords() -> Dict[str, List[str]]:
    return {
        "water": [
            "air minum", "air mineral", "air putih", "minum air", "air kemasan",
            "mineral water", "drinking water", "botol air", "gallon air",
            "hidrasi", "dehidrasi", "kesehatan air",
        ],
        "coffee": [
            "kopi", "coffee", "caffeine", "kafein", "ngopi", "kopi susu",
            "espresso", "americano", "cappuccino", "latte", "kopi hitam", "warung kopi",
        ],
        "noodles": [
            "mie", "mie instan", "noodles", "instant noodles", "mie goreng",
            "mie kuah", "ramen", "bakmi", "mi goreng",
        ],
        "beauty": [
            "skincare", "makeup", "kosmetik", "kecantikan", "perawatan wajah",
            "beauty", "serum", "moisturizer", "cleanser", "toner",
        ],
        "tech": [
            "smartphone", "laptop", "gadget", "teknologi", "tech", "elektronik",
            "device", "handphone", "komputer",
        ],
    }


def _default_category_hints() -> Dict[str, List[str]]:
    # brand-name substring -> category, checked in insertion order
    return {
        "water": ["aqua", "mineral", "crystalin", "vit"],
        "coffee": ["kopiko", "kopi", "coffee"],
        "noodles": ["indomie", "mie"],
    }


class Settings(BaseModel):
    # App
    APP_NAME: str = "Brand Social Comparative Analytics"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./brand_analytics.db")

    # Social data provider
    SOCIAL_API_BASE_URL: str = os.getenv("TMS_API_BASE_URL", "http://localhost:8080")
    REQUEST_TIMEOUT: int = 30
    MAX_RETRIES: int = 3
    USER_AGENT: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    POST_PLATFORMS: List[str] = ["instagram", "tiktok", "twitter", "facebook"]
    MENTION_PLATFORMS: List[str] = ["instagram", "tiktok", "twitter", "news"]

    # Profile scraping
    PROFILE_CACHE_TTL_HOURS: float = float(os.getenv("PROFILE_CACHE_TTL_HOURS", "6"))
    BROWSER_HEADLESS: bool = True
    BROWSER_NAV_TIMEOUT_MS: int = 30000

    # Text generation
    TEXT_GEN_URL: Optional[str] = os.getenv("OLLAMA_API_URL") or None
    TEXT_GEN_MODEL: str = os.getenv("OLLAMA_MODEL", "llama3")
    TEXT_GEN_TIMEOUT: float = 120.0
    INSIGHT_PLACEHOLDER: str = "AI insights are unavailable for this analysis."

    # Orchestration
    BRAND_CONCURRENCY: int = int(os.getenv("BRAND_CONCURRENCY", "1"))
    REPORT_TIMEZONE: str = os.getenv("REPORT_TIMEZONE", "UTC")
    ANALYSIS_WINDOW_LABEL: str = "30 days"

    # Data quality scoring (point budgets sum to 100)
    DQ_WEIGHT_SOURCES: float = 20.0
    DQ_WEIGHT_FOLLOWERS: float = 25.0
    DQ_WEIGHT_POSTS: float = 25.0
    DQ_WEIGHT_DATA_POINTS: float = 20.0
    DQ_WEIGHT_DATE_RANGE: float = 10.0
    DQ_TIGHT_VARIANCE: float = 0.10
    DQ_LOOSE_VARIANCE: float = 0.30
    DQ_SINGLE_SOURCE_CREDIT: float = 0.30
    FALLBACK_ACCOUNT_AGE_DAYS: int = 730

    # Platform metric heuristics (approximations, flagged in data-quality reports)
    ASSUMED_ENGAGEMENT_RATES: Dict[str, float] = {"instagram": 0.02, "tiktok": 0.07}
    FOLLOWER_MULTIPLIERS: Dict[str, float] = {"twitter": 50.0, "facebook": 100.0}
    FALLBACK_POSTING_WINDOW_DAYS: int = 30
    MAX_HASHTAGS: int = 20

    # Keyword clustering
    KEYWORD_MAX_POSTS: int = 40
    KEYWORD_VOCABULARY_SIZE: int = 15
    MIN_CLUSTER_SIZE: int = 3
    TOP_KEYWORDS: int = 10
    RELATED_KEYWORDS: int = 5

    # Voice analysis
    TOP_MENTIONERS: int = 10
    MENTION_REACH_MULTIPLIER: int = 10

    # Brand equity
    EQUITY_FOLLOWER_BENCHMARK: float = 500000.0
    EQUITY_VELOCITY_BENCHMARK: float = 2.0
    EQUITY_ENGAGEMENT_SCALE: float = 10.0
    EQUITY_REACH_WEIGHT: float = 0.4
    EQUITY_ENGAGEMENT_WEIGHT: float = 0.4
    EQUITY_CONTENT_WEIGHT: float = 0.2

    # Share of voice
    UNIVERSE_KEYWORDS: Dict[str, List[str]] = Field(default_factory=_default_universe_keywords)
    CATEGORY_HINTS: Dict[str, List[str]] = Field(default_factory=_default_category_hints)
    DEFAULT_CATEGORY: str = "water"


settings = Settings()
