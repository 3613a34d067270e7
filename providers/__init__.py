from .social_api import SocialDataClient, FetchResult, build_boolean_query
from .profile_scraper import ProfileScraper, parse_metric_string
from .browser import BrowserSession
from .text_generation import TextGenerationClient, GenerationResult

__all__ = [
    "SocialDataClient", "FetchResult", "build_boolean_query",
    "ProfileScraper", "parse_metric_string",
    "BrowserSession",
    "TextGenerationClient", "GenerationResult",
]
