from .base import Agent, AsyncAgent, AgentResult, capture
from .data_quality import validate_data_quality
from .extractor import extract_platform_snapshot, normalize_post
from .keywords import KeywordClusteringAgent, analyze_posts_by_keywords
from .voice import VoiceAnalysisAgent
from .share_of_voice import ShareOfVoiceAgent, ShareOfVoiceRequest
from .brand_equity import BrandEquityAgent, BrandEquityRequest
from .insights import InsightAgent, InsightRequest
from .orchestrator import ComparativeAnalysisOrchestrator, AnalysisError, PersistenceError

__all__ = [
    "Agent", "AsyncAgent", "AgentResult", "capture",
    "validate_data_quality", "extract_platform_snapshot", "normalize_post",
    "KeywordClusteringAgent", "analyze_posts_by_keywords",
    "VoiceAnalysisAgent",
    "ShareOfVoiceAgent", "ShareOfVoiceRequest",
    "BrandEquityAgent", "BrandEquityRequest",
    "InsightAgent", "InsightRequest",
    "ComparativeAnalysisOrchestrator", "AnalysisError", "PersistenceError",
]
