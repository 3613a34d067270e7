"""
Core data models for Brand Social Comparative Analytics.
"""

from .schemas import (
    RawPost,
    ProfileStats,
    BrandInput,
    DataSource,
    MergedData,
    DataQualityReport,
    PostTypeStats,
    PlatformSnapshot,
    BrandAnalysisData,
    BrandEquityRow,
    TopKeyword,
    KeywordCluster,
    BrandKeywordAnalysis,
    VoiceMetrics,
    VoiceAnalysisResult,
    ShareOfVoiceAnalysis,
    ComparativeReport,
    REPORT_FIELDS,
)

__all__ = [
    "RawPost",
    "ProfileStats",
    "BrandInput",
    "DataSource",
    "MergedData",
    "DataQualityReport",
    "PostTypeStats",
    "PlatformSnapshot",
    "BrandAnalysisData",
    "BrandEquityRow",
    "TopKeyword",
    "KeywordCluster",
    "BrandKeywordAnalysis",
    "VoiceMetrics",
    "VoiceAnalysisResult",
    "ShareOfVoiceAnalysis",
    "ComparativeReport",
    "REPORT_FIELDS",
]
