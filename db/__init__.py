from .database import init_db, get_db, make_engine, make_session_factory, engine, SessionLocal
from .models import (
    Base, AnalysisSession, Brand, BrandData, AnalysisResult, ProfileCacheEntry,
)

__all__ = [
    "init_db", "get_db", "make_engine", "make_session_factory", "engine", "SessionLocal",
    "Base", "AnalysisSession", "Brand", "BrandData", "AnalysisResult", "ProfileCacheEntry",
]
