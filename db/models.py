"""
SQLAlchemy ORM Models
Brand Social Comparative Analytics
"""

from sqlalchemy import (
    Column, Integer, Float, String, Text, Boolean,
    DateTime, ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship, declarative_base
from datetime import datetime

Base = declarative_base()

SESSION_PENDING = "pending"
SESSION_PROCESSING = "processing"
SESSION_COMPLETED = "completed"
SESSION_FAILED = "failed"


class AnalysisSession(Base):
    __tablename__ = "analysis_session"

    session_id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default=SESSION_PENDING)
    universe_keywords = Column(Text)          # comma-separated, optional
    created_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime)
    notification_read = Column(Boolean, default=False)

    brands = relationship(
        "Brand", back_populates="session", cascade="all, delete-orphan",
        order_by="Brand.position",
    )
    result = relationship(
        "AnalysisResult", back_populates="session", uselist=False, cascade="all, delete-orphan",
    )

    @property
    def focus_brand(self):
        return next((b for b in self.brands if b.role == "focus"), None)

    @property
    def competitors(self):
        return [b for b in self.brands if b.role == "competitor"]


class Brand(Base):
    __tablename__ = "brand"

    brand_id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("analysis_session.session_id"), nullable=False)
    role = Column(String(20), nullable=False)    # focus | competitor
    position = Column(Integer, default=0)
    name = Column(String(255), nullable=False)
    website = Column(String(500))
    instagram_handle = Column(String(255))
    tiktok_handle = Column(String(255))
    twitter_handle = Column(String(255))
    youtube_handle = Column(String(255))
    facebook_handle = Column(String(255))

    session = relationship("AnalysisSession", back_populates="brands")
    snapshots = relationship("BrandData", back_populates="brand", cascade="all, delete-orphan")

    __table_args__ = (Index("ix_brand_session", "session_id"),)


class BrandData(Base):
    """Per brand per platform snapshot written with each completed run."""
    __tablename__ = "brand_data"

    brand_data_id = Column(Integer, primary_key=True, autoincrement=True)
    brand_id = Column(Integer, ForeignKey("brand.brand_id"), nullable=False)
    platform = Column(String(50), nullable=False)
    raw_data = Column(Text)                   # JSON
    scraped_data = Column(Text)               # JSON
    follower_count = Column(Integer, default=0)
    post_count = Column(Integer, default=0)
    engagement_rate = Column(Float, default=0.0)
    avg_post_per_day = Column(Float, default=0.0)
    created_at = Column(DateTime, default=datetime.utcnow)

    brand = relationship("Brand", back_populates="snapshots")

    __table_args__ = (Index("ix_brand_data_brand_platform", "brand_id", "platform"),)


class AnalysisResult(Base):
    """One row per session; every report field is its own JSON blob."""
    __tablename__ = "analysis_result"

    result_id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(
        Integer, ForeignKey("analysis_session.session_id"), nullable=False, unique=True
    )
    brand_equity_data = Column(Text)
    audience_comparison = Column(Text)
    post_channel_data = Column(Text)
    hashtag_analysis = Column(Text)
    post_type_engagement = Column(Text)
    post_timing_data = Column(Text)
    keyword_clustering = Column(Text)
    voice_analysis = Column(Text)
    share_of_voice = Column(Text)
    additional_metrics = Column(Text)
    data_quality_report = Column(Text)
    ai_insights = Column(Text)
    ai_keyword_insights = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    session = relationship("AnalysisSession", back_populates="result")


class ProfileCacheEntry(Base):
    __tablename__ = "profile_cache"

    cache_id = Column(Integer, primary_key=True, autoincrement=True)
    platform = Column(String(50), nullable=False)
    username = Column(String(255), nullable=False)
    followers = Column(Integer, default=0)
    following = Column(Integer, default=0)
    posts = Column(Integer, default=0)
    engagement = Column(Float)
    source = Column(String(20))
    scraped_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("platform", "username", name="uq_profile_cache_platform_username"),
    )
