"""
Lead model — one row per contact captured at an event.

score / ai_similarity_score / ai_score_explanation are written by the scoring
pipeline; avatar, linkedin, location, industry and bio by enrichment.
"""
from sqlalchemy import Column, Integer, Float, Text, DateTime, ForeignKey
from sqlalchemy.sql import func

from leadqual.database import Base


class Lead(Base):
    __tablename__ = 'leads'

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(Integer, ForeignKey('events.id'), nullable=False, index=True)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
    email = Column(Text, nullable=False)
    phone = Column(Text, nullable=True)
    title = Column(Text, nullable=True)
    company = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    source = Column(Text, nullable=False, default='manual')  # manual/scan/import
    score = Column(Text, nullable=False, default='medium')   # high/medium/low
    ai_similarity_score = Column(Float, nullable=True)
    ai_score_explanation = Column(Text, nullable=True)
    avatar = Column(Text, nullable=True)
    linkedin = Column(Text, nullable=True)
    location = Column(Text, nullable=True)
    industry = Column(Text, nullable=True)
    bio = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    scored_at = Column(DateTime(timezone=True), nullable=True)
