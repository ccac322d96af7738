"""
Event model — a conference or trade show that leads are captured at.

lead_scoring_criteria overrides the default ideal customer description when
this event's leads are scored.
"""
from sqlalchemy import Column, Integer, Text, DateTime
from sqlalchemy.sql import func

from leadqual.database import Base


class Event(Base):
    __tablename__ = 'events'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    location = Column(Text, default='')
    status = Column(Text, nullable=False, default='upcoming')  # upcoming/active/completed
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    lead_scoring_criteria = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
