"""
Grace period model: organisation-wide lateness extension for a single date (e.g. heavy rain)
"""
from sqlalchemy import Column, Integer, Date, DateTime, String, ForeignKey
from sqlalchemy.sql import func
from app.db.base import Base


class GracePeriod(Base):
    __tablename__ = "grace_periods"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, unique=True, index=True)
    minutes = Column(Integer, nullable=False)
    reason = Column(String(255), nullable=True)
    created_by = Column(Integer, ForeignKey("employees.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
