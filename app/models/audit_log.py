"""
Audit log model
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from app.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    actor_id = Column(Integer, ForeignKey("employees.id"), nullable=False)
    action = Column(String, nullable=False)  # e.g. "ATTENDANCE_UPSERT", "BULK_UPLOAD", "TIMER_STOP"
    entity_type = Column(String, nullable=False)  # e.g. "attendance_records", "salary_adjustments"
    entity_id = Column(Integer, nullable=True)
    meta_json = Column(JSON, nullable=True)
    # Set explicitly by log_audit (SQLite server_default returns naive strings)
    created_at = Column(DateTime(timezone=True), nullable=False)
