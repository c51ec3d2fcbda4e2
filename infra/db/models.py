from sqlalchemy import Column, String, Integer, Text, DateTime, JSON, Index
from sqlalchemy.sql import func
from infra.db.session import Base


class UserProfile(Base):
    __tablename__ = "user_profiles"
    id = Column(String, primary_key=True)
    email = Column(String, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class AnalysisRecord(Base):
    __tablename__ = "analyses"
    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False)
    job_description = Column(Text, nullable=False)
    resume_text = Column(Text, nullable=False, default="")
    resume_file_path = Column(String, nullable=True)
    status = Column(String, nullable=False, default="processing")  # 'processing' | 'analysis_complete'
    # critique columns stay NULL until the record is complete
    toxicity_score = Column(Integer, nullable=True)
    fit_score = Column(Integer, nullable=True)
    ats_score = Column(Integer, nullable=True)
    red_flags = Column(JSON, nullable=True)
    missing_skills = Column(JSON, nullable=True)
    summary = Column(Text, nullable=True)
    interview_questions = Column(JSON, nullable=True)
    ai_response = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_analyses_user_created", "user_id", "created_at"),)

    def to_row(self) -> dict:
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}
