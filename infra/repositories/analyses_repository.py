import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import sessionmaker

from domain.schemas import Critique, STATUS_COMPLETE, STATUS_PROCESSING
from infra.db.models import AnalysisRecord, UserProfile


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AnalysesRepository:
    """Persistence for analysis records.

    Rows come back as plain dicts with the stored column names; callers read
    them through the normalizer, never field by field. Every mutation after
    insert is a conditional UPDATE so that concurrent writers cannot move a
    record backwards or overwrite a value that was already set.
    """

    def __init__(self, session_factory: sessionmaker):
        self._sessions = session_factory

    def upsert_profile(self, user_id: str, email: str) -> None:
        with self._sessions() as s:
            profile = s.get(UserProfile, user_id)
            if profile is None:
                s.add(UserProfile(id=user_id, email=email))
            elif profile.email != email:
                profile.email = email
            s.commit()

    def create(self, user_id: str, job_description: str, resume_text: str = "",
               resume_file_path: Optional[str] = None) -> str:
        aid = uuid.uuid4().hex
        now = _now()
        with self._sessions() as s:
            s.add(AnalysisRecord(
                id=aid, user_id=user_id, job_description=job_description,
                resume_text=resume_text, resume_file_path=resume_file_path,
                status=STATUS_PROCESSING, created_at=now, updated_at=now))
            s.commit()
        return aid

    def get(self, analysis_id: str, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        with self._sessions() as s:
            rec = s.get(AnalysisRecord, analysis_id)
            if not rec or (user_id is not None and rec.user_id != user_id):
                return None
            return rec.to_row()

    def latest_for_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        stmt = (
            select(AnalysisRecord)
            .where(AnalysisRecord.user_id == user_id)
            .order_by(AnalysisRecord.created_at.desc())
            .limit(1)
        )
        with self._sessions() as s:
            rec = s.execute(stmt).scalars().first()
            return rec.to_row() if rec else None

    def set_resume_text(self, analysis_id: str, text: str) -> bool:
        """Store extracted text once; returns False if it was already set."""
        stmt = (
            update(AnalysisRecord)
            .where(AnalysisRecord.id == analysis_id)
            .where(AnalysisRecord.resume_text == "")
            .where(AnalysisRecord.status == STATUS_PROCESSING)
            .values(resume_text=text, updated_at=_now())
        )
        with self._sessions() as s:
            res = s.execute(stmt)
            s.commit()
            return res.rowcount == 1

    def complete(self, analysis_id: str, critique: Critique, raw: Any = None) -> bool:
        """Flip ``processing`` to ``analysis_complete``.

        Returns False when another writer got there first (or the record has no
        résumé text yet); in that case nothing is written.
        """
        stmt = (
            update(AnalysisRecord)
            .where(AnalysisRecord.id == analysis_id)
            .where(AnalysisRecord.status == STATUS_PROCESSING)
            .where(AnalysisRecord.resume_text != "")
            .values(
                status=STATUS_COMPLETE,
                toxicity_score=critique.toxicityScore,
                fit_score=critique.fitScore,
                ats_score=critique.atsScore,
                red_flags=[f.model_dump() for f in critique.redFlags],
                missing_skills=list(critique.missingSkills),
                summary=critique.summary,
                interview_questions=[q.model_dump() for q in critique.interviewQuestions],
                ai_response=raw if raw is not None else critique.model_dump(),
                updated_at=_now(),
            )
        )
        with self._sessions() as s:
            res = s.execute(stmt)
            s.commit()
            return res.rowcount == 1
