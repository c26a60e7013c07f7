from __future__ import annotations

from collections.abc import Sequence

import structlog
from onboarding.domain.models import QualificationAnswer
from onboarding.infrastructure.db.models import QualificationAnswerModel
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


class QualificationRepository:
    """Stores one answer per question key per subject (identity or account)."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def upsert_answers(
        self, subject_id: str, answers: Sequence[QualificationAnswer]
    ) -> list[str]:
        """Insert or overwrite answers; returns the question keys written."""
        if not answers:
            return []

        keys = [answer.question_key for answer in answers]
        stmt = select(QualificationAnswerModel).where(
            QualificationAnswerModel.subject_id == subject_id,
            QualificationAnswerModel.question_key.in_(keys),
        )
        existing = {row.question_key: row for row in (await self.session.scalars(stmt)).all()}

        for answer in answers:
            row = existing.get(answer.question_key)
            if row is None:
                row = QualificationAnswerModel(
                    subject_id=subject_id,
                    question_key=answer.question_key,
                    answer=answer.answer,
                    score=answer.score,
                )
                self.session.add(row)
                existing[answer.question_key] = row
            else:
                row.answer = answer.answer
                row.score = answer.score

        await self.session.flush()
        logger.debug("qualification_answers_upserted", subject_id=subject_id, keys=keys)
        return keys

    async def find_by_subject(self, subject_id: str) -> list[QualificationAnswer]:
        stmt = (
            select(QualificationAnswerModel)
            .where(QualificationAnswerModel.subject_id == subject_id)
            .order_by(QualificationAnswerModel.id)
        )
        rows = (await self.session.scalars(stmt)).all()
        return [
            QualificationAnswer(question_key=row.question_key, answer=row.answer, score=row.score)
            for row in rows
        ]

    async def answers_map(self, subject_id: str) -> dict[str, object]:
        return {answer.question_key: answer.answer for answer in await self.find_by_subject(subject_id)}

    async def rekey_subject(self, old_id: str, new_id: str) -> int:
        """Move every answer of ``old_id`` to ``new_id``; returns the number moved."""
        result = await self.session.execute(
            update(QualificationAnswerModel)
            .where(QualificationAnswerModel.subject_id == old_id)
            .values(subject_id=new_id)
            .execution_options(synchronize_session="fetch")
        )
        logger.info("qualification_answers_rekeyed", old_id=old_id, new_id=new_id, count=result.rowcount)
        return result.rowcount
