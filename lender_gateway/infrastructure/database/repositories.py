"""Data access layer for submissions and lender application records"""

from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Any, Iterator, List, Optional
from pydantic import TypeAdapter
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from lender_gateway.domain.models import ApplicationStatus, ApplicationSubmission, LenderApplication
from lender_gateway.domain.ports import InFlightGuard, SubmissionStore
from lender_gateway.infrastructure.database.models import (
    InFlightSubmission,
    LenderApplicationRow,
    SubmissionRow,
)
from lender_gateway.infrastructure.memory import retried_fields

record_adapter = TypeAdapter(LenderApplication)
submission_adapter = TypeAdapter(ApplicationSubmission)


class SubmissionRepository:
    """Repository for application submissions"""

    def __init__(self, db: Session):
        self.db = db

    def save(self, submission: ApplicationSubmission) -> SubmissionRow:
        """Insert or overwrite the stored submission"""
        row = SubmissionRow(
            application_id=submission.application_id,
            priority=submission.priority.value,
            submitted_at=submission.submitted_at,
            payload=submission_adapter.dump_python(submission, mode="json"),
        )
        return self.db.merge(row)

    def get(self, application_id: str) -> Optional[ApplicationSubmission]:
        row = self.db.get(SubmissionRow, application_id)
        if row is None:
            return None
        return submission_adapter.validate_python(row.payload)


class LenderApplicationRepository:
    """Repository for per-lender application records"""

    def __init__(self, db: Session):
        self.db = db

    def save(self, record: LenderApplication) -> LenderApplicationRow:
        """Upsert keyed by (application, lender)"""
        row = (
            self.db.query(LenderApplicationRow)
            .filter(
                LenderApplicationRow.application_id == record.application_id,
                LenderApplicationRow.lender_id == record.lender_id,
            )
            .with_for_update()
            .first()
        )
        if row is None:
            row = LenderApplicationRow(id=record.id)
            self.db.add(row)
        self.write_record(row, record)
        return row

    def get_row(self, application_id: str, lender_id: str, lock: bool = False) -> Optional[LenderApplicationRow]:
        query = self.db.query(LenderApplicationRow).filter(
            LenderApplicationRow.application_id == application_id,
            LenderApplicationRow.lender_id == lender_id,
        )
        if lock:
            query = query.with_for_update()
        return query.first()

    def list_for_application(self, application_id: str) -> List[LenderApplication]:
        rows = (
            self.db.query(LenderApplicationRow)
            .filter(LenderApplicationRow.application_id == application_id)
            .order_by(LenderApplicationRow.submitted_at)
            .all()
        )
        return [self.to_record(row) for row in rows]

    def list_all(self) -> List[LenderApplication]:
        rows = self.db.query(LenderApplicationRow).order_by(LenderApplicationRow.submitted_at).all()
        return [self.to_record(row) for row in rows]

    @staticmethod
    def to_record(row: LenderApplicationRow) -> LenderApplication:
        return record_adapter.validate_python(row.payload)

    def write_record(self, row: LenderApplicationRow, record: LenderApplication) -> None:
        row.application_id = record.application_id
        row.lender_id = record.lender_id
        row.status = record.status.value
        row.retry_count = record.retry_count
        row.interest_rate = record.interest_rate
        row.approved_amount = record.approved_amount
        row.submitted_at = record.submitted_at
        row.responded_at = record.responded_at
        row.payload = record_adapter.dump_python(record, mode="json")


class SqlSubmissionStore(SubmissionStore):
    """Relational store; each operation runs in its own transaction"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def add_submission(self, submission: ApplicationSubmission) -> None:
        with self._session() as db:
            SubmissionRepository(db).save(submission)

    def get_submission(self, application_id: str) -> Optional[ApplicationSubmission]:
        with self._session() as db:
            return SubmissionRepository(db).get(application_id)

    def add_application(self, record: LenderApplication) -> None:
        with self._session() as db:
            LenderApplicationRepository(db).save(record)

    def get_application(self, application_id: str, lender_id: str) -> Optional[LenderApplication]:
        with self._session() as db:
            row = LenderApplicationRepository(db).get_row(application_id, lender_id)
            return LenderApplicationRepository.to_record(row) if row else None

    def update_application(
        self, application_id: str, lender_id: str, **fields: Any
    ) -> Optional[LenderApplication]:
        with self._session() as db:
            repo = LenderApplicationRepository(db)
            row = repo.get_row(application_id, lender_id, lock=True)
            if row is None:
                return None
            updated = replace(repo.to_record(row), **fields)
            repo.write_record(row, updated)
            return updated

    def mark_retry(
        self, application_id: str, lender_id: str, retried_at: datetime
    ) -> Optional[LenderApplication]:
        """Claim a FAILED record with a conditional UPDATE; only one caller can win"""
        with self._session() as db:
            claimed = (
                db.query(LenderApplicationRow)
                .filter(
                    LenderApplicationRow.application_id == application_id,
                    LenderApplicationRow.lender_id == lender_id,
                    LenderApplicationRow.status == ApplicationStatus.FAILED.value,
                )
                .update(
                    {LenderApplicationRow.status: ApplicationStatus.SUBMITTED.value},
                    synchronize_session=False,
                )
            )
            if not claimed:
                return None
            repo = LenderApplicationRepository(db)
            row = repo.get_row(application_id, lender_id)
            record = repo.to_record(row)
            updated = replace(record, **retried_fields(record, retried_at))
            repo.write_record(row, updated)
            return updated

    def get_applications(self, application_id: str) -> List[LenderApplication]:
        with self._session() as db:
            return LenderApplicationRepository(db).list_for_application(application_id)

    def get_all_applications(self) -> List[LenderApplication]:
        with self._session() as db:
            return LenderApplicationRepository(db).list_all()


class SqlInFlightGuard(InFlightGuard):
    """Single-flight via a primary-key insert, shared by every process on the database"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def acquire(self, application_id: str) -> bool:
        db = self.session_factory()
        try:
            db.add(InFlightSubmission(application_id=application_id))
            db.commit()
            return True
        except IntegrityError:
            db.rollback()
            return False
        finally:
            db.close()

    def release(self, application_id: str) -> None:
        db = self.session_factory()
        try:
            db.query(InFlightSubmission).filter(
                InFlightSubmission.application_id == application_id
            ).delete()
            db.commit()
        finally:
            db.close()
