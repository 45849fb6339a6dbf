"""SQLAlchemy ORM models for the relational submission store"""

from sqlalchemy import Column, DateTime, Float, BigInteger, Integer, Text, JSON
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class SubmissionRow(Base):
    """Accepted application submission, full payload kept as JSON"""

    __tablename__ = "application_submission"

    application_id = Column(Text, primary_key=True)
    priority = Column(Text, nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=False)
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class LenderApplicationRow(Base):
    """One row per (application, lender) pair; queryable columns mirror the JSON payload"""

    __tablename__ = "lender_application"

    id = Column(Text, primary_key=True)  # "{application_id}-{lender_id}"
    application_id = Column(Text, nullable=False, index=True)
    lender_id = Column(Text, nullable=False, index=True)
    status = Column(Text, nullable=False)
    retry_count = Column(Integer, nullable=False, default=0)
    interest_rate = Column(Float, nullable=True)
    approved_amount = Column(BigInteger, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=False)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    payload = Column(JSON, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class InFlightSubmission(Base):
    """Primary key enforces at most one in-progress fan-out per application"""

    __tablename__ = "in_flight_submission"

    application_id = Column(Text, primary_key=True)
    acquired_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
