from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recruitdesk.db.base import Base, TimestampMixin, utcnow

VACANCY_STATUSES = ("active", "inactive")
APPLICATION_SOURCES = ("web", "referral", "manual")
APPLICATION_STATUSES = ("pending", "ranked")

SCORE_FIELDS = (
    "education_score",
    "work_experience_score",
    "skill_match_score",
    "certifications_score",
    "domain_knowledge_score",
    "soft_skills_score",
)
EVIDENCE_FIELDS = (
    "education_evidence",
    "work_experience_evidence",
    "skill_match_evidence",
    "certifications_evidence",
    "domain_knowledge_evidence",
    "soft_skills_evidence",
)


def new_uuid() -> str:
    return str(uuid.uuid4())


class Vacancy(TimestampMixin, Base):
    __tablename__ = "vacancies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    job_title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    url: Mapped[str | None] = mapped_column(String(800), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)
    closing_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    applications_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)

    applications: Mapped[list[Application]] = relationship("Application", back_populates="vacancy")


class Application(TimestampMixin, Base):
    __tablename__ = "applications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    job_title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    vacancy_id: Mapped[int | None] = mapped_column(
        ForeignKey("vacancies.id", ondelete="SET NULL"), nullable=True, index=True
    )
    cv_file_url: Mapped[str | None] = mapped_column(String(800), nullable=True)
    source: Mapped[str] = mapped_column(String(20), default="web", nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)

    vacancy: Mapped[Vacancy | None] = relationship("Vacancy", back_populates="applications")
    ranking: Mapped[CvRanking | None] = relationship(
        "CvRanking", back_populates="application", uselist=False, cascade="all, delete-orphan"
    )


class CvRanking(TimestampMixin, Base):
    __tablename__ = "cv_rankings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    application_id: Mapped[str] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    education_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    education_evidence: Mapped[str | None] = mapped_column(Text, nullable=True)
    work_experience_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    work_experience_evidence: Mapped[str | None] = mapped_column(Text, nullable=True)
    skill_match_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    skill_match_evidence: Mapped[str | None] = mapped_column(Text, nullable=True)
    certifications_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    certifications_evidence: Mapped[str | None] = mapped_column(Text, nullable=True)
    domain_knowledge_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    domain_knowledge_evidence: Mapped[str | None] = mapped_column(Text, nullable=True)
    soft_skills_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    soft_skills_evidence: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    final_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    ranked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )

    application: Mapped[Application] = relationship("Application", back_populates="ranking")


class Referral(TimestampMixin, Base):
    __tablename__ = "referrals"
    __table_args__ = (UniqueConstraint("email", "job_title", name="uq_referrals_email_job_title"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    job_title: Mapped[str] = mapped_column(String(255), nullable=False)
    cv_file_url: Mapped[str | None] = mapped_column(String(800), nullable=True)
    copied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
