"""Initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "vacancies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("job_title", sa.String(length=255), nullable=False),
        sa.Column("url", sa.String(length=800), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("closing_date", sa.Date(), nullable=True),
        *_timestamps(),
    )
    op.create_index(op.f("ix_vacancies_job_title"), "vacancies", ["job_title"])
    op.create_index(op.f("ix_vacancies_created_at"), "vacancies", ["created_at"])

    op.create_table(
        "applications",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("job_title", sa.String(length=255), nullable=False),
        sa.Column(
            "vacancy_id",
            sa.Integer(),
            sa.ForeignKey("vacancies.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("cv_file_url", sa.String(length=800), nullable=True),
        sa.Column("source", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        *_timestamps(),
    )
    op.create_index(op.f("ix_applications_email"), "applications", ["email"])
    op.create_index(op.f("ix_applications_job_title"), "applications", ["job_title"])
    op.create_index(op.f("ix_applications_vacancy_id"), "applications", ["vacancy_id"])
    op.create_index(op.f("ix_applications_created_at"), "applications", ["created_at"])

    op.create_table(
        "cv_rankings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "application_id",
            sa.String(length=36),
            sa.ForeignKey("applications.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("education_score", sa.Integer(), nullable=True),
        sa.Column("education_evidence", sa.Text(), nullable=True),
        sa.Column("work_experience_score", sa.Integer(), nullable=True),
        sa.Column("work_experience_evidence", sa.Text(), nullable=True),
        sa.Column("skill_match_score", sa.Integer(), nullable=True),
        sa.Column("skill_match_evidence", sa.Text(), nullable=True),
        sa.Column("certifications_score", sa.Integer(), nullable=True),
        sa.Column("certifications_evidence", sa.Text(), nullable=True),
        sa.Column("domain_knowledge_score", sa.Integer(), nullable=True),
        sa.Column("domain_knowledge_evidence", sa.Text(), nullable=True),
        sa.Column("soft_skills_score", sa.Integer(), nullable=True),
        sa.Column("soft_skills_evidence", sa.Text(), nullable=True),
        sa.Column("total_score", sa.Integer(), nullable=True),
        sa.Column("final_score", sa.Float(), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("ranked_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index(op.f("ix_cv_rankings_ranked_at"), "cv_rankings", ["ranked_at"])
    op.create_index(op.f("ix_cv_rankings_created_at"), "cv_rankings", ["created_at"])

    op.create_table(
        "referrals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("job_title", sa.String(length=255), nullable=False),
        sa.Column("cv_file_url", sa.String(length=800), nullable=True),
        sa.Column("copied", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("email", "job_title", name="uq_referrals_email_job_title"),
    )
    op.create_index(op.f("ix_referrals_created_at"), "referrals", ["created_at"])


def downgrade() -> None:
    op.drop_table("referrals")
    op.drop_table("cv_rankings")
    op.drop_table("applications")
    op.drop_table("vacancies")
