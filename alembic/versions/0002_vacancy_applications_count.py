"""Materialized application count on vacancies

Revision ID: 0002_vacancy_applications_count
Revises: 0001_initial_schema
Create Date: 2026-10-19

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002_vacancy_applications_count"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


def _has_table(insp: sa.Inspector, table: str) -> bool:
    return table in insp.get_table_names()


def _has_column(insp: sa.Inspector, table: str, column: str) -> bool:
    if not _has_table(insp, table):
        return False
    cols = {c["name"] for c in insp.get_columns(table)}
    return column in cols


def upgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)

    if _has_table(insp, "vacancies") and not _has_column(insp, "vacancies", "applications_count"):
        with op.batch_alter_table("vacancies", schema=None) as batch_op:
            batch_op.add_column(
                sa.Column("applications_count", sa.Integer(), nullable=False, server_default="0")
            )


def downgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)

    if _has_column(insp, "vacancies", "applications_count"):
        with op.batch_alter_table("vacancies", schema=None) as batch_op:
            batch_op.drop_column("applications_count")
