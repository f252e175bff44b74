"""Initial schema.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create source_files table
    op.create_table(
        "source_files",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("original_filename", sa.String(length=255), nullable=False),
        sa.Column("technology", sa.String(length=20), nullable=False),
        sa.Column("content_hash", sa.String(length=64), nullable=False),
        sa.Column("storage_key", sa.String(length=512), nullable=False),
        sa.Column("size_bytes", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="uploaded", nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("has_errors", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("processing_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("processing_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('uploaded', 'processing', 'analyzed', 'failed')",
            name="ck_source_files_status",
        ),
    )
    op.create_index(op.f("ix_source_files_content_hash"), "source_files", ["content_hash"], unique=True)
    op.create_index(op.f("ix_source_files_technology"), "source_files", ["technology"], unique=False)
    op.create_index(op.f("ix_source_files_status"), "source_files", ["status"], unique=False)

    # Create analyses table
    op.create_table(
        "analyses",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("file_id", sa.UUID(), nullable=False),
        sa.Column("lines_of_code", sa.Integer(), nullable=False),
        sa.Column("code_lines", sa.Integer(), nullable=False),
        sa.Column("comment_lines", sa.Integer(), nullable=False),
        sa.Column("blank_lines", sa.Integer(), nullable=False),
        sa.Column("cyclomatic_complexity", sa.Integer(), nullable=False),
        sa.Column("nesting_depth", sa.Integer(), nullable=False),
        sa.Column("function_count", sa.Integer(), nullable=False),
        sa.Column("class_count", sa.Integer(), nullable=False),
        sa.Column("loop_count", sa.Integer(), nullable=False),
        sa.Column("conditional_count", sa.Integer(), nullable=False),
        sa.Column("sql_join_count", sa.Integer(), nullable=False),
        sa.Column("dependency_count", sa.Integer(), nullable=False),
        sa.Column("maintainability_index", sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column("risk_score", sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column("complexity_level", sa.String(length=20), nullable=False),
        sa.Column("quality_score", sa.Integer(), nullable=False),
        sa.Column("technical_debt_score", sa.Integer(), nullable=False),
        sa.Column("technical_debt_category", sa.String(length=20), nullable=False),
        sa.Column("technical_debt_hours", sa.Numeric(precision=7, scale=1), nullable=False),
        sa.Column("technology", sa.String(length=20), nullable=False),
        sa.Column("provenance", sa.String(length=20), nullable=False),
        sa.Column("analyzer_version", sa.String(length=20), nullable=False),
        sa.Column("ai_model", sa.String(length=100), nullable=True),
        sa.Column("detailed_metrics", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("issues_found", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["file_id"], ["source_files.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "complexity_level IN ('low', 'medium', 'high', 'critical')",
            name="ck_analyses_complexity_level",
        ),
        sa.CheckConstraint(
            "risk_score >= 0 AND risk_score <= 100",
            name="ck_analyses_risk_score_range",
        ),
    )
    op.create_index(op.f("ix_analyses_file_id"), "analyses", ["file_id"], unique=False)
    op.create_index("ix_analyses_file_id_created_at", "analyses", ["file_id", "created_at"], unique=False)

    # Create suggestions table
    op.create_table(
        "suggestions",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("analysis_id", sa.UUID(), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("severity", sa.String(length=20), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("explanation", sa.Text(), nullable=True),
        sa.Column("suggested_fix", sa.Text(), nullable=True),
        sa.Column("modernization_approach", sa.Text(), nullable=True),
        sa.Column("start_line", sa.Integer(), nullable=True),
        sa.Column("end_line", sa.Integer(), nullable=True),
        sa.Column("impact_score", sa.Numeric(precision=3, scale=2), nullable=False),
        sa.Column("effort_estimate", sa.String(length=20), nullable=False),
        sa.Column("ai_confidence", sa.Numeric(precision=3, scale=2), nullable=False),
        sa.Column("ai_model", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["analysis_id"], ["analyses.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_suggestions_analysis_id"), "suggestions", ["analysis_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_suggestions_analysis_id"), table_name="suggestions")
    op.drop_table("suggestions")
    op.drop_index("ix_analyses_file_id_created_at", table_name="analyses")
    op.drop_index(op.f("ix_analyses_file_id"), table_name="analyses")
    op.drop_table("analyses")
    op.drop_index(op.f("ix_source_files_status"), table_name="source_files")
    op.drop_index(op.f("ix_source_files_technology"), table_name="source_files")
    op.drop_index(op.f("ix_source_files_content_hash"), table_name="source_files")
    op.drop_table("source_files")
