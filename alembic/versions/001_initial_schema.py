"""Initial welfare claims schema.

Revision ID: 001
Revises:
Create Date: 2025-07-02

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def upgrade() -> None:
    """Create the catalog, claim, ledger and audit tables."""
    # Catalog
    op.create_table(
        "welfare_programs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_welfare_programs")),
        sa.UniqueConstraint("code", name=op.f("uq_welfare_programs_code")),
    )

    op.create_table(
        "welfare_required_documents",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("program_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_welfare_required_documents")),
        sa.ForeignKeyConstraint(
            ["program_id"],
            ["welfare_programs.id"],
            name=op.f("fk_welfare_required_documents_program_id_welfare_programs"),
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        op.f("ix_welfare_required_documents_program_id"),
        "welfare_required_documents",
        ["program_id"],
    )

    op.create_table(
        "welfare_sub_programs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("program_id", sa.Uuid(), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("unit_type", sa.String(20), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("max_per_request", sa.Numeric(12, 2), nullable=True),
        sa.Column("max_per_year", sa.Numeric(12, 2), nullable=True),
        sa.Column("max_lifetime", sa.Numeric(12, 2), nullable=True),
        sa.Column("max_claims_per_year", sa.Integer(), nullable=True),
        sa.Column("max_claims_lifetime", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_welfare_sub_programs")),
        sa.ForeignKeyConstraint(
            ["program_id"],
            ["welfare_programs.id"],
            name=op.f("fk_welfare_sub_programs_program_id_welfare_programs"),
        ),
        sa.UniqueConstraint(
            "program_id", "code", name="uq_welfare_sub_programs_program_code"
        ),
        sa.CheckConstraint(
            "amount > 0", name=op.f("ck_welfare_sub_programs_amount_positive")
        ),
    )
    op.create_index(
        op.f("ix_welfare_sub_programs_program_id"), "welfare_sub_programs", ["program_id"]
    )

    # Claims
    op.create_table(
        "claims",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("claim_number", sa.String(32), nullable=False),
        sa.Column("claimant_id", sa.Uuid(), nullable=False),
        sa.Column("sub_program_id", sa.Uuid(), nullable=False),
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("requested_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("approved_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("nights", sa.Integer(), nullable=True),
        sa.Column("beneficiary_name", sa.String(200), nullable=True),
        sa.Column("beneficiary_relation", sa.String(100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("admin_approver_id", sa.Uuid(), nullable=True),
        sa.Column("admin_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("manager_approver_id", sa.Uuid(), nullable=True),
        sa.Column("manager_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_claims")),
        sa.ForeignKeyConstraint(
            ["sub_program_id"],
            ["welfare_sub_programs.id"],
            name=op.f("fk_claims_sub_program_id_welfare_sub_programs"),
        ),
        sa.UniqueConstraint("claim_number", name=op.f("uq_claims_claim_number")),
    )
    op.create_index(op.f("ix_claims_status"), "claims", ["status"])
    op.create_index(
        "ix_claims_claimant_sub_program_year",
        "claims",
        ["claimant_id", "sub_program_id", "fiscal_year"],
    )

    for table in ("claim_documents", "claim_comments", "claim_approvals"):
        columns: list[sa.Column] = {
            "claim_documents": [
                sa.Column("file_name", sa.String(255), nullable=False),
                sa.Column("file_url", sa.String(1024), nullable=False),
                sa.Column("file_type", sa.String(100), nullable=False),
                sa.Column("file_size", sa.Integer(), nullable=False),
                sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
            ],
            "claim_comments": [
                sa.Column("author_id", sa.Uuid(), nullable=False),
                sa.Column("author_kind", sa.String(20), nullable=False),
                sa.Column("body", sa.Text(), nullable=False),
                sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            ],
            "claim_approvals": [
                sa.Column("approver_id", sa.Uuid(), nullable=False),
                sa.Column("step", sa.String(20), nullable=False),
                sa.Column("comments", sa.Text(), nullable=True),
                sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            ],
        }[table]
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("claim_id", sa.Uuid(), nullable=False),
            *columns,
            sa.PrimaryKeyConstraint("id", name=op.f(f"pk_{table}")),
            sa.ForeignKeyConstraint(
                ["claim_id"],
                ["claims.id"],
                name=op.f(f"fk_{table}_claim_id_claims"),
                ondelete="CASCADE",
            ),
        )
        op.create_index(op.f(f"ix_{table}_claim_id"), table, ["claim_id"])

    # Quota ledger
    op.create_table(
        "quota_ledger",
        sa.Column("claimant_id", sa.Uuid(), nullable=False),
        sa.Column("sub_program_id", sa.Uuid(), nullable=False),
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("used_amount_year", sa.Numeric(12, 2), nullable=False),
        sa.Column("used_claims_year", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint(
            "claimant_id", "sub_program_id", "fiscal_year", name=op.f("pk_quota_ledger")
        ),
        sa.ForeignKeyConstraint(
            ["sub_program_id"],
            ["welfare_sub_programs.id"],
            name=op.f("fk_quota_ledger_sub_program_id_welfare_sub_programs"),
        ),
    )

    op.create_table(
        "quota_ledger_postings",
        sa.Column("claim_id", sa.Uuid(), nullable=False),
        sa.Column("claimant_id", sa.Uuid(), nullable=False),
        sa.Column("sub_program_id", sa.Uuid(), nullable=False),
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("posted_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("claim_id", name=op.f("pk_quota_ledger_postings")),
        sa.ForeignKeyConstraint(
            ["claim_id"],
            ["claims.id"],
            name=op.f("fk_quota_ledger_postings_claim_id_claims"),
        ),
    )

    # Audit
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("actor_id", sa.Uuid(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_audit_logs")),
    )
    op.create_index(op.f("ix_audit_logs_action"), "audit_logs", ["action"])
    op.create_index(op.f("ix_audit_logs_entity_id"), "audit_logs", ["entity_id"])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table("audit_logs")
    op.drop_table("quota_ledger_postings")
    op.drop_table("quota_ledger")
    op.drop_table("claim_approvals")
    op.drop_table("claim_comments")
    op.drop_table("claim_documents")
    op.drop_table("claims")
    op.drop_table("welfare_sub_programs")
    op.drop_table("welfare_required_documents")
    op.drop_table("welfare_programs")
