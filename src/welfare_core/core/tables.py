"""SQLAlchemy Core table definitions.

The same metadata backs the alembic migration and ``Database.create_schema``
used by tests. Money columns are ``Numeric(12, 2)``; ids are UUIDs except
for append-only trails, which use integer keys so their insertion order is
stable even when timestamps collide.
"""

import sqlalchemy as sa

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = sa.MetaData(naming_convention=NAMING_CONVENTION)

Money = sa.Numeric(12, 2)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


welfare_programs = sa.Table(
    "welfare_programs",
    metadata,
    sa.Column("id", sa.Uuid, primary_key=True),
    sa.Column("code", sa.String(50), nullable=False, unique=True),
    sa.Column("name", sa.String(200), nullable=False),
    sa.Column("description", sa.Text, nullable=True),
    sa.Column("is_active", sa.Boolean, nullable=False, default=True),
    sa.Column("sort_order", sa.Integer, nullable=False, default=0),
    *_timestamps(),
)

welfare_required_documents = sa.Table(
    "welfare_required_documents",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column(
        "program_id",
        sa.Uuid,
        sa.ForeignKey("welfare_programs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    sa.Column("name", sa.String(200), nullable=False),
    sa.Column("is_required", sa.Boolean, nullable=False, default=True),
    sa.Column("sort_order", sa.Integer, nullable=False, default=0),
)

welfare_sub_programs = sa.Table(
    "welfare_sub_programs",
    metadata,
    sa.Column("id", sa.Uuid, primary_key=True),
    sa.Column(
        "program_id",
        sa.Uuid,
        sa.ForeignKey("welfare_programs.id"),
        nullable=False,
        index=True,
    ),
    sa.Column("code", sa.String(50), nullable=False),
    sa.Column("name", sa.String(200), nullable=False),
    sa.Column("description", sa.Text, nullable=True),
    sa.Column("unit_type", sa.String(20), nullable=False),
    sa.Column("amount", Money, nullable=False),
    sa.Column("max_per_request", Money, nullable=True),
    sa.Column("max_per_year", Money, nullable=True),
    sa.Column("max_lifetime", Money, nullable=True),
    sa.Column("max_claims_per_year", sa.Integer, nullable=True),
    sa.Column("max_claims_lifetime", sa.Integer, nullable=True),
    sa.Column("is_active", sa.Boolean, nullable=False, default=True),
    sa.Column("sort_order", sa.Integer, nullable=False, default=0),
    *_timestamps(),
    sa.UniqueConstraint("program_id", "code", name="uq_welfare_sub_programs_program_code"),
    sa.CheckConstraint("amount > 0", name="amount_positive"),
)

claims = sa.Table(
    "claims",
    metadata,
    sa.Column("id", sa.Uuid, primary_key=True),
    sa.Column("claim_number", sa.String(32), nullable=False, unique=True),
    sa.Column("claimant_id", sa.Uuid, nullable=False),
    sa.Column(
        "sub_program_id",
        sa.Uuid,
        sa.ForeignKey("welfare_sub_programs.id"),
        nullable=False,
    ),
    sa.Column("fiscal_year", sa.Integer, nullable=False),
    sa.Column("requested_amount", Money, nullable=False),
    sa.Column("approved_amount", Money, nullable=True),
    sa.Column("nights", sa.Integer, nullable=True),
    sa.Column("beneficiary_name", sa.String(200), nullable=True),
    sa.Column("beneficiary_relation", sa.String(100), nullable=True),
    sa.Column("description", sa.Text, nullable=True),
    sa.Column("status", sa.String(20), nullable=False, index=True),
    sa.Column("admin_approver_id", sa.Uuid, nullable=True),
    sa.Column("admin_approved_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("manager_approver_id", sa.Uuid, nullable=True),
    sa.Column("manager_approved_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("rejection_reason", sa.Text, nullable=True),
    sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    sa.Index("ix_claims_claimant_sub_program_year", "claimant_id", "sub_program_id", "fiscal_year"),
)

claim_documents = sa.Table(
    "claim_documents",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column(
        "claim_id",
        sa.Uuid,
        sa.ForeignKey("claims.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    sa.Column("file_name", sa.String(255), nullable=False),
    sa.Column("file_url", sa.String(1024), nullable=False),
    sa.Column("file_type", sa.String(100), nullable=False),
    sa.Column("file_size", sa.Integer, nullable=False),
    sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
)

claim_comments = sa.Table(
    "claim_comments",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column(
        "claim_id",
        sa.Uuid,
        sa.ForeignKey("claims.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    sa.Column("author_id", sa.Uuid, nullable=False),
    sa.Column("author_kind", sa.String(20), nullable=False),
    sa.Column("body", sa.Text, nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
)

claim_approvals = sa.Table(
    "claim_approvals",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column(
        "claim_id",
        sa.Uuid,
        sa.ForeignKey("claims.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    sa.Column("approver_id", sa.Uuid, nullable=False),
    sa.Column("step", sa.String(20), nullable=False),
    sa.Column("comments", sa.Text, nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
)

# One row per (claimant, sub-program, fiscal year). Lifetime figures are the
# sum over every fiscal year of the same (claimant, sub-program) pair.
quota_ledger = sa.Table(
    "quota_ledger",
    metadata,
    sa.Column("claimant_id", sa.Uuid, primary_key=True),
    sa.Column(
        "sub_program_id",
        sa.Uuid,
        sa.ForeignKey("welfare_sub_programs.id"),
        primary_key=True,
    ),
    sa.Column("fiscal_year", sa.Integer, primary_key=True),
    sa.Column("used_amount_year", Money, nullable=False),
    sa.Column("used_claims_year", sa.Integer, nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
)

# At most one posting per claim: the guard that keeps completion idempotent.
quota_ledger_postings = sa.Table(
    "quota_ledger_postings",
    metadata,
    sa.Column("claim_id", sa.Uuid, sa.ForeignKey("claims.id"), primary_key=True),
    sa.Column("claimant_id", sa.Uuid, nullable=False),
    sa.Column("sub_program_id", sa.Uuid, nullable=False),
    sa.Column("fiscal_year", sa.Integer, nullable=False),
    sa.Column("amount", Money, nullable=False),
    sa.Column("posted_at", sa.DateTime(timezone=True), nullable=False),
)

audit_logs = sa.Table(
    "audit_logs",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("action", sa.String(50), nullable=False, index=True),
    sa.Column("entity_type", sa.String(50), nullable=False),
    sa.Column("entity_id", sa.String(64), nullable=False, index=True),
    sa.Column("actor_id", sa.Uuid, nullable=True),
    sa.Column("details", sa.JSON, nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
)
