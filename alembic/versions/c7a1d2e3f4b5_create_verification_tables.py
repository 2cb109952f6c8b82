"""Create credential verification tables

Revision ID: c7a1d2e3f4b5
Revises:
Create Date: 2026-10-12 09:41:27.318204

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "c7a1d2e3f4b5"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


verification_type = sa.Enum(
    "license_mexico",
    "license_usa",
    "international_credential",
    "education_linkedin",
    "publications_scholar",
    name="verificationtype",
)
verification_status = sa.Enum(
    "pending", "verified", "failed", "manual_review", "rejected",
    name="verificationstatus",
)
verification_method = sa.Enum(
    "sep_registry",
    "state_medical_board",
    "linkedin_match",
    "scholar_fetch",
    "manual_review",
    name="verificationmethod",
)
verification_tier = sa.Enum("tier1", "tier2", "tier3", name="verificationtier")
manual_review_type = sa.Enum(
    "license_not_found",
    "unsupported_jurisdiction",
    "data_discrepancy",
    "profile_unverified",
    name="manualreviewtype",
)
review_priority = sa.Enum("urgent", "high", "normal", "low", name="reviewpriority")
review_status = sa.Enum(
    "pending", "in_progress", "approved", "rejected", "escalated",
    name="reviewstatus",
)

ENUMS = [
    verification_type,
    verification_status,
    verification_method,
    verification_tier,
    manual_review_type,
    review_priority,
    review_status,
]

INDEXES = [
    (
        "idx_verification_results_submission_current",
        "verification_results",
        ["submission_id", "is_current"],
    ),
    (
        "idx_verification_results_credential_key",
        "verification_results",
        ["credential_key"],
    ),
    (
        "idx_manual_review_items_status_deadline",
        "manual_review_items",
        ["status", "sla_deadline"],
    ),
    (
        "idx_manual_review_items_submission",
        "manual_review_items",
        ["submission_id"],
    ),
]

# One current result per credential reference
CURRENT_RESULT_INDEX = "uq_verification_results_current_credential"


def _timestamps():
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=True,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create submissions, verification results and the manual review queue."""
    inspector = sa.inspect(op.get_bind())
    existing_tables = set(inspector.get_table_names())

    if "credential_submissions" not in existing_tables:
        op.create_table(
            "credential_submissions",
            sa.Column("id", sa.String(), nullable=False),
            sa.Column("full_name", sa.String(), nullable=False),
            sa.Column("email", sa.String(), nullable=True),
            sa.Column("primary_specialty", sa.String(), nullable=True),
            sa.Column("licenses", sa.JSON(), nullable=False),
            sa.Column("medical_school", sa.String(), nullable=True),
            sa.Column("medical_school_country", sa.String(), nullable=True),
            sa.Column("graduation_year", sa.Integer(), nullable=True),
            sa.Column("current_institutions", sa.JSON(), nullable=False),
            sa.Column("linkedin_url", sa.String(), nullable=True),
            sa.Column("linkedin_data", sa.JSON(), nullable=True),
            sa.Column("google_scholar_url", sa.String(), nullable=True),
            sa.Column("publications", sa.JSON(), nullable=False),
            sa.Column("verification_status", sa.String(), nullable=True),
            sa.Column("verification_tier", sa.String(), nullable=True),
            sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("verification_notes", sa.Text(), nullable=True),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
        )
    else:
        print("  ⊘ Table 'credential_submissions' already exists, skipping...")

    if "verification_results" not in existing_tables:
        op.create_table(
            "verification_results",
            sa.Column("id", sa.String(), nullable=False),
            sa.Column("submission_id", sa.String(), nullable=False),
            sa.Column("verification_type", verification_type, nullable=False),
            sa.Column("credential_key", sa.String(), nullable=False),
            sa.Column("credential_reference", sa.JSON(), nullable=False),
            sa.Column("status", verification_status, nullable=False),
            sa.Column("verification_method", verification_method, nullable=False),
            sa.Column("tier", verification_tier, nullable=False),
            sa.Column("match_confidence", sa.Float(), nullable=True),
            sa.Column("discrepancies", sa.JSON(), nullable=False),
            sa.Column("external_data", sa.JSON(), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column(
                "is_current", sa.Boolean(), nullable=False, server_default=sa.true()
            ),
            sa.Column("superseded_by_id", sa.String(), nullable=True),
            sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("verified_by", sa.String(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(
                ["submission_id"], ["credential_submissions.id"]
            ),
            sa.ForeignKeyConstraint(
                ["superseded_by_id"], ["verification_results.id"]
            ),
            sa.PrimaryKeyConstraint("id"),
        )
    else:
        print("  ⊘ Table 'verification_results' already exists, skipping...")

    if "manual_review_items" not in existing_tables:
        op.create_table(
            "manual_review_items",
            sa.Column("id", sa.String(), nullable=False),
            sa.Column("submission_id", sa.String(), nullable=False),
            sa.Column("verification_result_id", sa.String(), nullable=False),
            sa.Column("credential_key", sa.String(), nullable=False),
            sa.Column("review_type", manual_review_type, nullable=False),
            sa.Column("priority", review_priority, nullable=False),
            sa.Column("review_data", sa.JSON(), nullable=False),
            sa.Column("reason", sa.Text(), nullable=False),
            sa.Column("sla_deadline", sa.DateTime(timezone=True), nullable=False),
            sa.Column("status", review_status, nullable=False),
            sa.Column("assigned_to", sa.String(), nullable=True),
            sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("resolution_notes", sa.Text(), nullable=True),
            sa.Column("resolved_by", sa.String(), nullable=True),
            sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(
                ["submission_id"], ["credential_submissions.id"]
            ),
            sa.ForeignKeyConstraint(
                ["verification_result_id"], ["verification_results.id"]
            ),
            sa.PrimaryKeyConstraint("id"),
        )
    else:
        print("  ⊘ Table 'manual_review_items' already exists, skipping...")

    inspector = sa.inspect(op.get_bind())
    for idx_name, table_name, columns in INDEXES:
        existing_indexes = {i["name"] for i in inspector.get_indexes(table_name)}
        if idx_name not in existing_indexes:
            op.create_index(idx_name, table_name, columns)
        else:
            print(f"  ⊘ Index '{idx_name}' already exists, skipping...")

    existing_indexes = {
        i["name"] for i in inspector.get_indexes("verification_results")
    }
    if CURRENT_RESULT_INDEX not in existing_indexes:
        op.create_index(
            CURRENT_RESULT_INDEX,
            "verification_results",
            ["submission_id", "credential_key"],
            unique=True,
            postgresql_where=sa.text("is_current"),
            sqlite_where=sa.text("is_current = 1"),
        )
    else:
        print(f"  ⊘ Index '{CURRENT_RESULT_INDEX}' already exists, skipping...")


def downgrade() -> None:
    """Drop the verification tables and their enum types."""
    inspector = sa.inspect(op.get_bind())
    existing_tables = set(inspector.get_table_names())

    if "verification_results" in existing_tables:
        existing_indexes = {
            i["name"] for i in inspector.get_indexes("verification_results")
        }
        if CURRENT_RESULT_INDEX in existing_indexes:
            op.drop_index(CURRENT_RESULT_INDEX, table_name="verification_results")

    for idx_name, table_name, _ in INDEXES:
        if table_name in existing_tables:
            existing_indexes = {i["name"] for i in inspector.get_indexes(table_name)}
            if idx_name in existing_indexes:
                op.drop_index(idx_name, table_name=table_name)

    for table_name in (
        "manual_review_items",
        "verification_results",
        "credential_submissions",
    ):
        if table_name in existing_tables:
            op.drop_table(table_name)
        else:
            print(f"  ⊘ Table '{table_name}' does not exist, skipping...")

    bind = op.get_bind()
    for enum_type in ENUMS:
        enum_type.drop(bind, checkfirst=True)
