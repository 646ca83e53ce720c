"""initial schema: auth, audit trail, companies, checklist, training, uploads

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-01 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    existing_tables = set(inspect(bind).get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("email", sa.String(length=320), nullable=False, unique=True),
            sa.Column("password_hash", sa.String(length=255), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )

    if "roles" not in existing_tables:
        op.create_table(
            "roles",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("key", sa.String(length=64), nullable=False, unique=True),
            sa.Column("name", sa.String(length=128), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )

    if "permissions" not in existing_tables:
        op.create_table(
            "permissions",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("key", sa.String(length=128), nullable=False, unique=True),
            sa.Column("name", sa.String(length=128), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )

    if "user_roles" not in existing_tables:
        op.create_table(
            "user_roles",
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
        )

    if "role_permissions" not in existing_tables:
        op.create_table(
            "role_permissions",
            sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("permission_id", sa.Integer(), sa.ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
        )

    if "audit_events" not in existing_tables:
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("request_id", sa.String(length=64), nullable=True),
            sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("actor_user_email", sa.String(length=320), nullable=True),
            sa.Column("action", sa.String(length=128), nullable=False),
            sa.Column("entity_type", sa.String(length=128), nullable=True),
            sa.Column("entity_id", sa.String(length=128), nullable=True),
            sa.Column("reason", sa.String(length=512), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
            sa.Column("client_ip", sa.String(length=64), nullable=True),
            sa.UniqueConstraint("request_id", "id", name="uq_audit_request_id_id"),
        )

    if "companies" not in existing_tables:
        op.create_table(
            "companies",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("standard", sa.String(length=16), nullable=False),
            sa.Column("legal_name", sa.String(length=255), nullable=False),
            sa.Column("tax_id", sa.String(length=64), nullable=False),
            sa.Column("legal_representative", sa.String(length=255), nullable=True),
            sa.Column("economic_sector", sa.String(length=128), nullable=True),
            sa.Column("company_type", sa.String(length=128), nullable=True),
            sa.Column("employee_count", sa.Integer(), nullable=True),
            sa.Column("address", sa.Text(), nullable=True),
            sa.Column("phones", sa.String(length=128), nullable=True),
            sa.Column("email", sa.String(length=320), nullable=True),
            sa.Column("website", sa.String(length=255), nullable=True),
            sa.Column("facebook", sa.String(length=255), nullable=True),
            sa.Column("instagram", sa.String(length=255), nullable=True),
            sa.Column("tiktok", sa.String(length=255), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        )
        op.create_index("idx_companies_standard", "companies", ["standard"])
        op.create_index("idx_companies_tax_id", "companies", ["tax_id"])

    if "checklist_items" not in existing_tables:
        op.create_table(
            "checklist_items",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("standard", sa.String(length=16), nullable=False),
            sa.Column("clause", sa.String(length=32), nullable=False),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("sort_order", sa.Integer(), nullable=False),
            sa.UniqueConstraint("standard", "clause", name="uq_checklist_items_standard_clause"),
        )

    if "audit_results" not in existing_tables:
        op.create_table(
            "audit_results",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
            sa.Column(
                "checklist_item_id",
                sa.Integer(),
                sa.ForeignKey("checklist_items.id", ondelete="RESTRICT"),
                nullable=False,
            ),
            sa.Column("status", sa.String(length=64), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("recorded_at", sa.DateTime(), nullable=False),
            sa.UniqueConstraint("company_id", "checklist_item_id", name="uq_audit_results_company_item"),
        )
        op.create_index("idx_audit_results_company", "audit_results", ["company_id"])

    if "clause_templates" not in existing_tables:
        op.create_table(
            "clause_templates",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("standard", sa.String(length=16), nullable=False),
            sa.Column("clause", sa.String(length=32), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("video_url", sa.String(length=512), nullable=True),
            sa.Column("storage_key", sa.String(length=512), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.UniqueConstraint("standard", "clause", name="uq_clause_templates_standard_clause"),
        )
        op.create_index("idx_clause_templates_standard", "clause_templates", ["standard"])

    if "training_completions" not in existing_tables:
        op.create_table(
            "training_completions",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column(
                "template_id",
                sa.Integer(),
                sa.ForeignKey("clause_templates.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("completed", sa.Boolean(), nullable=False),
            sa.Column("watched_at", sa.DateTime(), nullable=True),
            sa.UniqueConstraint("user_id", "template_id", name="uq_training_completions_user_template"),
        )

    if "template_uploads" not in existing_tables:
        op.create_table(
            "template_uploads",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column(
                "template_id",
                sa.Integer(),
                sa.ForeignKey("clause_templates.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("storage_key", sa.String(length=512), nullable=False),
            sa.Column("original_filename", sa.String(length=255), nullable=False),
            sa.Column("content_type", sa.String(length=128), nullable=False),
            sa.Column("size_bytes", sa.Integer(), nullable=False),
            sa.Column("uploaded_at", sa.DateTime(), nullable=False),
            sa.UniqueConstraint("user_id", "template_id", name="uq_template_uploads_user_template"),
        )


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        "template_uploads",
        "training_completions",
        "clause_templates",
        "audit_results",
        "checklist_items",
        "companies",
        "audit_events",
        "role_permissions",
        "user_roles",
        "permissions",
        "roles",
        "users",
    ):
        op.drop_table(table)
