"""Initial schema: recipients, food items, notification log

Revision ID: 001
Revises:
Create Date: 2025-11-28 11:46:05.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- recipients ---
    op.create_table(
        "recipients",
        sa.Column("id", sa.String, primary_key=True),
        sa.Column("push_token", sa.String, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # --- food_items ---
    op.create_table(
        "food_items",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "recipient_id", sa.String,
            sa.ForeignKey("recipients.id", ondelete="RESTRICT"),
            nullable=False, index=True,
        ),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("purchase_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expiration_date", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("is_estimated", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("image_url", sa.String),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # --- notification_log (no FK: orphaned rows are harmless) ---
    op.create_table(
        "notification_log",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("food_item_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("kind", sa.String, nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("food_item_id", "kind", name="uq_notification_log_item_kind"),
    )


def downgrade() -> None:
    op.drop_table("notification_log")
    op.drop_table("food_items")
    op.drop_table("recipients")
