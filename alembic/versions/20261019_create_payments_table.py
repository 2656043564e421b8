"""create payments table"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_create_payments"
down_revision = None
branch_labels = None
depends_on = None

PAYMENT_STATUSES = ("success", "failed", "pending", "unknown")
PAYMENT_SOURCES = ("webhook", "callable")


def upgrade() -> None:
    op.create_table(
        "payments",
        sa.Column("document_id", sa.String(length=128), primary_key=True),
        sa.Column("transaction_id", sa.String(length=128), nullable=True),
        sa.Column("status", sa.Enum(*PAYMENT_STATUSES, name="paymentstatus"), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=True),
        sa.Column("method", sa.String(length=128), nullable=True),
        sa.Column("partner_id", sa.String(length=128), nullable=True),
        sa.Column("event", sa.String(length=128), nullable=True),
        sa.Column("performed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verification", sa.JSON(), nullable=True),
        sa.Column("source", sa.Enum(*PAYMENT_SOURCES, name="paymentsource"), nullable=False),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("amount >= 0", name="ck_payments_non_negative_amount"),
    )
    op.create_index("ix_payments_transaction_id", "payments", ["transaction_id"])
    op.create_index("ix_payments_status", "payments", ["status"])


def downgrade() -> None:
    op.drop_index("ix_payments_status", table_name="payments")
    op.drop_index("ix_payments_transaction_id", table_name="payments")
    op.drop_table("payments")
