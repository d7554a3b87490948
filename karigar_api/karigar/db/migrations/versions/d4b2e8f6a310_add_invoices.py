"""Invoices raised against orders.

- invoices, invoice_items with merchant row-level security
- one invoice per order within a merchant
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "d4b2e8f6a310"
down_revision: Union[str, None] = "c1a0d5e7b901"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CURRENT_MERCHANT = "current_setting('app.merchant_id', true)::uuid"

MONEY = sa.Numeric(14, 2)

INVOICE_TABLES = ["invoices", "invoice_items"]


def _base_columns() -> list:
    return [
        sa.Column("id", sa.UUID(), primary_key=True, server_default=sa.text("uuid_generate_v4()")),
        sa.Column(
            "merchant_id",
            sa.UUID(),
            sa.ForeignKey("merchants.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
            server_default=sa.text(CURRENT_MERCHANT),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "invoices",
        *_base_columns(),
        sa.Column("invoice_number", sa.Text(), nullable=False),
        sa.Column("order_id", sa.UUID(), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column(
            "customer_id", sa.UUID(), sa.ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True
        ),
        sa.Column("invoice_date", sa.Date(), server_default=sa.text("CURRENT_DATE"), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("subtotal", MONEY, server_default="0", nullable=False),
        sa.Column("tax_amount", MONEY, server_default="0", nullable=False),
        sa.Column("discount_amount", MONEY, server_default="0", nullable=False),
        sa.Column("total_amount", MONEY, server_default="0", nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), server_default="Draft", nullable=False),
        sa.UniqueConstraint("merchant_id", "invoice_number", name="uq_invoices_merchant_number"),
        sa.UniqueConstraint("merchant_id", "order_id", name="uq_invoices_merchant_order"),
    )
    op.create_table(
        "invoice_items",
        *_base_columns(),
        sa.Column(
            "invoice_id", sa.UUID(), sa.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
        ),
        sa.Column("order_item_id", sa.UUID(), sa.ForeignKey("order_items.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "product_config_id", sa.UUID(), sa.ForeignKey("product_configs.id", ondelete="RESTRICT"), nullable=False
        ),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", MONEY, server_default="0", nullable=False),
        sa.Column("total_price", MONEY, server_default="0", nullable=False),
    )

    for tbl in INVOICE_TABLES:
        op.execute(f"ALTER TABLE {tbl} ENABLE ROW LEVEL SECURITY;")
        op.execute(
            f"""
            CREATE POLICY {tbl}_merchant_isolation ON {tbl}
            USING (merchant_id = {CURRENT_MERCHANT})
            WITH CHECK (merchant_id = {CURRENT_MERCHANT});
            """
        )


def downgrade() -> None:
    for tbl in INVOICE_TABLES:
        op.execute(f"DROP POLICY IF EXISTS {tbl}_merchant_isolation ON {tbl};")
    op.drop_table("invoice_items")
    op.drop_table("invoices")
