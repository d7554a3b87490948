"""Initial Karigar schema with merchant row-level security.

- merchants, users, roles, user_roles
- product_configs, product_config_materials
- raw_materials, finished_goods, inventory_tags, tag_audit_log
- suppliers, procurement_requests, whatsapp_notifications
- customers, orders, order_items
- workers, manufacturing_orders, manufacturing_order_step_data
- catalogues, catalogue_items, catalogue_orders
- user_activity_log, number_sequences

Also creates:
- set_merchant_id(uuid) to bind the app.merchant_id GUC
- catalogue_merchant_for_slug(text), a SECURITY DEFINER lookup used by public
  catalogue links, which arrive without a merchant
"""

from typing import List, Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "c1a0d5e7b901"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CURRENT_MERCHANT = "current_setting('app.merchant_id', true)::uuid"

QTY = sa.Numeric(18, 3)
MONEY = sa.Numeric(14, 2)

MERCHANT_TABLES = [
    "users",
    "roles",
    "user_roles",
    "raw_materials",
    "suppliers",
    "product_configs",
    "product_config_materials",
    "customers",
    "orders",
    "order_items",
    "finished_goods",
    "inventory_tags",
    "tag_audit_log",
    "procurement_requests",
    "whatsapp_notifications",
    "workers",
    "manufacturing_orders",
    "manufacturing_order_step_data",
    "catalogues",
    "catalogue_items",
    "catalogue_orders",
    "user_activity_log",
    "number_sequences",
]


def _base_columns() -> List[sa.Column]:
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


def _fk(name: str, target: str, ondelete: str, nullable: bool = True, index: bool = False) -> sa.Column:
    return sa.Column(name, sa.UUID(), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable, index=index)


def _enable_rls_with_policy(table: str) -> None:
    op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY;")
    op.execute(
        f"""
        CREATE POLICY {table}_merchant_isolation ON {table}
        USING (merchant_id = {CURRENT_MERCHANT})
        WITH CHECK (merchant_id = {CURRENT_MERCHANT});
        """
    )


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp";')
    op.execute(
        """
        CREATE OR REPLACE FUNCTION set_merchant_id(p_merchant_id uuid)
        RETURNS void AS $$
        BEGIN
            PERFORM set_config('app.merchant_id', p_merchant_id::text, false);
        END;
        $$ LANGUAGE plpgsql;
        """
    )

    # SECURITY
    op.create_table(
        "merchants",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=sa.text("uuid_generate_v4()")),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("phone", sa.Text(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=True),
        sa.Column("hashed_password", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.UniqueConstraint("merchant_id", "email", name="uq_users_merchant_email"),
    )
    op.create_table(
        "roles",
        *_base_columns(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.UniqueConstraint("merchant_id", "name", name="uq_roles_merchant_name"),
    )
    op.create_table(
        "user_roles",
        *_base_columns(),
        _fk("user_id", "users.id", "CASCADE", nullable=False),
        _fk("role_id", "roles.id", "CASCADE", nullable=False),
        sa.UniqueConstraint("merchant_id", "user_id", "role_id", name="uq_user_roles_merchant_user_role"),
    )

    # PROCUREMENT PARTIES + RAW MATERIALS
    op.create_table(
        "suppliers",
        *_base_columns(),
        sa.Column("company_name", sa.Text(), nullable=False),
        sa.Column("contact_person", sa.Text(), nullable=True),
        sa.Column("phone", sa.Text(), nullable=True),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("whatsapp_number", sa.Text(), nullable=True),
        sa.Column("whatsapp_enabled", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("payment_terms", sa.Text(), nullable=True),
        sa.Column(
            "materials_supplied",
            postgresql.ARRAY(sa.Text()),
            server_default=sa.text("'{}'::text[]"),
            nullable=False,
        ),
    )
    op.create_table(
        "raw_materials",
        *_base_columns(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("unit", sa.Text(), server_default="grams", nullable=False),
        sa.Column("current_stock", QTY, server_default="0", nullable=False),
        sa.Column("minimum_stock", QTY, server_default="0", nullable=False),
        sa.Column("required", QTY, server_default="0", nullable=False),
        sa.Column("in_procurement", QTY, server_default="0", nullable=False),
        sa.Column("in_manufacturing", QTY, server_default="0", nullable=False),
        sa.Column("cost_per_unit", MONEY, nullable=True),
        _fk("supplier_id", "suppliers.id", "SET NULL"),
        sa.Column("request_status", sa.Text(), server_default="None", nullable=False),
        sa.Column("last_updated", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    # PRODUCT MASTER DATA
    op.create_table(
        "product_configs",
        *_base_columns(),
        sa.Column("product_code", sa.Text(), nullable=False),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("subcategory", sa.Text(), nullable=True),
        sa.Column("size_value", sa.Text(), nullable=True),
        sa.Column("weight_range", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("threshold", sa.Integer(), server_default="0", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.UniqueConstraint("merchant_id", "product_code", name="uq_product_configs_merchant_code"),
    )
    op.create_table(
        "product_config_materials",
        *_base_columns(),
        _fk("product_config_id", "product_configs.id", "CASCADE", nullable=False, index=True),
        _fk("raw_material_id", "raw_materials.id", "CASCADE", nullable=False, index=True),
        sa.Column("quantity_required", QTY, nullable=False),
        sa.Column("unit", sa.Text(), server_default="grams", nullable=False),
        sa.UniqueConstraint(
            "product_config_id", "raw_material_id", name="uq_product_config_materials_config_material"
        ),
    )

    # SALES
    op.create_table(
        "customers",
        *_base_columns(),
        sa.Column("name", sa.Text(), nullable=False, index=True),
        sa.Column("phone", sa.Text(), nullable=True),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_table(
        "orders",
        *_base_columns(),
        sa.Column("order_number", sa.Text(), nullable=False),
        _fk("customer_id", "customers.id", "RESTRICT", nullable=False, index=True),
        sa.Column("status", sa.Text(), server_default="Created", nullable=False),
        sa.Column("total_amount", MONEY, server_default="0", nullable=False),
        sa.Column("expected_delivery", sa.Date(), nullable=True),
        sa.UniqueConstraint("merchant_id", "order_number", name="uq_orders_merchant_number"),
    )
    op.create_table(
        "order_items",
        *_base_columns(),
        _fk("order_id", "orders.id", "CASCADE", nullable=False, index=True),
        _fk("product_config_id", "product_configs.id", "RESTRICT", nullable=False, index=True),
        sa.Column("suborder_id", sa.Text(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("fulfilled_quantity", sa.Integer(), server_default="0", nullable=False),
        sa.Column("unit_price", MONEY, server_default="0", nullable=False),
        sa.Column("total_price", MONEY, server_default="0", nullable=False),
        sa.Column("status", sa.Text(), server_default="Created", nullable=False),
        sa.UniqueConstraint("merchant_id", "suborder_id", name="uq_order_items_merchant_suborder"),
    )

    # INVENTORY
    op.create_table(
        "finished_goods",
        *_base_columns(),
        _fk("product_config_id", "product_configs.id", "CASCADE", nullable=False),
        sa.Column("product_code", sa.Text(), nullable=False),
        sa.Column("current_stock", sa.Integer(), server_default="0", nullable=False),
        sa.Column("threshold", sa.Integer(), server_default="0", nullable=False),
        sa.Column("in_manufacturing", sa.Integer(), server_default="0", nullable=False),
        sa.Column("required_quantity", sa.Integer(), server_default="0", nullable=False),
        sa.Column("tag_enabled", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("last_produced", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("merchant_id", "product_config_id", name="uq_finished_goods_merchant_config"),
    )
    op.create_table(
        "inventory_tags",
        *_base_columns(),
        sa.Column("tag_id", sa.Text(), nullable=False),
        _fk("product_config_id", "product_configs.id", "CASCADE", nullable=False, index=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("net_weight", QTY, nullable=True),
        sa.Column("gross_weight", QTY, nullable=True),
        sa.Column("status", sa.Text(), server_default="active", nullable=False),
        sa.Column("operation_type", sa.Text(), server_default="Tag In", nullable=False),
        sa.Column("qr_code_data", sa.Text(), nullable=True),
        _fk("customer_id", "customers.id", "SET NULL"),
        _fk("order_id", "orders.id", "SET NULL"),
        _fk("order_item_id", "order_items.id", "SET NULL"),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("used_by", sa.UUID(), nullable=True),
        sa.UniqueConstraint("merchant_id", "tag_id", name="uq_inventory_tags_merchant_tag"),
    )
    op.create_table(
        "tag_audit_log",
        *_base_columns(),
        sa.Column("tag_id", sa.Text(), nullable=False, index=True),
        _fk("product_config_id", "product_configs.id", "CASCADE", nullable=False),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("previous_stock", sa.Integer(), nullable=False),
        sa.Column("new_stock", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=True),
        sa.Column("user_name", sa.Text(), nullable=True),
    )

    # PROCUREMENT
    op.create_table(
        "procurement_requests",
        *_base_columns(),
        sa.Column("request_number", sa.Text(), nullable=False),
        _fk("raw_material_id", "raw_materials.id", "CASCADE", nullable=False, index=True),
        _fk("supplier_id", "suppliers.id", "SET NULL"),
        sa.Column("quantity_requested", QTY, nullable=False),
        sa.Column("unit", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), server_default="Pending", nullable=False),
        sa.Column("date_requested", sa.Date(), server_default=sa.text("CURRENT_DATE"), nullable=False),
        sa.Column("eta", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("first_name", sa.Text(), nullable=True),
        sa.Column("last_name", sa.Text(), nullable=True),
        sa.UniqueConstraint("merchant_id", "request_number", name="uq_procurement_requests_merchant_number"),
    )
    op.create_table(
        "whatsapp_notifications",
        *_base_columns(),
        _fk("procurement_request_id", "procurement_requests.id", "SET NULL", index=True),
        _fk("supplier_id", "suppliers.id", "SET NULL"),
        sa.Column("recipient", sa.Text(), nullable=True),
        sa.Column("message_content", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("delivery_status", sa.Text(), nullable=True),
        sa.Column("provider_message_id", sa.Text(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
    )

    # PRODUCTION
    op.create_table(
        "workers",
        *_base_columns(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("contact_number", sa.Text(), nullable=True),
        sa.Column("role", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), server_default="Active", nullable=False),
        sa.Column("joined_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_table(
        "manufacturing_orders",
        *_base_columns(),
        sa.Column("order_number", sa.Text(), nullable=False),
        _fk("product_config_id", "product_configs.id", "RESTRICT", nullable=False, index=True),
        sa.Column("product_name", sa.Text(), nullable=False),
        sa.Column("quantity_required", sa.Integer(), nullable=False),
        sa.Column("priority", sa.Text(), server_default="medium", nullable=False),
        sa.Column("status", sa.Text(), server_default="pending", nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("special_instructions", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.UUID(), nullable=True),
        _fk("parent_order_id", "manufacturing_orders.id", "SET NULL"),
        sa.Column("rework_source_step_id", sa.UUID(), nullable=True),
        sa.Column("rework_reason", sa.Text(), nullable=True),
        sa.Column("rework_quantity", sa.Integer(), nullable=True),
        sa.UniqueConstraint("merchant_id", "order_number", name="uq_manufacturing_orders_merchant_number"),
    )
    op.create_table(
        "manufacturing_order_step_data",
        *_base_columns(),
        _fk("order_id", "manufacturing_orders.id", "CASCADE", nullable=False, index=True),
        sa.Column("step_name", sa.Text(), nullable=False, index=True),
        sa.Column("instance_number", sa.Integer(), server_default="1", nullable=False),
        _fk("parent_instance_id", "manufacturing_order_step_data.id", "CASCADE", index=True),
        sa.Column("origin_step_id", sa.UUID(), nullable=True),
        sa.Column("status", sa.Text(), server_default="pending", nullable=False),
        _fk("assigned_worker_id", "workers.id", "SET NULL"),
        sa.Column("quantity_assigned", sa.Integer(), server_default="0", nullable=False),
        sa.Column("quantity_received", sa.Integer(), nullable=True),
        sa.Column("weight_assigned", QTY, nullable=True),
        sa.Column("weight_received", QTY, nullable=True),
        sa.Column("purity", QTY, nullable=True),
        sa.Column("wastage", QTY, nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_rework", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
    )

    # CATALOGUES
    op.create_table(
        "catalogues",
        *_base_columns(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("cover_image_url", sa.Text(), nullable=True),
        sa.Column("public_url_slug", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.UniqueConstraint("public_url_slug", name="uq_catalogues_public_url_slug"),
    )
    op.create_table(
        "catalogue_items",
        *_base_columns(),
        _fk("catalogue_id", "catalogues.id", "CASCADE", nullable=False, index=True),
        _fk("product_config_id", "product_configs.id", "CASCADE", nullable=False),
        sa.Column("custom_price", MONEY, nullable=True),
        sa.Column("custom_description", sa.Text(), nullable=True),
        sa.Column("display_order", sa.Integer(), server_default="0", nullable=False),
        sa.Column("is_featured", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.UniqueConstraint("catalogue_id", "product_config_id", name="uq_catalogue_items_catalogue_product"),
    )
    op.create_table(
        "catalogue_orders",
        *_base_columns(),
        _fk("catalogue_id", "catalogues.id", "CASCADE", nullable=False, index=True),
        sa.Column("customer_name", sa.Text(), nullable=False),
        sa.Column("customer_phone", sa.Text(), nullable=True),
        sa.Column("customer_email", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("order_items", postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("total_amount", MONEY, server_default="0", nullable=False),
        sa.Column("status", sa.Text(), server_default="pending", nullable=False),
        _fk("order_id", "orders.id", "SET NULL"),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
    )

    # ACTIVITY + SEQUENCES
    op.create_table(
        "user_activity_log",
        *_base_columns(),
        sa.Column("user_id", sa.UUID(), nullable=True),
        sa.Column("user_name", sa.Text(), nullable=True),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("entity_type", sa.Text(), nullable=False, index=True),
        sa.Column("entity_id", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Index("ix_user_activity_log_merchant_created_at", "merchant_id", "created_at"),
    )
    op.create_table(
        "number_sequences",
        *_base_columns(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("last_value", sa.BigInteger(), server_default="0", nullable=False),
        sa.UniqueConstraint("merchant_id", "name", name="uq_number_sequences_merchant_name"),
    )

    # RLS
    op.execute("ALTER TABLE merchants ENABLE ROW LEVEL SECURITY;")
    op.execute(
        f"""
        CREATE POLICY merchant_row_access ON merchants
        USING (id = {CURRENT_MERCHANT})
        WITH CHECK (id = {CURRENT_MERCHANT});
        """
    )
    for tbl in MERCHANT_TABLES:
        _enable_rls_with_policy(tbl)

    # Runs as the table owner, so it can see every merchant's catalogues
    op.execute(
        """
        CREATE OR REPLACE FUNCTION catalogue_merchant_for_slug(p_slug text)
        RETURNS uuid AS $$
            SELECT merchant_id FROM catalogues WHERE public_url_slug = p_slug LIMIT 1;
        $$ LANGUAGE sql STABLE SECURITY DEFINER;
        """
    )


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS catalogue_merchant_for_slug(text);")
    for tbl in MERCHANT_TABLES:
        op.execute(f"DROP POLICY IF EXISTS {tbl}_merchant_isolation ON {tbl};")
        op.execute(f"ALTER TABLE {tbl} DISABLE ROW LEVEL SECURITY;")
    op.execute("DROP POLICY IF EXISTS merchant_row_access ON merchants;")
    op.execute("ALTER TABLE merchants DISABLE ROW LEVEL SECURITY;")

    for tbl in [
        "number_sequences",
        "user_activity_log",
        "catalogue_orders",
        "catalogue_items",
        "catalogues",
        "manufacturing_order_step_data",
        "manufacturing_orders",
        "workers",
        "whatsapp_notifications",
        "procurement_requests",
        "tag_audit_log",
        "inventory_tags",
        "finished_goods",
        "order_items",
        "orders",
        "customers",
        "product_config_materials",
        "product_configs",
        "raw_materials",
        "suppliers",
        "user_roles",
        "roles",
        "users",
        "merchants",
    ]:
        op.drop_table(tbl)
    op.execute("DROP FUNCTION IF EXISTS set_merchant_id(uuid);")
