"""carts, orders, sales, purchases and consignments

Revision ID: 0002_commerce_documents
Revises: 0001_catalog_and_stock
Create Date: 2026-10-17 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

revision = "0002_commerce_documents"
down_revision = "0001_catalog_and_stock"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "carts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", sa.Enum("ACTIVE", "CONVERTED", "CANCELLED", name="cart_status"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "cart_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("cart_id", sa.Integer(), sa.ForeignKey("carts.id"), nullable=False),
        sa.Column("presentation_id", sa.Integer(), sa.ForeignKey("presentations.id"), nullable=False),
        sa.Column("qty_sale_units", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("line_subtotal", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("source", sa.Enum("ONLINE", "ADMIN", "CART", "OTHER", name="order_source"), nullable=False),
        sa.Column("status", sa.Enum("PENDING", "CANCELLED", "COMPLETED", name="order_status"), nullable=False),
        sa.Column("order_date", sa.Date(), nullable=False),
        sa.Column("delivery_type", sa.Enum("PICKUP", "HOME_DELIVERY", name="order_delivery_type"), nullable=False),
        sa.Column("delivery_address", sa.Text(), nullable=True),
        sa.Column("invoice_required", sa.Boolean(), nullable=False),
        sa.Column("invoice_nit", sa.String(length=30), nullable=False, server_default="CF"),
        sa.Column("invoice_name", sa.String(length=150), nullable=True),
        sa.Column("subtotal", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("shipping_fee", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("discount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("grand_total", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("customer_notes", sa.Text(), nullable=True),
        sa.Column("internal_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "order_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False),
        sa.Column("presentation_id", sa.Integer(), sa.ForeignKey("presentations.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("qty_sale_units", sa.Integer(), nullable=False),
        sa.Column("units_per_sale_unit", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("qty_base", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(14, 2), nullable=False),
        sa.Column(
            "price_origin",
            sa.Enum("SYSTEM", "MANUAL", "CART", name="order_line_price_origin"),
            nullable=False,
        ),
        sa.Column("line_subtotal", sa.Numeric(14, 2), nullable=False, server_default="0"),
    )
    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=True, unique=True),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("customer_name", sa.String(length=150), nullable=True),
        sa.Column("sale_date", sa.Date(), nullable=False),
        sa.Column("subtotal", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("tax", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("shipping_fee", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("discount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("grand_total", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("payment_terms", sa.String(length=50), nullable=False, server_default="CASH"),
        sa.Column("payment_status", sa.Enum("PAID", "PENDING", name="sale_payment_status"), nullable=False),
        sa.Column("status", sa.Enum("REGISTERED", "VOID", name="sale_status"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "sale_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sale_id", sa.Integer(), sa.ForeignKey("sales.id"), nullable=False),
        sa.Column("presentation_id", sa.Integer(), sa.ForeignKey("presentations.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("qty_sale_units", sa.Integer(), nullable=False),
        sa.Column("qty_base", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("base_unit_price", sa.Numeric(14, 4), nullable=False),
        sa.Column("is_manual_price", sa.Boolean(), nullable=False),
        sa.Column("line_subtotal", sa.Numeric(14, 2), nullable=False, server_default="0"),
    )
    op.create_table(
        "purchases",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("supplier_id", sa.Integer(), sa.ForeignKey("suppliers.id"), nullable=False),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("purchase_date", sa.Date(), nullable=False),
        sa.Column("document_number", sa.String(length=100), nullable=True),
        sa.Column("subtotal", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("tax", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("extra_costs", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("total", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "purchase_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("purchase_id", sa.Integer(), sa.ForeignKey("purchases.id"), nullable=False),
        sa.Column("presentation_id", sa.Integer(), sa.ForeignKey("presentations.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("qty_sale_units", sa.Integer(), nullable=False),
        sa.Column("qty_base", sa.Integer(), nullable=False),
        sa.Column("unit_cost", sa.Numeric(14, 2), nullable=False),
        sa.Column("base_unit_cost", sa.Numeric(14, 4), nullable=False),
        sa.Column("line_subtotal", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("reference_price", sa.Numeric(14, 2), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
    )
    op.create_table(
        "consignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("ship_date", sa.Date(), nullable=False),
        sa.Column("status", sa.Enum("OPEN", "CLOSED", "CANCELLED", name="consignment_status"), nullable=False),
        sa.Column("estimated_subtotal", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "consignment_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("consignment_id", sa.Integer(), sa.ForeignKey("consignments.id"), nullable=False),
        sa.Column("presentation_id", sa.Integer(), sa.ForeignKey("presentations.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("qty_sale_units", sa.Integer(), nullable=False),
        sa.Column("qty_base", sa.Integer(), nullable=False),
        sa.Column("estimated_unit_price", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("estimated_subtotal", sa.Numeric(14, 2), nullable=False, server_default="0"),
    )


def downgrade() -> None:
    op.drop_table("consignment_lines")
    op.drop_table("consignments")
    op.drop_table("purchase_lines")
    op.drop_table("purchases")
    op.drop_table("sale_lines")
    op.drop_table("sales")
    op.drop_table("order_lines")
    op.drop_table("orders")
    op.drop_table("cart_items")
    op.drop_table("carts")
