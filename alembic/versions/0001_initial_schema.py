"""Initial schema: users, subscriptions, usage, subscription bills, catalog and sales

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-01-07
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

plan_type = sa.Enum("MONTHLY", "ANNUAL", "CUSTOM", name="plan_type")
# Second table using the type; CREATE TYPE is emitted once, by the first
plan_type_existing = postgresql.ENUM("MONTHLY", "ANNUAL", "CUSTOM", name="plan_type", create_type=False)
subscription_status = sa.Enum("ACTIVE", "SUSPENDED", "EXPIRED", "CANCELLED", name="subscription_status")
subscription_bill_status = sa.Enum("PENDING", "PAID", "OVERDUE", name="subscription_bill_status")
payment_status = sa.Enum("PENDING", "PAID", "PARTIAL", "OVERDUE", name="payment_status")
payment_method = sa.Enum("CASH", "CARD", "UPI", "BANK_TRANSFER", "OTHER", name="payment_method")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("external_id", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=True),
        sa.Column("last_name", sa.String(length=255), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_external_id", "users", ["external_id"], unique=True)
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_created_at", "users", ["created_at"])

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("plan_type", plan_type, nullable=False),
        sa.Column("status", subscription_status, nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("end_date", sa.DateTime(), nullable=True),
        sa.Column("next_billing_date", sa.DateTime(), nullable=True),
        sa.Column("bills_generated", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"])
    op.create_index("ix_subscriptions_status", "subscriptions", ["status"])
    op.create_index("ix_subscriptions_end_date", "subscriptions", ["end_date"])
    op.create_index("ix_subscriptions_created_at", "subscriptions", ["created_at"])

    op.create_table(
        "usage_records",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("bill_id", sa.Uuid(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_usage_records_user_id", "usage_records", ["user_id"])
    op.create_index("ix_usage_records_bill_id", "usage_records", ["bill_id"])
    op.create_index("ix_usage_records_created_at", "usage_records", ["created_at"])

    op.create_table(
        "subscription_bills",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("bill_number", sa.String(length=32), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("plan_type", plan_type_existing, nullable=False),
        sa.Column("billing_month", sa.Integer(), nullable=False),
        sa.Column("billing_year", sa.Integer(), nullable=False),
        sa.Column("bills_count", sa.Integer(), nullable=False),
        sa.Column("status", subscription_bill_status, nullable=False),
        sa.Column("due_date", sa.DateTime(), nullable=False),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "billing_month", "billing_year", name="uq_subscription_bill_period"),
    )
    op.create_index("ix_subscription_bills_bill_number", "subscription_bills", ["bill_number"], unique=True)
    op.create_index("ix_subscription_bills_user_id", "subscription_bills", ["user_id"])
    op.create_index("ix_subscription_bills_status", "subscription_bills", ["status"])
    op.create_index("ix_subscription_bills_due_date", "subscription_bills", ["due_date"])
    op.create_index("ix_subscription_bills_created_at", "subscription_bills", ["created_at"])

    op.create_table(
        "customers",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("mobile_number", sa.String(length=32), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_customers_name_mobile", "customers", ["name", "mobile_number"])
    op.create_index("ix_customers_mobile_number", "customers", ["mobile_number"])
    op.create_index("ix_customers_created_at", "customers", ["created_at"])

    op.create_table(
        "products",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("category", sa.String(length=255), nullable=True),
        sa.Column("brand", sa.String(length=255), nullable=True),
        sa.Column("thumbnail", sa.String(length=1000), nullable=True),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("rating", sa.Float(), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("warranty_information", sa.Text(), nullable=True),
        sa.Column("shipping_information", sa.Text(), nullable=True),
        sa.Column("availability_status", sa.String(length=32), nullable=False),
        sa.Column("return_policy", sa.Text(), nullable=True),
        sa.Column("minimum_order_quantity", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_products_title", "products", ["title"])
    op.create_index("ix_products_category", "products", ["category"])
    op.create_index("ix_products_created_at", "products", ["created_at"])

    op.create_table(
        "bills",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("bill_number", sa.String(length=32), nullable=False),
        sa.Column("customer_id", sa.Uuid(), sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("final_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_status", payment_status, nullable=False),
        sa.Column("payment_method", payment_method, nullable=False),
        sa.Column("transaction_id", sa.String(length=255), nullable=True),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_bills_bill_number", "bills", ["bill_number"], unique=True)
    op.create_index("ix_bills_customer_id", "bills", ["customer_id"])
    op.create_index("ix_bills_user_id", "bills", ["user_id"])
    op.create_index("ix_bills_payment_status", "bills", ["payment_status"])
    op.create_index("ix_bills_created_at", "bills", ["created_at"])

    op.create_table(
        "bill_items",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("bill_id", sa.Uuid(), sa.ForeignKey("bills.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.Uuid(), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_bill_items_bill_id", "bill_items", ["bill_id"])
    op.create_index("ix_bill_items_product_id", "bill_items", ["product_id"])
    op.create_index("ix_bill_items_created_at", "bill_items", ["created_at"])


def downgrade() -> None:
    op.drop_table("bill_items")
    op.drop_table("bills")
    op.drop_table("products")
    op.drop_table("customers")
    op.drop_table("subscription_bills")
    op.drop_table("usage_records")
    op.drop_table("subscriptions")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (payment_method, payment_status, subscription_bill_status, subscription_status, plan_type):
        enum_type.drop(bind, checkfirst=True)
