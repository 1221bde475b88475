"""Leasing and payments schema.

- users (role-tagged identity)
- owners, tenants (variant payloads keyed by user_id)
- buildings, units (globally unique room codes)
- payments (ledger with refund bounds)
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1d8e5a7b20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("hashed_password", sa.Text(), nullable=False),
        sa.Column("first_name", sa.Text(), nullable=False),
        sa.Column("last_name", sa.Text(), nullable=False),
        sa.Column("phone", sa.Text(), nullable=True),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "owners",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("company_name", sa.Text(), nullable=True),
        sa.Column("business_license", sa.Text(), nullable=True),
        sa.Column("tax_id", sa.Text(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_owners"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_owners_user_id_users", ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", name="uq_owners_user_id"),
    )

    op.create_table(
        "buildings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("city", sa.Text(), nullable=True),
        sa.Column("state", sa.Text(), nullable=True),
        sa.Column("zip_code", sa.Text(), nullable=True),
        sa.Column("country", sa.Text(), nullable=False, server_default="USA"),
        sa.Column("floors", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_buildings"),
        sa.ForeignKeyConstraint(["owner_id"], ["owners.id"], name="fk_buildings_owner_id_owners", ondelete="CASCADE"),
    )
    op.create_index("ix_buildings_owner_id", "buildings", ["owner_id"])

    op.create_table(
        "units",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("building_id", sa.Uuid(), nullable=False),
        sa.Column("unit_number", sa.String(20), nullable=False),
        sa.Column("floor", sa.Integer(), nullable=False),
        sa.Column("bedrooms", sa.Integer(), nullable=False),
        sa.Column("bathrooms", sa.Numeric(3, 1), nullable=False),
        sa.Column("square_feet", sa.Integer(), nullable=False),
        sa.Column("monthly_rent", sa.Numeric(10, 2), nullable=False),
        sa.Column("security_deposit", sa.Numeric(10, 2), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("unit_type", sa.String(32), nullable=False, server_default="apartment"),
        sa.Column("has_balcony", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("has_dishwasher", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("has_washing_machine", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("has_air_conditioning", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("furnished", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("pets_allowed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("smoking_allowed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("room_code", sa.String(8), nullable=False),
        sa.Column("lease_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("lease_end_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_units"),
        sa.ForeignKeyConstraint(
            ["building_id"], ["buildings.id"], name="fk_units_building_id_buildings", ondelete="CASCADE"
        ),
        sa.UniqueConstraint("room_code", name="uq_units_room_code"),
        sa.CheckConstraint("monthly_rent >= 0", name="ck_units_monthly_rent_non_negative"),
        sa.CheckConstraint(
            "security_deposit IS NULL OR security_deposit >= 0",
            name="ck_units_security_deposit_non_negative",
        ),
    )
    op.create_index("ix_units_building_id", "units", ["building_id"])

    op.create_table(
        "tenants",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("unit_id", sa.Uuid(), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("employer", sa.Text(), nullable=True),
        sa.Column("job_title", sa.Text(), nullable=True),
        sa.Column("monthly_income", sa.Numeric(10, 2), nullable=True),
        sa.Column("emergency_contact_name", sa.Text(), nullable=True),
        sa.Column("emergency_contact_phone", sa.Text(), nullable=True),
        sa.Column("lease_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("lease_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("move_in_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("move_out_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("number_of_occupants", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("has_pets", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("pet_description", sa.Text(), nullable=True),
        sa.Column("smoker", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("background_check_status", sa.String(32), nullable=False, server_default="pending"),
        sa.Column("background_check_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("gateway_customer_id", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_tenants"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_tenants_user_id_users", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"], name="fk_tenants_unit_id_units", ondelete="SET NULL"),
        sa.UniqueConstraint("user_id", name="uq_tenants_user_id"),
        # At most one tenant per unit; the onboarding claim relies on it as a backstop.
        sa.UniqueConstraint("unit_id", name="uq_tenants_unit_id"),
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("unit_id", sa.Uuid(), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="usd"),
        sa.Column("payment_type", sa.String(32), nullable=False),
        sa.Column("payment_method", sa.String(32), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="pending"),
        sa.Column("payment_date", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("period_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("period_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("notes", sa.String(1000), nullable=True),
        sa.Column("payment_method_token", sa.Text(), nullable=True),
        sa.Column("gateway_payment_intent_id", sa.Text(), nullable=True),
        sa.Column("gateway_charge_id", sa.Text(), nullable=True),
        sa.Column("receipt_url", sa.Text(), nullable=True),
        sa.Column("reference_number", sa.String(32), nullable=False),
        sa.Column("late_fee", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("is_late", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("refund_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("refund_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refund_reason", sa.String(500), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_payments"),
        sa.ForeignKeyConstraint(
            ["tenant_id"], ["tenants.id"], name="fk_payments_tenant_id_tenants", ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"], name="fk_payments_unit_id_units", ondelete="RESTRICT"),
        sa.UniqueConstraint("reference_number", name="uq_payments_reference_number"),
        sa.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        sa.CheckConstraint("late_fee >= 0", name="ck_payments_late_fee_non_negative"),
        sa.CheckConstraint("refund_amount >= 0", name="ck_payments_refund_amount_non_negative"),
        sa.CheckConstraint("refund_amount <= amount + late_fee", name="ck_payments_refund_within_total"),
    )
    op.create_index("ix_payments_tenant_id", "payments", ["tenant_id"])
    op.create_index("ix_payments_unit_id", "payments", ["unit_id"])
    op.create_index("ix_payments_status", "payments", ["status"])
    op.create_index("ix_payments_gateway_payment_intent_id", "payments", ["gateway_payment_intent_id"])
    op.create_index("ix_payments_due_date", "payments", ["due_date"])


def downgrade() -> None:
    op.drop_index("ix_payments_due_date", table_name="payments")
    op.drop_index("ix_payments_gateway_payment_intent_id", table_name="payments")
    op.drop_index("ix_payments_status", table_name="payments")
    op.drop_index("ix_payments_unit_id", table_name="payments")
    op.drop_index("ix_payments_tenant_id", table_name="payments")
    op.drop_table("payments")
    op.drop_table("tenants")
    op.drop_index("ix_units_building_id", table_name="units")
    op.drop_table("units")
    op.drop_index("ix_buildings_owner_id", table_name="buildings")
    op.drop_table("buildings")
    op.drop_table("owners")
    op.drop_table("users")
