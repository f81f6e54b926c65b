"""Initial schema: accounts, branches, slots, overrides, bookings, favourites, reset tokens.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("gender", sa.String(20), nullable=False),
        sa.Column("birthday", sa.Date(), nullable=False),
        sa.Column("nationality", sa.String(100), nullable=False),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("favorite_cuisines", sa.JSON(), nullable=False),
        sa.Column("last_latitude", sa.Float(), nullable=True),
        sa.Column("last_longitude", sa.Float(), nullable=True),
        sa.Column("location_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "location_permission_granted", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "restaurant_users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
    )
    op.create_index("ix_restaurant_users_id", "restaurant_users", ["id"])
    op.create_index("ix_restaurant_users_email", "restaurant_users", ["email"], unique=True)

    op.create_table(
        "restaurant_profiles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("restaurant_id", sa.Integer(), sa.ForeignKey("restaurant_users.id"), nullable=False),
        sa.Column("about", sa.Text(), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("cuisine", sa.String(100), nullable=False),
        sa.Column("price_range", sa.String(4), nullable=False),
        sa.Column("logo", sa.Text(), nullable=False, server_default=""),
        sa.Column("is_profile_complete", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.UniqueConstraint("restaurant_id"),
        sa.CheckConstraint("price_range IN ('$', '$$', '$$$', '$$$$')", name="check_profile_price_range"),
    )
    op.create_index("ix_restaurant_profiles_id", "restaurant_profiles", ["id"])
    op.create_index("ix_restaurant_profiles_cuisine", "restaurant_profiles", ["cuisine"])

    op.create_table(
        "restaurant_branches",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("restaurant_id", sa.Integer(), sa.ForeignKey("restaurant_users.id"), nullable=False),
        sa.Column("address", sa.String(500), nullable=False),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("seats_count", sa.Integer(), nullable=False, server_default=sa.text("25")),
        sa.Column("tables_count", sa.Integer(), nullable=False, server_default=sa.text("10")),
        sa.Column("opening_time", sa.String(5), nullable=False, server_default="12:00"),
        sa.Column("closing_time", sa.String(5), nullable=False, server_default="23:00"),
        sa.Column("reservation_duration", sa.Integer(), nullable=False, server_default=sa.text("90")),
        *_timestamps(),
        sa.CheckConstraint("seats_count > 0", name="check_branch_seats_positive"),
        sa.CheckConstraint("tables_count > 0", name="check_branch_tables_positive"),
        sa.CheckConstraint("reservation_duration > 0", name="check_branch_duration_positive"),
    )
    op.create_index("ix_restaurant_branches_id", "restaurant_branches", ["id"])
    op.create_index("ix_restaurant_branches_restaurant_id", "restaurant_branches", ["restaurant_id"])
    op.create_index("ix_restaurant_branches_city", "restaurant_branches", ["city"])

    op.create_table(
        "booking_settings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("restaurant_branches.id"), nullable=False),
        sa.Column("open_time", sa.String(5), nullable=False),
        sa.Column("close_time", sa.String(5), nullable=False),
        sa.Column("interval", sa.Integer(), nullable=False, server_default=sa.text("90")),
        sa.Column("max_seats_per_slot", sa.Integer(), nullable=False, server_default=sa.text("25")),
        sa.Column("max_tables_per_slot", sa.Integer(), nullable=False, server_default=sa.text("10")),
        *_timestamps(),
        sa.UniqueConstraint("branch_id"),
        sa.CheckConstraint("interval > 0", name="check_settings_interval_positive"),
        sa.CheckConstraint("max_seats_per_slot > 0", name="check_settings_seats_positive"),
        sa.CheckConstraint("max_tables_per_slot > 0", name="check_settings_tables_positive"),
    )
    op.create_index("ix_booking_settings_id", "booking_settings", ["id"])

    op.create_table(
        "time_slots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("restaurant_branches.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("max_seats", sa.Integer(), nullable=False),
        sa.Column("max_tables", sa.Integer(), nullable=False),
        sa.Column("is_closed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.UniqueConstraint("branch_id", "start_time", name="uq_time_slot_branch_start"),
        sa.CheckConstraint("max_seats >= 0", name="check_slot_seats_non_negative"),
        sa.CheckConstraint("max_tables >= 0", name="check_slot_tables_non_negative"),
        sa.CheckConstraint("end_time > start_time", name="check_slot_end_after_start"),
    )
    op.create_index("ix_time_slots_id", "time_slots", ["id"])
    # Availability is always read per branch per date
    op.create_index("ix_time_slots_branch_date", "time_slots", ["branch_id", "date"])

    op.create_table(
        "booking_overrides",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("restaurant_branches.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("override_type", sa.String(20), nullable=False),
        sa.Column("new_max_seats", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("new_max_tables", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("override_type IN ('closed', 'capacity', 'custom')", name="check_override_type"),
        sa.CheckConstraint("end_time > start_time", name="check_override_end_after_start"),
        sa.CheckConstraint("new_max_seats >= 0", name="check_override_seats_non_negative"),
        sa.CheckConstraint("new_max_tables >= 0", name="check_override_tables_non_negative"),
    )
    op.create_index("ix_booking_overrides_id", "booking_overrides", ["id"])
    op.create_index("ix_booking_overrides_branch_date", "booking_overrides", ["branch_id", "date"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("restaurant_user_id", sa.Integer(), sa.ForeignKey("restaurant_users.id"), nullable=True),
        sa.Column("time_slot_id", sa.Integer(), sa.ForeignKey("time_slots.id"), nullable=False),
        sa.Column("party_size", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="confirmed"),
        sa.Column("guest_name", sa.String(200), nullable=True),
        sa.Column("guest_phone", sa.String(50), nullable=True),
        sa.Column("guest_email", sa.String(255), nullable=True),
        sa.Column("special_requests", sa.Text(), nullable=True),
        sa.Column("arrived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("party_size > 0", name="check_booking_party_size_positive"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'arrived', 'cancelled', 'completed')",
            name="check_booking_status",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    # Capacity sums scan a slot's bookings on every booking attempt
    op.create_index("ix_bookings_time_slot_id", "bookings", ["time_slot_id"])

    op.create_table(
        "saved_branches",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("restaurant_branches.id"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "branch_id", name="uq_saved_branch_user_branch"),
    )
    op.create_index("ix_saved_branches_id", "saved_branches", ["id"])
    op.create_index("ix_saved_branches_user_id", "saved_branches", ["user_id"])
    op.create_index("ix_saved_branches_branch_id", "saved_branches", ["branch_id"])

    op.create_table(
        "password_reset_tokens",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("account_type", sa.String(20), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("token", sa.String(128), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.CheckConstraint("account_type IN ('user', 'restaurant')", name="check_reset_account_type"),
    )
    op.create_index("ix_password_reset_tokens_id", "password_reset_tokens", ["id"])
    op.create_index("ix_password_reset_tokens_token", "password_reset_tokens", ["token"], unique=True)
    op.create_index("ix_password_reset_account", "password_reset_tokens", ["account_type", "account_id"])


def downgrade() -> None:
    op.drop_table("password_reset_tokens")
    op.drop_table("saved_branches")
    op.drop_table("bookings")
    op.drop_table("booking_overrides")
    op.drop_table("time_slots")
    op.drop_table("booking_settings")
    op.drop_table("restaurant_branches")
    op.drop_table("restaurant_profiles")
    op.drop_table("restaurant_users")
    op.drop_table("users")
