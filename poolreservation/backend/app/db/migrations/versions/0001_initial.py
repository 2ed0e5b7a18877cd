from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _enum(*values: str, name: str) -> postgresql.ENUM:
    enum = postgresql.ENUM(*values, name=name, create_type=False)
    enum.create(op.get_bind(), checkfirst=True)
    return enum


def upgrade() -> None:
    user_role = _enum("renter", "admin", name="userrole")

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("first_name", sa.String(length=128)),
        sa.Column("last_name", sa.String(length=128)),
        sa.Column("role", user_role, server_default="renter"),
        sa.Column("max_guests", sa.Integer()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    reservation_status = _enum(
        "pending", "approved", "rejected", "cancelled", name="reservationstatus"
    )
    reservation_source = _enum("renter", "admin", name="reservationsource")

    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE")),
        sa.Column("starts_at", sa.DateTime(timezone=True)),
        sa.Column("ends_at", sa.DateTime(timezone=True)),
        sa.Column("guest_count", sa.Integer(), server_default="1"),
        sa.Column("status", reservation_status, server_default="pending"),
        sa.Column("source", reservation_source, server_default="renter"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("decided_at", sa.DateTime(timezone=True)),
        sa.Column("decided_by", sa.Integer()),
        sa.Column("rejection_reason", sa.String(length=255)),
        sa.Column("canceled_at", sa.DateTime(timezone=True)),
        sa.Column("canceled_by", sa.String(length=64)),
        sa.Column("cancellation_reason", sa.String(length=255)),
        sa.CheckConstraint("starts_at < ends_at", name="ck_reservation_interval"),
        sa.CheckConstraint("guest_count > 0", name="ck_reservation_guests_positive"),
    )
    op.create_index("ix_reservations_user_id", "reservations", ["user_id"])
    op.create_index("ix_reservations_starts_at", "reservations", ["starts_at"])
    op.create_index("ix_reservations_status", "reservations", ["status"])

    op.create_table(
        "blocked_periods",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("starts_at", sa.DateTime(timezone=True)),
        sa.Column("ends_at", sa.DateTime(timezone=True)),
        sa.Column("reason", sa.String(length=255), nullable=False),
        sa.Column(
            "created_by_admin_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("removed_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint("starts_at < ends_at", name="ck_blocked_period_interval"),
    )
    op.create_index("ix_blocked_periods_starts_at", "blocked_periods", ["starts_at"])

    op.create_table(
        "lessons",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("starts_at", sa.DateTime(timezone=True)),
        sa.Column("ends_at", sa.DateTime(timezone=True)),
        sa.Column("participant_count", sa.Integer(), nullable=False),
        sa.Column("instructor_name", sa.String(length=128)),
        sa.Column("notes", sa.String(length=255)),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("starts_at < ends_at", name="ck_lesson_interval"),
        sa.CheckConstraint("participant_count > 0", name="ck_lesson_participants_positive"),
    )
    op.create_index("ix_lessons_starts_at", "lessons", ["starts_at"])

    op.create_table(
        "capacity_bands",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("starts_at", sa.Time(), nullable=False),
        sa.Column("ends_at", sa.Time(), nullable=False),
        sa.Column("max_occupancy", sa.Integer(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint("max_occupancy >= 1", name="ck_capacity_band_max_positive"),
        sa.CheckConstraint("starts_at < ends_at", name="ck_capacity_band_interval"),
    )

    notification_kind = _enum(
        "info",
        "reservation_pending",
        "reservation_approved",
        "reservation_rejected",
        "reservation_cancelled",
        "reminder",
        name="notificationkind",
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE")),
        sa.Column("kind", notification_kind, server_default="info"),
        sa.Column("message", sa.String(length=512), nullable=False),
        sa.Column("is_read", sa.Boolean(), server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

    actor_type = _enum("renter", "admin", "system", name="actortype")

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("actor_type", actor_type),
        sa.Column("actor_id", sa.Integer()),
        sa.Column("action", sa.String(length=512)),
        sa.Column("payload", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_actor_id", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("capacity_bands")
    op.drop_index("ix_lessons_starts_at", table_name="lessons")
    op.drop_table("lessons")
    op.drop_index("ix_blocked_periods_starts_at", table_name="blocked_periods")
    op.drop_table("blocked_periods")
    op.drop_index("ix_reservations_status", table_name="reservations")
    op.drop_index("ix_reservations_starts_at", table_name="reservations")
    op.drop_index("ix_reservations_user_id", table_name="reservations")
    op.drop_table("reservations")
    op.drop_table("users")
    for name in ("actortype", "notificationkind", "reservationsource", "reservationstatus", "userrole"):
        postgresql.ENUM(name=name).drop(op.get_bind(), checkfirst=True)
