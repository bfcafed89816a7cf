from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("password", sa.String(), nullable=False),
        sa.Column("google_refresh_token", sa.String(), nullable=True),
        sa.Column("google_calendar_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "slots",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("owner_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_slots_owner_id", "slots", ["owner_id"], unique=False)
    op.create_index("ix_slots_status_start_time", "slots", ["status", "start_time"], unique=False)

    op.create_table(
        "swap_requests",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("requester_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("requested_user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("my_slot_id", sa.String(), sa.ForeignKey("slots.id", ondelete="CASCADE"), nullable=False),
        sa.Column("their_slot_id", sa.String(), sa.ForeignKey("slots.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_swap_requests_requester_id", "swap_requests", ["requester_id"], unique=False)
    op.create_index("ix_swap_requests_requested_user_id", "swap_requests", ["requested_user_id"], unique=False)
    op.create_index("ix_swap_requests_status", "swap_requests", ["status"], unique=False)

def downgrade():
    op.drop_index("ix_swap_requests_status", table_name="swap_requests")
    op.drop_index("ix_swap_requests_requested_user_id", table_name="swap_requests")
    op.drop_index("ix_swap_requests_requester_id", table_name="swap_requests")
    op.drop_table("swap_requests")
    op.drop_index("ix_slots_status_start_time", table_name="slots")
    op.drop_index("ix_slots_owner_id", table_name="slots")
    op.drop_table("slots")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
