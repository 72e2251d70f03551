"""auth schema: users, otp_verifications, refresh_tokens, access_tokens

Revision ID: 20261019_01
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261019_01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(inspector: sa.Inspector, table_name: str) -> bool:
    return table_name in inspector.get_table_names()


def _column_exists(inspector: sa.Inspector, table_name: str, column_name: str) -> bool:
    return any(column["name"] == column_name for column in inspector.get_columns(table_name))


def _ensure_users_table(inspector: sa.Inspector) -> None:
    if not _table_exists(inspector, "users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("mobile_no", sa.String(length=20), nullable=True),
            sa.Column("password", sa.String(length=255), nullable=False),
            sa.Column("fcm_id", sa.String(length=255), nullable=True),
            sa.Column("role", sa.String(length=32), nullable=False, server_default="user"),
            sa.Column("image_url", sa.String(length=512), nullable=True),
            sa.Column("address", sa.Text(), nullable=True),
            sa.Column("dob", sa.Date(), nullable=True),
            sa.Column("gender", sa.String(length=32), nullable=True),
            sa.Column("school_name", sa.String(length=255), nullable=True),
            sa.Column("roll_no", sa.String(length=64), nullable=True),
            sa.Column("status", sa.SmallInteger(), nullable=False, server_default=sa.text("1")),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        )
        op.create_index("ix_users_id", "users", ["id"], unique=False)
        op.create_index("ix_users_email", "users", ["email"], unique=True)
        return

    # Imported accounts keep their legacy credential; only missing columns are added.
    if not _column_exists(inspector, "users", "role"):
        op.add_column("users", sa.Column("role", sa.String(length=32), nullable=False, server_default="user"))
    if not _column_exists(inspector, "users", "status"):
        op.add_column(
            "users",
            sa.Column("status", sa.SmallInteger(), nullable=False, server_default=sa.text("1")),
        )


OTP_COLUMNS = {"id", "user_id", "otp", "verified", "expires_at", "created_at"}
REFRESH_TOKEN_COLUMNS = {"id", "user_id", "token_hash", "expires_at", "ip", "user_agent", "created_at"}
ACCESS_TOKEN_COLUMNS = {"id", "user_id", "token_hash", "expires_at", "created_at"}


def _needs_create(inspector: sa.Inspector, table_name: str, required_columns: set[str]) -> bool:
    """Decide whether a token table has to be (re)built.

    Rows in these tables are short-lived and safe to discard, so a table left
    behind with another layout (the old ``refresh_tokens`` keyed its hash as
    ``token``) is dropped and recreated instead of altered.
    """
    if not _table_exists(inspector, table_name):
        return True
    existing = {column["name"] for column in inspector.get_columns(table_name)}
    if required_columns <= existing:
        return False
    op.drop_table(table_name)
    return True


def _ensure_token_tables(inspector: sa.Inspector) -> None:
    if _needs_create(inspector, "otp_verifications", OTP_COLUMNS):
        op.create_table(
            "otp_verifications",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("otp", sa.String(length=6), nullable=False),
            sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        )
        op.create_index("ix_otp_verifications_id", "otp_verifications", ["id"], unique=False)
        op.create_index("ix_otp_verifications_user_id", "otp_verifications", ["user_id"], unique=False)

    if _needs_create(inspector, "refresh_tokens", REFRESH_TOKEN_COLUMNS):
        op.create_table(
            "refresh_tokens",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("token_hash", sa.String(length=128), nullable=False),
            sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("ip", sa.String(length=64), nullable=True),
            sa.Column("user_agent", sa.String(length=512), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        )
        op.create_index("ix_refresh_tokens_id", "refresh_tokens", ["id"], unique=False)
        op.create_index("ix_refresh_tokens_user_id", "refresh_tokens", ["user_id"], unique=False)
        op.create_index("ix_refresh_tokens_token_hash", "refresh_tokens", ["token_hash"], unique=True)

    if _needs_create(inspector, "access_tokens", ACCESS_TOKEN_COLUMNS):
        op.create_table(
            "access_tokens",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("token_hash", sa.String(length=128), nullable=False),
            sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        )
        op.create_index("ix_access_tokens_id", "access_tokens", ["id"], unique=False)
        op.create_index("ix_access_tokens_user_id", "access_tokens", ["user_id"], unique=False)
        op.create_index("ix_access_tokens_token_hash", "access_tokens", ["token_hash"], unique=True)


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    _ensure_users_table(inspector)
    inspector = sa.inspect(bind)
    _ensure_token_tables(inspector)


def downgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table_name in ("access_tokens", "refresh_tokens", "otp_verifications"):
        if _table_exists(inspector, table_name):
            op.drop_table(table_name)
