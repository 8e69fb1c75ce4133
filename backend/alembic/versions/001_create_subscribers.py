"""Create subscribers table, token procedures and count view

Revision ID: 001
Revises: None
Create Date: 2025-09-20 00:00:00.000000+00:00

What:  The newsletter schema the backend talks to through PostgREST:
       - table     subscribers (+ updated_at trigger, RLS policies)
       - function  confirm_subscription(subscription_token TEXT) RETURNS BOOLEAN
       - function  unsubscribe_email(subscription_token TEXT) RETURNS BOOLEAN
       - view      active_subscribers_count(total_subscribers)

Both functions consume their token: a second call with the same token
matches no row and returns FALSE.

Rollback: downgrade() drops everything above (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


UPDATED_AT_FUNCTION = """
CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
  NEW.updated_at = NOW();
  RETURN NEW;
END;
$$ LANGUAGE plpgsql;
"""

UPDATED_AT_TRIGGER = """
CREATE TRIGGER update_subscribers_updated_at
  BEFORE UPDATE ON subscribers
  FOR EACH ROW
  EXECUTE FUNCTION update_updated_at_column();
"""

CONFIRM_FUNCTION = """
CREATE OR REPLACE FUNCTION confirm_subscription(subscription_token TEXT)
RETURNS BOOLEAN AS $$
BEGIN
  UPDATE subscribers
  SET confirmed = true,
      confirmed_at = NOW(),
      confirmation_token = NULL
  WHERE confirmation_token = subscription_token
    AND active = true
    AND confirmed = false;

  RETURN FOUND;
END;
$$ LANGUAGE plpgsql SECURITY DEFINER;
"""

UNSUBSCRIBE_FUNCTION = """
CREATE OR REPLACE FUNCTION unsubscribe_email(subscription_token TEXT)
RETURNS BOOLEAN AS $$
BEGIN
  UPDATE subscribers
  SET active = false,
      unsubscribed_at = NOW(),
      unsubscribe_token = NULL
  WHERE unsubscribe_token = subscription_token
    AND active = true;

  RETURN FOUND;
END;
$$ LANGUAGE plpgsql SECURITY DEFINER;
"""

COUNT_VIEW = """
CREATE OR REPLACE VIEW active_subscribers_count AS
SELECT COUNT(*) AS total_subscribers
FROM subscribers
WHERE confirmed = true AND active = true;
"""

# anon may insert and read confirmed rows; token updates go through the
# SECURITY DEFINER functions only
RLS_STATEMENTS = [
    "ALTER TABLE subscribers ENABLE ROW LEVEL SECURITY",
    """CREATE POLICY "Anyone can insert subscription" ON subscribers
       FOR INSERT WITH CHECK (true)""",
    """CREATE POLICY "Public read access for confirmed subscribers" ON subscribers
       FOR SELECT USING (confirmed = true AND active = true)""",
]

GRANT_STATEMENTS = [
    "GRANT SELECT, INSERT ON subscribers TO anon, authenticated",
    "GRANT EXECUTE ON FUNCTION confirm_subscription(TEXT) TO anon, authenticated",
    "GRANT EXECUTE ON FUNCTION unsubscribe_email(TEXT) TO anon, authenticated",
    "GRANT SELECT ON active_subscribers_count TO anon, authenticated",
]


def upgrade() -> None:
    op.create_table(
        "subscribers",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("confirmed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("confirmation_token", sa.String(200), nullable=True),
        sa.Column("unsubscribe_token", sa.String(200), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column("confirmed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("unsubscribed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column("email_sent", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.PrimaryKeyConstraint("id", name="pk_subscribers"),
        sa.UniqueConstraint("email", name="uq_subscribers_email"),
        sa.UniqueConstraint("confirmation_token", name="uq_subscribers_confirmation_token"),
        sa.UniqueConstraint("unsubscribe_token", name="uq_subscribers_unsubscribe_token"),
        sa.CheckConstraint(
            r"email ~* '^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$'",
            name="ck_subscribers_valid_email",
        ),
    )

    op.create_index(
        "idx_subscribers_active",
        "subscribers",
        ["active"],
        postgresql_where=sa.text("active = true"),
    )
    op.create_index(
        "idx_subscribers_confirmed",
        "subscribers",
        ["confirmed"],
        postgresql_where=sa.text("confirmed = true"),
    )

    op.execute(UPDATED_AT_FUNCTION)
    op.execute(UPDATED_AT_TRIGGER)
    op.execute(CONFIRM_FUNCTION)
    op.execute(UNSUBSCRIBE_FUNCTION)
    op.execute(COUNT_VIEW)

    for statement in RLS_STATEMENTS + GRANT_STATEMENTS:
        op.execute(statement)


def downgrade() -> None:
    op.execute("DROP VIEW IF EXISTS active_subscribers_count")
    op.execute("DROP FUNCTION IF EXISTS unsubscribe_email(TEXT)")
    op.execute("DROP FUNCTION IF EXISTS confirm_subscription(TEXT)")
    op.execute("DROP TRIGGER IF EXISTS update_subscribers_updated_at ON subscribers")
    op.execute("DROP FUNCTION IF EXISTS update_updated_at_column()")
    op.drop_index("idx_subscribers_confirmed", table_name="subscribers")
    op.drop_index("idx_subscribers_active", table_name="subscribers")
    op.drop_table("subscribers")
