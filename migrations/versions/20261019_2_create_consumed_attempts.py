"""create consumed_attempts

Revision ID: 20261019_2
Revises: 20261019_1
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20261019_2'
down_revision = '20261019_1'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'consumed_attempts',
        sa.Column('attempt_id', sa.String(length=64), primary_key=True),
        sa.Column('consumed_at', sa.DateTime(timezone=True), nullable=False),
    )


def downgrade():
    op.drop_table('consumed_attempts')
