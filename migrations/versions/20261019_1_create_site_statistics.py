"""create site_statistics

Revision ID: 20261019_1
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20261019_1'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'site_statistics',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('total_users', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cookie_acceptance_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tos_acceptance_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_score_sum', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_quizzes_taken', sa.Integer(), nullable=False, server_default='0'),
        # row version checked by every conditional UPDATE
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('total_users >= 0', name='ck_stats_users_nonneg'),
        sa.CheckConstraint('total_score_sum >= 0', name='ck_stats_score_nonneg'),
        sa.CheckConstraint(
            'cookie_acceptance_count >= 0 AND cookie_acceptance_count <= total_users',
            name='ck_stats_cookie_bounds',
        ),
        sa.CheckConstraint(
            'tos_acceptance_count >= 0 AND tos_acceptance_count <= total_users',
            name='ck_stats_tos_bounds',
        ),
        sa.CheckConstraint(
            'total_quizzes_taken >= 0 AND total_quizzes_taken <= total_users',
            name='ck_stats_quizzes_bounds',
        ),
    )


def downgrade():
    op.drop_table('site_statistics')
