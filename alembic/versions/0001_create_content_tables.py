"""Create user_profiles, daily_forecast_cache and stars_transactions.

Revision ID: 0001_create_content_tables
Revises:
Create Date: 2026-10-16
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_create_content_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'user_profiles',
        sa.Column('user_id', sa.String(64), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('birth_date', sa.Date(), nullable=False),
        sa.Column('birth_time', sa.String(5), nullable=True),
        sa.Column('birth_place', sa.String(200), nullable=False, server_default=''),
        sa.Column('language', sa.String(5), nullable=False, server_default='en'),
        sa.Column('is_premium', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('sun_sign', sa.String(20), nullable=True, index=True),
        sa.Column('chart', sa.JSON(), nullable=True),
        sa.Column('bundle', sa.JSON(), nullable=True),
        sa.Column('timestamps', sa.JSON(), nullable=False),
        sa.Column('regenerations', sa.JSON(), nullable=False),
        sa.Column('stars_balance', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False),
    )

    op.create_table(
        'daily_forecast_cache',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('sign', sa.String(20), nullable=False, index=True),
        sa.Column('reference_date', sa.Date(), nullable=False, index=True),
        sa.Column('language', sa.String(5), nullable=False, server_default='en'),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('model', sa.String(50), nullable=False, server_default='gpt-4o-mini'),
        sa.Column('prompt_version', sa.String(20), nullable=False, server_default='v1'),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('sign', 'reference_date', 'language',
                            name='uq_daily_forecast_sign_date_lang'),
    )

    op.create_table(
        'stars_transactions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.String(64),
                  sa.ForeignKey('user_profiles.user_id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('balance_after', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('stars_transactions')
    op.drop_table('daily_forecast_cache')
    op.drop_table('user_profiles')
