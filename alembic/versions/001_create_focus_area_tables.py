"""create focus area snapshot tables

Revision ID: 001
Revises:
Create Date: 2024-06-01 12:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'facility_focus_areas',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('federal_provider_number', sa.String(length=10), nullable=False),
        sa.Column('calculated_at', sa.DateTime(), nullable=False),
        sa.Column('model_version', sa.String(length=16), nullable=False),
        sa.Column('scoring_profile', sa.String(length=32), nullable=False),
        sa.Column('overall_risk_score', sa.Integer(), nullable=False),
        sa.Column('overall_risk_tier', sa.String(length=16), nullable=False),
        sa.Column('key_metrics', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('focus_areas', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('data_as_of_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('federal_provider_number', 'calculated_at', name='uq_facility_focus_areas_provider_calc')
    )
    op.create_index('ix_facility_focus_areas_id', 'facility_focus_areas', ['id'])
    op.create_index('ix_facility_focus_areas_federal_provider_number', 'facility_focus_areas', ['federal_provider_number'])
    op.create_index('idx_facility_focus_areas_provider_calc', 'facility_focus_areas', ['federal_provider_number', 'calculated_at'])

    op.create_table(
        'facility_category_scores',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('federal_provider_number', sa.String(length=10), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('calculated_at', sa.DateTime(), nullable=False),
        sa.Column('scoring_profile', sa.String(length=32), nullable=False),
        sa.Column('citation_factor_score', sa.Float(), nullable=False),
        sa.Column('peer_factor_score', sa.Float(), nullable=False),
        sa.Column('qm_factor_score', sa.Float(), nullable=False),
        sa.Column('qm_trend_score', sa.Float(), nullable=False),
        sa.Column('state_factor_score', sa.Float(), nullable=False),
        sa.Column('category_risk_score', sa.Integer(), nullable=False),
        sa.Column('risk_rank', sa.Integer(), nullable=False),
        sa.Column('citation_count_3yr', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('severity_weighted_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('repeat_tag_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'federal_provider_number', 'category_id', 'calculated_at',
            name='uq_facility_category_scores_provider_category_calc'
        )
    )
    op.create_index('ix_facility_category_scores_id', 'facility_category_scores', ['id'])
    op.create_index('ix_facility_category_scores_federal_provider_number', 'facility_category_scores', ['federal_provider_number'])
    op.create_index('idx_facility_category_scores_rank', 'facility_category_scores', ['federal_provider_number', 'calculated_at', 'risk_rank'])


def downgrade() -> None:
    op.drop_index('idx_facility_category_scores_rank', table_name='facility_category_scores')
    op.drop_index('ix_facility_category_scores_federal_provider_number', table_name='facility_category_scores')
    op.drop_index('ix_facility_category_scores_id', table_name='facility_category_scores')
    op.drop_table('facility_category_scores')

    op.drop_index('idx_facility_focus_areas_provider_calc', table_name='facility_focus_areas')
    op.drop_index('ix_facility_focus_areas_federal_provider_number', table_name='facility_focus_areas')
    op.drop_index('ix_facility_focus_areas_id', table_name='facility_focus_areas')
    op.drop_table('facility_focus_areas')
