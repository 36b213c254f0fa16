"""Initial negotiated-rate catalog

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create insurance_services and negotiated_rates."""

    op.create_table(
        'insurance_services',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('negotiation_arrangement', sa.String(50), nullable=False),
        sa.Column('name', sa.String(500), nullable=False),
        sa.Column('billing_code_type', sa.String(20), nullable=False),
        sa.Column('billing_code_type_version', sa.String(20), nullable=False),
        sa.Column('billing_code', sa.String(50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False,
                  server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False,
                  server_default=sa.func.now()),
    )
    op.create_index('idx_billing_code', 'insurance_services', ['billing_code'])
    op.create_index('idx_name', 'insurance_services', ['name'])
    op.create_index('idx_negotiation_arrangement', 'insurance_services',
                    ['negotiation_arrangement'])

    op.create_table(
        'negotiated_rates',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('service_id', sa.Integer(),
                  sa.ForeignKey('insurance_services.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('provider_references', sa.JSON(), nullable=False),
        sa.Column('negotiated_type',
                  sa.Enum('percentage', 'negotiated', name='negotiated_type',
                          create_constraint=True),
                  nullable=False),
        sa.Column('negotiated_rate', sa.Numeric(15, 2), nullable=False),
        sa.Column('expiration_date', sa.Date(), nullable=False),
        sa.Column('service_codes', sa.JSON(), nullable=False),
        sa.Column('billing_class',
                  sa.Enum('professional', 'institutional', name='billing_class',
                          create_constraint=True),
                  nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False,
                  server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False,
                  server_default=sa.func.now()),
        sa.CheckConstraint('negotiated_rate >= 0', name='negotiated_rate_non_negative'),
    )
    op.create_index('idx_service_id', 'negotiated_rates', ['service_id'])
    op.create_index('idx_negotiated_type', 'negotiated_rates', ['negotiated_type'])
    op.create_index('idx_billing_class', 'negotiated_rates', ['billing_class'])
    op.create_index('idx_expiration_date', 'negotiated_rates', ['expiration_date'])


def downgrade() -> None:
    """Drop the catalog tables (and their enum types where the dialect has them)."""
    op.drop_table('negotiated_rates')
    op.drop_table('insurance_services')
    bind = op.get_bind()
    sa.Enum(name='billing_class').drop(bind, checkfirst=True)
    sa.Enum(name='negotiated_type').drop(bind, checkfirst=True)
