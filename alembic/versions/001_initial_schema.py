"""Initial schema for Excel data intake

Revision ID: 001_initial_schema
Revises:
Create Date: 2025-03-01

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create excel_data table
    op.create_table(
        'excel_data',
        sa.Column('id', sa.String(length=36), nullable=False, comment='UUID assigned at creation'),
        sa.Column('user_id', sa.String(length=255), nullable=True, comment='Submitting user (not enforced)'),
        sa.Column('month', sa.String(length=20), nullable=False, comment='Declared month, lowercase month name'),
        sa.Column('year', sa.Integer(), nullable=False, comment='Declared year'),
        sa.Column('file_name', sa.String(length=255), nullable=True,
                  comment='Original filename or placeholder for pasted data'),
        sa.Column('data', postgresql.JSONB(astext_type=sa.Text()), nullable=False,
                  comment='Rows as a list of column -> value mappings'),
        sa.Column('record_count', sa.Integer(), nullable=False,
                  comment='Data row count as supplied by the caller'),
        sa.Column('status', sa.String(length=20), server_default='active', nullable=False,
                  comment='Entry status'),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'),
                  nullable=False, comment='Insert timestamp'),
        sa.Column('updated_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'),
                  nullable=False, comment='Last modification timestamp'),
        sa.CheckConstraint("status IN ('active', 'archived')", name='excel_data_status_check'),
        sa.PrimaryKeyConstraint('id'),
        comment='Submitted spreadsheet data stored as JSON rows'
    )

    # Create indexes on excel_data table
    op.create_index('idx_excel_data_created_at', 'excel_data', ['created_at'])
    op.create_index('idx_excel_data_user_id', 'excel_data', ['user_id'])


def downgrade() -> None:
    op.drop_index('idx_excel_data_user_id', table_name='excel_data')
    op.drop_index('idx_excel_data_created_at', table_name='excel_data')
    op.drop_table('excel_data')
