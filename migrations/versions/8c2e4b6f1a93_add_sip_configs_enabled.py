"""add enabled switch to sip_configs

Revision ID: 8c2e4b6f1a93
Revises: 3f1c2a9d7b10
Create Date: 2026-10-20 10:12:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '8c2e4b6f1a93'
down_revision = '3f1c2a9d7b10'
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table('sip_configs', schema=None) as batch_op:
        batch_op.add_column(sa.Column('enabled', sa.Boolean(), server_default=sa.true(), nullable=False))


def downgrade():
    with op.batch_alter_table('sip_configs', schema=None) as batch_op:
        batch_op.drop_column('enabled')
