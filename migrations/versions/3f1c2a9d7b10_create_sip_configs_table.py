"""create sip_configs table

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 15:40:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f1c2a9d7b10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'sip_configs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('extension', sa.Integer(), nullable=True),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('password', sa.String(length=255), nullable=False),
        sa.Column('domain', sa.String(length=255), nullable=False),
        sa.Column('server', sa.String(length=255), nullable=False),
        sa.Column('port', sa.Integer(), nullable=False),
        sa.Column('transport', sa.String(length=5), nullable=False),
        sa.Column('ice_servers', sa.JSON(), nullable=False),
        sa.Column('assigned_user_id', sa.Integer(), nullable=True),
        sa.Column('assigned_username', sa.String(length=100), nullable=True),
        sa.Column('assigned_email', sa.String(length=255), nullable=True),
        sa.Column('assigned_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint("transport IN ('UDP', 'TCP', 'WSS')", name='ck_sip_configs_transport'),
        sa.CheckConstraint('port > 0 AND port < 65536', name='ck_sip_configs_port'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('sip_configs', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sip_configs_extension'), ['extension'], unique=True)
        batch_op.create_index(batch_op.f('ix_sip_configs_assigned_user_id'), ['assigned_user_id'], unique=True)


def downgrade():
    with op.batch_alter_table('sip_configs', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_sip_configs_assigned_user_id'))
        batch_op.drop_index(batch_op.f('ix_sip_configs_extension'))

    op.drop_table('sip_configs')
