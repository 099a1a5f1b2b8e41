"""Initial schema: users, workers, cameras, violations

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:12:40.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUM_LENGTH = 16


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('role', sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'workers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('employee_id', sa.String(), nullable=False, unique=True),
        sa.Column('department', sa.String(), nullable=False, server_default=''),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_workers_id', 'workers', ['id'])

    op.create_table(
        'cameras',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('device_id', sa.String(), nullable=False, unique=True),
        sa.Column('zone', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_cameras_zone', 'cameras', ['zone'])

    op.create_table(
        'violations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('worker_id', sa.Integer(), sa.ForeignKey('workers.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('camera_id', sa.Integer(), sa.ForeignKey('cameras.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('category', sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column('evidence_url', sa.Text(), nullable=False, server_default=''),
        sa.Column('confidence_score', sa.Integer(), nullable=False),
        sa.Column('detected_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(length=ENUM_LENGTH), nullable=False, server_default='PENDING'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('confidence_score BETWEEN 0 AND 100', name='ck_violations_confidence_range'),
    )
    op.create_index('ix_violations_worker_id', 'violations', ['worker_id'])
    op.create_index('ix_violations_camera_id', 'violations', ['camera_id'])
    op.create_index('ix_violations_category', 'violations', ['category'])
    op.create_index('ix_violations_detected_at', 'violations', ['detected_at'])
    op.create_index('ix_violations_status', 'violations', ['status'])
    op.create_index(
        'ix_violations_worker_camera_detected', 'violations', ['worker_id', 'camera_id', 'detected_at']
    )


def downgrade():
    op.drop_table('violations')
    op.drop_table('cameras')
    op.drop_table('workers')
    op.drop_table('users')
