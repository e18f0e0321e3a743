"""review pipeline tables

Revision ID: 9c3e1f0a7b21
Revises:
Create Date: 2026-10-12 14:02:51.318205

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import mysql

# revision identifiers, used by Alembic.
revision = '9c3e1f0a7b21'
down_revision = None
branch_labels = None
depends_on = None

PRECISE = sa.DateTime().with_variant(mysql.DATETIME(fsp=6), 'mysql')


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    tables = inspector.get_table_names()

    if 'users' not in tables:
        op.create_table(
            'users',
            sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column('username', sa.String(255), nullable=False, unique=True),
            sa.Column('email', sa.String(255), nullable=False, unique=True),
            sa.Column('password', sa.String(255), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
        )
    if 'customers' not in tables:
        op.create_table(
            'customers',
            sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('email', sa.String(255), nullable=False, unique=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
        )
    if 'brokers' not in tables:
        op.create_table(
            'brokers',
            sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column('slug', sa.String(255), nullable=False, unique=True),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('created_at', sa.DateTime(), nullable=True),
        )
    if 'reviews' not in tables:
        op.create_table(
            'reviews',
            sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column('broker_id', sa.Integer(), nullable=False),
            sa.Column('author_id', sa.Integer(), nullable=False),
            sa.Column('rating', sa.Integer(), nullable=False),
            sa.Column('body', sa.Text(), nullable=False),
            sa.Column('fingerprint_hex', sa.String(16), nullable=False),
            sa.Column('status', sa.String(16), nullable=False),
            sa.Column('filter_severity', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('flag_reasons', sa.JSON(), nullable=True),
            sa.Column('created_at', PRECISE, nullable=False),
            sa.Column('moderated_at', PRECISE, nullable=True),
            sa.Column('admin_notes', sa.Text(), nullable=True),
            sa.Column('duplicate_of_id', sa.Integer(), nullable=True),
            sa.ForeignKeyConstraint(['broker_id'], ['brokers.id']),
            sa.ForeignKeyConstraint(['author_id'], ['customers.id']),
            sa.ForeignKeyConstraint(['duplicate_of_id'], ['reviews.id']),
            sa.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_reviews_rating_range'),
            mysql_charset='utf8mb4',
            mysql_collate='utf8mb4_unicode_ci',
        )
        op.create_index('ix_reviews_broker_created', 'reviews', ['broker_id', 'created_at'])
        op.create_index('ix_reviews_broker_status', 'reviews', ['broker_id', 'status'])
        op.create_index('ix_reviews_author_broker', 'reviews', ['author_id', 'broker_id'])
    if 'audit_log' not in tables:
        op.create_table(
            'audit_log',
            sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column('review_id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=True),
            sa.Column('action_type', sa.String(255), nullable=False),
            sa.Column('from_status', sa.String(16), nullable=True),
            sa.Column('to_status', sa.String(16), nullable=True),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('created_at', PRECISE, nullable=True),
            sa.Column('ip_address', sa.String(45), nullable=True),
            sa.ForeignKeyConstraint(['review_id'], ['reviews.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        )
        op.create_index('ix_audit_log_review_id', 'audit_log', ['review_id'])


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    tables = inspector.get_table_names()
    for name in ('audit_log', 'reviews', 'brokers', 'customers', 'users'):
        if name in tables:
            op.drop_table(name)
