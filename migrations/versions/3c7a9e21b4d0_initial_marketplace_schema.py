"""initial marketplace schema

Revision ID: 3c7a9e21b4d0
Revises:
Create Date: 2026-10-12 09:14:02.118204

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c7a9e21b4d0'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=32), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table(
        'listings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('title', sa.String(length=80), nullable=False, server_default=''),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('location', sa.String(length=80), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('tags', sa.Text(), nullable=False, server_default=''),
        sa.Column('image_data', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_listings_user_id', 'listings', ['user_id'])

    op.create_table(
        'listing_images',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('listing_id', sa.Integer(), sa.ForeignKey('listings.id'), nullable=False),
        sa.Column('image_data', sa.Text(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
    )
    op.create_index('ix_listing_images_listing_id', 'listing_images', ['listing_id'])
    op.create_index('ix_listing_images_listing_position', 'listing_images', ['listing_id', 'position'])

    op.create_table(
        'conversations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('a_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('b_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('listing_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('a_user_id', 'b_user_id', 'listing_id', name='uq_conversations_pair_listing'),
    )
    op.create_index('ix_conversations_a_user_id', 'conversations', ['a_user_id'])
    op.create_index('ix_conversations_b_user_id', 'conversations', ['b_user_id'])
    op.create_index('ix_conversations_listing_id', 'conversations', ['listing_id'])

    op.create_table(
        'messages',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('conversation_id', sa.Integer(), sa.ForeignKey('conversations.id'), nullable=False),
        sa.Column('sender_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_messages_conversation_id', 'messages', ['conversation_id'])

    op.create_table(
        'message_images',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('message_id', sa.Integer(), sa.ForeignKey('messages.id'), nullable=False),
        sa.Column('image_data', sa.Text(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
    )
    op.create_index('ix_message_images_message_id', 'message_images', ['message_id'])

    op.create_table(
        'audit_events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('action', sa.String(length=80), nullable=False),
        sa.Column('actor_user_id', sa.Integer(), nullable=True),
        sa.Column('listing_id', sa.Integer(), nullable=True),
        sa.Column('request_id', sa.String(length=80), nullable=True),
        sa.Column('details_json', sa.Text(), nullable=True),
    )
    op.create_index('ix_audit_events_created_at', 'audit_events', ['created_at'])
    op.create_index('ix_audit_events_action', 'audit_events', ['action'])
    op.create_index('ix_audit_events_actor_user_id', 'audit_events', ['actor_user_id'])
    op.create_index('ix_audit_events_listing_id', 'audit_events', ['listing_id'])


def downgrade():
    op.drop_table('audit_events')
    op.drop_table('message_images')
    op.drop_table('messages')
    op.drop_table('conversations')
    op.drop_table('listing_images')
    op.drop_table('listings')
    op.drop_table('users')
