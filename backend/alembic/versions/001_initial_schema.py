"""Initial schema

Revision ID: 001
Revises: 
Create Date: 2024-01-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create user_list table
    op.create_table('user_list',
        sa.Column('list_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('list_type', sa.String(length=10), nullable=False),
        sa.CheckConstraint("list_type IN ('contact', 'block')", name='list_type_check'),
        sa.PrimaryKeyConstraint('list_id')
    )

    # Create usr table; both lists must exist first
    op.create_table('usr',
        sa.Column('login', sa.String(length=50), nullable=False),
        sa.Column('password', sa.String(length=255), nullable=False),
        sa.Column('phone_num', sa.String(length=16), nullable=True),
        sa.Column('status', sa.String(length=140), nullable=True),
        sa.Column('contact_list', sa.Integer(), nullable=False),
        sa.Column('block_list', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('contact_list <> block_list', name='distinct_lists_check'),
        sa.ForeignKeyConstraint(['contact_list'], ['user_list.list_id'], ),
        sa.ForeignKeyConstraint(['block_list'], ['user_list.list_id'], ),
        sa.PrimaryKeyConstraint('login'),
        sa.UniqueConstraint('contact_list'),
        sa.UniqueConstraint('block_list')
    )

    # Create user_list_contains table
    op.create_table('user_list_contains',
        sa.Column('list_id', sa.Integer(), nullable=False),
        sa.Column('list_member', sa.String(length=50), nullable=False),
        sa.ForeignKeyConstraint(['list_id'], ['user_list.list_id'], ),
        sa.ForeignKeyConstraint(['list_member'], ['usr.login'], ),
        sa.PrimaryKeyConstraint('list_id', 'list_member')
    )

    # Create chat table
    op.create_table('chat',
        sa.Column('chat_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('chat_type', sa.String(length=10), nullable=False),
        sa.Column('init_sender', sa.String(length=50), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint("chat_type IN ('private', 'group')", name='chat_type_check'),
        sa.ForeignKeyConstraint(['init_sender'], ['usr.login'], ),
        sa.PrimaryKeyConstraint('chat_id')
    )

    # Create chat_list table
    op.create_table('chat_list',
        sa.Column('chat_id', sa.Integer(), nullable=False),
        sa.Column('member', sa.String(length=50), nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['chat_id'], ['chat.chat_id'], ),
        sa.ForeignKeyConstraint(['member'], ['usr.login'], ),
        sa.PrimaryKeyConstraint('chat_id', 'member')
    )

    # Create message table
    op.create_table('message',
        sa.Column('msg_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('chat_id', sa.Integer(), nullable=False),
        sa.Column('sender_login', sa.String(length=50), nullable=False),
        sa.Column('msg_text', sa.Text(), nullable=False),
        sa.Column('msg_timestamp', sa.DateTime(), nullable=False),
        sa.Column('edited_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['chat_id'], ['chat.chat_id'], ),
        sa.ForeignKeyConstraint(['sender_login'], ['usr.login'], ),
        sa.PrimaryKeyConstraint('msg_id')
    )
    op.create_index('ix_message_chat_timestamp', 'message', ['chat_id', 'msg_timestamp'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_message_chat_timestamp', table_name='message')
    op.drop_table('message')
    op.drop_table('chat_list')
    op.drop_table('chat')
    op.drop_table('user_list_contains')
    op.drop_table('usr')
    op.drop_table('user_list')
