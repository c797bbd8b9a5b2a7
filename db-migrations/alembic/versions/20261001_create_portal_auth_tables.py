"""
Create the portal schema with the verification_codes and sessions tables
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20261001'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.execute("CREATE SCHEMA IF NOT EXISTS portal")
    op.create_table(
        'verification_codes',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('email', sa.String, nullable=False),
        sa.Column('code', sa.String(5), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('used', sa.Boolean, nullable=False, server_default=sa.text('false')),
        sa.Column('used_at', sa.DateTime(timezone=True), nullable=True),
        schema='portal',
    )
    op.create_index('ix_verification_codes_email', 'verification_codes', ['email'], schema='portal')
    op.create_index('idx_verification_codes_lookup', 'verification_codes', ['email', 'code', 'used'], schema='portal')

    op.create_table(
        'sessions',
        sa.Column('session_id', sa.String(64), primary_key=True),
        sa.Column('email', sa.String, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_accessed_at', sa.DateTime(timezone=True), nullable=True),
        schema='portal',
    )
    op.create_index('ix_sessions_email', 'sessions', ['email'], schema='portal')
    op.create_index('idx_sessions_expires_at', 'sessions', ['expires_at'], schema='portal')

def downgrade():
    op.drop_index('idx_sessions_expires_at', table_name='sessions', schema='portal')
    op.drop_index('ix_sessions_email', table_name='sessions', schema='portal')
    op.drop_table('sessions', schema='portal')
    op.drop_index('idx_verification_codes_lookup', table_name='verification_codes', schema='portal')
    op.drop_index('ix_verification_codes_email', table_name='verification_codes', schema='portal')
    op.drop_table('verification_codes', schema='portal')
