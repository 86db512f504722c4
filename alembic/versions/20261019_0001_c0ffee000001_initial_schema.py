"""initial schema

Revision ID: c0ffee000001
Revises:
Create Date: 2026-10-19

Creates the four tables behind the API:
  users                   : accounts (OTP-verified at signup)
  email_verification_otps : bcrypt-hashed signup OTPs, single use, 10 min expiry
  user_dynamic_data       : raw JSON per (user_id, key), unique pair
  payments                : one row per Razorpay order, amounts in paise
"""
from alembic import op
import sqlalchemy as sa

revision = 'c0ffee000001'
down_revision = None
branch_labels = None
depends_on = None

user_role = sa.Enum('USER', 'ADMIN', name='user_role')
payment_status = sa.Enum(
    'PENDING', 'AUTHORIZED', 'CAPTURED', 'FAILED', 'REFUNDED', 'CANCELLED',
    name='payment_status',
)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('username', sa.String(50), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(150), nullable=True),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('role', user_role, nullable=False, server_default='USER'),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('is_email_verified', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('last_login', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'email_verification_otps',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('otp_hash', sa.String(), nullable=False),
        sa.Column('is_used', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_email_verification_otps_user_id', 'email_verification_otps', ['user_id'])
    op.create_index('ix_email_verification_otps_email', 'email_verification_otps', ['email'])

    op.create_table(
        'user_dynamic_data',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('key', sa.String(255), nullable=False),
        sa.Column('data', sa.Text(), nullable=True),
        sa.Column('updated_time', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_by', sa.String(255), nullable=True),
        sa.UniqueConstraint('user_id', 'key', name='uq_user_dynamic_data_user_key'),
    )
    op.create_index('ix_user_dynamic_data_user_id', 'user_dynamic_data', ['user_id'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('razorpay_order_id', sa.String(100), nullable=False),
        sa.Column('razorpay_payment_id', sa.String(100), nullable=True),
        sa.Column('razorpay_signature', sa.String(255), nullable=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(10), nullable=False, server_default='INR'),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('receipt', sa.String(40), nullable=True),
        sa.Column('status', payment_status, nullable=False, server_default='PENDING'),
        sa.Column('payment_method', sa.String(50), nullable=True),
        sa.Column('customer_email', sa.String(255), nullable=True),
        sa.Column('customer_phone', sa.String(30), nullable=True),
        sa.Column('customer_name', sa.String(150), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_payments_user_id', 'payments', ['user_id'])
    op.create_index('ix_payments_razorpay_order_id', 'payments', ['razorpay_order_id'], unique=True)
    op.create_index('ix_payments_razorpay_payment_id', 'payments', ['razorpay_payment_id'])


def downgrade() -> None:
    op.drop_table('payments')
    op.drop_table('user_dynamic_data')
    op.drop_table('email_verification_otps')
    op.drop_table('users')
    payment_status.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
