"""Initial schema: profiles, payments, commissions, pins, withdrawals"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4f1c2a9d7e01'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True, unique=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('promoter_id', sa.String(length=20), nullable=True, unique=True),
        sa.Column('customer_id', sa.String(length=50), nullable=True, unique=True),
        sa.Column('role_level', sa.String(length=50), nullable=True),
        sa.Column('parent_promoter_id', sa.String(length=36),
                  sa.ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True),
        sa.Column('pins', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('investment_plan', sa.String(length=255), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('state', sa.String(length=100), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('pincode', sa.String(length=20), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('wallet_balance', sa.Numeric(precision=12, scale=2), nullable=False,
                  server_default=sa.text('0.00')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_profiles_phone', 'profiles', ['phone'])
    op.create_index('ix_profiles_role', 'profiles', ['role'])
    op.create_index('ix_profiles_parent_promoter_id', 'profiles', ['parent_promoter_id'])

    op.create_table(
        'customer_payments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('customer_id', sa.String(length=36),
                  sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('month_number', sa.Integer(), nullable=False),
        sa.Column('payment_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('customer_id', 'month_number', name='uq_customer_payment_month'),
        sa.CheckConstraint('month_number >= 1', name='chk_month_number_positive'),
    )
    op.create_index('ix_customer_payments_customer_id', 'customer_payments', ['customer_id'])

    op.create_table(
        'affiliate_commissions',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('customer_id', sa.String(length=36),
                  sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('initiator_promoter_id', sa.String(length=36), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('recipient_id', sa.String(length=36), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('recipient_type', sa.String(length=20), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('transaction_id', sa.String(length=50), nullable=False, unique=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('customer_id', 'level', name='uq_commission_customer_level'),
        sa.CheckConstraint('level >= 0 AND level <= 4', name='chk_commission_level_range'),
    )
    op.create_index('ix_affiliate_commissions_customer_id', 'affiliate_commissions', ['customer_id'])
    op.create_index('ix_affiliate_commissions_recipient_id', 'affiliate_commissions', ['recipient_id'])
    op.create_index('idx_commission_recipient_status', 'affiliate_commissions', ['recipient_id', 'status'])

    op.create_table(
        'withdrawal_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('promoter_id', sa.String(length=36),
                  sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_withdrawal_requests_promoter_id', 'withdrawal_requests', ['promoter_id'])

    op.create_table(
        'pin_requests',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('request_number', sa.Integer(), nullable=False, unique=True),
        sa.Column('promoter_id', sa.String(length=36),
                  sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('requested_pins', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('approved_by', sa.String(length=36), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('requested_pins > 0', name='chk_requested_pins_positive'),
    )
    op.create_index('ix_pin_requests_promoter_id', 'pin_requests', ['promoter_id'])
    op.create_index('ix_pin_requests_status', 'pin_requests', ['status'])
    op.create_index('idx_pin_requests_created_at', 'pin_requests', ['created_at'])

    op.create_table(
        'pin_transactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(length=36),
                  sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('action_type', sa.String(length=50), nullable=False),
        sa.Column('pin_change', sa.Integer(), nullable=False),
        sa.Column('balance_before', sa.Integer(), nullable=False),
        sa.Column('balance_after', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('created_by', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_pin_transactions_user_id', 'pin_transactions', ['user_id'])

    op.create_table(
        'promoter_id_sequence',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('last_promoter_number', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor', sa.String(length=100), nullable=False),
        sa.Column('action', sa.String(length=255), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])


def downgrade():
    op.drop_table('audit_logs')
    op.drop_table('promoter_id_sequence')
    op.drop_table('pin_transactions')
    op.drop_table('pin_requests')
    op.drop_table('withdrawal_requests')
    op.drop_table('affiliate_commissions')
    op.drop_table('customer_payments')
    op.drop_table('profiles')
