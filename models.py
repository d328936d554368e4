# models.py - Flask-SQLAlchemy models
import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import UniqueConstraint, Index, text
from werkzeug.security import check_password_hash, generate_password_hash

from extensions import db


def new_uuid():
    return str(uuid.uuid4())


def utcnow():
    return datetime.now(timezone.utc)


def money(value):
    """Render a Numeric column value for JSON responses."""
    if value is None:
        return 0.0
    return float(Decimal(str(value)))

# ===========================================================
# ENUM DEFINITIONS
# ===========================================================

class Role(enum.Enum):
    ADMIN = "admin"
    PROMOTER = "promoter"
    CUSTOMER = "customer"


class PaymentStatus(enum.Enum):
    PENDING = "pending"
    PAID = "paid"


class CommissionStatus(enum.Enum):
    PENDING = "pending"
    CREDITED = "credited"
    FAILED = "failed"


class RecipientType(enum.Enum):
    PROMOTER = "promoter"
    ADMIN = "admin"


class RequestStatus(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# ===========================================================
# BASE MIXIN FOR COMMON FIELDS
# ===========================================================

class BaseMixin:
    """Provides created_at and updated_at timestamps to inheriting models."""
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

# ===========================================================
# PROFILES
# ===========================================================

class Profile(db.Model, BaseMixin):
    """Admin, promoter or customer. Promoters form a referral tree via parent_promoter_id."""
    __tablename__ = 'profiles'

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=True)
    phone = db.Column(db.String(20), nullable=True, index=True)
    role = db.Column(db.String(20), nullable=False, default=Role.CUSTOMER.value, index=True)
    status = db.Column(db.String(20), nullable=False, default="active")

    promoter_id = db.Column(db.String(20), unique=True, nullable=True)   # BPVP01, BPVP02 ...
    customer_id = db.Column(db.String(50), unique=True, nullable=True)   # customer card number
    role_level = db.Column(db.String(50), nullable=True)
    parent_promoter_id = db.Column(
        db.String(36), db.ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True, index=True
    )

    pins = db.Column(db.Integer, nullable=False, default=0, server_default=text("0"))
    saving_plan = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255))
    state = db.Column(db.String(100))
    city = db.Column(db.String(100))
    pincode = db.Column(db.String(20))
    password_hash = db.Column(db.String(255), nullable=True)

    wallet_balance = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"),
                               server_default=text("0.00"))

    parent = db.relationship('Profile', remote_side=[id], backref='children')
    payments = db.relationship('CustomerPayment', back_populates='customer',
                               cascade="all,delete-orphan", order_by='CustomerPayment.month_number')

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def is_promoter(self):
        return self.role == Role.PROMOTER.value

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "status": self.status,
            "promoter_id": self.promoter_id,
            "customer_id": self.customer_id,
            "role_level": self.role_level,
            "parent_promoter_id": self.parent_promoter_id,
            "pins": self.pins,
            "saving_plan": self.saving_plan,
            "address": self.address,
            "state": self.state,
            "city": self.city,
            "pincode": self.pincode,
            "wallet_balance": money(self.wallet_balance),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Profile {self.id} {self.role} {self.name}>'

# ===========================================================
# PAYMENT SCHEDULE
# ===========================================================

class CustomerPayment(db.Model, BaseMixin):
    """One monthly installment of a customer's saving plan."""
    __tablename__ = 'customer_payments'

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.String(36), db.ForeignKey('profiles.id', ondelete='CASCADE'),
                            nullable=False, index=True)
    month_number = db.Column(db.Integer, nullable=False)
    payment_amount = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=PaymentStatus.PENDING.value)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    customer = db.relationship('Profile', back_populates='payments')

    __table_args__ = (
        UniqueConstraint('customer_id', 'month_number', name='uq_customer_payment_month'),
        db.CheckConstraint('month_number >= 1', name='chk_month_number_positive'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "month_number": self.month_number,
            "payment_amount": money(self.payment_amount),
            "status": self.status,
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
        }

# ===========================================================
# COMMISSIONS & WALLETS
# ===========================================================

class AffiliateCommission(db.Model, BaseMixin):
    __tablename__ = 'affiliate_commissions'

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    customer_id = db.Column(db.String(36), db.ForeignKey('profiles.id', ondelete='CASCADE'),
                            nullable=False, index=True)
    initiator_promoter_id = db.Column(db.String(36), db.ForeignKey('profiles.id'), nullable=True)
    promoter_id = db.Column(db.String(36), db.ForeignKey('profiles.id', ondelete='CASCADE'),
                            nullable=True, index=True)
    recipient_id = db.Column(db.String(36), db.ForeignKey('profiles.id'), nullable=True, index=True)
    recipient_type = db.Column(db.String(20), nullable=False, default=RecipientType.PROMOTER.value)
    level = db.Column(db.Integer, nullable=False)  # 0 = admin fallback, 1-4
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=CommissionStatus.CREDITED.value)
    transaction_id = db.Column(db.String(50), unique=True, nullable=False)
    note = db.Column(db.Text)

    customer = db.relationship('Profile', foreign_keys=[customer_id])
    recipient = db.relationship('Profile', foreign_keys=[recipient_id])
    initiator = db.relationship('Profile', foreign_keys=[initiator_promoter_id])

    __table_args__ = (
        UniqueConstraint('customer_id', 'level', name='uq_commission_customer_level'),
        Index('idx_commission_recipient_status', 'recipient_id', 'status'),
        db.CheckConstraint('level >= 0 AND level <= 4', name='chk_commission_level_range'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "initiator_promoter_id": self.initiator_promoter_id,
            "promoter_id": self.promoter_id,
            "recipient_id": self.recipient_id,
            "recipient_type": self.recipient_type,
            "level": self.level,
            "amount": money(self.amount),
            "status": self.status,
            "transaction_id": self.transaction_id,
            "note": self.note,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "customer": {
                "name": self.customer.name,
                "mobile": self.customer.phone,
                "customer_id": self.customer.customer_id,
            } if self.customer else None,
            "recipient": {
                "name": self.recipient.name,
                "promoter_id": self.recipient.promoter_id,
            } if self.recipient else None,
        }


class WithdrawalRequest(db.Model, BaseMixin):
    __tablename__ = 'withdrawal_requests'

    id = db.Column(db.Integer, primary_key=True)
    promoter_id = db.Column(db.String(36), db.ForeignKey('profiles.id', ondelete='CASCADE'),
                            nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=RequestStatus.PENDING.value)
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "promoter_id": self.promoter_id,
            "amount": money(self.amount),
            "status": self.status,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

# ===========================================================
# PINS
# ===========================================================

class PinRequest(db.Model, BaseMixin):
    __tablename__ = 'pin_requests'

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    request_number = db.Column(db.Integer, unique=True, nullable=False)
    promoter_id = db.Column(db.String(36), db.ForeignKey('profiles.id', ondelete='CASCADE'),
                            nullable=False, index=True)
    requested_pins = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default=RequestStatus.PENDING.value, index=True)
    approved_by = db.Column(db.String(36), db.ForeignKey('profiles.id'), nullable=True)
    admin_notes = db.Column(db.Text)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    promoter = db.relationship('Profile', foreign_keys=[promoter_id])

    __table_args__ = (
        db.CheckConstraint('requested_pins > 0', name='chk_requested_pins_positive'),
        Index('idx_pin_requests_created_at', 'created_at'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "request_number": self.request_number,
            "promoter_id": self.promoter_id,
            "requested_pins": self.requested_pins,
            "reason": self.reason,
            "status": self.status,
            "approved_by": self.approved_by,
            "admin_notes": self.admin_notes,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class PinTransaction(db.Model):
    """Ledger of every pin balance change."""
    __tablename__ = 'pin_transactions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey('profiles.id', ondelete='CASCADE'),
                        nullable=False, index=True)
    action_type = db.Column(db.String(50), nullable=False)  # customer_creation, admin_allocation, admin_deduction
    pin_change = db.Column(db.Integer, nullable=False)
    balance_before = db.Column(db.Integer, nullable=False)
    balance_after = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255))
    created_by = db.Column(db.String(36), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "action_type": self.action_type,
            "pin_change": self.pin_change,
            "balance_before": self.balance_before,
            "balance_after": self.balance_after,
            "description": self.description,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class PromoterIdSequence(db.Model):
    __tablename__ = 'promoter_id_sequence'

    id = db.Column(db.Integer, primary_key=True)
    last_promoter_number = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

# ===========================================================
# AUDITING
# ===========================================================

class AuditLog(db.Model):
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    actor = db.Column(db.String(100), nullable=False, default="system")
    action = db.Column(db.String(255), nullable=False, index=True)
    details = db.Column(db.JSON)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    @staticmethod
    def record(action, details=None, actor="system"):
        """Add an audit entry to the current session; the caller commits."""
        entry = AuditLog(action=action, details=details or {}, actor=actor)
        db.session.add(entry)
        return entry
