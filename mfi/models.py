"""Database models for the MFI back-office"""
from datetime import datetime
from decimal import Decimal
from dateutil.relativedelta import relativedelta
from mfi import db, login_manager
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

# Enumerations
CURRENCIES = ('CDF', 'USD')

LOAN_PENDING = 'pending'
LOAN_APPROVED = 'approved'
LOAN_REJECTED = 'rejected'
LOAN_ACTIVE = 'active'
LOAN_OVERDUE = 'overdue'
LOAN_COMPLETED = 'completed'
LOAN_STATUSES = (LOAN_PENDING, LOAN_APPROVED, LOAN_REJECTED,
                 LOAN_ACTIVE, LOAN_OVERDUE, LOAN_COMPLETED)

# Loans that hold capital and accept payments
OUTSTANDING_STATUSES = (LOAN_ACTIVE, LOAN_OVERDUE)

PAYMENT_METHODS = ('cash', 'mobile_money', 'bank')
PARTNER_TYPES = ('internal', 'external')
PARTNER_STATUSES = ('active', 'suspended')
USER_ROLES = ('admin', 'agent')

DEFAULT_SETTINGS = {
    'institution_name': 'ONGD DEBOUT GRANDS LACS',
    'capital_cdf': Decimal('10000000'),
    'capital_usd': Decimal('5000'),
    'interest_rate': Decimal('10'),
    'application_fee_percent': Decimal('2'),
    'insurance_fee_percent': Decimal('1'),
    'savings_percent': Decimal('5'),
    'penalty_rate': Decimal('5'),
    'welcome_title': 'ONGD DEBOUT GRANDS LACS',
    'welcome_subtitle': 'Soutenez vos projets avec le microcrédit solidaire',
    'welcome_description': 'Prêts sur 3 mois ou plus avec des taux solidaires.',
}

@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))

class User(UserMixin, db.Model):
    """Staff login account"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='agent')  # admin, agent
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_login = db.Column(db.DateTime)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == 'admin'

    def __repr__(self):
        return f'<User {self.username}>'

class Member(db.Model):
    """Registered MFI member (borrower)"""
    __tablename__ = 'members'

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False, index=True)
    gender = db.Column(db.String(1))  # M, F
    phone = db.Column(db.String(30))
    address = db.Column(db.String(255))
    profession = db.Column(db.String(100))
    group_name = db.Column(db.String(100))
    registration_date = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    loans = db.relationship('Loan', backref='member', lazy='dynamic')

    @property
    def full_name(self):
        return f'{self.first_name} {self.last_name}'

    def __repr__(self):
        return f'<Member {self.id} - {self.full_name}>'

class Partner(db.Model):
    """Funding partner"""
    __tablename__ = 'partners'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    partner_type = db.Column(db.String(20), nullable=False, default='external')  # internal, external
    country = db.Column(db.String(100))
    email = db.Column(db.String(120))
    status = db.Column(db.String(20), nullable=False, default='active')  # active, suspended

    loans = db.relationship('Loan', backref='partner', lazy='dynamic')

    def __repr__(self):
        return f'<Partner {self.name}>'

class Loan(db.Model):
    """Member loan with a flat-interest repayment total"""
    __tablename__ = 'loans'

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=True, index=True)
    member_name = db.Column(db.String(200), nullable=False)  # kept after member deletion
    partner_id = db.Column(db.Integer, db.ForeignKey('partners.id'), nullable=True)

    amount = db.Column(db.Numeric(15, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, index=True)  # CDF, USD
    duration_months = db.Column(db.Integer, nullable=False)
    interest_rate = db.Column(db.Numeric(5, 2), nullable=False)  # snapshot of settings at creation
    start_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    status = db.Column(db.String(20), nullable=False, default=LOAN_PENDING, index=True)

    # Financials
    total_interest = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    total_fees = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    total_insurance = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    total_savings = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    total_due = db.Column(db.Numeric(15, 2), nullable=False)  # principal + interest
    remaining_balance = db.Column(db.Numeric(15, 2), nullable=False)

    payments = db.relationship('Payment', backref='loan', lazy='dynamic')

    @property
    def maturity_date(self):
        if not self.start_date or self.duration_months is None:
            return None
        return self.start_date + relativedelta(months=self.duration_months)

    @property
    def paid_amount(self):
        return Decimal(str(self.total_due)) - Decimal(str(self.remaining_balance))

    @property
    def accepts_payments(self):
        return self.status in OUTSTANDING_STATUSES

    def __repr__(self):
        return f'<Loan {self.id} {self.amount} {self.currency} {self.status}>'

class Payment(db.Model):
    """Repayment recorded against a loan"""
    __tablename__ = 'payments'

    id = db.Column(db.Integer, primary_key=True)
    loan_id = db.Column(db.Integer, db.ForeignKey('loans.id'), nullable=False, index=True)
    amount = db.Column(db.Numeric(15, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False)
    payment_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    agent_name = db.Column(db.String(200), nullable=False)
    method = db.Column(db.String(20), nullable=False, default='cash')  # cash, mobile_money, bank
    balance_after = db.Column(db.Numeric(15, 2))

    def __repr__(self):
        return f'<Payment {self.id} loan={self.loan_id}>'

class Settings(db.Model):
    """Institution-wide settings (single row)"""
    __tablename__ = 'settings'

    id = db.Column(db.Integer, primary_key=True)
    institution_name = db.Column(db.String(200), default=DEFAULT_SETTINGS['institution_name'])

    # Capital ceilings per currency
    capital_cdf = db.Column(db.Numeric(18, 2), default=DEFAULT_SETTINGS['capital_cdf'])
    capital_usd = db.Column(db.Numeric(18, 2), default=DEFAULT_SETTINGS['capital_usd'])

    # Rates (percent)
    interest_rate = db.Column(db.Numeric(5, 2), default=DEFAULT_SETTINGS['interest_rate'])
    application_fee_percent = db.Column(db.Numeric(5, 2), default=DEFAULT_SETTINGS['application_fee_percent'])
    insurance_fee_percent = db.Column(db.Numeric(5, 2), default=DEFAULT_SETTINGS['insurance_fee_percent'])
    savings_percent = db.Column(db.Numeric(5, 2), default=DEFAULT_SETTINGS['savings_percent'])
    penalty_rate = db.Column(db.Numeric(5, 2), default=DEFAULT_SETTINGS['penalty_rate'])  # not applied yet

    # Welcome screen
    welcome_title = db.Column(db.String(200), default=DEFAULT_SETTINGS['welcome_title'])
    welcome_subtitle = db.Column(db.String(255), default=DEFAULT_SETTINGS['welcome_subtitle'])
    welcome_description = db.Column(db.Text, default=DEFAULT_SETTINGS['welcome_description'])

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @classmethod
    def with_defaults(cls, **overrides):
        """Build a settings row with every default filled in"""
        values = dict(DEFAULT_SETTINGS)
        values.update(overrides)
        return cls(**values)

    def capital_for(self, currency):
        return {'CDF': self.capital_cdf, 'USD': self.capital_usd}.get(currency)

    def __repr__(self):
        return f'<Settings {self.institution_name}>'

class AuditLog(db.Model):
    """Append-only audit trail"""
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(50), nullable=False, index=True)
    details = db.Column(db.Text)
    timestamp = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    actor = db.Column(db.String(200), nullable=False, default='System')

    def __repr__(self):
        return f'<AuditLog {self.action}>'
