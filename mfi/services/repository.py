"""Persistence boundary for the back-office services.

Services talk to a :class:`Repository` instead of the database session, so
the loan, payment and registry rules can be exercised against
:class:`InMemoryRepository` in tests and against
:class:`SQLAlchemyRepository` in the running application.

Every mutating service call runs inside ``repo.transaction()``. The
transaction holds a process-wide lock, so the capital and last-admin
checks cannot interleave with another writer.
"""
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager

from mfi import db
from mfi.models import AuditLog, Loan, Member, Partner, Payment, Settings, User

_write_lock = threading.RLock()


class Repository(ABC):
    """Per-entity read/write capability"""

    def __init__(self):
        self._local = threading.local()

    # Transactions

    @contextmanager
    def transaction(self):
        """Serialize writers and make the enclosed writes all-or-nothing"""
        with _write_lock:
            depth = getattr(self._local, 'depth', 0)
            self._local.depth = depth + 1
            try:
                yield self
                if depth == 0:
                    self.commit()
            except Exception:
                if depth == 0:
                    self.rollback()
                raise
            finally:
                self._local.depth = depth

    @abstractmethod
    def commit(self):
        pass

    @abstractmethod
    def rollback(self):
        pass

    # Settings

    @abstractmethod
    def get_settings(self):
        pass

    @abstractmethod
    def save_settings(self, settings):
        pass

    # Members

    @abstractmethod
    def list_members(self):
        pass

    @abstractmethod
    def get_member(self, member_id):
        pass

    @abstractmethod
    def save_member(self, member):
        pass

    @abstractmethod
    def delete_member(self, member):
        pass

    # Partners

    @abstractmethod
    def list_partners(self):
        pass

    @abstractmethod
    def get_partner(self, partner_id):
        pass

    @abstractmethod
    def save_partner(self, partner):
        pass

    @abstractmethod
    def delete_partner(self, partner):
        pass

    # Users

    @abstractmethod
    def list_users(self):
        pass

    @abstractmethod
    def get_user(self, user_id):
        pass

    @abstractmethod
    def get_user_by_username(self, username):
        pass

    @abstractmethod
    def save_user(self, user):
        pass

    @abstractmethod
    def delete_user(self, user):
        pass

    # Loans and payments

    @abstractmethod
    def list_loans(self):
        pass

    @abstractmethod
    def get_loan(self, loan_id):
        pass

    @abstractmethod
    def save_loan(self, loan):
        pass

    @abstractmethod
    def list_payments(self, loan_id=None):
        pass

    @abstractmethod
    def get_payment(self, payment_id):
        pass

    @abstractmethod
    def save_payment(self, payment):
        pass

    # Audit

    @abstractmethod
    def add_audit(self, entry):
        pass

    @abstractmethod
    def list_audit(self, limit=None):
        pass


class SQLAlchemyRepository(Repository):
    """Repository backed by the Flask-SQLAlchemy session"""

    def __init__(self, session=None):
        super().__init__()
        self.session = session or db.session

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()

    def _save(self, obj):
        self.session.add(obj)
        self.session.flush()
        return obj

    def _delete(self, obj):
        self.session.delete(obj)
        self.session.flush()

    def get_settings(self):
        settings = self.session.query(Settings).order_by(Settings.id).first()
        if settings is None:
            # Commits only when no outer transaction is open
            with self.transaction():
                settings = self._save(Settings.with_defaults())
        return settings

    def save_settings(self, settings):
        return self._save(settings)

    def list_members(self):
        return self.session.query(Member).order_by(Member.registration_date.desc(), Member.id.desc()).all()

    def get_member(self, member_id):
        return self.session.get(Member, member_id) if member_id is not None else None

    def save_member(self, member):
        return self._save(member)

    def delete_member(self, member):
        self._delete(member)

    def list_partners(self):
        return self.session.query(Partner).order_by(Partner.name).all()

    def get_partner(self, partner_id):
        return self.session.get(Partner, partner_id) if partner_id is not None else None

    def save_partner(self, partner):
        return self._save(partner)

    def delete_partner(self, partner):
        self._delete(partner)

    def list_users(self):
        return self.session.query(User).order_by(User.id).all()

    def get_user(self, user_id):
        return self.session.get(User, user_id) if user_id is not None else None

    def get_user_by_username(self, username):
        return self.session.query(User).filter_by(username=username).first()

    def save_user(self, user):
        return self._save(user)

    def delete_user(self, user):
        self._delete(user)

    def list_loans(self):
        return self.session.query(Loan).order_by(Loan.id.desc()).all()

    def get_loan(self, loan_id):
        return self.session.get(Loan, loan_id) if loan_id is not None else None

    def save_loan(self, loan):
        return self._save(loan)

    def list_payments(self, loan_id=None):
        query = self.session.query(Payment)
        if loan_id is not None:
            query = query.filter_by(loan_id=loan_id)
        return query.order_by(Payment.id.desc()).all()

    def get_payment(self, payment_id):
        return self.session.get(Payment, payment_id) if payment_id is not None else None

    def save_payment(self, payment):
        return self._save(payment)

    def add_audit(self, entry):
        return self._save(entry)

    def list_audit(self, limit=None):
        query = self.session.query(AuditLog).order_by(AuditLog.id.desc())
        if limit:
            query = query.limit(limit)
        return query.all()


class InMemoryRepository(Repository):
    """Dictionary-backed repository holding transient model instances.

    There is no rollback: services validate before they mutate anything.
    """

    def __init__(self, settings=None):
        super().__init__()
        self.settings = settings or Settings.with_defaults(id=1)
        self.members = {}
        self.partners = {}
        self.users = {}
        self.loans = {}
        self.payments = {}
        self.audit = []
        self._ids = {}
        self.commits = 0

    def _next_id(self, name):
        self._ids[name] = self._ids.get(name, 0) + 1
        return self._ids[name]

    def _store(self, table, name, obj):
        if obj.id is None:
            obj.id = self._next_id(name)
        table[obj.id] = obj
        return obj

    def commit(self):
        self.commits += 1

    def rollback(self):
        pass

    def get_settings(self):
        return self.settings

    def save_settings(self, settings):
        self.settings = settings
        return settings

    def list_members(self):
        return sorted(self.members.values(), key=lambda m: m.id, reverse=True)

    def get_member(self, member_id):
        return self.members.get(member_id)

    def save_member(self, member):
        return self._store(self.members, 'member', member)

    def delete_member(self, member):
        self.members.pop(member.id, None)
        for loan in self.loans.values():
            if loan.member_id == member.id:
                loan.member_id = None

    def list_partners(self):
        return sorted(self.partners.values(), key=lambda p: p.name)

    def get_partner(self, partner_id):
        return self.partners.get(partner_id)

    def save_partner(self, partner):
        return self._store(self.partners, 'partner', partner)

    def delete_partner(self, partner):
        self.partners.pop(partner.id, None)
        for loan in self.loans.values():
            if loan.partner_id == partner.id:
                loan.partner_id = None

    def list_users(self):
        return sorted(self.users.values(), key=lambda u: u.id)

    def get_user(self, user_id):
        return self.users.get(user_id)

    def get_user_by_username(self, username):
        for user in self.users.values():
            if user.username == username:
                return user
        return None

    def save_user(self, user):
        return self._store(self.users, 'user', user)

    def delete_user(self, user):
        self.users.pop(user.id, None)

    def list_loans(self):
        return sorted(self.loans.values(), key=lambda l: l.id, reverse=True)

    def get_loan(self, loan_id):
        return self.loans.get(loan_id)

    def save_loan(self, loan):
        return self._store(self.loans, 'loan', loan)

    def list_payments(self, loan_id=None):
        payments = [p for p in self.payments.values() if loan_id is None or p.loan_id == loan_id]
        return sorted(payments, key=lambda p: p.id, reverse=True)

    def get_payment(self, payment_id):
        return self.payments.get(payment_id)

    def save_payment(self, payment):
        return self._store(self.payments, 'payment', payment)

    def add_audit(self, entry):
        entry.id = self._next_id('audit')
        self.audit.insert(0, entry)
        return entry

    def list_audit(self, limit=None):
        return self.audit[:limit] if limit else list(self.audit)
