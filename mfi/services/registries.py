"""Member, partner, user and settings registries.

Plain upsert/delete collections with two cross-entity rules:

* a member cannot be deleted while holding a loan that is still open;
* the user collection always keeps at least one active administrator.
"""
import logging
from datetime import datetime

from mfi.models import (
    Member, Partner, User, PARTNER_TYPES, PARTNER_STATUSES, USER_ROLES,
    LOAN_PENDING, LOAN_APPROVED, LOAN_ACTIVE, LOAN_OVERDUE,
)
from mfi.services import audit
from mfi.services.audit import AuditLog
from mfi.services.calculator import to_finite_decimal
from mfi.services.errors import (
    DeleteBlocked, LastAdminProtected, NotFound, ValidationError,
)

logger = logging.getLogger(__name__)

# Loan states that still tie a member to the portfolio
OPEN_LOAN_STATUSES = (LOAN_PENDING, LOAN_APPROVED, LOAN_ACTIVE, LOAN_OVERDUE)

MEMBER_FIELDS = ('first_name', 'last_name', 'gender', 'phone', 'address', 'profession', 'group_name')
PARTNER_FIELDS = ('name', 'partner_type', 'country', 'email', 'status')
USER_FIELDS = ('username', 'name', 'role', 'is_active')
SETTINGS_FIELDS = (
    'institution_name', 'capital_cdf', 'capital_usd', 'interest_rate',
    'application_fee_percent', 'insurance_fee_percent', 'savings_percent',
    'penalty_rate', 'welcome_title', 'welcome_subtitle', 'welcome_description',
)
SETTINGS_DECIMALS = (
    'capital_cdf', 'capital_usd', 'interest_rate', 'application_fee_percent',
    'insurance_fee_percent', 'savings_percent', 'penalty_rate',
)


def _apply(obj, fields, values):
    for field in fields:
        if field in values:
            setattr(obj, field, values[field])


class MemberRegistry:

    def __init__(self, repo):
        self.repo = repo
        self.audit = AuditLog(repo)

    def get(self, member_id):
        member = self.repo.get_member(member_id)
        if member is None:
            raise NotFound('Member', member_id)
        return member

    def list(self, search=None):
        members = self.repo.list_members()
        if search:
            needle = search.lower()
            members = [m for m in members
                       if needle in m.last_name.lower()
                       or needle in m.first_name.lower()
                       or needle in (m.phone or '')]
        return members

    def save(self, member_id=None, actor=None, **values):
        """Create a member, or update the one with ``member_id``"""
        if values.get('gender') not in (None, '', 'M', 'F'):
            raise ValidationError('Gender must be M or F')

        with self.repo.transaction():
            if member_id is None:
                member = Member(registration_date=values.pop('registration_date', None) or datetime.utcnow())
            else:
                member = self.get(member_id)
            if not (values.get('first_name', member.first_name) and values.get('last_name', member.last_name)):
                raise ValidationError('First name and last name are required')
            _apply(member, MEMBER_FIELDS, values)
            self.repo.save_member(member)
            self.audit.record(audit.SAVE_MEMBER, f'Member saved: {member.full_name}', actor)
        return member

    def delete(self, member_id, actor=None):
        with self.repo.transaction():
            member = self.get(member_id)
            open_loans = [loan for loan in self.repo.list_loans()
                          if loan.member_id == member.id and loan.status in OPEN_LOAN_STATUSES]
            if open_loans:
                logger.warning('Delete of member %s blocked by %d open loan(s)', member.id, len(open_loans))
                raise DeleteBlocked('Cannot delete this member: they still have open loans')
            self.repo.delete_member(member)
            self.audit.record(audit.DELETE_MEMBER, f'Member deleted: {member.full_name}', actor)


class PartnerRegistry:

    def __init__(self, repo):
        self.repo = repo
        self.audit = AuditLog(repo)

    def get(self, partner_id):
        partner = self.repo.get_partner(partner_id)
        if partner is None:
            raise NotFound('Partner', partner_id)
        return partner

    def list(self, status=None):
        partners = self.repo.list_partners()
        if status:
            partners = [p for p in partners if p.status == status]
        return partners

    def save(self, partner_id=None, actor=None, **values):
        if values.get('partner_type') not in (None, *PARTNER_TYPES):
            raise ValidationError(f'Unknown partner type: {values["partner_type"]}')
        if values.get('status') not in (None, *PARTNER_STATUSES):
            raise ValidationError(f'Unknown partner status: {values["status"]}')

        with self.repo.transaction():
            if partner_id is None:
                partner = Partner(partner_type='external', status='active')
            else:
                partner = self.get(partner_id)
            if not values.get('name', partner.name):
                raise ValidationError('Partner name is required')
            _apply(partner, PARTNER_FIELDS, values)
            self.repo.save_partner(partner)
            self.audit.record(audit.SAVE_PARTNER, f'Partner saved: {partner.name}', actor)
        return partner

    def delete(self, partner_id, actor=None):
        with self.repo.transaction():
            partner = self.get(partner_id)
            self.repo.delete_partner(partner)
            self.audit.record(audit.DELETE_PARTNER, f'Partner deleted: {partner.name}', actor)


class UserRegistry:

    def __init__(self, repo):
        self.repo = repo
        self.audit = AuditLog(repo)

    def get(self, user_id):
        user = self.repo.get_user(user_id)
        if user is None:
            raise NotFound('User', user_id)
        return user

    def list(self):
        return self.repo.list_users()

    def _active_admins(self, exclude_id=None):
        return [u for u in self.repo.list_users()
                if u.role == 'admin' and u.is_active and u.id != exclude_id]

    def save(self, user_id=None, password=None, actor=None, **values):
        """Create or update a user; the password is hashed when given"""
        if values.get('role') not in (None, *USER_ROLES):
            raise ValidationError(f'Unknown role: {values["role"]}')

        with self.repo.transaction():
            if user_id is None:
                if not (values.get('username') and values.get('name') and password):
                    raise ValidationError('Username, name and password are required')
                user = User(role='agent', is_active=True)
            else:
                user = self.get(user_id)

            username = values.get('username', user.username)
            existing = self.repo.get_user_by_username(username)
            if existing is not None and existing.id != user.id:
                raise ValidationError(f'Username {username} is already taken')

            if user_id is not None and user.role == 'admin' and user.is_active:
                stays_admin = (values.get('role', user.role) == 'admin'
                               and values.get('is_active', user.is_active))
                if not stays_admin and not self._active_admins(exclude_id=user.id):
                    raise LastAdminProtected('Cannot demote or deactivate the last active administrator')

            _apply(user, USER_FIELDS, values)
            if password:
                user.set_password(password)
            self.repo.save_user(user)
            self.audit.record(audit.SAVE_USER, f'User saved: {user.username} ({user.role})', actor)
        return user

    def delete(self, user_id, actor=None):
        with self.repo.transaction():
            user = self.get(user_id)
            if not self._active_admins(exclude_id=user.id):
                logger.warning('Delete of user %s refused: last active administrator', user.username)
                raise LastAdminProtected()
            self.repo.delete_user(user)
            self.audit.record(audit.DELETE_USER, f'User deleted: {user.username}', actor)

    def authenticate(self, username, password):
        """Return the active user matching the credentials, or None"""
        user = self.repo.get_user_by_username(username)
        if user is None or not user.is_active or not user.check_password(password):
            logger.info('Failed login for %s', username)
            return None
        with self.repo.transaction():
            user.last_login = datetime.utcnow()
            self.repo.save_user(user)
            self.audit.record(audit.LOGIN, f'User logged in: {user.name}', user.name)
        return user

    def ensure_default_admin(self, username='admin', password='admin'):
        """Seed an administrator when the user collection is empty"""
        if self.repo.list_users():
            return None
        with self.repo.transaction():
            user = User(username=username, name='Administrateur Principal', role='admin', is_active=True)
            user.set_password(password)
            self.repo.save_user(user)
            self.audit.record(audit.SAVE_USER, f'Default administrator created: {username}')
        logger.warning('Default administrator %s created; change its password', username)
        return user


class SettingsService:

    def __init__(self, repo):
        self.repo = repo
        self.audit = AuditLog(repo)

    def get(self):
        return self.repo.get_settings()

    def update(self, actor=None, **values):
        for field in SETTINGS_DECIMALS:
            if field in values:
                if values[field] is None:
                    raise ValidationError(f'{field} is required')
                number = to_finite_decimal(values[field], field)
                if number < 0:
                    raise ValidationError(f'{field} must be zero or more')
                values[field] = number

        with self.repo.transaction():
            settings = self.repo.get_settings()
            _apply(settings, SETTINGS_FIELDS, values)
            self.repo.save_settings(settings)
            self.audit.record(audit.UPDATE_SETTINGS, 'Settings updated', actor)
        return settings
