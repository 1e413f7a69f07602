"""Append-only audit trail"""
from datetime import datetime

from mfi.models import AuditLog as AuditEntry

SYSTEM_ACTOR = 'System'

# Action tags
LOGIN = 'LOGIN'
CREATE_LOAN = 'CREATE_LOAN'
UPDATE_LOAN = 'UPDATE_LOAN'
PAYMENT = 'PAYMENT'
SAVE_MEMBER = 'SAVE_MEMBER'
DELETE_MEMBER = 'DELETE_MEMBER'
SAVE_PARTNER = 'SAVE_PARTNER'
DELETE_PARTNER = 'DELETE_PARTNER'
SAVE_USER = 'SAVE_USER'
DELETE_USER = 'DELETE_USER'
UPDATE_SETTINGS = 'UPDATE_SETTINGS'


class AuditLog:
    """Records mutating actions; entries are never updated or removed"""

    def __init__(self, repo):
        self.repo = repo

    def record(self, action, details, actor=None):
        entry = AuditEntry(
            action=action,
            details=details,
            timestamp=datetime.utcnow(),
            actor=actor or SYSTEM_ACTOR,
        )
        return self.repo.add_audit(entry)

    def list(self, limit=None):
        """Entries, newest first"""
        return self.repo.list_audit(limit=limit)
