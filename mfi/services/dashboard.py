"""Portfolio metrics for the dashboard"""
from datetime import datetime, timedelta
from decimal import Decimal

from mfi.models import (
    CURRENCIES, LOAN_PENDING, LOAN_ACTIVE, LOAN_OVERDUE, LOAN_COMPLETED, OUTSTANDING_STATUSES,
)
from mfi.services.calculator import to_decimal
from mfi.services.ledger import capital_ceiling, outstanding

NEW_MEMBER_WINDOW = timedelta(days=30)

# Loans whose money has left the till
DISBURSED_STATUSES = (LOAN_ACTIVE, LOAN_OVERDUE, LOAN_COMPLETED)


def _percent(part, whole):
    if not whole:
        return Decimal('0')
    return (to_decimal(part) / to_decimal(whole) * 100).quantize(Decimal('0.1'))


def portfolio_summary(repo, now=None):
    """Capital position per currency plus loan and member counts"""
    now = now or datetime.utcnow()
    settings = repo.get_settings()
    loans = repo.list_loans()
    members = repo.list_members()

    capital = {}
    for currency in CURRENCIES:
        ceiling = capital_ceiling(settings, currency)
        used = outstanding(currency, loans)
        capital[currency] = {
            'ceiling': ceiling,
            'outstanding': used,
            'available': ceiling - used,
            'utilisation': _percent(used, ceiling),
        }

    open_loans = [l for l in loans if l.status in OUTSTANDING_STATUSES]
    disbursed = [l for l in loans if l.status in DISBURSED_STATUSES]
    total_due = sum((to_decimal(l.total_due) for l in disbursed), Decimal('0'))
    total_paid = sum((to_decimal(l.total_due) - to_decimal(l.remaining_balance) for l in disbursed),
                     Decimal('0'))

    return {
        'capital': capital,
        'active_loans': len([l for l in loans if l.status == LOAN_ACTIVE]),
        'overdue_loans': len([l for l in loans if l.status == LOAN_OVERDUE]),
        'pending_loans': len([l for l in loans if l.status == LOAN_PENDING]),
        'members_total': len(members),
        'members_with_loan': len({l.member_id for l in open_loans if l.member_id is not None}),
        'members_new': len([m for m in members
                            if m.registration_date and m.registration_date > now - NEW_MEMBER_WINDOW]),
        'repayment_rate': _percent(total_paid, total_due),
    }
