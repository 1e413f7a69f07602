"""Loan lifecycle: origination, status transitions and overdue flagging"""
import logging
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation

from mfi.models import (
    Loan, LOAN_STATUSES, LOAN_PENDING, LOAN_APPROVED, LOAN_REJECTED,
    LOAN_ACTIVE, LOAN_OVERDUE, LOAN_COMPLETED,
)
from mfi.services import audit
from mfi.services.audit import AuditLog
from mfi.services.calculator import quote_from_settings, to_decimal, to_finite_decimal
from mfi.services.errors import (
    InsufficientCapital, InvalidStatusTransition, LoanNotFound, ValidationError,
)
from mfi.services.ledger import CapitalLedger, check_currency

logger = logging.getLogger(__name__)

# Legal moves. Payments drive active/overdue -> completed on their own.
TRANSITIONS = {
    LOAN_PENDING: {LOAN_APPROVED, LOAN_REJECTED},
    LOAN_APPROVED: {LOAN_ACTIVE, LOAN_REJECTED},
    LOAN_ACTIVE: {LOAN_OVERDUE, LOAN_COMPLETED},
    LOAN_OVERDUE: {LOAN_ACTIVE, LOAN_COMPLETED},
    LOAN_REJECTED: set(),
    LOAN_COMPLETED: set(),
}

# A loan may be booked already disbursed, like a cash loan handed out at the desk
INITIAL_STATUSES = (LOAN_PENDING, LOAN_ACTIVE)


def can_transition(current, target):
    return target in TRANSITIONS.get(current, set())


def _positive_decimal(value, field):
    if value is None:
        raise ValidationError(f'{field} is required')
    number = to_finite_decimal(value, field)
    if number <= 0:
        raise ValidationError(f'{field} must be greater than zero')
    return number


def _whole_months(value):
    """Duration as an int; 2.7 months is refused rather than cut to 2"""
    try:
        months = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError('Duration must be a whole number of months')
    if not months.is_finite() or months != months.to_integral_value():
        raise ValidationError('Duration must be a whole number of months')
    if value is None or months < 1:
        raise ValidationError('Duration must be at least one month')
    return int(months)


class LoanManager:
    """Owns loan records and guards the capital and status rules"""

    def __init__(self, repo):
        self.repo = repo
        self.ledger = CapitalLedger(repo)
        self.audit = AuditLog(repo)

    def preview(self, amount, duration_months):
        """Quote a loan with the current settings without saving anything"""
        return quote_from_settings(amount, duration_months, self.repo.get_settings())

    def get(self, loan_id):
        loan = self.repo.get_loan(loan_id)
        if loan is None:
            raise LoanNotFound(loan_id)
        return loan

    def list(self, status=None, currency=None, member_id=None, search=None):
        loans = self.repo.list_loans()
        if status:
            loans = [l for l in loans if l.status == status]
        if currency:
            loans = [l for l in loans if l.currency == currency]
        if member_id is not None:
            loans = [l for l in loans if l.member_id == member_id]
        if search:
            needle = search.lower()
            loans = [l for l in loans if needle in (l.member_name or '').lower()]
        return loans

    def create(self, member_id, amount, currency, duration_months, partner_id=None,
               status=LOAN_PENDING, actor=None):
        """Book a new loan after checking the currency pool can cover it"""
        if member_id is None:
            raise ValidationError('A member is required')
        amount = _positive_decimal(amount, 'Loan amount')
        check_currency(currency)
        duration_months = _whole_months(duration_months)
        if status not in INITIAL_STATUSES:
            raise ValidationError(f'A new loan cannot start as {status}')

        with self.repo.transaction():
            member = self.repo.get_member(member_id)
            if member is None:
                raise ValidationError(f'Member {member_id} does not exist')
            if partner_id is not None and self.repo.get_partner(partner_id) is None:
                raise ValidationError(f'Partner {partner_id} does not exist')

            available = self.ledger.available(currency)
            if available < amount:
                logger.warning('Loan for member %s refused: %s %s requested, %s available',
                               member_id, amount, currency, available)
                raise InsufficientCapital(currency, available, amount)

            settings = self.repo.get_settings()
            quote = quote_from_settings(amount, duration_months, settings)
            loan = Loan(
                member_id=member.id,
                member_name=member.full_name,
                partner_id=partner_id,
                amount=amount,
                currency=currency,
                duration_months=duration_months,
                interest_rate=to_decimal(settings.interest_rate),
                start_date=datetime.utcnow(),
                status=status,
                total_interest=quote.interest,
                total_fees=quote.fees,
                total_insurance=quote.insurance,
                total_savings=quote.savings,
                total_due=quote.total_due,
                remaining_balance=quote.remaining_balance,
            )
            self.repo.save_loan(loan)
            self.audit.record(audit.CREATE_LOAN,
                              f'Loan created for {member.full_name} ({amount} {currency})',
                              actor)

        logger.info('Loan %s created: %s %s over %s months, total due %s',
                    loan.id, amount, currency, duration_months, loan.total_due)
        return loan

    def update_status(self, loan_id, new_status, actor=None):
        """Move a loan along the transition table"""
        if new_status not in LOAN_STATUSES:
            raise ValidationError(f'Unknown loan status: {new_status}')

        with self.repo.transaction():
            loan = self.get(loan_id)
            self._move(loan, new_status, actor)
        return loan

    def approve(self, loan_id, actor=None):
        return self.update_status(loan_id, LOAN_APPROVED, actor)

    def reject(self, loan_id, actor=None):
        return self.update_status(loan_id, LOAN_REJECTED, actor)

    def disburse(self, loan_id, actor=None):
        return self.update_status(loan_id, LOAN_ACTIVE, actor)

    def flag_overdue(self, today=None, grace_days=0, actor=None):
        """Mark active loans past maturity (plus grace) with money still owed"""
        today = today or datetime.utcnow()
        flagged = []
        with self.repo.transaction():
            for loan in self.repo.list_loans():
                if loan.status != LOAN_ACTIVE or to_decimal(loan.remaining_balance) <= 0:
                    continue
                maturity = loan.maturity_date
                if maturity is not None and maturity + timedelta(days=grace_days) < today:
                    self._move(loan, LOAN_OVERDUE, actor)
                    flagged.append(loan)
        if flagged:
            logger.info('%d loan(s) flagged overdue', len(flagged))
        return flagged

    def _move(self, loan, new_status, actor):
        current = loan.status
        if not can_transition(current, new_status):
            raise InvalidStatusTransition(current, new_status)

        if new_status == LOAN_COMPLETED and to_decimal(loan.remaining_balance) > Decimal('0'):
            raise ValidationError('Loan still has an outstanding balance')

        if current == LOAN_APPROVED and new_status == LOAN_ACTIVE:
            amount = to_decimal(loan.amount)
            available = self.ledger.available(loan.currency)
            if available < amount:
                raise InsufficientCapital(loan.currency, available, amount)
            # The repayment term runs from disbursement
            loan.start_date = datetime.utcnow()

        loan.status = new_status
        self.repo.save_loan(loan)
        self.audit.record(audit.UPDATE_LOAN, f'Loan {loan.id} status changed to {new_status}', actor)
        logger.info('Loan %s: %s -> %s', loan.id, current, new_status)
