"""Repayments against loan balances"""
import logging
from datetime import datetime
from decimal import Decimal

from mfi.models import (
    Payment, PAYMENT_METHODS, OUTSTANDING_STATUSES, LOAN_COMPLETED, LOAN_OVERDUE, LOAN_ACTIVE,
)
from mfi.services import audit
from mfi.services.audit import AuditLog
from mfi.services.calculator import to_decimal, to_finite_decimal
from mfi.services.errors import LoanNotFound, NotFound, ValidationError

logger = logging.getLogger(__name__)

ZERO = Decimal('0')

# Disbursed loans; a completed loan still takes payments and stays at zero
PAYABLE_STATUSES = OUTSTANDING_STATUSES + (LOAN_COMPLETED,)


class PaymentProcessor:
    """Applies payments to loans.

    The balance never goes below zero: an overpayment clamps it to zero and
    completes the loan, and further payments on a completed loan leave it at
    zero. Any positive payment on an overdue loan brings it back to active.
    Loans that were never disbursed (pending, approved, rejected) take no
    payments.
    """

    def __init__(self, repo):
        self.repo = repo
        self.audit = AuditLog(repo)

    def apply(self, loan_id, amount, agent_name, method='cash', currency=None,
              payment_date=None, actor=None):
        amount = to_finite_decimal(amount, 'Payment amount')
        if amount <= ZERO:
            raise ValidationError('Payment amount must be greater than zero')
        if method not in PAYMENT_METHODS:
            raise ValidationError(f'Unknown payment method: {method}')
        if not agent_name:
            raise ValidationError('The collecting agent is required')

        with self.repo.transaction():
            loan = self.repo.get_loan(loan_id)
            if loan is None:
                raise LoanNotFound(loan_id)
            if loan.status not in PAYABLE_STATUSES:
                raise ValidationError(f'Loan {loan.id} is {loan.status} and cannot take payments')

            currency = currency or loan.currency
            if currency != loan.currency:
                raise ValidationError(
                    f'Payment currency {currency} does not match loan currency {loan.currency}'
                )

            previous_status = loan.status
            balance = to_decimal(loan.remaining_balance) - amount
            if balance <= ZERO:
                balance = ZERO
                loan.status = LOAN_COMPLETED
            elif previous_status == LOAN_OVERDUE:
                loan.status = LOAN_ACTIVE
            loan.remaining_balance = balance
            self.repo.save_loan(loan)

            payment = Payment(
                loan_id=loan.id,
                amount=amount,
                currency=currency,
                payment_date=payment_date or datetime.utcnow(),
                agent_name=agent_name,
                method=method,
                balance_after=balance,
            )
            self.repo.save_payment(payment)
            self.audit.record(audit.PAYMENT,
                              f'Payment of {amount} {currency} received for loan {loan.id}',
                              actor or agent_name)

        logger.info('Payment %s on loan %s: %s %s, balance %s (%s -> %s)',
                    payment.id, loan.id, amount, currency, balance, previous_status, loan.status)
        return payment

    def get(self, payment_id):
        payment = self.repo.get_payment(payment_id)
        if payment is None:
            raise NotFound('Payment', payment_id)
        return payment

    def list(self, loan_id=None):
        return self.repo.list_payments(loan_id=loan_id)
