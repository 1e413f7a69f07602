"""Tests for applying repayments to loans"""
from datetime import datetime
from decimal import Decimal

import pytest

from mfi.models import (
    LOAN_PENDING, LOAN_APPROVED, LOAN_REJECTED, LOAN_ACTIVE, LOAN_OVERDUE, LOAN_COMPLETED,
)
from mfi.services import audit
from mfi.services.errors import LoanNotFound, NotFound, ValidationError
from mfi.services.payments import PaymentProcessor

from conftest import seed_loan


class TestApplyPayment:

    def test_partial_payment_reduces_balance(self, repo, member):
        loan = seed_loan(repo, member, 1000)

        payment = PaymentProcessor(repo).apply(loan.id, Decimal('300'), agent_name='Agent Kivu',
                                               method='mobile_money')

        assert loan.remaining_balance == Decimal('1000')
        assert loan.status == LOAN_ACTIVE
        assert payment.balance_after == Decimal('1000')
        assert payment.currency == 'CDF'
        assert payment.method == 'mobile_money'

    def test_overpayment_clamps_to_zero(self, repo, member):
        loan = seed_loan(repo, member, 1000, remaining_balance=200)

        payment = PaymentProcessor(repo).apply(loan.id, 500, agent_name='Agent Kivu')

        assert loan.remaining_balance == 0
        assert loan.status == LOAN_COMPLETED
        assert payment.amount == Decimal('500')

    def test_payment_on_overdue_loan_reactivates_it(self, repo, member):
        loan = seed_loan(repo, member, 1000, status=LOAN_OVERDUE, remaining_balance=1300)

        PaymentProcessor(repo).apply(loan.id, Decimal('1'), agent_name='Agent Kivu')

        assert loan.status == LOAN_ACTIVE
        assert loan.remaining_balance == Decimal('1299')

    def test_overdue_loan_paid_in_full_completes(self, repo, member):
        loan = seed_loan(repo, member, 1000, status=LOAN_OVERDUE, remaining_balance=50)

        PaymentProcessor(repo).apply(loan.id, Decimal('50'), agent_name='Agent Kivu')

        assert loan.status == LOAN_COMPLETED

    def test_payment_is_recorded_and_audited(self, repo, member):
        loan = seed_loan(repo, member, 1000)
        paid_on = datetime(2024, 5, 2, 10, 30)
        processor = PaymentProcessor(repo)

        payment = processor.apply(loan.id, Decimal('100'), agent_name='Agent Kivu', payment_date=paid_on)

        assert processor.list(loan_id=loan.id) == [payment]
        assert processor.get(payment.id).payment_date == paid_on
        entry = repo.list_audit()[0]
        assert entry.action == audit.PAYMENT
        assert entry.actor == 'Agent Kivu'

    @pytest.mark.parametrize('amount', [
        Decimal('0'), Decimal('-10'), 'ten', 'NaN', 'sNaN', 'Infinity', Decimal('-Infinity'),
    ])
    def test_invalid_amount_is_rejected(self, repo, member, amount):
        loan = seed_loan(repo, member, 1000)

        with pytest.raises(ValidationError):
            PaymentProcessor(repo).apply(loan.id, amount, agent_name='Agent Kivu')
        assert loan.remaining_balance == Decimal('1300')
        assert repo.payments == {}

    @pytest.mark.parametrize('status', [LOAN_PENDING, LOAN_APPROVED, LOAN_REJECTED])
    def test_undisbursed_loan_takes_no_payment(self, repo, member, status):
        loan = seed_loan(repo, member, 1000, status=status)

        with pytest.raises(ValidationError):
            PaymentProcessor(repo).apply(loan.id, Decimal('1300'), agent_name='Agent Kivu')
        assert loan.status == status
        assert loan.remaining_balance == Decimal('1300')
        assert repo.payments == {}

    def test_completed_loan_still_takes_payment_at_zero(self, repo, member):
        loan = seed_loan(repo, member, 1000, status=LOAN_COMPLETED, remaining_balance=0)

        payment = PaymentProcessor(repo).apply(loan.id, Decimal('100'), agent_name='Agent Kivu')

        assert payment.balance_after == 0
        assert loan.status == LOAN_COMPLETED

    def test_currency_must_match_loan(self, repo, member):
        loan = seed_loan(repo, member, 1000)

        with pytest.raises(ValidationError):
            PaymentProcessor(repo).apply(loan.id, Decimal('10'), agent_name='Agent Kivu', currency='USD')
        assert loan.remaining_balance == Decimal('1300')

    def test_unknown_method_or_missing_agent(self, repo, member):
        loan = seed_loan(repo, member, 1000)
        processor = PaymentProcessor(repo)

        with pytest.raises(ValidationError):
            processor.apply(loan.id, Decimal('10'), agent_name='Agent Kivu', method='cheque')
        with pytest.raises(ValidationError):
            processor.apply(loan.id, Decimal('10'), agent_name='')

    def test_unknown_loan(self, repo):
        with pytest.raises(LoanNotFound):
            PaymentProcessor(repo).apply(77, Decimal('10'), agent_name='Agent Kivu')

    def test_unknown_payment(self, repo):
        with pytest.raises(NotFound):
            PaymentProcessor(repo).get(1)
