"""Tests for loan origination, status transitions and overdue flagging"""
from datetime import datetime
from decimal import Decimal

import pytest

from mfi.models import (
    LOAN_PENDING, LOAN_APPROVED, LOAN_REJECTED, LOAN_ACTIVE, LOAN_OVERDUE, LOAN_COMPLETED,
)
from mfi.services import audit
from mfi.services.errors import (
    InsufficientCapital, InvalidStatusTransition, LoanNotFound, ValidationError,
)
from mfi.services.ledger import CapitalLedger
from mfi.services.loans import LoanManager, can_transition
from mfi.services.payments import PaymentProcessor
from mfi.services.registries import MemberRegistry, PartnerRegistry

from conftest import seed_loan


class TestCreateLoan:

    def test_full_repayment_scenario(self, repo, member):
        """Create 500,000 CDF over 3 months, repay it, then overpay by 100"""
        repo.settings.capital_cdf = Decimal('1000000')
        manager = LoanManager(repo)
        processor = PaymentProcessor(repo)

        loan = manager.create(member.id, Decimal('500000'), 'CDF', 3, status=LOAN_ACTIVE)

        assert loan.total_interest == Decimal('150000')
        assert loan.total_due == Decimal('650000')
        assert loan.remaining_balance == Decimal('650000')
        assert loan.interest_rate == Decimal('10')
        assert CapitalLedger(repo).available('CDF') == Decimal('350000')

        processor.apply(loan.id, Decimal('650000'), agent_name='Agent Kivu')
        assert loan.remaining_balance == 0
        assert loan.status == LOAN_COMPLETED

        processor.apply(loan.id, Decimal('100'), agent_name='Agent Kivu')
        assert loan.remaining_balance == 0
        assert loan.status == LOAN_COMPLETED

    def test_insufficient_capital_scenario(self, repo, member):
        """80,000 already out of a 100,000 pool leaves no room for 30,000"""
        repo.settings.capital_cdf = Decimal('100000')
        seed_loan(repo, member, 80000, remaining_balance=80000)

        with pytest.raises(InsufficientCapital) as excinfo:
            LoanManager(repo).create(member.id, Decimal('30000'), 'CDF', 3)

        assert excinfo.value.currency == 'CDF'
        assert excinfo.value.available == Decimal('20000')
        assert 'CDF' in str(excinfo.value)
        assert len(repo.loans) == 1

    def test_loan_of_exactly_the_available_capital_is_accepted(self, repo, member):
        repo.settings.capital_usd = Decimal('1000')

        loan = LoanManager(repo).create(member.id, Decimal('1000'), 'USD', 1)

        assert loan.status == LOAN_PENDING

    def test_other_currency_pool_does_not_help(self, repo, member):
        repo.settings.capital_usd = Decimal('100')

        with pytest.raises(InsufficientCapital):
            LoanManager(repo).create(member.id, Decimal('500'), 'USD', 3)

    def test_pending_loan_does_not_consume_capital(self, repo, member):
        ledger = CapitalLedger(repo)
        before = ledger.available('CDF')

        LoanManager(repo).create(member.id, Decimal('100000'), 'CDF', 3)

        assert ledger.available('CDF') == before

    def test_active_loan_at_zero_interest_consumes_exactly_its_amount(self, repo, member):
        repo.settings.interest_rate = Decimal('0')
        ledger = CapitalLedger(repo)
        before = ledger.available('CDF')

        LoanManager(repo).create(member.id, Decimal('75000'), 'CDF', 4, status=LOAN_ACTIVE)

        assert before - ledger.available('CDF') == Decimal('75000')

    def test_rate_is_snapshotted_at_creation(self, repo, member):
        manager = LoanManager(repo)
        loan = manager.create(member.id, Decimal('1000'), 'CDF', 2)

        repo.settings.interest_rate = Decimal('25')

        assert loan.interest_rate == Decimal('10')
        assert loan.total_due == Decimal('1200')

    def test_fees_insurance_and_savings_are_recorded(self, repo, member):
        loan = LoanManager(repo).create(member.id, Decimal('10000'), 'CDF', 3)

        assert loan.total_fees == Decimal('200')
        assert loan.total_insurance == Decimal('100')
        assert loan.total_savings == Decimal('500')

    def test_member_name_and_partner_are_stored(self, repo, member):
        partner = PartnerRegistry(repo).save(name='Caritas Goma', partner_type='external')

        loan = LoanManager(repo).create(member.id, Decimal('1000'), 'CDF', 3, partner_id=partner.id)

        assert loan.member_name == 'Amani Kasongo'
        assert loan.partner_id == partner.id

    def test_creation_is_audited_and_committed_once(self, repo, member):
        commits = repo.commits

        LoanManager(repo).create(member.id, Decimal('1000'), 'CDF', 3, actor='Jeanne')

        assert repo.commits == commits + 1
        entry = repo.list_audit()[0]
        assert entry.action == audit.CREATE_LOAN
        assert entry.actor == 'Jeanne'

    @pytest.mark.parametrize('amount, currency, duration', [
        (Decimal('0'), 'CDF', 3),
        (Decimal('-5'), 'CDF', 3),
        ('abc', 'CDF', 3),
        (Decimal('100'), 'EUR', 3),
        (Decimal('100'), 'CDF', 0),
        ('NaN', 'CDF', 3),
        ('sNaN', 'CDF', 3),
        ('Infinity', 'CDF', 3),
        (None, 'CDF', 3),
        (Decimal('100'), 'CDF', 'abc'),
        (Decimal('100'), 'CDF', '2.5'),
        (Decimal('100'), 'CDF', 2.7),
        (Decimal('100'), 'CDF', None),
        (Decimal('100'), 'CDF', 'Infinity'),
    ])
    def test_invalid_input_is_rejected(self, repo, member, amount, currency, duration):
        with pytest.raises(ValidationError):
            LoanManager(repo).create(member.id, amount, currency, duration)
        assert repo.loans == {}

    def test_whole_duration_given_as_text_or_float(self, repo, member):
        manager = LoanManager(repo)

        assert manager.create(member.id, Decimal('100'), 'CDF', '4').duration_months == 4
        assert manager.create(member.id, Decimal('100'), 'CDF', 6.0).duration_months == 6

    def test_unknown_member_or_partner(self, repo, member):
        manager = LoanManager(repo)

        with pytest.raises(ValidationError):
            manager.create(999, Decimal('100'), 'CDF', 3)
        with pytest.raises(ValidationError):
            manager.create(member.id, Decimal('100'), 'CDF', 3, partner_id=42)
        assert repo.loans == {}

    def test_cannot_start_in_a_later_status(self, repo, member):
        with pytest.raises(ValidationError):
            LoanManager(repo).create(member.id, Decimal('100'), 'CDF', 3, status=LOAN_COMPLETED)


class TestStatusTransitions:

    def test_transition_table(self):
        assert can_transition(LOAN_PENDING, LOAN_APPROVED)
        assert can_transition(LOAN_APPROVED, LOAN_ACTIVE)
        assert can_transition(LOAN_OVERDUE, LOAN_ACTIVE)
        assert not can_transition(LOAN_PENDING, LOAN_ACTIVE)
        assert not can_transition(LOAN_REJECTED, LOAN_PENDING)
        assert not can_transition(LOAN_COMPLETED, LOAN_ACTIVE)

    def test_approval_then_disbursement(self, repo, member):
        manager = LoanManager(repo)
        loan = manager.create(member.id, Decimal('1000'), 'CDF', 3)
        loan.start_date = datetime(2020, 1, 1)

        manager.approve(loan.id, actor='Admin')
        assert loan.status == LOAN_APPROVED
        assert CapitalLedger(repo).outstanding('CDF') == 0

        manager.disburse(loan.id, actor='Admin')
        assert loan.status == LOAN_ACTIVE
        assert loan.start_date > datetime(2020, 1, 1)
        assert CapitalLedger(repo).outstanding('CDF') == Decimal('1300')

        actions = [entry.action for entry in repo.list_audit()]
        assert actions[:2] == [audit.UPDATE_LOAN, audit.UPDATE_LOAN]

    def test_reject_pending_loan(self, repo, member):
        manager = LoanManager(repo)
        loan = manager.create(member.id, Decimal('1000'), 'CDF', 3)

        manager.reject(loan.id)

        assert loan.status == LOAN_REJECTED
        with pytest.raises(InvalidStatusTransition):
            manager.approve(loan.id)

    def test_illegal_move_leaves_status_unchanged(self, repo, member):
        manager = LoanManager(repo)
        loan = manager.create(member.id, Decimal('1000'), 'CDF', 3)

        with pytest.raises(InvalidStatusTransition) as excinfo:
            manager.update_status(loan.id, LOAN_COMPLETED)

        assert excinfo.value.current == LOAN_PENDING
        assert loan.status == LOAN_PENDING

    def test_disbursement_rechecks_capital(self, repo, member):
        repo.settings.capital_cdf = Decimal('1000000')
        manager = LoanManager(repo)
        waiting = manager.create(member.id, Decimal('600000'), 'CDF', 3)
        manager.create(member.id, Decimal('500000'), 'CDF', 3, status=LOAN_ACTIVE)
        manager.approve(waiting.id)

        with pytest.raises(InsufficientCapital):
            manager.disburse(waiting.id)
        assert waiting.status == LOAN_APPROVED

    def test_close_requires_zero_balance(self, repo, member):
        loan = seed_loan(repo, member, 1000, remaining_balance=10)

        with pytest.raises(ValidationError):
            LoanManager(repo).update_status(loan.id, LOAN_COMPLETED)
        assert loan.status == LOAN_ACTIVE

    def test_unknown_status_and_loan(self, repo, member):
        manager = LoanManager(repo)
        loan = seed_loan(repo, member, 1000)

        with pytest.raises(ValidationError):
            manager.update_status(loan.id, 'written_off')
        with pytest.raises(LoanNotFound):
            manager.update_status(404, LOAN_OVERDUE)


class TestFlagOverdue:

    def test_active_loan_past_maturity_is_flagged(self, repo, member):
        loan = seed_loan(repo, member, 1000, duration_months=3)
        loan.start_date = datetime(2024, 1, 1)

        flagged = LoanManager(repo).flag_overdue(today=datetime(2024, 4, 2))

        assert flagged == [loan]
        assert loan.status == LOAN_OVERDUE

    def test_grace_period_and_maturity(self, repo, member):
        loan = seed_loan(repo, member, 1000, duration_months=3)
        loan.start_date = datetime(2024, 1, 1)
        manager = LoanManager(repo)

        assert manager.flag_overdue(today=datetime(2024, 3, 31)) == []
        assert manager.flag_overdue(today=datetime(2024, 4, 3), grace_days=5) == []
        assert loan.status == LOAN_ACTIVE

    def test_only_active_loans_with_a_balance(self, repo, member):
        pending = seed_loan(repo, member, 1000, status=LOAN_PENDING)
        settled = seed_loan(repo, member, 1000, remaining_balance=0)
        for loan in (pending, settled):
            loan.start_date = datetime(2023, 1, 1)

        assert LoanManager(repo).flag_overdue(today=datetime(2024, 1, 1)) == []


class TestListing:

    def test_filters(self, repo, member):
        other = MemberRegistry(repo).save(first_name='Baraka', last_name='Mushagalusa')
        seed_loan(repo, member, 1000)
        seed_loan(repo, other, 50, currency='USD', status=LOAN_PENDING)
        manager = LoanManager(repo)

        assert len(manager.list()) == 2
        assert [l.currency for l in manager.list(currency='USD')] == ['USD']
        assert [l.member_name for l in manager.list(search='kaso')] == ['Amani Kasongo']
        assert len(manager.list(status=LOAN_PENDING, member_id=other.id)) == 1

    def test_preview_does_not_save(self, repo):
        quote = LoanManager(repo).preview(Decimal('500000'), 3)

        assert quote.total_due == Decimal('650000')
        assert repo.loans == {}
