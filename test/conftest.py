"""Shared fixtures: a Flask app on in-memory SQLite and an in-memory repository"""
from decimal import Decimal

import pytest

from mfi import create_app, db
from mfi.models import Loan, Settings, LOAN_ACTIVE
from mfi.services.calculator import calculate_loan
from mfi.services.registries import MemberRegistry, UserRegistry
from mfi.services.repository import InMemoryRepository, SQLAlchemyRepository


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        UserRegistry(SQLAlchemyRepository()).ensure_default_admin('admin', 'admin')
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, username, password):
    return client.post('/auth/login', data={'username': username, 'password': password},
                       follow_redirects=True)


@pytest.fixture
def admin_client(client):
    login(client, 'admin', 'admin')
    return client


@pytest.fixture
def repo():
    return InMemoryRepository(Settings.with_defaults(id=1))


@pytest.fixture
def member(repo):
    return MemberRegistry(repo).save(first_name='Amani', last_name='Kasongo',
                                     gender='F', phone='0990000001', group_name='Mama Tumaini')


def seed_loan(repo, member, amount, currency='CDF', status=LOAN_ACTIVE,
              remaining_balance=None, duration_months=3, rate=Decimal('10')):
    """Store a loan directly, bypassing the capital check"""
    quote = calculate_loan(amount, rate, duration_months)
    loan = Loan(
        member_id=member.id,
        member_name=member.full_name,
        amount=quote.principal,
        currency=currency,
        duration_months=duration_months,
        interest_rate=rate,
        status=status,
        total_interest=quote.interest,
        total_fees=Decimal('0'),
        total_insurance=Decimal('0'),
        total_savings=Decimal('0'),
        total_due=quote.total_due,
        remaining_balance=quote.remaining_balance if remaining_balance is None else Decimal(str(remaining_balance)),
    )
    return repo.save_loan(loan)
