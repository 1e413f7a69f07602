"""Helper functions"""
from decimal import Decimal
from flask import g
from flask_login import current_user
from mfi.services.audit import SYSTEM_ACTOR
from mfi.services.repository import SQLAlchemyRepository

CURRENCY_SYMBOLS = {
    'CDF': 'CDF',
    'USD': '$',
}

def get_repository():
    """Repository bound to the current request"""
    if 'repository' not in g:
        g.repository = SQLAlchemyRepository()
    return g.repository

def current_actor():
    """Display name recorded in the audit log for the logged-in user"""
    if current_user.is_authenticated:
        return current_user.name
    return SYSTEM_ACTOR

def format_money(amount, currency=None):
    """Format amount with thousands separators and its currency"""
    if amount is None:
        amount = Decimal('0')
    text = f"{Decimal(str(amount)):,.2f}"
    if currency:
        return f"{text} {CURRENCY_SYMBOLS.get(currency, currency)}"
    return text
