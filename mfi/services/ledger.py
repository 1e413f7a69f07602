"""Capital ledger.

Available capital is never stored. It is recomputed from the loan
collection on every call: the configured ceiling for a currency minus the
remaining balances of the loans that are still out (active or overdue).
"""
from decimal import Decimal

from mfi.models import CURRENCIES, OUTSTANDING_STATUSES
from mfi.services.calculator import to_decimal
from mfi.services.errors import ValidationError


def check_currency(currency):
    if currency not in CURRENCIES:
        raise ValidationError(f'Unsupported currency: {currency}')
    return currency


def capital_ceiling(settings, currency):
    check_currency(currency)
    return to_decimal(settings.capital_for(currency))


def outstanding(currency, loans):
    """Sum of remaining balances of active/overdue loans in ``currency``"""
    return sum(
        (to_decimal(loan.remaining_balance) for loan in loans
         if loan.currency == currency and loan.status in OUTSTANDING_STATUSES),
        Decimal('0'),
    )


def available_capital(currency, settings, loans):
    return capital_ceiling(settings, currency) - outstanding(currency, loans)


class CapitalLedger:
    """Capital figures read from a repository"""

    def __init__(self, repo):
        self.repo = repo

    def ceiling(self, currency):
        return capital_ceiling(self.repo.get_settings(), currency)

    def outstanding(self, currency):
        return outstanding(check_currency(currency), self.repo.list_loans())

    def available(self, currency):
        return available_capital(currency, self.repo.get_settings(), self.repo.list_loans())
