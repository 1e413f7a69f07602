"""Flat-interest loan calculator.

Interest is charged once on the original principal for the whole
duration: ``interest = principal * rate / 100 * months``. The rate is a
per-month multiplier, not an annual rate. Fees, insurance and savings are
one-off percentages of the principal and are not part of the amount due.

Results are exact ``Decimal`` values; nothing is rounded here.
"""
from collections import namedtuple
from decimal import Decimal, InvalidOperation

from mfi.services.errors import ValidationError

HUNDRED = Decimal('100')

LoanQuote = namedtuple('LoanQuote', [
    'principal', 'interest', 'fees', 'insurance', 'savings',
    'total_due', 'remaining_balance',
])


def to_decimal(value):
    """Convert int, float, str or Decimal to Decimal without float noise"""
    if value is None:
        return Decimal('0')
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_finite_decimal(value, field):
    """Parse user input as a finite Decimal; NaN and Infinity are refused"""
    try:
        number = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f'{field} must be a number')
    if not number.is_finite():
        raise ValidationError(f'{field} must be a finite number')
    return number


def percent_of(amount, percent):
    return to_decimal(amount) * to_decimal(percent) / HUNDRED


def calculate_loan(principal, rate, duration_months, fee_percent=0,
                   insurance_percent=0, savings_percent=0):
    """Compute interest, one-off charges and the total due for a loan"""
    principal = to_decimal(principal)
    interest = principal * to_decimal(rate) / HUNDRED * to_decimal(duration_months)
    total_due = principal + interest

    return LoanQuote(
        principal=principal,
        interest=interest,
        fees=percent_of(principal, fee_percent),
        insurance=percent_of(principal, insurance_percent),
        savings=percent_of(principal, savings_percent),
        total_due=total_due,
        remaining_balance=total_due,
    )


def quote_from_settings(principal, duration_months, settings):
    """Quote a loan with the current rates held in ``settings``"""
    return calculate_loan(
        principal,
        settings.interest_rate,
        duration_months,
        fee_percent=settings.application_fee_percent,
        insurance_percent=settings.insurance_fee_percent,
        savings_percent=settings.savings_percent,
    )
