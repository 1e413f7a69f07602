"""Errors raised by the back-office services.

Routes catch :class:`MFIError` and flash ``str(error)`` to the user.
"""


class MFIError(Exception):
    """Base class for every business-rule failure"""


class ValidationError(MFIError):
    """A required field is missing or a value is out of range"""


class NotFound(MFIError):
    """Referenced record does not exist"""

    def __init__(self, entity, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f'{entity} {entity_id} not found')


class LoanNotFound(NotFound):

    def __init__(self, loan_id):
        super().__init__('Loan', loan_id)


class InsufficientCapital(MFIError):
    """Not enough capital left in the currency pool for a new loan"""

    def __init__(self, currency, available, requested):
        self.currency = currency
        self.available = available
        self.requested = requested
        super().__init__(
            f'Insufficient {currency} capital for this loan: '
            f'{available} {currency} available, {requested} {currency} requested'
        )


class DeleteBlocked(MFIError):
    """Deletion would break a cross-entity rule"""


class LastAdminProtected(DeleteBlocked):
    """Change would leave no active administrator"""

    def __init__(self, message='Cannot remove the last active administrator'):
        super().__init__(message)


class InvalidStatusTransition(MFIError):

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f'Cannot move loan from {current} to {target}')
