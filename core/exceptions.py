"""
Typed errors raised by the hire lifecycle, review gate and discovery.

State-machine errors (InvalidTransition, Unauthorized, ConcurrencyConflict)
always reach the caller. DeliveryFailure never leaves the notification
dispatcher.
"""


class MarketplaceError(Exception):
    """Base class for marketplace business errors."""

    default_message = 'The operation could not be completed.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidTransition(MarketplaceError):
    default_message = 'This status change is not allowed.'

    def __init__(self, current_status=None, target_status=None, message=None, terminal=False):
        self.current_status = current_status
        self.target_status = target_status
        if message is None and current_status is not None:
            if terminal:
                message = f'Cannot modify a {current_status} hire.'
            else:
                message = f'Invalid status transition from {current_status} to {target_status}.'
        super().__init__(message)


class Unauthorized(MarketplaceError):
    default_message = 'You do not have permission to perform this action on this hire.'


class ConcurrencyConflict(MarketplaceError):
    default_message = 'This request was already updated by someone else. Reload it and try again.'


class DuplicateError(MarketplaceError):
    default_message = 'You already reviewed this hire.'


class NotEligibleError(MarketplaceError):
    default_message = 'Only completed hires can be reviewed.'


class DeliveryFailure(MarketplaceError):
    default_message = 'Notification could not be delivered.'


class InvalidFilter(MarketplaceError):
    default_message = 'Invalid directory filter.'


class RegistrationRequired(MarketplaceError):
    """
    Raised by the guest flow when no professional matches the category.

    ``pending_request`` carries the data to publish as an open request once
    the visitor has an account.
    """

    default_message = 'No professionals are available for this category. Create an account to publish your request.'

    def __init__(self, pending_request, message=None):
        self.pending_request = pending_request
        super().__init__(message)
