"""
Custom validators for marketplace models.
"""

import re

from django.core.exceptions import ValidationError


def validate_phone_number(value):
    """
    Validate phone number format.

    Accepts international formats with optional country codes, spaces, dashes,
    and parentheses. Requires at least 8 digits (local Uruguayan landlines).

    Valid formats:
    - +598 99 123 456
    - 099 123 456
    - 2901 2345
    - +1 (234) 567-8900

    Args:
        value: Phone number string to validate

    Raises:
        ValidationError: If phone number format is invalid
    """
    if not value:  # Empty string is allowed (optional field)
        return

    if not re.match(r'^[\d\s\-\+\(\)]+$', value):
        raise ValidationError(
            'Phone number can only contain digits, spaces, dashes, parentheses, and plus sign.',
            code='invalid_phone_chars'
        )

    digits = re.sub(r'\D', '', value)

    if len(digits) < 8:
        raise ValidationError(
            'Phone number must contain at least 8 digits.',
            code='phone_too_short'
        )

    # Must not be all the same digit (like 00000000)
    if len(set(digits)) == 1:
        raise ValidationError(
            'Phone number cannot be all the same digit.',
            code='invalid_phone_pattern'
        )


def validate_service_location_part(value):
    """
    Reject location parts containing the separator used in service_location.

    Args:
        value: City, department or barrio name

    Raises:
        ValidationError: If the value is blank or contains a comma
    """
    if not value or not value.strip():
        raise ValidationError('Location cannot be empty.', code='location_empty')
    if ',' in value:
        raise ValidationError('Location names cannot contain commas.', code='location_separator')
