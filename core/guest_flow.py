"""
Guest contact flow.

A visitor without an account describes a need, picks a professional from the
ranked list for the category and gets a one-shot contact exchange. When no
professional matches, the request is handed back so it can be published as
an open request once the visitor registers.
"""

import logging
from dataclasses import asdict, dataclass

from django.core.exceptions import ValidationError
from django.utils import timezone

from .exceptions import RegistrationRequired
from .lifecycle import create_hire
from .models import AuthenticatedClient, GuestClient, Professional
from .ranking import guest_matches
from .validators import validate_service_location_part

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingRequest:
    """Request data captured before the visitor has an account."""
    service_category: str
    service_description: str
    service_location: str = ''

    def as_dict(self):
        return asdict(self)


def compose_service_location(city, department, barrio=''):
    """
    Build the "city, department[, barrio]" location string.

    Raises:
        ValidationError: If a part is blank or contains a comma
    """
    validate_service_location_part(city)
    validate_service_location_part(department)
    parts = [city.strip(), department.strip()]
    if barrio and barrio.strip():
        validate_service_location_part(barrio)
        parts.append(barrio.strip())
    return ', '.join(parts)


def matching_professionals(category, now=None):
    """Ranked professionals whose profession is exactly ``category``."""
    candidates = Professional.objects.filter(profession=category).select_related('user').order_by('pk')
    return guest_matches(candidates, category, now=now)


def submit_guest_contact(*, name, email, phone, category, description, department, city,
                         barrio='', timing='', professional_id=None, now=None):
    """
    Create a guest hire targeted at the chosen professional.

    The professional must be part of the ranked list for ``category``.
    Creation mints the review token and sends the contact emails to both
    parties.

    Returns:
        Hire: The new pending guest hire

    Raises:
        RegistrationRequired: No professional matches the category
        ValidationError: Invalid location or professional choice
    """
    if now is None:
        now = timezone.now()

    location = compose_service_location(city, department, barrio)
    matches = matching_professionals(category, now=now)

    if not matches:
        logger.info(f"Guest contact without matches for category '{category}', registration required")
        raise RegistrationRequired(PendingRequest(
            service_category=category,
            service_description=description,
            service_location=location,
        ))

    chosen = next((p for p in matches if p.pk == professional_id), None)
    if chosen is None:
        raise ValidationError({
            'professional_id': 'Select one of the professionals listed for this category.'
        })

    hire = create_hire(
        GuestClient(name=name, email=email, phone=phone),
        category,
        description,
        professional=chosen,
        service_location=location,
        proposal_message=f'Cuándo: {timing}' if timing else '',
        now=now,
    )
    logger.info(f"Guest contact submitted. Hire ID: {hire.pk}, Professional: {chosen.pk}")
    return hire


def publish_pending_request(user, pending, now=None):
    """
    Publish a pending request as an open hire for a newly registered client.

    Args:
        user: The client account
        pending: PendingRequest or a dict with the same keys

    Returns:
        Hire: Unassigned pending hire
    """
    if isinstance(pending, dict):
        pending = PendingRequest(
            service_category=pending.get('service_category', ''),
            service_description=pending.get('service_description', ''),
            service_location=pending.get('service_location', ''),
        )

    hire = create_hire(
        AuthenticatedClient(client_id=user.id),
        pending.service_category,
        pending.service_description,
        professional=None,
        service_location=pending.service_location,
        now=now,
    )
    logger.info(f"Pending request published as open request. Hire ID: {hire.pk}, Client: {user.id}")
    return hire
