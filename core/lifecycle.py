"""
Hire lifecycle: creation, open-request claims and status transitions.

Every status write goes through a conditional update on the status the caller
observed (``UPDATE ... WHERE id = X AND status = expected``). Zero affected
rows means another actor moved the hire first and raises ConcurrencyConflict.

Checks run in a fixed order: legality, authorization, then the conditional
update. Notification dispatch happens after the status write and can never
undo it.
"""

import logging
import secrets

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from .exceptions import ConcurrencyConflict, InvalidTransition, Unauthorized
from .models import AuthenticatedClient, GuestClient, Hire
from .notifications import TransitionEvent, dispatch

logger = logging.getLogger(__name__)

Status = Hire.Status

# Legal transitions. Terminal statuses have no outgoing edges.
TRANSITIONS = {
    Status.PENDING.value: frozenset({'accepted', 'rejected', 'cancelled'}),
    Status.ACCEPTED.value: frozenset({'in_progress', 'cancelled'}),
    Status.IN_PROGRESS.value: frozenset({'waiting_client_approval', 'cancelled'}),
    Status.WAITING_CLIENT_APPROVAL.value: frozenset({'completed', 'cancelled'}),
    Status.COMPLETED.value: frozenset(),
    Status.CANCELLED.value: frozenset(),
    Status.REJECTED.value: frozenset(),
}

PROFESSIONAL_ACTIONS = frozenset({'accepted', 'rejected', 'in_progress', 'waiting_client_approval'})

CLIENT_ACTIONS = frozenset({'completed', 'cancelled'})

TIMESTAMP_FIELDS = {
    'accepted': 'accepted_at',
    'rejected': 'rejected_at',
    'in_progress': 'started_at',
    'waiting_client_approval': 'completion_requested_at',
    'completed': 'completed_at',
    'cancelled': 'cancelled_at',
}


def is_legal_transition(current_status, target_status):
    return target_status in TRANSITIONS.get(current_status, frozenset())


def mint_review_token():
    """Generate an unguessable guest capability token."""
    return secrets.token_urlsafe(settings.REVIEW_TOKEN_BYTES)


def review_token_matches(hire, token):
    """Constant-time check that ``token`` was issued for ``hire``."""
    if not token or not hire.review_token:
        return False
    return secrets.compare_digest(str(hire.review_token), str(token))


def _is_authenticated(actor):
    return actor is not None and getattr(actor, 'is_authenticated', False)


def _is_assigned_professional(hire, actor):
    if not _is_authenticated(actor) or hire.professional_id is None:
        return False
    return hire.professional.user_id is not None and hire.professional.user_id == actor.id


def _is_owning_client(hire, actor):
    return _is_authenticated(actor) and hire.client_id is not None and hire.client_id == actor.id


def can_perform(hire, target_status, actor=None, review_token=None):
    """
    Check whether ``actor`` may move ``hire`` to ``target_status``.

    Professionals drive the work (accept, reject, start, request sign-off);
    the owning client confirms or cancels. A guest may only confirm
    completion, holding the unconsumed review token of this hire.
    """
    if target_status in PROFESSIONAL_ACTIONS:
        return _is_assigned_professional(hire, actor)

    if target_status in CLIENT_ACTIONS:
        if hire.client_id is not None:
            return _is_owning_client(hire, actor)
        return (
            target_status == Status.COMPLETED
            and hire.status == Status.WAITING_CLIENT_APPROVAL
            and not hire.reviewed_by_guest
            and review_token_matches(hire, review_token)
        )

    return False


def transition_hire(hire, target_status, actor=None, *, review_token=None, now=None):
    """
    Move a hire to ``target_status``.

    Args:
        hire: Hire instance as observed by the caller
        target_status: Requested status
        actor: Acting user (None for guests)
        review_token: Guest capability token (guest completion only)
        now: Clock override for timestamps

    Returns:
        Hire: The same instance with status and timestamp updated

    Raises:
        InvalidTransition: Target not reachable from the current status
        Unauthorized: Actor may not perform this transition
        ConcurrencyConflict: Status changed since the caller read the hire
    """
    if now is None:
        now = timezone.now()

    current_status = hire.status
    actor_id = actor.id if _is_authenticated(actor) else None

    if target_status not in Status.values or not is_legal_transition(current_status, target_status):
        raise InvalidTransition(current_status, target_status, terminal=hire.is_terminal)

    if not can_perform(hire, target_status, actor, review_token=review_token):
        logger.warning(
            f"Unauthorized hire transition attempt. "
            f"Hire ID: {hire.pk}, {current_status} -> {target_status}, "
            f"Actor: {actor_id if actor_id is not None else 'guest'}"
        )
        raise Unauthorized()

    changes = {
        'status': target_status,
        TIMESTAMP_FIELDS[target_status]: now,
        'updated_at': now,
    }

    with transaction.atomic():
        updated = Hire.objects.filter(pk=hire.pk, status=current_status).update(**changes)

    if updated == 0:
        logger.warning(
            f"Hire transition conflict. Hire ID: {hire.pk}, "
            f"expected status: {current_status}, requested: {target_status}"
        )
        raise ConcurrencyConflict()

    for field, value in changes.items():
        setattr(hire, field, value)

    logger.info(
        f"Hire status updated. Hire ID: {hire.pk}, "
        f"Old Status: {current_status}, New Status: {target_status}, "
        f"Actor: {actor_id if actor_id is not None else 'guest'}"
    )

    dispatch(TransitionEvent(
        hire_id=hire.pk,
        from_status=current_status,
        to_status=target_status,
        actor_id=actor_id,
    ))
    return hire


def create_hire(client_ref, service_category, service_description, *, professional=None,
                service_location='', proposal_message='', now=None):
    """
    Create a pending hire and dispatch its creation side effects.

    ``client_ref`` is an AuthenticatedClient or a GuestClient. Guest hires
    get a freshly minted review token. ``professional`` None publishes an open request.

    Raises:
        ValidationError: Invalid description, location or client bundle
    """
    if now is None:
        now = timezone.now()

    hire = Hire(
        professional=professional,
        service_category=service_category,
        service_description=service_description,
        service_location=service_location,
        proposal_message=proposal_message,
        status=Status.PENDING,
        created_at=now,
    )

    if isinstance(client_ref, AuthenticatedClient):
        hire.client_id = client_ref.client_id
    elif isinstance(client_ref, GuestClient):
        hire.guest_name = client_ref.name
        hire.guest_email = client_ref.email
        hire.guest_phone = client_ref.phone
        hire.review_token = mint_review_token()
    else:
        raise TypeError(f'Unsupported client reference: {client_ref!r}')

    with transaction.atomic():
        hire.save()

    logger.info(
        f"Hire created. Hire ID: {hire.pk}, Category: {hire.service_category}, "
        f"Professional: {hire.professional_id or 'open'}, Guest: {hire.is_guest}"
    )

    dispatch(TransitionEvent(hire_id=hire.pk, from_status=None, to_status=Status.PENDING))
    return hire


def claim_open_request(hire_id, actor):
    """
    Assign an open request to the acting professional.

    The write is conditional on the hire still being unassigned and pending,
    so only one of several concurrent claims succeeds.

    Raises:
        Hire.DoesNotExist: Unknown hire
        Unauthorized: Actor has no professional profile, or published the request
        ConcurrencyConflict: The request was claimed, cancelled or is not open
    """
    profile = getattr(actor, 'professional_profile', None) if _is_authenticated(actor) else None
    if profile is None:
        raise Unauthorized('Only professionals can take open requests.')

    hire = Hire.objects.get(pk=hire_id)

    if hire.client_id is not None and hire.client_id == actor.id:
        logger.warning(f"Self-claim attempt. Hire ID: {hire_id}, Professional: {profile.pk}")
        raise Unauthorized('You cannot take your own request.')

    updated = 0
    if hire.is_open_request:
        with transaction.atomic():
            updated = Hire.objects.filter(
                pk=hire_id,
                professional__isnull=True,
                status=Status.PENDING,
            ).update(professional=profile, updated_at=timezone.now())

    if updated == 0:
        logger.warning(f"Open request claim conflict. Hire ID: {hire_id}, Professional: {profile.pk}")
        raise ConcurrencyConflict('This request is no longer open.')

    hire.refresh_from_db()
    logger.info(f"Open request claimed. Hire ID: {hire_id}, Professional: {profile.pk}")

    dispatch(TransitionEvent(
        hire_id=hire.pk,
        from_status='open',
        to_status=Status.PENDING,
        actor_id=actor.id,
    ))
    return hire


def open_requests(category=None):
    """Unassigned pending hires, newest first."""
    queryset = Hire.objects.filter(professional__isnull=True, status=Status.PENDING)
    if category:
        queryset = queryset.filter(service_category=category)
    return queryset.order_by('-created_at')


def hires_for(user):
    """
    Hires visible to ``user``.

    Clients see only their own hires. Professionals also see the hires
    assigned to their profile.
    """
    visible = Q(client_id=user.id)
    profile = getattr(user, 'professional_profile', None)
    if profile is not None:
        visible |= Q(professional_id=profile.pk)
    return Hire.objects.filter(visible).select_related('professional', 'client').order_by('-created_at')

