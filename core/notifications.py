"""
Notification dispatcher.

Turns lifecycle events into in-app Notification rows and transactional
emails. Dispatch is best-effort: every failure is logged here and never
reaches the code that changed the hire.

Each event is recorded once in the NotificationDispatch ledger under a key
derived from the event (``hire:<id>:<from>-><to>``, ``review:<id>``,
``message:<id>``). The ledger row and the notifications it produces are
written in one transaction, so a retry after a failure delivers again and a
replay after success is a no-op.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils.module_loading import import_string

from .models import Conversation, Hire, Notification, NotificationDispatch

logger = logging.getLogger(__name__)

NotificationType = Notification.Type


@dataclass(frozen=True)
class TransitionEvent:
    """
    A hire status change.

    ``from_status`` is None for creation and ``'open'`` for the claim of an
    open request.
    """
    hire_id: int
    from_status: Optional[str]
    to_status: str
    actor_id: Optional[int] = None

    @property
    def key(self):
        return f"hire:{self.hire_id}:{self.from_status or 'new'}->{self.to_status}"


@dataclass
class DispatchPlan:
    notifications: list = field(default_factory=list)
    emails: list = field(default_factory=list)

    def __bool__(self):
        return bool(self.notifications or self.emails)

    def notify(self, recipient_id, notification_type, title, message, *, sender=None, related_id='', related_type='hire'):
        if recipient_id is None:
            return
        self.notifications.append({
            'recipient_id': recipient_id,
            'type': notification_type,
            'title': title,
            'message': message,
            'sender': sender,
            'sender_name': sender.get_display_name() if sender is not None else '',
            'related_id': str(related_id),
            'related_type': related_type,
        })

    def email(self, email_type, **ids):
        self.emails.append((email_type, ids))


def get_email_transport():
    return import_string(settings.HIRE_EMAIL_TRANSPORT)


def _deliver_email(email_type, ids):
    try:
        get_email_transport()(email_type, **ids)
        logger.info(f"Email sent: {email_type} {ids}")
    except Exception as e:
        logger.error(f"Email delivery failed: {email_type} {ids}: {e}", exc_info=True)


def _schedule_email(email_type, ids):
    # Send only once the surrounding transaction has committed
    transaction.on_commit(lambda: _deliver_email(email_type, ids))


def _professional_user(hire):
    if hire.professional_id is None:
        return None
    return hire.professional.user


def _plan_for_transition(event, hire):
    plan = DispatchPlan()
    professional_user = _professional_user(hire)
    professional_user_id = professional_user.id if professional_user is not None else None
    category = hire.service_category

    if event.from_status is None:
        if hire.is_guest:
            plan.email('guest_contact', hire_id=hire.pk)
        elif hire.professional_id is not None:
            plan.notify(
                professional_user_id,
                NotificationType.SOLICITUD_ENVIADA,
                'Nueva solicitud de trabajo',
                f'{hire.client.get_display_name()} te envió una solicitud de {category}.',
                sender=hire.client,
                related_id=hire.pk,
            )
            plan.email('new_proposal', hire_id=hire.pk)
            plan.email('proposal_confirmation', hire_id=hire.pk)
        return plan

    if event.from_status == 'open':
        plan.notify(
            hire.client_id,
            NotificationType.CONTACTO_COMPARTIDO,
            'Un profesional tomó tu solicitud',
            f'{hire.professional.display_name} quiere ayudarte con {category}.',
            sender=professional_user,
            related_id=hire.pk,
        )
        return plan

    if event.to_status == Hire.Status.ACCEPTED:
        plan.notify(
            hire.client_id,
            NotificationType.SOLICITUD_ACEPTADA,
            'Solicitud aceptada',
            f'{hire.professional.display_name} aceptó tu solicitud de {category}.',
            sender=professional_user,
            related_id=hire.pk,
        )
        if not hire.is_guest:
            plan.email('proposal_accepted', hire_id=hire.pk)

    elif event.to_status == Hire.Status.REJECTED:
        plan.notify(
            hire.client_id,
            NotificationType.SOLICITUD_RECHAZADA,
            'Solicitud rechazada',
            f'{hire.professional.display_name} no puede tomar tu solicitud de {category}.',
            sender=professional_user,
            related_id=hire.pk,
        )

    elif event.to_status == Hire.Status.WAITING_CLIENT_APPROVAL:
        if hire.is_guest:
            plan.email('completion_requested_guest', hire_id=hire.pk)
        else:
            plan.notify(
                hire.client_id,
                NotificationType.TRABAJO_COMPLETADO,
                'Trabajo finalizado',
                f'{hire.professional.display_name} marcó el trabajo como finalizado. Confirmalo para cerrarlo.',
                sender=professional_user,
                related_id=hire.pk,
            )
            plan.email('completion_requested', hire_id=hire.pk)

    elif event.to_status == Hire.Status.COMPLETED:
        client_name = hire.client.get_display_name() if hire.client_id else hire.guest_name
        plan.notify(
            professional_user_id,
            NotificationType.APROBACION_COMPLETADO,
            'Trabajo aprobado',
            f'{client_name} confirmó que el trabajo de {category} está completo.',
            sender=hire.client,
            related_id=hire.pk,
        )
        plan.email('work_completed', hire_id=hire.pk)

    return plan


def _dispatch_once(key, plan):
    """
    Record ``key`` in the ledger and create the planned notifications.

    Returns False when the key was already dispatched.
    """
    try:
        with transaction.atomic():
            NotificationDispatch.objects.create(
                key=key,
                notification_type=','.join(n['type'] for n in plan.notifications),
                email_types=','.join(email_type for email_type, _ in plan.emails),
            )
            for payload in plan.notifications:
                Notification.objects.create(**payload)
    except IntegrityError:
        if NotificationDispatch.objects.filter(key=key).exists():
            logger.info(f"Event {key} already dispatched, skipping")
            return False
        raise

    for email_type, ids in plan.emails:
        _schedule_email(email_type, ids)
    return True


def dispatch(event):
    """
    Deliver the side effects of a hire transition.

    Never raises: failures are logged and the transition stands.
    """
    try:
        hire = Hire.objects.select_related('client', 'professional', 'professional__user').get(pk=event.hire_id)
        plan = _plan_for_transition(event, hire)
        if not plan:
            return False
        return _dispatch_once(event.key, plan)
    except Exception as e:
        logger.error(f"Notification dispatch failed for {event.key}: {e}", exc_info=True)
        return False


def dispatch_review_created(review):
    """Notify the professional about a new review. Never raises."""
    key = f"review:{review.pk}"
    try:
        professional_user = review.professional.user
        reviewer_name = review.client.get_display_name() if review.client_id else review.guest_reviewer_name
        plan = DispatchPlan()
        plan.notify(
            professional_user.id if professional_user is not None else None,
            NotificationType.NUEVA_RESENA,
            'Nueva reseña',
            f'{reviewer_name} te calificó con {review.rating} estrellas.',
            sender=review.client,
            related_id=review.pk,
            related_type='review',
        )
        plan.email('new_review', hire_id=review.hire_id)
        return _dispatch_once(key, plan)
    except Exception as e:
        logger.error(f"Notification dispatch failed for {key}: {e}", exc_info=True)
        return False


def dispatch_new_message(message):
    """
    Notify the other participant of a conversation about a new message.

    The recipient is whichever participant is not the sender. When the pair
    cannot be resolved nothing is sent. Never raises.
    """
    key = f"message:{message.pk}"
    try:
        conversation = Conversation.objects.get(pk=message.conversation_id)
        recipient_id = conversation.other_participant_id(message.sender_id)
        if recipient_id is None:
            logger.warning(
                f"Cannot resolve recipient for message {message.pk} in conversation "
                f"{conversation.pk}: sender {message.sender_id} is not a participant"
            )
            return False

        plan = DispatchPlan()
        plan.notify(
            recipient_id,
            NotificationType.MENSAJE_NUEVO,
            f'Nuevo mensaje de {message.sender.get_display_name()}',
            message.content[:200],
            sender=message.sender,
            related_id=conversation.pk,
            related_type='conversation',
        )
        plan.email(
            'new_message',
            conversation_id=conversation.pk,
            user_id=recipient_id,
            sender_id=message.sender_id,
        )
        return _dispatch_once(key, plan)
    except Exception as e:
        logger.error(f"Notification dispatch failed for {key}: {e}", exc_info=True)
        return False


def mark_notifications_read(user, notification_ids=None):
    """
    Mark the user's notifications as read.

    Args:
        user: Notification owner
        notification_ids: Restrict to these ids (None marks all)

    Returns:
        int: Number of notifications updated
    """
    queryset = Notification.objects.filter(recipient=user, read=False)
    if notification_ids is not None:
        queryset = queryset.filter(pk__in=notification_ids)
    return queryset.update(read=True)
