"""
Transactional email transport.

``send_transactional_email`` receives only a type tag and ids. It loads
recipients and template context from the database and sends HTML email with
a plain-text alternative through Django's mail framework.
"""

import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils.html import strip_tags

from .exceptions import DeliveryFailure
from .models import Conversation, GuestClient, Hire, User

logger = logging.getLogger(__name__)


def review_url(hire):
    return f"{settings.FRONTEND_URL.rstrip('/')}/review/{hire.review_token}"


def _load_hire(hire_id):
    if hire_id is None:
        raise DeliveryFailure('hire_id is required for this email type.')
    try:
        return Hire.objects.select_related('client', 'professional', 'professional__user').get(pk=hire_id)
    except Hire.DoesNotExist:
        raise DeliveryFailure(f'Hire {hire_id} does not exist.')


def _client_contact(hire):
    """(name, email, phone) of the hire's client, account or guest."""
    client_ref = hire.client_ref
    if isinstance(client_ref, GuestClient):
        return client_ref.name, client_ref.email, client_ref.phone
    return hire.client.get_display_name(), hire.client.email, hire.client.phone_number


def _professional_address(hire):
    if hire.professional_id is None or hire.professional.user is None:
        return ''
    return hire.professional.user.email


def _hire_context(hire):
    client_name, client_email, client_phone = _client_contact(hire)
    return {
        'hire': hire,
        'professional': hire.professional,
        'professional_email': _professional_address(hire),
        'client_name': client_name,
        'client_email': client_email,
        'client_phone': client_phone,
        'frontend_url': settings.FRONTEND_URL,
    }


# email_type -> [(recipient role, subject, template)]
HIRE_EMAILS = {
    'guest_contact': [
        ('client', 'Datos de contacto de tu profesional', 'emails/guest_contact_client.html'),
        ('professional', 'Nuevo cliente interesado en tus servicios', 'emails/guest_contact_professional.html'),
    ],
    'new_proposal': [
        ('professional', 'Nueva solicitud de trabajo', 'emails/new_proposal.html'),
    ],
    'proposal_confirmation': [
        ('client', 'Tu solicitud fue enviada', 'emails/proposal_confirmation.html'),
    ],
    'proposal_accepted': [
        ('client', 'Tu solicitud fue aceptada', 'emails/proposal_accepted.html'),
    ],
    'completion_requested': [
        ('client', 'Confirmá que el trabajo está terminado', 'emails/completion_requested.html'),
    ],
    'completion_requested_guest': [
        ('client', 'Confirmá el trabajo y dejá tu reseña', 'emails/completion_requested_guest.html'),
    ],
    'work_completed': [
        ('professional', 'El cliente confirmó el trabajo', 'emails/work_completed.html'),
    ],
    'new_review': [
        ('professional', 'Recibiste una nueva reseña', 'emails/new_review.html'),
    ],
}

EMAIL_TYPES = frozenset(HIRE_EMAILS) | {'new_message'}


def _send(subject, recipient, template_name, context):
    html_content = render_to_string(template_name, context)
    email = EmailMultiAlternatives(
        subject=subject,
        body=strip_tags(html_content),
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[recipient],
    )
    email.attach_alternative(html_content, 'text/html')
    email.send(fail_silently=False)


def _build_hire_messages(email_type, hire_id):
    """One (subject, recipient, template, context) entry per leg; recipient may be blank."""
    hire = _load_hire(hire_id)
    context = _hire_context(hire)
    if email_type == 'completion_requested_guest':
        if not hire.review_token:
            raise DeliveryFailure(f'Hire {hire.pk} has no review token.')
        context['review_url'] = review_url(hire)
    if email_type == 'new_review':
        context['review'] = getattr(hire, 'review', None)

    messages = []
    for role, subject, template_name in HIRE_EMAILS[email_type]:
        recipient = context['client_email'] if role == 'client' else context['professional_email']
        messages.append((subject, recipient, template_name, context))
    return messages


def _build_message_messages(conversation_id, user_id, sender_id):
    try:
        conversation = Conversation.objects.get(pk=conversation_id)
        recipient = User.objects.get(pk=user_id)
        sender = User.objects.get(pk=sender_id)
    except (Conversation.DoesNotExist, User.DoesNotExist):
        raise DeliveryFailure(
            f'Cannot resolve new_message email: conversation={conversation_id}, '
            f'user={user_id}, sender={sender_id}.'
        )
    if not recipient.email:
        raise DeliveryFailure(f'User {user_id} has no email address.')

    context = {
        'conversation': conversation,
        'recipient': recipient,
        'sender_name': sender.get_display_name(),
        'chat_url': f"{settings.FRONTEND_URL.rstrip('/')}/chat/{conversation.pk}",
        'frontend_url': settings.FRONTEND_URL,
    }
    return [(f'Nuevo mensaje de {sender.get_display_name()}', recipient.email, 'emails/new_message.html', context)]


def send_transactional_email(email_type, hire_id=None, conversation_id=None, user_id=None, sender_id=None):
    """
    Send the emails for ``email_type``.

    ``guest_contact`` goes to both parties; every other type has a single
    recipient. Each recipient is sent separately: a missing address or a
    rejected send is logged and the remaining recipients still get theirs.

    Args:
        email_type: One of EMAIL_TYPES
        hire_id: Hire the email is about
        conversation_id / user_id / sender_id: Chat message emails

    Returns:
        int: Number of emails sent

    Raises:
        DeliveryFailure: Unknown type, unknown hire or conversation, or no
            recipient could be reached
    """
    if email_type not in EMAIL_TYPES:
        raise DeliveryFailure(f'Unknown email type: {email_type}')

    if email_type == 'new_message':
        messages = _build_message_messages(conversation_id, user_id, sender_id)
    else:
        messages = _build_hire_messages(email_type, hire_id)

    sent = 0
    failures = []
    for subject, recipient, template_name, context in messages:
        try:
            if not recipient:
                raise DeliveryFailure(f'No recipient address for {email_type} ({template_name}).')
            _send(subject, recipient, template_name, context)
            sent += 1
        except DeliveryFailure as e:
            logger.error(f"'{email_type}' email not sent: {e.message}")
            failures.append(e)
        except Exception as e:
            failure = DeliveryFailure(f"'{email_type}' email to {recipient} failed: {e}")
            logger.error(failure.message, exc_info=True)
            failures.append(failure)

    if failures and not sent:
        raise failures[0]

    logger.info(f"Sent {sent} of {len(messages)} '{email_type}' email(s)")
    return sent
