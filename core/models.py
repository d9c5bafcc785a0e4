"""
Data model for the services marketplace.

Professionals publish a trade profile; clients (or anonymous guests) open
hires against them. The hire status is the single mutable shared resource and
is only advanced through ``core.lifecycle``.
"""

from dataclasses import dataclass
from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MaxLengthValidator, MaxValueValidator, MinLengthValidator, MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from .validators import validate_phone_number


SERVICE_DESCRIPTION_MIN_LENGTH = 20
SERVICE_DESCRIPTION_MAX_LENGTH = 500
REVIEW_COMMENT_MAX_LENGTH = 500


def is_premium_effective(is_premium_flag, subscription_end_date, now=None):
    """
    Compute the effective premium status of a professional.

    The stored flag is never trusted on its own: a subscription end date must
    be present and still in the future.

    Args:
        is_premium_flag: Stored premium boolean
        subscription_end_date: Stored subscription expiry (may be None)
        now: Reference time (defaults to timezone.now())

    Returns:
        bool: True only if the flag is set and the subscription has not expired
    """
    if now is None:
        now = timezone.now()
    return bool(is_premium_flag) and subscription_end_date is not None and subscription_end_date > now


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.

    Additional fields:
    - email: Required, unique email address
    - full_name: Display name shown to the other party
    - phone_number: Optional phone number with validation
    - is_professional: Whether the account acts as a professional
    - created_at / updated_at: Timestamps
    """

    email = models.EmailField(
        _('email address'),
        unique=True,
        blank=False,
        null=False,
        error_messages={
            'unique': _('A user with that email already exists.'),
        },
        help_text=_('Required. Enter a valid email address.')
    )

    full_name = models.CharField(
        _('full name'),
        max_length=200,
        blank=True,
        default='',
        help_text=_('Name shown to other users.')
    )

    phone_number = models.CharField(
        _('phone number'),
        max_length=20,
        blank=True,
        default='',
        validators=[validate_phone_number],
        help_text=_('Optional. Enter phone number in international format.')
    )

    is_professional = models.BooleanField(
        _('is professional'),
        default=False,
        help_text=_('Designates whether this account offers services.')
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['email']),
            models.Index(fields=['is_professional']),
        ]

    def __str__(self):
        """Return email as string representation."""
        return self.email or self.username

    def get_display_name(self):
        return self.full_name or self.get_full_name() or self.email

    def clean(self):
        super().clean()

        # Normalize email to lowercase for case-insensitive uniqueness
        if self.email:
            self.email = self.email.lower()

        if not self.email:
            raise ValidationError({
                'email': _('Email address is required.')
            })

    def save(self, *args, **kwargs):
        """
        Normalize the email before saving.

        Creation skips full_clean so duplicate emails surface as the database
        IntegrityError.
        """
        if self.email:
            self.email = self.email.lower()

        if self.pk is not None:
            self.full_clean()

        super().save(*args, **kwargs)


class Professional(models.Model):
    """
    Public trade profile of a professional.

    Fields:
    - user: Owning account (nullable for listings not yet claimed)
    - display_name, profession, city, state, barrio, bio, hourly_rate,
      avatar_url, phone: Display attributes
    - rating / rating_count: Reputation, maintained by the review signals
    - is_premium / subscription_end_date: Monetization, written by billing

    ``is_premium`` is the stored flag only; read sites must use
    ``premium_effective()``.
    """

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='professional_profile',
        null=True,
        blank=True,
        help_text=_('Account that owns this listing')
    )

    display_name = models.CharField(_('display name'), max_length=200)

    profession = models.CharField(
        _('profession'),
        max_length=100,
        help_text=_('Trade category, e.g. "Plomero"')
    )

    city = models.CharField(_('city'), max_length=100, blank=True, default='')

    state = models.CharField(
        _('state'),
        max_length=100,
        blank=True,
        default='',
        help_text=_('Department / state')
    )

    barrio = models.CharField(_('barrio'), max_length=100, blank=True, default='')

    bio = models.TextField(_('bio'), blank=True, default='')

    hourly_rate = models.DecimalField(
        _('hourly rate'),
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True
    )

    avatar_url = models.URLField(_('avatar url'), max_length=500, blank=True, default='')

    phone = models.CharField(
        _('phone'),
        max_length=20,
        blank=True,
        default='',
        validators=[validate_phone_number]
    )

    rating = models.DecimalField(
        _('rating'),
        max_digits=3,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[
            MinValueValidator(Decimal('0.00'), message=_('Rating cannot be negative.')),
            MaxValueValidator(Decimal('5.00'), message=_('Rating cannot exceed 5.00.'))
        ],
        help_text=_('Mean review rating, 0 when there are no reviews')
    )

    rating_count = models.PositiveIntegerField(_('rating count'), default=0)

    is_premium = models.BooleanField(
        _('premium flag'),
        default=False,
        help_text=_('Stored premium flag. Only meaningful with a future subscription end date.')
    )

    subscription_end_date = models.DateTimeField(
        _('subscription end date'),
        null=True,
        blank=True
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('professional')
        verbose_name_plural = _('professionals')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['profession']),
            models.Index(fields=['city']),
            models.Index(fields=['rating']),
        ]

    def __str__(self):
        return f'{self.display_name} ({self.profession})'

    def premium_effective(self, now=None):
        """Recompute premium status from the flag and the expiry date."""
        return is_premium_effective(self.is_premium, self.subscription_end_date, now)


# ============================================================================
# Hire
# ============================================================================

@dataclass(frozen=True)
class AuthenticatedClient:
    """Hire opened by a registered client account."""
    client_id: int


@dataclass(frozen=True)
class GuestClient:
    """Hire opened through the guest contact flow (no account)."""
    name: str
    email: str
    phone: str


class Hire(models.Model):
    """
    One client-professional engagement request and its lifecycle.

    Exactly one of ``client`` or the guest bundle (guest_name, guest_email,
    guest_phone) is populated; ``client_ref`` exposes it as a tagged variant.
    ``professional`` may be null for open requests and is immutable once set.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', _('Pending')
        ACCEPTED = 'accepted', _('Accepted')
        REJECTED = 'rejected', _('Rejected')
        IN_PROGRESS = 'in_progress', _('In progress')
        WAITING_CLIENT_APPROVAL = 'waiting_client_approval', _('Waiting client approval')
        COMPLETED = 'completed', _('Completed')
        CANCELLED = 'cancelled', _('Cancelled')

    TERMINAL_STATUSES = frozenset({'completed', 'cancelled', 'rejected'})

    CONTACT_VISIBLE_STATUSES = frozenset({'accepted', 'in_progress', 'waiting_client_approval', 'completed'})

    client = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='client_hires',
        null=True,
        blank=True,
        help_text=_('Client account; null for guest hires')
    )

    guest_name = models.CharField(_('guest name'), max_length=200, blank=True, default='')

    guest_email = models.EmailField(_('guest email'), blank=True, default='')

    guest_phone = models.CharField(_('guest phone'), max_length=20, blank=True, default='')

    professional = models.ForeignKey(
        Professional,
        on_delete=models.PROTECT,
        related_name='hires',
        null=True,
        blank=True,
        help_text=_('Targeted professional; null while the request is open')
    )

    service_category = models.CharField(_('service category'), max_length=100)

    service_description = models.TextField(
        _('service description'),
        validators=[
            MinLengthValidator(SERVICE_DESCRIPTION_MIN_LENGTH),
            MaxLengthValidator(SERVICE_DESCRIPTION_MAX_LENGTH),
        ]
    )

    service_location = models.CharField(
        _('service location'),
        max_length=300,
        blank=True,
        default='',
        help_text=_('"city, department[, barrio]"')
    )

    proposal_message = models.TextField(_('proposal message'), blank=True, default='')

    status = models.CharField(
        _('status'),
        max_length=32,
        choices=Status.choices,
        default=Status.PENDING
    )

    review_token = models.CharField(
        _('review token'),
        max_length=128,
        null=True,
        blank=True,
        unique=True,
        help_text=_('Guest capability token for confirmation and review')
    )

    reviewed_by_guest = models.BooleanField(_('reviewed by guest'), default=False)

    created_at = models.DateTimeField(_('created at'), default=timezone.now)
    accepted_at = models.DateTimeField(_('accepted at'), null=True, blank=True)
    rejected_at = models.DateTimeField(_('rejected at'), null=True, blank=True)
    started_at = models.DateTimeField(_('started at'), null=True, blank=True)
    completion_requested_at = models.DateTimeField(_('completion requested at'), null=True, blank=True)
    completed_at = models.DateTimeField(_('completed at'), null=True, blank=True)
    cancelled_at = models.DateTimeField(_('cancelled at'), null=True, blank=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('hire')
        verbose_name_plural = _('hires')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['client']),
            models.Index(fields=['professional']),
            models.Index(fields=['status']),
            models.Index(fields=['service_category']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(client__isnull=False, guest_name='', guest_email='', guest_phone='')
                    | (
                        models.Q(client__isnull=True)
                        & ~models.Q(guest_name='')
                        & ~models.Q(guest_email='')
                        & ~models.Q(guest_phone='')
                    )
                ),
                name='hire_client_xor_guest',
            ),
        ]

    def __str__(self):
        return f'Hire #{self.pk} [{self.status}] {self.service_category}'

    @property
    def client_ref(self):
        """Return the hire's client as AuthenticatedClient or GuestClient."""
        if self.client_id is not None:
            return AuthenticatedClient(client_id=self.client_id)
        return GuestClient(
            name=self.guest_name,
            email=self.guest_email,
            phone=self.guest_phone,
        )

    @property
    def is_guest(self):
        return self.client_id is None

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def is_open_request(self):
        return self.professional_id is None and self.status == self.Status.PENDING

    @property
    def contact_visible(self):
        """Professional contact details are shared once the hire is accepted."""
        return self.status in self.CONTACT_VISIBLE_STATUSES

    def clean(self):
        """
        Validate the client/guest bundle and the professional assignment.

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        has_guest = any([self.guest_name, self.guest_email, self.guest_phone])
        if self.client_id is not None and has_guest:
            raise ValidationError(_('A hire cannot have both a client account and guest contact data.'))
        if self.client_id is None and not all([self.guest_name, self.guest_email, self.guest_phone]):
            raise ValidationError(_('A guest hire requires name, email and phone.'))

        if self.pk is not None:
            previous = Hire.objects.filter(pk=self.pk).values('professional_id').first()
            if previous and previous['professional_id'] is not None \
                    and previous['professional_id'] != self.professional_id:
                raise ValidationError({
                    'professional': _('A hire cannot be reassigned to a different professional.')
                })

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


# ============================================================================
# Review
# ============================================================================

class Review(models.Model):
    """
    Review left by the client (or guest) after a completed hire.

    The OneToOne relation to Hire is the database-level guarantee of at most
    one review per hire. Reviews are immutable once written.
    """

    professional = models.ForeignKey(
        Professional,
        on_delete=models.CASCADE,
        related_name='reviews'
    )

    client = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        related_name='reviews_given',
        null=True,
        blank=True
    )

    hire = models.OneToOneField(
        Hire,
        on_delete=models.CASCADE,
        related_name='review',
        help_text=_('Hire being reviewed (one review per hire)')
    )

    rating = models.PositiveSmallIntegerField(
        _('rating'),
        validators=[
            MinValueValidator(1, message=_('Rating must be at least 1.')),
            MaxValueValidator(5, message=_('Rating must be at most 5.'))
        ]
    )

    comment = models.TextField(
        _('comment'),
        blank=True,
        default='',
        validators=[MaxLengthValidator(REVIEW_COMMENT_MAX_LENGTH)]
    )

    is_guest_review = models.BooleanField(_('guest review'), default=False)

    guest_reviewer_name = models.CharField(_('guest reviewer name'), max_length=200, blank=True, default='')

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    class Meta:
        verbose_name = _('review')
        verbose_name_plural = _('reviews')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['professional']),
            models.Index(fields=['rating']),
        ]

    def __str__(self):
        return f'Review for {self.professional.display_name} - {self.rating}★'

    def clean(self):
        super().clean()
        if self.hire_id and self.hire.status != Hire.Status.COMPLETED:
            raise ValidationError({
                'hire': _('Only completed hires can be reviewed.')
            })


class ClientReview(models.Model):
    """
    Rating a professional gives a client account.

    One review per (professional, client) pair, enforced by a unique
    constraint. Visible to professionals only.
    """

    professional = models.ForeignKey(
        Professional,
        on_delete=models.CASCADE,
        related_name='client_reviews_given'
    )

    client = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='client_reviews'
    )

    rating = models.PositiveSmallIntegerField(
        _('rating'),
        validators=[
            MinValueValidator(1, message=_('Rating must be at least 1.')),
            MaxValueValidator(5, message=_('Rating must be at most 5.'))
        ]
    )

    comment = models.TextField(
        _('comment'),
        blank=True,
        default='',
        validators=[MaxLengthValidator(REVIEW_COMMENT_MAX_LENGTH)]
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    class Meta:
        verbose_name = _('client review')
        verbose_name_plural = _('client reviews')
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['professional', 'client'], name='unique_client_review_per_professional'),
        ]

    def __str__(self):
        return f'Client review for {self.client_id} by {self.professional_id} - {self.rating}★'


# ============================================================================
# Notifications
# ============================================================================

class Notification(models.Model):
    """
    In-app notification. A side-effect record, never a source of truth.
    """

    class Type(models.TextChoices):
        SOLICITUD_ENVIADA = 'solicitud_enviada', _('Request sent')
        SOLICITUD_ACEPTADA = 'solicitud_aceptada', _('Request accepted')
        SOLICITUD_RECHAZADA = 'solicitud_rechazada', _('Request rejected')
        TRABAJO_COMPLETADO = 'trabajo_completado', _('Completion requested')
        APROBACION_COMPLETADO = 'aprobacion_completado', _('Completion approved')
        MENSAJE_NUEVO = 'mensaje_nuevo', _('New message')
        CONTACTO_COMPARTIDO = 'contacto_compartido', _('Contact shared')
        NUEVA_RESENA = 'nueva_resena', _('New review')

    type = models.CharField(_('type'), max_length=32, choices=Type.choices)

    recipient = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='notifications'
    )

    sender = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        related_name='notifications_sent',
        null=True,
        blank=True
    )

    sender_name = models.CharField(_('sender name'), max_length=200, blank=True, default='')

    title = models.CharField(_('title'), max_length=255)

    message = models.TextField(_('message'), blank=True, default='')

    related_id = models.CharField(_('related id'), max_length=64, blank=True, default='')

    related_type = models.CharField(_('related type'), max_length=32, blank=True, default='')

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    read = models.BooleanField(_('read'), default=False)

    class Meta:
        verbose_name = _('notification')
        verbose_name_plural = _('notifications')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'read']),
        ]

    def __str__(self):
        return f'{self.type} -> {self.recipient_id}'


class NotificationDispatch(models.Model):
    """
    Append-only ledger of dispatched events.

    The unique ``key`` identifies one transition (or one review / message);
    a second dispatch for the same key is a no-op.
    """

    key = models.CharField(_('key'), max_length=128, unique=True)

    notification_type = models.CharField(_('notification type'), max_length=32, blank=True, default='')

    email_types = models.CharField(_('email types'), max_length=200, blank=True, default='')

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    class Meta:
        verbose_name = _('notification dispatch')
        verbose_name_plural = _('notification dispatches')
        ordering = ['-created_at']

    def __str__(self):
        return self.key


# ============================================================================
# Chat
# ============================================================================

class Conversation(models.Model):
    """Two-party conversation between users."""

    participant1 = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='conversations_started'
    )

    participant2 = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='conversations_received'
    )

    hire = models.ForeignKey(
        Hire,
        on_delete=models.SET_NULL,
        related_name='conversations',
        null=True,
        blank=True
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    class Meta:
        verbose_name = _('conversation')
        verbose_name_plural = _('conversations')
        ordering = ['-created_at']

    def __str__(self):
        return f'Conversation #{self.pk}'

    def other_participant_id(self, sender_id):
        """
        Return the participant that is not the sender.

        Returns:
            int or None: None when the sender is not part of the pair
        """
        if self.participant1_id == sender_id:
            return self.participant2_id
        if self.participant2_id == sender_id:
            return self.participant1_id
        return None


class Message(models.Model):
    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name='messages'
    )

    sender = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='messages_sent'
    )

    content = models.TextField(_('content'))

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    class Meta:
        verbose_name = _('message')
        verbose_name_plural = _('messages')
        ordering = ['created_at']

    def __str__(self):
        return f'Message #{self.pk} in conversation {self.conversation_id}'
