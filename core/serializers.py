"""
Serializers for authentication, discovery, hires, reviews and notifications.
"""

from django.contrib.auth import get_user_model
from django.contrib.auth.hashers import make_password
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import (
    REVIEW_COMMENT_MAX_LENGTH,
    SERVICE_DESCRIPTION_MAX_LENGTH,
    SERVICE_DESCRIPTION_MIN_LENGTH,
    ClientReview,
    Hire,
    Message,
    Notification,
    Professional,
    Review,
)
from .validators import validate_phone_number, validate_service_location_part

User = get_user_model()


def _django_validator(validator):
    """Wrap a Django field validator for use on a DRF field."""
    def run(value):
        try:
            validator(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(list(e.messages))
    return run


class EmailTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Custom serializer to use email instead of username for authentication.
    """
    username_field = 'email'

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if 'username' in self.fields:
            del self.fields['username']
        if 'email' not in self.fields:
            self.fields['email'] = serializers.EmailField()


class UserRegistrationSerializer(serializers.ModelSerializer):
    """
    Serializer for account registration.

    Fields:
    - email: Required, unique (case-insensitive)
    - password / confirm_password: Required, must match and pass Django's validators
    - full_name, phone_number: Optional profile data
    - is_professional: Create a professional listing with the account
    - profession, city, state, barrio: Required for professionals
    """

    password = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )
    confirm_password = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )
    profession = serializers.CharField(write_only=True, required=False, allow_blank=True, max_length=100)
    city = serializers.CharField(write_only=True, required=False, allow_blank=True, max_length=100)
    state = serializers.CharField(write_only=True, required=False, allow_blank=True, max_length=100)
    barrio = serializers.CharField(write_only=True, required=False, allow_blank=True, max_length=100)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'password', 'confirm_password', 'full_name', 'phone_number',
            'is_professional', 'profession', 'city', 'state', 'barrio', 'created_at',
        ]
        read_only_fields = ['id', 'created_at']
        extra_kwargs = {
            'email': {'required': True},
            'phone_number': {'validators': [_django_validator(validate_phone_number)]},
        }

    def validate_email(self, value):
        value = value.strip().lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("A user with that email already exists.")
        return value

    def validate_password(self, value):
        try:
            validate_password(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(list(e.messages))
        return value

    def validate(self, attrs):
        if attrs.get('password') != attrs.get('confirm_password'):
            raise serializers.ValidationError({
                'confirm_password': 'Password confirmation does not match.'
            })

        if attrs.get('is_professional'):
            errors = {}
            for field in ('profession', 'city'):
                if not (attrs.get(field) or '').strip():
                    errors[field] = 'This field is required for professionals.'
            if errors:
                raise serializers.ValidationError(errors)

        return attrs

    def create(self, validated_data):
        """
        Create the user (and professional listing) with a hashed password.

        Privilege fields are dropped; the username is the email, which is
        already unique.
        """
        validated_data.pop('confirm_password', None)
        profile_data = {
            field: (validated_data.pop(field, '') or '').strip()
            for field in ('profession', 'city', 'state', 'barrio')
        }

        validated_data['password'] = make_password(validated_data.pop('password'))
        for field in ('is_superuser', 'is_staff', 'is_active', 'groups', 'user_permissions'):
            validated_data.pop(field, None)
        validated_data['username'] = validated_data['email']

        with transaction.atomic():
            user = User.objects.create(**validated_data)
            if user.is_professional:
                Professional.objects.create(
                    user=user,
                    display_name=user.get_display_name(),
                    phone=user.phone_number,
                    **profile_data
                )

        return user


# ============================================================================
# Discovery
# ============================================================================

class ProfessionalSerializer(serializers.ModelSerializer):
    """
    Public professional listing.

    ``is_premium`` is the effective status, recomputed against the clock in
    the serializer context (``now``), never the stored flag.
    """

    is_premium = serializers.SerializerMethodField()

    class Meta:
        model = Professional
        fields = [
            'id',
            'display_name',
            'profession',
            'city',
            'state',
            'barrio',
            'bio',
            'hourly_rate',
            'avatar_url',
            'rating',
            'rating_count',
            'is_premium',
        ]
        read_only_fields = fields

    def get_is_premium(self, obj):
        return obj.premium_effective(self.context.get('now'))


# ============================================================================
# Hires
# ============================================================================

class HireSerializer(serializers.ModelSerializer):
    """
    Hire as seen by its participants.

    Professional contact details are only included once the hire has been
    accepted. The review token is never serialized.
    """

    professional = ProfessionalSerializer(read_only=True)
    client_name = serializers.SerializerMethodField()
    professional_contact = serializers.SerializerMethodField()
    is_guest = serializers.BooleanField(read_only=True)
    has_review = serializers.SerializerMethodField()

    class Meta:
        model = Hire
        fields = [
            'id',
            'status',
            'service_category',
            'service_description',
            'service_location',
            'proposal_message',
            'professional',
            'client_name',
            'professional_contact',
            'is_guest',
            'has_review',
            'created_at',
            'accepted_at',
            'started_at',
            'completion_requested_at',
            'completed_at',
            'cancelled_at',
        ]
        read_only_fields = fields

    def get_client_name(self, obj):
        if obj.client_id is not None:
            return obj.client.get_display_name()
        return obj.guest_name

    def get_professional_contact(self, obj):
        if not obj.contact_visible or obj.professional_id is None:
            return None
        user = obj.professional.user
        return {
            'phone': obj.professional.phone or (user.phone_number if user else ''),
            'email': user.email if user else '',
        }

    def get_has_review(self, obj):
        return Review.objects.filter(hire_id=obj.pk).exists()


class ServiceLocationSerializer(serializers.Serializer):
    department = serializers.CharField(max_length=100, validators=[_django_validator(validate_service_location_part)])
    city = serializers.CharField(max_length=100, validators=[_django_validator(validate_service_location_part)])
    barrio = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')

    def validate_barrio(self, value):
        if value and ',' in value:
            raise serializers.ValidationError('Location names cannot contain commas.')
        return value


class HireCreateSerializer(ServiceLocationSerializer):
    """
    Input for a client-created hire.

    Without ``professional_id`` the hire is published as an open request.
    """

    professional_id = serializers.IntegerField(required=False, allow_null=True)
    service_category = serializers.CharField(max_length=100)
    service_description = serializers.CharField(
        min_length=SERVICE_DESCRIPTION_MIN_LENGTH,
        max_length=SERVICE_DESCRIPTION_MAX_LENGTH,
    )
    proposal_message = serializers.CharField(required=False, allow_blank=True, default='', max_length=1000)

    def validate_professional_id(self, value):
        if value is None:
            return value
        if not Professional.objects.filter(pk=value).exists():
            raise serializers.ValidationError('Professional not found.')
        return value


class HireStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Hire.Status.choices)


class PendingRequestSerializer(serializers.Serializer):
    service_category = serializers.CharField(max_length=100)
    service_description = serializers.CharField(
        min_length=SERVICE_DESCRIPTION_MIN_LENGTH,
        max_length=SERVICE_DESCRIPTION_MAX_LENGTH,
    )
    service_location = serializers.CharField(max_length=300, required=False, allow_blank=True, default='')


class GuestContactSerializer(ServiceLocationSerializer):
    """
    Guest contact form.

    ``timing`` is advisory and only forwarded to the professional.
    """

    name = serializers.CharField(max_length=200)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=20, validators=[_django_validator(validate_phone_number)])
    category = serializers.CharField(max_length=100)
    description = serializers.CharField(
        min_length=SERVICE_DESCRIPTION_MIN_LENGTH,
        max_length=SERVICE_DESCRIPTION_MAX_LENGTH,
    )
    timing = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    professional_id = serializers.IntegerField(required=False, allow_null=True)

    def validate_email(self, value):
        return value.strip().lower()


class GuestHireSummarySerializer(serializers.ModelSerializer):
    """Hire summary shown on the guest review page."""

    professional_name = serializers.CharField(source='professional.display_name', read_only=True)
    can_confirm = serializers.SerializerMethodField()
    can_review = serializers.SerializerMethodField()

    class Meta:
        model = Hire
        fields = [
            'id',
            'status',
            'service_category',
            'service_description',
            'professional_name',
            'guest_name',
            'can_confirm',
            'can_review',
        ]
        read_only_fields = fields

    def get_can_confirm(self, obj):
        return obj.status == Hire.Status.WAITING_CLIENT_APPROVAL

    def get_can_review(self, obj):
        return obj.status == Hire.Status.COMPLETED and not obj.reviewed_by_guest


# ============================================================================
# Reviews
# ============================================================================

class ReviewSerializer(serializers.ModelSerializer):
    reviewer_name = serializers.SerializerMethodField()

    class Meta:
        model = Review
        fields = ['id', 'hire', 'professional', 'reviewer_name', 'rating', 'comment', 'is_guest_review', 'created_at']
        read_only_fields = fields

    def get_reviewer_name(self, obj):
        if obj.client_id is not None:
            return obj.client.get_display_name()
        return obj.guest_reviewer_name or 'Anonymous'


class GuestReviewCreateSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(required=False, allow_blank=True, default='', max_length=REVIEW_COMMENT_MAX_LENGTH)


class ReviewCreateSerializer(GuestReviewCreateSerializer):
    hire_id = serializers.IntegerField()


class ClientReviewSerializer(serializers.ModelSerializer):
    professional_name = serializers.CharField(source='professional.display_name', read_only=True)

    class Meta:
        model = ClientReview
        fields = ['id', 'client', 'professional', 'professional_name', 'rating', 'comment', 'created_at']
        read_only_fields = fields


class ClientReviewCreateSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(required=False, allow_blank=True, default='', max_length=REVIEW_COMMENT_MAX_LENGTH)


# ============================================================================
# Notifications & chat
# ============================================================================

class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = [
            'id',
            'type',
            'sender',
            'sender_name',
            'title',
            'message',
            'related_id',
            'related_type',
            'created_at',
            'read',
        ]
        read_only_fields = fields


class NotificationMarkReadSerializer(serializers.Serializer):
    """Omit ``ids`` to mark every notification as read."""
    ids = serializers.ListField(child=serializers.IntegerField(), required=False, allow_null=True)


class MessageSerializer(serializers.ModelSerializer):
    class Meta:
        model = Message
        fields = ['id', 'conversation', 'sender', 'content', 'created_at']
        read_only_fields = ['id', 'conversation', 'sender', 'created_at']
        extra_kwargs = {
            'content': {'required': True, 'allow_blank': False},
        }
