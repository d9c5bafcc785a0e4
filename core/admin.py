"""
Django admin configuration for the marketplace models.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import (
    ClientReview,
    Conversation,
    Hire,
    Message,
    Notification,
    NotificationDispatch,
    Professional,
    Review,
    User,
)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Custom admin interface for User model.

    Extends Django's UserAdmin to include custom fields.
    """

    list_display = [
        'email',
        'username',
        'full_name',
        'is_professional',
        'is_staff',
        'is_active',
        'created_at',
    ]

    list_filter = [
        'is_professional',
        'is_staff',
        'is_superuser',
        'is_active',
        'created_at',
    ]

    search_fields = [
        'email',
        'username',
        'full_name',
        'phone_number',
    ]

    ordering = ['-created_at']

    fieldsets = (
        (None, {
            'fields': ('username', 'password')
        }),
        (_('Personal Info'), {
            'fields': (
                'full_name',
                'first_name',
                'last_name',
                'email',
                'phone_number',
            )
        }),
        (_('Marketplace'), {
            'fields': ('is_professional',)
        }),
        (_('Permissions'), {
            'fields': (
                'is_active',
                'is_staff',
                'is_superuser',
                'groups',
                'user_permissions',
            ),
            'classes': ('collapse',),
        }),
        (_('Important Dates'), {
            'fields': ('last_login', 'date_joined', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('username', 'email', 'password1', 'password2', 'is_professional'),
        }),
    )

    readonly_fields = ['created_at', 'updated_at', 'last_login', 'date_joined']


@admin.register(Professional)
class ProfessionalAdmin(admin.ModelAdmin):
    list_display = [
        'id',
        'display_name',
        'profession',
        'city',
        'rating',
        'rating_count',
        'is_premium',
        'subscription_end_date',
        'premium_active',
    ]

    list_filter = ['profession', 'city', 'is_premium']

    search_fields = ['display_name', 'profession', 'city', 'user__email']

    readonly_fields = ['rating', 'rating_count', 'created_at', 'updated_at']

    list_select_related = ['user']

    @admin.display(boolean=True, description=_('premium active'))
    def premium_active(self, obj):
        return obj.premium_effective()


@admin.register(Hire)
class HireAdmin(admin.ModelAdmin):
    """
    Hires are read-mostly here: status must change through the lifecycle
    service so conditional updates and notifications apply.
    """

    list_display = [
        'id',
        'service_category',
        'status',
        'client',
        'guest_name',
        'professional',
        'created_at',
    ]

    list_filter = ['status', 'service_category', 'created_at']

    search_fields = ['service_description', 'guest_name', 'guest_email', 'client__email', 'professional__display_name']

    readonly_fields = [
        'status',
        'professional',
        'review_token',
        'reviewed_by_guest',
        'created_at',
        'accepted_at',
        'rejected_at',
        'started_at',
        'completion_requested_at',
        'completed_at',
        'cancelled_at',
        'updated_at',
    ]

    date_hierarchy = 'created_at'

    list_per_page = 25

    fieldsets = (
        (None, {
            'fields': ('status', 'professional', 'client')
        }),
        (_('Guest'), {
            'fields': ('guest_name', 'guest_email', 'guest_phone', 'review_token', 'reviewed_by_guest'),
            'classes': ('collapse',),
        }),
        (_('Service'), {
            'fields': ('service_category', 'service_description', 'service_location', 'proposal_message')
        }),
        (_('Timestamps'), {
            'fields': (
                'created_at',
                'accepted_at',
                'rejected_at',
                'started_at',
                'completion_requested_at',
                'completed_at',
                'cancelled_at',
                'updated_at',
            ),
            'classes': ('collapse',),
        }),
    )


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    """Admin interface for Review model."""

    list_display = [
        'id',
        'professional',
        'client',
        'guest_reviewer_name',
        'hire',
        'rating',
        'created_at',
    ]

    list_filter = [
        'rating',
        'is_guest_review',
        'created_at',
    ]

    search_fields = [
        'professional__display_name',
        'client__email',
        'guest_reviewer_name',
        'comment',
    ]

    readonly_fields = ['created_at']

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25


@admin.register(ClientReview)
class ClientReviewAdmin(admin.ModelAdmin):
    list_display = ['id', 'professional', 'client', 'rating', 'created_at']
    list_filter = ['rating']
    search_fields = ['professional__display_name', 'client__email', 'comment']
    readonly_fields = ['created_at']


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['id', 'type', 'recipient', 'sender_name', 'title', 'read', 'created_at']
    list_filter = ['type', 'read']
    search_fields = ['recipient__email', 'title']


@admin.register(NotificationDispatch)
class NotificationDispatchAdmin(admin.ModelAdmin):
    list_display = ['key', 'notification_type', 'email_types', 'created_at']
    search_fields = ['key']
    readonly_fields = ['key', 'notification_type', 'email_types', 'created_at']


class MessageInline(admin.TabularInline):
    model = Message
    extra = 0
    readonly_fields = ['sender', 'content', 'created_at']


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    list_display = ['id', 'participant1', 'participant2', 'hire', 'created_at']
    inlines = [MessageInline]
