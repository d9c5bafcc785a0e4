"""
URL configuration for services_marketplace project.
"""
from django.contrib import admin
from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from core.views import (
    ClientReviewListCreateView,
    EmailTokenObtainPairView,
    GuestCompletionView,
    GuestHireCreateView,
    GuestProfessionalListView,
    GuestReviewView,
    HireClaimView,
    HireListCreateView,
    HireStatusUpdateView,
    MessageCreateView,
    NotificationListView,
    NotificationMarkReadView,
    OpenRequestListView,
    ProfessionalListView,
    PublishPendingRequestView,
    ReviewCreateView,
    UserRegistrationView,
)


urlpatterns = [
    path('admin/', admin.site.urls),

    # Authentication endpoints
    path('api/auth/register/', UserRegistrationView.as_view(), name='user_register'),
    path('api/token/', EmailTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # Discovery
    path('api/professionals/', ProfessionalListView.as_view(), name='professional_list'),

    # Hire endpoints
    path('api/hires/', HireListCreateView.as_view(), name='hire_list_create'),
    path('api/hires/open/', OpenRequestListView.as_view(), name='open_request_list'),
    path('api/hires/publish-pending/', PublishPendingRequestView.as_view(), name='publish_pending_request'),
    path('api/hires/<int:pk>/claim/', HireClaimView.as_view(), name='hire_claim'),
    path('api/hires/<int:pk>/status/', HireStatusUpdateView.as_view(), name='hire_status_update'),

    # Guest flow
    path('api/guest/professionals/', GuestProfessionalListView.as_view(), name='guest_professional_list'),
    path('api/guest/hires/', GuestHireCreateView.as_view(), name='guest_hire_create'),
    path('api/guest/reviews/<str:token>/', GuestReviewView.as_view(), name='guest_review'),
    path('api/guest/reviews/<str:token>/complete/', GuestCompletionView.as_view(), name='guest_completion'),

    # Reviews
    path('api/reviews/', ReviewCreateView.as_view(), name='review_create'),
    path('api/clients/<int:pk>/reviews/', ClientReviewListCreateView.as_view(), name='client_review_list_create'),

    # Notifications & chat
    path('api/notifications/', NotificationListView.as_view(), name='notification_list'),
    path('api/notifications/read/', NotificationMarkReadView.as_view(), name='notification_mark_read'),
    path('api/conversations/<int:pk>/messages/', MessageCreateView.as_view(), name='message_create'),
]
