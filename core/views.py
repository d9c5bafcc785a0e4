"""
API views for the services marketplace.

Business rules live in the service modules (lifecycle, guest_flow, reviews,
notifications, ranking). Views validate input, call the service and map its
typed errors to HTTP responses.
"""

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.paginator import EmptyPage, Paginator
from django.db import IntegrityError, transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import generics, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from .exceptions import (
    ConcurrencyConflict,
    DuplicateError,
    InvalidFilter,
    InvalidTransition,
    MarketplaceError,
    NotEligibleError,
    RegistrationRequired,
    Unauthorized,
)
from .guest_flow import compose_service_location, matching_professionals, publish_pending_request, submit_guest_contact
from .lifecycle import claim_open_request, create_hire, hires_for, open_requests, transition_hire
from .models import AuthenticatedClient, Conversation, Hire, Message, Notification, Professional, User
from .notifications import dispatch_new_message, mark_notifications_read
from .permissions import IsHireParticipant, IsProfessional, professional_profile_of
from .ranking import DirectoryFilters, rank
from .reviews import (
    client_rating_summary,
    confirm_completion_with_token,
    hire_for_review_token,
    submit_client_review,
    submit_guest_review,
    submit_review,
)
from .serializers import (
    ClientReviewCreateSerializer,
    ClientReviewSerializer,
    EmailTokenObtainPairSerializer,
    GuestContactSerializer,
    GuestHireSummarySerializer,
    GuestReviewCreateSerializer,
    HireCreateSerializer,
    HireSerializer,
    HireStatusUpdateSerializer,
    MessageSerializer,
    NotificationMarkReadSerializer,
    NotificationSerializer,
    PendingRequestSerializer,
    ProfessionalSerializer,
    ReviewCreateSerializer,
    ReviewSerializer,
    UserRegistrationSerializer,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InvalidTransition: status.HTTP_400_BAD_REQUEST,
    NotEligibleError: status.HTTP_400_BAD_REQUEST,
    DuplicateError: status.HTTP_400_BAD_REQUEST,
    InvalidFilter: status.HTTP_400_BAD_REQUEST,
    Unauthorized: status.HTTP_403_FORBIDDEN,
    ConcurrencyConflict: status.HTTP_409_CONFLICT,
}


def error_response(exc):
    """Translate a marketplace error into an HTTP response."""
    for error_class, http_status in ERROR_STATUS.items():
        if isinstance(exc, error_class):
            return Response({'detail': exc.message}, status=http_status)
    return Response({'detail': exc.message}, status=status.HTTP_400_BAD_REQUEST)


def validation_error_response(exc):
    detail = exc.message_dict if hasattr(exc, 'error_dict') else {'detail': exc.messages}
    return Response(detail, status=status.HTTP_400_BAD_REQUEST)


def get_client_ip(request):
    """
    Get client IP address from request.
    Handles proxy headers for accurate IP detection.
    """
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def paginate(request, items):
    """
    Page an already ordered sequence.

    Returns:
        tuple: (page, page_size) or raises EmptyPage
    """
    try:
        page_size = int(request.query_params.get('page_size', 20))
        if page_size < 1:
            page_size = 20
        elif page_size > 100:
            page_size = 100
    except ValueError:
        page_size = 20

    try:
        page_number = int(request.query_params.get('page', 1))
        if page_number < 1:
            page_number = 1
    except ValueError:
        page_number = 1

    paginator = Paginator(items, page_size)
    return paginator.page(page_number), page_size


# ============================================================================
# Authentication
# ============================================================================

class EmailTokenObtainPairView(TokenObtainPairView):
    """
    Custom view to use email-based authentication instead of username.
    """
    serializer_class = EmailTokenObtainPairSerializer


class UserRegistrationView(generics.CreateAPIView):
    """
    API endpoint for account registration.

    Handles concurrent registration attempts with database-level uniqueness.
    """
    serializer_class = UserRegistrationSerializer
    permission_classes = [AllowAny]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            self.perform_create(serializer)
        except IntegrityError as e:
            if 'email' in str(e).lower() or 'unique' in str(e).lower():
                return Response(
                    {'email': ['A user with that email already exists.']},
                    status=status.HTTP_400_BAD_REQUEST
                )
            raise

        logger.info(f"User registered: {serializer.instance.email} (ID: {serializer.instance.id})")
        headers = self.get_success_headers(serializer.data)
        return Response(serializer.data, status=status.HTTP_201_CREATED, headers=headers)


# ============================================================================
# Discovery
# ============================================================================

class ProfessionalListView(APIView):
    """
    Ranked professional directory.

    Public endpoint. Premium professionals (by effective status) come first,
    then by rating; ties keep their listing order.

    Query Parameters:
    - search: case-insensitive match on name, profession or city
    - category: exact profession
    - city, barrio: location (barrio requires city)
    - min_rating: rating floor, 0-5
    - page, page_size: pagination (default 20, max 100)

    Returns:
    - 200 OK: Paginated ranked list
    - 400 Bad Request: Invalid filter
    - 404 Not Found: Invalid page number
    """

    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):
        try:
            filters = DirectoryFilters.from_query_params(request.query_params)
        except InvalidFilter as e:
            return error_response(e)

        now = timezone.now()
        queryset = Professional.objects.select_related('user').order_by('-created_at', '-pk')
        if filters.category:
            queryset = queryset.filter(profession=filters.category)
        if filters.city:
            queryset = queryset.filter(city__iexact=filters.city)

        ranked = rank(queryset, filters, now=now)

        try:
            page_obj, page_size = paginate(request, ranked)
        except EmptyPage:
            return Response(
                {'error': 'Invalid page number.'},
                status=status.HTTP_404_NOT_FOUND
            )

        serializer = ProfessionalSerializer(page_obj.object_list, many=True, context={'request': request, 'now': now})

        response_data = {
            'count': page_obj.paginator.count,
            'next': None,
            'previous': None,
            'results': serializer.data,
        }
        if page_obj.has_next():
            response_data['next'] = request.build_absolute_uri(
                f"{request.path}?page={page_obj.next_page_number()}&page_size={page_size}"
            )
        if page_obj.has_previous():
            response_data['previous'] = request.build_absolute_uri(
                f"{request.path}?page={page_obj.previous_page_number()}&page_size={page_size}"
            )

        logger.debug(f"Professional listing retrieved: {len(serializer.data)} on page {page_obj.number}")
        return Response(response_data, status=status.HTTP_200_OK)


# ============================================================================
# Hires
# ============================================================================

class HireListCreateView(APIView):
    """
    GET /api/hires/   hires of the current user (as client or professional)
    POST /api/hires/  create a targeted hire, or an open request without professional_id
    """

    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        queryset = hires_for(request.user)
        status_filter = request.query_params.get('status')
        if status_filter:
            if status_filter not in Hire.Status.values:
                return Response(
                    {'error': f'Invalid status "{status_filter}".'},
                    status=status.HTTP_400_BAD_REQUEST
                )
            queryset = queryset.filter(status=status_filter)

        serializer = HireSerializer(queryset, many=True, context={'request': request})
        return Response(serializer.data, status=status.HTTP_200_OK)

    def post(self, request, *args, **kwargs):
        serializer = HireCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data

        professional = None
        if data.get('professional_id') is not None:
            professional = Professional.objects.get(pk=data['professional_id'])
            if professional.user_id == request.user.id:
                return Response(
                    {'professional_id': ['You cannot hire yourself.']},
                    status=status.HTTP_400_BAD_REQUEST
                )

        try:
            hire = create_hire(
                AuthenticatedClient(client_id=request.user.id),
                data['service_category'],
                data['service_description'],
                professional=professional,
                service_location=compose_service_location(data['city'], data['department'], data['barrio']),
                proposal_message=data['proposal_message'],
            )
        except DjangoValidationError as e:
            return validation_error_response(e)

        logger.info(
            f"Hire created via API. Hire ID: {hire.pk}, "
            f"User: {request.user.email} (ID: {request.user.id}), IP: {get_client_ip(request)}"
        )
        return Response(HireSerializer(hire, context={'request': request}).data, status=status.HTTP_201_CREATED)


class OpenRequestListView(APIView):
    """
    GET /api/hires/open/?category=

    Professionals see every unassigned pending request; clients see only
    their own.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        queryset = open_requests(request.query_params.get('category') or None)
        if professional_profile_of(request.user) is None:
            queryset = queryset.filter(client_id=request.user.id)

        serializer = HireSerializer(queryset.select_related('client'), many=True, context={'request': request})
        return Response(serializer.data, status=status.HTTP_200_OK)


class HireClaimView(APIView):
    """POST /api/hires/<id>/claim/: a professional takes an open request."""

    permission_classes = [IsAuthenticated, IsProfessional]

    def post(self, request, *args, **kwargs):
        try:
            hire = claim_open_request(kwargs.get('pk'), request.user)
        except Hire.DoesNotExist:
            return Response({'detail': 'Hire not found.'}, status=status.HTTP_404_NOT_FOUND)
        except MarketplaceError as e:
            return error_response(e)

        return Response(HireSerializer(hire, context={'request': request}).data, status=status.HTTP_200_OK)


class HireStatusUpdateView(APIView):
    """
    API endpoint for hire status transitions.

    PUT /api/hires/<id>/status/
    Request body: {"status": "accepted"}

    Error responses:
    - 400: Invalid status or transition
    - 403: Not a participant, or not the party allowed to make this change
    - 404: Hire not found
    - 409: The hire changed concurrently; reload and retry
    """

    permission_classes = [IsHireParticipant]

    def put(self, request, *args, **kwargs):
        hire = get_object_or_404(Hire.objects.select_related('client', 'professional'), pk=kwargs.get('pk'))
        self.check_object_permissions(request, hire)

        serializer = HireStatusUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            hire = transition_hire(hire, serializer.validated_data['status'], request.user)
        except MarketplaceError as e:
            logger.warning(
                f"Hire status update refused. Hire ID: {hire.pk}, "
                f"Requested: {serializer.validated_data['status']}, Reason: {e.message}, "
                f"User: {request.user.email} (ID: {request.user.id}), IP: {get_client_ip(request)}"
            )
            return error_response(e)

        return Response(HireSerializer(hire, context={'request': request}).data, status=status.HTTP_200_OK)


class PublishPendingRequestView(APIView):
    """
    POST /api/hires/publish-pending/

    Publishes the request returned by the guest flow (no matching
    professional) as an open request of the now registered client.
    """

    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = PendingRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            hire = publish_pending_request(request.user, serializer.validated_data)
        except DjangoValidationError as e:
            return validation_error_response(e)

        return Response(HireSerializer(hire, context={'request': request}).data, status=status.HTTP_201_CREATED)


# ============================================================================
# Guest flow
# ============================================================================

class GuestProfessionalListView(APIView):
    """GET /api/guest/professionals/?category=: ranked exact-category matches."""

    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, *args, **kwargs):
        category = (request.query_params.get('category') or '').strip()
        if not category:
            return Response({'category': ['This field is required.']}, status=status.HTTP_400_BAD_REQUEST)

        now = timezone.now()
        professionals = matching_professionals(category, now=now)
        serializer = ProfessionalSerializer(professionals, many=True, context={'request': request, 'now': now})
        return Response(serializer.data, status=status.HTTP_200_OK)


class GuestHireCreateView(APIView):
    """
    POST /api/guest/hires/

    Returns 201 with the hire when a professional was chosen, or 202 with
    the pending request when the category has no professionals (the visitor
    must register and publish it).
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'guest_contact'

    def post(self, request, *args, **kwargs):
        serializer = GuestContactSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data

        try:
            hire = submit_guest_contact(
                name=data['name'],
                email=data['email'],
                phone=data['phone'],
                category=data['category'],
                description=data['description'],
                department=data['department'],
                city=data['city'],
                barrio=data['barrio'],
                timing=data['timing'],
                professional_id=data.get('professional_id'),
            )
        except RegistrationRequired as e:
            return Response(
                {
                    'detail': e.message,
                    'registration_required': True,
                    'pending_request': e.pending_request.as_dict(),
                },
                status=status.HTTP_202_ACCEPTED
            )
        except DjangoValidationError as e:
            return validation_error_response(e)

        logger.info(f"Guest hire created. Hire ID: {hire.pk}, IP: {get_client_ip(request)}")
        return Response(HireSerializer(hire, context={'request': request}).data, status=status.HTTP_201_CREATED)


class GuestReviewView(APIView):
    """
    GET  /api/guest/reviews/<token>/  hire summary for the review page
    POST /api/guest/reviews/<token>/  submit the guest review
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'guest_review'

    def _get_hire(self, token):
        try:
            return hire_for_review_token(token)
        except Hire.DoesNotExist:
            return None

    def get(self, request, *args, **kwargs):
        hire = self._get_hire(kwargs.get('token'))
        if hire is None:
            return Response({'detail': 'Invalid review link.'}, status=status.HTTP_404_NOT_FOUND)
        return Response(GuestHireSummarySerializer(hire).data, status=status.HTTP_200_OK)

    def post(self, request, *args, **kwargs):
        token = kwargs.get('token')
        hire = self._get_hire(token)
        if hire is None:
            return Response({'detail': 'Invalid review link.'}, status=status.HTTP_404_NOT_FOUND)

        serializer = GuestReviewCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            review = submit_guest_review(
                hire.pk,
                token,
                serializer.validated_data['rating'],
                serializer.validated_data['comment'],
            )
        except MarketplaceError as e:
            return error_response(e)
        except DjangoValidationError as e:
            return validation_error_response(e)

        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)


class GuestCompletionView(APIView):
    """POST /api/guest/reviews/<token>/complete/: guest confirms the work is done."""

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'guest_review'

    def post(self, request, *args, **kwargs):
        try:
            hire = confirm_completion_with_token(kwargs.get('token'))
        except Hire.DoesNotExist:
            return Response({'detail': 'Invalid review link.'}, status=status.HTTP_404_NOT_FOUND)
        except MarketplaceError as e:
            return error_response(e)

        return Response(GuestHireSummarySerializer(hire).data, status=status.HTTP_200_OK)


# ============================================================================
# Reviews
# ============================================================================

class ReviewCreateView(APIView):
    """
    POST /api/reviews/

    Error responses:
    - 400: Hire not completed, already reviewed, or invalid rating/comment
    - 403: Not the hire's client
    - 404: Hire not found
    """

    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = ReviewCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data

        try:
            review = submit_review(data['hire_id'], data['rating'], data['comment'], actor=request.user)
        except Hire.DoesNotExist:
            return Response({'detail': 'Hire not found.'}, status=status.HTTP_404_NOT_FOUND)
        except MarketplaceError as e:
            return error_response(e)
        except DjangoValidationError as e:
            return validation_error_response(e)

        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)


class ClientReviewListCreateView(APIView):
    """
    GET  /api/clients/<id>/reviews/  ratings of a client with their average
    POST /api/clients/<id>/reviews/  rate a client you worked with

    Professionals only.

    Error responses:
    - 400: No accepted hire with this client, already rated, or invalid rating/comment
    - 403: Not a professional, or rating yourself
    - 404: Client not found
    """

    permission_classes = [IsAuthenticated, IsProfessional]

    def get(self, request, *args, **kwargs):
        client = get_object_or_404(User, pk=kwargs.get('pk'))
        summary = client_rating_summary(client.pk)

        return Response(
            {
                'client': client.pk,
                'average_rating': str(summary['average_rating']),
                'count': summary['count'],
                'results': ClientReviewSerializer(summary['reviews'], many=True).data,
            },
            status=status.HTTP_200_OK
        )

    def post(self, request, *args, **kwargs):
        serializer = ClientReviewCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data

        try:
            review = submit_client_review(kwargs.get('pk'), data['rating'], data['comment'], actor=request.user)
        except User.DoesNotExist:
            return Response({'detail': 'Client not found.'}, status=status.HTTP_404_NOT_FOUND)
        except MarketplaceError as e:
            return error_response(e)
        except DjangoValidationError as e:
            return validation_error_response(e)

        return Response(ClientReviewSerializer(review).data, status=status.HTTP_201_CREATED)


# ============================================================================
# Notifications & chat
# ============================================================================

class NotificationListView(generics.ListAPIView):
    """GET /api/notifications/?unread=true"""

    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        queryset = Notification.objects.filter(recipient=self.request.user)
        if self.request.query_params.get('unread', '').lower() == 'true':
            queryset = queryset.filter(read=False)
        return queryset


class NotificationMarkReadView(APIView):
    """POST /api/notifications/read/ with optional {"ids": [...]}"""

    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = NotificationMarkReadSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        updated = mark_notifications_read(request.user, serializer.validated_data.get('ids'))
        return Response({'updated': updated}, status=status.HTTP_200_OK)


class MessageCreateView(APIView):
    """
    POST /api/conversations/<id>/messages/

    The other participant is notified; notification problems never fail the
    request.
    """

    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        conversation = get_object_or_404(Conversation, pk=kwargs.get('pk'))
        if request.user.id not in (conversation.participant1_id, conversation.participant2_id):
            return Response(
                {'detail': 'You are not a participant of this conversation.'},
                status=status.HTTP_403_FORBIDDEN
            )

        serializer = MessageSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        with transaction.atomic():
            message = Message.objects.create(
                conversation=conversation,
                sender=request.user,
                content=serializer.validated_data['content'],
            )

        dispatch_new_message(message)
        return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)
