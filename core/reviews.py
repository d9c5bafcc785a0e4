"""
Review gate: at most one review per hire, only after completion.

Professionals can also rate the clients they worked with, once per client.
"""

import logging
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import Avg, Count
from django.utils import timezone

from .exceptions import DuplicateError, NotEligibleError, Unauthorized
from .lifecycle import review_token_matches, transition_hire
from .models import ClientReview, Hire, Review, User
from .notifications import dispatch_review_created

logger = logging.getLogger(__name__)


def hire_for_review_token(token):
    """
    Resolve the hire a guest token was issued for.

    Raises:
        Hire.DoesNotExist: Unknown token
    """
    if not token:
        raise Hire.DoesNotExist('Review token is required.')
    hire = Hire.objects.select_related('professional').get(review_token=token)
    if not review_token_matches(hire, token):
        raise Hire.DoesNotExist('Review token is invalid.')
    return hire


def _create_review(hire, rating, comment, *, client=None, guest_name=''):
    if Review.objects.filter(hire_id=hire.pk).exists():
        raise DuplicateError()

    review = Review(
        hire=hire,
        professional_id=hire.professional_id,
        client=client,
        rating=rating,
        comment=comment or '',
        is_guest_review=client is None,
        guest_reviewer_name=guest_name,
    )
    # Uniqueness of the hire is left to the database constraint
    review.full_clean(exclude=['hire'])

    try:
        with transaction.atomic():
            review.save()
            if client is None:
                consumed = Hire.objects.filter(pk=hire.pk, reviewed_by_guest=False).update(
                    reviewed_by_guest=True,
                    updated_at=timezone.now(),
                )
                if consumed == 0:
                    raise DuplicateError()
    except IntegrityError:
        logger.warning(f"Duplicate review attempt for hire {hire.pk}")
        raise DuplicateError()

    logger.info(
        f"Review created. Review ID: {review.pk}, Hire ID: {hire.pk}, "
        f"Professional: {hire.professional_id}, Rating: {rating}, Guest: {client is None}"
    )
    dispatch_review_created(review)
    return review


def submit_review(hire_id, rating, comment='', actor=None):
    """
    Review a hire as its owning client.

    Returns:
        Review: The created review

    Raises:
        Hire.DoesNotExist: Unknown hire
        Unauthorized: Actor is not the hire's client
        NotEligibleError: Hire is not completed
        DuplicateError: The hire already has a review
        ValidationError: Rating outside 1-5 or comment too long
    """
    hire = Hire.objects.select_related('professional').get(pk=hire_id)

    if actor is None or hire.client_id is None or hire.client_id != actor.id:
        raise Unauthorized('You can only review hires you requested.')

    if hire.status != Hire.Status.COMPLETED:
        raise NotEligibleError(f'Only completed hires can be reviewed. This hire is {hire.status}.')

    return _create_review(hire, rating, comment, client=actor)


def submit_guest_review(hire_id, token, rating, comment=''):
    """
    Review a guest hire with its review token.

    The token must belong to ``hire_id``; the review consumes it.
    """
    hire = Hire.objects.select_related('professional').get(pk=hire_id)

    if not hire.is_guest or not review_token_matches(hire, token):
        raise Unauthorized('Invalid review link.')

    if hire.status != Hire.Status.COMPLETED:
        raise NotEligibleError(f'Only completed hires can be reviewed. This hire is {hire.status}.')

    if hire.reviewed_by_guest:
        raise DuplicateError()

    return _create_review(hire, rating, comment, guest_name=hire.guest_name)


def confirm_completion_with_token(token, now=None):
    """Guest confirmation of a hire waiting for client approval."""
    hire = hire_for_review_token(token)
    return transition_hire(hire, Hire.Status.COMPLETED, None, review_token=token, now=now)


def submit_client_review(client_id, rating, comment='', actor=None):
    """
    Rate a client as a professional who worked with them.

    The professional must have accepted at least one hire from the client.
    Each professional rates a given client once.

    Returns:
        ClientReview: The created review

    Raises:
        User.DoesNotExist: Unknown client
        Unauthorized: Actor has no professional profile, or rates themselves
        NotEligibleError: No accepted hire between the two
        DuplicateError: The professional already rated this client
        ValidationError: Rating outside 1-5 or comment too long
    """
    profile = getattr(actor, 'professional_profile', None) if actor is not None and actor.is_authenticated else None
    if profile is None:
        raise Unauthorized('Only professionals can rate clients.')

    client = User.objects.get(pk=client_id)
    if client.pk == actor.id:
        raise Unauthorized('You cannot rate yourself.')

    worked_together = Hire.objects.filter(
        client=client,
        professional=profile,
        status__in=Hire.CONTACT_VISIBLE_STATUSES,
    ).exists()
    if not worked_together:
        raise NotEligibleError('You can only rate clients whose request you accepted.')

    if ClientReview.objects.filter(professional=profile, client=client).exists():
        raise DuplicateError('You already rated this client.')

    review = ClientReview(professional=profile, client=client, rating=rating, comment=comment or '')
    # The pair uniqueness is left to the database constraint
    review.full_clean(validate_constraints=False)

    try:
        with transaction.atomic():
            review.save()
    except IntegrityError:
        logger.warning(f"Duplicate client review attempt. Client: {client.pk}, Professional: {profile.pk}")
        raise DuplicateError('You already rated this client.')

    logger.info(
        f"Client review created. Review ID: {review.pk}, Client: {client.pk}, "
        f"Professional: {profile.pk}, Rating: {rating}"
    )
    return review


def client_rating_summary(client_id):
    """
    Reviews of a client, newest first, with their 2-decimal mean.

    Returns:
        dict: average_rating (Decimal, 0.00 without reviews), count, reviews
    """
    reviews = ClientReview.objects.filter(client_id=client_id).select_related('professional')
    stats = reviews.aggregate(avg=Avg('rating'), count=Count('id'))
    avg_rating = stats['avg']
    return {
        'average_rating': (
            Decimal(str(avg_rating)).quantize(Decimal('0.01')) if avg_rating is not None else Decimal('0.00')
        ),
        'count': stats['count'],
        'reviews': reviews.order_by('-created_at', '-pk'),
    }
