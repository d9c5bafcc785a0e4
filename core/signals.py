"""
Django signals for automatic rating recalculation.

The professional's rating and rating_count are derived from their reviews and
refreshed whenever a review is saved or deleted.
"""

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Avg, Count
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import Professional, Review

logger = logging.getLogger(__name__)


def recalculate_professional_rating(professional_id):
    """
    Recompute rating (2-decimal mean, 0.00 without reviews) and rating_count.

    Locks the professional row so concurrent reviews serialize.

    Returns:
        Professional: The updated professional
    """
    with transaction.atomic():
        professional = Professional.objects.select_for_update().get(pk=professional_id)

        stats = Review.objects.filter(professional_id=professional_id).aggregate(
            avg=Avg('rating'),
            count=Count('id'),
        )
        avg_rating = stats['avg']

        professional.rating = (
            Decimal(str(avg_rating)).quantize(Decimal('0.01')) if avg_rating is not None else Decimal('0.00')
        )
        professional.rating_count = stats['count']
        professional.save(update_fields=['rating', 'rating_count', 'updated_at'])

    return professional


@receiver(post_save, sender=Review)
def update_rating_on_review_save(sender, instance, created, **kwargs):
    """
    Refresh the reviewed professional's rating.

    Runs inside the transaction that saved the review: if it fails, the
    review is rolled back with it so ratings and reviews stay in sync.
    """
    try:
        professional = recalculate_professional_rating(instance.professional_id)
        action = "created" if created else "updated"
        logger.info(
            f"Updated rating for review {instance.id} ({action}): "
            f"professional={professional.pk}, rating={professional.rating}, count={professional.rating_count}"
        )
    except Exception as e:
        logger.error(
            f"Error updating rating for review {instance.id}: {e}",
            exc_info=True
        )
        raise


@receiver(post_delete, sender=Review)
def update_rating_on_review_delete(sender, instance, **kwargs):
    """Refresh the rating after a review is removed (admin only)."""
    try:
        if not Professional.objects.filter(pk=instance.professional_id).exists():
            return
        professional = recalculate_professional_rating(instance.professional_id)
        logger.info(
            f"Updated rating after deleting review {instance.id}: "
            f"professional={professional.pk}, rating={professional.rating}"
        )
    except Exception as e:
        logger.error(
            f"Error updating rating after deleting review {instance.id}: {e}",
            exc_info=True
        )
        raise
