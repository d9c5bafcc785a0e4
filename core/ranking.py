"""
Directory ranking for professional discovery.

``rank`` is pure: it never touches the database and never mutates its input.
Premium status is recomputed on every call from the stored flag and the
subscription expiry.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from django.utils import timezone

from .exceptions import InvalidFilter
from .models import is_premium_effective


@dataclass(frozen=True)
class DirectoryFilters:
    """
    Discovery filters.

    - search: case-insensitive substring over name, profession and city
    - category: exact profession match
    - city / barrio: location; barrio requires city
    - min_rating: rating floor, 0 disables it
    """
    search: str = ''
    category: str = ''
    city: str = ''
    barrio: str = ''
    min_rating: Decimal = Decimal('0')

    def __post_init__(self):
        if self.barrio and not self.city:
            raise InvalidFilter('Select a city before filtering by barrio.')
        if self.min_rating < 0 or self.min_rating > 5:
            raise InvalidFilter('Minimum rating must be between 0 and 5.')

    @classmethod
    def from_query_params(cls, params):
        """Build filters from request query parameters."""
        raw_rating = params.get('min_rating') or '0'
        try:
            min_rating = Decimal(raw_rating)
        except InvalidOperation:
            raise InvalidFilter('Invalid value for "min_rating". Must be a valid number.')
        if not min_rating.is_finite():
            raise InvalidFilter('Invalid value for "min_rating". Must be a valid number.')
        return cls(
            search=(params.get('search') or '').strip(),
            category=(params.get('category') or '').strip(),
            city=(params.get('city') or '').strip(),
            barrio=(params.get('barrio') or '').strip(),
            min_rating=min_rating,
        )


def _rating(professional):
    rating = getattr(professional, 'rating', None)
    if rating is None:
        return Decimal('0')
    return Decimal(str(rating))


def _premium_rank(professional, now):
    return 1 if is_premium_effective(
        getattr(professional, 'is_premium', False),
        getattr(professional, 'subscription_end_date', None),
        now,
    ) else 0


def _matches(professional, filters):
    if filters.search:
        needle = filters.search.lower()
        haystack = (
            getattr(professional, 'display_name', '') or '',
            getattr(professional, 'profession', '') or '',
            getattr(professional, 'city', '') or '',
        )
        if not any(needle in field.lower() for field in haystack):
            return False

    if filters.category and (professional.profession or '') != filters.category:
        return False

    if filters.city and (professional.city or '').lower() != filters.city.lower():
        return False

    if filters.barrio and (getattr(professional, 'barrio', '') or '').lower() != filters.barrio.lower():
        return False

    if filters.min_rating and _rating(professional) < filters.min_rating:
        return False

    return True


def rank(professionals, filters=None, now=None):
    """
    Filter and order professionals for discovery.

    Ordering: effective premium first, then rating descending. ``sorted`` is
    stable, so records tied on both keys keep their input order.

    Args:
        professionals: Iterable of Professional-like records
        filters: DirectoryFilters (None means no filtering)
        now: Reference time for premium expiry (defaults to timezone.now())

    Returns:
        list: New list of the matching records
    """
    if now is None:
        now = timezone.now()
    if filters is None:
        filters = DirectoryFilters()

    matching = [p for p in professionals if _matches(p, filters)]
    return sorted(matching, key=lambda p: (-_premium_rank(p, now), -_rating(p)))


def guest_matches(professionals, category, now=None):
    """Professionals offered to a guest for a category (exact match)."""
    return rank(professionals, DirectoryFilters(category=category), now=now)
