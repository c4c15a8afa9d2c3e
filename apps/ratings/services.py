"""
Rating service — the only way ratings are created.

The massager's rating_average / rating_count are recomputed from the
ratings table inside the same transaction as the insert.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count

from apps.accounts.models import actor_label
from apps.bookings.exceptions import DuplicateRating, NotFound, RatingNotAllowed, Unauthorized
from apps.bookings.models import Booking, BookingStatus
from apps.massagers.models import MassagerProfile

from .models import REVIEW_MAX_LENGTH, Rating

logger = logging.getLogger(__name__)


def _validate(score, review):
    if isinstance(score, bool) or not isinstance(score, int) or not 1 <= score <= 5:
        raise ValidationError('Score must be a whole number from 1 to 5.')
    if len(review) > REVIEW_MAX_LENGTH:
        raise ValidationError(f'Review cannot exceed {REVIEW_MAX_LENGTH} characters.')


def refresh_massager_rating(massager_id) -> None:
    stats = Rating.objects.filter(massager_id=massager_id).aggregate(
        average=Avg('score'), count=Count('id'),
    )
    average = Decimal(str(stats['average'] or 0)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    MassagerProfile.objects.filter(user_id=massager_id).update(
        rating_average=average, rating_count=stats['count'],
    )


def create_rating(booking_id, actor, score, review='') -> Rating:
    """
    Record the client's rating for a completed booking.

    Raises:
      ValidationError   — score outside 1..5 or review too long
      NotFound          — booking does not exist
      Unauthorized      — actor is not the booking's client
      RatingNotAllowed  — booking is not completed
      DuplicateRating   — booking already rated
    """
    review = (review or '').strip()
    _validate(score, review)

    try:
        with transaction.atomic():
            try:
                booking = Booking.objects.select_for_update().get(pk=booking_id)
            except Booking.DoesNotExist:
                raise NotFound('Booking not found.')

            if getattr(actor, 'id', None) != booking.client_id:
                raise Unauthorized('Only the client who booked this session can rate it.')
            if booking.status != BookingStatus.COMPLETED:
                raise RatingNotAllowed('Only completed sessions can be rated.')
            if Rating.objects.filter(booking=booking).exists():
                raise DuplicateRating('This booking has already been rated.')

            rating = Rating.objects.create(
                booking=booking,
                client_id=booking.client_id,
                massager_id=booking.massager_id,
                score=score,
                review=review,
            )
            refresh_massager_rating(booking.massager_id)
    except IntegrityError:
        raise DuplicateRating('This booking has already been rated.')

    logger.info('Booking %s rated %s by %s', booking.id_short, score, actor_label(actor))
    return rating
