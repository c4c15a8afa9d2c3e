from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from apps.core.models import BaseModel
from apps.bookings.models import Booking

REVIEW_MAX_LENGTH = 500


class Rating(BaseModel):
    """
    A client's score for a completed session. One per booking.
    """
    booking = models.OneToOneField(Booking, on_delete=models.PROTECT, related_name='rating')
    client = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='ratings_given',
    )
    massager = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='ratings_received',
    )
    score = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )
    review = models.CharField(max_length=REVIEW_MAX_LENGTH, blank=True)

    class Meta:
        verbose_name = 'Rating'
        verbose_name_plural = 'Ratings'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.score}★ for {self.massager} by {self.client}"
