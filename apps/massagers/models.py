"""
Massager models: MassagerProfile and its weekly AvailabilitySlot rows.
Each profile belongs to exactly one User with role=massager.
"""
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from apps.core.models import BaseModel, UUIDModel
from apps.core.timewindows import overlaps, time_to_minutes


WEEKDAY_CHOICES = [
    (0, 'Monday'), (1, 'Tuesday'), (2, 'Wednesday'),
    (3, 'Thursday'), (4, 'Friday'), (5, 'Saturday'), (6, 'Sunday'),
]


class MassagerProfileQuerySet(models.QuerySet):
    def available(self):
        return self.filter(is_available=True, user__is_active=True)

    def search(self, specialty='', location=''):
        """Case-insensitive filter used by massager discovery."""
        qs = self
        if specialty:
            qs = qs.filter(specialties__icontains=specialty.strip())
        if location:
            qs = qs.filter(location__icontains=location.strip())
        return qs


class MassagerProfile(BaseModel):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='massager_profile',
    )
    bio = models.TextField(blank=True, max_length=500)
    specialties = models.CharField(
        max_length=255, blank=True,
        help_text='Comma-separated, e.g. "Swedish, Deep Tissue"',
    )
    location = models.CharField(max_length=255, blank=True)
    experience_years = models.PositiveIntegerField(default=0)
    hourly_rate = models.DecimalField(
        max_digits=8, decimal_places=2, validators=[MinValueValidator(0)],
        help_text='Price per hour in ETB',
    )
    is_available = models.BooleanField(default=True, db_index=True)

    # Materialised from Rating rows; recomputed on every rating insert.
    rating_average = models.DecimalField(max_digits=3, decimal_places=2, default=0)
    rating_count = models.PositiveIntegerField(default=0)
    completed_sessions = models.PositiveIntegerField(default=0)

    objects = MassagerProfileQuerySet.as_manager()

    class Meta:
        verbose_name = 'Massager Profile'
        verbose_name_plural = 'Massager Profiles'
        ordering = ['-rating_average', 'user__username']

    def __str__(self):
        return self.user.display_name

    @property
    def specialty_list(self):
        return [s.strip() for s in self.specialties.split(',') if s.strip()]


class AvailabilitySlot(UUIDModel):
    """
    One bookable window on a weekday. A weekday may hold several slots
    (e.g. 09:00–12:00 and 14:00–18:00); they must never overlap.
    """
    profile = models.ForeignKey(
        MassagerProfile,
        on_delete=models.CASCADE,
        related_name='availability',
    )
    weekday = models.IntegerField(choices=WEEKDAY_CHOICES, db_index=True)
    start_time = models.TimeField()
    end_time = models.TimeField()
    is_open = models.BooleanField(default=True)

    class Meta:
        verbose_name = 'Availability Slot'
        verbose_name_plural = 'Availability Slots'
        ordering = ['profile', 'weekday', 'start_time']

    def __str__(self):
        return (
            f"{self.profile} — {self.get_weekday_display()} "
            f"({self.start_time.strftime('%H:%M')}–{self.end_time.strftime('%H:%M')})"
            f"{'' if self.is_open else ' [closed]'}"
        )

    def clean(self):
        start, end = time_to_minutes(self.start_time), time_to_minutes(self.end_time)
        if start >= end:
            raise ValidationError('Slot start time must be before its end time.')

        siblings = AvailabilitySlot.objects.filter(
            profile_id=self.profile_id, weekday=self.weekday,
        ).exclude(pk=self.pk)
        for other in siblings:
            if overlaps(start, end, time_to_minutes(other.start_time), time_to_minutes(other.end_time)):
                raise ValidationError(
                    f"Slot overlaps an existing {self.get_weekday_display()} slot "
                    f"({other.start_time.strftime('%H:%M')}–{other.end_time.strftime('%H:%M')})."
                )

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)
