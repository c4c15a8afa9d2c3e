"""
Bookings app models:
  - ScheduleLock     : Per massager+date row used as a mutex (SELECT FOR UPDATE)
  - Booking          : Core booking record with status / payment-status state
  - BookingStatusLog : Full audit trail of state transitions
"""
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from apps.core.models import BaseModel, UUIDModel, TimestampedModel
from apps.core.timewindows import time_to_minutes


# ── Schedule Lock ─────────────────────────────────────────────────────────────

class ScheduleLock(UUIDModel, TimestampedModel):
    """
    One row per massager per calendar day. Booking creation and activation
    lock this row for the length of their transaction so that the
    read-bookings-then-write sequence cannot interleave for the same day.
    """
    massager = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='schedule_locks',
    )
    service_date = models.DateField()

    class Meta:
        verbose_name = 'Schedule Lock'
        verbose_name_plural = 'Schedule Locks'
        constraints = [
            models.UniqueConstraint(
                fields=['massager', 'service_date'],
                name='uq_schedule_lock_massager_date',
            )
        ]

    def __str__(self):
        return f"Lock: {self.massager} on {self.service_date}"


# ── Booking State Machine ─────────────────────────────────────────────────────

class BookingStatus(models.TextChoices):
    PENDING     = 'pending',     'Pending'
    CONFIRMED   = 'confirmed',   'Confirmed'
    IN_PROGRESS = 'in-progress', 'In Progress'
    COMPLETED   = 'completed',   'Completed'
    CANCELLED   = 'cancelled',   'Cancelled'
    REJECTED    = 'rejected',    'Rejected'


class PaymentStatus(models.TextChoices):
    PENDING  = 'pending',  'Pending'
    PAID     = 'paid',     'Paid'
    FAILED   = 'failed',   'Failed'
    REFUNDED = 'refunded', 'Refunded'


TERMINAL_STATUSES = frozenset({
    BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.REJECTED,
})

# Only these block a window for new bookings.
ACTIVE_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS})

CANCELLATION_REASON_MAX_LENGTH = 500


class Booking(BaseModel):
    """
    Core booking record. Created as pending/pending by engine.create_booking.
    Status transitions go through lifecycle.set_booking_status and
    payment-status transitions through payments.workflow — not direct field writes.
    """
    client = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='client_bookings',
    )
    massager = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='massager_bookings',
    )

    service_date = models.DateField(db_index=True)
    start_time = models.TimeField()
    end_time = models.TimeField()
    duration_minutes = models.PositiveIntegerField()

    status = models.CharField(
        max_length=20, choices=BookingStatus.choices,
        default=BookingStatus.PENDING, db_index=True,
    )
    payment_status = models.CharField(
        max_length=10, choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING, db_index=True,
    )
    total_amount = models.DecimalField(
        max_digits=10, decimal_places=2, validators=[MinValueValidator(0)],
        help_text='Snapshot of hourly rate × duration at creation (ETB)',
    )
    cancellation_reason = models.CharField(max_length=CANCELLATION_REASON_MAX_LENGTH, blank=True)

    payment_confirmed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL,
        null=True, blank=True, related_name='+',
    )
    payment_confirmed_at = models.DateTimeField(null=True, blank=True)
    contact_shared_at = models.DateTimeField(
        null=True, blank=True,
        help_text='When the massager contact was sent to the client.',
    )

    class Meta:
        verbose_name = 'Booking'
        verbose_name_plural = 'Bookings'
        ordering = ['-service_date', '-start_time']
        indexes = [
            models.Index(fields=['massager', 'service_date', 'status'], name='idx_booking_massager_day'),
        ]

    def __str__(self):
        return (
            f"#{self.id_short} | {self.client} → {self.massager} | "
            f"{self.service_date} {self.start_time:%H:%M}-{self.end_time:%H:%M}"
        )

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    @property
    def is_active(self):
        return self.status in ACTIVE_STATUSES

    @property
    def start_minutes(self):
        return time_to_minutes(self.start_time)

    @property
    def end_minutes(self):
        return time_to_minutes(self.end_time)

    # ── State transition helper ───────────────────────────────────────────────

    def transition_to(self, new_status, changed_by, reason=''):
        """Write the new status and its audit row. Callers validate legality first."""
        old_status = self.status
        self.status = new_status
        update_fields = ['status', 'updated_at']
        if new_status == BookingStatus.CANCELLED:
            self.cancellation_reason = reason or ''
            update_fields.append('cancellation_reason')
        self.save(update_fields=update_fields)
        BookingStatusLog.objects.create(
            booking=self,
            from_status=old_status,
            to_status=new_status,
            changed_by=changed_by,
            reason=reason or '',
        )


# ── Booking Audit Log ─────────────────────────────────────────────────────────

class BookingStatusLog(UUIDModel):
    """Immutable audit trail of every status transition on a booking."""
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name='status_logs')
    from_status = models.CharField(max_length=20, choices=BookingStatus.choices, blank=True)
    to_status = models.CharField(max_length=20, choices=BookingStatus.choices)
    changed_by = models.CharField(max_length=80, help_text='username / system / gateway')
    reason = models.TextField(blank=True)
    changed_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Booking Status Log'
        verbose_name_plural = 'Booking Status Logs'
        ordering = ['changed_at']

    def __str__(self):
        return f"Booking {str(self.booking_id)[:8]}: {self.from_status or '∅'} → {self.to_status}"
