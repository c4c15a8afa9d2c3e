"""
Payment model — records each Telebirr payment attempt.

A booking may accumulate several attempts (a failed attempt is retried with a
brand-new reference); the most recent one is the booking's active attempt.
Rows are never deleted: they are the audit trail of money movement.
"""
from django.db import models
from apps.core.models import BaseModel
from apps.bookings.models import Booking


class TransactionStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    SUCCESS = 'success', 'Success'
    FAILED  = 'failed',  'Failed'


class Payment(BaseModel):
    """
    Created when the client initiates payment (before the gateway call).
    Updated by the gateway callback, a verification poll, or the
    reconciliation sweep.
    """
    booking = models.ForeignKey(
        Booking, on_delete=models.PROTECT, related_name='payments',
    )
    transaction_id = models.CharField(max_length=64, unique=True)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default='ETB')
    method = models.CharField(max_length=20, default='telebirr')
    payer_phone = models.CharField(max_length=16)
    status = models.CharField(
        max_length=10, choices=TransactionStatus.choices,
        default=TransactionStatus.PENDING, db_index=True,
    )
    gateway_response = models.JSONField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = 'Payment'
        verbose_name_plural = 'Payments'
        ordering = ['-created_at']
        get_latest_by = 'created_at'

    def __str__(self):
        return f"Payment {self.transaction_id} [{self.status}] — {self.amount} {self.currency}"

    @property
    def is_latest_attempt(self):
        latest = (
            Payment.objects
            .filter(booking_id=self.booking_id)
            .order_by('-created_at')
            .values_list('pk', flat=True)
            .first()
        )
        return latest == self.pk
