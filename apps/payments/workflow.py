"""
Payment confirmation workflow.

Booking payment_status moves one way only:

    pending ──► paid ──► refunded (admin)
       │
       └──► failed ──► pending (only by a brand-new attempt)

Every write below is a conditional update (`filter(<expected state>).update`)
so that duplicate or reordered gateway callbacks can never apply twice or
move a booking backwards. The caller whose update actually flipped the row
is the one that sends notifications.

Gateway calls are made outside database transactions.

Public API:
  initiate_payment(booking_id, actor, payer_phone, gateway=None)
  apply_payment_result(reference, result, payload=None)
  verify_payment(reference, gateway=None)
  confirm_payment_manually(booking_id, actor, note='')
  refund_payment(booking_id, actor)
"""
import logging
import secrets

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from apps.accounts.models import Role, actor_label, normalize_phone
from apps.bookings.engine import assert_slot_free
from apps.bookings.lifecycle import share_contact_once
from apps.bookings.exceptions import (
    InvalidTransition,
    NotFound,
    SlotConflict,
    Unauthorized,
)
from apps.bookings.models import Booking, BookingStatus, PaymentStatus
from apps.notifications.notify import notify_admin

from .gateway import RESULT_PENDING, RESULT_SUCCESS, get_gateway, normalize_result
from .models import Payment, TransactionStatus

logger = logging.getLogger(__name__)

GATEWAY_ACTOR = 'telebirr'


def _generate_reference(booking: Booking) -> str:
    return f'DMP-{booking.id_short}-{secrets.token_hex(6).upper()}'


def _lock_booking(booking_id) -> Booking:
    try:
        return Booking.objects.select_for_update().get(pk=booking_id)
    except Booking.DoesNotExist:
        raise NotFound('Booking not found.')


def _require_admin(actor) -> None:
    if getattr(actor, 'role', None) != Role.ADMIN:
        raise Unauthorized('Only platform admins can do this.')


# ─────────────────────────────────────────────────────────────────────────────
# Internal: the single pending → paid transition
# ─────────────────────────────────────────────────────────────────────────────

def _mark_paid(booking: Booking, changed_by: str, confirmed_by_id=None, reference=None):
    """
    Flip booking.payment_status pending → paid and confirm the booking if it
    is still pending. Must run inside transaction.atomic with `booking` locked.

    Returns (newly_paid, alert). `alert` is a message for the admins when the
    money arrived but the booking could not be confirmed, or when gateway
    attempt `reference` paid for a booking that was already paid.
    """
    ref = booking.id_short

    if booking.is_terminal:
        return False, (
            f'Payment received for booking #{ref}, which is already {booking.status}. '
            f'A manual refund is required.'
        )

    now = timezone.now()
    updated = Booking.objects.filter(
        pk=booking.pk, payment_status=PaymentStatus.PENDING,
    ).update(
        payment_status=PaymentStatus.PAID,
        payment_confirmed_at=now,
        payment_confirmed_by_id=confirmed_by_id,
        updated_at=now,
    )
    if not updated:
        booking.refresh_from_db(fields=['payment_status'])
        if booking.payment_status == PaymentStatus.FAILED:
            return False, (
                f'Gateway reported success for booking #{ref} after its payment was '
                f'marked failed. Review and confirm manually.'
            )
        if reference and booking.payment_status in (PaymentStatus.PAID, PaymentStatus.REFUNDED):
            logger.warning('Booking %s paid twice; attempt %s needs a refund', ref, reference)
            return False, (
                f'Payment {reference} succeeded for booking #{ref}, which was already '
                f'{booking.payment_status}. The client was charged twice; refund this attempt.'
            )
        logger.info('Booking %s already %s — nothing to do', ref, booking.payment_status)
        return False, None

    booking.refresh_from_db()
    if booking.status != BookingStatus.PENDING:
        return True, None

    try:
        with transaction.atomic():
            assert_slot_free(booking)
    except SlotConflict:
        logger.warning('Booking %s paid but overlaps an active booking; left pending', ref)
        return True, (
            f'Booking #{ref} is paid but overlaps another confirmed session. '
            f'It stays pending until an admin resolves it.'
        )

    booking.transition_to(BookingStatus.CONFIRMED, changed_by=changed_by, reason='Payment received')
    return True, None


def _after_paid(booking_id, newly_paid, alert) -> None:
    if newly_paid:
        status = Booking.objects.filter(pk=booking_id).values_list('status', flat=True).first()
        if status in (BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS):
            share_contact_once(booking_id)
    if alert:
        notify_admin(alert)


# ─────────────────────────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────────────────────────

def initiate_payment(booking_id, actor, payer_phone, gateway=None) -> Payment:
    """
    Start a new payment attempt for the client's booking.

    Raises:
      ValidationError    — payer phone is not a valid Ethiopian mobile
      NotFound           — booking does not exist
      Unauthorized       — actor is not the booking's client
      InvalidTransition  — booking already paid/refunded or terminal
      GatewayUnavailable — gateway error or timeout (the attempt stays pending)
    """
    try:
        phone = normalize_phone(payer_phone)
    except ValueError as exc:
        raise ValidationError(str(exc))

    with transaction.atomic():
        booking = _lock_booking(booking_id)

        if getattr(actor, 'id', None) != booking.client_id:
            raise Unauthorized('Only the client who made the booking can pay for it.')
        if booking.payment_status in (PaymentStatus.PAID, PaymentStatus.REFUNDED):
            raise InvalidTransition(f'Booking payment is already {booking.payment_status}.')
        if booking.is_terminal:
            raise InvalidTransition(f'Booking is {booking.status}; it can no longer be paid.')

        if booking.payment_status == PaymentStatus.FAILED:
            Booking.objects.filter(
                pk=booking.pk, payment_status=PaymentStatus.FAILED,
            ).update(payment_status=PaymentStatus.PENDING, updated_at=timezone.now())

        payment = Payment.objects.create(
            booking=booking,
            transaction_id=_generate_reference(booking),
            amount=booking.total_amount,
            payer_phone=phone,
        )

    logger.info('Payment %s created for booking %s (%s ETB)',
                payment.transaction_id, booking.id_short, payment.amount)

    gateway = gateway or get_gateway()
    response = gateway.initiate(
        payment.amount, phone, payment.transaction_id,
        f'Dimple massage booking #{booking.id_short}',
    )

    Payment.objects.filter(pk=payment.pk).update(gateway_response=response)
    payment.gateway_response = response
    return payment


def apply_payment_result(reference, result, payload=None) -> None:
    """
    Apply a gateway outcome (callback, poll or sweep) to the attempt `reference`.
    Safe to call any number of times, in any order.

    Raises NotFound for an unknown reference.
    """
    result = normalize_result(result)

    with transaction.atomic():
        try:
            payment = Payment.objects.select_for_update().get(transaction_id=reference)
        except Payment.DoesNotExist:
            raise NotFound(f'No payment with reference {reference}.')

        if result == RESULT_PENDING:
            logger.info('Payment %s still pending at gateway', reference)
            return

        booking = _lock_booking(payment.booking_id)
        new_status = TransactionStatus.SUCCESS if result == RESULT_SUCCESS else TransactionStatus.FAILED
        fields = {'status': new_status, 'completed_at': timezone.now(), 'updated_at': timezone.now()}
        if payload is not None:
            fields['gateway_response'] = payload

        updated = Payment.objects.filter(
            pk=payment.pk, status=TransactionStatus.PENDING,
        ).update(**fields)
        if not updated:
            logger.info('Payment %s already %s — ignoring %s', reference, payment.status, result)
            return

        newly_paid, alert = False, None
        if result == RESULT_SUCCESS:
            newly_paid, alert = _mark_paid(booking, changed_by=GATEWAY_ACTOR, reference=reference)
        elif payment.is_latest_attempt:
            Booking.objects.filter(
                pk=booking.pk, payment_status=PaymentStatus.PENDING,
            ).update(payment_status=PaymentStatus.FAILED, updated_at=timezone.now())

    logger.info('Payment %s → %s (booking %s)', reference, result, booking.id_short)
    _after_paid(booking.pk, newly_paid, alert)


def verify_payment(reference, gateway=None) -> str:
    """Poll the gateway for `reference` and apply what it reports."""
    gateway = gateway or get_gateway()
    response = gateway.verify(reference)
    result = normalize_result(response.get('status'))
    apply_payment_result(reference, result, payload=response)
    return result


def confirm_payment_manually(booking_id, actor, note='') -> Booking:
    """
    Admin override for payments verified outside the gateway.
    Already-paid bookings are left as they are.
    """
    _require_admin(actor)

    with transaction.atomic():
        booking = _lock_booking(booking_id)
        if booking.is_terminal:
            raise InvalidTransition(f'Booking is {booking.status}; payment cannot be confirmed.')
        if booking.payment_status in (PaymentStatus.FAILED, PaymentStatus.REFUNDED):
            raise InvalidTransition(
                f'Booking payment is {booking.payment_status}; the client must pay again.'
            )
        newly_paid, alert = _mark_paid(
            booking, changed_by=actor_label(actor), confirmed_by_id=actor.id,
        )

    if newly_paid:
        logger.info('Booking %s payment confirmed manually by %s. %s',
                    booking.id_short, actor_label(actor), note)
    _after_paid(booking.pk, newly_paid, alert)
    booking.refresh_from_db()
    return booking


def refund_payment(booking_id, actor) -> Booking:
    """Admin-only paid → refunded. Allowed on terminal bookings too."""
    _require_admin(actor)

    with transaction.atomic():
        booking = _lock_booking(booking_id)
        updated = Booking.objects.filter(
            pk=booking.pk, payment_status=PaymentStatus.PAID,
        ).update(payment_status=PaymentStatus.REFUNDED, updated_at=timezone.now())
        if not updated:
            raise InvalidTransition(
                f'Only paid bookings can be refunded (payment is {booking.payment_status}).'
            )

    logger.info('Booking %s refunded by %s', booking.id_short, actor_label(actor))
    booking.refresh_from_db()
    return booking
