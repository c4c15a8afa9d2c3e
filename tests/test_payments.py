from datetime import time
from decimal import Decimal
from unittest import mock

import pytest
from django.core.exceptions import ValidationError

from apps.bookings.exceptions import (
    GatewayUnavailable,
    InvalidTransition,
    NotFound,
    Unauthorized,
)
from apps.bookings.lifecycle import set_booking_status
from apps.bookings.models import BookingStatus, PaymentStatus
from apps.payments.models import Payment, TransactionStatus
from apps.payments.workflow import (
    apply_payment_result,
    confirm_payment_manually,
    initiate_payment,
    refund_payment,
    verify_payment,
)

from .fakes import FakeGateway

pytestmark = pytest.mark.django_db


@pytest.fixture
def booking(make_booking):
    return make_booking(start=time(10, 0), duration=60)


@pytest.fixture
def payment(booking, client_user, gateway):
    return initiate_payment(booking.pk, client_user, '+251 911 000 001', gateway=gateway)


# ── Initiation ────────────────────────────────────────────────────────────────

def test_initiate_records_pending_attempt(booking, payment, gateway):
    assert payment.status == TransactionStatus.PENDING
    assert payment.amount == Decimal('600.00')
    assert payment.payer_phone == '+251911000001'
    assert payment.transaction_id.startswith(f'DMP-{booking.id_short}-')
    assert gateway.initiated[0][2] == payment.transaction_id
    assert Payment.objects.get(pk=payment.pk).gateway_response['reference'] == payment.transaction_id


def test_only_the_client_may_pay(booking, other_client, massager_user, gateway):
    for actor in (other_client, massager_user):
        with pytest.raises(Unauthorized):
            initiate_payment(booking.pk, actor, '0911000001', gateway=gateway)
    assert not gateway.initiated


def test_invalid_payer_phone(booking, client_user, gateway):
    with pytest.raises(ValidationError):
        initiate_payment(booking.pk, client_user, '12345', gateway=gateway)


def test_gateway_outage_leaves_attempt_pending(booking, client_user):
    with pytest.raises(GatewayUnavailable):
        initiate_payment(booking.pk, client_user, '0911000001', gateway=FakeGateway(fail=True))

    attempt = Payment.objects.get(booking=booking)
    assert attempt.status == TransactionStatus.PENDING
    booking.refresh_from_db()
    assert booking.payment_status == PaymentStatus.PENDING


def test_cannot_initiate_for_terminal_booking(make_booking, client_user, gateway):
    booking = make_booking(status=BookingStatus.CANCELLED)
    with pytest.raises(InvalidTransition):
        initiate_payment(booking.pk, client_user, '0911000001', gateway=gateway)


# ── Gateway results ───────────────────────────────────────────────────────────

def test_success_confirms_and_shares_contact_once(booking, payment, mailoutbox):
    apply_payment_result(payment.transaction_id, 'success')
    apply_payment_result(payment.transaction_id, 'success')

    booking.refresh_from_db()
    assert booking.status == BookingStatus.CONFIRMED
    assert booking.payment_status == PaymentStatus.PAID
    assert booking.payment_confirmed_at is not None
    assert booking.status_logs.filter(to_status=BookingStatus.CONFIRMED).count() == 1
    assert len(mailoutbox) == 1

    payment.refresh_from_db()
    assert payment.status == TransactionStatus.SUCCESS
    assert payment.completed_at is not None


def test_success_keeps_massager_confirmation(booking, payment, massager_user, mailoutbox):
    set_booking_status(booking.pk, massager_user, BookingStatus.CONFIRMED)

    apply_payment_result(payment.transaction_id, 'success')

    booking.refresh_from_db()
    assert booking.status == BookingStatus.CONFIRMED
    assert booking.payment_status == PaymentStatus.PAID
    assert len(mailoutbox) == 1


def test_late_success_does_not_revive_cancelled_booking(booking, payment, client_user, mailoutbox):
    set_booking_status(booking.pk, client_user, BookingStatus.CANCELLED)

    with mock.patch('apps.payments.workflow.notify_admin') as alert:
        apply_payment_result(payment.transaction_id, 'success')

    booking.refresh_from_db()
    assert booking.status == BookingStatus.CANCELLED
    assert booking.payment_status == PaymentStatus.PENDING
    assert booking.contact_shared_at is None
    assert 'refund' in alert.call_args[0][0]
    payment.refresh_from_db()
    assert payment.status == TransactionStatus.SUCCESS
    # only the cancellation notice
    assert len(mailoutbox) == 1


def test_replayed_success_after_cancel_changes_nothing(booking, payment, client_user, mailoutbox):
    apply_payment_result(payment.transaction_id, 'success')
    set_booking_status(booking.pk, client_user, BookingStatus.CANCELLED)

    with mock.patch('apps.payments.workflow.notify_admin') as alert:
        apply_payment_result(payment.transaction_id, 'success')

    booking.refresh_from_db()
    assert booking.status == BookingStatus.CANCELLED
    assert booking.payment_status == PaymentStatus.PAID
    assert not alert.called
    # contact details, then the cancellation notice
    assert len(mailoutbox) == 2


def test_success_for_overlapping_booking_stays_pending(booking, payment, make_booking, other_client, mailoutbox):
    make_booking(start=time(10, 30), client=other_client, status=BookingStatus.CONFIRMED)

    with mock.patch('apps.payments.workflow.notify_admin') as alert:
        apply_payment_result(payment.transaction_id, 'success')

    booking.refresh_from_db()
    assert booking.status == BookingStatus.PENDING
    assert booking.payment_status == PaymentStatus.PAID
    assert alert.called
    assert not mailoutbox


def test_paid_overlapping_booking_gets_contact_once_confirmed(
    booking, payment, make_booking, other_client, massager_user, mailoutbox,
):
    blocker = make_booking(start=time(10, 30), client=other_client, status=BookingStatus.CONFIRMED)
    apply_payment_result(payment.transaction_id, 'success')
    set_booking_status(blocker.pk, other_client, BookingStatus.CANCELLED)

    set_booking_status(booking.pk, massager_user, BookingStatus.CONFIRMED)
    set_booking_status(booking.pk, massager_user, BookingStatus.IN_PROGRESS)

    booking.refresh_from_db()
    assert booking.contact_shared_at is not None
    contact_mails = [m for m in mailoutbox if m.to == ['selam@example.com']]
    assert len(contact_mails) == 1
    assert '+251922000001' in contact_mails[0].body


def test_second_successful_attempt_alerts_for_refund(booking, payment, client_user, gateway, mailoutbox):
    second = initiate_payment(booking.pk, client_user, '0911000001', gateway=gateway)

    with mock.patch('apps.payments.workflow.notify_admin') as alert:
        apply_payment_result(payment.transaction_id, 'success')
        apply_payment_result(second.transaction_id, 'success')

    assert alert.call_count == 1
    assert second.transaction_id in alert.call_args[0][0]
    assert 'refund' in alert.call_args[0][0]
    booking.refresh_from_db()
    assert booking.payment_status == PaymentStatus.PAID
    assert len(mailoutbox) == 1


def test_failure_marks_booking_failed(booking, payment):
    apply_payment_result(payment.transaction_id, 'failed')
    apply_payment_result(payment.transaction_id, 'success')

    booking.refresh_from_db()
    assert booking.payment_status == PaymentStatus.FAILED
    assert booking.status == BookingStatus.PENDING
    payment.refresh_from_db()
    assert payment.status == TransactionStatus.FAILED


def test_failure_of_superseded_attempt_is_ignored(booking, payment, client_user, gateway):
    newer = initiate_payment(booking.pk, client_user, '0911000001', gateway=gateway)

    apply_payment_result(payment.transaction_id, 'failed')
    booking.refresh_from_db()
    assert booking.payment_status == PaymentStatus.PENDING

    apply_payment_result(newer.transaction_id, 'failed')
    booking.refresh_from_db()
    assert booking.payment_status == PaymentStatus.FAILED


def test_retry_after_failure_uses_new_reference(booking, payment, client_user, gateway):
    apply_payment_result(payment.transaction_id, 'failed')

    retry = initiate_payment(booking.pk, client_user, '0911000001', gateway=gateway)

    assert retry.transaction_id != payment.transaction_id
    booking.refresh_from_db()
    assert booking.payment_status == PaymentStatus.PENDING

    apply_payment_result(retry.transaction_id, 'success')
    booking.refresh_from_db()
    assert booking.payment_status == PaymentStatus.PAID


def test_pending_result_is_a_no_op(booking, payment):
    apply_payment_result(payment.transaction_id, 'pending')

    payment.refresh_from_db()
    assert payment.status == TransactionStatus.PENDING


def test_unknown_reference():
    with pytest.raises(NotFound):
        apply_payment_result('DMP-NOPE', 'success')


def test_paid_booking_cannot_be_paid_again(booking, payment, client_user, gateway):
    apply_payment_result(payment.transaction_id, 'success')
    with pytest.raises(InvalidTransition):
        initiate_payment(booking.pk, client_user, '0911000001', gateway=gateway)


def test_verify_applies_gateway_status(booking, payment):
    result = verify_payment(payment.transaction_id, gateway=FakeGateway(status='SUCCESS'))

    assert result == 'success'
    booking.refresh_from_db()
    assert booking.payment_status == PaymentStatus.PAID
    payment.refresh_from_db()
    assert payment.gateway_response['status'] == 'SUCCESS'


# ── Admin overrides ───────────────────────────────────────────────────────────

def test_manual_confirmation(booking, platform_admin, mailoutbox):
    updated = confirm_payment_manually(booking.pk, platform_admin, note='Cash receipt #12')
    confirm_payment_manually(booking.pk, platform_admin)

    assert updated.payment_status == PaymentStatus.PAID
    assert updated.status == BookingStatus.CONFIRMED
    assert updated.payment_confirmed_by == platform_admin
    assert len(mailoutbox) == 1


def test_manual_confirmation_is_admin_only(booking, client_user):
    with pytest.raises(Unauthorized):
        confirm_payment_manually(booking.pk, client_user)


def test_refund_after_completion(booking, platform_admin):
    confirm_payment_manually(booking.pk, platform_admin)
    set_booking_status(booking.pk, platform_admin, BookingStatus.COMPLETED)

    refunded = refund_payment(booking.pk, platform_admin)

    assert refunded.payment_status == PaymentStatus.REFUNDED
    assert refunded.status == BookingStatus.COMPLETED


def test_refund_requires_paid_booking(booking, platform_admin, client_user):
    with pytest.raises(InvalidTransition):
        refund_payment(booking.pk, platform_admin)
    with pytest.raises(Unauthorized):
        refund_payment(booking.pk, client_user)
