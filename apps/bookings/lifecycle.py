"""
Booking lifecycle — who may move a booking from which status to which.

  From         | Client     | Massager                | Admin
  -------------+------------+-------------------------+------
  pending      | cancelled  | confirmed, rejected     | any
  confirmed    | cancelled  | in-progress, cancelled  | any
  in-progress  | —          | completed               | any
  terminal     | —          | —                       | —

Public API:
  allowed_targets(role, current_status)
  share_contact_once(booking_id)
  set_booking_status(booking_id, actor, new_status, reason=None)
"""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from apps.accounts.models import Role, actor_label
from apps.massagers.models import MassagerProfile
from apps.notifications.notify import send_booking_cancelled, send_contact_details

from .engine import assert_slot_free
from .exceptions import InvalidTransition, NotFound, Unauthorized
from .models import (
    ACTIVE_STATUSES,
    CANCELLATION_REASON_MAX_LENGTH,
    TERMINAL_STATUSES,
    Booking,
    BookingStatus,
    PaymentStatus,
)

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    Role.CLIENT: {
        BookingStatus.PENDING:     frozenset({BookingStatus.CANCELLED}),
        BookingStatus.CONFIRMED:   frozenset({BookingStatus.CANCELLED}),
    },
    Role.MASSAGER: {
        BookingStatus.PENDING:     frozenset({BookingStatus.CONFIRMED, BookingStatus.REJECTED}),
        BookingStatus.CONFIRMED:   frozenset({BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED}),
        BookingStatus.IN_PROGRESS: frozenset({BookingStatus.COMPLETED}),
    },
}


def allowed_targets(role, current_status) -> frozenset:
    """Statuses `role` may move a booking to from `current_status`."""
    if current_status in TERMINAL_STATUSES:
        return frozenset()
    if role == Role.ADMIN:
        return frozenset(BookingStatus.values) - {current_status}
    return ALLOWED_TRANSITIONS.get(role, {}).get(current_status, frozenset())


def _authorize(booking: Booking, actor, new_status) -> None:
    role = getattr(actor, 'role', None)
    if getattr(actor, 'is_platform_admin', False):
        is_party = True
    elif getattr(actor, 'is_client', False):
        is_party = actor.id == booking.client_id
    elif getattr(actor, 'is_massager', False):
        is_party = actor.id == booking.massager_id
    else:
        is_party = False

    if not is_party:
        raise Unauthorized('You are not allowed to change this booking.')
    if new_status not in allowed_targets(role, booking.status):
        raise Unauthorized(
            f"A {role or 'unknown'} cannot move a booking from "
            f"{booking.status} to {new_status}."
        )


def share_contact_once(booking_id) -> bool:
    """
    Send the massager's contact to the client, at most once per booking.
    Called when a paid booking is confirmed, whichever of the two happens last.
    """
    updated = Booking.objects.filter(
        pk=booking_id, contact_shared_at__isnull=True,
    ).update(contact_shared_at=timezone.now())
    if not updated:
        return False
    booking = Booking.objects.select_related('client', 'massager').get(pk=booking_id)
    send_contact_details(booking)
    return True


def set_booking_status(booking_id, actor, new_status, reason=None) -> Booking:
    """
    Apply a status change on behalf of `actor` (anything with .id and .role).

    Raises:
      NotFound           — booking does not exist
      InvalidTransition  — unknown status, same status, or booking is terminal
      Unauthorized       — actor not permitted for this edge
      SlotConflict       — activating the booking would overlap another active one
      ValidationError    — cancellation reason too long
    """
    if new_status not in BookingStatus.values:
        raise InvalidTransition(f"Unknown booking status '{new_status}'.")
    if reason and len(reason) > CANCELLATION_REASON_MAX_LENGTH:
        raise ValidationError(
            f'Reason cannot exceed {CANCELLATION_REASON_MAX_LENGTH} characters.'
        )

    with transaction.atomic():
        try:
            booking = Booking.objects.select_for_update().get(pk=booking_id)
        except Booking.DoesNotExist:
            raise NotFound('Booking not found.')

        if booking.is_terminal:
            raise InvalidTransition(
                f'Booking is already {booking.status}; no further changes are allowed.'
            )
        if booking.status == new_status:
            raise InvalidTransition(f'Booking is already {new_status}.')

        _authorize(booking, actor, new_status)

        # Pending bookings never block a slot, so overlap is re-checked
        # the moment one becomes active.
        if new_status in ACTIVE_STATUSES and not booking.is_active:
            assert_slot_free(booking)

        old_status = booking.status
        booking.transition_to(new_status, changed_by=actor_label(actor), reason=reason)

        if new_status == BookingStatus.COMPLETED:
            MassagerProfile.objects.filter(user_id=booking.massager_id).update(
                completed_sessions=F('completed_sessions') + 1,
            )

    logger.info(
        'Booking %s: %s → %s by %s', booking.id_short, old_status, new_status, actor_label(actor),
    )

    if new_status == BookingStatus.CANCELLED:
        send_booking_cancelled(booking, reason=reason or '')
    elif new_status in ACTIVE_STATUSES and booking.payment_status == PaymentStatus.PAID:
        share_contact_once(booking.pk)

    return booking
