"""
Booking engine — pure business logic, no HTTP/request awareness.

Public API:
  is_within_availability(schedule, date, start_time, duration_minutes)
  has_conflict(provider_id, date, start_time, duration_minutes, existing_bookings)
  get_active_bookings(massager_id, date, exclude_id=None)
  get_available_start_times(profile, date, duration_minutes, step_minutes=None)
  lock_schedule(massager_id, date)
  assert_slot_free(booking)
  create_booking(client_id, provider_id, date, start_time, duration_minutes)
"""
import logging
from datetime import datetime, date as date_type, time as time_type
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from apps.accounts.models import Role
from apps.core.timewindows import (
    MINUTES_PER_DAY,
    fmt_time,
    minutes_to_time,
    overlaps,
    time_to_minutes,
)
from apps.massagers.models import MassagerProfile, WEEKDAY_CHOICES
from apps.bookings.models import (
    ACTIVE_STATUSES,
    Booking,
    BookingStatus,
    BookingStatusLog,
    PaymentStatus,
    ScheduleLock,
)
from apps.bookings.exceptions import (
    InvalidSlotError,
    NotFound,
    SlotConflict,
    SlotNotAvailable,
    Unauthorized,
)

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = dict(WEEKDAY_CHOICES)


# ── Window helpers ────────────────────────────────────────────────────────────

def _window(start_time: time_type, duration_minutes: int):
    start = time_to_minutes(start_time)
    return start, start + duration_minutes


def validate_window(start_time: time_type, duration_minutes: int) -> None:
    """
    Duration must be within BOOKING_MIN/MAX_DURATION_MINUTES and the window
    must end before midnight on the same day.
    """
    low = settings.BOOKING_MIN_DURATION_MINUTES
    high = settings.BOOKING_MAX_DURATION_MINUTES
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise InvalidSlotError('Duration must be a whole number of minutes.')
    if not low <= duration_minutes <= high:
        raise InvalidSlotError(f'Duration must be between {low} and {high} minutes.')

    _, end = _window(start_time, duration_minutes)
    if end >= MINUTES_PER_DAY:
        raise InvalidSlotError('A session cannot run past midnight.')


def compute_total_amount(hourly_rate, duration_minutes: int) -> Decimal:
    """Hourly rate × duration fraction, rounded to the santim."""
    amount = Decimal(hourly_rate) * Decimal(duration_minutes) / Decimal(60)
    return amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


# ── Core: Availability Evaluator ──────────────────────────────────────────────

def is_within_availability(schedule, booking_date: date_type,
                           start_time: time_type, duration_minutes: int) -> bool:
    """
    True iff [start, start + duration) sits entirely inside ONE open slot
    declared for the weekday of booking_date.

    `schedule` is any iterable of objects exposing weekday, start_time,
    end_time and is_open (AvailabilitySlot rows in production).
    A window spanning two adjacent slots is rejected even if both are open.
    """
    weekday = booking_date.weekday()
    day_slots = [slot for slot in schedule if slot.weekday == weekday]
    if not day_slots:
        return False

    start, end = _window(start_time, duration_minutes)
    return any(
        slot.is_open
        and time_to_minutes(slot.start_time) <= start
        and end <= time_to_minutes(slot.end_time)
        for slot in day_slots
    )


# ── Core: Conflict Detector ───────────────────────────────────────────────────

def has_conflict(provider_id, booking_date: date_type, start_time: time_type,
                 duration_minutes: int, existing_bookings) -> bool:
    """
    True if the candidate window overlaps any active booking of the same
    massager on the same date. Back-to-back windows do not overlap.
    Pending, cancelled and rejected bookings never block.
    """
    start, end = _window(start_time, duration_minutes)
    for booking in existing_bookings:
        if booking.massager_id != provider_id or booking.service_date != booking_date:
            continue
        if booking.status not in ACTIVE_STATUSES:
            continue
        if overlaps(start, end, time_to_minutes(booking.start_time), time_to_minutes(booking.end_time)):
            return True
    return False


def get_active_bookings(massager_id, booking_date: date_type, exclude_id=None):
    qs = Booking.objects.filter(
        massager_id=massager_id,
        service_date=booking_date,
        status__in=ACTIVE_STATUSES,
    )
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    return qs


# ── Core: Per-day serialisation ───────────────────────────────────────────────

def lock_schedule(massager_id, booking_date: date_type) -> ScheduleLock:
    """
    Lock the (massager, date) row until the surrounding transaction ends.
    Must be called inside transaction.atomic.
    """
    ScheduleLock.objects.get_or_create(massager_id=massager_id, service_date=booking_date)
    return (
        ScheduleLock.objects
        .select_for_update()
        .get(massager_id=massager_id, service_date=booking_date)
    )


def assert_slot_free(booking: Booking) -> None:
    """
    Re-check an existing booking against every other active booking of its
    massager that day. Used before a booking becomes active.
    Must be called inside transaction.atomic.

    Raises SlotConflict on overlap.
    """
    lock_schedule(booking.massager_id, booking.service_date)
    others = get_active_bookings(booking.massager_id, booking.service_date, exclude_id=booking.pk)
    if has_conflict(booking.massager_id, booking.service_date, booking.start_time,
                    booking.duration_minutes, others):
        raise SlotConflict(
            'The massager already has a confirmed session overlapping this time.'
        )


# ── Core: Slot listing ────────────────────────────────────────────────────────

def get_available_start_times(profile: MassagerProfile, booking_date: date_type,
                              duration_minutes: int, step_minutes: int = None) -> list:
    """
    List every bookable start for a massager+date+duration.

    Returns a list of dicts:
      [{"start": time, "end": time, "display": "10:00 AM – 11:00 AM",
        "start_str": "10:00", "end_str": "11:00"}, ...]

    Empty list means no availability (past date, day off, paused massager,
    fully booked). Raises InvalidSlotError for a bad duration or step.
    """
    step = settings.SLOT_STEP_MINUTES if step_minutes is None else step_minutes
    validate_window(minutes_to_time(0), duration_minutes)
    if isinstance(step, bool) or not isinstance(step, int) or step <= 0:
        raise InvalidSlotError('Step must be a positive whole number of minutes.')
    if not profile.is_available:
        return []

    now_local = timezone.localtime(timezone.now())
    if booking_date < now_local.date():
        return []

    earliest = time_to_minutes(now_local.time()) if booking_date == now_local.date() else -1
    day_slots = sorted(
        (s for s in profile.availability.all() if s.weekday == booking_date.weekday() and s.is_open),
        key=lambda s: s.start_time,
    )
    active = list(get_active_bookings(profile.user_id, booking_date))

    slots = []
    for slot in day_slots:
        current = time_to_minutes(slot.start_time)
        slot_end = time_to_minutes(slot.end_time)
        while current + duration_minutes <= slot_end:
            end = current + duration_minutes
            busy = any(overlaps(current, end, b.start_minutes, b.end_minutes) for b in active)
            if current > earliest and not busy:
                start_t, end_t = minutes_to_time(current), minutes_to_time(end)
                slots.append({
                    "start": start_t,
                    "end": end_t,
                    "display": f"{fmt_time(start_t)} – {fmt_time(end_t)}",
                    "start_str": start_t.strftime("%H:%M"),
                    "end_str": end_t.strftime("%H:%M"),
                })
            current += step
    return slots


# ── Core: Booking Creation ────────────────────────────────────────────────────

def create_booking(client_id, provider_id, service_date: date_type,
                   start_time: time_type, duration_minutes: int) -> Booking:
    """
    Create a Booking in pending/pending state.

    Steps:
      1. Validate the window shape (duration bounds, no midnight crossing)
      2. Resolve client and massager
      3. Availability Evaluator against the massager's weekly schedule
      4. Conflict Detector, while holding the massager+date lock
      5. Persist with amount snapshot = hourly_rate × duration

    Raises:
      InvalidSlotError  — duration out of range / crosses midnight
      NotFound          — unknown client or massager
      Unauthorized      — client tries to book themselves
      SlotNotAvailable  — outside open hours, in the past, or massager paused
      SlotConflict      — overlaps a confirmed / in-progress booking
    """
    start_time = start_time.replace(second=0, microsecond=0)
    validate_window(start_time, duration_minutes)

    User = get_user_model()
    try:
        client = User.objects.get(pk=client_id, is_active=True)
    except User.DoesNotExist:
        raise NotFound('Client account not found.')

    try:
        profile = MassagerProfile.objects.select_related('user').get(
            user_id=provider_id, user__role=Role.MASSAGER, user__is_active=True,
        )
    except MassagerProfile.DoesNotExist:
        raise NotFound('Massager not found.')

    if client.pk == profile.user_id:
        raise Unauthorized('Massagers cannot book their own sessions.')

    if not profile.is_available:
        raise SlotNotAvailable(f'{profile} is not accepting bookings right now.')

    now_local = timezone.localtime(timezone.now()).replace(tzinfo=None)
    if datetime.combine(service_date, start_time) <= now_local:
        raise SlotNotAvailable('Cannot book a session in the past.')

    if not is_within_availability(profile.availability.all(), service_date, start_time, duration_minutes):
        raise SlotNotAvailable(
            f'{profile} is not available on {WEEKDAY_NAMES[service_date.weekday()]} '
            f'{service_date} at {start_time:%H:%M} for {duration_minutes} minutes.'
        )

    _, end = _window(start_time, duration_minutes)
    with transaction.atomic():
        lock_schedule(profile.user_id, service_date)
        existing = get_active_bookings(profile.user_id, service_date)
        if has_conflict(profile.user_id, service_date, start_time, duration_minutes, existing):
            raise SlotConflict('This time overlaps a confirmed session. Please choose another time.')

        booking = Booking.objects.create(
            client=client,
            massager=profile.user,
            service_date=service_date,
            start_time=start_time,
            end_time=minutes_to_time(end),
            duration_minutes=duration_minutes,
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            total_amount=compute_total_amount(profile.hourly_rate, duration_minutes),
        )
        BookingStatusLog.objects.create(
            booking=booking,
            from_status='',
            to_status=BookingStatus.PENDING,
            changed_by=client.username,
            reason='Booking requested',
        )

    logger.info(
        'Booking %s created: client=%s massager=%s %s %s (%d min)',
        booking.id_short, client.pk, profile.user_id, service_date, start_time, duration_minutes,
    )
    return booking
