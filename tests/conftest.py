from datetime import time, timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.accounts.models import Role, User
from apps.bookings.engine import create_booking
from apps.bookings.models import Booking
from apps.massagers.models import AvailabilitySlot, MassagerProfile

from .fakes import FakeGateway


@pytest.fixture
def client_user(db):
    return User.objects.create_user(
        username='selam', password='pw', role=Role.CLIENT,
        phone='0911000001', email='selam@example.com',
        first_name='Selam', last_name='Bekele',
    )


@pytest.fixture
def other_client(db):
    return User.objects.create_user(
        username='dawit', password='pw', role=Role.CLIENT,
        phone='0911000002', email='dawit@example.com',
    )


@pytest.fixture
def massager_user(db):
    return User.objects.create_user(
        username='hanna', password='pw', role=Role.MASSAGER,
        phone='0922000001', email='hanna@example.com',
        first_name='Hanna', last_name='Tesfaye',
    )


@pytest.fixture
def platform_admin(db):
    return User.objects.create_user(
        username='ops', password='pw', role=Role.ADMIN, email='ops@example.com',
    )


@pytest.fixture
def profile(massager_user):
    """Hanna works Mondays 09:00–17:00 at 600 ETB/hour."""
    profile = MassagerProfile.objects.create(
        user=massager_user,
        hourly_rate=Decimal('600.00'),
        specialties='Swedish, Deep Tissue',
        location='Bole',
        experience_years=4,
    )
    AvailabilitySlot.objects.create(
        profile=profile, weekday=0, start_time=time(9, 0), end_time=time(17, 0),
    )
    return profile


@pytest.fixture
def next_monday():
    today = timezone.localdate()
    return today + timedelta(days=(7 - today.weekday()) % 7 or 7)


@pytest.fixture
def make_booking(client_user, profile, next_monday):
    def _make(start=time(10, 0), duration=60, client=None, status=None):
        booking = create_booking(
            (client or client_user).pk, profile.user_id, next_monday, start, duration,
        )
        if status:
            Booking.objects.filter(pk=booking.pk).update(status=status)
            booking.refresh_from_db()
        return booking
    return _make


@pytest.fixture
def gateway():
    return FakeGateway()
