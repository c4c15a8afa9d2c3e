from datetime import time
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from apps.accounts.models import Role, User
from apps.massagers.models import AvailabilitySlot, MassagerProfile

pytestmark = pytest.mark.django_db


def test_overlapping_slots_are_rejected(profile):
    with pytest.raises(ValidationError):
        AvailabilitySlot.objects.create(profile=profile, weekday=0, start_time=time(16, 0), end_time=time(18, 0))


def test_adjacent_and_other_day_slots_are_fine(profile):
    AvailabilitySlot.objects.create(profile=profile, weekday=0, start_time=time(17, 0), end_time=time(19, 0))
    AvailabilitySlot.objects.create(profile=profile, weekday=1, start_time=time(10, 0), end_time=time(12, 0))
    assert profile.availability.count() == 3


def test_slot_must_start_before_it_ends(profile):
    with pytest.raises(ValidationError):
        AvailabilitySlot.objects.create(profile=profile, weekday=2, start_time=time(12, 0), end_time=time(12, 0))


def test_search_by_specialty_and_location(profile):
    other = User.objects.create_user(username='yonas', password='pw', role=Role.MASSAGER)
    MassagerProfile.objects.create(
        user=other, hourly_rate=Decimal('900'), specialties='Sports', location='Kazanchis',
    )

    assert list(MassagerProfile.objects.search(specialty='swedish')) == [profile]
    assert MassagerProfile.objects.search(location='kazan').count() == 1
    assert MassagerProfile.objects.search().count() == 2


def test_available_excludes_paused_profiles(profile):
    profile.is_available = False
    profile.save()
    assert not MassagerProfile.objects.available().exists()


def test_specialty_list(profile):
    assert profile.specialty_list == ['Swedish', 'Deep Tissue']
