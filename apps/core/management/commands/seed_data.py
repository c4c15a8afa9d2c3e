"""
Seed management command.

Populates the database with demo data:
  - 1 platform admin and 2 clients
  - 4 massagers with profiles in Addis Ababa
  - weekly availability for every massager (Mon–Sat, two windows a day)

Usage:
    python manage.py seed_data
    python manage.py seed_data --flush   # wipe availability and profiles, then re-seed
"""
from datetime import time
from decimal import Decimal

from django.core.management.base import BaseCommand

from apps.accounts.models import Role, User
from apps.massagers.models import AvailabilitySlot, MassagerProfile

DEMO_PASSWORD = 'dimple-demo-123'


class Command(BaseCommand):
    help = 'Seed demo users, massager profiles and weekly availability'

    def add_arguments(self, parser):
        parser.add_argument(
            '--flush', action='store_true',
            help='Delete existing profiles and availability before creating fresh records',
        )

    def _user(self, username, role, phone, first_name, last_name):
        user, created = User.objects.get_or_create(
            username=username,
            defaults={
                'role': role,
                'phone': phone,
                'first_name': first_name,
                'last_name': last_name,
                'email': f'{username}@dimple.et',
                'is_staff': role == Role.ADMIN,
            },
        )
        if created:
            user.set_password(DEMO_PASSWORD)
            user.save()
        return user

    def handle(self, *args, **options):
        if options['flush']:
            self.stdout.write('Flushing existing data...')
            AvailabilitySlot.objects.all().delete()
            MassagerProfile.objects.all().delete()

        self.stdout.write('Seeding users...')
        self._user('admin', Role.ADMIN, '0911000000', 'Dimple', 'Admin')
        self._user('selam', Role.CLIENT, '0911000001', 'Selam', 'Bekele')
        self._user('dawit', Role.CLIENT, '0911000002', 'Dawit', 'Haile')
        self.stdout.write(self.style.SUCCESS('  ✔ 1 admin and 2 clients created'))

        # ── Massagers ─────────────────────────────────────────────────────────
        self.stdout.write('Seeding massagers...')
        massagers_data = [
            {'username': 'hanna',  'name': ('Hanna', 'Tesfaye'), 'phone': '0922000001', 'location': 'Bole',
             'specialties': 'Swedish, Aromatherapy', 'rate': '800.00', 'years': 6,
             'bio': 'Certified therapist focused on relaxation and stress relief.'},
            {'username': 'yonas',  'name': ('Yonas', 'Girma'),   'phone': '0922000002', 'location': 'Kazanchis',
             'specialties': 'Deep Tissue, Sports', 'rate': '950.00', 'years': 8,
             'bio': 'Sports massage specialist working with runners and athletes.'},
            {'username': 'meron',  'name': ('Meron', 'Alemu'),   'phone': '0922000003', 'location': 'Piassa',
             'specialties': 'Hot Stone, Swedish', 'rate': '700.00', 'years': 3,
             'bio': 'Warm, calm technique ideal for a first massage.'},
            {'username': 'abel',   'name': ('Abel', 'Mulugeta'), 'phone': '0922000004', 'location': 'CMC',
             'specialties': 'Reflexology, Deep Tissue', 'rate': '850.00', 'years': 5,
             'bio': 'Reflexology and deep tissue work for chronic tension.'},
        ]
        profiles = []
        for m in massagers_data:
            user = self._user(m['username'], Role.MASSAGER, m['phone'], *m['name'])
            profile, _ = MassagerProfile.objects.get_or_create(
                user=user,
                defaults={
                    'bio': m['bio'],
                    'specialties': m['specialties'],
                    'location': m['location'],
                    'experience_years': m['years'],
                    'hourly_rate': Decimal(m['rate']),
                },
            )
            profiles.append(profile)
        self.stdout.write(self.style.SUCCESS(f'  ✔ {len(profiles)} massagers created'))

        # ── Availability (Mon–Sat, 09:00–13:00 and 14:00–20:00) ──────────────
        self.stdout.write('Seeding availability...')
        working_days = [0, 1, 2, 3, 4, 5]  # Monday to Saturday
        windows = [(time(9, 0), time(13, 0)), (time(14, 0), time(20, 0))]
        for profile in profiles:
            for day in working_days:
                for start, end in windows:
                    AvailabilitySlot.objects.get_or_create(
                        profile=profile, weekday=day, start_time=start,
                        defaults={'end_time': end},
                    )
        self.stdout.write(self.style.SUCCESS('  ✔ Availability set (Mon–Sat, 09:00–13:00 and 14:00–20:00)'))

        self.stdout.write(self.style.SUCCESS(
            f'\n✅ Seed complete! {len(profiles)} massagers ready. Demo password: {DEMO_PASSWORD}'
        ))
