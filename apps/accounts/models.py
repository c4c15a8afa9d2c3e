"""
Account model — every party in Dimple is a User with a role.

Phone number is the canonical identity key and is stored in E.164 form.
Normalisation guarantees deduplication regardless of how the number is typed:
  +251 91 234 5678  →  +251912345678
  251912345678      →  +251912345678
  0912345678        →  +251912345678
  912345678         →  +251912345678
"""
import re
from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models


def normalize_phone(raw: str) -> str:
    """
    Normalise an Ethiopian mobile number to +251XXXXXXXXX.

    Steps:
      1. Strip all non-digit characters (spaces, dashes, +, parentheses)
      2. Remove leading country code 251 if the result is 12 digits
      3. Remove leading 0 if the result is 10 digits
      4. Validate the remaining 9 digits start with 9 or 7 (mobile ranges)

    Raises ValueError if the number cannot be normalised.
    """
    digits = re.sub(r'\D', '', raw or '')

    if len(digits) == 12 and digits.startswith('251'):
        digits = digits[3:]
    elif len(digits) == 10 and digits.startswith('0'):
        digits = digits[1:]

    if len(digits) != 9 or digits[0] not in '79':
        raise ValueError(
            f"Cannot normalise phone number '{raw}' — "
            f"expected an Ethiopian mobile number such as +251912345678."
        )
    return f'+251{digits}'


class Role(models.TextChoices):
    CLIENT   = 'client',   'Client'
    MASSAGER = 'massager', 'Massager'
    ADMIN    = 'admin',    'Admin'


def actor_label(actor) -> str:
    """Short audit label for whoever triggered a change."""
    username = getattr(actor, 'username', None)
    if username:
        return username
    return f"{getattr(actor, 'role', 'unknown')}:{getattr(actor, 'id', '?')}"


class DimpleUserManager(UserManager):
    def create_superuser(self, username, email=None, password=None, **extra_fields):
        extra_fields.setdefault('role', Role.ADMIN)
        return super().create_superuser(username, email, password, **extra_fields)


class User(AbstractUser):
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.CLIENT, db_index=True)
    phone = models.CharField(max_length=16, unique=True, null=True, blank=True)

    objects = DimpleUserManager()

    class Meta:
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        ordering = ['username']

    def __str__(self):
        name = self.get_full_name() or self.username
        return f"{name} ({self.role})"

    def save(self, *args, **kwargs):
        # NULL, not '', so the unique constraint ignores users without a phone
        self.phone = normalize_phone(self.phone) if self.phone else None
        super().save(*args, **kwargs)

    @property
    def display_name(self):
        return self.get_full_name() or self.username

    @property
    def is_client(self):
        return self.role == Role.CLIENT

    @property
    def is_massager(self):
        return self.role == Role.MASSAGER

    @property
    def is_platform_admin(self):
        return self.role == Role.ADMIN
