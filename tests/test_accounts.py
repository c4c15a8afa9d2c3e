import pytest

from apps.accounts.models import Role, User, actor_label, normalize_phone


@pytest.mark.parametrize('raw', [
    '+251 91 234 5678', '251912345678', '0912345678', '912345678', '(091) 234-5678',
])
def test_normalize_phone(raw):
    assert normalize_phone(raw) == '+251912345678'


def test_normalize_phone_accepts_safaricom_range():
    assert normalize_phone('0712345678') == '+251712345678'


@pytest.mark.parametrize('raw', ['', None, '12345', '0112345678', '+2519123456789'])
def test_normalize_phone_rejects(raw):
    with pytest.raises(ValueError):
        normalize_phone(raw)


@pytest.mark.django_db
def test_user_phone_is_stored_normalised():
    user = User.objects.create_user(username='abebe', password='pw', phone='0912345678')
    assert user.phone == '+251912345678'
    assert user.is_client


@pytest.mark.django_db
def test_users_without_phone_do_not_collide():
    User.objects.create_user(username='a', password='pw', phone='')
    User.objects.create_user(username='b', password='pw')
    assert User.objects.filter(phone__isnull=True).count() == 2


@pytest.mark.django_db
def test_superuser_is_platform_admin():
    user = User.objects.create_superuser(username='root', email='root@example.com', password='pw')
    assert user.role == Role.ADMIN
    assert user.is_platform_admin


def test_actor_label():
    assert actor_label(User(username='hanna')) == 'hanna'
