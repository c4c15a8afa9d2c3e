from unittest import mock

import pytest
import requests

from apps.notifications.notify import notify_admin, send_booking_cancelled, send_contact_details

pytestmark = pytest.mark.django_db


def test_contact_details_email(make_booking, mailoutbox):
    booking = make_booking()

    assert send_contact_details(booking)

    message = mailoutbox[0]
    assert message.to == ['selam@example.com']
    assert '+251922000001' in message.body
    assert 'Hanna Tesfaye' in message.body
    assert message.alternatives[0][1] == 'text/html'


def test_missing_client_email_is_skipped(make_booking, client_user, mailoutbox):
    client_user.email = ''
    client_user.save()
    booking = make_booking()

    assert not send_booking_cancelled(booking, reason='Sick')
    assert not mailoutbox


def test_mail_failure_is_swallowed(make_booking):
    booking = make_booking()
    with mock.patch('apps.notifications.notify.EmailMultiAlternatives.send', side_effect=OSError('smtp down')):
        assert not send_booking_cancelled(booking)


def test_admin_alert_skipped_without_telegram():
    with mock.patch('apps.notifications.notify.requests.post') as post:
        assert not notify_admin('hello')
    assert not post.called


def test_admin_alert_posts_to_telegram(settings):
    settings.TELEGRAM_BOT_TOKEN = 'bot-token'
    settings.ADMIN_TELEGRAM_CHAT_ID = '-100200'
    with mock.patch('apps.notifications.notify.requests.post') as post:
        assert notify_admin('Booking <b>#1</b>')

    url = post.call_args[0][0]
    body = post.call_args[1]['json']
    assert url == 'https://api.telegram.org/botbot-token/sendMessage'
    assert body['chat_id'] == '-100200'
    assert body['text'] == 'Booking &lt;b&gt;#1&lt;/b&gt;'
    assert post.call_args[1]['timeout'] == settings.NOTIFICATION_TIMEOUT_SECONDS


def test_admin_alert_failure_is_swallowed(settings):
    settings.TELEGRAM_BOT_TOKEN = 'bot-token'
    settings.ADMIN_TELEGRAM_CHAT_ID = '-100200'
    with mock.patch('apps.notifications.notify.requests.post', side_effect=requests.exceptions.Timeout):
        assert not notify_admin('hello')
