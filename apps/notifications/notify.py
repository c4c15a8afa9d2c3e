"""
Notification service for Dimple.

All functions are synchronous and fire-and-forget: they log failures and
never raise, so a state transition is never undone by a notification.

Public API:
  send_contact_details(booking)
  send_booking_cancelled(booking, reason='')
  notify_admin(message)
"""
import logging

import requests
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils.html import escape

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = 'https://api.telegram.org/bot{token}/sendMessage'


def _booking_context(booking) -> dict:
    """Common template context for all booking messages."""
    massager = booking.massager
    profile = getattr(massager, 'massager_profile', None)
    return {
        'client_name':      booking.client.display_name,
        'massager_name':    massager.display_name,
        'massager_phone':   massager.phone or '',
        'massager_location': profile.location if profile else '',
        'specialties':      ', '.join(profile.specialty_list) if profile else '',
        'service_date':     booking.service_date,
        'start_time':       booking.start_time,
        'end_time':         booking.end_time,
        'duration':         booking.duration_minutes,
        'total_amount':     booking.total_amount,
        'booking_ref':      booking.id_short,
        'support_email':    settings.DEFAULT_FROM_EMAIL,
    }


def _send(subject: str, to_email: str, html_template: str, txt_template: str, context: dict) -> bool:
    """Low-level send helper — builds multipart email with HTML + text fallback."""
    if not to_email:
        logger.warning('Email skipped — no email address (booking ref %s)', context.get('booking_ref'))
        return False

    try:
        text_body = render_to_string(txt_template, context)
        html_body = render_to_string(html_template, context)

        msg = EmailMultiAlternatives(
            subject=subject,
            body=text_body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=[to_email],
        )
        msg.attach_alternative(html_body, 'text/html')
        msg.send(fail_silently=False)
        logger.info('Email "%s" sent to %s', subject, to_email)
        return True
    except Exception as exc:
        logger.exception('Failed to send email "%s" to %s: %s', subject, to_email, exc)
        return False


def notify_admin(message: str) -> bool:
    """Post a plain-text alert to the admin Telegram chat."""
    token = settings.TELEGRAM_BOT_TOKEN
    chat_id = settings.ADMIN_TELEGRAM_CHAT_ID
    if not token or not chat_id:
        logger.warning('Admin alert skipped — Telegram is not configured: %s', message)
        return False

    try:
        response = requests.post(
            TELEGRAM_API_URL.format(token=token),
            json={
                'chat_id': chat_id,
                'text': escape(message),
                'parse_mode': 'HTML',
                'disable_web_page_preview': True,
            },
            timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        logger.info('Admin Telegram alert sent')
        return True
    except requests.exceptions.RequestException as exc:
        logger.exception('Admin Telegram alert failed: %s', exc)
        return False


# ─────────────────────────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────────────────────────

def send_contact_details(booking) -> bool:
    """
    Share the massager's contact details with the client.
    Triggered once, when the booking's payment first becomes paid.
    """
    ctx = _booking_context(booking)
    sent = _send(
        subject=f'Your Dimple massager for {booking.service_date:%d %b %Y}',
        to_email=booking.client.email,
        html_template='emails/contact_shared.html',
        txt_template='emails/contact_shared.txt',
        context=ctx,
    )
    notify_admin(
        f"Payment confirmed for booking #{ctx['booking_ref']}: "
        f"{ctx['client_name']} with {ctx['massager_name']} on "
        f"{booking.service_date} at {booking.start_time:%H:%M} "
        f"({booking.total_amount} ETB)."
    )
    return sent


def send_booking_cancelled(booking, reason: str = '') -> bool:
    """
    Send cancellation notice to the client.
    Triggered: any transition to cancelled.
    """
    ctx = _booking_context(booking)
    ctx['cancellation_reason'] = reason or 'No reason given'

    return _send(
        subject=f'Booking Cancelled — {booking.service_date:%d %b %Y}',
        to_email=booking.client.email,
        html_template='emails/booking_cancelled.html',
        txt_template='emails/booking_cancelled.txt',
        context=ctx,
    )
