"""
management command: reconcile_payments

Settles Telebirr attempts whose callback never arrived:
  1. Pending attempts older than PAYMENT_RECONCILE_AFTER_MINUTES are polled
     at the gateway and any definitive result is applied.
  2. Attempts still pending after PAYMENT_ABANDON_AFTER_HOURS are failed.

Run via OS cron every 10 minutes:
  */10 * * * *  /path/to/venv/bin/python manage.py reconcile_payments
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from apps.bookings.exceptions import BookingEngineError, GatewayUnavailable
from apps.payments.gateway import RESULT_FAILED, RESULT_PENDING, get_gateway
from apps.payments.models import Payment, TransactionStatus
from apps.payments.workflow import apply_payment_result, verify_payment

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Poll Telebirr for stale pending payments and fail abandoned attempts'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run', action='store_true',
            help='List the attempts that would be checked without calling the gateway',
        )

    def handle(self, *args, **options):
        now = timezone.now()
        poll_cutoff = now - timedelta(minutes=settings.PAYMENT_RECONCILE_AFTER_MINUTES)
        abandon_cutoff = now - timedelta(hours=settings.PAYMENT_ABANDON_AFTER_HOURS)

        stale = list(
            Payment.objects
            .filter(status=TransactionStatus.PENDING, created_at__lt=poll_cutoff)
            .order_by('created_at')
        )
        if options['dry_run']:
            for payment in stale:
                self.stdout.write(f'  {payment.transaction_id}  created {payment.created_at:%Y-%m-%d %H:%M}')
            self.stdout.write(f'reconcile_payments: {len(stale)} stale attempt(s)')
            return

        gateway = get_gateway()
        counts = {'resolved': 0, 'abandoned': 0, 'skipped': 0}

        for payment in stale:
            try:
                result = verify_payment(payment.transaction_id, gateway=gateway)
            except GatewayUnavailable as exc:
                logger.warning('Reconcile: could not verify %s: %s', payment.transaction_id, exc)
                result = RESULT_PENDING
            except BookingEngineError as exc:
                logger.exception('Reconcile: %s failed: %s', payment.transaction_id, exc)
                counts['skipped'] += 1
                continue

            if result != RESULT_PENDING:
                counts['resolved'] += 1
            elif payment.created_at < abandon_cutoff:
                apply_payment_result(
                    payment.transaction_id, RESULT_FAILED,
                    payload={'reason': 'abandoned', 'abandoned_at': now.isoformat()},
                )
                counts['abandoned'] += 1
            else:
                counts['skipped'] += 1

        self.stdout.write(
            self.style.SUCCESS(
                f"reconcile_payments: resolved {counts['resolved']}, "
                f"abandoned {counts['abandoned']}, left pending {counts['skipped']}"
            )
        )
