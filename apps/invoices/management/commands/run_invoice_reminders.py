"""
Management command hosting the invoice reminder job.

Usage:
    python manage.py run_invoice_reminders
    python manage.py run_invoice_reminders --once
    python manage.py run_invoice_reminders --interval-hours 6
"""

import signal

from django.core.management.base import BaseCommand, CommandError

from apps.invoices.jobs import InvoiceReminderJob


class Command(BaseCommand):
    help = 'Send approval reminders for active invoices on a fixed interval'

    def add_arguments(self, parser):
        parser.add_argument(
            '--once',
            action='store_true',
            help='Run a single reminder cycle and exit',
        )
        parser.add_argument(
            '--interval-hours',
            type=float,
            default=None,
            help='Hours between cycles (defaults to INVOICE_REMINDER_INTERVAL_HOURS)',
        )

    def handle(self, *args, **options):
        try:
            job = InvoiceReminderJob(interval_hours=options['interval_hours'])
        except ValueError as e:
            raise CommandError(str(e))

        if options['once']:
            result = job.run_cycle()
            self.stdout.write(
                self.style.SUCCESS(
                    f'Reminder cycle done: {result.sent} sent, '
                    f'{result.initialized} started, {result.failed} failed, '
                    f'{result.errors} error(s).'
                )
            )
            return

        def _stop(signum, frame):
            self.stdout.write(self.style.WARNING('Stopping invoice reminder job...'))
            job.stop()

        signal.signal(signal.SIGINT, _stop)
        signal.signal(signal.SIGTERM, _stop)

        self.stdout.write(
            f'Running invoice reminders every {job.interval_hours} hour(s). Press Ctrl+C to stop.'
        )
        job.run_forever()
        self.stdout.write(self.style.SUCCESS('Invoice reminder job stopped.'))
