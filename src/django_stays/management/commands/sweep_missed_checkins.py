"""Management command to penalize confirmed stays that were never checked into."""

from datetime import date

from django.core.management.base import BaseCommand

from django_stays.penalties import sweep_missed_checkins


class Command(BaseCommand):
    help = 'Issue penalties for confirmed reservations with no check-in past the grace period'

    def add_arguments(self, parser):
        parser.add_argument(
            '--date',
            type=date.fromisoformat,
            default=None,
            help='Reference date in YYYY-MM-DD (default: today)'
        )

    def handle(self, *args, **options):
        penalties = sweep_missed_checkins(today=options['date'])
        self.stdout.write(
            self.style.SUCCESS(f'Issued {len(penalties)} missed check-in penalties')
        )
