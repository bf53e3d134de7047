from django.core.management.base import BaseCommand
from django.utils import timezone
from datetime import timedelta
from rides.models import Ride
import logging

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Clean up completed and cancelled rides."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=30,
            help="Delete finished rides that departed more than this many days ago (default: 30).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be deleted without actually deleting.",
        )

    def handle(self, *args, **options):
        days = options["days"]
        dry_run = options["dry_run"]
        cutoff = timezone.now() - timedelta(days=days)

        old_rides = Ride.objects.filter(
            departure_time__lt=cutoff,
            status__in=[Ride.STATUS_COMPLETED, Ride.STATUS_CANCELLED],
        )
        rides_count = old_rides.count()

        if dry_run:
            self.stdout.write(
                self.style.WARNING(
                    f"DRY RUN: Would delete {rides_count} finished rides older than {days} days."
                )
            )
        else:
            old_rides.delete()
            logger.info(f"Cleaned up {rides_count} finished rides")
            self.stdout.write(
                self.style.SUCCESS(
                    f"Deleted {rides_count} finished rides older than {days} days."
                )
            )
