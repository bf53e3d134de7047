import uuid
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

from rides.models import Ride
from services.matching import find_matching_rides

User = get_user_model()


class Command(BaseCommand):
    help = "Seed a few ride offers and check that the matcher picks only the right one."

    def add_arguments(self, parser):
        parser.add_argument(
            "--keep",
            action="store_true",
            help="Leave the seeded rides in the database.",
        )

    def handle(self, *args, **options):
        host, _ = User.objects.get_or_create(username="matching-check")

        target_time = timezone.now() + timedelta(days=1)
        destination = f"Test Destination {uuid.uuid4().hex[:6]}"
        self.stdout.write(f"Target destination: {destination}")
        self.stdout.write(f"Target time: {target_time.isoformat()}")

        seeded = [
            Ride.objects.create(host=host, origin="Campus Center", destination=destination,
                                departure_time=target_time, seats_available=3),
            # Wrong destination
            Ride.objects.create(host=host, origin="Campus Center", destination="Wrong Place",
                                departure_time=target_time, seats_available=3),
            # Two hours later
            Ride.objects.create(host=host, origin="Campus Center", destination=destination,
                                departure_time=target_time + timedelta(hours=2), seats_available=3),
        ]
        good = seeded[0]

        try:
            matches = find_matching_rides(destination, target_time)
            self.stdout.write(f"Found {len(matches)} match(es).")

            found_good = any(ride["id"] == good.id for ride in matches)
            if found_good and len(matches) == 1:
                self.stdout.write(self.style.SUCCESS("PERFECT: Only found the correct ride."))
            elif found_good:
                self.stdout.write(self.style.WARNING("WARNING: Found more rides than expected."))
            else:
                self.stdout.write(self.style.ERROR("FAILURE: Did not find the correct ride."))
        finally:
            if not options["keep"]:
                Ride.objects.filter(id__in=[ride.id for ride in seeded]).delete()
