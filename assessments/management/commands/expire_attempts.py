from django.core.management.base import BaseCommand
from django.utils import timezone

from assessments.services import expire_stale_attempts


class Command(BaseCommand):
    help = "Mark in-progress attempts whose time limit has passed as expired."

    def add_arguments(self, parser):
        parser.add_argument("--quiet", action="store_true", help="Suppress output")

    def handle(self, *args, **options):
        count = expire_stale_attempts()
        if not options.get("quiet"):
            self.stdout.write(self.style.SUCCESS(
                f"[{timezone.now().isoformat()}] Expired {count} stale attempt(s)."
            ))
