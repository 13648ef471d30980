from django.core.management.base import BaseCommand
from services.cascade import sweep_open_cascades


class Command(BaseCommand):
    help = "Open due transport tiers and exhaust cascades whose deadline has passed."

    def handle(self, *args, **options):
        checked, advanced = sweep_open_cascades()

        self.stdout.write(
            self.style.SUCCESS(
                f"Checked {checked} open cascade(s); advanced {advanced}."
            )
        )
