"""
management/commands/seed_message_templates.py

Populates one MessageTemplate row per notification key from the built-in
fallback texts. Safe to run multiple times: uses get_or_create so existing
custom templates are never overwritten.

Usage:
    python manage.py seed_message_templates
    python manage.py seed_message_templates --force   # overwrite existing bodies
"""

from django.core.management.base import BaseCommand

from messaging.keys import TemplateKey
from messaging.models import MessageTemplate
from messaging.services import _FALLBACK_BODIES, _FALLBACK_SUBJECTS


class Command(BaseCommand):
    help = "Seed default MessageTemplate rows (one per notification key). Safe to re-run."

    def add_arguments(self, parser):
        parser.add_argument(
            "--force",
            action="store_true",
            help="Overwrite the body/subject of existing templates.",
        )

    def handle(self, *args, **options):
        force = options["force"]
        created_count = 0
        updated_count = 0

        for key in TemplateKey.values:
            obj, created = MessageTemplate.objects.get_or_create(
                template_key=key,
                defaults={
                    "subject":   _FALLBACK_SUBJECTS[key],
                    "body":      _FALLBACK_BODIES[key],
                    "is_active": True,
                },
            )
            if created:
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f"  Created: {obj}"))
            elif force:
                obj.subject = _FALLBACK_SUBJECTS[key]
                obj.body    = _FALLBACK_BODIES[key]
                obj.save(update_fields=["subject", "body", "updated_at"])
                updated_count += 1
                self.stdout.write(self.style.WARNING(f"  Updated: {obj}"))
            else:
                self.stdout.write(f"  Skipped (exists): {obj}")

        self.stdout.write(
            self.style.SUCCESS(
                f"\nDone. Created: {created_count}, Updated: {updated_count}, "
                f"Skipped: {len(TemplateKey.values) - created_count - updated_count}"
            )
        )
