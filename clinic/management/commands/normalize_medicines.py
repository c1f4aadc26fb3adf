"""
Rewrite legacy ``Prescription.medicines`` values into the canonical list.

Older rows hold a JSON-encoded string, a single object, null, or entries
keyed ``medicineName``/``frequency``.  Rows already in canonical form are
left untouched.
"""
from django.core.management.base import BaseCommand

from clinic.models import Prescription
from clinic.services.medicines import normalize_medicines


class Command(BaseCommand):
    help = "Normalize stored prescription medicines to the canonical list of dicts."

    def add_arguments(self, parser):
        parser.add_argument('--dry-run', action='store_true', help='Report changes without saving them')
        parser.add_argument('--batch-size', type=int, default=500)

    def handle(self, *args, **opts):
        dry_run = opts['dry_run']
        checked = changed = 0
        qs = Prescription.objects.order_by('id').only('id', 'medicines')
        for rx in qs.iterator(chunk_size=opts['batch_size']):
            checked += 1
            normalized = normalize_medicines(rx.medicines)
            if normalized == rx.medicines:
                continue
            changed += 1
            self.stdout.write(f'rx {rx.id}: {len(normalized)} medicine(s)')
            if not dry_run:
                Prescription.objects.filter(pk=rx.pk).update(medicines=normalized)
        verb = 'would update' if dry_run else 'updated'
        self.stdout.write(self.style.SUCCESS(f'Checked {checked} prescription(s), {verb} {changed}.'))
