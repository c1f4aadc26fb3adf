"""
Seed a demo clinic with a doctor login, three patients and one
prescription.  Safe to run repeatedly.
"""
from datetime import datetime

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from clinic.models import Clinic, Patient, Prescription, User
from clinic.services.prescriptions import create_prescription

CLINIC_PHONE = '9876543210'
DEMO_PATIENTS = [
    ('Rajesh Kumar', '9876543211', (2024, 1, 15), 'Fever with cold symptoms'),
    ('Priya Sharma', '9876543212', (2024, 1, 14), 'Common cold treatment'),
    ('Amit Patel', '9876543213', (2024, 1, 13), 'Cough and congestion'),
]


def _aware(y, m, d):
    return timezone.make_aware(datetime(y, m, d))


class Command(BaseCommand):
    help = "Create the demo clinic, doctor login, patients and a prescription (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument('--username', default='drsharma')
        parser.add_argument('--password', default='demo12345')
        parser.add_argument('--balance', type=int, default=247,
                            help='Push notification balance for a newly created clinic')

    @transaction.atomic
    def handle(self, *args, **opts):
        clinic, created = Clinic.objects.get_or_create(
            phone=CLINIC_PHONE,
            defaults={
                'name': 'Sharma Homeopathy Clinic',
                'doctor_name': 'Dr. Rajesh Sharma',
                'email': 'dr.sharma@clinic.com',
                'address': '123 Health Street, Model Town',
                'city': 'Delhi',
                'subscription_plan': 'professional',
                'push_notification_balance': opts['balance'],
                'settings': {'workingHoursStart': '09:00', 'workingHoursEnd': '20:00'},
            },
        )
        self.stdout.write(self.style.SUCCESS(f"{'created' if created else 'ok'}: clinic {clinic.name}"))

        user, created = User.objects.get_or_create(
            username=opts['username'],
            defaults={'role': 'doctor', 'clinic': clinic, 'first_name': 'Rajesh', 'last_name': 'Sharma'},
        )
        if created:
            user.set_password(opts['password'])
            user.save(update_fields=['password'])
        self.stdout.write(self.style.SUCCESS(f"{'created' if created else 'ok'}: user {user.username}"))

        patients = []
        for name, mobile, visit, notes in DEMO_PATIENTS:
            patient, created = Patient.objects.get_or_create(
                clinic=clinic, mobile=mobile,
                defaults={'name': name, 'visit_date': _aware(*visit), 'notes': notes},
            )
            patients.append(patient)
            self.stdout.write(f"{'created' if created else 'ok'}: patient {name}")

        first = patients[0]
        if not Prescription.objects.filter(patient=first, diagnosis='Viral Fever').exists():
            create_prescription(
                patient=first,
                diagnosis='Viral Fever',
                medicines=[
                    {'name': 'Paracetamol', 'dosage': '1-0-1', 'duration': '3 days', 'instructions': 'After food'},
                    {'name': 'Vitamin C', 'dosage': '0-0-1', 'duration': '5 days', 'instructions': 'Morning'},
                ],
                notes='Advised rest and hydration',
                visit_date=first.visit_date,
                next_visit_date=_aware(2024, 1, 20),
            )
            self.stdout.write('created: prescription Viral Fever')
        self.stdout.write(self.style.SUCCESS('Demo clinic ready.'))
