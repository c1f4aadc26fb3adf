from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta

from django.db import transaction
from django.utils import timezone

from clinic.models import MedicineReminder, Patient, Prescription
from clinic.services.medicines import normalize_medicines, reminder_times, reminder_window


@transaction.atomic
def create_prescription(*, patient: Patient, diagnosis: str, medicines, notes: str = '',
                        visit_date: datetime | None = None, next_visit_date: datetime | None = None,
                        enable_push_reminders: bool = False) -> Prescription:
    """Create a prescription and, when asked, its medicine reminders."""
    rx = Prescription.objects.create(
        patient=patient,
        clinic_id=patient.clinic_id,
        diagnosis=diagnosis,
        medicines=normalize_medicines(medicines),
        notes=notes,
        visit_date=visit_date or timezone.now(),
        next_visit_date=next_visit_date,
        enable_push_reminders=enable_push_reminders,
    )
    if enable_push_reminders:
        create_reminders(rx)
    return rx


def create_reminders(rx: Prescription) -> list[MedicineReminder]:
    today = timezone.localdate()
    reminders = []
    for medicine in rx.medicines:
        start, end = reminder_window(medicine.get('duration', ''), today)
        reminders.append(MedicineReminder.objects.create(
            patient_id=rx.patient_id,
            clinic_id=rx.clinic_id,
            prescription=rx,
            medicine_name=medicine['name'],
            dosage=medicine.get('dosage', ''),
            frequency=medicine.get('timing', ''),
            reminder_times=reminder_times(medicine.get('dosage', '')),
            start_date=start,
            end_date=end,
        ))
    return reminders


def current_reminders(patient: Patient, today: date | None = None) -> list[MedicineReminder]:
    """Active reminders that run today or start tomorrow."""
    today = today or timezone.localdate()
    return list(
        MedicineReminder.objects.filter(
            patient=patient,
            status=MedicineReminder.STATUS_ACTIVE,
            start_date__lte=today + timedelta(days=1),
            end_date__gte=today,
        )
        .select_related('prescription')
        .order_by('start_date', 'id')
    )


def group_by_time(reminders: list[MedicineReminder]) -> list[dict]:
    slots: dict[str, list[MedicineReminder]] = defaultdict(list)
    for reminder in reminders:
        for t in reminder.reminder_times or []:
            slots[t].append(reminder)
    return [
        {
            'time': t,
            'medicines': [
                {'id': r.id, 'medicineName': r.medicine_name, 'dosage': r.dosage} for r in slots[t]
            ],
        }
        for t in sorted(slots)
    ]
