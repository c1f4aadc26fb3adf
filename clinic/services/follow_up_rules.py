"""
Built-in follow-up message templates.

Templates are not stored; they are rendered per clinic on request.  The
``{patient}`` placeholder survives clinic rendering and is filled in when
a template is sent to a specific patient.
"""
from __future__ import annotations

from datetime import timedelta

from django.db.models import Count
from django.utils import timezone

from clinic.models import Clinic, Notification, Patient

USAGE_WINDOW_DAYS = 30

RULES = (
    {
        'id': 'appointment_reminder_1',
        'name': 'Appointment Reminder (1 day before)',
        'daysBeforeAppointment': 1,
        'type': 'appointment',
        'messageTemplate': 'Dear {patient}, your appointment with Dr. {doctor} at {clinic} is tomorrow. '
                           'Please arrive 10 minutes early.',
        'description': 'Send 1 day before appointment',
    },
    {
        'id': 'appointment_reminder_same_day',
        'name': 'Appointment Reminder (Same day)',
        'hoursBeforeAppointment': 2,
        'type': 'appointment',
        'messageTemplate': 'Reminder {patient}: Your appointment with Dr. {doctor} is today. '
                           'See you soon at {clinic}!',
        'description': 'Send 2 hours before appointment',
    },
    {
        'id': 'medicine_reminder_morning',
        'name': 'Morning Medicine Reminder',
        'timeOfDay': '09:00',
        'type': 'medicine',
        'messageTemplate': "Good morning {patient}! Don't forget to take your morning medicine as prescribed.",
        'description': 'Send daily at 9:00 AM for patients with active prescriptions',
    },
    {
        'id': 'medicine_reminder_evening',
        'name': 'Evening Medicine Reminder',
        'timeOfDay': '20:00',
        'type': 'medicine',
        'messageTemplate': 'Evening reminder {patient}: Time to take your medicine. '
                           'Complete your dosage as directed.',
        'description': 'Send daily at 8:00 PM for patients with active prescriptions',
    },
    {
        'id': 'follow_up_2_days',
        'name': '2-Day Follow-up',
        'daysAfterVisit': 2,
        'type': 'followup',
        'messageTemplate': 'Hi {patient}, this is {clinic} checking in. How are you feeling after your visit?',
        'description': 'Send 2 days after visit',
    },
    {
        'id': 'follow_up_7_days',
        'name': '7-Day Progress Check',
        'daysAfterVisit': 7,
        'type': 'followup',
        'messageTemplate': "Hello {patient}, hope you're feeling better. "
                           'Remember to complete your medication as prescribed. - {clinic}',
        'description': 'Send 7 days after visit',
    },
    {
        'id': 'review_request',
        'name': 'Review Request',
        'daysAfterVisit': 3,
        'type': 'review',
        'messageTemplate': None,
        'description': 'Request review 3 days after visit',
    },
    {
        'id': 'next_visit_reminder',
        'name': 'Next Visit Reminder',
        'daysBeforeNextVisit': 1,
        'type': 'appointment',
        'messageTemplate': 'Reminder {patient}: Your next visit at {clinic} is tomorrow. '
                           'Please confirm your appointment.',
        'description': 'Send 1 day before scheduled next visit',
    },
)
RULES_BY_ID = {rule['id']: rule for rule in RULES}


def _template_text(rule: dict, clinic: Clinic) -> str:
    if rule['id'] == 'review_request':
        if clinic.google_review_link:
            return ("Hope you're feeling better {patient}! If you had a good experience, "
                    f'please leave us a review: {clinic.google_review_link}')
        return "Hope you're feeling better {patient}! Thank you for choosing {clinic}."
    return rule['messageTemplate']


def render_for_clinic(rule: dict, clinic: Clinic) -> str:
    return (
        _template_text(rule, clinic)
        .replace('{clinic}', clinic.name)
        .replace('{doctor}', clinic.doctor_name)
    )


def render_for_patient(rule: dict, clinic: Clinic, patient: Patient) -> str:
    return render_for_clinic(rule, clinic).replace('{patient}', patient.name)


def rules_for_clinic(clinic: Clinic) -> list[dict]:
    since = timezone.now() - timedelta(days=USAGE_WINDOW_DAYS)
    usage = dict(
        Notification.objects.filter(clinic=clinic, created_at__gte=since)
        .values('type')
        .annotate(n=Count('id'))
        .values_list('type', 'n')
    )
    return [
        {
            **rule,
            'enabled': True,
            'messageTemplate': render_for_clinic(rule, clinic),
            'usageCount': usage.get(rule['type'], 0),
        }
        for rule in RULES
    ]
