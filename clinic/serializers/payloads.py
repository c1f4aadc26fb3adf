"""
Response payload builders.

Views return plain dicts in the camelCase shape the dashboard and the
mobile app expect; the builders here keep that shape in one place.
"""
from __future__ import annotations

from django.utils import timezone

from clinic.models import (
    Clinic,
    MedicineReminder,
    Notification,
    Patient,
    Prescription,
    Review,
    UploadedPrescription,
)

DEFAULT_CLINIC_SETTINGS = {
    'notificationAutomation': True,
    'reviewAutomation': True,
    'pushNotificationsEnabled': True,
    'workingHoursStart': '09:00',
    'workingHoursEnd': '20:00',
    'appointmentReminders': True,
    'medicineReminders': True,
    'followUpReminders': True,
    'reviewRequests': True,
    'autoScheduling': True,
    'timezone': 'Asia/Kolkata',
    'notificationSound': True,
    'notificationVibration': True,
}


def clinic_branding(clinic: Clinic) -> dict:
    return {
        'id': clinic.id,
        'name': clinic.name,
        'doctorName': clinic.doctor_name,
        'phone': clinic.phone,
        'email': clinic.email,
        'address': clinic.address,
        'city': clinic.city,
        'logoUrl': clinic.logo_url,
        'primaryColor': clinic.primary_color,
        'secondaryColor': clinic.secondary_color,
        'accentColor': clinic.accent_color,
        'workingHours': clinic.working_hours,
        'emergencyPhone': clinic.emergency_phone,
        'supportEmail': clinic.support_email,
    }


def clinic_settings(clinic: Clinic) -> dict:
    return {
        **clinic_branding(clinic),
        'googleReviewLink': clinic.google_review_link,
        'language': clinic.language,
        'subscriptionPlan': clinic.subscription_plan,
        'subscriptionStatus': clinic.subscription_status,
        'pushNotificationBalance': clinic.push_notification_balance,
        'pushDeliveryRate': clinic.push_delivery_rate,
        'hasAppUsers': clinic.has_app_users,
        'settings': {**DEFAULT_CLINIC_SETTINGS, **(clinic.settings or {})},
        'createdAt': clinic.created_at,
        'updatedAt': clinic.updated_at,
    }


def patient_basic(p: Patient) -> dict:
    return {
        'id': p.id,
        'name': p.name,
        'mobile': p.mobile,
        'age': p.age,
        'gender': p.gender,
        'notes': p.notes,
        'visitDate': p.visit_date,
        'optOut': p.opt_out,
        'initials': p.initials,
        'createdAt': p.created_at,
        'updatedAt': p.updated_at,
    }


def patient_row(p: Patient) -> dict:
    """Row of the patients list; expects ``with_list_annotations``."""
    return {
        'id': p.id,
        'name': p.name,
        'mobile': p.mobile,
        'visitDate': p.visit_date,
        'notes': p.notes,
        'age': p.age,
        'gender': p.gender,
        'optOut': p.opt_out,
        'hasAppInstalled': p.app_installed_at is not None,
        'appInstalledAt': p.app_installed_at,
        'deviceType': p.device_type,
        'hasPendingNotifications': p.next_notification_date is not None,
        'nextNotificationDate': p.next_notification_date,
        'notificationStatus': p.notification_status,
        'prescriptionCount': p.prescription_count,
        'notificationCount': p.notification_count,
        'reviewCount': p.review_count,
        'reviewStatus': p.review_status,
    }


def notification_payload(n: Notification, *, with_patient: bool = False, now=None) -> dict:
    now = now or timezone.now()
    data = {
        'id': n.id,
        'patientId': n.patient_id,
        'clinicId': n.clinic_id,
        'type': n.type,
        'category': n.category,
        'message': n.message,
        'scheduledDate': n.scheduled_date,
        'status': n.status,
        'priority': n.priority,
        'deliveryMethod': n.delivery_method,
        'sentAt': n.sent_at,
        'deliveredAt': n.delivered_at,
        'readAt': n.read_at,
        'failureReason': n.failure_reason,
        'createdAt': n.created_at,
        'isScheduled': n.status == Notification.STATUS_SCHEDULED,
        'isSent': n.status == Notification.STATUS_SENT,
        'isDelivered': n.status == Notification.STATUS_DELIVERED,
        'isRead': n.status == Notification.STATUS_READ,
        'isFailed': n.status == Notification.STATUS_FAILED,
        'isPastDue': n.status == Notification.STATUS_SCHEDULED and n.scheduled_date < now,
    }
    if with_patient:
        data['patient'] = {'id': n.patient.id, 'name': n.patient.name, 'mobile': n.patient.mobile}
        data['patientName'] = n.patient.name
        data['patientMobile'] = n.patient.mobile
    return data


def follow_up_payload(n: Notification, app_installed: bool) -> dict:
    local = timezone.localtime(n.scheduled_date)
    return {
        **notification_payload(n, with_patient=True),
        'scheduledDate': local.date().isoformat(),
        'scheduledTime': local.strftime('%H:%M'),
        'scheduledAt': n.scheduled_date,
        'appInstalled': app_installed,
    }


def review_payload(r: Review, *, with_patient: bool = False) -> dict:
    data = {
        'id': r.id,
        'patientId': r.patient_id,
        'clinicId': r.clinic_id,
        'platform': r.platform,
        'deliveryMethod': r.delivery_method,
        'status': r.status,
        'rating': r.rating,
        'reviewText': r.review_text,
        'requestDate': r.request_date,
        'sentDate': r.sent_date,
        'receivedDate': r.received_date,
        'scheduledDate': r.scheduled_date,
        'createdAt': r.created_at,
    }
    if with_patient:
        data['patientName'] = r.patient.name
        data['patientMobile'] = r.patient.mobile
    return data


def prescription_payload(rx: Prescription) -> dict:
    return {
        'id': rx.id,
        'patientId': rx.patient_id,
        'clinicId': rx.clinic_id,
        'diagnosis': rx.diagnosis,
        'medicines': rx.medicines,
        'notes': rx.notes,
        'visitDate': rx.visit_date,
        'nextVisitDate': rx.next_visit_date,
        'enablePushReminders': rx.enable_push_reminders,
        'status': rx.status,
        'createdAt': rx.created_at,
    }


def prescription_row(rx: Prescription) -> dict:
    medicines = rx.medicines or []
    return {
        'id': rx.id,
        'patientId': rx.patient_id,
        'patientName': rx.patient.name,
        'patientMobile': rx.patient.mobile,
        'date': rx.visit_date,
        'diagnosis': rx.diagnosis,
        'medicinesCount': len(medicines),
        'hasMedicines': bool(medicines),
        'nextVisitDate': rx.next_visit_date,
        'status': rx.status,
        'createdAt': rx.created_at,
        'enablePushReminders': rx.enable_push_reminders,
    }


def reminder_payload(r: MedicineReminder) -> dict:
    return {
        'id': r.id,
        'prescriptionId': r.prescription_id,
        'medicineName': r.medicine_name,
        'dosage': r.dosage,
        'frequency': r.frequency,
        'reminderTimes': r.reminder_times,
        'startDate': r.start_date,
        'endDate': r.end_date,
        'status': r.status,
    }


def upload_payload(u: UploadedPrescription) -> dict:
    return {
        'id': str(u.id),
        'fileName': u.file_name,
        'fileUrl': u.file.url if u.file else '',
        'fileType': u.file_type,
        'fileSize': u.file_size,
        'uploadedBy': u.uploaded_by,
        'uploadedAt': u.uploaded_at,
        'patientId': u.patient_id,
        'clinicId': u.clinic_id,
    }
