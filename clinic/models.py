"""
Database models for the clinic portal.

A :class:`Clinic` is the tenant: staff users, patients, prescriptions,
notifications and review requests all hang off exactly one clinic and
every staff query is scoped by it.  The clinic also owns the push
notification balance, a credit counter that notification creation
debits and scheduled-notification deletion refunds.
"""
from __future__ import annotations

import os
import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class Clinic(models.Model):
    """A clinic (tenant) with branding, subscription and settings."""
    LANGUAGE_CHOICES = [
        ('en', 'English'),
        ('hinglish', 'Hinglish'),
    ]
    PLAN_CHOICES = [
        ('basic', 'Basic'),
        ('professional', 'Professional'),
        ('enterprise', 'Enterprise'),
    ]
    SUBSCRIPTION_STATUS_CHOICES = [
        ('active', 'Active'),
        ('trial', 'Trial'),
        ('expired', 'Expired'),
    ]

    name = models.CharField(max_length=255)
    doctor_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=20, unique=True)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)

    # Branding
    logo_url = models.CharField(max_length=512, blank=True)
    primary_color = models.CharField(max_length=16, default='#2563eb')
    secondary_color = models.CharField(max_length=16, default='#64748b')
    accent_color = models.CharField(max_length=16, default='#f59e0b')
    working_hours = models.CharField(max_length=100, blank=True)
    emergency_phone = models.CharField(max_length=20, blank=True)
    support_email = models.EmailField(blank=True)

    google_review_link = models.CharField(max_length=512, blank=True)
    language = models.CharField(max_length=10, choices=LANGUAGE_CHOICES, default='en')
    subscription_plan = models.CharField(max_length=20, choices=PLAN_CHOICES, default='basic')
    subscription_status = models.CharField(
        max_length=20, choices=SUBSCRIPTION_STATUS_CHOICES, default='active'
    )

    # Push notification credit; only conditional F() updates touch it
    push_notification_balance = models.PositiveIntegerField(default=0)
    push_delivery_rate = models.FloatField(default=0)
    has_app_users = models.PositiveIntegerField(default=0)

    settings = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.city or self.phone})"


class User(AbstractUser):
    """Staff login bound to a clinic.

    Patients never log in through this model; the mobile app uses an OTP
    flow that issues a patient token instead.
    """
    ROLE_CHOICES = [
        ('doctor', 'Doctor'),
        ('staff', 'Staff'),
        ('admin', 'Administrator'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='staff')
    clinic = models.ForeignKey(
        Clinic, null=True, blank=True, on_delete=models.SET_NULL, related_name='users'
    )
    phone = models.CharField(max_length=20, blank=True)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Patient(models.Model):
    """A patient registered at one clinic.

    ``mobile`` always holds the normalized 10-digit number so suffix
    lookups from the search and OTP endpoints match regardless of how
    the number was typed.
    """
    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('other', 'Other'),
    ]

    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name='patients')
    name = models.CharField(max_length=255)
    mobile = models.CharField(max_length=10)
    age = models.PositiveSmallIntegerField(null=True, blank=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True)
    notes = models.TextField(blank=True)
    visit_date = models.DateTimeField(default=timezone.now, db_index=True)
    opt_out = models.BooleanField(default=False)

    # Mobile app login state
    last_app_login = models.DateTimeField(null=True, blank=True)
    is_verified = models.BooleanField(default=False)
    otp_code = models.CharField(max_length=6, blank=True)
    otp_expires_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Lets DRF throttles and permissions treat a token-authenticated patient
    # as an authenticated principal.
    is_authenticated = True

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['clinic', 'mobile'], name='uniq_patient_mobile_per_clinic'),
        ]
        indexes = [
            models.Index(fields=['clinic', 'visit_date'], name='patient_clinic_visit_idx'),
            models.Index(fields=['mobile'], name='patient_mobile_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.mobile})"

    @property
    def initials(self) -> str:
        parts = [p for p in self.name.split() if p]
        return ''.join(p[0] for p in parts[:2]).upper()

    def active_installation(self) -> 'AppInstallation | None':
        return self.app_installations.filter(is_active=True).order_by('-installed_at').first()


class AppInstallation(models.Model):
    """An active mobile-app binding; required before push sends."""
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='app_installations')
    device_type = models.CharField(max_length=20, blank=True)
    app_version = models.CharField(max_length=20, blank=True)
    fcm_token = models.CharField(max_length=512, blank=True)
    is_active = models.BooleanField(default=True)
    installed_at = models.DateTimeField(default=timezone.now)
    last_seen_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [models.Index(fields=['patient', 'is_active'], name='appinst_patient_active_idx')]

    def __str__(self) -> str:
        return f"app p={self.patient_id} {self.device_type or '-'} active={self.is_active}"


class Prescription(models.Model):
    """A prescription; ``medicines`` is a list of medicine dicts.

    Each entry has ``name``, ``dosage``, ``duration``, ``instructions``
    and ``timing`` keys.  Writes go through
    :func:`clinic.services.medicines.normalize_medicines`.
    """
    STATUS_ACTIVE = 'active'
    STATUS_COMPLETED = 'completed'

    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='prescriptions')
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name='prescriptions')
    diagnosis = models.CharField(max_length=500)
    medicines = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)
    visit_date = models.DateTimeField(default=timezone.now)
    next_visit_date = models.DateTimeField(null=True, blank=True)
    enable_push_reminders = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['clinic', 'created_at'], name='rx_clinic_created_idx'),
            models.Index(fields=['patient', 'created_at'], name='rx_patient_created_idx'),
        ]

    def __str__(self) -> str:
        return f"rx {self.id} p={self.patient_id} {self.diagnosis}"

    @property
    def status(self) -> str:
        if self.next_visit_date and self.next_visit_date > timezone.now():
            return self.STATUS_ACTIVE
        return self.STATUS_COMPLETED


class MedicineReminder(models.Model):
    STATUS_ACTIVE = 'active'
    STATUS_PAUSED = 'paused'
    STATUS_COMPLETED = 'completed'
    STATUS_CHOICES = (
        (STATUS_ACTIVE, 'active'),
        (STATUS_PAUSED, 'paused'),
        (STATUS_COMPLETED, 'completed'),
    )

    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='medicine_reminders')
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name='medicine_reminders')
    prescription = models.ForeignKey(
        Prescription, null=True, blank=True, on_delete=models.CASCADE, related_name='reminders'
    )
    medicine_name = models.CharField(max_length=255)
    dosage = models.CharField(max_length=100, blank=True)
    frequency = models.CharField(max_length=100, blank=True)
    reminder_times = models.JSONField(default=list, blank=True)
    start_date = models.DateField()
    end_date = models.DateField()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['patient', 'status', 'start_date', 'end_date'], name='reminder_patient_window_idx')]

    def __str__(self) -> str:
        return f"reminder {self.medicine_name} p={self.patient_id} ({self.status})"


class Notification(models.Model):
    """A push notification, called a "follow-up" in the dashboard."""
    STATUS_SCHEDULED = 'scheduled'
    STATUS_SENT = 'sent'
    STATUS_DELIVERED = 'delivered'
    STATUS_READ = 'read'
    STATUS_FAILED = 'failed'
    STATUS_CHOICES = (
        (STATUS_SCHEDULED, 'scheduled'),
        (STATUS_SENT, 'sent'),
        (STATUS_DELIVERED, 'delivered'),
        (STATUS_READ, 'read'),
        (STATUS_FAILED, 'failed'),
    )

    PRIORITY_CHOICES = (('low', 'low'), ('normal', 'normal'), ('high', 'high'))

    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='notifications')
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name='notifications')
    medicine_reminder = models.ForeignKey(
        MedicineReminder, null=True, blank=True, on_delete=models.SET_NULL, related_name='notifications'
    )
    type = models.CharField(max_length=32, default='reminder')
    category = models.CharField(max_length=32, default='reminder')
    message = models.TextField()
    scheduled_date = models.DateTimeField()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_SCHEDULED)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='normal')
    delivery_method = models.CharField(max_length=16, default='push')
    sent_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    read_at = models.DateTimeField(null=True, blank=True)
    failure_reason = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['clinic', 'status', 'scheduled_date'], name='notif_clinic_status_date_idx'),
            models.Index(fields=['patient', 'scheduled_date'], name='notif_patient_date_idx'),
        ]

    def __str__(self) -> str:
        return f"notif {self.id} p={self.patient_id} {self.status}"


class Review(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_SENT = 'sent'
    STATUS_RECEIVED = 'received'
    STATUS_SKIPPED = 'skipped'
    STATUS_FAILED = 'failed'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'pending'),
        (STATUS_SENT, 'sent'),
        (STATUS_RECEIVED, 'received'),
        (STATUS_SKIPPED, 'skipped'),
        (STATUS_FAILED, 'failed'),
    )
    # Requests in these states block a new request for the same patient
    OPEN_STATUSES = (STATUS_PENDING, STATUS_SENT)

    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='reviews')
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name='reviews')
    platform = models.CharField(max_length=32, default='google')
    delivery_method = models.CharField(max_length=16, default='push')
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    rating = models.PositiveSmallIntegerField(null=True, blank=True)
    review_text = models.TextField(blank=True)
    request_date = models.DateTimeField(default=timezone.now)
    sent_date = models.DateTimeField(null=True, blank=True)
    received_date = models.DateTimeField(null=True, blank=True)
    scheduled_date = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['clinic', 'request_date'], name='review_clinic_date_idx'),
            models.Index(fields=['patient', 'status', 'request_date'], name='review_patient_status_idx'),
        ]

    def __str__(self) -> str:
        return f"review {self.id} p={self.patient_id} {self.status}"


def _prescription_upload(instance, filename: str) -> str:
    ext = os.path.splitext(filename)[1].lower()
    stamp = int(timezone.now().timestamp() * 1000)
    return f"uploads/prescriptions/{stamp}-{uuid.uuid4().hex[:8]}{ext}"


class UploadedPrescription(models.Model):
    """A scanned or photographed prescription attached to a patient."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='uploads')
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name='uploads')
    file = models.FileField(upload_to=_prescription_upload, max_length=512)
    file_name = models.CharField(max_length=255)
    file_type = models.CharField(max_length=128)
    file_size = models.PositiveIntegerField(default=0)
    uploaded_by = models.CharField(max_length=150, blank=True)
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', 'uploaded_at'], name='upload_patient_idx'),
            models.Index(fields=['clinic', 'uploaded_at'], name='upload_clinic_idx'),
        ]

    def __str__(self) -> str:
        return f"upload {self.file_name} p={self.patient_id}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.action} {self.object_type}:{self.object_id}"
