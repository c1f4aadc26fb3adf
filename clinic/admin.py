"""
Django admin registrations for the clinic models.

Balances and audit rows are read-only here: the balance only moves
through the notification services and settings top-ups so every change
is paired with a row or an audit event.
"""
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import (
    AppInstallation,
    AuditEvent,
    Clinic,
    MedicineReminder,
    Notification,
    Patient,
    Prescription,
    Review,
    UploadedPrescription,
    User,
)


@admin.register(Clinic)
class ClinicAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'doctor_name', 'city', 'subscription_plan', 'push_notification_balance')
    list_filter = ('subscription_plan', 'subscription_status')
    search_fields = ('name', 'doctor_name', 'phone')
    readonly_fields = ('push_notification_balance', 'has_app_users', 'created_at', 'updated_at')


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'role', 'clinic', 'is_staff', 'is_superuser')
    list_filter = ('role', 'clinic')
    fieldsets = BaseUserAdmin.fieldsets + (('Clinic', {'fields': ('role', 'clinic', 'phone')}),)


class AppInstallationInline(admin.TabularInline):
    model = AppInstallation
    extra = 0


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'mobile', 'clinic', 'visit_date', 'is_verified', 'opt_out')
    list_filter = ('clinic', 'gender', 'is_verified', 'opt_out')
    search_fields = ('name', 'mobile')
    exclude = ('otp_code',)
    inlines = [AppInstallationInline]


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'clinic', 'diagnosis', 'enable_push_reminders', 'created_at')
    list_filter = ('clinic', 'enable_push_reminders')
    search_fields = ('diagnosis', 'patient__name', 'patient__mobile')


@admin.register(MedicineReminder)
class MedicineReminderAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'medicine_name', 'dosage', 'start_date', 'end_date', 'status')
    list_filter = ('status',)


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'clinic', 'type', 'status', 'scheduled_date', 'sent_at')
    list_filter = ('clinic', 'status', 'type', 'priority')
    search_fields = ('message', 'patient__name')


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'clinic', 'platform', 'status', 'rating', 'request_date')
    list_filter = ('clinic', 'status', 'platform')


@admin.register(UploadedPrescription)
class UploadedPrescriptionAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'file_name', 'file_type', 'file_size', 'uploaded_at')
    list_filter = ('clinic', 'file_type')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'action', 'user', 'object_type', 'object_id')
    list_filter = ('action', 'object_type')
    search_fields = ('object_id',)
    readonly_fields = ('user', 'action', 'object_type', 'object_id', 'detail', 'created_at')
