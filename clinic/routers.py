"""
URL mappings for the clinic portal API.

Paths have no trailing slashes to match the dashboard and mobile app
clients.  Literal segments (``search``, ``rules``, ``stats``) are listed
before the ``<int:pk>`` routes that share their prefix.
"""
from django.urls import include, path

from .views import (
    auth,
    clinic,
    clinic_settings,
    dashboard,
    followups,
    health,
    notifications,
    patient_app,
    patients,
    prescriptions,
    reports,
    reviews,
)

urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),

    # Staff auth
    path('api/auth/login', auth.login_view, name='login_view'),
    path('api/auth/refresh', auth.jwt_refresh_view, name='jwt_refresh'),
    path('api/auth/logout', auth.jwt_logout_view, name='jwt_logout'),

    # Patients
    path('api/patients', patients.patients_collection, name='patients'),
    path('api/patients/search', patients.patient_search, name='patient_search'),
    path('api/patients/<int:pk>', patients.patient_detail, name='patient_detail'),
    path('api/patients/<int:pk>/follow-ups', patients.patient_follow_ups, name='patient_follow_ups'),
    path('api/patients/<int:pk>/prescriptions', patients.patient_prescriptions, name='patient_prescriptions'),

    # Follow-ups
    path('api/follow-ups', followups.follow_ups_collection, name='follow_ups'),
    path('api/follow-ups/rules', followups.follow_up_rules, name='follow_up_rules'),
    path('api/follow-ups/stats', followups.follow_up_stats, name='follow_up_stats'),
    path('api/follow-ups/<int:pk>', followups.follow_up_detail, name='follow_up_detail'),
    path('api/follow-ups/<int:pk>/send', followups.follow_up_send, name='follow_up_send'),

    # Notifications
    path('api/notifications', notifications.notifications_collection, name='notifications'),
    path('api/notifications/<int:pk>', notifications.notification_detail, name='notification_detail'),

    # Reviews
    path('api/reviews', reviews.reviews_collection, name='reviews'),
    path('api/reviews/schedule-bulk', reviews.reviews_schedule_bulk, name='reviews_schedule_bulk'),
    path('api/reviews/stats', reviews.review_stats, name='review_stats'),
    path('api/reviews/<int:pk>', reviews.review_detail, name='review_detail'),

    # Prescriptions
    path('api/prescriptions', prescriptions.prescriptions_list, name='prescriptions'),
    path('api/prescriptions/upload', prescriptions.prescription_uploads, name='prescription_uploads'),
    path('api/prescriptions/<int:pk>', prescriptions.prescription_detail, name='prescription_detail'),

    # Patient mobile app
    path('api/patient/auth/request-otp', patient_app.request_otp, name='patient_request_otp'),
    path('api/patient/auth/verify-otp', patient_app.verify_otp, name='patient_verify_otp'),
    path('api/patient/profile', patient_app.patient_profile, name='patient_profile'),
    path('api/patient/reminders', patient_app.patient_reminders, name='patient_reminders'),
    path('api/patient/prescriptions', patient_app.patient_prescriptions, name='patient_app_prescriptions'),

    # Clinic
    path('api/settings/clinic', clinic_settings.clinic_settings_view, name='clinic_settings'),
    path('api/clinic/default', clinic.clinic_default, name='clinic_default'),
    path('api/dashboard/stats', dashboard.dashboard_stats_view, name='dashboard_stats'),
    path('api/reports', reports.reports_view, name='reports'),
]
