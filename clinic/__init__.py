"""Clinic application for the clinic portal.

This package contains models, serializers, services, views and route
registrations for the clinic dashboard and the patient mobile app.
"""
