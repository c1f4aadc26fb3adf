from __future__ import annotations

import logging

from django.conf import settings
from django.core.files.uploadedfile import UploadedFile
from django.db import transaction
from rest_framework.exceptions import ValidationError

from clinic.models import Patient, UploadedPrescription

logger = logging.getLogger(__name__)


def validate_upload(f: UploadedFile) -> None:
    max_bytes = settings.UPLOAD_MAX_MB * 1024 * 1024
    if f.size > max_bytes:
        raise ValidationError(f'File size must be less than {settings.UPLOAD_MAX_MB}MB')
    content_type = (f.content_type or '').lower()
    if content_type not in settings.ALLOWED_UPLOAD_TYPES:
        raise ValidationError('Invalid file type. Only images, PDFs, and Word documents are allowed.')


def store_upload(*, patient: Patient, f: UploadedFile, uploaded_by: str) -> UploadedPrescription:
    validate_upload(f)
    upload = UploadedPrescription(
        patient=patient,
        clinic_id=patient.clinic_id,
        file_name=f.name,
        file_type=f.content_type,
        file_size=f.size,
        uploaded_by=uploaded_by,
    )
    upload.file.save(f.name, f, save=False)
    try:
        upload.save()
    except Exception:
        upload.file.delete(save=False)
        raise
    logger.info('Stored upload %s (%s bytes) for patient %s', upload.file.name, upload.file_size, patient.id)
    return upload


def delete_upload(upload: UploadedPrescription) -> None:
    """Delete the row, then remove the stored file once committed.

    A file that cannot be removed is logged and left behind.
    """
    name = upload.file.name
    storage = upload.file.storage

    def _remove_file():
        try:
            storage.delete(name)
        except OSError:
            logger.warning('Could not delete stored upload %s', name, exc_info=True)

    with transaction.atomic():
        upload.delete()
        transaction.on_commit(_remove_file)
