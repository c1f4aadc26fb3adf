import uuid

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile

from clinic.models import AuditEvent, Patient, UploadedPrescription

pytestmark = pytest.mark.django_db

UPLOAD_URL = '/api/prescriptions/upload'


@pytest.fixture(autouse=True)
def media_root(settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path
    return tmp_path


def pdf(name='scan.pdf', size=128):
    return SimpleUploadedFile(name, b'%PDF-1.4\n' + b'0' * size, content_type='application/pdf')


def test_upload_pdf(staff_client, patient, media_root):
    r = staff_client.post(UPLOAD_URL, {'file': pdf(), 'patientId': patient.id}, format='multipart')
    assert r.status_code == 201
    upload = UploadedPrescription.objects.get()
    assert r.data['upload']['id'] == str(upload.id)
    assert r.data['upload']['fileName'] == 'scan.pdf'
    assert r.data['upload']['uploadedBy'] == 'doc'
    assert upload.file.name.startswith('uploads/prescriptions/')
    assert upload.file.name.endswith('.pdf')
    assert (media_root / upload.file.name).exists()
    assert AuditEvent.objects.filter(action='upload_create').exists()


def test_upload_rejects_other_types(staff_client, patient):
    exe = SimpleUploadedFile('run.exe', b'MZ', content_type='application/x-msdownload')
    r = staff_client.post(UPLOAD_URL, {'file': exe, 'patientId': patient.id}, format='multipart')
    assert r.status_code == 400
    assert not UploadedPrescription.objects.exists()


def test_upload_rejects_large_files(staff_client, patient, settings):
    settings.UPLOAD_MAX_MB = 1
    r = staff_client.post(UPLOAD_URL, {'file': pdf(size=1024 * 1024), 'patientId': patient.id},
                          format='multipart')
    assert r.status_code == 400
    assert 'less than 1MB' in str(r.data['error']['message'])


def test_upload_requires_file(staff_client, patient):
    r = staff_client.post(UPLOAD_URL, {'patientId': patient.id}, format='multipart')
    assert r.status_code == 400


def test_upload_for_other_clinic_patient(staff_client, other_clinic):
    stranger = Patient.objects.create(clinic=other_clinic, name='Sunita Rao', mobile='9876543299')
    r = staff_client.post(UPLOAD_URL, {'file': pdf(), 'patientId': stranger.id}, format='multipart')
    assert r.status_code == 404


def test_list_uploads(staff_client, patient):
    staff_client.post(UPLOAD_URL, {'file': pdf('a.pdf'), 'patientId': patient.id}, format='multipart')
    staff_client.post(UPLOAD_URL, {'file': pdf('b.pdf'), 'patientId': patient.id}, format='multipart')
    r = staff_client.get(UPLOAD_URL, {'patientId': patient.id})
    assert r.status_code == 200
    assert sorted(u['fileName'] for u in r.data['uploads']) == ['a.pdf', 'b.pdf']


def test_delete_removes_row_then_file(staff_client, patient, media_root, django_capture_on_commit_callbacks):
    staff_client.post(UPLOAD_URL, {'file': pdf(), 'patientId': patient.id}, format='multipart')
    upload = UploadedPrescription.objects.get()
    stored = media_root / upload.file.name
    assert stored.exists()

    with django_capture_on_commit_callbacks(execute=True):
        r = staff_client.delete(f'{UPLOAD_URL}?uploadId={upload.id}')
    assert r.status_code == 200
    assert not UploadedPrescription.objects.exists()
    assert not stored.exists()


def test_delete_unknown_upload(staff_client):
    assert staff_client.delete(f'{UPLOAD_URL}?uploadId={uuid.uuid4()}').status_code == 404
    assert staff_client.delete(f'{UPLOAD_URL}?uploadId=not-a-uuid').status_code == 400
