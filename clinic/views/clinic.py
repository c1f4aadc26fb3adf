from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from clinic.models import Clinic
from clinic.serializers.payloads import clinic_branding


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def clinic_default(request):
    """Public branding of the first clinic, for the login screen and the app."""
    clinic = Clinic.objects.order_by('id').first()
    if clinic is None:
        raise NotFound('No clinic configured')
    return Response({'ok': True, 'clinic': clinic_branding(clinic)})
