from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsClinicStaff
from clinic.services.dashboard import dashboard_stats

from .scoping import request_clinic


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def dashboard_stats_view(request):
    return Response({'ok': True, 'stats': dashboard_stats(request_clinic(request))})
