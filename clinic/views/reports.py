from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsClinicStaff
from clinic.serializers.reports import ReportQuerySerializer
from clinic.services.reports import ReportRange, build_report

from .scoping import request_clinic


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def reports_view(request):
    q = ReportQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    rng = ReportRange.from_dates(vd['start_date'], vd['end_date'])
    return Response({
        'ok': True,
        'type': vd['type'],
        'dateRange': rng.as_dict(),
        'data': build_report(request_clinic(request), rng, vd['type']),
    })
