import logging

from django.db import DatabaseError, connections
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def healthz(request):
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            c.fetchone()
        return JsonResponse({'ok': True, 'db': 'ok'})
    except DatabaseError:
        logger.error('Health check database ping failed', exc_info=True)
        return JsonResponse({'ok': False, 'db': 'error'}, status=503)
