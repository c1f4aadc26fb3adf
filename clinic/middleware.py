import logging
import re

from django.http import HttpResponse, JsonResponse
from django.http.response import HttpResponseRedirectBase

logger = logging.getLogger(__name__)


class HttpResponsePermanentRedirectPreservingMethod(HttpResponseRedirectBase):
    status_code = 308


class SuspiciousRequestMiddleware:
    """Answer common vulnerability probes with a bare 404."""
    BLOCKED_PREFIXES = ('/.env', '/wp-admin', '/wp-login', '/.git')
    BLOCKED_SUFFIX = re.compile(r'\.(php|asp|aspx|jsp)$', re.IGNORECASE)
    BLOCKED_QUERY = re.compile(r'(^|&)cmd=', re.IGNORECASE)

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        path = request.path or ''
        query = request.META.get('QUERY_STRING', '')
        if (
            any(path.startswith(p) for p in self.BLOCKED_PREFIXES)
            or self.BLOCKED_SUFFIX.search(path)
            or self.BLOCKED_QUERY.search(query)
        ):
            logger.warning('Blocked suspicious request %s %s from %s',
                           request.method, path, request.META.get('REMOTE_ADDR'))
            return JsonResponse({'ok': False, 'error': {'code': 'not_found', 'message': 'Not found'}}, status=404)
        return self.get_response(request)


class PatientAppCorsMiddleware:
    """Open CORS for the patient mobile-app API.

    The app's webviews call ``/api/patient/*`` from arbitrary origins, so
    these routes answer preflights directly and carry wildcard headers on
    every response.  Dashboard routes keep the django-cors-headers policy.
    """
    PREFIX = '/api/patient/'
    HEADERS = {
        'Access-Control-Allow-Origin': '*',
        'Access-Control-Allow-Methods': 'GET, POST, PUT, DELETE, OPTIONS',
        'Access-Control-Allow-Headers': 'Content-Type, Authorization',
    }

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if not (request.path or '').startswith(self.PREFIX):
            return self.get_response(request)
        if request.method == 'OPTIONS':
            response = HttpResponse(status=204)
            response['Access-Control-Max-Age'] = '86400'
        else:
            response = self.get_response(request)
        for name, value in self.HEADERS.items():
            response[name] = value
        return response


class LegacySettingsRedirectMiddleware:
    """Redirect the legacy settings path to its canonical location (308)."""
    LEGACY_PATHS = {'/api/settings': '/api/settings/clinic'}

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        target = self.LEGACY_PATHS.get(request.path or '')
        if target:
            query = request.META.get('QUERY_STRING', '')
            return HttpResponsePermanentRedirectPreservingMethod(f'{target}?{query}' if query else target)
        return self.get_response(request)
