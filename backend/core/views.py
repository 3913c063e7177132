from django.http import JsonResponse
from django.utils import timezone

from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.permissions import AllowAny

from .health import check_database


def healthz(_request):
    return JsonResponse({"ok": True})


class DatabaseHealthView(APIView):
    """
    GET /health/
    Healthy when the database answers; 503 otherwise.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        db = check_database()
        out = {
            "status": "Healthy" if db["ok"] else "Unhealthy",
            "time": timezone.now().isoformat(),
            "checks": {"database": db},
        }
        code = status.HTTP_200_OK if db["ok"] else status.HTTP_503_SERVICE_UNAVAILABLE
        return Response(out, status=code)
