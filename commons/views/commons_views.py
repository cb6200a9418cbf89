from datetime import datetime, timezone

from django.conf import settings
from django.db import DatabaseError, connections
from django.http import JsonResponse


def liveness(request):
    return JsonResponse({"ok": True})


def readiness(request):
    """
    Checa todos os bancos configurados (default + stores dedicados de
    tenants). Qualquer alias fora do ar derruba a prontidão.
    """
    degradados = {}
    for alias in settings.DATABASES:
        try:
            with connections[alias].cursor() as cur:
                cur.execute("SELECT 1")
                cur.fetchone()
        except DatabaseError as e:
            degradados[alias] = str(e)

    if degradados:
        return JsonResponse({"ok": False, "databases_degraded": degradados}, status=503)
    return JsonResponse({"ok": True, "databases_degraded": {}})


def time_now(request):
    now = datetime.now(timezone.utc).astimezone()
    return JsonResponse({"now": now.isoformat()})
