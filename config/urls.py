# config/urls.py
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView

urlpatterns = [
    path("api/v1/commons/", include("commons.urls")),
    path(
        "api/v1/facturacion/",
        include(("facturacion.urls", "facturacion"), namespace="facturacion"),
    ),
    path("api/v1/schema/", SpectacularAPIView.as_view(), name="schema"),
]
