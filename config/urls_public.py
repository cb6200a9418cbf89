# config/urls_public.py
from django.urls import path, include

urlpatterns = [
    path("api/v1/commons/", include("commons.urls")),
]
