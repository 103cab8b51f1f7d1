"""
URL configuration for the priority board project.

The JSON API (and its Swagger docs at /api/docs) lives under /api/.
"""
from django.urls import path
from django.views.generic import RedirectView

from priorities.api import api

urlpatterns = [
    path("api/", api.urls),
    path("", RedirectView.as_view(url="/api/docs", permanent=False)),
]
