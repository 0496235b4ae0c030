"""URL configuration for content-purge."""

from django.urls import path

from . import views as core_views

urlpatterns = [
    # Health check for load balancers
    path("health/", core_views.health, name="health"),
]
