"""
URL configuration for Dimple. Only the admin site is routed; booking and
payment operations are called from the admin, management commands and
the service layer.
"""
from django.contrib import admin
from django.conf import settings
from django.urls import path

urlpatterns = [
    path(settings.ADMIN_URL, admin.site.urls),
]
