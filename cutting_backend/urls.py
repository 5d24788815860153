"""
URL configuration for cutting_backend project.
"""
from django.urls import path, include

urlpatterns = [
    # API endpoints
    path('api/', include('planner.urls')),
]
