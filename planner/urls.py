"""
URL configuration for the planner app.
"""

from django.urls import path

from .views import OptimizeLayoutView, OptimizerDefaultsView

# URL patterns
app_name = 'planner'

urlpatterns = [
    # ================================
    # OPTIMIZATION
    # ================================
    path('optimize/', OptimizeLayoutView.as_view(), name='optimize'),
    path('optimize/defaults/', OptimizerDefaultsView.as_view(), name='optimize-defaults'),
]
