"""Physio backend URL Configuration.

API routes:
    /api/auth/, /api/health/  - Authentication & health (core)
    /api/appointments/        - Appointments, conflicts, slots (appointments)
    /api/public/              - Public booking website (appointments)
    /api/pn-cases/            - PN cases (referrals)
"""

from django.http import HttpResponse
from django.urls import include, path

from physio_backend.core.admin import physio_admin_site


def root(request):
    """Plain-text liveness response."""
    return HttpResponse("Physio backend is running.")


urlpatterns = [
    path("", root, name="root"),
    path("admin/", physio_admin_site.urls),

    # API Routes
    path("api/", include("physio_backend.core.urls")),
    path("api/", include("physio_backend.appointments.urls")),
    path("api/", include("physio_backend.referrals.urls")),
]
