"""Referrals App URLs.

Prefix: /api/
Routes:
    GET /api/pn-cases/<pk>/          - PN case detail
    GET /api/pn-cases/<pk>/history/  - PN case status timeline
"""

from django.urls import path

from physio_backend.referrals.views import ReferralCaseDetailView, ReferralStatusHistoryView

app_name = 'referrals'

urlpatterns = [
    path('pn-cases/<int:pk>/', ReferralCaseDetailView.as_view(), name='detail'),
    path('pn-cases/<int:pk>/history/', ReferralStatusHistoryView.as_view(), name='history'),
]
