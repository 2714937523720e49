"""Appointments App URLs.

Prefix: /api/
Routes:
    GET/POST   /api/appointments/                      - list / create
    GET        /api/appointments/<pk>/                 - detail
    PATCH      /api/appointments/<pk>/                 - reschedule and/or status change
    DELETE     /api/appointments/<pk>/                 - cancel
    POST       /api/appointments/<pk>/cancel/          - cancel with reason
    PUT        /api/appointments/<pk>/complete/        - complete (PN case accept + course debit)
    POST       /api/appointments/<pk>/reverse/         - admin-only completion reversal
    POST       /api/appointments/<pk>/send-patient-sms/ - text booking details to the patient
    POST       /api/appointments/check-conflict/       - conflict check
    GET        /api/appointments/available-slots/      - staff slot grid
    GET        /api/public/time-slots/                 - public slot grid (no auth)
    POST       /api/public/book-appointment/           - public walk-in booking (no auth)
    POST       /api/public/appointments/<pk>/cancel/   - public cancellation (no auth)
    GET        /api/public/my-bookings/                - caller's open walk-in bookings by IP (no auth)
"""

from django.urls import path

from physio_backend.appointments.views import (
    AppointmentCancelView,
    AppointmentCompleteView,
    AppointmentDetailView,
    AppointmentListCreateView,
    AppointmentPatientSmsView,
    AppointmentReverseView,
    AvailableSlotsView,
    ConflictCheckView,
    PublicBookingView,
    PublicCancelView,
    PublicMyBookingsView,
    PublicTimeSlotsView,
)

app_name = 'appointments'

urlpatterns = [
    path('appointments/', AppointmentListCreateView.as_view(), name='list'),
    path('appointments/check-conflict/', ConflictCheckView.as_view(), name='check_conflict'),
    path('appointments/available-slots/', AvailableSlotsView.as_view(), name='available_slots'),
    path('appointments/<int:pk>/', AppointmentDetailView.as_view(), name='detail'),
    path('appointments/<int:pk>/cancel/', AppointmentCancelView.as_view(), name='cancel'),
    path('appointments/<int:pk>/complete/', AppointmentCompleteView.as_view(), name='complete'),
    path('appointments/<int:pk>/reverse/', AppointmentReverseView.as_view(), name='reverse'),
    path('appointments/<int:pk>/send-patient-sms/', AppointmentPatientSmsView.as_view(), name='send_patient_sms'),

    # Public booking website
    path('public/time-slots/', PublicTimeSlotsView.as_view(), name='public_time_slots'),
    path('public/book-appointment/', PublicBookingView.as_view(), name='public_book'),
    path('public/appointments/<int:pk>/cancel/', PublicCancelView.as_view(), name='public_cancel'),
    path('public/my-bookings/', PublicMyBookingsView.as_view(), name='public_my_bookings'),
]
