from datetime import datetime

from rest_framework import generics, status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from physio_backend.core.permissions import ROLE_PT
from physio_backend.core.utils import log_action

from .enums import AppointmentStatus, BookingType
from .exceptions import IntegrationError, SchedulingError
from .models import Appointment
from .permissions import AppointmentPermission, PatientMessagePermission, SchedulingReadPermission
from .scheduling import get_available_slots
from .serializers import (
	AppointmentCreateSerializer,
	AppointmentSerializer,
	AppointmentUpdateSerializer,
	CompleteSerializer,
	ConflictCheckSerializer,
	PublicBookingResultSerializer,
	PublicBookingSerializer,
	PublicCancelSerializer,
	ReasonSerializer,
)
from .services.conflicts import check_conflict
from .services.lifecycle import (
	book_public_appointment,
	cancel_appointment,
	cancel_public_appointment,
	complete_appointment,
	create_appointment,
	reverse_completion,
	update_appointment,
)
from .services.messaging import send_patient_sms


def _error_response(exc: SchedulingError) -> Response:
	return Response(exc.to_dict(), status=exc.status_code)


def _parse_date(request, key: str = 'date', *, required: bool = True):
	date_str = request.query_params.get(key)
	if not date_str:
		if not required:
			return None, None
		return None, Response({'detail': f'Provide ?{key}=YYYY-MM-DD.'}, status=status.HTTP_400_BAD_REQUEST)
	try:
		return datetime.strptime(date_str, '%Y-%m-%d').date(), None
	except ValueError:
		return None, Response({'detail': 'Date must be in format YYYY-MM-DD.'}, status=status.HTTP_400_BAD_REQUEST)


def _parse_int(request, key: str, *, required: bool = False):
	value = request.query_params.get(key)
	if value in (None, ''):
		if required:
			return None, Response(
				{'detail': f'{key} query parameter is required.'},
				status=status.HTTP_400_BAD_REQUEST,
			)
		return None, None
	try:
		return int(value), None
	except ValueError:
		return None, Response(
			{'detail': f'{key} must be an integer.'},
			status=status.HTTP_400_BAD_REQUEST,
		)


def _client_ip(request):
	forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
	if forwarded:
		return forwarded.split(',')[0].strip()
	return request.META.get('REMOTE_ADDR')


def _read_queryset():
	return Appointment.objects.select_related('patient', 'practitioner', 'clinic', 'referral', 'course')


class AppointmentListCreateView(generics.ListCreateAPIView):
	"""
	List and create appointments.

	POST goes through the lifecycle service:
	- booking-type validation (walk-in vs registered patient)
	- practitioner conflict detection under a row lock
	- course validation and PN case auto-creation
	"""
	permission_classes = [AppointmentPermission]

	filters: dict = {}

	def get_queryset(self):
		qs = _read_queryset()

		role_name = getattr(getattr(self.request.user, 'role', None), 'name', None)
		if role_name == ROLE_PT:
			qs = qs.filter(practitioner=self.request.user)

		return qs.filter(**self.filters)

	def get_serializer_class(self):
		if self.request.method == 'POST':
			return AppointmentCreateSerializer
		return AppointmentSerializer

	def _parse_filters(self, request):
		filters = {}
		day, err = _parse_date(request, required=False)
		if err is not None:
			return None, err
		if day is not None:
			filters['appointment_date'] = day

		for key, lookup in (('clinic', 'clinic_id'), ('practitioner', 'practitioner_id')):
			value, err = _parse_int(request, key)
			if err is not None:
				return None, err
			if value is not None:
				filters[lookup] = value

		status_value = request.query_params.get('status')
		if status_value:
			if status_value not in AppointmentStatus.values:
				return None, Response(
					{'detail': f'Unknown status {status_value}.'},
					status=status.HTTP_400_BAD_REQUEST,
				)
			filters['status'] = status_value
		return filters, None

	def list(self, request, *args, **kwargs):
		filters, err = self._parse_filters(request)
		if err is not None:
			return err
		self.filters = filters
		log_action(request.user, 'appointment_list', 'appointment')
		return super().list(request, *args, **kwargs)

	def create(self, request, *args, **kwargs):
		write_serializer = self.get_serializer(data=request.data)
		write_serializer.is_valid(raise_exception=True)

		try:
			appointment = create_appointment(data=write_serializer.to_service_data(), actor=request.user)
		except SchedulingError as e:
			return _error_response(e)

		read_serializer = AppointmentSerializer(appointment, context={'request': request})
		headers = self.get_success_headers(read_serializer.data)
		return Response(read_serializer.data, status=status.HTTP_201_CREATED, headers=headers)


class AppointmentDetailView(generics.RetrieveAPIView):
	"""
	GET    - appointment detail
	PATCH  - reschedule (date/time fields) and/or change status
	DELETE - cancel; appointments are never removed
	"""
	permission_classes = [AppointmentPermission]
	serializer_class = AppointmentSerializer

	def get_queryset(self):
		return _read_queryset()

	def retrieve(self, request, *args, **kwargs):
		appointment = self.get_object()
		log_action(request.user, 'appointment_view', 'appointment', appointment.id)
		return Response(self.get_serializer(appointment).data)

	def patch(self, request, *args, **kwargs):
		appointment = self.get_object()
		write_serializer = AppointmentUpdateSerializer(data=request.data)
		write_serializer.is_valid(raise_exception=True)
		data = write_serializer.validated_data

		try:
			update_appointment(
				appointment_id=appointment.id,
				actor=request.user,
				appointment_date=data.get('appointment_date'),
				start_time=data.get('start_time'),
				end_time=data.get('end_time'),
				new_status=data.get('status'),
				assessment=data.get('assessment'),
				reason=data.get('cancellation_reason'),
			)
		except SchedulingError as e:
			return _error_response(e)

		updated = _read_queryset().get(pk=appointment.id)
		return Response(AppointmentSerializer(updated, context={'request': request}).data)

	def delete(self, request, *args, **kwargs):
		appointment = self.get_object()
		reason = request.data.get('reason', '') if hasattr(request.data, 'get') else ''
		try:
			cancelled = cancel_appointment(appointment_id=appointment.id, actor=request.user, reason=reason)
		except SchedulingError as e:
			return _error_response(e)
		return Response(AppointmentSerializer(cancelled, context={'request': request}).data)


class _AppointmentActionView(generics.GenericAPIView):
	permission_classes = [AppointmentPermission]
	serializer_class = ReasonSerializer

	def get_queryset(self):
		return _read_queryset()

	def perform_action(self, appointment, serializer):
		raise NotImplementedError

	def _handle(self, request):
		appointment = self.get_object()
		write_serializer = self.get_serializer(data=request.data)
		write_serializer.is_valid(raise_exception=True)
		try:
			updated = self.perform_action(appointment, write_serializer)
		except SchedulingError as e:
			return _error_response(e)
		updated = _read_queryset().get(pk=updated.id)
		return Response(AppointmentSerializer(updated, context={'request': request}).data)


class AppointmentCancelView(_AppointmentActionView):
	def post(self, request, *args, **kwargs):
		return self._handle(request)

	def perform_action(self, appointment, serializer):
		return cancel_appointment(
			appointment_id=appointment.id,
			actor=self.request.user,
			reason=serializer.validated_data.get('reason'),
		)


class AppointmentCompleteView(_AppointmentActionView):
	"""Complete an appointment, accepting its PN case and debiting the course.

	Outside the home clinic the PT assessment fields are required.
	"""
	serializer_class = CompleteSerializer

	def put(self, request, *args, **kwargs):
		return self._handle(request)

	def post(self, request, *args, **kwargs):
		return self._handle(request)

	def perform_action(self, appointment, serializer):
		return complete_appointment(
			appointment_id=appointment.id,
			actor=self.request.user,
			assessment=serializer.assessment(),
			body_annotation_id=serializer.validated_data.get('body_annotation_id'),
		)


class AppointmentReverseView(_AppointmentActionView):
	"""Admin-only: move a COMPLETED appointment back to SCHEDULED."""

	def post(self, request, *args, **kwargs):
		return self._handle(request)

	def perform_action(self, appointment, serializer):
		return reverse_completion(
			appointment_id=appointment.id,
			actor=self.request.user,
			reason=serializer.validated_data.get('reason'),
		)


class AppointmentPatientSmsView(generics.GenericAPIView):
	"""Text the booking details to the patient's (or walk-in visitor's) phone."""
	permission_classes = [PatientMessagePermission]

	def get_queryset(self):
		return _read_queryset()

	def post(self, request, *args, **kwargs):
		appointment = self.get_object()
		try:
			result = send_patient_sms(appointment_id=appointment.id, actor=request.user)
		except SchedulingError as e:
			return _error_response(e)
		except IntegrationError as e:
			return Response(
				{'detail': 'Failed to send SMS', 'error': str(e)},
				status=status.HTTP_502_BAD_GATEWAY,
			)
		return Response({'detail': 'SMS sent successfully', 'phone': result['phone']})


class ConflictCheckView(generics.GenericAPIView):
	"""Read-only check: would this interval conflict with existing bookings?"""
	permission_classes = [SchedulingReadPermission]
	serializer_class = ConflictCheckSerializer

	def post(self, request, *args, **kwargs):
		serializer = self.get_serializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		data = serializer.validated_data
		try:
			result = check_conflict(
				day=data['appointment_date'],
				start_time=data['start_time'],
				end_time=data['end_time'],
				practitioner_id=data.get('practitioner'),
				clinic_id=data.get('clinic'),
				exclude_appointment_id=data.get('exclude_appointment_id'),
			)
		except SchedulingError as e:
			return _error_response(e)
		return Response(result, status=status.HTTP_200_OK)


class AvailableSlotsView(generics.GenericAPIView):
	"""GET ?date=YYYY-MM-DD&clinic_id=..[&practitioner_id=..]"""
	permission_classes = [SchedulingReadPermission]

	def get(self, request, *args, **kwargs):
		day, err = _parse_date(request)
		if err is not None:
			return err
		clinic_id, err = _parse_int(request, 'clinic_id', required=True)
		if err is not None:
			return err
		practitioner_id, err = _parse_int(request, 'practitioner_id')
		if err is not None:
			return err

		slots = get_available_slots(clinic_id=clinic_id, day=day, practitioner_id=practitioner_id)
		return Response({'date': day.isoformat(), 'clinic_id': clinic_id, 'slots': slots})


class PublicTimeSlotsView(generics.GenericAPIView):
	"""Public slot grid for the booking website; free slots only."""
	permission_classes = [AllowAny]
	authentication_classes = []

	def get(self, request, *args, **kwargs):
		day, err = _parse_date(request)
		if err is not None:
			return err
		clinic_id, err = _parse_int(request, 'clinic_id', required=True)
		if err is not None:
			return err

		slots = [s for s in get_available_slots(clinic_id=clinic_id, day=day) if s['available']]
		return Response({'date': day.isoformat(), 'clinic_id': clinic_id, 'slots': slots})


class PublicBookingView(generics.GenericAPIView):
	permission_classes = [AllowAny]
	authentication_classes = []
	serializer_class = PublicBookingSerializer

	def post(self, request, *args, **kwargs):
		serializer = self.get_serializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		try:
			appointment = book_public_appointment(data=serializer.to_service_data(), client_ip=_client_ip(request))
		except SchedulingError as e:
			return _error_response(e)
		return Response(PublicBookingResultSerializer(appointment).data, status=status.HTTP_201_CREATED)


class PublicCancelView(generics.GenericAPIView):
	permission_classes = [AllowAny]
	authentication_classes = []
	serializer_class = PublicCancelSerializer

	def post(self, request, *args, **kwargs):
		serializer = self.get_serializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		try:
			appointment = cancel_public_appointment(
				appointment_id=kwargs['pk'],
				email=serializer.validated_data['email'],
			)
		except SchedulingError as e:
			return _error_response(e)
		return Response(PublicBookingResultSerializer(appointment).data)


class PublicMyBookingsView(generics.ListAPIView):
	"""The caller's recent open walk-in bookings, matched by client IP."""
	permission_classes = [AllowAny]
	authentication_classes = []
	serializer_class = PublicBookingResultSerializer
	pagination_class = None

	MAX_RESULTS = 10

	def get_queryset(self):
		client_ip = _client_ip(self.request)
		if not client_ip:
			return Appointment.objects.none()
		return (
			Appointment.objects.select_related('clinic')
			.filter(client_ip_address=client_ip, booking_type=BookingType.WALK_IN)
			.exclude(status__in=[AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW])
			.order_by('-appointment_date', '-start_time')[:self.MAX_RESULTS]
		)
