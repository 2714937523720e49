"""Plain-text notification bodies for appointment events."""

from __future__ import annotations

EVENT_NEW = 'newAppointment'
EVENT_RESCHEDULED = 'appointmentRescheduled'
EVENT_CANCELLED = 'appointmentCancelled'

EVENT_TYPES = (EVENT_NEW, EVENT_RESCHEDULED, EVENT_CANCELLED)


def appointment_snapshot(appointment) -> dict:
    """Flatten an appointment into the fields notifications and calendars need."""
    practitioner = appointment.practitioner
    referral = appointment.referral
    return {
        'id': appointment.id,
        'patient_name': appointment.display_name,
        'patient_email': appointment.contact_email,
        'patient_phone': appointment.patient.phone if appointment.patient_id else appointment.walk_in_phone,
        'pt_name': (practitioner.get_full_name() or practitioner.username) if practitioner else 'Unassigned',
        'clinic_name': appointment.clinic.name,
        'clinic_email': appointment.clinic.email,
        'date': appointment.appointment_date,
        'start_time': appointment.start_time.strftime('%H:%M'),
        'end_time': appointment.end_time.strftime('%H:%M'),
        'reason': appointment.reason,
        'appointment_type': appointment.appointment_type,
        'cancellation_reason': appointment.cancellation_reason,
        'pn_code': referral.pn_code if referral else None,
        'is_public': appointment.client_ip_address is not None,
    }


def build_message(event_type: str, snap: dict) -> str:
    day = snap['date'].strftime('%d/%m/%Y')
    times = f"{snap['start_time']} - {snap['end_time']}"

    if event_type == EVENT_NEW and snap.get('is_public'):
        return (
            "New Appointment Booked\n\n"
            f"Appointment ID: {snap['id']}\n"
            f"Patient: {snap['patient_name']}\n"
            f"Email: {snap['patient_email'] or 'N/A'}\n"
            f"Clinic: {snap['clinic_name']}\n"
            f"Date: {day}\n"
            f"Time: {times}\n"
            f"Reason: {snap['reason'] or 'N/A'}"
        )

    if event_type == EVENT_NEW:
        return (
            "New Appointment Created\n\n"
            f"Appointment ID: {snap['id']}\n"
            f"Patient: {snap['patient_name'] or 'N/A'}\n"
            f"Physiotherapist: {snap['pt_name']}\n"
            f"Clinic: {snap['clinic_name']}\n"
            f"Date: {day}\n"
            f"Time: {times}"
        )

    if event_type == EVENT_RESCHEDULED:
        return (
            "Appointment Rescheduled\n\n"
            f"Appointment ID: {snap['id']}\n"
            f"Patient: {snap['patient_name']}\n"
            f"Physiotherapist: {snap['pt_name']}\n"
            f"Clinic: {snap['clinic_name']}\n"
            f"New Date: {day}\n"
            f"New Time: {times}"
        )

    if event_type == EVENT_CANCELLED:
        lines = [
            "Appointment Cancelled\n",
            f"Appointment ID: {snap['id']}",
            f"Patient: {snap['patient_name'] or 'N/A'}",
            f"Physiotherapist: {snap['pt_name']}",
            f"Clinic: {snap['clinic_name']}",
            f"Date: {day}",
            f"Time: {times}",
        ]
        if snap.get('cancellation_reason'):
            lines.append(f"Reason: {snap['cancellation_reason']}")
        if snap.get('pn_code'):
            lines.append(f"Linked PN case {snap['pn_code']} also cancelled")
        return "\n".join(lines)

    raise ValueError(f'Unknown event type: {event_type}')


DEFAULT_PATIENT_SMS_TEMPLATE = (
    "[{clinicName}] Appointment Confirmed\n\n"
    "Dear {patientName},\n\n"
    "Your appointment has been booked:\n"
    "Date: {date}\n"
    "Time: {startTime} - {endTime}\n"
    "Therapist: {ptName}\n"
    "Clinic: {clinicName}\n\n"
    "Please arrive 10 minutes early.\n\n"
    "Thank you!"
)


def build_patient_sms(snap: dict, template: str | None = None) -> str:
    """Fill the patient SMS template; unknown placeholders are left as they are."""
    values = {
        '{clinicName}': snap['clinic_name'] or '',
        '{patientName}': snap['patient_name'] or '',
        '{date}': snap['date'].strftime('%d/%m/%Y'),
        '{startTime}': snap['start_time'],
        '{endTime}': snap['end_time'],
        '{ptName}': snap['pt_name'],
        '{appointmentType}': snap.get('appointment_type') or 'Appointment',
    }
    text = template or DEFAULT_PATIENT_SMS_TEMPLATE
    for placeholder, value in values.items():
        text = text.replace(placeholder, value)
    return text
