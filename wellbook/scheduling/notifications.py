from flask import current_app
from flask_mail import Message

from wellbook import mail
from wellbook.utils.common import format_appointment_time


def send_email(subject, recipients, text_body):
    """General email sending function"""
    msg = Message(subject, recipients=recipients)
    msg.body = text_body
    mail.send(msg)


def _notify(subject, appointment, text_body):
    """Send a client notification; failures are logged and never raised"""
    if not current_app.config.get('NOTIFICATIONS_ENABLED', True):
        return False
    if not appointment.client_email:
        current_app.logger.info(f"No e-mail address for appointment {appointment.id}, notification skipped")
        return False
    try:
        send_email(subject, [appointment.client_email], text_body)
        return True
    except Exception as e:
        current_app.logger.error(f"Failed to send '{subject}' for appointment {appointment.id}: {e}")
        return False


def notify_booked(appointment):
    when = format_appointment_time(appointment.start_time)
    body = (
        f"Hello {appointment.client_name},\n\n"
        f"Your {appointment.service_name} with {appointment.staff_name} at "
        f"{appointment.centre_name} is booked for {when}.\n"
    )
    if appointment.service is not None and appointment.service.requires_approval:
        body += "The centre will confirm your booking shortly.\n"
    return _notify('Appointment booked', appointment, body)


def notify_cancelled(appointment):
    when = format_appointment_time(appointment.start_time)
    body = (
        f"Hello {appointment.client_name},\n\n"
        f"Your {appointment.service_name} at {appointment.centre_name} on {when} "
        f"has been cancelled.\nReason: {appointment.cancellation_reason}\n"
    )
    return _notify('Appointment cancelled', appointment, body)


def notify_rescheduled(appointment, entry):
    previous = format_appointment_time(entry.previous_start)
    when = format_appointment_time(appointment.start_time)
    body = (
        f"Hello {appointment.client_name},\n\n"
        f"Your {appointment.service_name} at {appointment.centre_name} has moved "
        f"from {previous} to {when} with {appointment.staff_name}.\n"
    )
    return _notify('Appointment rescheduled', appointment, body)
