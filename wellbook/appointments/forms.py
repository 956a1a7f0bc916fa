from flask_wtf import FlaskForm
from wtforms import StringField, TextAreaField, SelectField, IntegerField, DateTimeField
from wtforms.validators import DataRequired, Optional, Length

from wellbook.booking.forms import DATETIME_FORMATS
from wellbook.models.appointment import (
    STATUS_CONFIRMED, STATUS_IN_PROGRESS, STATUS_COMPLETED, STATUS_NO_SHOW, STATUS_CANCELLED
)


class CancelAppointmentForm(FlaskForm):
    """Form for cancelling an appointment"""
    reason = TextAreaField('Reason', validators=[DataRequired(), Length(max=500)])


class RescheduleForm(FlaskForm):
    """Form for moving an appointment to another time"""
    start_time = DateTimeField('New Start Time', validators=[DataRequired()], format=DATETIME_FORMATS)
    staff_id = IntegerField('Staff Member', validators=[Optional()])
    service_id = IntegerField('Service', validators=[Optional()])
    reason = StringField('Reason', validators=[Optional(), Length(max=255)])


class AppointmentStatusForm(FlaskForm):
    """Form for updating appointment status"""
    status = SelectField('Status', validators=[DataRequired()], choices=[
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_NO_SHOW, 'No Show'),
        (STATUS_CANCELLED, 'Cancelled')
    ])
    reason = TextAreaField('Reason', validators=[Optional(), Length(max=500)])


class AppointmentNotesForm(FlaskForm):
    notes = TextAreaField('Notes', validators=[Optional(), Length(max=1000)])
