from flask_wtf import FlaskForm
from wtforms import StringField, DateTimeField
from wtforms.validators import DataRequired, Length, Optional, ValidationError

from wellbook.booking.forms import DATETIME_FORMATS
from wellbook.utils.common import local_now


class BlockTimeForm(FlaskForm):
    """Form for blocking out unavailable time periods"""
    start_time = DateTimeField('Start Time', validators=[DataRequired()], format=DATETIME_FORMATS)
    end_time = DateTimeField('End Time', validators=[DataRequired()], format=DATETIME_FORMATS)
    reason = StringField('Reason (optional)', validators=[Optional(), Length(max=255)])

    def validate_start_time(self, start_time):
        # Ensure start time is in the future
        if start_time.data <= local_now():
            raise ValidationError('Start time must be in the future.')

    def validate_end_time(self, end_time):
        # Ensure end time is after start time
        if self.start_time.data and end_time.data <= self.start_time.data:
            raise ValidationError('End time must be after start time.')
