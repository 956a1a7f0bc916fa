from flask_wtf import FlaskForm
from wtforms import IntegerField, DateField, DateTimeField, TextAreaField
from wtforms.validators import DataRequired, Optional, Length

# Accepted start_time formats
DATETIME_FORMATS = ['%Y-%m-%dT%H:%M', '%Y-%m-%d %H:%M', '%Y-%m-%dT%H:%M:%S']


class SlotQueryForm(FlaskForm):
    """Query parameters for listing slots"""
    class Meta:
        csrf = False

    staff_id = IntegerField('Staff Member', validators=[DataRequired()])
    service_id = IntegerField('Service', validators=[DataRequired()])
    date = DateField('Date', validators=[DataRequired()], format='%Y-%m-%d')
    centre_id = IntegerField('Centre', validators=[Optional()])


class BookingForm(FlaskForm):
    """Form for booking an appointment"""
    centre_id = IntegerField('Centre', validators=[DataRequired()])
    service_id = IntegerField('Service', validators=[DataRequired()])
    staff_id = IntegerField('Staff Member', validators=[DataRequired()])
    start_time = DateTimeField('Start Time', validators=[DataRequired()], format=DATETIME_FORMATS)
    client_id = IntegerField('Client', validators=[Optional()])
    notes = TextAreaField('Notes', validators=[Optional(), Length(max=1000)])
