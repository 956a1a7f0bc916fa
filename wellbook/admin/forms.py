from flask_wtf import FlaskForm
from wtforms import StringField, IntegerField, DateField
from wtforms.validators import DataRequired, Length, Optional, ValidationError

from wellbook.utils.common import local_now


class HolidayForm(FlaskForm):
    """Form for adding centre holidays"""
    date = DateField('Date', validators=[DataRequired()], format='%Y-%m-%d')
    description = StringField('Description', validators=[DataRequired(), Length(max=255)])
    centre_id = IntegerField('Centre', validators=[Optional()])

    def validate_date(self, date):
        if date.data < local_now().date():
            raise ValidationError('Holiday date cannot be in the past.')
