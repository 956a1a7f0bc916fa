from wellbook import db
import calendar
from datetime import datetime

# Weekday numbers follow date.weekday()
MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY, SUNDAY = range(7)

# Services offered at each centre
centre_services = db.Table(
    'centre_services',
    db.Column('centre_id', db.Integer, db.ForeignKey('centres.id'), primary_key=True),
    db.Column('service_id', db.Integer, db.ForeignKey('services.id'), primary_key=True)
)

class Centre(db.Model):
    __tablename__ = 'centres'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    address = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    services = db.relationship('Service', secondary=centre_services, back_populates='centres', lazy='select')
    staff = db.relationship('StaffMember', secondary='staff_centres', back_populates='centres', lazy='select')
    hours = db.relationship('CentreHours', backref='centre', lazy='select', cascade='all, delete-orphan')

    def __init__(self, name, address=None, is_active=True):
        self.name = name
        self.address = address
        self.is_active = is_active

    def offers_service(self, service_id):
        return any(service.id == service_id for service in self.services)

    def hours_for(self, day_of_week):
        """Returns the CentreHours row for a weekday, or None if not configured"""
        for hour in self.hours:
            if hour.day_of_week == day_of_week:
                return hour
        return None

    def __repr__(self):
        return f'<Centre {self.name}>'


class CentreHours(db.Model):
    __tablename__ = 'centre_hours'
    __table_args__ = (
        db.UniqueConstraint('centre_id', 'day_of_week', name='uq_centre_hours_day'),
    )

    id = db.Column(db.Integer, primary_key=True)
    centre_id = db.Column(db.Integer, db.ForeignKey('centres.id'), nullable=False)
    day_of_week = db.Column(db.Integer, nullable=False)  # 0-6 (Monday-Sunday)
    open_time = db.Column(db.Time, nullable=False)
    close_time = db.Column(db.Time, nullable=False)
    is_closed = db.Column(db.Boolean, default=False)

    def __init__(self, day_of_week, open_time, close_time, is_closed=False, centre_id=None):
        self.centre_id = centre_id
        self.day_of_week = day_of_week
        self.open_time = open_time
        self.close_time = close_time
        self.is_closed = is_closed

    def __repr__(self):
        if self.is_closed:
            return f'<CentreHours {calendar.day_name[self.day_of_week]}: closed>'
        return f'<CentreHours {calendar.day_name[self.day_of_week]}: {self.open_time:%H:%M}-{self.close_time:%H:%M}>'
