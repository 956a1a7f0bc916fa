from wellbook import db
from datetime import datetime

class BlockedTime(db.Model):
    __tablename__ = 'blocked_times'

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, db.ForeignKey('staff_members.id'), nullable=False)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    reason = db.Column(db.String(255), nullable=True)
    is_holiday = db.Column(db.Boolean, default=False)  # True if set by admin as holiday
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __init__(self, staff_id, start_time, end_time, reason=None, is_holiday=False, created_by=None):
        self.staff_id = staff_id
        self.start_time = start_time
        self.end_time = end_time
        self.reason = reason
        self.is_holiday = is_holiday
        self.created_by = created_by

    def to_dict(self):
        return {
            'id': self.id,
            'staff_id': self.staff_id,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
            'reason': self.reason,
            'is_holiday': self.is_holiday
        }

    def __repr__(self):
        if self.is_holiday:
            return f'<Holiday: {self.start_time.date()} - {self.reason}>'
        return f'<BlockedTime: {self.start_time} to {self.end_time}>'
