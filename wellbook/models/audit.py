from wellbook import db
from datetime import datetime
import json
from wellbook.utils.json_utils import AuditEncoder

class AuditLog(db.Model):
    """Who did what to which booking record, and at which centre"""
    __tablename__ = 'audit_logs'
    __table_args__ = (
        db.Index('ix_audit_logs_entity', 'entity_type', 'entity_id'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    centre_id = db.Column(db.Integer, db.ForeignKey('centres.id'), nullable=True)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow)
    action = db.Column(db.String(50), nullable=False)  # create, cancel, reschedule, status_change, ...
    entity_type = db.Column(db.String(50), nullable=False)  # appointment, blocked_time, holiday
    entity_id = db.Column(db.Integer, nullable=True)
    details = db.Column(db.Text, nullable=True)  # JSON
    ip_address = db.Column(db.String(50), nullable=True)

    user = db.relationship('User', backref=db.backref('audit_logs', lazy=True))

    def __init__(self, action, entity_type, user_id=None, entity_id=None, details=None,
                 ip_address=None, centre_id=None):
        self.action = action
        self.entity_type = entity_type
        self.user_id = user_id
        self.entity_id = entity_id
        self.centre_id = centre_id
        if isinstance(details, (dict, list)):
            details = json.dumps(details, cls=AuditEncoder)
        self.details = details
        self.ip_address = ip_address

    def get_details_dict(self):
        if not self.details:
            return {}
        try:
            return json.loads(self.details)
        except ValueError:
            return {"raw": self.details}

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'centre_id': self.centre_id,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
            'action': self.action,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'details': self.get_details_dict(),
            'ip_address': self.ip_address
        }

    def __repr__(self):
        return f'<AuditLog {self.action} {self.entity_type} {self.entity_id}>'
