# Import all models here for easier imports elsewhere
from .user import User
from .centre import Centre, CentreHours
from .service import Service
from .staff import StaffMember
from .availability import BlockedTime
from .appointment import Appointment, RescheduleEntry, SlotClaim
from .audit import AuditLog
