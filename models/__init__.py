from .db import db
from .member import Member
from .slot import Slot
from .booking import Booking
from .holiday import Holiday
from .invite import Invite
from .session import Session
from .audit_log import AuditLog
