from .user import User
from .customer import Customer
from .broker import Broker
from .review import Review, ReviewStatus
from .audit_log import AuditLog
