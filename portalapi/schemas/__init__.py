from .user import User, UserSummary, UserBalance
from .period import Period, PeriodWithCounts
from .points import PointsTransaction, ExperienceTransaction
from .rollback import TransactionRollback
from .store import StoreItem, ItemRequest
from .enrollment import EnrollmentRegistration
