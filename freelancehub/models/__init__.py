from .bid import Bid, BidStatus
from .message import Message
from .milestone import Milestone, MilestoneStatus
from .notification import Notification
from .task import BudgetType, Task, TaskCategory, TaskStatus
from .user_activity_log import ActivityType, UserActivityLog
from .user import Role, User, UserPublic

__all__ = [
    "Bid",
    "BidStatus",
    "Message",
    "Milestone",
    "MilestoneStatus",
    "Notification",
    "BudgetType",
    "Task",
    "TaskCategory",
    "TaskStatus",
    "ActivityType",
    "UserActivityLog",
    "Role",
    "User",
    "UserPublic",
]
