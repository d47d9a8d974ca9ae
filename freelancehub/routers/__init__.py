from . import auth, bids, chat, milestones, notifications, tasks, users

__all__ = [
    "auth",
    "users",
    "tasks",
    "bids",
    "milestones",
    "notifications",
    "chat",
]
