# attendsync/core/exceptions.py


class AttendSyncError(Exception):
    """Base exception for AttendSync domain failures."""


class PersistenceError(AttendSyncError):
    """
    Raised when a store cannot read or write its backing database.

    Stores wrap driver / SQLAlchemy errors in this type so orchestrators only
    need to handle one failure mode for collaborator I/O.
    """


class MeetingNotActiveError(AttendSyncError):
    """Raised when acting on a meeting that does not exist or was canceled."""


class NotificationError(AttendSyncError):
    """Raised when a participant notification cannot be delivered."""
