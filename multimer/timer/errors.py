"""Exception hierarchy for the timer engine."""


class MultimerError(Exception):
    """Base class for every error raised by Multimer."""


class InvalidDuration(MultimerError, ValueError):
    """A Time Value was built or transformed with an illegal duration."""


class PersistenceUnavailable(MultimerError):
    """The timer store could not complete a read or write.

    The engine keeps its previous state when this is raised; retrying is
    up to the caller.
    """


class AlarmSchedulingFailed(MultimerError):
    """The alarm center could not schedule or cancel a notification.

    Non-fatal: the countdown keeps running, only the notification is lost.
    """


class TickHandleError(MultimerError):
    """Illegal transition of a tick handle (e.g. cancelling while suspended)."""
