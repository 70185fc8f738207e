"""Exception hierarchy for userdata-mailer.

Components raise these at the point of detection.  Only
:class:`userdata_mailer.orchestrator.DispatchOrchestrator` translates them
into status codes and response messages.
"""


class MailerError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(MailerError):
    """A required setting is missing or invalid at startup."""


class ValidationError(MailerError):
    """The incoming request is malformed or carries an unusable address."""


class NotFoundError(MailerError):
    """The store returned no records to report."""


class StorageError(MailerError):
    """Base class for failures of the record store."""


class StorageUnavailable(StorageError):
    """A connection to the record store could not be established."""


class StorageQueryFailed(StorageError):
    """The query failed or a returned row could not be mapped."""


class SendFailure(MailerError):
    """The delivery provider rejected the message or timed out."""
