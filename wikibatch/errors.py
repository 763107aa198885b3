"""
Exceptions raised by wikibatch.

Remote rejections (permission denied, missing page, rate limiting...) are
never raised; the ActionClient returns them as classified outcomes. These
exceptions cover local conditions only.
"""


class WikiBatchError(Exception):
    """Base class for all wikibatch errors."""


class CallConstructionError(WikiBatchError):
    """A call or action item could not be turned into a valid API request.

    This is a programming error on the caller's side and aborts the batch.
    """


class LoginError(WikiBatchError):
    """Logging in with the configured bot password failed."""


class TokenError(WikiBatchError):
    """The API did not hand out a write token."""


class ConfigError(WikiBatchError):
    """Configuration is missing or malformed."""
