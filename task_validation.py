"""Title rule shared by the API server and the terminal client.

A title is a string that is non-empty after trimming and at most
TITLE_MAX_LENGTH characters long.
"""

TITLE_MAX_LENGTH = 200

TITLE_REQUIRED = 'required'
TITLE_TOO_LONG = 'too_long'

REQUIRED_MESSAGE = 'Task title is required and must be a non-empty string'
TOO_LONG_MESSAGE = 'Task title must not exceed %d characters' % TITLE_MAX_LENGTH


class TitleValidationError(ValueError):
    """Raised when a task title breaks the title rule.

    ``reason`` is one of TITLE_REQUIRED or TITLE_TOO_LONG so callers can
    pick their own wording.
    """

    def __init__(self, message, reason):
        super().__init__(message)
        self.message = message
        self.reason = reason


def validate_title(value):
    """Return the trimmed title or raise TitleValidationError."""
    if not value or not isinstance(value, str):
        raise TitleValidationError(REQUIRED_MESSAGE, TITLE_REQUIRED)

    title = value.strip()
    if not title:
        raise TitleValidationError(REQUIRED_MESSAGE, TITLE_REQUIRED)
    if len(title) > TITLE_MAX_LENGTH:
        raise TitleValidationError(TOO_LONG_MESSAGE, TITLE_TOO_LONG)
    return title
