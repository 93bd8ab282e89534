"""
Domain exceptions raised by the service layer.

Each one subclasses the builtin the routes already translate, so a route
can keep catching `ValueError` / `PermissionError` / `LookupError`:

- `ValidationError`  -> 400
- `ForbiddenError`   -> 403
- `NotFoundError`    -> 404
"""


class ValidationError(ValueError):
    """Malformed input: bad clock time, bad recurrence token, blank field."""


class NotFoundError(LookupError):
    """The requested record id does not exist (or is not visible)."""


class ForbiddenError(PermissionError):
    """The caller lacks the capability the operation needs."""
