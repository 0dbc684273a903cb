class NotFoundError(LookupError):
    """A requested record does not exist (mapped to 404)."""


class InvalidStateError(Exception):
    """The request conflicts with the record's current state (mapped to 400).

    Raised for closed predictions and for scoring a race whose results are
    not in yet.
    """


class NotAuthenticatedError(Exception):
    """No valid bearer token on a protected route (mapped to 401)."""


class ForbiddenError(Exception):
    """Authenticated, but not allowed (mapped to 403)."""
