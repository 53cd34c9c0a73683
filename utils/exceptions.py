"""
Domain errors for authentication and authorization.

They subclass werkzeug HTTP exceptions so a service can raise them and
Flask renders them through the handlers in api.errors, the same way
`abort(401)` would. `error` is the machine-readable code of the envelope.
"""
from __future__ import annotations

from werkzeug import exceptions as wz


class InvalidCredentials(wz.Unauthorized):
    error = "INVALID_CREDENTIALS"
    description = "Invalid credentials"


class InvalidRefreshToken(wz.Unauthorized):
    error = "INVALID_REFRESH_TOKEN"
    description = "Invalid refresh token"


class Unauthorized(wz.Unauthorized):
    error = "UNAUTHORIZED"
    description = "Missing or invalid access token"


class Forbidden(wz.Forbidden):
    error = "FORBIDDEN"
    description = "Insufficient role"


class Conflict(wz.Conflict):
    error = "CONFLICT"
    description = "User with this email already exists"


class NotFound(wz.NotFound):
    error = "NOT_FOUND"
    description = "Resource not found"
