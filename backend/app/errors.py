"""
Service-level errors.

Services raise these; main.py maps each one to an HTTP status so routes
don't have to translate them one by one.
"""


class StorefrontError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidRequest(StorefrontError):
    status_code = 400


class Forbidden(StorefrontError):
    status_code = 403


class NotFound(StorefrontError):
    status_code = 404


class Conflict(StorefrontError):
    status_code = 409


class Misconfigured(StorefrontError):
    status_code = 500


class UpstreamError(StorefrontError):
    status_code = 502
