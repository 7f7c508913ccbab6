"""
Service-level errors.

Raised by the service layer; main.py renders them as {"detail": ...} with
the matching status code.
"""


class FeedError(Exception):
    status_code = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class InvalidInputError(FeedError):
    status_code = 400


class NotFoundError(FeedError):
    status_code = 404


class ForbiddenError(FeedError):
    status_code = 403
