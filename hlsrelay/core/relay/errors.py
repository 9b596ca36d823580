class RelayError(Exception):
    """Base class for failures surfaced to relay clients.

    ``detail`` is the generic, client-safe message; the exception's own message
    may carry internal context (URLs, upstream status) and is only logged.
    """

    status_code = 500
    detail = "relay error"


class InvalidRequestError(RelayError):
    """Registration input is missing or malformed."""

    status_code = 400

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class TokenNotFoundError(RelayError):
    status_code = 404
    detail = "not found"

    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__(f"token {token} is not registered")


class TokenExpiredError(RelayError):
    status_code = 410
    detail = "expired"

    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__(f"token {token} has expired")


class UpstreamError(RelayError):
    """Origin fetch failed: network error, timeout or non-success status."""

    status_code = 500
    detail = "error processing stream"

    def __init__(self, url: str, reason: str, status: int | None = None) -> None:
        self.url = url
        self.reason = reason
        self.status = status
        super().__init__(f"upstream fetch failed for {url} (status={status}): {reason}")
