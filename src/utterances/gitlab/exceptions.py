"""GitLab Exception Classes - All issue tracker client exceptions."""


class TrackerError(Exception):
    """Base exception for issue tracker operations."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class TrackerRequestError(TrackerError):
    """Raised when a request fails: network error, timeout or bad status."""

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url


class TrackerHTTPError(TrackerRequestError):
    """Raised when the tracker answers with a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: int,
        url: str | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message, url)
        self.status_code = status_code
        self.response_body = response_body


class UnauthorizedError(TrackerHTTPError):
    """Raised when the tracker answers 401 Unauthorized."""

    def __init__(self, url: str | None = None, response_body: str | None = None):
        super().__init__("401 Unauthorized", 401, url, response_body)


class UnexpectedResponseError(TrackerError):
    """Raised when a reaction toggle receives neither 200 nor 201."""

    def __init__(self, status_code: int):
        super().__init__(
            'expected "201 reaction created" or "200 reaction already exists", '
            f"got {status_code}"
        )
        self.status_code = status_code


class LoginRequiredError(TrackerError):
    """Raised when comments can only be loaded after logging in."""

    def __init__(self, message: str = "You need to log in to view comments."):
        super().__init__(message)


class NoMorePagesError(TrackerError):
    """Raised when load_more() is called with no hidden pages left."""

    def __init__(self) -> None:
        super().__init__("No hidden comment pages remain")
