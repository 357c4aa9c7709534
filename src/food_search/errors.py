"""Error taxonomy for food search and barcode lookups."""


class FoodSearchError(Exception):
    """Base error for search and lookup failures."""

    stage = "unknown"
    retryable = False

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if stage is not None:
            self.stage = stage


class InvalidInputError(FoodSearchError):
    """Request rejected before any network call."""

    stage = "validation"


class NotFoundError(FoodSearchError):
    """Valid request with no matching upstream record."""

    stage = "not-found"

    def __init__(
        self, message: str, *, stage: str | None = None, recovery: str | None = None
    ) -> None:
        super().__init__(message, stage=stage)
        self.recovery = recovery


class RateLimitedError(FoodSearchError):
    """Upstream signaled throttling."""

    stage = "rate-limiting"
    retryable = True

    def __init__(
        self,
        message: str,
        *,
        stage: str | None = None,
        retry_after_seconds: float | None = None,
    ) -> None:
        super().__init__(message, stage=stage)
        self.retry_after_seconds = retry_after_seconds


class UpstreamFailureError(FoodSearchError):
    """Network failure, non-2xx status, or malformed upstream payload."""

    stage = "upstream"
    retryable = True

    def __init__(
        self,
        message: str,
        *,
        stage: str | None = None,
        status_code: int | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message, stage=stage)
        self.status_code = status_code
        self.request_id = request_id
