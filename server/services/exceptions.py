"""Schedule service exception hierarchy."""


class ScheduleError(Exception):
    """Base exception for errors that reach route handlers."""


class InvalidRangeError(ScheduleError):
    """Date range is unparseable or ends before it starts."""

    def __init__(self, start_date: str, end_date: str, reason: str = "end date is before start date"):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(f"Invalid range {start_date}..{end_date}: {reason}")


class UpstreamError(ScheduleError):
    """The esports schedule API could not be reached after all retries."""

    def __init__(self, operation: str, message: str, status_code: int = None):
        self.operation = operation
        self.status_code = status_code
        super().__init__(f"[{operation}] {message}")
