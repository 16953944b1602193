"""Exception types for the linqbridge package."""


class LinqBridgeError(Exception):
    """Base exception for all linqbridge errors."""

    pass


class JobNotFoundError(LinqBridgeError):
    """Raised when a job is not found."""

    def __init__(self, job_id: int, message: str = None):
        self.job_id = job_id
        if message is None:
            message = f"Job {job_id} not found"
        super().__init__(message)


class AuthTokenError(LinqBridgeError):
    """Raised when the worker shared secret is missing or invalid."""

    pass


class RemoteHttpError(LinqBridgeError):
    """Raised when an HTTP request to the queue service fails."""

    def __init__(self, status_code: int, message: str, response_body: str = None):
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(f"HTTP {status_code}: {message}")


class NavigationError(LinqBridgeError):
    """Raised when the target could not be reached within the attempt budget."""

    def __init__(self, message: str, last_error: Exception = None):
        self.last_error = last_error
        super().__init__(message)


class RequeueJob(LinqBridgeError):
    """
    Raised by a handler to ask for a delayed retry instead of a permanent failure.

    The worker reports the job back with ``requeue=True`` and ``delay_ms``.
    """

    def __init__(self, message: str, delay_ms: int = 0):
        self.delay_ms = delay_ms
        super().__init__(message)
