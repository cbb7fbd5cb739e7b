class RetryableError(Exception):
    """Base class for errors raised by retryable itself."""


class HarnessInvariantError(RetryableError):
    """
    The host harness broke an assumption the retry machinery depends on,
    e.g. a queued test can no longer be re-targeted to its test function.
    Never caught by retryable: the run must stop rather than write a wrong report.
    """
