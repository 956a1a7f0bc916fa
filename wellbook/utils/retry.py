import time

from flask import current_app

from wellbook.errors import ServiceUnavailable

def call_with_backoff(func, *args, attempts=None, base_delay=None, **kwargs):
    """
    Call func, retrying transient ServiceUnavailable failures with exponential backoff

    Any other exception is raised immediately. After the last attempt the
    final ServiceUnavailable is re-raised.
    """
    if attempts is None:
        attempts = current_app.config['BOOKING_RETRY_ATTEMPTS']
    if base_delay is None:
        base_delay = current_app.config['BOOKING_RETRY_BASE_DELAY']

    for attempt in range(attempts):
        try:
            return func(*args, **kwargs)
        except ServiceUnavailable as e:
            if attempt == attempts - 1:
                raise
            delay = base_delay * (2 ** attempt)
            current_app.logger.warning(
                f"{func.__name__} unavailable ({e.message}), retrying in {delay:.2f}s "
                f"(attempt {attempt + 1}/{attempts})"
            )
            time.sleep(delay)
