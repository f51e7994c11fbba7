# Decorators for API client functions
import time
import logging
import functools

import requests

RETRYABLE_STATUS = 429 # Plus every 5xx


def _failure_value(on_failure, exception):
    return on_failure(exception) if callable(on_failure) else on_failure


def _url_snippet(func, args, kwargs):
    url_to_log = kwargs.get('url')
    if not url_to_log:
        for arg in args:
            if isinstance(arg, str) and arg.startswith('http'):
                url_to_log = arg
                break
    if url_to_log:
        return f"for {url_to_log[:80]}..."
    return f"for function {func.__name__}"


def retry_request(max_retries_key="max_retries", delay_key="request_delay_seconds", on_failure=None):
    """
    Decorator to add retry logic with exponential backoff to functions making HTTP requests.
    Assumes the wrapped function:
    - Makes a single primary `requests` call and accepts a 'config' keyword argument
      containing the keys named by `max_retries_key` and `delay_key`.
    - Handles non-retryable statuses (like 404) itself and calls `raise_for_status()`
      only for 429/5xx answers it wants retried.

    Args:
        max_retries_key (str): Key in the config dict for max retries.
        delay_key (str): Key in the config dict for base delay in seconds.
        on_failure: Value returned once retries are exhausted or on a non-retryable
            request error. If callable, it is called with the last exception.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            config = kwargs.get('config') or {}
            max_retries = config.get(max_retries_key, 3)
            delay = config.get(delay_key, 1)
            log_url_snippet = _url_snippet(func, args, kwargs)

            retries = 0
            last_exception = None
            while True:
                if retries > 0:
                    wait_time = (2 ** (retries - 1)) * delay
                    logging.warning(f"Retrying request {log_url_snippet} ({retries}/{max_retries}) after delay of {wait_time:.2f} seconds...")
                    time.sleep(wait_time)

                try:
                    return func(*args, **kwargs)

                except requests.exceptions.HTTPError as e:
                    last_exception = e
                    status_code = e.response.status_code if e.response is not None else None
                    if not status_code or not (status_code == RETRYABLE_STATUS or status_code >= 500):
                        logging.error(f"Unhandled HTTP error ({status_code or 'no status code'}) encountered {log_url_snippet}: {e}")
                        return _failure_value(on_failure, e)
                    if retries >= max_retries:
                        logging.warning(f"Retryable HTTP error {status_code} {log_url_snippet}. Max retries ({max_retries}) reached.")
                        break
                    logging.warning(f"Retryable HTTP error {status_code} {log_url_snippet}. Retrying ({retries + 1}/{max_retries})...")
                    retries += 1

                except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
                    last_exception = e
                    exc_type = type(e).__name__
                    if retries >= max_retries:
                        logging.warning(f"{exc_type} occurred {log_url_snippet}. Max retries ({max_retries}) reached.")
                        break
                    logging.warning(f"{exc_type} occurred {log_url_snippet}. Retrying ({retries + 1}/{max_retries})...")
                    retries += 1

                except requests.exceptions.RequestException as e:
                    # Invalid URLs, missing schemas, too many redirects: retrying will not help
                    logging.error(f"Unhandled RequestException {log_url_snippet}: {e}")
                    return _failure_value(on_failure, e)

            logging.error(f"Request failed {log_url_snippet} after {max_retries} retries. Last exception: {last_exception}")
            return _failure_value(on_failure, last_exception)

        return wrapper
    return decorator
