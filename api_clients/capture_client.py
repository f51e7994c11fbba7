# Module for downloading pages and page requisites with throttling

import time
import random
import logging
from dataclasses import dataclass
from typing import Optional

import requests

import constants
from .decorators import retry_request


@dataclass
class Download:
    url: str
    final_url: Optional[str] = None
    status_code: Optional[int] = None
    content_type: str = ""
    content: Optional[bytes] = None
    error: str = ""

    @property
    def ok(self):
        return self.content is not None

    @property
    def is_html(self):
        return 'html' in self.content_type.lower()


def _download_failure(exception):
    response = getattr(exception, 'response', None)
    url = response.url if response is not None else ""
    status_code = response.status_code if response is not None else None
    return Download(url=url, status_code=status_code, error=str(exception) or type(exception).__name__)


def polite_wait(config):
    """Sleeps between requests; with random_wait the delay varies like wget --random-wait."""
    delay = config.get('request_delay_seconds', constants.DEFAULT_REQUEST_DELAY)
    if delay <= 0:
        return
    if config.get('random_wait', True):
        delay *= random.uniform(*constants.RANDOM_WAIT_RANGE)
    time.sleep(delay)


def _read_throttled(response, limit_rate_bytes):
    """Reads the response body in chunks, sleeping as needed to stay under limit_rate_bytes per second."""
    chunks = []
    received = 0
    started = time.monotonic()
    for chunk in response.iter_content(chunk_size=constants.DOWNLOAD_CHUNK_SIZE):
        if not chunk:
            continue
        chunks.append(chunk)
        received += len(chunk)
        if limit_rate_bytes:
            expected_elapsed = received / limit_rate_bytes
            actual_elapsed = time.monotonic() - started
            if expected_elapsed > actual_elapsed:
                time.sleep(expected_elapsed - actual_elapsed)
    return b"".join(chunks)


@retry_request(on_failure=_download_failure)
def download_resource(url, config):
    """
    Fetches a URL and returns a Download. Non-2xx answers other than 429/5xx are
    returned as failed Downloads without retrying.
    """
    headers = {'User-Agent': config.get('user_agent', constants.DEFAULT_USER_AGENT)}
    request_timeout = config.get('request_timeout_content', constants.DEFAULT_TIMEOUT_CONTENT)

    logging.debug(f"Attempting to fetch: {url}")
    response = requests.get(url, headers=headers, timeout=request_timeout, stream=True, allow_redirects=True)
    try:
        status_code = response.status_code
        if 200 <= status_code < 300:
            content = _read_throttled(response, config.get('limit_rate_bytes'))
            logging.debug(f"Fetched {len(content)} bytes from {url}")
            return Download(
                url=url,
                final_url=response.url or url,
                status_code=status_code,
                content_type=response.headers.get('Content-Type', ''),
                content=content,
            )
        elif status_code == 429 or status_code >= 500:
            logging.warning(f"Request for {url} failed with status {status_code}. Decorator will handle retry.")
            response.raise_for_status()
        else:
            logging.warning(f"Request for {url} failed with status {status_code}. Skipping.")
        return Download(url=url, final_url=response.url, status_code=status_code, error=f"HTTP {status_code}")
    finally:
        response.close()
