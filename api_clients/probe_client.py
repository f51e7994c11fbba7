# Module for lightweight existence checks against artifact URLs

import logging

import requests

import constants
from models import ProbeResult, ProbeStatus
from .decorators import retry_request

HEAD_UNSUPPORTED_STATUS = (405, 501)


def classify_status(status_code):
    """Maps an HTTP status code to a ProbeStatus: 2xx/3xx reachable, 404 not found, else hard failure."""
    if status_code is None:
        return ProbeStatus.HARD_FAILURE
    if 200 <= status_code < 400:
        return ProbeStatus.REACHABLE
    if status_code == 404:
        return ProbeStatus.NOT_FOUND
    return ProbeStatus.HARD_FAILURE


def _hard_failure(exception):
    response = getattr(exception, 'response', None)
    status_code = response.status_code if response is not None else None
    return ProbeResult(ProbeStatus.HARD_FAILURE, status_code=status_code, reason=str(exception) or type(exception).__name__)


def _request_status(url, headers, timeout):
    response = requests.head(url, headers=headers, timeout=timeout, allow_redirects=True)
    try:
        status_code = response.status_code
    finally:
        response.close()
    if status_code not in HEAD_UNSUPPORTED_STATUS:
        return status_code

    logging.debug(f"HEAD not supported for {url} ({status_code}). Falling back to a streamed GET.")
    response = requests.get(url, headers=headers, timeout=timeout, allow_redirects=True, stream=True)
    try:
        return response.status_code
    finally:
        response.close()


@retry_request(on_failure=_hard_failure)
def probe_resource(url, config):
    """
    Issues a HEAD-equivalent request and classifies the answer.
    Returns a ProbeResult; never raises for network or HTTP errors.
    """
    headers = {'User-Agent': config.get('user_agent', constants.DEFAULT_USER_AGENT)}
    request_timeout = config.get('request_timeout_probe', constants.DEFAULT_TIMEOUT_PROBE)

    logging.debug(f"Probing {url}")
    status_code = _request_status(url, headers, request_timeout)
    status = classify_status(status_code)

    if status_code is not None and (status_code == 429 or status_code >= 500):
        logging.warning(f"Probe of {url} failed with status {status_code}. Decorator will handle retry.")
        error_response = requests.Response()
        error_response.status_code = status_code
        error_response.url = url
        raise requests.exceptions.HTTPError(f"{status_code} Server Error for url: {url}", response=error_response)

    if status is ProbeStatus.NOT_FOUND:
        logging.warning(f"Resource not found (404): {url}")
    elif status is ProbeStatus.HARD_FAILURE:
        logging.error(f"Probe of {url} failed with status {status_code}.")
    else:
        logging.info(f"Resource reachable ({status_code}): {url}")
    return ProbeResult(status, status_code=status_code, reason=f"HTTP {status_code}")
