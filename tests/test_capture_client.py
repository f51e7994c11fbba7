# tests/test_capture_client.py

import pytest
import requests
import logging
from unittest.mock import MagicMock, patch

from api_clients import capture_client

# --- Fixtures ---

@pytest.fixture
def mock_config():
    """Provides a basic mock config dictionary."""
    return {
        'user_agent': 'Test User Agent',
        'request_timeout_content': 5,
        'max_retries': 2,
        'request_delay_seconds': 1,
        'random_wait': False,
        'limit_rate_bytes': None,
    }


def make_response(status_code, chunks=(), content_type='text/html; charset=utf-8', url="https://example.org/"):
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.url = url
    response.headers = {'Content-Type': content_type}
    response.iter_content = MagicMock(return_value=iter(chunks))
    response.close = MagicMock()
    response.raise_for_status = MagicMock()
    return response


# --- Tests for download_resource ---

@patch('api_clients.capture_client.requests.get')
def test_download_success(mock_get, mock_config):
    response = make_response(200, chunks=[b"<html>", b"", b"</html>"], url="https://example.org/home/")
    mock_get.return_value = response

    download = capture_client.download_resource("https://example.org/home", config=mock_config)

    assert download.ok
    assert download.is_html
    assert download.content == b"<html></html>"
    assert download.final_url == "https://example.org/home/"
    assert download.status_code == 200
    mock_get.assert_called_once_with(
        "https://example.org/home",
        headers={'User-Agent': mock_config['user_agent']},
        timeout=mock_config['request_timeout_content'],
        stream=True,
        allow_redirects=True
    )
    response.close.assert_called_once()


@patch('api_clients.capture_client.requests.get')
def test_download_binary_is_not_html(mock_get, mock_config):
    mock_get.return_value = make_response(200, chunks=[b"%PDF-1.7"], content_type='application/pdf')

    download = capture_client.download_resource("https://example.org/file.pdf", config=mock_config)

    assert download.ok
    assert not download.is_html


@patch('api_clients.capture_client.requests.get')
def test_download_not_found(mock_get, mock_config, caplog):
    response = make_response(404)
    mock_get.return_value = response

    with caplog.at_level(logging.WARNING):
        download = capture_client.download_resource("https://example.org/missing.css", config=mock_config)

    assert not download.ok
    assert download.status_code == 404
    assert download.error == "HTTP 404"
    mock_get.assert_called_once() # Decorator should not retry on 404
    response.raise_for_status.assert_not_called()
    response.close.assert_called_once()
    assert "failed with status 404. Skipping." in caplog.text


@patch('api_clients.decorators.time.sleep')
@patch('api_clients.capture_client.requests.get')
def test_download_retry_success(mock_get, mock_sleep, mock_config):
    fail_response = make_response(503)
    fail_response.raise_for_status.side_effect = requests.exceptions.HTTPError("503 Server Error", response=fail_response)
    success_response = make_response(200, chunks=[b"body"])
    mock_get.side_effect = [fail_response, success_response]

    download = capture_client.download_resource("https://example.org", config=mock_config)

    assert download.ok
    assert download.content == b"body"
    assert mock_get.call_count == 2
    fail_response.close.assert_called_once()


@patch('api_clients.decorators.time.sleep')
@patch('api_clients.capture_client.requests.get')
def test_download_retry_fails(mock_get, mock_sleep, mock_config, caplog):
    max_attempts = mock_config['max_retries'] + 1
    fail_response = make_response(500)
    fail_response.raise_for_status.side_effect = requests.exceptions.HTTPError("500 Server Error", response=fail_response)
    mock_get.side_effect = [fail_response] * max_attempts

    with caplog.at_level(logging.ERROR):
        download = capture_client.download_resource("https://example.org", config=mock_config)

    assert not download.ok
    assert download.status_code == 500
    assert "500 Server Error" in download.error
    assert mock_get.call_count == max_attempts
    assert "Request failed for https://example.org" in caplog.text


@patch('api_clients.decorators.time.sleep')
@patch('api_clients.capture_client.requests.get')
def test_download_connection_error(mock_get, mock_sleep, mock_config):
    mock_get.side_effect = requests.exceptions.ConnectionError("DNS lookup failed")

    download = capture_client.download_resource("https://nowhere.invalid", config=mock_config)

    assert not download.ok
    assert "DNS lookup failed" in download.error
    assert mock_get.call_count == mock_config['max_retries'] + 1


# --- Tests for throttling ---

@patch('api_clients.capture_client.time.sleep')
def test_polite_wait_without_delay_does_not_sleep(mock_sleep, mock_config):
    mock_config['request_delay_seconds'] = 0
    capture_client.polite_wait(mock_config)
    mock_sleep.assert_not_called()


@patch('api_clients.capture_client.time.sleep')
def test_polite_wait_fixed_delay(mock_sleep, mock_config):
    capture_client.polite_wait(mock_config)
    mock_sleep.assert_called_once_with(1)


@patch('api_clients.capture_client.random.uniform', return_value=1.5)
@patch('api_clients.capture_client.time.sleep')
def test_polite_wait_random_delay(mock_sleep, mock_uniform, mock_config):
    mock_config['random_wait'] = True
    capture_client.polite_wait(mock_config)
    mock_uniform.assert_called_once_with(0.5, 1.5)
    mock_sleep.assert_called_once_with(1.5)


@patch('api_clients.capture_client.time.monotonic', return_value=100.0)
@patch('api_clients.capture_client.time.sleep')
def test_read_throttled_respects_rate_limit(mock_sleep, mock_monotonic):
    response = make_response(200, chunks=[b"a" * 1000, b"b" * 1000])

    content = capture_client._read_throttled(response, 1000)

    assert len(content) == 2000
    # Clock frozen: each chunk must wait for its share of the budget
    assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0]


@patch('api_clients.capture_client.time.sleep')
def test_read_throttled_without_limit(mock_sleep):
    response = make_response(200, chunks=[b"a" * 5000])
    assert capture_client._read_throttled(response, None) == b"a" * 5000
    mock_sleep.assert_not_called()
