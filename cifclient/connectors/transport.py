"""
HTTP transport for the CIF v3 API

Sends one logical API call and returns the success payload or raises a
typed error:
- Token authentication headers on every request
- Transparent retry when the remote answers 429, honouring Retry-After
- Status-code driven error classification
- Payload-level failure detection (status == "failed", "missing data")
"""
import json
import logging
import math
import time
from typing import Any, Callable, Dict, Optional

import requests
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_never
)

from cifclient.config import ClientConfig
from cifclient.exceptions import (
    AuthError,
    EmptyResponseError,
    FailedStatusError,
    GenericHttpError,
    MissingDataError,
    PreconditionError,
    RateLimitedError,
    RateLimitExceededError,
    RequestTimeoutError,
    ServerValidationError,
    TransportError
)
from cifclient.models.request import APIRequest, HTTPMethod

DEFAULT_RETRY_AFTER = 2  # seconds


def parse_retry_after(value: Optional[str]) -> float:
    """
    Parse a Retry-After header value

    Only the delta-seconds form is honoured. When the header was sent more
    than once, requests joins the values with commas and the first one wins.

    Args:
        value: Raw header value or None

    Returns:
        Delay in seconds, DEFAULT_RETRY_AFTER when absent or unparsable
    """
    if not value:
        return DEFAULT_RETRY_AFTER

    first = value.split(',')[0].strip()
    try:
        seconds = float(first)
    except ValueError:
        return DEFAULT_RETRY_AFTER

    if not math.isfinite(seconds) or seconds < 0:
        return DEFAULT_RETRY_AFTER
    return seconds


def _wait_retry_after(retry_state) -> float:
    """tenacity wait strategy: sleep for whatever the remote asked"""
    exception = retry_state.outcome.exception()
    return getattr(exception, 'retry_after', DEFAULT_RETRY_AFTER)


class CIFTransport:
    """
    Executes APIRequest objects against the configured remote

    The transport owns a requests.Session but keeps no per-call state, so
    one instance can serve any number of sequential calls.
    """

    def __init__(
        self,
        config: ClientConfig,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize transport

        Args:
            config: Connection settings (remote, token, proxy, retry bound)
            session: Optional pre-built session
            sleep: Function used to wait between rate-limited attempts
        """
        self.config = config
        self.session = session or requests.Session()
        self.sleep = sleep

        self.logger = logging.getLogger(self.__class__.__name__)

    def _get_auth_headers(self, token: str) -> Dict[str, str]:
        """
        Return authentication and content negotiation headers

        Args:
            token: Resolved API token

        Returns:
            Dictionary of HTTP headers
        """
        return {
            "Authorization": f"Token token={token}",
            "Accept": f"application/vnd.{self.config.api_name}.v3+json",
            "Content-Type": "application/json"
        }

    def resolve_url(self, request: APIRequest) -> str:
        """Absolute URI, or the request path joined onto the configured remote"""
        uri = request.uri.strip()
        if uri.lower().startswith(('http://', 'https://')):
            return uri

        base_url = self.config.base_url
        if not base_url:
            return ""

        path = uri.lstrip('/')
        return f"{base_url}/{path}" if path else base_url

    def send(self, request: APIRequest) -> Any:
        """
        Execute a request, retrying while the remote rate limits

        Args:
            request: Request to send. Re-issued unchanged on every retry.

        Returns:
            Non-empty success payload (parsed JSON, or text for non-JSON bodies)

        Raises:
            PreconditionError: No token or no remote URI available
            RateLimitExceededError: Still rate limited when the retry bound is hit
            TransportError: Any other failure from the error taxonomy
        """
        token = request.token or self.config.token
        url = self.resolve_url(request)

        if not token:
            raise PreconditionError(
                "No API token available; set 'token' in the config file or pass one with the request"
            )
        if not url:
            raise PreconditionError(
                "No remote URI available; set 'remote' in the config file or pass an absolute URI"
            )

        max_attempts = self.config.max_retry_attempts
        retryer = Retrying(
            stop=stop_after_attempt(max_attempts) if max_attempts else stop_never,
            wait=_wait_retry_after,
            retry=retry_if_exception_type(RateLimitedError),
            sleep=self.sleep,
            before_sleep=self._log_retry,
            reraise=True
        )

        try:
            payload = retryer(self._send_once, request, url, token)
        except RateLimitedError as e:
            self.logger.error(f"Giving up on {url} after {max_attempts} rate-limited attempts")
            raise RateLimitExceededError(
                f"Remote is still rate limiting after {max_attempts} attempts",
                attempts=max_attempts
            ) from e

        return self._check_payload(payload)

    def _log_retry(self, retry_state) -> None:
        """tenacity before_sleep hook"""
        self.logger.warning(
            f"Rate limited (attempt {retry_state.attempt_number}), "
            f"retrying in {retry_state.next_action.sleep}s"
        )

    def _send_once(self, request: APIRequest, url: str, token: str) -> Any:
        """Issue a single HTTP round trip and classify the response"""
        kwargs = {
            "headers": self._get_auth_headers(token),
            "timeout": self.config.timeout
        }

        proxy = request.proxy or self.config.proxy
        if proxy:
            kwargs["proxies"] = {"http": proxy, "https": proxy}

        if request.body:
            if request.method == HTTPMethod.GET:
                kwargs["params"] = request.body
            else:
                kwargs["data"] = json.dumps(request.body, separators=(',', ':'))

        log = self.logger.info if (request.verbose or self.config.verbose) else self.logger.debug
        log(f"Request: {request.method.value} {url}")

        try:
            response = self.session.request(request.method.value, url, **kwargs)
        except requests.exceptions.Timeout as e:
            self.logger.error(f"Request timed out: {url}")
            raise RequestTimeoutError(f"Request to {url} timed out") from e
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Request failed: {url} - {str(e)}")
            raise TransportError(f"Request to {url} failed: {e}") from e

        log(f"Response: {response.status_code} from {url}")

        self._raise_for_status(response, url)
        return self._parse_body(response)

    def _raise_for_status(self, response: requests.Response, url: str) -> None:
        """Map HTTP error statuses onto the error taxonomy"""
        status = response.status_code

        if status == 429:
            raise RateLimitedError(parse_retry_after(response.headers.get('Retry-After')))

        if status < 400:
            return

        self.logger.error(f"Client error: {url} - {status}")

        if status == 401:
            raise AuthError("Authentication failed, check that the API token is valid", status)

        if status == 408:
            raise RequestTimeoutError("Remote timed out processing the request", status)

        message = self._error_message(response)

        if status == 422:
            detail = f": {message}" if message else ""
            raise ServerValidationError(f"Remote could not process the request{detail}", status)

        if message:
            raise GenericHttpError(message, status)

        raise GenericHttpError(f"Server returned {status}", status)

    @staticmethod
    def _error_message(response: requests.Response) -> Optional[str]:
        """Extract 'message' from a JSON error body, if there is one"""
        try:
            body = response.json()
        except ValueError:
            return None

        if isinstance(body, dict) and body.get('message'):
            return str(body['message'])
        return None

    @staticmethod
    def _parse_body(response: requests.Response) -> Any:
        """Parsed JSON body, falling back to raw text"""
        try:
            return response.json()
        except ValueError:
            return response.text

    def _check_payload(self, payload: Any) -> Any:
        """
        Reject payloads that signal failure despite a success status

        Raises:
            EmptyResponseError: Payload is null or empty
            FailedStatusError: status == "failed"
            MissingDataError: message == "missing data"
        """
        if payload is None:
            raise EmptyResponseError("Remote returned a null response")

        if isinstance(payload, str) and not payload.strip():
            raise EmptyResponseError("Remote returned an empty response")

        if isinstance(payload, (dict, list)) and len(payload) == 0:
            raise EmptyResponseError("Remote returned an empty response")

        if isinstance(payload, dict):
            if payload.get('status') == 'failed':
                message = payload.get('message') or 'no message given'
                self.logger.error(f"Remote reported failure: {message}")
                raise FailedStatusError(f"Request failed: {message}")

            if payload.get('message') == 'missing data':
                raise MissingDataError("Remote reported missing data")

        return payload

    def close(self) -> None:
        """Close the underlying HTTP session"""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
