# clients/relay_client.py
import json
import logging
from typing import Any, Optional

import requests
from requests.exceptions import RequestException

logger = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = "یک خطای ناشناخته در شبکه رخ داد."
INVALID_BODY_MESSAGE = "پاسخ سرور فرمت نامعتبر دارد."
MAX_ERROR_TEXT = 500


class RelayRequestError(Exception):
    """A relay call that did not produce a usable 2xx JSON body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def error_message_from_response(response: requests.Response) -> str:
    """
    The server's {"error": ...} message when present; otherwise a generic
    message with the status code and, when short enough, the raw body.
    """
    message = f"درخواست با کد وضعیت {response.status_code} با شکست مواجه شد"
    text = response.text or ""
    try:
        payload = json.loads(text)
        if isinstance(payload, dict) and payload.get("error"):
            return str(payload["error"])
        # JSON without an error field carries nothing worth showing
        return message
    except ValueError:
        pass

    if not text:
        return message
    if len(text) < MAX_ERROR_TEXT:
        return f"{message}: {text}"
    return f"{message}. ({INVALID_BODY_MESSAGE})"


class RelayClient:
    """Posts JSON to the relay endpoints. One call per submit, no retries."""

    def __init__(self, base_url: str = "http://localhost:8000", session=None, timeout: float = 120.0):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def post(self, path: str, payload: Any) -> Any:
        url = f"{self.base_url}/api/{path.lstrip('/')}"
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
        except RequestException as e:
            logger.warning(f"Relay request to {url} failed: {e}")
            raise RelayRequestError(NETWORK_ERROR_MESSAGE) from e

        if not 200 <= response.status_code < 300:
            message = error_message_from_response(response)
            logger.warning(f"Relay {path} returned {response.status_code}: {message}")
            raise RelayRequestError(message, response.status_code)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Relay {path} returned a non-JSON body")
            raise RelayRequestError(INVALID_BODY_MESSAGE, response.status_code) from e
