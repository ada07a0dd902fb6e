import json
from unittest.mock import MagicMock

import pytest
import requests

from clients.relay_client import (
    INVALID_BODY_MESSAGE,
    NETWORK_ERROR_MESSAGE,
    RelayClient,
    RelayRequestError,
    error_message_from_response,
)


def make_response(status_code: int, body: str) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response._content = body.encode("utf-8")
    response.encoding = "utf-8"
    return response


def client_returning(response) -> RelayClient:
    session = MagicMock()
    session.post.return_value = response
    return RelayClient(base_url="http://relay.local/", session=session)


def test_posts_json_to_api_path():
    client = client_returning(make_response(200, json.dumps({"translation": "Hi"})))

    assert client.post("translate", {"text": "سلام"}) == {"translation": "Hi"}
    client.session.post.assert_called_once_with(
        "http://relay.local/api/translate", json={"text": "سلام"}, timeout=client.timeout
    )


def test_error_envelope_message_is_used():
    client = client_returning(make_response(429, json.dumps({"error": "بیش از حد مجاز"})))

    with pytest.raises(RelayRequestError) as exc:
        client.post("chat", {"fieldOfStudy": "x"})
    assert exc.value.message == "بیش از حد مجاز"
    assert exc.value.status_code == 429


def test_short_non_json_error_body_is_appended():
    message = error_message_from_response(make_response(502, "Bad Gateway"))
    assert message == "درخواست با کد وضعیت 502 با شکست مواجه شد: Bad Gateway"


def test_long_non_json_error_body_is_not_shown():
    message = error_message_from_response(make_response(500, "<html>" + "x" * 600 + "</html>"))
    assert message == f"درخواست با کد وضعیت 500 با شکست مواجه شد. ({INVALID_BODY_MESSAGE})"


def test_json_error_body_without_message_field():
    message = error_message_from_response(make_response(500, json.dumps({"detail": "boom"})))
    assert message == "درخواست با کد وضعیت 500 با شکست مواجه شد"


def test_empty_error_body():
    assert error_message_from_response(make_response(504, "")) == "درخواست با کد وضعیت 504 با شکست مواجه شد"


def test_non_json_success_body():
    client = client_returning(make_response(200, "not json"))

    with pytest.raises(RelayRequestError) as exc:
        client.post("scholar", {"keywords": "k"})
    assert exc.value.message == INVALID_BODY_MESSAGE


def test_network_failure():
    session = MagicMock()
    session.post.side_effect = requests.ConnectionError("refused")
    client = RelayClient(session=session)

    with pytest.raises(RelayRequestError) as exc:
        client.post("chat-bot", {"messages": []})
    assert exc.value.message == NETWORK_ERROR_MESSAGE
    assert exc.value.status_code is None
