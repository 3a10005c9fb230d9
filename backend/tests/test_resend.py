import json

import httpx
import pytest

from orderdesk.services.exceptions import ConfigurationError, DeliveryRejectedError, TransientTransportError
from orderdesk.services.external.resend import ResendService


class Recorder:
    def __init__(self, response=None, error=None):
        self.requests: list[httpx.Request] = []
        self.response = response or httpx.Response(200, json={"id": "email_123"})
        self.error = error

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response


def make_service(settings, recorder):
    return ResendService(settings, transport=httpx.MockTransport(recorder))


async def test_send_posts_one_request(settings):
    recorder = Recorder()
    service = make_service(settings, recorder)

    message_id = await service.send(["a@example.com", "", "b@example.com"], "Hello", "<p>Hi</p>", "Hi")

    assert message_id == "email_123"
    [request] = recorder.requests
    assert request.method == "POST"
    assert str(request.url) == "https://api.resend.com/emails"
    assert request.headers["Authorization"] == "Bearer re_test"
    body = json.loads(request.content)
    assert body == {
        "from": "Shop <orders@example.com>",
        "to": ["a@example.com", "b@example.com"],
        "subject": "Hello",
        "html": "<p>Hi</p>",
        "text": "Hi",
    }


async def test_missing_api_key_fails_before_anything_else(make_settings):
    recorder = Recorder()
    service = make_service(make_settings(resend_api_key=""), recorder)

    with pytest.raises(ConfigurationError):
        await service.send([], "Hello", "<p>Hi</p>")
    assert recorder.requests == []


async def test_no_recipients_means_no_request(settings):
    recorder = Recorder()
    service = make_service(settings, recorder)

    assert await service.send(["", ""], "Hello", "<p>Hi</p>") is None
    assert recorder.requests == []


@pytest.mark.parametrize("status_code", [429, 500, 502, 503])
async def test_throttling_and_server_errors_are_transient(settings, status_code):
    service = make_service(settings, Recorder(httpx.Response(status_code, text="busy")))

    with pytest.raises(TransientTransportError):
        await service.send(["a@example.com"], "Hello", "<p>Hi</p>")


async def test_network_error_is_transient(settings):
    recorder = Recorder(error=httpx.ConnectError("connection refused"))
    service = make_service(settings, recorder)

    with pytest.raises(TransientTransportError):
        await service.send(["a@example.com"], "Hello", "<p>Hi</p>")


@pytest.mark.parametrize("status_code", [400, 401, 403, 422])
async def test_client_errors_are_rejections(settings, status_code):
    service = make_service(settings, Recorder(httpx.Response(status_code, json={"message": "invalid `to`"})))

    with pytest.raises(DeliveryRejectedError) as excinfo:
        await service.send(["a@example.com"], "Hello", "<p>Hi</p>")
    assert excinfo.value.status_code == status_code
    assert "invalid" in excinfo.value.detail


async def test_accepted_email_without_json_body_has_no_id(settings):
    service = make_service(settings, Recorder(httpx.Response(200, text="OK")))

    assert await service.send(["a@example.com"], "Hello", "<p>Hi</p>") is None


async def test_send_payload_uses_payload_fields(settings):
    from orderdesk.services.notifications.composer import NotificationComposer

    recorder = Recorder()
    payload = NotificationComposer(settings).test_email(["ops@example.com"])

    assert await make_service(settings, recorder).send_payload(payload) == "email_123"
    body = json.loads(recorder.requests[0].content)
    assert body["to"] == ["ops@example.com"]
    assert body["subject"] == payload.subject
    assert body["text"] == payload.text_body
