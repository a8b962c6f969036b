#  ApplePush - Python library for delivering notifications through the Apple Push Notification service
#  Copyright (C) 2024  Cypheriel
import json
from datetime import datetime, timezone

import httpx
import jwt
import pytest

from applepush import (
    HOST_DEVELOPMENT,
    HOST_PRODUCTION,
    APNsClient,
    ClientConfig,
    Credential,
    Notification,
    Priority,
    PushError,
    PushType,
    Reason,
    ResponseDecodeError,
    Token,
)

DEVICE_TOKEN = "11aa01229f15f0f0c52029d8cf8cd0aeaf2365fe4cebc4af26cd6d76b7919ef7"
CREDENTIAL = Credential((b"certificate",))


class RecordingHandler:
    def __init__(self, status_code=200, content=b"", headers=None):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {"apns-id": "e77a3d12-bc9f-f410-a127-43f212597a9c"}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, content=self.content, headers=self.headers)


def _client(handler, **kwargs) -> APNsClient:
    return APNsClient(CREDENTIAL, config=ClientConfig(transport=httpx.MockTransport(handler)), **kwargs)


def test_default_host():
    assert APNsClient(CREDENTIAL).host == HOST_DEVELOPMENT


def test_development_and_production_hosts():
    client = APNsClient(CREDENTIAL)

    assert client.production() is client
    assert client.host == HOST_PRODUCTION
    assert client.development().host == HOST_DEVELOPMENT


def test_configured_host():
    assert APNsClient(CREDENTIAL, config=ClientConfig(host=HOST_PRODUCTION)).host == HOST_PRODUCTION


def test_url_and_payload():
    handler = RecordingHandler()
    client = _client(handler)

    client.push(Notification(DEVICE_TOKEN, payload={"aps": {"alert": "Hello!"}}))

    (request,) = handler.requests
    assert request.method == "POST"
    assert str(request.url) == f"{HOST_DEVELOPMENT}/3/device/{DEVICE_TOKEN}"
    assert json.loads(request.content) == {"aps": {"alert": "Hello!"}}


def test_default_headers():
    handler = RecordingHandler()

    _client(handler).push(Notification(DEVICE_TOKEN))

    headers = handler.requests[0].headers
    assert headers["content-type"] == "application/json; charset=utf-8"
    assert headers["apns-push-type"] == "alert"
    assert "apns-topic" not in headers
    assert "apns-priority" not in headers
    assert "apns-expiration" not in headers
    assert "authorization" not in headers


def test_headers():
    handler = RecordingHandler()
    notification = Notification(
        DEVICE_TOKEN,
        topic="com.example.app",
        apns_id="84db694a-6f2f-4c8b-a4d8-7fe0d4c5f4a1",
        collapse_id="game1.start.identifier",
        priority=Priority.LOW,
        expiration=datetime(2030, 1, 1, tzinfo=timezone.utc),
        push_type=PushType.BACKGROUND,
    )

    _client(handler).push(notification)

    headers = handler.requests[0].headers
    assert headers["apns-topic"] == "com.example.app"
    assert headers["apns-id"] == "84db694a-6f2f-4c8b-a4d8-7fe0d4c5f4a1"
    assert headers["apns-collapse-id"] == "game1.start.identifier"
    assert headers["apns-priority"] == "5"
    assert headers["apns-expiration"] == "1893456000"
    assert headers["apns-push-type"] == "background"


def test_authorization_header(auth_key):
    handler = RecordingHandler()
    token = Token(auth_key, key_id="ABC123DEFG", team_id="DEF123GHIJ")
    client = APNsClient(token=token, config=ClientConfig(transport=httpx.MockTransport(handler)))

    client.push(Notification(DEVICE_TOKEN))

    scheme, bearer = handler.requests[0].headers["authorization"].split(" ")
    assert scheme == "bearer"
    assert bearer == token.bearer
    assert jwt.decode(bearer, auth_key.public_key(), algorithms=["ES256"])["iss"] == "DEF123GHIJ"


def test_200_success_response():
    handler = RecordingHandler(headers={"apns-id": "apns-id-value", "apns-unique-id": "unique-id-value"})

    response = _client(handler).push(Notification(DEVICE_TOKEN))

    assert response.status_code == 200
    assert response.sent
    assert response.apns_id == "apns-id-value"
    assert response.apns_unique_id == "unique-id-value"
    assert response.reason is None


def test_400_payload_empty_response():
    handler = RecordingHandler(status_code=400, content=b'{"reason":"PayloadEmpty"}')

    response = _client(handler).push(Notification(DEVICE_TOKEN))

    assert response.status_code == 400
    assert not response.sent
    assert response.reason is Reason.PAYLOAD_EMPTY


def test_410_unregistered_response():
    handler = RecordingHandler(status_code=410, content=b'{"reason":"Unregistered", "timestamp": 1458114061260 }')

    response = _client(handler).push(Notification(DEVICE_TOKEN))

    assert response.reason is Reason.UNREGISTERED
    assert int(response.timestamp.timestamp()) == 1458114061


def test_malformed_json_response():
    handler = RecordingHandler(status_code=500, content=b"{{MalformedJSON}}")

    with pytest.raises(ResponseDecodeError):
        _client(handler).push(Notification(DEVICE_TOKEN))


def test_transport_error():
    def refuse(request: httpx.Request) -> httpx.Response:
        msg = "connection refused"
        raise httpx.ConnectError(msg, request=request)

    with pytest.raises(PushError) as exc_info:
        _client(refuse).push(Notification(DEVICE_TOKEN))

    assert exc_info.value.device_token == DEVICE_TOKEN
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


def test_reset_connection():
    handler = RecordingHandler()
    client = _client(handler)

    first = client.http_client
    assert client.http_client is first

    client.reset_connection()
    second = client.http_client

    assert second is not first
    assert first.is_closed
    client.push(Notification(DEVICE_TOKEN))
    assert len(handler.requests) == 1


def test_context_manager_closes():
    handler = RecordingHandler()

    with _client(handler) as client:
        http_client = client.http_client
        client.push(Notification(DEVICE_TOKEN))

    assert http_client.is_closed


def test_repr_identifies_credential():
    assert CREDENTIAL.fingerprint.hex() in repr(APNsClient(CREDENTIAL))
