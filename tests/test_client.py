import asyncio
import json

import httpx
import pytest

from agenda.errors import CONNECTION_ERROR_MESSAGE, ApiError, LoginPayloadError
from agenda.remote.client import ApiClient, extract_login_payload
from agenda.remote.repository import RemoteAppointmentRepository

BASE_URL = "http://api.test"


def client_for(handler, token=None) -> ApiClient:
    return ApiClient(BASE_URL, token_provider=lambda: token, transport=httpx.MockTransport(handler))


def test_bearer_token_is_attached_when_available():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"success": True, "data": []})

    asyncio.run(client_for(handler, token="abc").list_appointments())
    assert seen["auth"] == "Bearer abc"

    asyncio.run(client_for(handler, token=None).list_appointments())
    assert seen["auth"] is None


def test_requests_hit_expected_endpoints():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        calls.append((request.method, request.url.path, body))
        return httpx.Response(200, json={"success": True})

    client = client_for(handler, token="abc")
    payload = {"nome": "Ana", "horario": "09:00"}
    asyncio.run(client.create_appointment(payload))
    asyncio.run(client.update_appointment(5, payload))
    asyncio.run(client.delete_appointment("x1"))
    assert calls == [
        ("POST", "/auterota/agendamentos", payload),
        ("PUT", "/auterota/agendamentos/5", payload),
        ("DELETE", "/auterota/agendamentos/x1", None),
    ]


@pytest.mark.parametrize(
    "status, body, message",
    [
        (404, {"message": "rota"}, "Servidor não encontrado. Verifique se o backend está rodando."),
        (500, {"message": "boom"}, "Erro interno do servidor. Tente novamente mais tarde."),
        (503, {}, "Erro interno do servidor. Tente novamente mais tarde."),
        (422, {"message": "Horário inválido"}, "Horário inválido"),
        (400, {}, "Dados inválidos enviados."),
        (302, {"message": "Moved"}, "Moved"),
    ],
)
def test_server_errors_are_mapped_to_messages(status, body, message):
    client = client_for(lambda request: httpx.Response(status, json=body))
    with pytest.raises(ApiError) as info:
        asyncio.run(client.create_appointment({}))
    assert info.value.status == status
    assert info.value.message == message
    assert not info.value.is_connectivity


def test_error_body_that_is_not_json():
    client = client_for(lambda request: httpx.Response(401, text="<html>"))
    with pytest.raises(ApiError) as info:
        asyncio.run(client.list_appointments())
    assert info.value.data == {"message": "Erro de conexão"}


def test_transport_failure_is_a_connectivity_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(ApiError) as info:
        asyncio.run(client_for(handler).list_appointments())
    assert info.value.is_connectivity
    assert info.value.message == CONNECTION_ERROR_MESSAGE


def test_empty_success_body_is_accepted():
    client = client_for(lambda request: httpx.Response(204))
    assert asyncio.run(client.delete_appointment(1)) is None


@pytest.mark.parametrize(
    "body",
    [
        {"usuario": {"nome": "Ana"}, "token": "t"},
        {"user": {"nome": "Ana"}, "accessToken": "t"},
        {"data": {"usuario": {"nome": "Ana"}, "token": "t"}},
        {"data": {"user": {"nome": "Ana"}}, "access_token": "t"},
    ],
)
def test_extract_login_payload_shapes(body):
    assert extract_login_payload(body) == ({"nome": "Ana"}, "t")


def test_extract_login_payload_reports_what_is_missing():
    with pytest.raises(LoginPayloadError, match="Usuário não encontrado"):
        extract_login_payload({"token": "t"})
    with pytest.raises(LoginPayloadError, match="Token não encontrado"):
        extract_login_payload({"usuario": {"nome": "Ana"}})


def test_login_posts_credentials_without_auth_header():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"usuario": {"isAdmin": True}, "token": "t"})

    user, token = asyncio.run(client_for(handler, token="old").login("a@b.com", "pw"))
    assert (user, token) == ({"isAdmin": True}, "t")
    assert seen == {"path": "/auterota/login", "body": {"email": "a@b.com", "password": "pw"}, "auth": None}


def test_remote_repository_normalises_records():
    body = {"success": True, "data": [{"_id": "x", "nome": "Ana", "data": "2025-06-10", "hora": "09:00"}]}
    repository = RemoteAppointmentRepository(client_for(lambda request: httpx.Response(200, json=body)))
    appointments = asyncio.run(repository.list_all())
    assert appointments[0].id == "x"
    assert appointments[0].horario == "09:00"


def test_remote_repository_surfaces_unsuccessful_listing():
    body = {"success": False, "message": "Sem permissão"}
    repository = RemoteAppointmentRepository(client_for(lambda request: httpx.Response(200, json=body)))
    with pytest.raises(ApiError, match="Sem permissão"):
        asyncio.run(repository.list_all())
