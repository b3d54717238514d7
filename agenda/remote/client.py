from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import httpx

from ..config import settings
from ..errors import CONNECTION_ERROR_MESSAGE, ApiError, LoginPayloadError
from ..schemas import ApiResponse

logger = logging.getLogger(__name__)

USER_KEYS = ("usuario", "user")
TOKEN_KEYS = ("token", "accessToken", "access_token")

USER_MISSING = "Usuário não encontrado na resposta do servidor"
TOKEN_MISSING = "Token não encontrado na resposta do servidor"


def error_message(status: int, body: Any) -> str:
    server_message = body.get("message") if isinstance(body, dict) else None
    if status == 404:
        return "Servidor não encontrado. Verifique se o backend está rodando."
    if status >= 500:
        return "Erro interno do servidor. Tente novamente mais tarde."
    if 400 <= status < 500:
        return server_message or "Dados inválidos enviados."
    return server_message or f"Erro HTTP {status}"


def _first(source: Any, keys: tuple[str, ...]) -> Any:
    if not isinstance(source, dict):
        return None
    for key in keys:
        if source.get(key):
            return source[key]
    return None


def extract_login_payload(body: Any) -> tuple[dict[str, Any], str]:
    """Find the user and the bearer token in a login response of any known shape."""
    nested = body.get("data") if isinstance(body, dict) else None
    user = _first(body, USER_KEYS) or _first(nested, USER_KEYS)
    token = _first(body, TOKEN_KEYS) or _first(nested, TOKEN_KEYS)
    if not isinstance(user, dict) or not user:
        raise LoginPayloadError(USER_MISSING)
    if not isinstance(token, str) or not token:
        raise LoginPayloadError(TOKEN_MISSING)
    return user, token


class ApiClient:
    def __init__(
        self,
        base_url: str = settings.api_base_url,
        token_provider: Callable[[], str | None] | None = None,
        timeout: float = settings.api_timeout,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.timeout = timeout
        self.transport = transport

    def _headers(self, skip_auth: bool) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if skip_auth or self.token_provider is None:
            return headers
        token = self.token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        payload: dict | None = None,
        skip_auth: bool = False,
    ) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(
                    method, url, json=payload, headers=self._headers(skip_auth)
                )
        except httpx.HTTPError as exc:
            logger.warning("Request %s %s failed: %s", method, url, exc)
            raise ApiError(CONNECTION_ERROR_MESSAGE) from exc

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = {"message": "Erro de conexão"}
            message = error_message(response.status_code, body)
            logger.warning("Request %s %s returned %s: %s", method, url, response.status_code, message)
            raise ApiError(message, status=response.status_code, data=body)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            logger.warning("Request %s %s returned a body that is not JSON", method, url)
            raise ApiError(CONNECTION_ERROR_MESSAGE, status=response.status_code) from exc

    async def login(self, email: str, password: str) -> tuple[dict[str, Any], str]:
        body = await self.request(
            "POST", settings.login_path, {"email": email, "password": password}, skip_auth=True
        )
        return extract_login_payload(body)

    async def list_appointments(self) -> ApiResponse:
        body = await self.request("GET", settings.appointments_path)
        if not isinstance(body, dict):
            return ApiResponse(success=isinstance(body, list), data=body)
        return ApiResponse.model_validate(body)

    async def create_appointment(self, payload: dict) -> Any:
        return await self.request("POST", settings.appointments_path, payload)

    async def update_appointment(self, appointment_id: str | int, payload: dict) -> Any:
        return await self.request("PUT", f"{settings.appointments_path}/{appointment_id}", payload)

    async def delete_appointment(self, appointment_id: str | int) -> Any:
        return await self.request("DELETE", f"{settings.appointments_path}/{appointment_id}")
