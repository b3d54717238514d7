import asyncio
from datetime import datetime

import httpx
import pytest

from agenda.errors import AccessDeniedError, FormValidationError, LoginError
from agenda.remote.client import ApiClient
from agenda.remote.repository import InMemoryAppointmentRepository
from agenda.schemas import Appointment, AppointmentForm
from agenda.services import (
    ID_MISSING,
    AppointmentService,
    LoginService,
    build_payload,
    form_from_appointment,
)
from agenda.store import AuthSession, InMemoryStorage
from agenda.tools.validation import NAME_REQUIRED, SLOT_TAKEN

NOW = datetime(2025, 6, 1, 8, 0)


def login_service(body, status=200):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(status, json=body)

    session = AuthSession(InMemoryStorage())
    client = ApiClient("http://api.test", token_provider=session.get_token, transport=httpx.MockTransport(handler))
    return LoginService(client, session), session, calls


def test_blank_credentials_never_reach_the_api():
    service, session, calls = login_service({})
    with pytest.raises(LoginError, match="Preencha email e senha"):
        asyncio.run(service.login("  ", "secret"))
    assert calls == []


def test_admin_login_persists_session():
    service, session, _ = login_service({"data": {"user": {"email": "a@b.com", "perfil": "gerente"}, "token": "t"}})
    stored = asyncio.run(service.login("a@b.com", "pw"))
    assert stored["isAdmin"] is True
    assert session.is_logged_in and session.is_admin
    assert session.token == "t"


def test_non_admin_login_is_refused_and_not_stored():
    service, session, _ = login_service({"usuario": {"email": "c@d.com", "perfil": "cliente"}, "token": "t"})
    with pytest.raises(AccessDeniedError):
        asyncio.run(service.login("c@d.com", "pw"))
    assert not session.is_logged_in


def test_logout_clears_session():
    service, session, _ = login_service({"usuario": {"isAdmin": True}, "token": "t"})
    asyncio.run(service.login("a@b.com", "pw"))
    service.logout()
    assert not session.is_logged_in


def seeded_repository() -> InMemoryAppointmentRepository:
    repository = InMemoryAppointmentRepository()
    repository.store["a1"] = Appointment(id="a1", nome="Pedro", telefone="11955556666", data="2025-06-10", horario="14:00")
    return repository


def form(**overrides) -> AppointmentForm:
    values = {"nome": " Ana ", "telefone": "(11) 98765-4321", "servico": "barba", "data": "10/06/2025", "horario": "10:00"}
    values.update(overrides)
    return AppointmentForm(**values)


def test_create_sends_clean_payload():
    repository = seeded_repository()
    payload = asyncio.run(AppointmentService(repository).save(form(), now=NOW))
    assert payload == {
        "nome": "Ana",
        "telefone": "11987654321",
        "servico": "barba",
        "data": "2025-06-10",
        "horario": "10:00",
    }
    assert len(repository.store) == 2


def test_create_rejects_taken_slot():
    repository = seeded_repository()
    with pytest.raises(FormValidationError, match=SLOT_TAKEN):
        asyncio.run(AppointmentService(repository).save(form(horario="14:00"), now=NOW))
    assert len(repository.store) == 1


def test_invalid_form_does_not_touch_repository():
    class ExplodingRepository(InMemoryAppointmentRepository):
        async def list_all(self):
            raise AssertionError("repository should not be called")

    with pytest.raises(FormValidationError, match=NAME_REQUIRED):
        asyncio.run(AppointmentService(ExplodingRepository()).save(form(nome=""), now=NOW))


def test_edit_keeps_its_own_slot():
    repository = seeded_repository()
    editing = repository.store["a1"]
    service = AppointmentService(repository)
    asyncio.run(service.save(form(nome="Pedro", horario="14:00"), editing=editing, now=NOW))
    assert repository.store["a1"].nome == "Pedro"
    assert repository.store["a1"].telefone == "11987654321"

    availability = asyncio.run(service.availability("10/06/2025", editing=editing))
    assert "14:00" in availability.available


def test_edit_and_delete_need_an_id():
    service = AppointmentService(seeded_repository())
    orphan = Appointment(nome="Sem id", data="2025-06-10", horario="09:00")
    with pytest.raises(FormValidationError, match=ID_MISSING):
        asyncio.run(service.save(form(), editing=orphan, now=NOW))
    with pytest.raises(FormValidationError, match=ID_MISSING):
        asyncio.run(service.delete(orphan))


def test_delete_removes_appointment():
    repository = seeded_repository()
    asyncio.run(AppointmentService(repository).delete(repository.store["a1"]))
    assert repository.store == {}


def test_availability_without_date_skips_fetch():
    class ExplodingRepository(InMemoryAppointmentRepository):
        async def list_all(self):
            raise AssertionError("repository should not be called")

    availability = asyncio.run(AppointmentService(ExplodingRepository()).availability(""))
    assert len(availability.available) == 12
    assert not availability.resolved


def test_form_from_appointment_shows_display_date():
    prefilled = form_from_appointment(Appointment(id=1, nome="Ana", telefone="1", data="2025-06-10", horario=""))
    assert prefilled.data == "10/06/2025"
    assert prefilled.horario == "09:00"
    assert prefilled.servico == "corte"


def test_build_payload_keeps_unparseable_date():
    assert build_payload(form(data="sem data"))["data"] == "sem data"


def test_rolled_over_date_is_booked_and_checked_as_typed():
    repository = InMemoryAppointmentRepository()
    repository.store["m3"] = Appointment(id="m3", nome="Rui", telefone="11900001111", data="2099-03-03", horario="10:00")
    repository.store["f31"] = Appointment(id="f31", nome="Lia", telefone="11900002222", data="2099-02-31", horario="11:00")
    service = AppointmentService(repository)

    payload = asyncio.run(service.save(form(data="31/02/2099", horario="10:00"), now=NOW))
    assert payload["data"] == "2099-02-31"

    with pytest.raises(FormValidationError, match=SLOT_TAKEN):
        asyncio.run(service.save(form(data="31/02/2099", horario="11:00"), now=NOW))
