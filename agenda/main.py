from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Set

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.websockets import WebSocketState

from .config import settings
from .errors import AccessDeniedError, ApiError, FormValidationError, LoginError, LoginPayloadError
from .remote.client import ApiClient
from .remote.repository import build_repository
from .schemas import (
    AdminSession,
    Appointment,
    AppointmentForm,
    AppointmentPage,
    AvailabilityResponse,
    LoginRequest,
)
from .services import AppointmentService, LoginService
from .store import AuthSession, auth_session
from .tools.listing import QUICK_RANGES, filter_appointments, paginate
from .tools.slots import compute_availability

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

NOT_AUTHENTICATED = "Você precisa estar logado como administrador para acessar esta página."
UNKNOWN_RANGE = "Período inválido. Use today, week ou month."


class ConnectionManager:
    def __init__(self) -> None:
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.append(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)

    async def broadcast(self, payload: dict) -> None:
        for websocket in list(self.active_connections):
            try:
                await websocket.send_json(payload)
            except Exception as exc:
                logger.warning("Dropping events socket that failed to receive: %s", exc)
                self.disconnect(websocket)


manager = ConnectionManager()
auth_session.init()
api_client = ApiClient(settings.api_base_url, token_provider=auth_session.get_token)
login_service = LoginService(api_client, auth_session)
appointment_service = AppointmentService(build_repository(api_client))
_broadcast_tasks: Set[asyncio.Task] = set()


def announce_auth_change(event: str, session: AuthSession) -> None:
    """Session listener: push login/logout to every connected panel."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.debug("No running loop, %s event not broadcast", event)
        return
    payload = {"type": "auth", "payload": {"event": event, "authenticated": session.is_logged_in}}
    task = loop.create_task(manager.broadcast(payload))
    _broadcast_tasks.add(task)
    task.add_done_callback(_broadcast_tasks.discard)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    unsubscribe = auth_session.subscribe(announce_auth_change)
    yield
    unsubscribe()


app = FastAPI(title="Agenda Admin Panel", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ApiError)
async def api_error_handler(_request, exc: ApiError) -> JSONResponse:
    if exc.is_connectivity:
        status = 503
    elif 400 <= exc.status < 600:
        status = exc.status
    else:
        status = 502
    return JSONResponse(status_code=status, content={"detail": exc.message})


@app.exception_handler(LoginError)
async def login_error_handler(_request, exc: LoginError) -> JSONResponse:
    status = 502 if isinstance(exc, LoginPayloadError) else 400
    return JSONResponse(status_code=status, content={"detail": str(exc)})


@app.exception_handler(AccessDeniedError)
async def access_denied_handler(_request, exc: AccessDeniedError) -> JSONResponse:
    return JSONResponse(status_code=403, content={"detail": str(exc)})


@app.exception_handler(FormValidationError)
async def form_error_handler(_request, exc: FormValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def _session_state() -> AdminSession:
    return AdminSession(
        authenticated=auth_session.is_logged_in,
        is_admin=auth_session.is_admin,
        user=auth_session.user,
    )


def _require_admin() -> None:
    if not (auth_session.is_logged_in and auth_session.is_admin):
        raise HTTPException(status_code=401, detail=NOT_AUTHENTICATED)


async def _find_appointment(appointment_id: str) -> Appointment:
    appointments = await appointment_service.list_all()
    for appointment in appointments:
        if appointment.id is not None and str(appointment.id) == appointment_id:
            return appointment
    raise HTTPException(status_code=404, detail="Agendamento não encontrado")


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.post("/admin/login", response_model=AdminSession)
async def admin_login(payload: LoginRequest) -> AdminSession:
    await login_service.login(payload.email, payload.password)
    return _session_state()


@app.post("/admin/logout", response_model=AdminSession)
async def admin_logout() -> AdminSession:
    login_service.logout()
    return _session_state()


@app.get("/admin/session", response_model=AdminSession)
async def admin_session() -> AdminSession:
    return _session_state()


@app.get("/appointments", response_model=AppointmentPage)
async def list_appointments(
    search: str = "",
    start: str | None = None,
    end: str | None = None,
    page: int = 1,
    quick_range: str | None = Query(None, alias="range"),
) -> AppointmentPage:
    _require_admin()
    if quick_range:
        if quick_range not in QUICK_RANGES:
            raise HTTPException(status_code=400, detail=UNKNOWN_RANGE)
        first, last = QUICK_RANGES[quick_range]()
        start, end = first.isoformat(), last.isoformat()
    appointments = await appointment_service.list_all()
    filtered = filter_appointments(appointments, search=search, start=start, end=end)
    items, has_more = paginate(filtered, page, settings.page_size)
    return AppointmentPage(items=items, total=len(filtered), page=page, has_more=has_more)


@app.get("/appointments/slots", response_model=AvailabilityResponse)
async def appointment_slots(date: str = "", editing_id: str | None = None) -> AvailabilityResponse:
    _require_admin()
    appointments = await appointment_service.list_all()
    editing = None
    if editing_id:
        editing = next(
            (appt for appt in appointments if appt.id is not None and str(appt.id) == editing_id),
            None,
        )
    availability = compute_availability(appointments, date, editing)
    return AvailabilityResponse(
        date=availability.date,
        slots=availability.slots,
        occupied=availability.occupied,
        available=availability.available,
        no_slots_available=availability.no_slots_available,
        message=availability.message,
    )


@app.post("/appointments")
async def create_appointment(form: AppointmentForm) -> dict:
    _require_admin()
    payload = await appointment_service.save(form)
    return {"success": True, "message": "Agendamento criado com sucesso", "data": payload}


@app.put("/appointments/{appointment_id}")
async def update_appointment(appointment_id: str, form: AppointmentForm) -> dict:
    _require_admin()
    editing = await _find_appointment(appointment_id)
    payload = await appointment_service.save(form, editing=editing)
    return {"success": True, "message": "Agendamento atualizado com sucesso", "data": payload}


@app.delete("/appointments/{appointment_id}")
async def delete_appointment(appointment_id: str) -> dict:
    _require_admin()
    target = await _find_appointment(appointment_id)
    await appointment_service.delete(target)
    return {"success": True, "message": "Agendamento excluído com sucesso"}


@app.websocket("/admin/events")
async def admin_events(websocket: WebSocket) -> None:
    await manager.connect(websocket)
    try:
        await websocket.send_json(
            {"type": "status", "payload": {"authenticated": auth_session.is_logged_in}}
        )
        while True:
            message = await websocket.receive_json()
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json(
                    {"type": "pong", "payload": {"at": datetime.now(timezone.utc).isoformat()}}
                )
    except WebSocketDisconnect:
        pass
    except Exception as exc:
        logger.warning("Closing events socket after unreadable message: %s", exc)
        if websocket.client_state == WebSocketState.CONNECTED:
            await websocket.close(code=1003)
    finally:
        manager.disconnect(websocket)
