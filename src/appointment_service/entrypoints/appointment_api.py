"""
Appointment Service API Entrypoint - Thin API with Command Dispatch
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
from sqlalchemy import create_engine

import config
from appointment_service.adapters import orm
from appointment_service.domain import commands
from appointment_service.domain.model import with_derived_times
from appointment_service.service_layer import messagebus
from appointment_service.service_layer.unit_of_work import SqlAlchemyUnitOfWork
from shared.adapters.eventbus import MessageBusClient
from shared.domain.model import Appointment
from shared.domain.topics import APPOINTMENT_SERVICE
from shared.entrypoints import api
from shared.entrypoints.projection_consumer import start_projections

api.configure_logging()
logger = logging.getLogger(__name__)

bus = MessageBusClient(APPOINTMENT_SERVICE)

app = api.create_app(
    APPOINTMENT_SERVICE,
    title="Appointment Service API",
    description="Appointment booking with per-doctor double-booking protection",
)


def get_uow() -> SqlAlchemyUnitOfWork:
    return SqlAlchemyUnitOfWork()


def get_publisher() -> Optional[MessageBusClient]:
    return bus


def initialize():
    engine = create_engine(config.get_postgres_uri())
    orm.create_tables(engine)
    logger.info("Appointment Service database initialized")
    start_projections(APPOINTMENT_SERVICE, messagebus.handle, SqlAlchemyUnitOfWork, bus)


@app.on_event("startup")
async def startup_event():
    await run_in_threadpool(initialize)


@app.on_event("shutdown")
def shutdown_event():
    bus.close()


# ---------- Request/Response models ----------

class BookRequest(BaseModel):
    patient_user_id: str
    doctor_user_id: str
    date: Optional[str] = None
    slot: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class RescheduleRequest(BaseModel):
    doctor_user_id: Optional[str] = None
    patient_user_id: Optional[str] = None
    date: Optional[str] = None
    slot: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    status: Optional[str] = None


class DoctorActionRequest(BaseModel):
    doctor_user_id: str


class CancelRequest(BaseModel):
    requested_by: Optional[str] = None


class AppointmentResponse(BaseModel):
    id: str
    patient_user_id: Optional[str] = None
    doctor_user_id: Optional[str] = None
    date: Optional[str] = None
    slot: Optional[str] = None
    status: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


def to_response(appointment: Appointment) -> AppointmentResponse:
    full = with_derived_times(appointment)
    return AppointmentResponse(
        id=full.id,
        patient_user_id=full.patient_user_id,
        doctor_user_id=full.doctor_user_id,
        date=full.date,
        slot=full.slot,
        status=full.status,
        start_time=full.start_time,
        end_time=full.end_time,
    )


# ---------- Endpoints ----------

@app.post("/api/v1/appointments", response_model=AppointmentResponse, status_code=201)
def book_appointment(
    request: BookRequest,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
    publisher: Optional[MessageBusClient] = Depends(get_publisher),
):
    cmd = commands.BookAppointment(**request.model_dump())
    return to_response(messagebus.handle(cmd, uow, publisher))


@app.get("/api/v1/appointments", response_model=List[AppointmentResponse])
def list_appointments(user_id: Optional[str] = None, uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    with uow:
        return [to_response(a) for a in uow.appointments.list_active(user_id)]


@app.get("/api/v1/appointments/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(appointment_id: str, uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    with uow:
        appointment = uow.appointments.get(appointment_id)
    if appointment is None or appointment.deleted_at is not None:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return to_response(appointment)


@app.put("/api/v1/appointments/{appointment_id}", response_model=AppointmentResponse)
def reschedule_appointment(
    appointment_id: str,
    request: RescheduleRequest,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
    publisher: Optional[MessageBusClient] = Depends(get_publisher),
):
    cmd = commands.RescheduleAppointment(appointment_id=appointment_id, **request.model_dump())
    return to_response(messagebus.handle(cmd, uow, publisher))


@app.post("/api/v1/appointments/{appointment_id}/approve", response_model=AppointmentResponse)
def approve_appointment(
    appointment_id: str,
    request: DoctorActionRequest,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
    publisher: Optional[MessageBusClient] = Depends(get_publisher),
):
    cmd = commands.ApproveAppointment(appointment_id=appointment_id, doctor_user_id=request.doctor_user_id)
    return to_response(messagebus.handle(cmd, uow, publisher))


@app.post("/api/v1/appointments/{appointment_id}/deny", response_model=AppointmentResponse)
def deny_appointment(
    appointment_id: str,
    request: DoctorActionRequest,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
    publisher: Optional[MessageBusClient] = Depends(get_publisher),
):
    cmd = commands.DenyAppointment(appointment_id=appointment_id, doctor_user_id=request.doctor_user_id)
    return to_response(messagebus.handle(cmd, uow, publisher))


@app.post("/api/v1/appointments/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: str,
    request: CancelRequest,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
    publisher: Optional[MessageBusClient] = Depends(get_publisher),
):
    cmd = commands.CancelAppointment(appointment_id=appointment_id, requested_by=request.requested_by)
    return to_response(messagebus.handle(cmd, uow, publisher))


@app.delete("/api/v1/appointments/{appointment_id}", status_code=204)
def delete_appointment(
    appointment_id: str,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
    publisher: Optional[MessageBusClient] = Depends(get_publisher),
):
    messagebus.handle(commands.DeleteAppointment(appointment_id=appointment_id), uow, publisher)
