"""
Admin Service API - doctor reassignment plus read endpoints over the admin
projections.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
from sqlalchemy import create_engine

import config
from admin_service.adapters import orm
from admin_service.domain import commands
from admin_service.service_layer import messagebus
from admin_service.service_layer.unit_of_work import SqlAlchemyUnitOfWork
from shared.adapters.eventbus import MessageBusClient
from shared.domain.topics import ADMIN_SERVICE
from shared.entrypoints import api
from shared.entrypoints.projection_consumer import start_projections

api.configure_logging()
logger = logging.getLogger(__name__)

bus = MessageBusClient(ADMIN_SERVICE)

app = api.create_app(
    ADMIN_SERVICE,
    title="Admin Service API",
    description="Clinic-wide read models and doctor reassignment",
)


def get_uow() -> SqlAlchemyUnitOfWork:
    return SqlAlchemyUnitOfWork()


def get_publisher() -> Optional[MessageBusClient]:
    return bus


def initialize():
    engine = create_engine(config.get_postgres_uri())
    orm.create_tables(engine)
    logger.info("Admin Service database initialized")
    start_projections(ADMIN_SERVICE, messagebus.handle, SqlAlchemyUnitOfWork, bus)


@app.on_event("startup")
async def startup_event():
    await run_in_threadpool(initialize)


@app.on_event("shutdown")
def shutdown_event():
    bus.close()


class ReassignRequest(BaseModel):
    doctor_id: Optional[str] = None


@app.post("/api/v1/patients/{patient_id}/assign-doctor")
def assign_doctor(
    patient_id: str,
    request: ReassignRequest,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
    publisher: Optional[MessageBusClient] = Depends(get_publisher),
):
    # an empty string from a form means "no doctor"
    cmd = commands.ReassignDoctor(patient_id=patient_id, doctor_id=request.doctor_id or None)
    result = messagebus.handle(cmd, uow, publisher)
    return {"ok": True, **result}


@app.get("/api/v1/patients/{patient_id}")
def get_patient(patient_id: str, uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    with uow:
        patient = uow.patients.get(patient_id)
        if patient is None or patient.deleted_at is not None:
            raise HTTPException(status_code=404, detail="Patient not found")
        assignment = uow.assignments.active_for_patient(patient_id)
        doctor = uow.users.get(assignment.doctor_id) if assignment else None

    return {
        "id": patient.id,
        "user_id": patient.user_id,
        "name": patient.name,
        "dob": patient.dob,
        "conditions": patient.conditions or [],
        "doctor": (
            {"id": doctor.id, "name": doctor.name, "email": doctor.email}
            if doctor is not None and doctor.deleted_at is None
            else None
        ),
    }


@app.get("/api/v1/stats")
def get_stats(uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    with uow:
        return {
            "doctors": len(uow.users.list_active(role="doctor")),
            "patients": len(uow.patients.list_active()),
            "appointments": len(uow.appointments.list_active()),
            "pending_prescription_requests": len(uow.prescriptions.list_active(status="pending")),
        }
