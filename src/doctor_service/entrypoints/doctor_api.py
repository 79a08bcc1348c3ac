"""
Doctor Service API - thin command API for doctor/patient assignments.
Following Cosmic Python pattern: endpoints build commands and dispatch them
through the message bus.
"""

import logging
from typing import List, Optional

from fastapi import Depends
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
from sqlalchemy import create_engine

import config
from doctor_service.adapters import orm
from doctor_service.domain import commands
from doctor_service.service_layer import messagebus
from doctor_service.service_layer.unit_of_work import SqlAlchemyUnitOfWork
from shared.adapters.eventbus import MessageBusClient
from shared.domain.topics import DOCTOR_SERVICE
from shared.entrypoints import api
from shared.entrypoints.projection_consumer import start_projections

api.configure_logging()
logger = logging.getLogger(__name__)

bus = MessageBusClient(DOCTOR_SERVICE)

app = api.create_app(
    DOCTOR_SERVICE,
    title="Doctor Service API",
    description="Doctor/patient assignments and doctor-side projections",
)


def get_uow() -> SqlAlchemyUnitOfWork:
    return SqlAlchemyUnitOfWork()


def get_publisher() -> Optional[MessageBusClient]:
    return bus


def initialize():
    engine = create_engine(config.get_postgres_uri())
    orm.create_tables(engine)
    logger.info("Doctor Service database initialized")
    start_projections(DOCTOR_SERVICE, messagebus.handle, SqlAlchemyUnitOfWork, bus)


@app.on_event("startup")
async def startup_event():
    await run_in_threadpool(initialize)


@app.on_event("shutdown")
def shutdown_event():
    bus.close()


# ---------- Request/Response models ----------

class AssignRequest(BaseModel):
    patient_id: str


class AssignmentResponse(BaseModel):
    doctor_id: str
    patient_id: str
    displaced_doctor_ids: List[str] = []


class PatientSummary(BaseModel):
    id: str
    user_id: Optional[str] = None
    name: Optional[str] = None
    dob: Optional[str] = None
    conditions: List[str] = []


# ---------- Endpoints ----------

@app.post("/api/v1/doctors/{doctor_id}/patients", response_model=AssignmentResponse, status_code=201)
def assign_patient(
    doctor_id: str,
    request: AssignRequest,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
    publisher: Optional[MessageBusClient] = Depends(get_publisher),
):
    cmd = commands.AssignPatient(doctor_id=doctor_id, patient_id=request.patient_id)
    change = messagebus.handle(cmd, uow, publisher)
    return AssignmentResponse(
        doctor_id=doctor_id,
        patient_id=request.patient_id,
        displaced_doctor_ids=[row.doctor_id for row in change.displaced],
    )


@app.delete("/api/v1/doctors/{doctor_id}/patients/{patient_id}")
def unassign_patient(
    doctor_id: str,
    patient_id: str,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
    publisher: Optional[MessageBusClient] = Depends(get_publisher),
):
    cmd = commands.UnassignPatient(doctor_id=doctor_id, patient_id=patient_id)
    released = messagebus.handle(cmd, uow, publisher)
    return {"doctor_id": doctor_id, "patient_id": patient_id, "unassigned": released}


@app.get("/api/v1/doctors/{doctor_id}/patients", response_model=List[PatientSummary])
def list_patients(doctor_id: str, uow: SqlAlchemyUnitOfWork = Depends(get_uow)):
    """Active patients of a doctor, as far as this service's projections know them."""
    with uow:
        patients = []
        for assignment in uow.assignments.active_for_doctor(doctor_id):
            profile = uow.patients.get(assignment.patient_id)
            if profile is None or profile.deleted_at is not None:
                continue
            patients.append(
                PatientSummary(
                    id=profile.id,
                    user_id=profile.user_id,
                    name=profile.name,
                    dob=profile.dob,
                    conditions=profile.conditions or [],
                )
            )
    return patients
