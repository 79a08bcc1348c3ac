"""
Patient Service API Entrypoint - Thin API with Command Dispatch
"""

import logging
from typing import List, Literal, Optional

from fastapi import Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
from sqlalchemy import create_engine

import config
from patient_service.adapters import orm
from patient_service.domain import commands
from patient_service.service_layer import messagebus
from patient_service.service_layer.unit_of_work import SqlAlchemyUnitOfWork
from shared.adapters.eventbus import MessageBusClient
from shared.domain.topics import PATIENT_SERVICE
from shared.entrypoints import api

api.configure_logging()
logger = logging.getLogger(__name__)

bus = MessageBusClient(PATIENT_SERVICE)

app = api.create_app(
    PATIENT_SERVICE,
    title="Patient Service API",
    description="Patient profiles and prescription requests",
)


def get_uow() -> SqlAlchemyUnitOfWork:
    return SqlAlchemyUnitOfWork()


def get_publisher() -> Optional[MessageBusClient]:
    return bus


# Initialize database (Cosmic Python pattern)
def initialize():
    engine = create_engine(config.get_postgres_uri())
    orm.create_tables(engine)
    logger.info("Patient Service database initialized")


@app.on_event("startup")
async def startup_event():
    await run_in_threadpool(initialize)


@app.on_event("shutdown")
def shutdown_event():
    bus.close()


# ---------- Request/Response models ----------

class CreateProfileRequest(BaseModel):
    user_id: str
    name: Optional[str] = None
    dob: Optional[str] = None
    conditions: List[str] = []


class ProfileResponse(BaseModel):
    id: str
    user_id: str
    name: Optional[str] = None
    dob: Optional[str] = None
    conditions: List[str] = []


class CreatePrescriptionRequestBody(BaseModel):
    user_id: str
    medication: str
    notes: Optional[str] = None


class StatusChangeRequest(BaseModel):
    status: Literal["pending", "approved", "denied"]


class PrescriptionResponse(BaseModel):
    id: str
    patient_id: Optional[str] = None
    medication: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[str] = None


# ---------- Endpoints ----------

@app.post("/api/v1/profiles", response_model=ProfileResponse, status_code=201)
def create_profile(
    request: CreateProfileRequest,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
    publisher: Optional[MessageBusClient] = Depends(get_publisher),
):
    cmd = commands.CreatePatientProfile(**request.model_dump())
    profile = messagebus.handle(cmd, uow, publisher)
    return ProfileResponse(**vars(profile))


@app.delete("/api/v1/profiles/{patient_id}", status_code=204)
def delete_profile(
    patient_id: str,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
    publisher: Optional[MessageBusClient] = Depends(get_publisher),
):
    if messagebus.handle(commands.DeletePatient(patient_id=patient_id), uow, publisher) is None:
        raise HTTPException(status_code=404, detail="Patient not found")


@app.delete("/api/v1/users/{user_id}/profile")
def delete_profile_of_user(
    user_id: str,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
    publisher: Optional[MessageBusClient] = Depends(get_publisher),
):
    deleted = messagebus.handle(commands.DeletePatient(user_id=user_id), uow, publisher)
    return {"ok": True, "deleted": deleted is not None}


@app.post("/api/v1/prescriptions/requests", response_model=PrescriptionResponse, status_code=201)
def create_prescription_request(
    request: CreatePrescriptionRequestBody,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
    publisher: Optional[MessageBusClient] = Depends(get_publisher),
):
    cmd = commands.CreatePrescriptionRequest(**request.model_dump())
    return PrescriptionResponse(**vars(messagebus.handle(cmd, uow, publisher)))


@app.post("/api/v1/prescriptions/requests/{request_id}/status", response_model=PrescriptionResponse)
def change_prescription_status(
    request_id: str,
    request: StatusChangeRequest,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
    publisher: Optional[MessageBusClient] = Depends(get_publisher),
):
    cmd = commands.ChangePrescriptionStatus(request_id=request_id, status=request.status)
    return PrescriptionResponse(**vars(messagebus.handle(cmd, uow, publisher)))
