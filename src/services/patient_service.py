# src/services/patient_service.py
from typing import List, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.policy import Actor
from models.patient import Patient
from models.user import User, UserRole
from schemas.patient_schemas import PatientCreate
from services.email_service import email_service
from services.user_service import user_service
from utils.datetime_utils import utcnow
from utils.exceptions import (
    BadRequestException,
    ConflictException,
    handle_db_exception,
)
from utils.logger import setup_logger
from utils.security import generate_password
from .scoped_record_service import PatientScopedStrategy, ScopedRecordService

logger = setup_logger("PATIENT_SERVICE")

# Roles whose patient lists are limited to the patients they registered
CREATOR_SCOPED_ROLES = frozenset({UserRole.DOCTOR, UserRole.SURGEON})


class PatientService(ScopedRecordService):
    search_fields = ("full_name", "cnic", "contact_number", "patient_number")
    case_sensitive_search = False

    def __init__(self):
        # A patient's own record is keyed by its id, not a patient_id column
        super().__init__(
            Patient, PatientScopedStrategy(patient_field="id"), "PATIENT_SERVICE"
        )

    async def next_patient_number(self, db: AsyncSession) -> str:
        """PAT-<year>-<4-digit sequence>, restarting each calendar year."""
        prefix = f"PAT-{utcnow().year}-"
        result = await db.execute(
            select(Patient.patient_number)
            .where(Patient.patient_number.like(f"{prefix}%"))
            .order_by(Patient.patient_number.desc())
            .limit(1)
        )
        last = result.scalar_one_or_none()
        sequence = int(last.rsplit("-", 1)[1]) + 1 if last else 1
        return f"{prefix}{sequence:04d}"

    async def create_patient(
        self, db: AsyncSession, patient_in: PatientCreate, actor: Actor
    ) -> Tuple[Patient, str]:
        """Create the patient record and its PATIENT login account.

        Returns the patient and the generated temporary password.
        """
        await user_service.ensure_email_available(db, patient_in.email)
        existing = await db.execute(select(Patient.id).where(Patient.cnic == patient_in.cnic))
        if existing.first() is not None:
            raise ConflictException("A patient with this CNIC already exists")

        if patient_in.assigned_doctor_id:
            doctor = await db.get(User, patient_in.assigned_doctor_id)
            if doctor is None or doctor.role not in (UserRole.DOCTOR, UserRole.SURGEON):
                raise BadRequestException("Assigned doctor not found")

        temporary_password = generate_password()
        try:
            user = user_service.build_user(
                patient_in.email,
                temporary_password,
                patient_in.full_name,
                UserRole.PATIENT,
                patient_in.whatsapp_number or patient_in.contact_number,
            )
            db.add(user)
            await db.flush()

            data = patient_in.model_dump()
            data.update(
                user_id=user.id,
                email=user.email,
                patient_number=await self.next_patient_number(db),
                whatsapp_number=patient_in.whatsapp_number or patient_in.contact_number,
                created_by=actor.id,
            )
            patient = Patient(**data)
            db.add(patient)
            await db.commit()
            await db.refresh(patient)
        except SQLAlchemyError as e:
            await handle_db_exception(db, logger, "create patient", e)

        logger.info(f"Created patient {patient.patient_number} ({patient.id})")
        return patient, temporary_password

    async def send_welcome(self, patient: Patient, temporary_password: str) -> None:
        """Side effect of registration; never fails the request."""
        try:
            await email_service.send_welcome_email(
                patient.email, patient.full_name, patient.patient_number, temporary_password
            )
        except Exception as e:
            logger.error(f"Welcome email for patient {patient.id} failed: {e}")

    async def list_patients(
        self, db: AsyncSession, actor: Actor, page: int = 1, limit: int = 50
    ) -> Tuple[List[Patient], dict]:
        extra = []
        if actor.role in CREATOR_SCOPED_ROLES:
            extra.append(Patient.created_by == actor.id)
        return await self.list_visible(db, actor, page, limit, extra_conditions=extra)

    async def get_active(self, db: AsyncSession, patient_id: UUID) -> Patient:
        """Lookup used by other services before attaching records to a patient."""
        patient = await self.get(db, patient_id)
        if patient is None or patient.is_archived:
            raise BadRequestException("Patient not found or archived")
        return patient


patient_service = PatientService()
