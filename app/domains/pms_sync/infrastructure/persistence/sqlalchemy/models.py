"""
PMS Sync Domain SQLAlchemy Models

Database models for PMS sync persistence.
Uses SQLAlchemy 2.0 style with Mapped[] type annotations.

Every mirrored record is keyed on (user_id, pms_type, external_id) so that
repeated syncs upsert in place.
"""

from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, TimestampMixin


class PMSApiKeyModel(Base, TimestampMixin):
    """Encrypted PMS credential per (user, pms_type)."""

    __tablename__ = "pms_api_keys"
    __table_args__ = (UniqueConstraint("user_id", "pms_type"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    pms_type: Mapped[str] = mapped_column(String(20), nullable=False)
    api_key_encrypted: Mapped[str] = mapped_column(Text, nullable=False)
    api_url: Mapped[str | None] = mapped_column(String(255), nullable=True)
    clinic_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class AppointmentTypeCatalogModel(Base, TimestampMixin):
    """Raw appointment-type catalogue as listed by the PMS."""

    __tablename__ = "pms_appointment_type_catalog"
    __table_args__ = (UniqueConstraint("user_id", "pms_type", "external_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    pms_type: Mapped[str] = mapped_column(String(20), nullable=False)
    external_id: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class AppointmentTypeModel(Base, TimestampMixin):
    """Appointment type classified as WC or EPC."""

    __tablename__ = "appointment_types"
    __table_args__ = (UniqueConstraint("user_id", "pms_type", "appointment_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    pms_type: Mapped[str] = mapped_column(String(20), nullable=False)
    appointment_id: Mapped[str] = mapped_column(String(100), nullable=False)
    appointment_name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(10), nullable=False)


class PractitionerModel(Base, TimestampMixin):
    __tablename__ = "practitioners"
    __table_args__ = (UniqueConstraint("user_id", "pms_type", "external_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    pms_type: Mapped[str] = mapped_column(String(20), nullable=False)
    external_id: Mapped[str] = mapped_column(String(100), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class PatientModel(Base, TimestampMixin):
    """Mirrored patient plus derived funding state."""

    __tablename__ = "patients"
    __table_args__ = (
        UniqueConstraint("user_id", "pms_type", "external_id"),
        Index("ix_patients_user_pms_patient_type", "user_id", "pms_type", "patient_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    pms_type: Mapped[str] = mapped_column(String(20), nullable=False)
    external_id: Mapped[str] = mapped_column(String(100), nullable=False)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    gender: Mapped[str | None] = mapped_column(String(30), nullable=True)

    address_line_1: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address_line_2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    suburb: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    postcode: Mapped[str | None] = mapped_column(String(20), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)

    physio_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    last_modified: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Derived funding state
    patient_type: Mapped[str | None] = mapped_column(String(10), nullable=True)
    sessions_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quota: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class AppointmentModel(Base, TimestampMixin):
    __tablename__ = "appointments"
    __table_args__ = (
        UniqueConstraint("user_id", "pms_type", "external_id"),
        Index("ix_appointments_user_pms_patient", "user_id", "pms_type", "patient_external_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    pms_type: Mapped[str] = mapped_column(String(20), nullable=False)
    external_id: Mapped[str] = mapped_column(String(100), nullable=False)

    patient_external_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    patient_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("patients.id", ondelete="SET NULL"), nullable=True, index=True
    )

    appointment_type_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    appointment_type_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    appointment_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="scheduled")
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    did_not_arrive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    practitioner_external_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    practitioner_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_modified: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class SyncLogModel(Base):
    """One row per sync run."""

    __tablename__ = "sync_logs"
    __table_args__ = (Index("ix_sync_logs_user_pms_started", "user_id", "pms_type", "started_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    pms_type: Mapped[str] = mapped_column(String(20), nullable=False)
    sync_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    patients_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    patients_added: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    patients_synced: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    appointments_synced: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    appointment_types_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    practitioners_synced: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_modified_sync: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    error_details: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)


class SyncControlModel(Base, TimestampMixin):
    __tablename__ = "sync_controls"
    __table_args__ = (UniqueConstraint("user_id", "pms_type"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    pms_type: Mapped[str] = mapped_column(String(20), nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sync_frequency_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=6)
    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    next_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ClinicFundingTagModel(Base, TimestampMixin):
    """Tag vocabulary per clinic user."""

    __tablename__ = "clinic_funding_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    wc_tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    epc_tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)


class CaseModel(Base, TimestampMixin):
    """Case read-model row, rebuilt after every sync or reclassification."""

    __tablename__ = "cases"
    __table_args__ = (UniqueConstraint("user_id", "pms_type", "patient_external_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    pms_type: Mapped[str] = mapped_column(String(20), nullable=False)
    patient_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=True, index=True
    )
    patient_external_id: Mapped[str] = mapped_column(String(100), nullable=False)

    case_number: Mapped[str] = mapped_column(String(120), nullable=False)
    case_title: Mapped[str] = mapped_column(String(255), nullable=False)
    program_type: Mapped[str] = mapped_column(String(10), nullable=False)
    quota: Mapped[int] = mapped_column(Integer, nullable=False)
    sessions_used: Mapped[int] = mapped_column(Integer, nullable=False)
    sessions_remaining: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False)
    alert_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_alert_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    physio_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    appointment_type_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_visit_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    next_visit_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
