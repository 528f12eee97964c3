"""pms_sync_schema

Revision ID: 001_pms_sync_schema
Revises: None
Create Date: 2026-10-18

Creates the PMS sync tables:
- pms_api_keys: encrypted PMS credentials (AES-256-CTR, "<iv_hex>:<ct_hex>")
- pms_appointment_type_catalog: raw appointment types per PMS
- appointment_types: appointment types classified as WC / EPC
- practitioners, patients, appointments: mirrored PMS records
- sync_logs: one row per sync run
- sync_controls: pause/resume and schedule per connection
- clinic_funding_tags: tag vocabulary per clinic
- cases: derived case read-model
"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_pms_sync_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    ]


def _owner() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("pms_type", sa.String(20), nullable=False),
    ]


def upgrade() -> None:
    """Create PMS sync tables."""

    op.create_table(
        "pms_api_keys",
        *_owner(),
        sa.Column("api_key_encrypted", sa.Text(), nullable=False, comment="<iv_hex>:<ciphertext_hex>"),
        sa.Column("api_url", sa.String(255), nullable=True),
        sa.Column("clinic_id", sa.String(100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_pms_api_keys"),
        sa.UniqueConstraint("user_id", "pms_type", name="uq_pms_api_keys_user_id_pms_type"),
    )
    op.create_index("ix_pms_api_keys_user_id", "pms_api_keys", ["user_id"])

    op.create_table(
        "pms_appointment_type_catalog",
        *_owner(),
        sa.Column("external_id", sa.String(100), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_pms_appointment_type_catalog"),
        sa.UniqueConstraint(
            "user_id",
            "pms_type",
            "external_id",
            name="uq_pms_appointment_type_catalog_user_id_pms_type_external_id",
        ),
    )
    op.create_index("ix_pms_appointment_type_catalog_user_id", "pms_appointment_type_catalog", ["user_id"])

    op.create_table(
        "appointment_types",
        *_owner(),
        sa.Column("appointment_id", sa.String(100), nullable=False, comment="PMS appointment type id"),
        sa.Column("appointment_name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(10), nullable=False, comment="WC or EPC"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_appointment_types"),
        sa.UniqueConstraint(
            "user_id", "pms_type", "appointment_id", name="uq_appointment_types_user_id_pms_type_appointment_id"
        ),
    )
    op.create_index("ix_appointment_types_user_id", "appointment_types", ["user_id"])

    op.create_table(
        "practitioners",
        *_owner(),
        sa.Column("external_id", sa.String(100), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("display_name", sa.String(200), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_practitioners"),
        sa.UniqueConstraint("user_id", "pms_type", "external_id", name="uq_practitioners_user_id_pms_type_external_id"),
    )
    op.create_index("ix_practitioners_user_id", "practitioners", ["user_id"])

    op.create_table(
        "patients",
        *_owner(),
        sa.Column("external_id", sa.String(100), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("gender", sa.String(30), nullable=True),
        sa.Column("address_line_1", sa.String(255), nullable=True),
        sa.Column("address_line_2", sa.String(255), nullable=True),
        sa.Column("suburb", sa.String(100), nullable=True),
        sa.Column("state", sa.String(50), nullable=True),
        sa.Column("postcode", sa.String(20), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("physio_name", sa.String(200), nullable=True),
        sa.Column("last_modified", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        # Derived funding state
        sa.Column("patient_type", sa.String(10), nullable=True, comment="WC, EPC or NULL"),
        sa.Column("sessions_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("quota", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_patients"),
        sa.UniqueConstraint("user_id", "pms_type", "external_id", name="uq_patients_user_id_pms_type_external_id"),
    )
    op.create_index("ix_patients_user_id", "patients", ["user_id"])
    op.create_index("ix_patients_user_pms_patient_type", "patients", ["user_id", "pms_type", "patient_type"])

    op.create_table(
        "appointments",
        *_owner(),
        sa.Column("external_id", sa.String(100), nullable=False),
        sa.Column("patient_external_id", sa.String(100), nullable=True),
        sa.Column("patient_id", sa.Integer(), nullable=True),
        sa.Column("appointment_type_id", sa.String(100), nullable=True),
        sa.Column("appointment_type_name", sa.String(255), nullable=True),
        sa.Column("appointment_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="scheduled"),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("did_not_arrive", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("practitioner_external_id", sa.String(100), nullable=True),
        sa.Column("practitioner_name", sa.String(200), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("last_modified", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_appointments"),
        sa.UniqueConstraint("user_id", "pms_type", "external_id", name="uq_appointments_user_id_pms_type_external_id"),
        sa.ForeignKeyConstraint(
            ["patient_id"], ["patients.id"], name="fk_appointments_patient_id_patients", ondelete="SET NULL"
        ),
    )
    op.create_index("ix_appointments_user_id", "appointments", ["user_id"])
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("ix_appointments_user_pms_patient", "appointments", ["user_id", "pms_type", "patient_external_id"])

    op.create_table(
        "sync_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("pms_type", sa.String(20), nullable=False),
        sa.Column("sync_type", sa.String(20), nullable=False, comment="initial, incremental or manual"),
        sa.Column("status", sa.String(20), nullable=False, comment="running, completed or failed"),
        sa.Column("patients_processed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("patients_added", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("patients_synced", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("appointments_synced", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("appointment_types_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("practitioners_synced", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("errors_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_modified_sync", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_details", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_sync_logs"),
    )
    op.create_index("ix_sync_logs_status", "sync_logs", ["status"])
    op.create_index("ix_sync_logs_user_pms_started", "sync_logs", ["user_id", "pms_type", "started_at"])

    op.create_table(
        "sync_controls",
        *_owner(),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("sync_frequency_hours", sa.Integer(), nullable=False, server_default="6"),
        sa.Column("last_sync_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_sync_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_sync_controls"),
        sa.UniqueConstraint("user_id", "pms_type", name="uq_sync_controls_user_id_pms_type"),
    )
    op.create_index("ix_sync_controls_user_id", "sync_controls", ["user_id"])

    op.create_table(
        "clinic_funding_tags",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("wc_tags", sa.JSON(), nullable=False),
        sa.Column("epc_tags", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_clinic_funding_tags"),
        sa.UniqueConstraint("user_id", name="uq_clinic_funding_tags_user_id"),
    )

    op.create_table(
        "cases",
        *_owner(),
        sa.Column("patient_id", sa.Integer(), nullable=True),
        sa.Column("patient_external_id", sa.String(100), nullable=False),
        sa.Column("case_number", sa.String(120), nullable=False),
        sa.Column("case_title", sa.String(255), nullable=False),
        sa.Column("program_type", sa.String(10), nullable=False, comment="WC or EPC"),
        sa.Column("quota", sa.Integer(), nullable=False),
        sa.Column("sessions_used", sa.Integer(), nullable=False),
        sa.Column("sessions_remaining", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("priority", sa.String(20), nullable=False),
        sa.Column("alert_message", sa.Text(), nullable=True),
        sa.Column("is_alert_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("physio_name", sa.String(200), nullable=True),
        sa.Column("appointment_type_name", sa.String(255), nullable=True),
        sa.Column("last_visit_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_visit_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_cases"),
        sa.UniqueConstraint(
            "user_id", "pms_type", "patient_external_id", name="uq_cases_user_id_pms_type_patient_external_id"
        ),
        sa.ForeignKeyConstraint(
            ["patient_id"], ["patients.id"], name="fk_cases_patient_id_patients", ondelete="CASCADE"
        ),
    )
    op.create_index("ix_cases_user_id", "cases", ["user_id"])
    op.create_index("ix_cases_patient_id", "cases", ["patient_id"])


def downgrade() -> None:
    """Drop PMS sync tables."""
    for table in (
        "cases",
        "clinic_funding_tags",
        "sync_controls",
        "sync_logs",
        "appointments",
        "patients",
        "practitioners",
        "appointment_types",
        "pms_appointment_type_catalog",
        "pms_api_keys",
    ):
        op.drop_table(table)
