"""Installer directory and installation jobs, stored in Airtable.

Reads propagate upstream failures by default (``FailurePolicy.PROPAGATE``);
writes always propagate.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from tirematch.core.config import Settings
from tirematch.core.enums import JOB_REFERENCE_PREFIX, FailurePolicy, InstallerStatus, JobStatus
from tirematch.core.errors import AirtableError, JobNotFound, JobStateConflict, UpstreamError
from tirematch.core.logging import log_fallback, logger
from tirematch.models.installer import (
    InstallationJob,
    InstallerApplication,
    InstallerRecord,
    JobCreate,
)
from tirematch.services.airtable import AirtableClient, formula_string
from tirematch.utils.converters import optional_float, optional_str, safe_float, safe_int
from tirematch.utils.geo import haversine_km

ACTIVE_FORMULA = "{Status}='Active'"


# -----------------------------------------------------------------------------
# Record mapping
# -----------------------------------------------------------------------------


def record_to_installer(record: dict[str, Any]) -> InstallerRecord:
    fields = record.get("fields") or {}
    return InstallerRecord(
        id=str(record.get("id") or ""),
        name=str(fields.get("Name") or ""),
        email=optional_str(fields.get("Email")),
        phone=optional_str(fields.get("Phone")),
        address=str(fields.get("Address") or ""),
        city=str(fields.get("City") or ""),
        province=str(fields.get("Province") or ""),
        postal_code=optional_str(fields.get("PostalCode")),
        latitude=optional_float(fields.get("Latitude")),
        longitude=optional_float(fields.get("Longitude")),
        calendly_link=optional_str(fields.get("CalendlyLink")),
        service_radius_km=optional_float(fields.get("ServiceRadius")),
        price_per_tire=optional_float(fields.get("PricePerTire")),
        status=str(fields.get("Status") or InstallerStatus.PENDING.value),
        rating=safe_float(fields.get("Rating")),
        total_installations=safe_int(fields.get("TotalInstallations")),
    )


def record_to_job(record: dict[str, Any]) -> InstallationJob:
    fields = record.get("fields") or {}
    status = JobStatus.from_string(fields.get("Status")) or JobStatus.PENDING
    return InstallationJob(
        id=str(record.get("id") or ""),
        reference=optional_str(fields.get("JobReference")),
        customer_name=str(fields.get("CustomerName") or ""),
        customer_email=str(fields.get("CustomerEmail") or ""),
        customer_phone=str(fields.get("CustomerPhone") or ""),
        customer_address=optional_str(fields.get("CustomerAddress")),
        installer_id=optional_str(fields.get("InstallerId")),
        tire_product=str(fields.get("TireProduct") or ""),
        quantity=safe_int(fields.get("Quantity")),
        installation_price=safe_float(fields.get("InstallationPrice")),
        status=status,
        shopify_order_id=optional_str(fields.get("ShopifyOrderId")),
        notes=optional_str(fields.get("Notes")),
        created_at=fields.get("CreatedAt") or record.get("createdTime"),
    )


def new_job_reference() -> str:
    """Reference shared by a job and its Shopify cart (`_job_reference`)."""
    return f"{JOB_REFERENCE_PREFIX}{uuid.uuid4().hex}"


def _without_none(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if v is not None}


# -----------------------------------------------------------------------------
# Directory
# -----------------------------------------------------------------------------


class InstallerDirectory:
    """Installer lookup and job bookkeeping."""

    def __init__(self, airtable: AirtableClient, settings: Settings | None = None) -> None:
        self.airtable = airtable
        self.settings = settings or airtable.settings

    @property
    def installers_table(self) -> str:
        return self.settings.airtable_installers_table

    @property
    def jobs_table(self) -> str:
        return self.settings.airtable_jobs_table

    # -- installers -----------------------------------------------------------

    async def list_active_installers(
        self, policy: FailurePolicy = FailurePolicy.PROPAGATE
    ) -> list[InstallerRecord]:
        """All Active installers, rating descending."""
        params = {
            "filterByFormula": ACTIVE_FORMULA,
            "sort[0][field]": "Rating",
            "sort[0][direction]": "desc",
        }
        try:
            records = await self.airtable.list_records(self.installers_table, params)
        except UpstreamError as e:
            if policy == FailurePolicy.PROPAGATE:
                raise
            log_fallback("installers", type(e).__name__, error=e)
            return []

        installers = [record_to_installer(r) for r in records]
        # The formula already filters; re-check so only Active ever leaves here
        return [i for i in installers if i.is_active]

    async def find_nearby(
        self,
        lat: float,
        lng: float,
        radius_km: float,
        policy: FailurePolicy = FailurePolicy.PROPAGATE,
    ) -> list[InstallerRecord]:
        """Active installers within ``radius_km``.

        Installers without coordinates are excluded. Order is inherited from
        ``list_active_installers`` (rating descending); each result carries
        ``distance_km``.
        """
        nearby: list[InstallerRecord] = []
        for installer in await self.list_active_installers(policy):
            if not installer.has_coordinates:
                logger.debug(f"Installer {installer.name!r} has no coordinates, skipped")
                continue
            distance = haversine_km(lat, lng, installer.latitude, installer.longitude)  # type: ignore[arg-type]
            if distance <= radius_km:
                nearby.append(installer.model_copy(update={"distance_km": round(distance, 1)}))

        logger.info(f"Found {len(nearby)} installers within {radius_km}km")
        return nearby

    async def submit_application(self, application: InstallerApplication) -> InstallerRecord:
        """Store an installer sign-up. New installers always start Pending."""
        fields = _without_none(
            {
                "Name": application.business_name,
                "ContactName": application.contact_name,
                "Email": application.email,
                "Phone": application.phone,
                "Address": application.address,
                "City": application.city,
                "Province": application.province,
                "PostalCode": application.postal_code or None,
                "Latitude": application.latitude,
                "Longitude": application.longitude,
                "ServiceRadius": application.service_radius_km,
                "PricePerTire": application.price_per_tire,
                "LicenseNumber": application.license_number or None,
                "CalendlyLink": application.calendar_link or None,
                "Notes": application.notes or None,
                "Status": InstallerStatus.PENDING.value,
            }
        )
        record = await self.airtable.create_record(self.installers_table, fields)
        logger.info(f"Installer application stored: {record.get('id')}")
        return record_to_installer(record)

    # -- jobs -----------------------------------------------------------------

    async def create_job(self, job: JobCreate) -> InstallationJob:
        """Insert a job.

        Status is always Pending and CreatedAt is set here. A job created
        without a reference gets a fresh one from ``new_job_reference``.
        """
        if job.status and JobStatus.from_string(job.status) != JobStatus.PENDING:
            logger.info(f"Ignoring caller-supplied job status {job.status!r}")

        fields = _without_none(
            {
                "JobReference": job.reference or new_job_reference(),
                "CustomerName": job.customer_name,
                "CustomerEmail": job.customer_email,
                "CustomerPhone": job.customer_phone,
                "InstallerId": job.installer_id,
                "TireProduct": job.tire_product,
                "Quantity": job.quantity,
                "InstallationPrice": job.installation_price,
                "ShopifyOrderId": job.shopify_order_id,
                "Notes": job.notes,
                "Status": JobStatus.PENDING.value,
                "CreatedAt": datetime.now(timezone.utc).isoformat(),
            }
        )
        record = await self.airtable.create_record(self.jobs_table, fields)
        logger.info(f"Installation job created: {record.get('id')}")
        return record_to_job(record)

    async def get_job(self, job_id: str) -> InstallationJob:
        try:
            record = await self.airtable.get_record(self.jobs_table, job_id)
        except AirtableError as e:
            if e.status_code == 404:
                raise JobNotFound(f"No job with id {job_id}") from e
            raise
        return record_to_job(record)

    async def find_job_by_reference(self, reference: str) -> InstallationJob:
        records = await self.airtable.list_records(
            self.jobs_table,
            {
                "filterByFormula": f"{{JobReference}}={formula_string(reference)}",
                "maxRecords": 1,
            },
        )
        if not records:
            raise JobNotFound(f"No job with reference {reference}")
        return record_to_job(records[0])

    async def update_job(
        self,
        job_id: str,
        status: JobStatus,
        notes: str | None = None,
        expected_status: JobStatus | None = None,
    ) -> InstallationJob:
        """Change a job's status (and optionally its notes).

        Raises:
            JobStateConflict: the job is not in ``expected_status``, or the
                lifecycle does not allow moving to ``status``.
        """
        current = await self.get_job(job_id)
        self._check_transition(current, status, expected_status)

        fields: dict[str, Any] = {"Status": status.value}
        if notes is not None:
            fields["Notes"] = notes
        record = await self.airtable.update_record(self.jobs_table, job_id, fields)
        logger.info(f"Job {job_id}: {current.status.value} -> {status.value}")
        return record_to_job(record)

    async def confirm_job(
        self, job: InstallationJob, order_fields: dict[str, Any]
    ) -> InstallationJob:
        """Move a Pending job to Confirmed and attach order details.

        A job that is already Confirmed is returned unchanged (webhook
        replay). A Completed or Cancelled job is never overwritten.
        """
        if job.status == JobStatus.CONFIRMED:
            logger.info(f"Job {job.id} already confirmed, ignoring replay")
            return job
        if job.status.is_terminal:
            logger.warning(
                f"Job {job.id} is {job.status.value}; not confirming from a stale webhook"
            )
            return job

        fields = _without_none({**order_fields, "Status": JobStatus.CONFIRMED.value})
        record = await self.airtable.update_record(self.jobs_table, job.id, fields)
        logger.info(f"Job {job.id} confirmed")
        return record_to_job(record)

    @staticmethod
    def _check_transition(
        current: InstallationJob, target: JobStatus, expected: JobStatus | None
    ) -> None:
        if expected is not None and current.status != expected:
            raise JobStateConflict(
                f"Job {current.id} is {current.status.value}, expected {expected.value}",
                current_status=current.status.value,
            )
        if not current.status.can_transition_to(target):
            raise JobStateConflict(
                f"Job {current.id} cannot move from {current.status.value} to {target.value}",
                current_status=current.status.value,
            )
