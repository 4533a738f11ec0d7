"""Clock-in/clock-out retrieval from the Toast labor API."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import date
from typing import Any

from shiftlead.pos.base import (
    AttendanceRecord,
    EmployeeName,
    Fetched,
    LaborOutcome,
    Skipped,
    SkipReason,
    parse_timestamp,
    to_business_date,
)
from shiftlead.pos.client import ToastClient, unwrap_list
from shiftlead.pos.errors import RateLimitedError, UpstreamError

logger = logging.getLogger(__name__)

TIME_ENTRIES_PATH = "/labor/v1/timeEntries"
JOBS_PATH = "/labor/v1/jobs"
EMPLOYEES_PATH = "/labor/v1/employees"

UNKNOWN_EMPLOYEE = "Unknown"
DEFAULT_JOB_TITLE = "Staff"


class LaborFetcher:
    """Fetches attendance for a single business date.

    Upstream failures never raise out of ``fetch_attendance``; they come back
    as ``Skipped`` so a sync can pass over a day without aborting.
    """

    def __init__(self, client: ToastClient):
        self.client = client

    async def fetch_attendance(
        self,
        location_id: str,
        business_date: date,
        jobs: dict[str, str] | None = None,
        employees: dict[str, EmployeeName] | None = None,
    ) -> LaborOutcome:
        try:
            payload = await self.client.get_json(
                TIME_ENTRIES_PATH,
                location_id,
                # open=true includes employees who are still clocked in
                params={"businessDate": to_business_date(business_date), "open": "true"},
            )
        except RateLimitedError as e:
            logger.warning("Labor fetch rate limited for %s on %s", location_id, business_date)
            return Skipped(SkipReason.RATE_LIMITED, e.user_message)
        except UpstreamError as e:
            logger.warning("Labor fetch failed for %s on %s: %s", location_id, business_date, e)
            return Skipped(SkipReason.UPSTREAM_FAILURE, str(e))

        records = [
            record
            for record in (
                build_attendance_record(entry, jobs or {}, employees or {})
                for entry in unwrap_list(payload, "timeEntries")
            )
            if record is not None
        ]
        if not records:
            return Skipped(SkipReason.NO_ATTENDANCE)
        return Fetched(tuple(records))

    async def fetch_jobs(self, location_id: str) -> dict[str, str]:
        """Map job guid to display title. Empty on failure."""
        try:
            payload = await self.client.get_json(JOBS_PATH, location_id)
        except UpstreamError as e:
            logger.warning("Job list fetch failed for %s: %s", location_id, e)
            return {}

        jobs: dict[str, str] = {}
        for job in unwrap_list(payload, "jobs"):
            guid = job.get("guid") or job.get("id")
            if guid:
                jobs[str(guid)] = job.get("title") or job.get("name") or "Unknown"
        return jobs

    async def fetch_employees(self, location_id: str) -> dict[str, EmployeeName]:
        """Map employee guid to name fields. Empty on failure."""
        try:
            payload = await self.client.get_json(EMPLOYEES_PATH, location_id)
        except UpstreamError as e:
            logger.warning("Employee directory fetch failed for %s: %s", location_id, e)
            return {}

        directory: dict[str, EmployeeName] = {}
        for employee in unwrap_list(payload, "employees"):
            guid = employee.get("guid") or employee.get("id")
            name = EmployeeName.from_payload(employee)
            if guid and name is not None:
                directory[str(guid)] = name
        return directory


async def fetch_attendance_batched(
    labor: LaborFetcher,
    location_id: str,
    days: Sequence[date],
    jobs: dict[str, str],
    employees: dict[str, EmployeeName],
    batch_size: int,
) -> dict[date, LaborOutcome]:
    """Fetch attendance per date, ``batch_size`` dates at a time."""
    outcomes: dict[date, LaborOutcome] = {}
    for start in range(0, len(days), batch_size):
        batch = days[start:start + batch_size]
        fetched = await asyncio.gather(
            *(labor.fetch_attendance(location_id, day, jobs, employees) for day in batch)
        )
        outcomes.update(zip(batch, fetched))
    return outcomes


def build_attendance_record(
    entry: dict[str, Any],
    jobs: dict[str, str],
    employees: dict[str, EmployeeName],
) -> AttendanceRecord | None:
    """Convert a raw time entry, or None for deleted and incomplete entries."""
    if entry.get("deleted"):
        return None

    employee_id = resolve_employee_id(entry)
    clock_in = parse_timestamp(entry.get("inDate"))
    if not employee_id or clock_in is None:
        return None

    return AttendanceRecord(
        employee_id=employee_id,
        employee_name=resolve_employee_name(entry, employees.get(employee_id)),
        job_title=resolve_job_title(entry, jobs),
        clock_in=clock_in,
        clock_out=parse_timestamp(entry.get("outDate")),
    )


def resolve_employee_id(entry: dict[str, Any]) -> str:
    for key in ("employeeReference", "employee"):
        ref = entry.get(key)
        if isinstance(ref, dict) and ref.get("guid"):
            return str(ref["guid"])
    return ""


def resolve_employee_name(entry: dict[str, Any], directory_entry: EmployeeName | None = None) -> str:
    """Resolve a display name from the entry, falling back to the directory.

    Each source is tried in turn with chosen name, then first + last, then
    first only. "Unknown" when nothing yields a name.
    """
    sources = [
        EmployeeName.from_payload(entry.get("employee")),
        EmployeeName.from_payload(entry.get("employeeReference")),
        directory_entry,
    ]
    for source in sources:
        if source is None:
            continue
        name = source.display_name()
        if name:
            return name
    return UNKNOWN_EMPLOYEE


def resolve_job_title(entry: dict[str, Any], jobs: dict[str, str]) -> str:
    """Embedded job name, then job-map lookup by guid, then "Staff"."""
    job_guid = ""
    for key in ("jobReference", "job"):
        ref = entry.get(key)
        if not isinstance(ref, dict):
            continue
        name = ref.get("name")
        if isinstance(name, str) and name.strip():
            return name.strip()
        job_guid = job_guid or str(ref.get("guid") or "")

    if job_guid and jobs.get(job_guid):
        return jobs[job_guid]
    return DEFAULT_JOB_TITLE
