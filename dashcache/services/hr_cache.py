from __future__ import annotations

import logging
from typing import Any, Mapping

from dashcache.services import metrics
from dashcache.services.base_cache import BaseDataCache, is_temporary_id, replace_record
from dashcache.services.models import (
    Bonus,
    Employee,
    HRDashboard,
    HREnvelope,
    Hours,
    Penalty,
    Record,
    SyncStatus,
    build_record,
    field_name,
    merge_fields,
)
from dashcache.services.seed import hr_seed

logger = logging.getLogger(__name__)

# Counters maintained from penalties/bonuses, not editable directly.
EMPLOYEE_DERIVED_FIELDS = frozenset({"penalties", "bonuses", "total_penalties", "total_bonuses"})


class HRDataCache(BaseDataCache[HREnvelope]):
    """HR dashboard cache: employees, hours, penalties and bonuses.

    Hours are one record per employee and are merged in place; penalties and
    bonuses are append-only. Both feed denormalized counters on the employee.
    """

    envelope_model = HREnvelope
    primary_collection = "employees"
    collections = ("employees", "hours", "penalties", "bonuses")
    default_storage_key = "hr_data_cache_v1"
    identifier_refs = {
        Employee: (
            ("employees", "id"),
            ("hours", "employee_id"),
            ("penalties", "employee_id"),
            ("bonuses", "employee_id"),
        ),
        Penalty: (("penalties", "id"),),
        Bonus: (("bonuses", "id"),),
    }

    def compute_dashboard(self) -> None:
        self.envelope.dashboard = metrics.compute_hr_dashboard(self.envelope.employees, self.envelope.hours)

    def _seed(self) -> HREnvelope:
        return hr_seed()

    def _keeps_local(self, collection: str, record: Record) -> bool:
        if collection == "hours":
            return is_temporary_id(record.employee_id) and record.sync_status != SyncStatus.SYNCED
        return super()._keeps_local(collection, record)

    async def _after_create(self, record: Record) -> None:
        # Entries made before the employee existed on the server.
        if not isinstance(record, Employee):
            return
        await self._push_held_hours(record)
        # Penalties and bonuses whose POST went to the temporary id failed.
        for collection in ("penalties", "bonuses"):
            held = [
                item
                for item in getattr(self.envelope, collection)
                if item.employee_id == record.id and is_temporary_id(item.id) and item.sync_status == SyncStatus.FAILED
            ]
            for item in held:
                await self._sync_create(item, f"/employees/{record.id}/{collection}")

    async def _push_held_hours(self, employee: Employee) -> None:
        hours = next(
            (h for h in self.envelope.hours if h.employee_id == employee.id and h.sync_status != SyncStatus.SYNCED),
            None,
        )
        if hours is None:
            return
        if hours.to_payload() == Hours(employee_id=employee.id).to_payload():
            async with self._lock:
                hours.sync_status = SyncStatus.SYNCED
            return
        await self._push(hours, "POST", f"/hours/{employee.id}", hours.to_payload())
        async with self._lock:
            hours.sync_status = SyncStatus.SYNCED
            self._mark_updated()

    def _after_reconcile(self) -> None:
        # Server counters do not know about penalties/bonuses that are still
        # waiting for confirmation.
        employees = {e.id: e for e in self.envelope.employees}
        for penalty in self.envelope.penalties:
            employee = employees.get(penalty.employee_id)
            if employee is not None and is_temporary_id(penalty.id):
                employee.penalties += 1
                employee.total_penalties += penalty.amount
        for bonus in self.envelope.bonuses:
            employee = employees.get(bonus.employee_id)
            if employee is not None and is_temporary_id(bonus.id):
                employee.bonuses += 1
                employee.total_bonuses += bonus.amount

    # --- reads ---

    async def get_dashboard_data(self) -> HRDashboard:
        await self.fetch_all_data()
        if self.envelope.dashboard is None:
            self.compute_dashboard()
        return self.envelope.dashboard

    async def get_employees(self) -> list[Employee]:
        await self.fetch_all_data()
        return self.envelope.employees

    async def get_hours_for_employee(self, employee_id: int) -> Hours:
        await self.fetch_all_data()
        for hours in self.envelope.hours:
            if hours.employee_id == employee_id:
                return hours
        return Hours(employee_id=employee_id)

    # --- employees ---

    async def add_employee(self, data: Mapping[str, Any]) -> Employee:
        async with self._lock:
            fields = {k: v for k, v in data.items() if k != "id"}
            employee = build_record(
                Employee,
                fields,
                id=self._next_temp_id(),
                penalties=0,
                bonuses=0,
                total_penalties=0.0,
                total_bonuses=0.0,
                sync_status=SyncStatus.PENDING,
            )
            self.envelope.employees.append(employee)
            self.envelope.hours.append(Hours(employee_id=employee.id, sync_status=SyncStatus.PENDING))
            self._commit()
        await self._sync_create(employee, "/employees")
        return employee

    async def update_employee(self, employee_id: int, changes: Mapping[str, Any]) -> Employee:
        async with self._lock:
            current = self._require("employees", employee_id, "Employee")
            fields = {
                k: v
                for k, v in changes.items()
                if k != "id" and field_name(Employee, k) not in EMPLOYEE_DERIVED_FIELDS
            }
            updated = merge_fields(current, fields)
            resend = self._stage(current, updated)
            self.envelope.employees = replace_record(self.envelope.employees, updated)
            self._commit()
        await self._sync_update(updated, f"/employees/{employee_id}", resend)
        return updated

    async def delete_employee(self, employee_id: int, refresh: bool = True) -> None:
        async with self._lock:
            self._require("employees", employee_id, "Employee")
            env = self.envelope
            self.envelope = env.model_copy(
                update={
                    "employees": [e for e in env.employees if e.id != employee_id],
                    "hours": [h for h in env.hours if h.employee_id != employee_id],
                    "penalties": [p for p in env.penalties if p.employee_id != employee_id],
                    "bonuses": [b for b in env.bonuses if b.employee_id != employee_id],
                }
            )
            self._commit()
        await self._sync_delete(employee_id, f"/employees/{employee_id}", refresh)

    # --- hours ---

    async def add_hours(self, employee_id: int, data: Mapping[str, Any]) -> Hours:
        async with self._lock:
            self._require("employees", employee_id, "Employee")
            fields = {k: v for k, v in data.items() if field_name(Hours, k) != "employee_id"}
            existing = next((h for h in self.envelope.hours if h.employee_id == employee_id), None)
            if existing is None:
                hours = build_record(Hours, fields, employee_id=employee_id)
                self.envelope.hours.append(hours)
            else:
                hours = merge_fields(existing, fields)
                self.envelope.hours = [hours if h is existing else h for h in self.envelope.hours]
            hours.sync_status = SyncStatus.PENDING
            self._commit()

        if is_temporary_id(employee_id):
            logger.debug("Hours for unconfirmed employee %s held until it is created", employee_id)
            return hours
        await self._push(hours, "POST", f"/hours/{employee_id}", hours.to_payload())
        async with self._lock:
            hours.sync_status = SyncStatus.SYNCED
            self._mark_updated()
        await self.fetch_all_data(force_refresh=True)
        return hours

    # --- penalties / bonuses ---

    async def add_penalty(self, employee_id: int, data: Mapping[str, Any]) -> Penalty:
        async with self._lock:
            employee = self._require("employees", employee_id, "Employee")
            penalty = build_record(
                Penalty,
                {k: v for k, v in data.items() if k != "id"},
                id=self._next_temp_id(),
                employee_id=employee_id,
                date=self._now_iso(),
                sync_status=SyncStatus.PENDING,
            )
            self.envelope.penalties.append(penalty)
            employee.penalties += 1
            employee.total_penalties += penalty.amount
            self._commit()
        await self._sync_create(penalty, f"/employees/{employee_id}/penalties")
        return penalty

    async def add_bonus(self, employee_id: int, data: Mapping[str, Any]) -> Bonus:
        async with self._lock:
            employee = self._require("employees", employee_id, "Employee")
            bonus = build_record(
                Bonus,
                {k: v for k, v in data.items() if k != "id"},
                id=self._next_temp_id(),
                employee_id=employee_id,
                date=self._now_iso(),
                sync_status=SyncStatus.PENDING,
            )
            self.envelope.bonuses.append(bonus)
            employee.bonuses += 1
            employee.total_bonuses += bonus.amount
            self._commit()
        await self._sync_create(bonus, f"/employees/{employee_id}/bonuses")
        return bonus
