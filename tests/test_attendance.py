"""Attendance tests — calculator, HR views, corrections, own records."""

from __future__ import annotations

import csv
import io
import uuid
from datetime import date, time, timedelta

import pytest
from sqlalchemy import func, select

from ems.attendance.models import AttendanceRecord
from ems.attendance.service import (
    AttendanceService,
    compute_attendance_percentage,
    count_working_days,
)
from ems.common.constants import AttendanceStatus, EmployeeStatus
from tests.conftest import auth_headers, make_department, make_employee


def _record(employee_id, day, status=AttendanceStatus.present, **kw) -> AttendanceRecord:
    return AttendanceRecord(employee_id=employee_id, date=day, status=status, **kw)


# ═════════════════════════════════════════════════════════════════════
# Calculator
# ═════════════════════════════════════════════════════════════════════


class TestWorkingDays:
    @pytest.mark.parametrize(
        "start, end, expected",
        [
            (date(2025, 3, 3), date(2025, 3, 7), 5),     # Mon..Fri
            (date(2025, 3, 1), date(2025, 3, 2), 0),     # weekend
            (date(2025, 3, 3), date(2025, 3, 3), 1),
            (date(2025, 3, 1), date(2025, 3, 31), 21),
            (date(2024, 1, 1), date(2024, 12, 31), 262),
            (date(2025, 3, 7), date(2025, 3, 3), 0),     # reversed
        ],
    )
    def test_count_working_days(self, start, end, expected):
        assert count_working_days(start, end) == expected


class TestPercentage:
    @pytest.mark.parametrize(
        "present, working, expected",
        [
            (18, 20, 90),
            (0, 0, 100),
            (0, 5, 0),
            (25, 20, 100),
            (1, 3, 33),
            (1, 8, 13),    # 12.5 rounds up
        ],
    )
    def test_compute(self, present, working, expected):
        assert compute_attendance_percentage(present, working) == expected

    async def test_get_percentage_counts_attended_statuses(self, db):
        emp = await make_employee(db, "Asha")
        week = [date(2025, 3, 3) + timedelta(days=i) for i in range(5)]
        db.add_all([
            _record(emp.id, week[0]),
            _record(emp.id, week[1], AttendanceStatus.late),
            _record(emp.id, week[2], AttendanceStatus.half_day),
            _record(emp.id, week[3], AttendanceStatus.absent),
            _record(emp.id, week[4], AttendanceStatus.leave),
        ])
        await db.flush()

        result = await AttendanceService.get_percentage(db, emp.id, week[0], week[-1])

        assert result.working_days == 5
        assert result.present_days == 3
        assert result.percentage == 60

    async def test_weekend_attendance_is_clamped(self, db):
        emp = await make_employee(db, "Asha")
        db.add_all([
            _record(emp.id, date(2025, 3, 7)),   # Friday
            _record(emp.id, date(2025, 3, 8)),   # Saturday
        ])
        await db.flush()

        result = await AttendanceService.get_percentage(
            db, emp.id, date(2025, 3, 7), date(2025, 3, 8),
        )
        assert result.percentage == 100


# ═════════════════════════════════════════════════════════════════════
# Percentage endpoint access
# ═════════════════════════════════════════════════════════════════════


class TestPercentageEndpoint:
    PARAMS = {"start_date": "2025-03-03", "end_date": "2025-03-07"}

    async def test_employee_queries_self(self, client, db):
        emp = await make_employee(db, "Asha", auth_user_id="user_asha")
        db.add(_record(emp.id, date(2025, 3, 3)))
        await db.commit()

        resp = await client.get(
            "/api/v1/attendance/percentage",
            params={**self.PARAMS, "employee_id": str(emp.id)},
            headers=auth_headers("user_asha"),
        )

        assert resp.status_code == 200
        assert resp.json()["data"]["percentage"] == 20

    async def test_employee_cannot_query_others(self, client, db):
        await make_employee(db, "Asha", auth_user_id="user_asha")
        other = await make_employee(db, "Other")
        await db.commit()

        resp = await client.get(
            "/api/v1/attendance/percentage",
            params={**self.PARAMS, "employee_id": str(other.id)},
            headers=auth_headers("user_asha"),
        )
        assert resp.status_code == 403

    async def test_manager_queries_department_member(self, client, db, base_roles):
        dept = await make_department(db, "Engineering")
        await make_employee(
            db, "Boss", department_id=dept.id,
            role_id=base_roles["manager"].id, auth_user_id="user_boss",
        )
        mate = await make_employee(db, "Mate", department_id=dept.id)
        await db.commit()

        resp = await client.get(
            "/api/v1/attendance/percentage",
            params={**self.PARAMS, "employee_id": str(mate.id)},
            headers=auth_headers("user_boss"),
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["percentage"] == 0

    async def test_reversed_range_is_422(self, client, db, hr_headers):
        emp = await make_employee(db, "Asha")
        await db.commit()

        resp = await client.get(
            "/api/v1/attendance/percentage",
            params={"employee_id": str(emp.id), "start_date": "2025-03-07", "end_date": "2025-03-03"},
            headers=hr_headers,
        )
        assert resp.status_code == 422


# ═════════════════════════════════════════════════════════════════════
# HR views
# ═════════════════════════════════════════════════════════════════════


class TestHRAttendance:
    async def test_list_by_day_and_department(self, client, db, hr_headers):
        eng = await make_department(db, "Engineering")
        a = await make_employee(db, "Asha", department_id=eng.id)
        b = await make_employee(db, "Bilal")
        day = date(2025, 3, 3)
        db.add_all([
            _record(a.id, day),
            _record(b.id, day),
            _record(a.id, day + timedelta(days=1)),
        ])
        await db.commit()

        resp = await client.get(
            "/api/v1/attendance",
            params={"date": day.isoformat(), "department_id": str(eng.id)},
            headers=hr_headers,
        )

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert len(data) == 1
        assert data[0]["employee_name"] == "Asha"
        assert data[0]["department_name"] == "Engineering"
        assert resp.json()["meta"]["total"] == 1

    async def test_employee_cannot_list(self, client, db):
        await make_employee(db, "Asha", auth_user_id="user_asha")
        await db.commit()

        resp = await client.get("/api/v1/attendance", headers=auth_headers("user_asha"))
        assert resp.status_code == 403

    async def test_upsert_creates_then_overwrites(self, client, db, hr_headers):
        emp = await make_employee(db, "Asha")
        await db.commit()
        payload = {
            "employee_id": str(emp.id),
            "date": "2025-03-03",
            "check_in": "09:00:00",
            "check_out": "17:30:00",
            "status": "present",
        }

        created = await client.post("/api/v1/attendance", json=payload, headers=hr_headers)
        assert created.status_code == 200
        assert float(created.json()["data"]["total_hours"]) == 8.5
        assert created.json()["data"]["regularized"] is True

        updated = await client.post(
            "/api/v1/attendance",
            json={**payload, "status": "late", "check_in": "10:15:00"},
            headers=hr_headers,
        )
        assert updated.json()["data"]["status"] == "late"

        count = (
            await db.execute(
                select(func.count()).select_from(AttendanceRecord)
                .where(AttendanceRecord.employee_id == emp.id)
            )
        ).scalar_one()
        assert count == 1

    async def test_upsert_rejects_checkout_before_checkin(self, client, db, hr_headers):
        emp = await make_employee(db, "Asha")
        await db.commit()

        resp = await client.post(
            "/api/v1/attendance",
            json={
                "employee_id": str(emp.id),
                "date": "2025-03-03",
                "check_in": "18:00:00",
                "check_out": "09:00:00",
                "status": "present",
            },
            headers=hr_headers,
        )
        assert resp.status_code == 422

    async def test_upsert_unknown_employee_is_404(self, client, hr_headers):
        resp = await client.post(
            "/api/v1/attendance",
            json={"employee_id": str(uuid.uuid4()), "date": "2025-03-03", "status": "present"},
            headers=hr_headers,
        )
        assert resp.status_code == 404

    async def test_status_breakdown(self, client, db, hr_headers):
        day = date(2025, 3, 3)
        emps = [await make_employee(db, f"E{i}") for i in range(4)]
        db.add_all([
            _record(emps[0].id, day),
            _record(emps[1].id, day),
            _record(emps[2].id, day, AttendanceStatus.absent),
        ])
        await db.commit()

        resp = await client.get(
            "/api/v1/attendance/breakdown", params={"date": day.isoformat()}, headers=hr_headers,
        )

        data = resp.json()["data"]
        assert data["total_records"] == 3
        assert data["active_employees"] == 4
        assert data["not_marked"] == 1
        by_status = {s["status"]: s for s in data["statuses"]}
        assert by_status["present"]["count"] == 2
        assert by_status["present"]["percentage"] == 67
        assert by_status["absent"]["percentage"] == 33

    async def test_department_attendance(self, db):
        eng = await make_department(db, "Engineering")
        await make_department(db, "Empty")
        a = await make_employee(db, "Asha", department_id=eng.id)
        await make_employee(db, "Bilal", department_id=eng.id)
        await make_employee(
            db, "Gone", department_id=eng.id, status=EmployeeStatus.inactive,
        )
        day = date(2025, 3, 1)
        while day.month == 3:
            if day.weekday() < 5:
                db.add(_record(a.id, day))
            day += timedelta(days=1)
        await db.flush()

        stats = await AttendanceService.department_attendance(db, 2025, 3)

        by_name = {s.department: s for s in stats}
        assert by_name["Engineering"].total_employees == 2
        assert by_name["Engineering"].present_count == 21
        assert by_name["Engineering"].attendance_percentage == 50
        assert by_name["Empty"].attendance_percentage == 0

    async def test_export_csv(self, client, db, hr_headers):
        emp = await make_employee(db, "Asha")
        db.add(_record(emp.id, date(2025, 3, 3), check_in=time(9, 5)))
        await db.commit()

        resp = await client.get("/api/v1/attendance/export", headers=hr_headers)

        rows = list(csv.reader(io.StringIO(resp.content.decode("utf-8-sig"))))
        assert rows[0][0] == "Employee ID"
        assert rows[1][1:5] == ["Asha", "", "2025-03-03", "09:05"]
        assert rows[1][-1] == "present"


# ═════════════════════════════════════════════════════════════════════
# Own records
# ═════════════════════════════════════════════════════════════════════


class TestMyAttendance:
    async def test_me_lists_own_records_only(self, client, db):
        emp = await make_employee(db, "Asha", auth_user_id="user_asha")
        other = await make_employee(db, "Other")
        db.add_all([
            _record(emp.id, date(2025, 3, 3)),
            _record(emp.id, date(2025, 3, 4), AttendanceStatus.absent),
            _record(other.id, date(2025, 3, 3)),
        ])
        await db.commit()

        resp = await client.get(
            "/api/v1/attendance/me",
            params={"status": "absent"},
            headers=auth_headers("user_asha"),
        )

        data = resp.json()["data"]
        assert [r["date"] for r in data] == ["2025-03-04"]

    async def test_monthly_summary(self, client, db):
        emp = await make_employee(db, "Asha", auth_user_id="user_asha")
        db.add_all([
            _record(emp.id, date(2024, 1, 2)),
            _record(emp.id, date(2024, 1, 3)),
            _record(emp.id, date(2024, 1, 4), AttendanceStatus.absent),
        ])
        await db.commit()

        resp = await client.get(
            "/api/v1/attendance/me/summary",
            params={"year": 2024},
            headers=auth_headers("user_asha"),
        )

        data = resp.json()["data"]
        assert len(data) == 12
        january = data[0]
        assert january["working_days"] == 23
        assert january["present"] == 2
        assert january["absent"] == 1
        assert january["percentage"] == 9

    async def test_summary_stops_at_today(self, db):
        emp = await make_employee(db, "Asha")

        summaries = await AttendanceService.monthly_summaries(
            db, emp.id, 2025, today=date(2025, 3, 5),
        )

        assert [s.month for s in summaries] == [1, 2, 3]
        assert summaries[-1].working_days == 3
