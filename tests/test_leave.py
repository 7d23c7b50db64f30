"""Leave management tests — types, apply, decisions, balances, reports."""

from __future__ import annotations

import uuid
from datetime import date

import pytest
from sqlalchemy import select

from ems.common.audit import AuditTrail
from ems.common.constants import LeaveStatus
from ems.common.exceptions import ForbiddenException, ValidationException
from ems.leave.models import LeaveBalance, LeaveRequest, LeaveType
from ems.leave.service import LeaveService, leave_days
from tests.conftest import auth_headers, make_department, make_employee


# ── Helpers ─────────────────────────────────────────────────────────


async def make_leave_type(db, name: str = "Casual Leave", max_days: int = 12) -> LeaveType:
    lt = LeaveType(id=uuid.uuid4(), name=name, max_days=max_days)
    db.add(lt)
    await db.flush()
    return lt


async def make_balance(db, employee_id, leave_type_id, *, year=2025, total=12, used=0) -> LeaveBalance:
    bal = LeaveBalance(
        id=uuid.uuid4(),
        employee_id=employee_id,
        leave_type_id=leave_type_id,
        year=year,
        total_days=total,
        used_days=used,
    )
    db.add(bal)
    await db.flush()
    return bal


async def make_request(
    db,
    employee_id,
    leave_type_id,
    *,
    start=date(2025, 3, 10),
    end=date(2025, 3, 12),
    status=LeaveStatus.pending,
) -> LeaveRequest:
    req = LeaveRequest(
        id=uuid.uuid4(),
        employee_id=employee_id,
        leave_type_id=leave_type_id,
        start_date=start,
        end_date=end,
        total_days=leave_days(start, end),
        status=status,
    )
    db.add(req)
    await db.flush()
    return req


async def _fresh_balance(db, balance_id) -> LeaveBalance:
    return (
        await db.execute(
            select(LeaveBalance)
            .where(LeaveBalance.id == balance_id)
            .execution_options(populate_existing=True)
        )
    ).scalars().one()


# ═════════════════════════════════════════════════════════════════════
# Leave types
# ═════════════════════════════════════════════════════════════════════


class TestLeaveTypes:
    async def test_hr_creates_and_anyone_lists(self, client, db, hr_headers):
        await make_employee(db, "Asha", auth_user_id="user_asha")
        await db.commit()

        created = await client.post(
            "/api/v1/leave/types",
            json={"name": "Sick Leave", "max_days": 8},
            headers=hr_headers,
        )
        assert created.status_code == 201

        listing = await client.get("/api/v1/leave/types", headers=auth_headers("user_asha"))
        assert [t["name"] for t in listing.json()["data"]] == ["Sick Leave"]

    async def test_duplicate_type_is_409(self, client, db, hr_headers):
        await make_leave_type(db, "Sick Leave")
        await db.commit()

        resp = await client.post(
            "/api/v1/leave/types", json={"name": "sick leave"}, headers=hr_headers,
        )
        assert resp.status_code == 409


# ═════════════════════════════════════════════════════════════════════
# Apply
# ═════════════════════════════════════════════════════════════════════


class TestApplyLeave:
    async def test_apply_counts_calendar_days(self, client, db):
        emp = await make_employee(db, "Asha", auth_user_id="user_asha")
        lt = await make_leave_type(db)
        await db.commit()

        resp = await client.post(
            "/api/v1/leave/apply",
            json={
                "leave_type_id": str(lt.id),
                "start_date": "2025-03-07",
                "end_date": "2025-03-10",
                "reason": "Family trip",
            },
            headers=auth_headers("user_asha"),
        )

        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["total_days"] == 4
        assert data["status"] == "pending"
        assert data["employee_id"] == str(emp.id)
        assert data["leave_type_name"] == "Casual Leave"

    async def test_end_before_start_is_422(self, client, db):
        await make_employee(db, "Asha", auth_user_id="user_asha")
        lt = await make_leave_type(db)
        await db.commit()

        resp = await client.post(
            "/api/v1/leave/apply",
            json={"leave_type_id": str(lt.id), "start_date": "2025-03-10", "end_date": "2025-03-07"},
            headers=auth_headers("user_asha"),
        )
        assert resp.status_code == 422

    async def test_unknown_leave_type_is_422(self, client, db):
        await make_employee(db, "Asha", auth_user_id="user_asha")
        await db.commit()

        resp = await client.post(
            "/api/v1/leave/apply",
            json={"leave_type_id": str(uuid.uuid4()), "start_date": "2025-03-10", "end_date": "2025-03-10"},
            headers=auth_headers("user_asha"),
        )
        assert resp.status_code == 422

    async def test_identity_without_employee_cannot_apply(self, client, db, admin_headers):
        lt = await make_leave_type(db)
        await db.commit()

        resp = await client.post(
            "/api/v1/leave/apply",
            json={"leave_type_id": str(lt.id), "start_date": "2025-03-10", "end_date": "2025-03-10"},
            headers=admin_headers,
        )
        assert resp.status_code == 403

    async def test_me_and_balances(self, client, db):
        emp = await make_employee(db, "Asha", auth_user_id="user_asha")
        casual = await make_leave_type(db, "Casual Leave")
        annual = await make_leave_type(db, "Annual Leave", 20)
        await make_balance(db, emp.id, casual.id, total=12, used=2)
        await make_balance(db, emp.id, annual.id, total=20, used=0)
        await make_request(db, emp.id, casual.id, status=LeaveStatus.approved)
        await make_request(db, emp.id, casual.id, start=date(2025, 4, 1), end=date(2025, 4, 1))
        await db.commit()
        headers = auth_headers("user_asha")

        pending = await client.get(
            "/api/v1/leave/me", params={"status": "pending"}, headers=headers,
        )
        assert [r["start_date"] for r in pending.json()["data"]] == ["2025-04-01"]

        balances = await client.get(
            "/api/v1/leave/me/balances", params={"year": 2025}, headers=headers,
        )
        data = balances.json()["data"]
        assert [b["leave_type_name"] for b in data] == ["Annual Leave", "Casual Leave"]
        assert data[1]["remaining_days"] == 10


# ═════════════════════════════════════════════════════════════════════
# Decisions
# ═════════════════════════════════════════════════════════════════════


class TestDecide:
    async def test_approval_deducts_balance(self, db):
        emp = await make_employee(db, "Asha")
        lt = await make_leave_type(db)
        bal = await make_balance(db, emp.id, lt.id, total=12, used=1)
        req = await make_request(db, emp.id, lt.id)

        out = await LeaveService.decide(
            db, req.id, LeaveStatus.approved, approver_id="user_hr", actor_role="hr",
        )

        assert out.status == LeaveStatus.approved
        assert out.remarks == "Leave approved by HR"
        assert out.approved_by == "user_hr"
        assert out.approved_at is not None
        assert (await _fresh_balance(db, bal.id)).used_days == 4

    async def test_rejection_keeps_balance(self, db):
        emp = await make_employee(db, "Asha")
        lt = await make_leave_type(db)
        bal = await make_balance(db, emp.id, lt.id, total=12, used=1)
        req = await make_request(db, emp.id, lt.id)

        out = await LeaveService.decide(
            db, req.id, LeaveStatus.rejected, approver_id="user_hr", remarks="Busy quarter",
        )

        assert out.remarks == "Busy quarter"
        assert (await _fresh_balance(db, bal.id)).used_days == 1

    async def test_approval_without_balance_row(self, db):
        emp = await make_employee(db, "Asha")
        lt = await make_leave_type(db)
        req = await make_request(db, emp.id, lt.id)

        out = await LeaveService.decide(db, req.id, LeaveStatus.approved, approver_id="user_hr")
        assert out.status == LeaveStatus.approved

    async def test_balance_year_follows_start_date(self, db):
        emp = await make_employee(db, "Asha")
        lt = await make_leave_type(db)
        old = await make_balance(db, emp.id, lt.id, year=2024, used=0)
        new = await make_balance(db, emp.id, lt.id, year=2025, used=0)
        req = await make_request(db, emp.id, lt.id, start=date(2024, 12, 31), end=date(2025, 1, 2))

        await LeaveService.decide(db, req.id, LeaveStatus.approved, approver_id="user_hr")

        assert (await _fresh_balance(db, old.id)).used_days == 3
        assert (await _fresh_balance(db, new.id)).used_days == 0

    async def test_only_pending_can_be_decided(self, db):
        emp = await make_employee(db, "Asha")
        lt = await make_leave_type(db)
        req = await make_request(db, emp.id, lt.id, status=LeaveStatus.approved)

        with pytest.raises(ValidationException) as exc:
            await LeaveService.decide(db, req.id, LeaveStatus.rejected, approver_id="user_hr")
        assert exc.value.errors == {"status": ["Leave request is already approved."]}

    async def test_pending_is_not_a_decision(self, db):
        emp = await make_employee(db, "Asha")
        lt = await make_leave_type(db)
        req = await make_request(db, emp.id, lt.id)

        with pytest.raises(ValidationException):
            await LeaveService.decide(db, req.id, LeaveStatus.pending, approver_id="user_hr")

    async def test_department_scope(self, db):
        eng = await make_department(db, "Engineering")
        sales = await make_department(db, "Sales")
        emp = await make_employee(db, "Asha", department_id=sales.id)
        lt = await make_leave_type(db)
        req = await make_request(db, emp.id, lt.id)

        with pytest.raises(ForbiddenException):
            await LeaveService.decide(
                db, req.id, LeaveStatus.approved, approver_id="user_boss", department_id=eng.id,
            )

    async def test_decision_is_audited(self, db):
        emp = await make_employee(db, "Asha")
        lt = await make_leave_type(db)
        req = await make_request(db, emp.id, lt.id)

        await LeaveService.decide(
            db, req.id, LeaveStatus.rejected, approver_id="user_hr", actor_role="hr",
        )

        entry = (
            await db.execute(select(AuditTrail).where(AuditTrail.entity_id == req.id))
        ).scalars().one()
        assert entry.action == "rejected"
        assert entry.actor_id == "user_hr"

    async def test_reviewer_cannot_decide_own_request(self, db):
        eng = await make_department(db, "Engineering")
        boss = await make_employee(db, "Boss", department_id=eng.id)
        lt = await make_leave_type(db)
        req = await make_request(db, boss.id, lt.id)

        with pytest.raises(ForbiddenException):
            await LeaveService.decide(
                db, req.id, LeaveStatus.approved, approver_id="user_boss",
                department_id=eng.id, reviewer_id=boss.id,
            )


class TestDecisionEndpoints:
    async def test_manager_approves_own_department(self, client, db, base_roles):
        dept = await make_department(db, "Engineering")
        await make_employee(
            db, "Boss", department_id=dept.id,
            role_id=base_roles["manager"].id, auth_user_id="user_boss",
        )
        mate = await make_employee(db, "Mate", department_id=dept.id)
        lt = await make_leave_type(db)
        req = await make_request(db, mate.id, lt.id)
        await db.commit()

        resp = await client.post(
            f"/api/v1/leave/{req.id}/approve", headers=auth_headers("user_boss"),
        )

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["status"] == "approved"
        assert data["remarks"] == "Leave approved by Manager"
        assert data["approved_by"] == "user_boss"

    async def test_manager_cannot_approve_own_leave(self, client, db, base_roles):
        dept = await make_department(db, "Engineering")
        boss = await make_employee(
            db, "Boss", department_id=dept.id,
            role_id=base_roles["manager"].id, auth_user_id="user_boss",
        )
        lt = await make_leave_type(db)
        req = await make_request(db, boss.id, lt.id)
        await db.commit()

        resp = await client.post(
            f"/api/v1/leave/{req.id}/approve", headers=auth_headers("user_boss"),
        )
        assert resp.status_code == 403

        team = await client.get("/api/v1/leave/team", headers=auth_headers("user_boss"))
        assert team.json()["data"] == []

        detail = await client.get(f"/api/v1/leave/{req.id}", headers=auth_headers("user_boss"))
        assert detail.json()["data"]["status"] == "pending"

    async def test_manager_cannot_decide_other_department(self, client, db, base_roles):
        dept = await make_department(db, "Engineering")
        other = await make_department(db, "Sales")
        await make_employee(
            db, "Boss", department_id=dept.id,
            role_id=base_roles["manager"].id, auth_user_id="user_boss",
        )
        outsider = await make_employee(db, "Outsider", department_id=other.id)
        lt = await make_leave_type(db)
        req = await make_request(db, outsider.id, lt.id)
        await db.commit()

        resp = await client.post(
            f"/api/v1/leave/{req.id}/reject", headers=auth_headers("user_boss"),
        )
        assert resp.status_code == 403

    async def test_hr_rejects_with_remarks(self, client, db, hr_headers):
        emp = await make_employee(db, "Asha")
        lt = await make_leave_type(db)
        req = await make_request(db, emp.id, lt.id)
        await db.commit()

        resp = await client.post(
            f"/api/v1/leave/{req.id}/reject",
            json={"remarks": "Release week"},
            headers=hr_headers,
        )

        assert resp.json()["data"]["remarks"] == "Release week"
        again = await client.post(f"/api/v1/leave/{req.id}/approve", headers=hr_headers)
        assert again.status_code == 422

    async def test_employee_cannot_approve(self, client, db):
        emp = await make_employee(db, "Asha", auth_user_id="user_asha")
        lt = await make_leave_type(db)
        req = await make_request(db, emp.id, lt.id)
        await db.commit()

        resp = await client.post(
            f"/api/v1/leave/{req.id}/approve", headers=auth_headers("user_asha"),
        )
        assert resp.status_code == 403

    async def test_team_view_is_department_scoped(self, client, db, base_roles):
        dept = await make_department(db, "Engineering")
        other = await make_department(db, "Sales")
        await make_employee(
            db, "Boss", department_id=dept.id,
            role_id=base_roles["manager"].id, auth_user_id="user_boss",
        )
        mate = await make_employee(db, "Mate", department_id=dept.id)
        outsider = await make_employee(db, "Outsider", department_id=other.id)
        lt = await make_leave_type(db)
        await make_request(db, mate.id, lt.id)
        await make_request(db, outsider.id, lt.id)
        await db.commit()

        resp = await client.get("/api/v1/leave/team", headers=auth_headers("user_boss"))

        assert [r["employee_name"] for r in resp.json()["data"]] == ["Mate"]

    async def test_get_detail_access(self, client, db):
        emp = await make_employee(db, "Asha", auth_user_id="user_asha")
        await make_employee(db, "Other", auth_user_id="user_other")
        lt = await make_leave_type(db)
        req = await make_request(db, emp.id, lt.id)
        await db.commit()

        own = await client.get(f"/api/v1/leave/{req.id}", headers=auth_headers("user_asha"))
        theirs = await client.get(f"/api/v1/leave/{req.id}", headers=auth_headers("user_other"))

        assert own.status_code == 200
        assert theirs.status_code == 403


# ═════════════════════════════════════════════════════════════════════
# HR listing / report
# ═════════════════════════════════════════════════════════════════════


class TestHRLeaveViews:
    async def test_list_filters(self, client, db, hr_headers):
        eng = await make_department(db, "Engineering")
        a = await make_employee(db, "Asha", department_id=eng.id)
        b = await make_employee(db, "Bilal")
        lt = await make_leave_type(db)
        await make_request(db, a.id, lt.id, start=date(2025, 3, 10), end=date(2025, 3, 11))
        await make_request(db, a.id, lt.id, start=date(2025, 3, 11), end=date(2025, 3, 11))
        await make_request(db, b.id, lt.id, start=date(2025, 3, 10), end=date(2025, 3, 10))
        await db.commit()

        resp = await client.get(
            "/api/v1/leave",
            params={"start_date": "2025-03-10", "department_id": str(eng.id)},
            headers=hr_headers,
        )

        data = resp.json()["data"]
        assert len(data) == 1
        assert data[0]["employee_name"] == "Asha"
        assert data[0]["department_name"] == "Engineering"
        assert resp.json()["meta"]["total"] == 1

    async def test_list_search(self, client, db, hr_headers):
        a = await make_employee(db, "Asha")
        b = await make_employee(db, "Bilal")
        lt = await make_leave_type(db)
        await make_request(db, a.id, lt.id)
        await make_request(db, b.id, lt.id)
        await db.commit()

        resp = await client.get("/api/v1/leave", params={"search": "bil"}, headers=hr_headers)
        assert [r["employee_name"] for r in resp.json()["data"]] == ["Bilal"]

    async def test_monthly_report(self, db):
        eng = await make_department(db, "Engineering")
        a = await make_employee(db, "Asha", department_id=eng.id)
        b = await make_employee(db, "Bilal")
        lt = await make_leave_type(db)
        await make_request(db, a.id, lt.id, status=LeaveStatus.approved)
        await make_request(db, a.id, lt.id, start=date(2025, 3, 20), end=date(2025, 3, 20))
        await make_request(db, b.id, lt.id, status=LeaveStatus.rejected)
        await make_request(db, a.id, lt.id, start=date(2025, 4, 1), end=date(2025, 4, 1))

        reports = await LeaveService.monthly_report(db, 2025, 3)

        by_name = {r.department: r for r in reports}
        assert [r.department for r in reports] == ["Engineering", "No Department"]
        assert by_name["Engineering"].total == 2
        assert by_name["Engineering"].approved == 1
        assert by_name["Engineering"].pending == 1
        assert by_name["No Department"].rejected == 1

    async def test_report_endpoint_department_filter(self, client, db, hr_headers):
        eng = await make_department(db, "Engineering")
        a = await make_employee(db, "Asha", department_id=eng.id)
        b = await make_employee(db, "Bilal")
        lt = await make_leave_type(db)
        await make_request(db, a.id, lt.id)
        await make_request(db, b.id, lt.id)
        await db.commit()

        resp = await client.get(
            "/api/v1/leave/report",
            params={"year": 2025, "month": 3, "department_id": str(eng.id)},
            headers=hr_headers,
        )

        assert [r["department"] for r in resp.json()["data"]] == ["Engineering"]

    async def test_pending_count(self, db):
        emp = await make_employee(db, "Asha")
        lt = await make_leave_type(db)
        await make_request(db, emp.id, lt.id)
        await make_request(db, emp.id, lt.id, status=LeaveStatus.approved)

        assert await LeaveService.pending_count(db) == 1
        assert await LeaveService.pending_count(db, employee_id=uuid.uuid4()) == 0
