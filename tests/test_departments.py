"""Department API tests — CRUD, manager bookkeeping, reconciliation."""

from __future__ import annotations

import uuid

from sqlalchemy import select

from ems.common.constants import EmployeeStatus
from ems.core_hr.models import Department, Employee
from tests.conftest import auth_headers, make_department, make_employee


async def _fresh(db, model, pk):
    return (
        await db.execute(
            select(model).where(model.id == pk).execution_options(populate_existing=True)
        )
    ).scalars().one()


class TestDepartmentCrud:
    async def test_admin_creates_department(self, client, admin_headers):
        resp = await client.post(
            "/api/v1/departments",
            json={"name": "Finance", "location": "Pune"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["name"] == "Finance"
        assert data["status"] == "active"
        assert data["manager_id"] is None

    async def test_duplicate_name_is_409(self, client, db, admin_headers):
        await make_department(db, "Finance")
        await db.commit()

        resp = await client.post(
            "/api/v1/departments", json={"name": "finance"}, headers=admin_headers,
        )
        assert resp.status_code == 409

    async def test_unknown_manager_is_422(self, client, admin_headers):
        resp = await client.post(
            "/api/v1/departments",
            json={"name": "Finance", "manager_id": str(uuid.uuid4())},
            headers=admin_headers,
        )
        assert resp.status_code == 422

    async def test_hr_cannot_create(self, client, hr_headers):
        resp = await client.post(
            "/api/v1/departments", json={"name": "Finance"}, headers=hr_headers,
        )
        assert resp.status_code == 403

    async def test_employee_cannot_list(self, client, db):
        await make_employee(db, "Eve", auth_user_id="user_eve")
        await db.commit()

        resp = await client.get("/api/v1/departments", headers=auth_headers("user_eve"))
        assert resp.status_code == 403

    async def test_list_counts_and_manager_names(self, client, db, hr_headers):
        dept = await make_department(db, "Engineering")
        boss = await make_employee(db, "Boss", department_id=dept.id)
        await make_employee(db, "Dev", department_id=dept.id)
        await make_employee(db, "Former", department_id=dept.id, status=EmployeeStatus.inactive)
        dept.manager_id = boss.id
        await make_department(db, "Empty")
        await db.commit()

        resp = await client.get("/api/v1/departments", headers=hr_headers)
        assert resp.status_code == 200
        by_name = {d["name"]: d for d in resp.json()["data"]}
        assert by_name["Engineering"]["employee_count"] == 2
        assert by_name["Engineering"]["manager_name"] == "Boss"
        assert by_name["Empty"]["employee_count"] == 0

    async def test_list_search_matches_manager(self, client, db, hr_headers):
        dept = await make_department(db, "Engineering", location="Mumbai")
        boss = await make_employee(db, "Zara Khan", department_id=dept.id)
        dept.manager_id = boss.id
        await make_department(db, "Sales", location="Delhi")
        await db.commit()

        resp = await client.get(
            "/api/v1/departments", params={"search": "zara"}, headers=hr_headers,
        )
        assert [d["name"] for d in resp.json()["data"]] == ["Engineering"]

    async def test_list_adopts_sole_manager_role_holder(self, client, db, hr_headers, base_roles):
        dept = await make_department(db, "Engineering")
        holder = await make_employee(
            db, "Holder", department_id=dept.id, role_id=base_roles["manager"].id,
        )
        await db.commit()

        resp = await client.get("/api/v1/departments", headers=hr_headers)

        assert resp.json()["data"][0]["manager_id"] == str(holder.id)
        assert (await _fresh(db, Department, dept.id)).manager_id == holder.id

    async def test_delete_keeps_employees_unassigned(self, client, db, admin_headers):
        dept = await make_department(db, "Temp")
        emp = await make_employee(db, "Stays", department_id=dept.id)
        await db.commit()

        resp = await client.delete(f"/api/v1/departments/{dept.id}", headers=admin_headers)

        assert resp.status_code == 200
        refreshed = await _fresh(db, Employee, emp.id)
        assert refreshed.department_id is None
        assert (
            await db.execute(select(Department).where(Department.id == dept.id))
        ).scalars().first() is None

    async def test_unknown_department_is_404(self, client, admin_headers):
        resp = await client.get(f"/api/v1/departments/{uuid.uuid4()}", headers=admin_headers)
        assert resp.status_code == 404


class TestManagerReconciliation:
    async def test_detail_reconciles_before_listing(self, client, db, admin_headers, base_roles):
        dept = await make_department(db, "Engineering")
        stale = await make_employee(
            db, "Stale", department_id=dept.id, role_id=base_roles["manager"].id,
        )
        boss = await make_employee(
            db, "Boss", department_id=dept.id, role_id=base_roles["default"].id,
        )
        dept.manager_id = boss.id
        await db.commit()

        resp = await client.get(f"/api/v1/departments/{dept.id}", headers=admin_headers)

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["manager_name"] == "Boss"
        assert data["employee_count"] == 2
        assert data["reconciliation"]["demoted"] == [str(stale.id)]
        assert data["reconciliation"]["promoted"] == str(boss.id)
        assert (await _fresh(db, Employee, boss.id)).role_id == base_roles["manager"].id
        assert (await _fresh(db, Employee, stale.id)).role_id == base_roles["default"].id

    async def test_changing_manager_moves_the_role(self, client, db, admin_headers, base_roles):
        dept = await make_department(db, "Engineering")
        old = await make_employee(
            db, "Old", department_id=dept.id, role_id=base_roles["manager"].id,
        )
        new = await make_employee(
            db, "New", department_id=dept.id, role_id=base_roles["default"].id,
        )
        dept.manager_id = old.id
        await db.commit()

        resp = await client.patch(
            f"/api/v1/departments/{dept.id}",
            json={"manager_id": str(new.id)},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        assert resp.json()["data"]["manager_id"] == str(new.id)
        assert (await _fresh(db, Employee, new.id)).role_id == base_roles["manager"].id
        assert (await _fresh(db, Employee, old.id)).role_id == base_roles["default"].id

    async def test_reconcile_endpoint_reports_writes(self, client, db, admin_headers, base_roles):
        dept = await make_department(db, "Engineering")
        boss = await make_employee(
            db, "Boss", department_id=dept.id, role_id=base_roles["default"].id,
        )
        dept.manager_id = boss.id
        await db.commit()

        first = await client.post(
            f"/api/v1/departments/{dept.id}/reconcile", headers=admin_headers,
        )
        second = await client.post(
            f"/api/v1/departments/{dept.id}/reconcile", headers=admin_headers,
        )

        assert first.json()["message"] == "1 role change(s) applied"
        assert second.json()["message"] == "0 role change(s) applied"
