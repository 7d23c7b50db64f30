"""Announcement tests — authoring defaults, manager scope, visibility."""

from __future__ import annotations

import uuid
from datetime import date

from ems.common.constants import AnnouncementStatus, TargetAudience
from ems.notifications.models import Announcement
from ems.notifications.service import AnnouncementService
from tests.conftest import auth_headers, make_department, make_employee


async def make_announcement(
    db,
    title: str,
    *,
    audience: TargetAudience = TargetAudience.all,
    department_id=None,
    status: AnnouncementStatus = AnnouncementStatus.active,
    expiry_date=None,
) -> Announcement:
    item = Announcement(
        id=uuid.uuid4(),
        title=title,
        message=f"{title} body",
        target_audience=audience,
        target_department_id=department_id,
        status=status,
        expiry_date=expiry_date,
        created_by="hr",
    )
    db.add(item)
    await db.flush()
    return item


async def _manager(db, base_roles, dept, auth_id="user_boss"):
    return await make_employee(
        db, "Boss", department_id=dept.id,
        role_id=base_roles["manager"].id, auth_user_id=auth_id,
    )


class TestAuthoring:
    async def test_hr_defaults_to_everyone_in_app(self, client, hr_headers):
        resp = await client.post(
            "/api/v1/announcements",
            json={"title": "Holiday", "message": "Office closed Friday"},
            headers=hr_headers,
        )

        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["target_audience"] == "all"
        assert data["target_department_id"] is None
        assert data["delivery_method"] == "in_app"
        assert data["priority"] == "normal"
        assert data["created_by"] == "hr"

    async def test_hr_targets_a_department(self, client, db, hr_headers):
        dept = await make_department(db, "Sales")
        await db.commit()

        resp = await client.post(
            "/api/v1/announcements",
            json={
                "title": "Targets",
                "message": "Q3 targets are out",
                "target_audience": "department",
                "target_department_id": str(dept.id),
            },
            headers=hr_headers,
        )

        data = resp.json()["data"]
        assert data["target_department_id"] == str(dept.id)
        assert data["target_department_name"] == "Sales"

    async def test_department_audience_needs_existing_department(self, client, hr_headers):
        resp = await client.post(
            "/api/v1/announcements",
            json={
                "title": "Targets",
                "message": "x",
                "target_audience": "department",
                "target_department_id": str(uuid.uuid4()),
            },
            headers=hr_headers,
        )
        assert resp.status_code == 422

    async def test_manager_is_forced_to_own_department(self, client, db, base_roles):
        dept = await make_department(db, "Engineering")
        other = await make_department(db, "Sales")
        await _manager(db, base_roles, dept)
        await db.commit()

        resp = await client.post(
            "/api/v1/announcements",
            json={
                "title": "Standup moved",
                "message": "10:30 from Monday",
                "target_audience": "all",
                "target_department_id": str(other.id),
            },
            headers=auth_headers("user_boss"),
        )

        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["target_audience"] == "department"
        assert data["target_department_id"] == str(dept.id)
        assert data["delivery_method"] == "both"
        assert data["created_by"] == "manager"

    async def test_employee_cannot_publish(self, client, db):
        await make_employee(db, "Eve", auth_user_id="user_eve")
        await db.commit()

        resp = await client.post(
            "/api/v1/announcements",
            json={"title": "Hi", "message": "there"},
            headers=auth_headers("user_eve"),
        )
        assert resp.status_code == 403


class TestManagerScope:
    async def test_manager_lists_only_own_department(self, client, db, base_roles):
        dept = await make_department(db, "Engineering")
        other = await make_department(db, "Sales")
        await _manager(db, base_roles, dept)
        await make_announcement(db, "Company wide")
        await make_announcement(db, "Eng only", audience=TargetAudience.department, department_id=dept.id)
        await make_announcement(db, "Sales only", audience=TargetAudience.department, department_id=other.id)
        await db.commit()

        resp = await client.get("/api/v1/announcements", headers=auth_headers("user_boss"))

        assert [a["title"] for a in resp.json()["data"]] == ["Eng only"]

    async def test_manager_cannot_touch_other_department(self, client, db, base_roles):
        dept = await make_department(db, "Engineering")
        other = await make_department(db, "Sales")
        await _manager(db, base_roles, dept)
        item = await make_announcement(
            db, "Sales only", audience=TargetAudience.department, department_id=other.id,
        )
        await db.commit()
        headers = auth_headers("user_boss")

        assert (await client.get(f"/api/v1/announcements/{item.id}", headers=headers)).status_code == 403
        assert (await client.delete(f"/api/v1/announcements/{item.id}", headers=headers)).status_code == 403

    async def test_manager_update_keeps_target(self, client, db, base_roles):
        dept = await make_department(db, "Engineering")
        other = await make_department(db, "Sales")
        await _manager(db, base_roles, dept)
        item = await make_announcement(
            db, "Eng only", audience=TargetAudience.department, department_id=dept.id,
        )
        await db.commit()

        resp = await client.patch(
            f"/api/v1/announcements/{item.id}",
            json={"title": "Eng update", "target_department_id": str(other.id)},
            headers=auth_headers("user_boss"),
        )

        data = resp.json()["data"]
        assert data["title"] == "Eng update"
        assert data["target_department_id"] == str(dept.id)

    async def test_hr_update_and_delete(self, client, db, hr_headers):
        item = await make_announcement(db, "Old")
        await db.commit()

        updated = await client.patch(
            f"/api/v1/announcements/{item.id}",
            json={"status": "inactive", "expiry_date": "2025-12-31"},
            headers=hr_headers,
        )
        assert updated.json()["data"]["status"] == "inactive"
        assert updated.json()["data"]["expiry_date"] == "2025-12-31"

        deleted = await client.delete(f"/api/v1/announcements/{item.id}", headers=hr_headers)
        assert deleted.status_code == 200
        missing = await client.get(f"/api/v1/announcements/{item.id}", headers=hr_headers)
        assert missing.status_code == 404


class TestVisibility:
    async def test_visible_for_department(self, db):
        dept = await make_department(db, "Engineering")
        other = await make_department(db, "Sales")
        await make_announcement(db, "Everyone")
        await make_announcement(db, "Eng", audience=TargetAudience.department, department_id=dept.id)
        await make_announcement(db, "Sales", audience=TargetAudience.department, department_id=other.id)
        await make_announcement(db, "Paused", status=AnnouncementStatus.inactive)
        await make_announcement(db, "Expired", expiry_date=date(2025, 3, 9))
        await make_announcement(db, "Last day", expiry_date=date(2025, 3, 10))

        items = await AnnouncementService.visible_for(db, dept.id, today=date(2025, 3, 10))

        assert {a.title for a in items} == {"Everyone", "Eng", "Last day"}

    async def test_no_department_sees_company_wide_only(self, db):
        dept = await make_department(db, "Engineering")
        await make_announcement(db, "Everyone")
        await make_announcement(db, "Eng", audience=TargetAudience.department, department_id=dept.id)

        items = await AnnouncementService.visible_for(db, None)

        assert [a.title for a in items] == ["Everyone"]

    async def test_visible_endpoint_for_employee(self, client, db):
        dept = await make_department(db, "Engineering")
        await make_employee(db, "Eve", department_id=dept.id, auth_user_id="user_eve")
        await make_announcement(db, "Eng", audience=TargetAudience.department, department_id=dept.id)
        await db.commit()

        resp = await client.get("/api/v1/announcements/visible", headers=auth_headers("user_eve"))

        assert resp.status_code == 200
        assert [a["title"] for a in resp.json()["data"]] == ["Eng"]
