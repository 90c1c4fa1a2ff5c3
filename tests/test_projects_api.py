import csv
import io

import pytest
from sqlalchemy import select

from retrospect.core.config import settings
from retrospect.models.change_request import ChangeRequestHours
from retrospect.models.profile_hours import ProfileHours

API = "/api/v1/projects"


async def _create(http, headers, **fields):
    body = {"name": "Bank site", "client": "Regional Bank", "offer_value": 10000, **fields}
    res = await http.post(API, json=body, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()


async def _build_scenario_a(http, headers):
    project = await _create(http, headers)
    pid = project["id"]
    res = await http.put(
        f"{API}/{pid}/profile-hours",
        json=[
            {"role": "UX", "estimated_hours": 20, "actual_hours": 25},
            {"role": "DEV", "estimated_hours": 80, "actual_hours": 100},
            {"role": "PM", "estimated_hours": 0, "actual_hours": 0},
        ],
        headers=headers,
    )
    assert res.status_code == 200
    res = await http.post(
        f"{API}/{pid}/external-costs",
        json={"description": "Copywriter", "estimated_cost": 500, "actual_cost": 600},
        headers=headers,
    )
    assert res.status_code == 201
    res = await http.post(
        f"{API}/{pid}/change-requests",
        json={"description": "Extra landing page", "amount": 2000, "hours": [{"role": "DEV", "actual_hours": 10}]},
        headers=headers,
    )
    assert res.status_code == 201
    return pid


class TestEditCapability:
    @pytest.mark.asyncio
    async def test_unlock_with_shared_password(self, client, monkeypatch):
        monkeypatch.setattr(settings, "EDIT_PASSWORD", "open-sesame")
        monkeypatch.setattr(settings, "EDIT_PASSWORD_HASH", None)

        res = await client.post("/api/v1/auth/unlock", json={"password": "open-sesame"})
        assert res.status_code == 200
        body = res.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == settings.EDIT_TOKEN_EXPIRE_MINUTES * 60

        created = await client.post(
            API, json={"name": "Unlocked"}, headers={"Authorization": f"Bearer {body['access_token']}"}
        )
        assert created.status_code == 201

    @pytest.mark.asyncio
    async def test_unlock_wrong_password(self, client):
        res = await client.post("/api/v1/auth/unlock", json={"password": "nope"})
        assert res.status_code == 401
        assert res.json() == {"error": "Invalid password"}

    @pytest.mark.asyncio
    async def test_writes_need_token(self, client):
        res = await client.post(API, json={"name": "Sneaky"})
        assert res.status_code == 401
        assert "error" in res.json()

    @pytest.mark.asyncio
    async def test_reads_are_open(self, client, edit_headers):
        project = await _create(client, edit_headers)
        res = await client.get(f"{API}/{project['id']}")
        assert res.status_code == 200


class TestProjects:
    @pytest.mark.asyncio
    async def test_create_defaults(self, client, edit_headers):
        res = await client.post(API, json={}, headers=edit_headers)
        assert res.status_code == 201
        body = res.json()
        assert body["name"] == "New Project"
        assert body["status"] == "draft"
        assert body["estimated_profit_margin"] == 30
        assert body["metrics"]["health"] == "on-track"
        assert body["profile_hours"] == []

    @pytest.mark.asyncio
    async def test_scenario_a_metrics(self, client, edit_headers):
        pid = await _build_scenario_a(client, edit_headers)

        res = await client.get(f"{API}/{pid}/metrics")
        m = res.json()
        assert m["total_value"] == 12000
        assert m["estimated_hours"] == 100
        assert m["actual_hours"] == 135
        assert m["hours_variance_percent"] == pytest.approx(35)
        assert m["actual_total_cost"] == 4650
        assert m["estimated_margin"] == pytest.approx(70.8333, abs=1e-3)
        assert m["actual_margin"] == pytest.approx(61.25)
        assert m["health"] == "on-track"

    @pytest.mark.asyncio
    async def test_detail_graph(self, client, edit_headers):
        pid = await _build_scenario_a(client, edit_headers)

        body = (await client.get(f"{API}/{pid}")).json()
        # the all-zero PM row is not stored
        assert sorted(ph["role"] for ph in body["profile_hours"]) == ["DEV", "UX"]
        assert len(body["external_costs"]) == 1
        [cr] = body["change_requests"]
        assert cr["amount"] == 2000
        assert [(h["role"], h["actual_hours"]) for h in cr["hours"]] == [("DEV", 10)]

    @pytest.mark.asyncio
    async def test_list_filters_and_includes_metrics(self, client, edit_headers):
        await _create(client, edit_headers, name="Bank site")
        await _create(client, edit_headers, name="Museum app", client="City Museum", offer_value=3000)

        res = await client.get(API, params={"q": "museum"})
        body = res.json()
        assert [p["name"] for p in body] == ["Museum app"]
        assert body[0]["metrics"]["total_value"] == 3000

        res = await client.get(API, params={"status": "active"})
        assert res.json() == []

    @pytest.mark.asyncio
    async def test_patch_project(self, client, edit_headers):
        project = await _create(client, edit_headers)
        res = await client.patch(
            f"{API}/{project['id']}",
            json={"status": "completed", "scope_creep": True, "scope_creep_notes": "Extra languages", "project_outcome": "partial"},
            headers=edit_headers,
        )
        assert res.status_code == 200
        body = res.json()
        assert body["status"] == "completed"
        assert body["scope_creep"] is True
        assert body["project_outcome"] == "partial"
        assert body["name"] == "Bank site"

    @pytest.mark.asyncio
    async def test_save_project_with_hours(self, client, edit_headers):
        project = await _create(client, edit_headers)
        pid = project["id"]
        res = await client.put(
            f"{API}/{pid}",
            json={
                "project": {"status": "active", "went_well": "Fast design sign-off"},
                "profile_hours": [{"role": "DEV", "estimated_hours": 10, "actual_hours": 12}],
            },
            headers=edit_headers,
        )
        assert res.status_code == 200
        body = res.json()
        assert body["status"] == "active"
        assert body["went_well"] == "Fast design sign-off"
        assert body["metrics"]["actual_hours"] == 12

        # upsert by role: a second save replaces, never duplicates
        res = await client.put(
            f"{API}/{pid}",
            json={"project": {}, "profile_hours": [{"role": "DEV", "estimated_hours": 10, "actual_hours": 20}]},
            headers=edit_headers,
        )
        assert [ph["actual_hours"] for ph in res.json()["profile_hours"]] == [20]

    @pytest.mark.asyncio
    async def test_negative_offer_is_rejected(self, client, edit_headers):
        res = await client.post(API, json={"offer_value": -1}, headers=edit_headers)
        assert res.status_code == 422
        assert res.json()["error"] == "Validation error"

    @pytest.mark.asyncio
    async def test_unknown_project(self, client):
        res = await client.get(f"{API}/999")
        assert res.status_code == 404
        assert res.json() == {"error": "Project 999 not found"}

    @pytest.mark.asyncio
    async def test_delete_cascades(self, client, edit_headers, session_factory):
        pid = await _build_scenario_a(client, edit_headers)

        res = await client.delete(f"{API}/{pid}", headers=edit_headers)
        assert res.status_code == 204
        assert (await client.get(f"{API}/{pid}")).status_code == 404

        async with session_factory() as s:
            assert (await s.execute(select(ProfileHours))).scalars().all() == []
            assert (await s.execute(select(ChangeRequestHours))).scalars().all() == []


class TestSaveProject:
    @pytest.mark.asyncio
    async def test_save_whole_form(self, client, edit_headers):
        pid = (await _create(client, edit_headers))["id"]
        item = (await client.post(
            f"{API}/{pid}/scope-items", json={"name": "Article template", "planned_count": 2}, headers=edit_headers
        )).json()
        cr = (await client.post(
            f"{API}/{pid}/change-requests",
            json={"description": "Newsletter", "amount": 500, "hours": [{"role": "DEV", "actual_hours": 5}]},
            headers=edit_headers,
        )).json()

        res = await client.put(
            f"{API}/{pid}",
            json={
                "project": {"status": "completed", "went_wrong": "Late content delivery"},
                "profile_hours": [{"role": "DEV", "estimated_hours": 40, "actual_hours": 50}],
                "scope_items": [
                    {"id": item["id"], "name": "Article template", "planned_count": 2, "actual_count": 3},
                    {"name": "Contact form", "type": "Component", "planned_count": 1, "actual_count": 1},
                ],
                "external_costs": [
                    {"description": "Font license", "cost_type": "tool_license", "estimated_cost": 0, "actual_cost": 80},
                ],
                "change_requests": [
                    {
                        "id": cr["id"],
                        "description": "Newsletter",
                        "amount": 700,
                        "hours": [{"role": "DEV", "actual_hours": 8}, {"role": "UX", "actual_hours": 2}],
                    },
                    {"description": "Cookie banner", "amount": 150, "hours": [{"role": "DEV", "actual_hours": 1}]},
                ],
            },
            headers=edit_headers,
        )
        assert res.status_code == 200, res.text
        body = res.json()
        assert body["status"] == "completed"
        assert [(i["name"], i["actual_count"]) for i in body["scope_items"]] == [
            ("Article template", 3),
            ("Contact form", 1),
        ]
        [cost] = body["external_costs"]
        assert cost["estimated_cost"] == 80

        updated, added = body["change_requests"]
        assert updated["id"] == cr["id"]
        assert updated["amount"] == 700
        assert sorted((h["role"], h["actual_hours"]) for h in updated["hours"]) == [("DEV", 8), ("UX", 2)]
        assert added["description"] == "Cookie banner"

        m = body["metrics"]
        assert m["total_value"] == 10850
        assert m["actual_hours"] == 61

    @pytest.mark.asyncio
    async def test_records_left_out_are_kept(self, client, edit_headers):
        pid = (await _create(client, edit_headers))["id"]
        await client.post(f"{API}/{pid}/scope-items", json={"name": "Page"}, headers=edit_headers)

        res = await client.put(f"{API}/{pid}", json={"project": {"name": "Renamed"}}, headers=edit_headers)
        assert res.json()["name"] == "Renamed"
        assert [i["name"] for i in res.json()["scope_items"]] == ["Page"]

    @pytest.mark.asyncio
    async def test_foreign_record_keeps_nothing(self, client, edit_headers):
        first = (await _create(client, edit_headers))["id"]
        second = (await _create(client, edit_headers, name="Museum app"))["id"]
        item = (await client.post(f"{API}/{first}/scope-items", json={"name": "Page"}, headers=edit_headers)).json()

        res = await client.put(
            f"{API}/{second}",
            json={
                "project": {"name": "Hijacked"},
                "profile_hours": [{"role": "PM", "estimated_hours": 5, "actual_hours": 5}],
                "external_costs": [{"description": "Hosting", "actual_cost": 100}],
                "scope_items": [{"id": item["id"], "name": "Stolen page"}],
            },
            headers=edit_headers,
        )
        assert res.status_code == 404
        assert res.json() == {"error": f"ScopeItem {item['id']} not found"}

        body = (await client.get(f"{API}/{second}")).json()
        assert body["name"] == "Museum app"
        assert body["profile_hours"] == []
        assert body["external_costs"] == []
        assert (await client.get(f"{API}/{first}")).json()["scope_items"][0]["name"] == "Page"

    @pytest.mark.asyncio
    async def test_duplicate_change_request_role_keeps_nothing(self, client, edit_headers):
        pid = (await _create(client, edit_headers))["id"]
        res = await client.put(
            f"{API}/{pid}",
            json={
                "project": {"status": "active"},
                "change_requests": [
                    {"description": "Extra page", "hours": [{"role": "UI", "actual_hours": 1}, {"role": "UI", "actual_hours": 2}]},
                ],
            },
            headers=edit_headers,
        )
        assert res.status_code == 409

        body = (await client.get(f"{API}/{pid}")).json()
        assert body["status"] == "draft"
        assert body["change_requests"] == []

    @pytest.mark.asyncio
    async def test_duplicate_profile_role_is_rejected(self, client, edit_headers):
        pid = (await _create(client, edit_headers))["id"]
        res = await client.put(
            f"{API}/{pid}/profile-hours",
            json=[
                {"role": "DEV", "estimated_hours": 10, "actual_hours": 10},
                {"role": "DEV", "estimated_hours": 20, "actual_hours": 25},
            ],
            headers=edit_headers,
        )
        assert res.status_code == 409
        assert res.json() == {"error": "Hours for role DEV already exist"}
        assert (await client.get(f"{API}/{pid}")).json()["profile_hours"] == []


class TestChildRecords:
    @pytest.mark.asyncio
    async def test_scope_items(self, client, edit_headers):
        pid = (await _create(client, edit_headers))["id"]
        res = await client.post(
            f"{API}/{pid}/scope-items",
            json={"name": "Article template", "type": "Template", "planned_count": 3},
            headers=edit_headers,
        )
        assert res.status_code == 201
        item = res.json()

        res = await client.patch(f"{API}/{pid}/scope-items/{item['id']}", json={"actual_count": 4}, headers=edit_headers)
        assert res.json()["actual_count"] == 4
        assert res.json()["planned_count"] == 3

        res = await client.delete(f"{API}/{pid}/scope-items/{item['id']}", headers=edit_headers)
        assert res.status_code == 204

    @pytest.mark.asyncio
    async def test_child_of_other_project_is_not_found(self, client, edit_headers):
        first = (await _create(client, edit_headers))["id"]
        second = (await _create(client, edit_headers))["id"]
        item = (await client.post(f"{API}/{first}/scope-items", json={"name": "Page"}, headers=edit_headers)).json()

        res = await client.delete(f"{API}/{second}/scope-items/{item['id']}", headers=edit_headers)
        assert res.status_code == 404

    @pytest.mark.asyncio
    async def test_tool_license_mirrors_actual(self, client, edit_headers):
        pid = (await _create(client, edit_headers))["id"]
        res = await client.post(
            f"{API}/{pid}/external-costs",
            json={"description": "Font license", "cost_type": "tool_license", "estimated_cost": 10, "actual_cost": 99},
            headers=edit_headers,
        )
        cost = res.json()
        assert cost["estimated_cost"] == 99

        res = await client.patch(
            f"{API}/{pid}/external-costs/{cost['id']}", json={"actual_cost": 120}, headers=edit_headers
        )
        assert res.json()["estimated_cost"] == 120

    @pytest.mark.asyncio
    async def test_contractor_costs_stay_independent(self, client, edit_headers):
        pid = (await _create(client, edit_headers))["id"]
        res = await client.post(
            f"{API}/{pid}/external-costs",
            json={"description": "Photographer", "estimated_cost": 300, "actual_cost": 450},
            headers=edit_headers,
        )
        assert res.json()["estimated_cost"] == 300

    @pytest.mark.asyncio
    async def test_change_request_hours_lifecycle(self, client, edit_headers):
        pid = (await _create(client, edit_headers))["id"]
        cr = (await client.post(
            f"{API}/{pid}/change-requests", json={"description": "Newsletter", "amount": 800}, headers=edit_headers
        )).json()
        base = f"{API}/{pid}/change-requests/{cr['id']}/hours"

        res = await client.post(base, json={"role": "DEV", "actual_hours": 6}, headers=edit_headers)
        assert res.status_code == 201
        row = res.json()

        res = await client.post(base, json={"role": "DEV", "actual_hours": 1}, headers=edit_headers)
        assert res.status_code == 409

        res = await client.patch(f"{base}/{row['id']}", json={"actual_hours": 8}, headers=edit_headers)
        assert res.json()["actual_hours"] == 8

        m = (await client.get(f"{API}/{pid}/metrics")).json()
        assert m["actual_hours"] == 8
        assert m["estimated_hours"] == 0
        assert m["total_value"] == 10800

        res = await client.delete(f"{base}/{row['id']}", headers=edit_headers)
        assert res.status_code == 204

    @pytest.mark.asyncio
    async def test_change_request_with_duplicate_roles(self, client, edit_headers):
        pid = (await _create(client, edit_headers))["id"]
        res = await client.post(
            f"{API}/{pid}/change-requests",
            json={"description": "x", "hours": [{"role": "UX", "actual_hours": 1}, {"role": "UX", "actual_hours": 2}]},
            headers=edit_headers,
        )
        assert res.status_code == 409

    @pytest.mark.asyncio
    async def test_update_and_delete_change_request(self, client, edit_headers, session_factory):
        pid = (await _create(client, edit_headers))["id"]
        cr = (await client.post(
            f"{API}/{pid}/change-requests",
            json={"description": "Extra page", "amount": 100, "hours": [{"role": "UI", "actual_hours": 3}]},
            headers=edit_headers,
        )).json()

        res = await client.patch(f"{API}/{pid}/change-requests/{cr['id']}", json={"amount": 250}, headers=edit_headers)
        assert res.json()["amount"] == 250
        assert len(res.json()["hours"]) == 1

        res = await client.delete(f"{API}/{pid}/change-requests/{cr['id']}", headers=edit_headers)
        assert res.status_code == 204
        assert (await client.get(f"{API}/{pid}/change-requests")).json() == []
        async with session_factory() as s:
            assert (await s.execute(select(ChangeRequestHours))).scalars().all() == []


class TestAnalytics:
    @pytest.mark.asyncio
    async def test_portfolio(self, client, edit_headers):
        await _build_scenario_a(client, edit_headers)
        await _create(client, edit_headers, name="Draft", offer_value=5000)

        body = (await client.get("/api/v1/analytics/portfolio")).json()
        assert body["total_projects"] == 2
        assert body["total_revenue"] == 17000
        assert body["total_actual_hours"] == 135
        # only the project with logged hours counts towards the averages
        assert body["avg_hours_variance_percent"] == pytest.approx(35)
        assert [r["role"] for r in body["role_stats"]] == ["UX", "DEV"]
        assert body["margin_distribution"][">55%"] == 1
        assert len(body["projects"]) == 2

    @pytest.mark.asyncio
    async def test_csv_export(self, client, edit_headers):
        await _build_scenario_a(client, edit_headers)

        res = await client.get("/api/v1/analytics/export.csv")
        assert res.status_code == 200
        assert res.headers["content-type"].startswith("text/csv")
        rows = list(csv.reader(io.StringIO(res.text)))
        assert rows[0][0] == "Project Name"
        assert rows[1][0] == "Bank site"
        assert len(rows) == 2
