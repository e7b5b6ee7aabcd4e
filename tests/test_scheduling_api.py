from __future__ import annotations

from fastapi.testclient import TestClient


def _seed_overlapping_schedule(client: TestClient) -> dict[str, str]:
    project = client.post(
        "/api/v1/projects",
        json={
            "contract_code": "CNT-200",
            "name": "Harbour Apartments",
            "start_date": "2026-01-01",
            "estimated_end_date": "2026-06-30",
            "modification_allowed_times": 2,
        },
    )
    assert project.status_code == 201
    project_id = project.json()["id"]

    phase_a = client.post(
        f"/api/v1/projects/{project_id}/phases",
        json={"name": "Foundations", "phase_order": 1, "start_date": "2026-01-01", "end_date": "2026-03-01"},
    )
    phase_b = client.post(
        f"/api/v1/projects/{project_id}/phases",
        json={"name": "Framing", "phase_order": 2, "start_date": "2026-02-01", "end_date": "2026-04-01"},
    )
    assert phase_a.status_code == 201
    assert phase_b.status_code == 201

    member = client.post("/api/v1/team-members", json={"display_name": "Bo", "email": "bo@site.test"})
    idle = client.post("/api/v1/team-members", json={"display_name": "Cy", "email": "cy@site.test"})
    assert member.status_code == 201
    assert idle.status_code == 201
    member_id = member.json()["id"]

    for phase, percentage, start, end in (
        (phase_a, 60, "2026-01-01", "2026-01-31"),
        (phase_b, 50, "2026-01-15", "2026-02-15"),
    ):
        response = client.post(
            f"/api/v1/projects/{project_id}/phases/{phase.json()['id']}/assignments",
            json={
                "team_member_id": member_id,
                "working_percentage": percentage,
                "start_date": start,
                "end_date": end,
            },
        )
        assert response.status_code == 201

    return {
        "project_id": project_id,
        "phase_a": phase_a.json()["id"],
        "phase_b": phase_b.json()["id"],
        "member_id": member_id,
        "idle_id": idle.json()["id"],
    }


def test_member_workload_at_date(client: TestClient) -> None:
    ids = _seed_overlapping_schedule(client)

    busy = client.get(f"/api/v1/team-members/{ids['member_id']}/workload", params={"start_date": "2026-01-20"})
    assert busy.status_code == 200
    payload = busy.json()
    assert payload["total_percentage"] == 110
    assert payload["is_overallocated"] is True
    assert payload["window"] == {"start": "2026-01-20", "end": "2026-01-21"}
    assert len(payload["assignments"]) == 2

    free = client.get(f"/api/v1/team-members/{ids['member_id']}/workload", params={"start_date": "2026-02-20"})
    assert free.json()["total_percentage"] == 0
    assert free.json()["assignments"] == []


def test_workload_rejects_empty_window(client: TestClient) -> None:
    ids = _seed_overlapping_schedule(client)

    response = client.get(
        f"/api/v1/team-members/{ids['member_id']}/workload",
        params={"start_date": "2026-02-01", "end_date": "2026-02-01"},
    )

    assert response.status_code == 422


def test_member_timeline(client: TestClient) -> None:
    ids = _seed_overlapping_schedule(client)

    response = client.get(f"/api/v1/team-members/{ids['member_id']}/workload/timeline")

    assert response.status_code == 200
    items = response.json()["items"]
    assert [item["total_percentage"] for item in items] == [60, 110, 50]
    assert [item["is_overallocated"] for item in items] == [False, True, False]
    assert items[1]["window"] == {"start": "2026-01-15", "end": "2026-01-31"}


def test_team_allocation_summary(client: TestClient) -> None:
    ids = _seed_overlapping_schedule(client)

    response = client.get("/api/v1/workload", params={"start_date": "2026-01-20"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["total_team_members"] == 2
    assert payload["allocated_members"] == 1
    assert payload["overallocated_members"] == 1
    by_member = {row["team_member_id"]: row for row in payload["allocations"]}
    assert by_member[ids["member_id"]]["total_percentage"] == 110
    assert by_member[ids["idle_id"]]["total_percentage"] == 0

    unknown = client.get("/api/v1/workload", params={"project_id": "00000000-0000-0000-0000-000000000000"})
    assert unknown.status_code == 404


def test_project_conflicts(client: TestClient) -> None:
    ids = _seed_overlapping_schedule(client)

    response = client.get(f"/api/v1/projects/{ids['project_id']}/conflicts")

    assert response.status_code == 200
    items = response.json()["items"]
    assert [item["type"] for item in items] == ["phase_overlap", "resource_overallocation"]
    assert items[0]["involved_ids"] == [ids["phase_a"], ids["phase_b"]]
    assert items[1]["team_member_id"] == ids["member_id"]
    assert items[1]["percentage"] == 110

    again = client.get(f"/api/v1/projects/{ids['project_id']}/conflicts")
    assert again.json() == response.json()

    everywhere = client.get("/api/v1/conflicts")
    assert everywhere.status_code == 200
    assert everywhere.json()["items"] == items


def test_conflicts_clear_after_assignment_deactivated(client: TestClient) -> None:
    ids = _seed_overlapping_schedule(client)
    assignments = client.get(f"/api/v1/projects/{ids['project_id']}/assignments").json()["items"]

    response = client.patch(
        f"/api/v1/projects/{ids['project_id']}/assignments/{assignments[1]['id']}",
        json={"active": False},
    )
    assert response.status_code == 200

    items = client.get(f"/api/v1/projects/{ids['project_id']}/conflicts").json()["items"]
    assert [item["type"] for item in items] == ["phase_overlap"]


def test_project_timeline(client: TestClient) -> None:
    ids = _seed_overlapping_schedule(client)

    response = client.get(f"/api/v1/projects/{ids['project_id']}/timeline")

    assert response.status_code == 200
    payload = response.json()
    assert payload["project"]["id"] == ids["project_id"]
    assert [phase["name"] for phase in payload["phases"]] == ["Foundations", "Framing"]
    assert [len(phase["assignments"]) for phase in payload["phases"]] == [1, 1]
    assert payload["phases"][0]["tasks"] == []
    assert len(payload["conflicts"]) == 2


def test_modification_quota(client: TestClient) -> None:
    ids = _seed_overlapping_schedule(client)
    url = f"/api/v1/projects/{ids['project_id']}/modifications"

    ledger = client.get(url)
    assert ledger.status_code == 200
    assert ledger.json()["remaining"] == 2
    assert ledger.json()["can_modify"] is True

    first = client.post(url, json={"description": "Add balcony"})
    assert first.status_code == 201
    assert first.json()["days_used"] == 5
    assert first.json()["remaining"] == 1

    second = client.post(url, json={"description": "Move stairwell", "days_used": 3})
    assert second.status_code == 201
    assert second.json()["remaining"] == 0
    assert second.json()["days_used"] == 8
    assert [item["number"] for item in second.json()["modifications"]] == [1, 2]

    rejected = client.post(url, json={"description": "One more"})
    assert rejected.status_code == 422
    detail = rejected.json()["detail"]
    assert detail["kind"] == "quota_exceeded"
    assert detail["remaining"] == 0

    after = client.get(url).json()
    assert after["total_used"] == 2
    assert after["can_modify"] is False


def test_allowed_times_cannot_drop_below_recorded(client: TestClient) -> None:
    ids = _seed_overlapping_schedule(client)
    url = f"/api/v1/projects/{ids['project_id']}/modifications"
    assert client.post(url, json={}).status_code == 201
    assert client.post(url, json={}).status_code == 201

    response = client.patch(
        f"/api/v1/projects/{ids['project_id']}",
        json={"version": 1, "modification_allowed_times": 1},
    )

    assert response.status_code == 422
    assert client.get(f"/api/v1/projects/{ids['project_id']}").json()["version"] == 1


def _create_project_with_phase(client: TestClient, contract_code: str, name: str) -> tuple[str, str]:
    project = client.post(
        "/api/v1/projects",
        json={
            "contract_code": contract_code,
            "name": name,
            "start_date": "2026-01-01",
            "estimated_end_date": "2026-12-31",
        },
    )
    assert project.status_code == 201
    project_id = project.json()["id"]
    phase = client.post(
        f"/api/v1/projects/{project_id}/phases",
        json={"name": "Structure", "phase_order": 1, "start_date": "2026-01-01", "end_date": "2026-07-01"},
    )
    assert phase.status_code == 201
    return project_id, phase.json()["id"]


def _assign(
    client: TestClient,
    project_id: str,
    phase_id: str,
    member_id: str,
    percentage: int,
    start: str,
    end: str,
) -> str:
    response = client.post(
        f"/api/v1/projects/{project_id}/phases/{phase_id}/assignments",
        json={"team_member_id": member_id, "working_percentage": percentage, "start_date": start, "end_date": end},
    )
    assert response.status_code == 201
    return response.json()["id"]


def test_single_day_assignments_count_towards_workload(client: TestClient) -> None:
    project_id, phase_a = _create_project_with_phase(client, "CNT-250", "Depot Refit")
    phase_b = client.post(
        f"/api/v1/projects/{project_id}/phases",
        json={"name": "Inspection", "phase_order": 2, "start_date": "2026-01-05", "end_date": "2026-01-06"},
    )
    assert phase_b.status_code == 201
    assert phase_b.json()["duration_days"] == 1
    member_id = client.post("/api/v1/team-members", json={"display_name": "Di", "email": "di@site.test"}).json()["id"]

    first = _assign(client, project_id, phase_a, member_id, 80, "2026-01-05", "2026-01-06")
    second = _assign(client, project_id, phase_b.json()["id"], member_id, 80, "2026-01-05", "2026-01-06")

    workload = client.get(f"/api/v1/team-members/{member_id}/workload", params={"start_date": "2026-01-05"}).json()
    assert workload["total_percentage"] == 160
    assert workload["is_overallocated"] is True
    next_day = client.get(f"/api/v1/team-members/{member_id}/workload", params={"start_date": "2026-01-06"}).json()
    assert next_day["total_percentage"] == 0

    items = client.get(f"/api/v1/projects/{project_id}/conflicts").json()["items"]
    overloads = [item for item in items if item["type"] == "resource_overallocation"]
    assert len(overloads) == 1
    assert overloads[0]["percentage"] == 160
    assert overloads[0]["window"] == {"start": "2026-01-05", "end": "2026-01-06"}
    assert overloads[0]["involved_ids"] == [member_id, first, second]


def test_empty_date_ranges_are_rejected(client: TestClient) -> None:
    project_id, phase_id = _create_project_with_phase(client, "CNT-260", "Canal Bridge")
    member_id = client.post("/api/v1/team-members", json={"display_name": "Ed", "email": "ed@site.test"}).json()["id"]

    assignment = client.post(
        f"/api/v1/projects/{project_id}/phases/{phase_id}/assignments",
        json={
            "team_member_id": member_id,
            "working_percentage": 80,
            "start_date": "2026-01-05",
            "end_date": "2026-01-05",
        },
    )
    phase = client.post(
        f"/api/v1/projects/{project_id}/phases",
        json={"name": "Survey", "phase_order": 2, "start_date": "2026-01-05", "end_date": "2026-01-05"},
    )

    assert assignment.status_code == 422
    assert assignment.json()["detail"]["kind"] == "invalid_interval"
    assert phase.status_code == 422
    assert phase.json()["detail"]["kind"] == "invalid_interval"


def test_project_conflicts_include_load_from_other_projects(client: TestClient) -> None:
    first_project, first_phase = _create_project_with_phase(client, "CNT-301", "North Tower")
    second_project, second_phase = _create_project_with_phase(client, "CNT-302", "South Tower")
    member_id = client.post("/api/v1/team-members", json={"display_name": "Fa", "email": "fa@site.test"}).json()["id"]

    here = _assign(client, first_project, first_phase, member_id, 60, "2026-01-01", "2026-02-01")
    there = _assign(client, second_project, second_phase, member_id, 60, "2026-01-01", "2026-02-01")
    # Overload confined to the second project.
    _assign(client, second_project, second_phase, member_id, 60, "2026-05-01", "2026-06-01")
    _assign(client, second_project, second_phase, member_id, 60, "2026-05-01", "2026-06-01")

    items = client.get(f"/api/v1/projects/{first_project}/conflicts").json()["items"]

    assert len(items) == 1
    assert items[0]["type"] == "resource_overallocation"
    assert items[0]["percentage"] == 120
    assert items[0]["involved_ids"] == [member_id, here, there]
    assert items[0]["window"] == {"start": "2026-01-01", "end": "2026-02-01"}

    timeline = client.get(f"/api/v1/projects/{first_project}/timeline").json()
    assert timeline["conflicts"] == items

    other = client.get(f"/api/v1/projects/{second_project}/conflicts").json()["items"]
    assert [item["percentage"] for item in other] == [120, 120]
