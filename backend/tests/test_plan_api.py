"""
API tests for goals, tasks and the living plan endpoints.
"""

import uuid
from datetime import date, datetime

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Task

OTHER_USER = {"X-Test-User": "user-2"}


async def create_goal(client, title="Learn Spanish", headers=None):
    response = await client.post("/goals/", json={"title": title}, headers=headers or {})
    assert response.status_code == 201
    return response.json()


async def create_task(client, goal_id, title, start_date=None, duration_hours=8, **extra):
    payload = {
        "goal_id": goal_id,
        "title": title,
        "start_date": start_date,
        "duration_hours": duration_hours,
        **extra,
    }
    response = await client.post("/tasks/", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def build_anchored_plan(client):
    """T1 (Jan 1, 8h), T2 (Jan 2, anchored), T3 (Jan 3)."""
    goal = await create_goal(client)
    t1 = await create_task(client, goal["id"], "T1", "2024-01-01")
    t2 = await create_task(client, goal["id"], "T2", "2024-01-02", is_anchored=True)
    t3 = await create_task(client, goal["id"], "T3", "2024-01-03")
    return goal, t1, t2, t3


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestGoalsAndTasks:

    @pytest.mark.asyncio
    async def test_create_goal_starts_at_version_zero(self, client):
        goal = await create_goal(client)

        assert goal["owner_id"] == "user-1"
        assert goal["plan_version"] == 0

    @pytest.mark.asyncio
    async def test_timeline_is_ordered_by_effective_start(self, client):
        goal = await create_goal(client)
        late = await create_task(client, goal["id"], "Late", "2024-01-05")
        undated = await create_task(client, goal["id"], "Undated", None, duration_hours=None)
        early = await create_task(client, goal["id"], "Early", "2024-01-01")

        response = await client.get(f"/goals/{goal['id']}/timeline")

        assert response.status_code == 200
        body = response.json()
        assert body["goal"]["id"] == goal["id"]
        assert [task["id"] for task in body["tasks"]] == [early["id"], late["id"], undated["id"]]
        assert body["tasks"][0]["effective_start_date"] == "2024-01-01"

    @pytest.mark.asyncio
    async def test_other_users_goal_is_not_found(self, client):
        goal = await create_goal(client)

        response = await client.get(f"/goals/{goal['id']}", headers=OTHER_USER)

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_cannot_add_task_to_other_users_goal(self, client):
        goal = await create_goal(client, headers=OTHER_USER)

        response = await client.post("/tasks/", json={"goal_id": goal["id"], "title": "Sneaky"})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_task_end_before_start_rejected(self, client):
        goal = await create_goal(client)

        response = await client.post(
            "/tasks/",
            json={
                "goal_id": goal["id"],
                "title": "Backwards",
                "start_date": "2024-01-05",
                "end_date": "2024-01-01",
            },
        )

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_task_end_without_start_rejected(self, client):
        goal = await create_goal(client)

        response = await client.post(
            "/tasks/",
            json={"goal_id": goal["id"], "title": "Open-ended", "end_date": "2024-01-05"},
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_delete_goal_removes_tasks(self, client):
        goal = await create_goal(client)
        task = await create_task(client, goal["id"], "Doomed", "2024-01-01")

        response = await client.delete(f"/goals/{goal['id']}")

        assert response.status_code == 204
        assert (await client.get(f"/tasks/{task['id']}")).status_code == 404


class TestReschedulePreview:

    @pytest.mark.asyncio
    async def test_preview_uses_camel_case_and_writes_nothing(self, client):
        goal, t1, _, _ = await build_anchored_plan(client)

        response = await client.post(
            "/plan/reschedule",
            json={"taskId": t1["id"], "newStartDate": "2024-01-05"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["goalId"] == goal["id"]
        assert body["planVersion"] == 0
        assert body["timeShiftInDays"] == 4
        assert body["conflictInfo"] is None
        assert body["updatedTasks"] == [
            {"taskId": t1["id"], "newStartDate": "2024-01-05", "newEndDate": "2024-01-06"},
        ]

        unchanged = (await client.get(f"/tasks/{t1['id']}")).json()
        assert unchanged["start_date"] == "2024-01-01"

    @pytest.mark.asyncio
    async def test_conflict_is_a_normal_response(self, client):
        goal = await create_goal(client)
        t1 = await create_task(client, goal["id"], "T1", "2024-01-01")
        await create_task(client, goal["id"], "M", "2024-01-03")
        wall = await create_task(client, goal["id"], "Launch", "2024-01-10", is_anchored=True)

        response = await client.post(
            "/plan/reschedule",
            json={"taskId": t1["id"], "newStartDate": "2024-01-08"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "reschedule_conflict"
        assert body["conflictInfo"] == {
            "compressionNeeded": 1,
            "anchoredTaskId": wall["id"],
            "anchoredTaskTitle": "Launch",
        }
        assert len(body["updatedTasks"]) == 2

    @pytest.mark.asyncio
    async def test_malformed_date_rejected(self, client):
        _, t1, _, _ = await build_anchored_plan(client)

        response = await client.post(
            "/plan/reschedule",
            json={"taskId": t1["id"], "newStartDate": "next tuesday"},
        )

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_unknown_task(self, client):
        response = await client.post(
            "/plan/reschedule",
            json={"taskId": str(uuid.uuid4()), "newStartDate": "2024-01-05"},
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_other_users_task_is_not_found(self, client):
        _, t1, _, _ = await build_anchored_plan(client)

        response = await client.post(
            "/plan/reschedule",
            json={"taskId": t1["id"], "newStartDate": "2024-01-05"},
            headers=OTHER_USER,
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_completed_task_cannot_be_rescheduled(self, client):
        goal = await create_goal(client)
        done = await create_task(client, goal["id"], "Done", "2024-01-01", status="completed")

        response = await client.post(
            "/plan/reschedule",
            json={"taskId": done["id"], "newStartDate": "2024-01-05"},
        )

        assert response.status_code == 422


    @pytest.mark.asyncio
    async def test_undated_task_with_stored_end_date(self, client, test_session):
        """A stored row with an end date but no start date still previews cleanly."""
        goal = await create_goal(client)
        t1 = await create_task(client, goal["id"], "T1", "2024-01-01")
        legacy = Task(
            title="Legacy",
            goal_id=uuid.UUID(goal["id"]),
            end_date=date(2024, 1, 5),
            created_at=datetime(2024, 1, 10, 8, 0),
        )
        test_session.add(legacy)
        await test_session.commit()

        response = await client.post(
            "/plan/reschedule",
            json={"taskId": t1["id"], "newStartDate": "2024-01-03"},
        )

        assert response.status_code == 200
        assert response.json()["updatedTasks"][1] == {
            "taskId": str(legacy.id),
            "newStartDate": "2024-01-12",
            "newEndDate": "2024-01-12",
        }

        response = await client.post("/plan/delete-and-refactor", json={"taskIdToDelete": t1["id"]})

        assert response.status_code == 200
        assert response.json()["updatedTasks"] == [
            {"taskId": str(legacy.id), "newStartDate": "2024-01-09", "newEndDate": "2024-01-09"},
        ]


class TestDeletePreview:

    @pytest.mark.asyncio
    async def test_delete_preview(self, client):
        goal = await create_goal(client)
        d = await create_task(client, goal["id"], "D", "2024-01-01", end_date="2024-01-04")
        a = await create_task(client, goal["id"], "A", "2024-01-05", end_date="2024-01-06")
        wall = await create_task(client, goal["id"], "Exam", "2024-01-20", is_anchored=True)

        response = await client.post("/plan/delete-and-refactor", json={"taskIdToDelete": d["id"]})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["taskIdToDelete"] == d["id"]
        assert body["timeSavedInDays"] == 3
        assert body["dependencyIssues"] == []
        assert body["updatedTasks"] == [
            {"taskId": a["id"], "newStartDate": "2024-01-02", "newEndDate": "2024-01-03"},
        ]
        assert body["anchoredBarriers"] == [
            {"id": wall["id"], "title": "Exam", "startDate": "2024-01-20"},
        ]

        # still there until committed
        assert (await client.get(f"/tasks/{d['id']}")).status_code == 200

    @pytest.mark.asyncio
    async def test_deleting_anchored_task_reports_issue(self, client):
        goal = await create_goal(client)
        pinned = await create_task(client, goal["id"], "Pinned", "2024-01-01", is_anchored=True)

        response = await client.post("/plan/delete-and-refactor", json={"taskIdToDelete": pinned["id"]})

        body = response.json()
        assert body["status"] == "dependency_conflict"
        assert len(body["dependencyIssues"]) == 1


class TestCommit:

    @pytest.mark.asyncio
    async def test_preview_then_commit(self, client):
        goal, t1, t2, _ = await build_anchored_plan(client)
        preview = (await client.post(
            "/plan/reschedule",
            json={"taskId": t1["id"], "newStartDate": "2024-01-05"},
        )).json()

        response = await client.post(
            "/plan/commit",
            json={
                "tasksToUpdate": preview["updatedTasks"],
                "expectedPlanVersion": preview["planVersion"],
            },
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "goalId": goal["id"],
            "updatedCount": 1,
            "deletedTaskId": None,
            "planVersion": 1,
        }

        moved = (await client.get(f"/tasks/{t1['id']}")).json()
        assert (moved["start_date"], moved["end_date"]) == ("2024-01-05", "2024-01-06")
        anchored = (await client.get(f"/tasks/{t2['id']}")).json()
        assert anchored["start_date"] == "2024-01-02"
        assert (await client.get(f"/goals/{goal['id']}")).json()["plan_version"] == 1

    @pytest.mark.asyncio
    async def test_replay_without_version_is_idempotent(self, client):
        _, t1, _, _ = await build_anchored_plan(client)
        batch = {"tasksToUpdate": [
            {"taskId": t1["id"], "newStartDate": "2024-01-05", "newEndDate": "2024-01-06"},
        ]}

        first = await client.post("/plan/commit", json=batch)
        second = await client.post("/plan/commit", json=batch)

        assert first.status_code == 200
        assert second.status_code == 200
        assert second.json()["planVersion"] == 2
        moved = (await client.get(f"/tasks/{t1['id']}")).json()
        assert (moved["start_date"], moved["end_date"]) == ("2024-01-05", "2024-01-06")

    @pytest.mark.asyncio
    async def test_stale_version_rejected(self, client):
        _, t1, _, t3 = await build_anchored_plan(client)
        batch = {
            "tasksToUpdate": [
                {"taskId": t1["id"], "newStartDate": "2024-01-05", "newEndDate": "2024-01-06"},
            ],
            "expectedPlanVersion": 0,
        }
        assert (await client.post("/plan/commit", json=batch)).status_code == 200

        stale = {
            "tasksToUpdate": [
                {"taskId": t3["id"], "newStartDate": "2024-02-01", "newEndDate": "2024-02-02"},
            ],
            "expectedPlanVersion": 0,
        }
        response = await client.post("/plan/commit", json=stale)

        assert response.status_code == 409
        assert response.json()["error"] == "stale_plan"
        untouched = (await client.get(f"/tasks/{t3['id']}")).json()
        assert untouched["start_date"] == "2024-01-03"

    @pytest.mark.asyncio
    async def test_unknown_task_rejects_whole_batch(self, client):
        goal, t1, _, _ = await build_anchored_plan(client)

        response = await client.post(
            "/plan/commit",
            json={"tasksToUpdate": [
                {"taskId": t1["id"], "newStartDate": "2024-03-01", "newEndDate": "2024-03-02"},
                {"taskId": str(uuid.uuid4()), "newStartDate": "2024-03-03", "newEndDate": "2024-03-04"},
            ]},
        )

        assert response.status_code == 404
        untouched = (await client.get(f"/tasks/{t1['id']}")).json()
        assert untouched["start_date"] == "2024-01-01"
        assert (await client.get(f"/goals/{goal['id']}")).json()["plan_version"] == 0

    @pytest.mark.asyncio
    async def test_delete_and_pull_forward(self, client):
        goal = await create_goal(client)
        d = await create_task(client, goal["id"], "D", "2024-01-01", end_date="2024-01-04")
        a = await create_task(client, goal["id"], "A", "2024-01-05", end_date="2024-01-06")
        preview = (await client.post("/plan/delete-and-refactor", json={"taskIdToDelete": d["id"]})).json()

        response = await client.post(
            "/plan/commit",
            json={
                "tasksToUpdate": preview["updatedTasks"],
                "taskIdToDelete": d["id"],
                "expectedPlanVersion": preview["planVersion"],
            },
        )

        assert response.status_code == 200
        assert response.json()["deletedTaskId"] == d["id"]
        assert (await client.get(f"/tasks/{d['id']}")).status_code == 404
        assert (await client.get(f"/tasks/{a['id']}")).json()["start_date"] == "2024-01-02"
        timeline = (await client.get(f"/goals/{goal['id']}/timeline")).json()
        assert [task["id"] for task in timeline["tasks"]] == [a["id"]]

    @pytest.mark.asyncio
    async def test_empty_commit_rejected(self, client):
        response = await client.post("/plan/commit", json={})

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_end_before_start_rejected(self, client):
        _, t1, _, _ = await build_anchored_plan(client)

        response = await client.post(
            "/plan/commit",
            json={"tasksToUpdate": [
                {"taskId": t1["id"], "newStartDate": "2024-01-05", "newEndDate": "2024-01-04"},
            ]},
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_cannot_commit_other_users_task(self, client):
        _, t1, _, _ = await build_anchored_plan(client)

        response = await client.post(
            "/plan/commit",
            json={"taskIdToDelete": t1["id"]},
            headers=OTHER_USER,
        )

        assert response.status_code == 404
        assert (await client.get(f"/tasks/{t1['id']}")).status_code == 200

    @pytest.mark.asyncio
    async def test_failure_after_write_rolls_back_everything(self, client, monkeypatch):
        """Rows already flushed to the transaction are undone when the commit fails."""
        goal, t1, _, t3 = await build_anchored_plan(client)
        real_flush = AsyncSession.flush

        async def flush_then_fail(self, objects=None):
            await real_flush(self, objects)
            raise OperationalError("UPDATE tasks", {}, Exception("disk I/O error"))

        monkeypatch.setattr(AsyncSession, "flush", flush_then_fail)

        response = await client.post(
            "/plan/commit",
            json={
                "tasksToUpdate": [
                    {"taskId": t1["id"], "newStartDate": "2024-03-01", "newEndDate": "2024-03-02"},
                    {"taskId": t3["id"], "newStartDate": "2024-03-03", "newEndDate": "2024-03-04"},
                ],
                "expectedPlanVersion": 0,
            },
        )

        monkeypatch.undo()

        assert response.status_code == 503
        assert response.json()["error"] == "storage_error"
        first = (await client.get(f"/tasks/{t1['id']}")).json()
        third = (await client.get(f"/tasks/{t3['id']}")).json()
        assert (first["start_date"], first["end_date"]) == ("2024-01-01", None)
        assert (third["start_date"], third["end_date"]) == ("2024-01-03", None)
        assert (await client.get(f"/goals/{goal['id']}")).json()["plan_version"] == 0
