"""
Task endpoint tests.
Covers: create, read, update, delete, filter, sort, pagination, stats,
validation errors and unauthenticated access.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio(loop_scope="session")


async def _create_task(
    client: AsyncClient,
    headers: dict,
    title: str = "Test Task",
    **kwargs: Any,
) -> dict:
    payload = {
        "title": title,
        "description": "A test task description",
        **kwargs,
    }
    response = await client.post("/api/v1/tasks/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]["task"]


def _in(days: float) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


class TestCreateTask:
    async def test_create_task_success(
        self, client: AsyncClient, alice: dict, alice_headers: dict
    ) -> None:
        response = await client.post(
            "/api/v1/tasks/",
            json={
                "title": "  My First Task  ",
                "description": "Do something important",
                "priority": "high",
                "dueDate": _in(3),
                "tags": ["urgent", "backend", "urgent"],
            },
            headers=alice_headers,
        )
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Task created successfully"

        task = body["data"]["task"]
        assert task["title"] == "My First Task"
        assert task["priority"] == "high"
        assert task["status"] == "pending"
        assert task["tags"] == ["urgent", "backend"]
        assert task["isArchived"] is False
        assert task["isOverdue"] is False
        assert task["completedAt"] is None
        assert task["sharedWith"] == []
        assert task["ownerId"] == alice["user"]["id"]
        assert task["owner"]["email"] == "alice@example.com"
        assert task["version"] == 1

    async def test_create_task_unauthenticated(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/tasks/", json={"title": "Unauthorized Task"})
        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "message": "Access denied. No token provided.",
        }

    async def test_create_task_invalid_token(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/tasks/",
            json={"title": "Task"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401

    async def test_create_task_missing_title(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        response = await client.post(
            "/api/v1/tasks/", json={"priority": "low"}, headers=alice_headers
        )
        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert [e["field"] for e in body["errors"]] == ["title"]

    async def test_create_task_blank_title(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        response = await client.post(
            "/api/v1/tasks/", json={"title": "   "}, headers=alice_headers
        )
        assert response.status_code == 422
        assert response.json()["errors"][0]["message"] == "Task title is required"

    async def test_create_task_too_many_tags(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        response = await client.post(
            "/api/v1/tasks/",
            json={"title": "Tagged", "tags": [f"t{i}" for i in range(11)]},
            headers=alice_headers,
        )
        assert response.status_code == 422

    async def test_create_task_unknown_status(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        response = await client.post(
            "/api/v1/tasks/",
            json={"title": "Task", "status": "cancelled"},
            headers=alice_headers,
        )
        assert response.status_code == 422

    async def test_create_task_past_due_date(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        response = await client.post(
            "/api/v1/tasks/",
            json={"title": "Late", "dueDate": _in(-1)},
            headers=alice_headers,
        )
        assert response.status_code == 422
        assert response.json()["errors"] == [
            {"field": "dueDate", "message": "Due date cannot be in the past"}
        ]

    async def test_create_completed_task_has_completed_at(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        task = await _create_task(client, alice_headers, status="completed")
        assert task["completedAt"] is not None


class TestGetTask:
    async def test_get_task_success(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        task = await _create_task(client, alice_headers, title="Readable Task")
        response = await client.get(f"/api/v1/tasks/{task['id']}", headers=alice_headers)
        assert response.status_code == 200
        assert response.json()["data"]["task"]["title"] == "Readable Task"

    async def test_get_task_not_found(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        response = await client.get(
            "/api/v1/tasks/00000000-0000-0000-0000-000000000000", headers=alice_headers
        )
        assert response.status_code == 404

    async def test_get_task_malformed_id(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        response = await client.get("/api/v1/tasks/not-a-uuid", headers=alice_headers)
        assert response.status_code == 422

    async def test_get_task_of_another_user_forbidden(
        self, client: AsyncClient, alice_headers: dict, bob_headers: dict
    ) -> None:
        task = await _create_task(client, alice_headers)
        response = await client.get(f"/api/v1/tasks/{task['id']}", headers=bob_headers)
        assert response.status_code == 403
        assert response.json()["message"] == "Access denied to this task"


class TestUpdateTask:
    async def test_update_task_fields(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        task = await _create_task(client, alice_headers, tags=["a"])
        response = await client.put(
            f"/api/v1/tasks/{task['id']}",
            json={"title": "Updated Title", "priority": "urgent", "tags": None},
            headers=alice_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Task updated successfully"
        updated = body["data"]["task"]
        assert updated["title"] == "Updated Title"
        assert updated["priority"] == "urgent"
        assert updated["tags"] == []
        # Untouched fields are preserved
        assert updated["description"] == "A test task description"
        assert updated["version"] == 2

    async def test_complete_and_reopen(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        task = await _create_task(client, alice_headers)
        url = f"/api/v1/tasks/{task['id']}"

        done = (await client.put(url, json={"status": "completed"}, headers=alice_headers)).json()
        assert done["data"]["task"]["completedAt"] is not None

        reopened = (await client.put(url, json={"status": "pending"}, headers=alice_headers)).json()
        assert reopened["data"]["task"]["completedAt"] is None

    async def test_null_title_rejected(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        task = await _create_task(client, alice_headers)
        response = await client.put(
            f"/api/v1/tasks/{task['id']}", json={"title": None}, headers=alice_headers
        )
        assert response.status_code == 422

    async def test_stale_version_conflict(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        task = await _create_task(client, alice_headers)
        url = f"/api/v1/tasks/{task['id']}"

        first = await client.put(url, json={"title": "One", "version": 1}, headers=alice_headers)
        assert first.status_code == 200
        second = await client.put(url, json={"title": "Two", "version": 1}, headers=alice_headers)
        assert second.status_code == 409

    async def test_update_by_stranger_forbidden(
        self, client: AsyncClient, alice_headers: dict, bob_headers: dict
    ) -> None:
        task = await _create_task(client, alice_headers)
        response = await client.put(
            f"/api/v1/tasks/{task['id']}", json={"title": "Hijack"}, headers=bob_headers
        )
        assert response.status_code == 403


class TestDeleteTask:
    async def test_delete_task(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        task = await _create_task(client, alice_headers)
        response = await client.delete(f"/api/v1/tasks/{task['id']}", headers=alice_headers)
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Task deleted successfully",
            "data": None,
        }

        response = await client.get(f"/api/v1/tasks/{task['id']}", headers=alice_headers)
        assert response.status_code == 404

    async def test_delete_by_stranger_forbidden(
        self, client: AsyncClient, alice_headers: dict, bob_headers: dict
    ) -> None:
        task = await _create_task(client, alice_headers)
        response = await client.delete(f"/api/v1/tasks/{task['id']}", headers=bob_headers)
        assert response.status_code == 403


class TestListTasks:
    async def test_list_pagination(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        for i in range(15):
            await _create_task(client, alice_headers, title=f"Task {i}")

        response = await client.get(
            "/api/v1/tasks/", params={"page": 2, "limit": 10}, headers=alice_headers
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert len(data["tasks"]) == 5
        assert data["pagination"] == {
            "page": 2,
            "limit": 10,
            "total": 15,
            "totalPages": 2,
            "hasNext": False,
            "hasPrev": True,
        }

    async def test_list_filter_by_status_and_priority(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        await _create_task(client, alice_headers, title="A", status="completed", priority="high")
        await _create_task(client, alice_headers, title="B", status="pending", priority="high")
        await _create_task(client, alice_headers, title="C", status="completed", priority="low")

        response = await client.get(
            "/api/v1/tasks/",
            params={"status": "completed", "priority": "high"},
            headers=alice_headers,
        )
        titles = [t["title"] for t in response.json()["data"]["tasks"]]
        assert titles == ["A"]

    async def test_list_sort_by_title(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        for title in ("banana", "apple", "cherry"):
            await _create_task(client, alice_headers, title=title)

        response = await client.get(
            "/api/v1/tasks/",
            params={"sortBy": "title", "sortOrder": "asc"},
            headers=alice_headers,
        )
        titles = [t["title"] for t in response.json()["data"]["tasks"]]
        assert titles == ["apple", "banana", "cherry"]

    async def test_list_invalid_sort_field(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        response = await client.get(
            "/api/v1/tasks/", params={"sortBy": "hacked"}, headers=alice_headers
        )
        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "sortBy"

    async def test_list_limit_out_of_range(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        response = await client.get(
            "/api/v1/tasks/", params={"limit": 101}, headers=alice_headers
        )
        assert response.status_code == 422

    async def test_list_search(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        await _create_task(client, alice_headers, title="Write REPORT")
        await _create_task(client, alice_headers, title="Other")

        response = await client.get(
            "/api/v1/tasks/", params={"search": "report"}, headers=alice_headers
        )
        data = response.json()["data"]
        assert [t["title"] for t in data["tasks"]] == ["Write REPORT"]
        assert data["pagination"]["total"] == 2

    async def test_list_excludes_other_users_tasks(
        self, client: AsyncClient, alice_headers: dict, bob_headers: dict
    ) -> None:
        await _create_task(client, alice_headers, title="Alice only")
        response = await client.get("/api/v1/tasks/", headers=bob_headers)
        assert response.json()["data"]["tasks"] == []


class TestStats:
    async def test_stats(
        self, client: AsyncClient, alice_headers: dict
    ) -> None:
        await _create_task(client, alice_headers, status="pending")
        await _create_task(client, alice_headers, status="in-progress")
        await _create_task(client, alice_headers, status="completed")
        archived = await _create_task(client, alice_headers)
        await client.put(
            f"/api/v1/tasks/{archived['id']}", json={"isArchived": True}, headers=alice_headers
        )

        response = await client.get("/api/v1/tasks/stats", headers=alice_headers)
        assert response.status_code == 200
        assert response.json()["data"]["stats"] == {
            "total": 3,
            "pending": 1,
            "inProgress": 1,
            "completed": 1,
            "overdue": 0,
        }


async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
