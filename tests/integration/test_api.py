from datetime import timedelta

from httpx import AsyncClient


async def _create_job(client: AsyncClient, **fields) -> dict:
    payload = {"customer": "Acme Facilities", "site": "Depot 4", **fields}
    response = await client.post("/jobs", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["checks"]["scheduler"] == "stopped"

    async def test_correlation_id_is_echoed(self, client: AsyncClient) -> None:
        response = await client.get("/health", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["X-Correlation-ID"] == "abc-123"


class TestJobsAPI:
    async def test_create_job(self, client: AsyncClient) -> None:
        job = await _create_job(client, priority="critical")

        assert job["priority"] == "critical"
        assert job["policy"]["accept_within"] == 10
        assert job["status"]["state"] == "on_track"
        assert job["status"]["legacy_status"] == "amber"
        assert job["status"]["deadline"] is not None
        assert job["was_breached"] is False

    async def test_create_requires_customer(self, client: AsyncClient) -> None:
        response = await client.post("/jobs", json={"site": "Depot 4"})

        assert response.status_code == 422

    async def test_unknown_job_is_404(self, client: AsyncClient) -> None:
        response = await client.get("/jobs/job-missing")

        assert response.status_code == 404
        assert response.json()["error_type"] == "ResourceNotFoundException"

    async def test_skipped_milestone_is_422(self, client: AsyncClient) -> None:
        job = await _create_job(client)

        response = await client.post(f"/jobs/{job['id']}/milestones/completed")

        assert response.status_code == 422

    async def test_full_lifecycle_goes_green(self, client: AsyncClient) -> None:
        job = await _create_job(client)

        for milestone in ("accepted", "on_site", "completed"):
            response = await client.post(f"/jobs/{job['id']}/milestones/{milestone}")
            assert response.status_code == 200, response.text

        body = response.json()
        assert body["completed_at"] is not None
        assert body["status"]["legacy_status"] == "green"

    async def test_policy_locked_after_completion_is_409(self, client: AsyncClient) -> None:
        job = await _create_job(client)
        for milestone in ("accepted", "on_site", "completed"):
            await client.post(f"/jobs/{job['id']}/milestones/{milestone}")

        response = await client.put(
            f"/jobs/{job['id']}/policy",
            json={"accept_within": 1, "on_site_within": 1, "complete_within": 1},
        )

        assert response.status_code == 409

    async def test_negative_policy_is_422(self, client: AsyncClient) -> None:
        job = await _create_job(client)

        response = await client.put(
            f"/jobs/{job['id']}/policy",
            json={"accept_within": -5, "on_site_within": 1, "complete_within": 1},
        )

        assert response.status_code == 422

    async def test_correct_milestone(self, client: AsyncClient, clock) -> None:
        job = await _create_job(client)
        clock.advance(minutes=10)
        await client.post(f"/jobs/{job['id']}/milestones/accepted")

        corrected = (clock() - timedelta(minutes=5)).isoformat()
        response = await client.put(
            f"/jobs/{job['id']}/milestones/accepted", json={"timestamp": corrected}
        )

        assert response.status_code == 200
        timeline = (await client.get(f"/jobs/{job['id']}/timeline")).json()
        assert timeline[-1]["type"] == "milestone_corrected"

    async def test_dashboard(self, client: AsyncClient, clock) -> None:
        await _create_job(client)
        await _create_job(client, logged_at=(clock() - timedelta(hours=2)).isoformat())

        response = await client.get("/jobs")

        assert response.status_code == 200
        summary = response.json()["summary"]
        assert summary["total"] == 2
        assert (summary["amber"], summary["red"]) == (1, 1)

        breached = (await client.get("/jobs", params={"sla_state": "breached"})).json()
        assert len(breached["jobs"]) == 1
        assert breached["jobs"][0]["status"]["legacy_status"] == "red"


class TestEngineAPI:
    async def test_tick_raises_one_breach_notification(self, client: AsyncClient, clock) -> None:
        job = await _create_job(client)
        clock.advance(minutes=21)

        first = await client.post("/engine/tick")
        clock.advance(minutes=1)
        await client.post("/engine/tick")

        assert first.json()["ok"] is True
        assert first.json()["notifications"] == 1

        notifications = (await client.get("/notifications")).json()
        assert notifications["unread_count"] == 1
        assert notifications["notifications"][0]["type"] == "sla_breach"
        assert notifications["notifications"][0]["related_id"] == job["id"]

        status = (await client.get("/engine/status")).json()
        assert status["scheduler_running"] is False
        assert status["last_tick"]["ok"] is True

    async def test_live_status_without_tick(self, client: AsyncClient, clock) -> None:
        job = await _create_job(client)
        clock.advance(minutes=21)

        body = (await client.get(f"/jobs/{job['id']}")).json()

        assert body["status"]["state"] == "breached"
        assert body["status"]["legacy_status"] == "red"
        assert body["status"]["remaining_seconds"] == 0


class TestNotificationsAPI:
    async def test_mark_read_and_read_all(self, client: AsyncClient, clock) -> None:
        await _create_job(client)
        await _create_job(client)
        clock.advance(minutes=30)
        await client.post("/engine/tick")

        listed = (await client.get("/notifications")).json()
        assert listed["unread_count"] == 2

        first_id = listed["notifications"][0]["id"]
        marked = await client.post(f"/notifications/{first_id}/read")
        assert marked.json()["read"] is True
        assert (await client.get("/notifications")).json()["unread_count"] == 1

        updated = (await client.post("/notifications/read-all")).json()
        assert updated["updated"] == 1
        assert (await client.get("/notifications", params={"unread_only": True})).json()["notifications"] == []

    async def test_unknown_notification_is_404(self, client: AsyncClient) -> None:
        response = await client.post("/notifications/notif-missing/read")

        assert response.status_code == 404


class TestRemindersAPI:
    async def test_crud_and_lifecycle(self, client: AsyncClient, clock) -> None:
        due = (clock() + timedelta(minutes=15)).isoformat()
        created = await client.post("/reminders", json={"message": "Call site manager", "due_at": due})
        assert created.status_code == 201
        reminder = created.json()
        assert reminder["status"] == "active"

        edited = await client.patch(f"/reminders/{reminder['id']}", json={"priority": "high"})
        assert edited.json()["priority"] == "high"

        snoozed = await client.post(f"/reminders/{reminder['id']}/snooze", json={"minutes": 30})
        assert snoozed.json()["status"] == "snoozed"

        completed = await client.post(f"/reminders/{reminder['id']}/complete")
        assert completed.json()["status"] == "completed"

        again = await client.post(f"/reminders/{reminder['id']}/complete")
        assert again.status_code == 409

        deleted = await client.delete(f"/reminders/{reminder['id']}")
        assert deleted.status_code == 204
        assert (await client.get(f"/reminders/{reminder['id']}")).status_code == 404

    async def test_snooze_needs_exactly_one_field(self, client: AsyncClient, clock) -> None:
        due = (clock() + timedelta(minutes=15)).isoformat()
        reminder = (await client.post("/reminders", json={"message": "x", "due_at": due})).json()

        response = await client.post(f"/reminders/{reminder['id']}/snooze", json={})

        assert response.status_code == 422

    async def test_overdue_after_tick(self, client: AsyncClient, clock) -> None:
        due = (clock() + timedelta(minutes=5)).isoformat()
        reminder = (await client.post("/reminders", json={"message": "Chase parts", "due_at": due})).json()
        clock.advance(minutes=6)

        await client.post("/engine/tick")

        overdue = (await client.get("/reminders", params={"status": "overdue"})).json()
        assert [r["id"] for r in overdue["reminders"]] == [reminder["id"]]
        notifications = (await client.get("/notifications")).json()["notifications"]
        assert [n["type"] for n in notifications] == ["reminder_due"]
