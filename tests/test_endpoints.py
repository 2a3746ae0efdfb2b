from datetime import datetime, timedelta, timezone

import pytest


def in_hours(hours):
    return (datetime.now(timezone.utc) + timedelta(hours=hours)).isoformat()


@pytest.fixture()
async def user_id(client, signup):
    await signup()
    response = await client.get("/tasks/new")
    return response.json()["userId"]


async def create(client, **fields):
    data = {"title": "Pay rent", "description": "Before the 1st", "deadline": in_hours(2)}
    data.update(fields)
    return await client.post("/tasks/new", data=data)


async def only_task(client):
    tasks = (await client.get("/tasks")).json()
    assert len(tasks) == 1
    return tasks[0]


async def test_protected_routes_need_a_session(client):
    for path in ("/tasks", "/tasks/new", "/tasks/1", "/tasks/1/edit"):
        response = await client.get(path)
        assert response.status_code == 401, path

    response = await client.post("/tasks/new", data={"title": "x", "deadline": in_hours(2)})
    assert response.status_code == 401


async def test_create_task_schedules_reminder(app, client, user_id):
    response = await create(client)

    assert response.status_code == 303
    assert response.headers["location"] == "/tasks"

    task = await only_task(client)
    assert task["title"] == "Pay rent"
    assert task["user_id"] == user_id
    assert task["user_email"] == "owner@taskminder.io"

    reminders = app.state.context.reminders.pending()
    assert len(reminders) == 1
    deadline = datetime.fromisoformat(task["deadline"])
    assert reminders[0].fire_time == deadline - timedelta(hours=1)
    assert reminders[0].payload.recipient == "owner@taskminder.io"
    assert reminders[0].payload.title == "Pay rent"


async def test_create_task_with_explicit_user_id(client, user_id):
    response = await create(client, userId=str(user_id))
    assert response.status_code == 303
    assert (await only_task(client))["user_id"] == user_id


@pytest.mark.parametrize("fields, detail", [
    ({"deadline": ""}, "Title, deadline, and user information are required fields"),
    ({"title": ""}, "Title, deadline, and user information are required fields"),
    ({"deadline": "tomorrow-ish"}, "Invalid deadline date"),
    ({"deadline": in_hours(-1)}, "Deadline cannot be in the past"),
    ({"deadline": in_hours(0.5)}, "Deadline must be at least one hour ahead"),
])
async def test_create_task_validation(app, client, user_id, fields, detail):
    response = await create(client, **fields)

    assert response.status_code == 400
    assert response.json()["detail"] == detail
    assert app.state.context.reminders.pending() == []


async def test_create_task_for_unknown_user(client, user_id):
    response = await create(client, userId="987654")

    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


async def test_show_and_edit_task(client, user_id):
    await create(client)
    task_id = (await only_task(client))["task_id"]

    response = await client.get(f"/tasks/{task_id}")
    assert response.status_code == 200
    assert response.json()["description"] == "Before the 1st"

    response = await client.get(f"/tasks/{task_id}/edit")
    assert response.status_code == 200
    assert response.json()["fields"] == ["title", "description", "deadline"]
    assert response.json()["task"]["task_id"] == task_id

    response = await client.put(
        f"/tasks/{task_id}/edit",
        data={"title": "Pay rent <i>today</i>", "description": "Landlord: Jo"},
    )
    assert response.status_code == 303
    assert response.headers["location"] == f"/tasks/{task_id}"

    task = (await client.get(f"/tasks/{task_id}")).json()
    assert task["title"] == "Pay rent today"
    assert task["description"] == "Landlord: Jo"


async def test_title_length_is_capped_on_create_and_edit(app, client, user_id):
    long_title = "x" * 300

    response = await create(client, title=long_title)
    assert response.status_code == 400
    assert response.json()["detail"] == "Title must be at most 200 characters"
    assert app.state.context.reminders.pending() == []

    await create(client, title="x" * 200)
    task_id = (await only_task(client))["task_id"]

    response = await client.put(f"/tasks/{task_id}/edit", data={"title": long_title})
    assert response.status_code == 400
    assert response.json()["detail"] == "Title must be at most 200 characters"


async def test_far_future_offset_deadline_is_rejected(client, user_id):
    response = await create(client, deadline="9999-12-31T23:00-05:00")

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid deadline date"


async def test_post_to_tasks_creates_and_shows_the_task(app, client, user_id):
    response = await client.post("/tasks", data={"title": "Renew passport", "deadline": in_hours(3)})

    assert response.status_code == 303
    task = await only_task(client)
    assert response.headers["location"] == f"/tasks/{task['task_id']}"
    assert task["title"] == "Renew passport"
    assert [r.payload.title for r in app.state.context.reminders.pending()] == ["Renew passport"]

    response = await client.post("/tasks", data={"title": "Renew passport", "deadline": in_hours(0.5)})
    assert response.status_code == 400


async def test_edit_rejects_unknown_fields_and_bad_deadline(client, user_id):
    await create(client)
    task_id = (await only_task(client))["task_id"]

    response = await client.put(f"/tasks/{task_id}/edit", data={"title": "x", "user_id": "2"})
    assert response.status_code == 400
    assert "user_id" in response.json()["detail"]

    response = await client.put(f"/tasks/{task_id}/edit", data={"deadline": in_hours(0.25)})
    assert response.status_code == 400

    response = await client.put("/tasks/999999/edit", data={"title": "x"})
    assert response.status_code == 404


async def test_delete_is_idempotent_and_keeps_reminder(app, client, user_id):
    await create(client)
    task_id = (await only_task(client))["task_id"]

    for _ in range(2):
        response = await client.delete(f"/tasks/{task_id}")
        assert response.status_code == 303
        assert response.headers["location"] == "/tasks"

    assert (await client.get(f"/tasks/{task_id}")).status_code == 404
    assert (await client.get("/tasks")).json() == []
    # Reminders cannot be cancelled, the one for the deleted task still fires
    assert len(app.state.context.reminders.pending()) == 1


async def test_tasks_are_private_to_their_owner(client, signup, user_id):
    await create(client)
    task_id = (await only_task(client))["task_id"]

    client.cookies.clear()
    await signup(email="intruder@taskminder.io")

    assert (await client.get("/tasks")).json() == []
    assert (await client.get(f"/tasks/{task_id}")).status_code == 404
    assert (await client.put(f"/tasks/{task_id}/edit", data={"title": "mine"})).status_code == 404

    await client.delete(f"/tasks/{task_id}")
    client.cookies.clear()
    await client.post("/login", data={"email": "owner@taskminder.io", "password": "hunter22"})
    assert (await client.get(f"/tasks/{task_id}")).status_code == 200
