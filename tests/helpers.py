"""Request helpers shared by the API tests."""

from __future__ import annotations

from typing import Any

from fastapi.testclient import TestClient
from httpx import Response

PASSWORD = "correct-horse-battery"
DEADLINE = "2030-06-30T17:00:00"
PROPOSAL = "I have shipped a dozen landing pages with this exact stack and can start today."


class RecordingPublisher:
    """Captures live pushes instead of delivering them."""

    def __init__(self) -> None:
        self.events: list[tuple[int, str, Any]] = []

    def publish_to_user(self, user_id: int, event: str, data: Any) -> None:
        self.events.append((user_id, event, data))

    def for_user(self, user_id: int) -> list[tuple[str, Any]]:
        return [(event, data) for target, event, data in self.events if target == user_id]


class FailingPublisher:
    def publish_to_user(self, user_id: int, event: str, data: Any) -> None:
        raise RuntimeError("live channel is down")


def login(client: TestClient, email: str, password: str = PASSWORD) -> Response:
    return client.post("/api/auth/token", data={"username": email, "password": password})


def register_user(
    client: TestClient,
    *,
    email: str,
    role: str,
    first_name: str,
    last_name: str = "Tester",
) -> dict[str, Any]:
    resp = client.post(
        "/api/auth/register",
        json={
            "email": email,
            "password": PASSWORD,
            "first_name": first_name,
            "last_name": last_name,
            "role": role,
        },
    )
    assert resp.status_code == 201, resp.text
    user = resp.json()["data"]

    token_resp = login(client, email)
    assert token_resp.status_code == 200, token_resp.text
    token = token_resp.json()["access_token"]
    return {
        "id": user["id"],
        "email": email,
        "first_name": first_name,
        "token": token,
        "headers": {"Authorization": f"Bearer {token}"},
    }


def create_task(client: TestClient, owner: dict[str, Any], **overrides: Any) -> dict[str, Any]:
    payload = {
        "title": "Build a landing page",
        "description": "Responsive marketing page with a signup form and analytics.",
        "category": "web_development",
        "budget": 1200.0,
        "budget_type": "fixed",
        "deadline": DEADLINE,
    }
    payload.update(overrides)
    resp = client.post("/api/tasks/", json=payload, headers=owner["headers"])
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def submit_bid(
    client: TestClient,
    freelancer: dict[str, Any],
    task_id: int,
    amount: float = 500.0,
    **overrides: Any,
) -> Response:
    payload = {"task_id": task_id, "amount": amount, "proposal": PROPOSAL, "timeline": "2 weeks"}
    payload.update(overrides)
    return client.post("/api/bids/", json=payload, headers=freelancer["headers"])


def accept_bid(client: TestClient, owner: dict[str, Any], bid_id: int) -> Response:
    return client.patch(f"/api/bids/{bid_id}/accept", headers=owner["headers"])


def assign_task(
    client: TestClient, owner: dict[str, Any], freelancer: dict[str, Any], **task_overrides: Any
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Post a task, bid on it and accept the bid; returns ``(task, bid)``."""
    task = create_task(client, owner, **task_overrides)
    bid_resp = submit_bid(client, freelancer, task["id"])
    assert bid_resp.status_code == 201, bid_resp.text
    bid = bid_resp.json()["data"]
    accept_resp = accept_bid(client, owner, bid["id"])
    assert accept_resp.status_code == 200, accept_resp.text
    return task, bid


def create_milestone(
    client: TestClient,
    owner: dict[str, Any],
    task_id: int,
    *,
    title: str = "Wireframes",
    amount: float = 250.0,
) -> Response:
    return client.post(
        "/api/milestones/",
        json={
            "task_id": task_id,
            "title": title,
            "description": f"{title} delivered and reviewed.",
            "amount": amount,
            "due_date": DEADLINE,
        },
        headers=owner["headers"],
    )


def task_status(client: TestClient, viewer: dict[str, Any], task_id: int) -> str:
    resp = client.get(f"/api/tasks/{task_id}", headers=viewer["headers"])
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]["status"]
