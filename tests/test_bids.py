"""Bid submission, acceptance and withdrawal."""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Any

from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from freelancehub.core.exceptions import InvalidState
from freelancehub.models import Bid, BidStatus, BudgetType, Notification, Task, TaskCategory, TaskStatus, User
from freelancehub.services.bids import BidEngine
from tests.helpers import FailingPublisher, RecordingPublisher, accept_bid, create_task, submit_bid, task_status


def _bid_statuses(engine: Engine, task_id: int) -> dict[int, str]:
    with Session(engine) as session:
        bids = session.exec(select(Bid).where(Bid.task_id == task_id)).all()
        return {bid.freelancer_id: bid.status.value for bid in bids}


def _notification_messages(engine: Engine, user_id: int) -> list[str]:
    with Session(engine) as session:
        rows = session.exec(
            select(Notification).where(Notification.user_id == user_id).order_by(Notification.id)
        ).all()
        return [row.message for row in rows]


class TestSubmitBid:
    def test_freelancer_bids_on_open_task(
        self, client: TestClient, engine: Engine, owner: dict[str, Any], alice: dict[str, Any]
    ) -> None:
        task = create_task(client, owner)

        resp = submit_bid(client, alice, task["id"], amount=500)

        assert resp.status_code == 201
        bid = resp.json()["data"]
        assert bid["status"] == "pending"
        assert bid["freelancer_id"] == alice["id"]
        assert _notification_messages(engine, owner["id"]) == [
            'You have a new $500.00 bid on your project "Build a landing page"'
        ]

    def test_second_bid_from_same_freelancer_is_a_conflict(
        self, client: TestClient, owner: dict[str, Any], alice: dict[str, Any]
    ) -> None:
        task = create_task(client, owner)
        assert submit_bid(client, alice, task["id"]).status_code == 201

        resp = submit_bid(client, alice, task["id"], amount=450)

        assert resp.status_code == 409
        assert resp.json()["error"] == "Conflict"
        assert resp.json()["message"] == "You have already submitted a bid for this task."

    def test_client_cannot_bid(self, client: TestClient, owner: dict[str, Any], other_client: dict[str, Any]) -> None:
        task = create_task(client, owner)

        resp = submit_bid(client, other_client, task["id"])

        assert resp.status_code == 403
        assert resp.json()["error"] == "Forbidden"

    def test_unknown_task_is_not_found(self, client: TestClient, alice: dict[str, Any]) -> None:
        resp = submit_bid(client, alice, 9999)

        assert resp.status_code == 404

    def test_out_of_range_ids_are_validation_errors(
        self, client: TestClient, owner: dict[str, Any], alice: dict[str, Any]
    ) -> None:
        bid_resp = submit_bid(client, alice, 2**70)
        accept_resp = client.patch(f"/api/bids/{2**64}/accept", headers=owner["headers"])

        assert bid_resp.status_code == 422
        assert [item["field"] for item in bid_resp.json()["data"]] == ["task_id"]
        assert accept_resp.status_code == 422
        assert accept_resp.json()["error"] == "ValidationFailed"

    def test_bid_on_assigned_task_is_invalid_state(
        self, client: TestClient, owner: dict[str, Any], alice: dict[str, Any], bob: dict[str, Any]
    ) -> None:
        task = create_task(client, owner)
        bid = submit_bid(client, alice, task["id"]).json()["data"]
        assert accept_bid(client, owner, bid["id"]).status_code == 200

        resp = submit_bid(client, bob, task["id"])

        assert resp.status_code == 409
        assert resp.json()["error"] == "InvalidState"

    def test_bid_on_own_task_is_invalid_state(self, client: TestClient, engine: Engine, alice: dict[str, Any]) -> None:
        with Session(engine) as session:
            task = Task(
                client_id=alice["id"],
                title="Self dealing",
                description="A task owned by the bidder.",
                category=TaskCategory.other,
                budget=10,
                budget_type=BudgetType.fixed,
                deadline=datetime(2030, 1, 1),
            )
            session.add(task)
            session.commit()
            task_id = task.id

        resp = submit_bid(client, alice, task_id)

        assert resp.status_code == 409
        assert resp.json()["message"] == "You cannot bid on your own task."

    def test_short_proposal_is_rejected(self, client: TestClient, owner: dict[str, Any], alice: dict[str, Any]) -> None:
        task = create_task(client, owner)

        resp = submit_bid(client, alice, task["id"], proposal="Hire me")

        assert resp.status_code == 422
        assert [item["field"] for item in resp.json()["data"]] == ["proposal"]


class TestAcceptBid:
    def test_accept_assigns_task_and_rejects_other_bids(
        self,
        client: TestClient,
        engine: Engine,
        owner: dict[str, Any],
        alice: dict[str, Any],
        bob: dict[str, Any],
    ) -> None:
        task = create_task(client, owner)
        alice_bid = submit_bid(client, alice, task["id"], amount=500).json()["data"]
        submit_bid(client, bob, task["id"], amount=450)

        resp = accept_bid(client, owner, alice_bid["id"])

        assert resp.status_code == 200
        assert resp.json()["message"] == "Bid accepted and freelancer hired successfully."
        assert task_status(client, owner, task["id"]) == "assigned"
        assert _bid_statuses(engine, task["id"]) == {alice["id"]: "accepted", bob["id"]: "rejected"}
        assert _notification_messages(engine, alice["id"]) == [
            'Congratulations! Your bid for "Build a landing page" has been accepted.'
        ]
        assert _notification_messages(engine, owner["id"])[-1] == (
            'You have hired Alice for your project "Build a landing page".'
        )

    def test_only_task_owner_can_accept(
        self, client: TestClient, owner: dict[str, Any], other_client: dict[str, Any], alice: dict[str, Any]
    ) -> None:
        task = create_task(client, owner)
        bid = submit_bid(client, alice, task["id"]).json()["data"]

        resp = accept_bid(client, other_client, bid["id"])

        assert resp.status_code == 403
        assert task_status(client, owner, task["id"]) == "open"

    def test_freelancer_cannot_accept(self, client: TestClient, owner: dict[str, Any], alice: dict[str, Any]) -> None:
        task = create_task(client, owner)
        bid = submit_bid(client, alice, task["id"]).json()["data"]

        assert accept_bid(client, alice, bid["id"]).status_code == 403

    def test_unknown_bid_is_not_found(self, client: TestClient, owner: dict[str, Any]) -> None:
        resp = accept_bid(client, owner, 31337)

        assert resp.status_code == 404
        assert resp.json()["error"] == "NotFound"

    def test_second_acceptance_is_invalid_state(
        self,
        client: TestClient,
        engine: Engine,
        owner: dict[str, Any],
        alice: dict[str, Any],
        bob: dict[str, Any],
    ) -> None:
        task = create_task(client, owner)
        alice_bid = submit_bid(client, alice, task["id"]).json()["data"]
        bob_bid = submit_bid(client, bob, task["id"]).json()["data"]
        assert accept_bid(client, owner, alice_bid["id"]).status_code == 200

        resp = accept_bid(client, owner, bob_bid["id"])

        assert resp.status_code == 409
        assert resp.json()["error"] == "InvalidState"
        assert _bid_statuses(engine, task["id"]) == {alice["id"]: "accepted", bob["id"]: "rejected"}

    def test_concurrent_acceptances_hire_exactly_one_freelancer(
        self,
        client: TestClient,
        engine: Engine,
        owner: dict[str, Any],
        alice: dict[str, Any],
        bob: dict[str, Any],
    ) -> None:
        task = create_task(client, owner)
        bid_ids = [
            submit_bid(client, alice, task["id"]).json()["data"]["id"],
            submit_bid(client, bob, task["id"]).json()["data"]["id"],
        ]
        with Session(engine) as session:
            owner_user = session.get(User, owner["id"])

        barrier = threading.Barrier(len(bid_ids))
        outcomes: list[str] = []
        outcomes_lock = threading.Lock()

        def accept(bid_id: int) -> None:
            with Session(engine) as session:
                bid_engine = BidEngine(session, RecordingPublisher())
                barrier.wait()
                try:
                    bid_engine.accept_bid(owner_user, bid_id)
                    outcome = "accepted"
                except InvalidState:
                    outcome = "invalid_state"
            with outcomes_lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=accept, args=(bid_id,)) for bid_id in bid_ids]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert sorted(outcomes) == ["accepted", "invalid_state"]
        statuses = sorted(_bid_statuses(engine, task["id"]).values())
        assert statuses == ["accepted", "rejected"]
        with Session(engine) as session:
            assert session.get(Task, task["id"]).status == TaskStatus.assigned

    def test_failed_push_does_not_undo_acceptance(
        self, client: TestClient, engine: Engine, owner: dict[str, Any], alice: dict[str, Any]
    ) -> None:
        task = create_task(client, owner)
        bid = submit_bid(client, alice, task["id"]).json()["data"]

        with Session(engine) as session:
            owner_user = session.get(User, owner["id"])
            accepted = BidEngine(session, FailingPublisher()).accept_bid(owner_user, bid["id"])
            assert accepted.status == BidStatus.accepted

        assert task_status(client, owner, task["id"]) == "assigned"
        assert len(_notification_messages(engine, alice["id"])) == 1

    def test_acceptance_pushes_chat_activation_to_both_parties(
        self, client: TestClient, engine: Engine, owner: dict[str, Any], alice: dict[str, Any]
    ) -> None:
        task = create_task(client, owner)
        bid = submit_bid(client, alice, task["id"]).json()["data"]
        publisher = RecordingPublisher()

        with Session(engine) as session:
            owner_user = session.get(User, owner["id"])
            BidEngine(session, publisher).accept_bid(owner_user, bid["id"])

        assert [event for event, _ in publisher.for_user(alice["id"])] == ["new_notification", "chat_activated"]
        assert [event for event, _ in publisher.for_user(owner["id"])] == ["new_notification", "chat_activated"]
        assert publisher.for_user(alice["id"])[-1][1] == {"task_id": task["id"]}


class TestWithdrawBid:
    def test_withdrawn_bid_stays_withdrawn_after_acceptance(
        self,
        client: TestClient,
        engine: Engine,
        owner: dict[str, Any],
        alice: dict[str, Any],
        bob: dict[str, Any],
    ) -> None:
        task = create_task(client, owner)
        alice_bid = submit_bid(client, alice, task["id"]).json()["data"]
        bob_bid = submit_bid(client, bob, task["id"]).json()["data"]

        resp = client.patch(f"/api/bids/{bob_bid['id']}/withdraw", headers=bob["headers"])
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "withdrawn"

        assert accept_bid(client, owner, alice_bid["id"]).status_code == 200
        assert _bid_statuses(engine, task["id"]) == {alice["id"]: "accepted", bob["id"]: "withdrawn"}

    def test_withdrawn_bid_cannot_be_accepted(
        self, client: TestClient, owner: dict[str, Any], alice: dict[str, Any]
    ) -> None:
        task = create_task(client, owner)
        bid = submit_bid(client, alice, task["id"]).json()["data"]
        client.patch(f"/api/bids/{bid['id']}/withdraw", headers=alice["headers"])

        resp = accept_bid(client, owner, bid["id"])

        assert resp.status_code == 409
        assert task_status(client, owner, task["id"]) == "open"

    def test_cannot_withdraw_someone_elses_bid(
        self, client: TestClient, owner: dict[str, Any], alice: dict[str, Any], bob: dict[str, Any]
    ) -> None:
        task = create_task(client, owner)
        bid = submit_bid(client, alice, task["id"]).json()["data"]

        resp = client.patch(f"/api/bids/{bid['id']}/withdraw", headers=bob["headers"])

        assert resp.status_code == 403


class TestListBids:
    def test_task_bids_include_freelancer(
        self, client: TestClient, owner: dict[str, Any], alice: dict[str, Any]
    ) -> None:
        task = create_task(client, owner)
        submit_bid(client, alice, task["id"])

        resp = client.get(f"/api/bids/task/{task['id']}", headers=owner["headers"])

        assert resp.status_code == 200
        (bid,) = resp.json()["data"]
        assert bid["freelancer"]["first_name"] == "Alice"

    def test_my_bids_include_task_summary(
        self, client: TestClient, owner: dict[str, Any], alice: dict[str, Any]
    ) -> None:
        task = create_task(client, owner)
        submit_bid(client, alice, task["id"])

        resp = client.get("/api/bids/my-bids", headers=alice["headers"])

        assert resp.status_code == 200
        (bid,) = resp.json()["data"]
        assert bid["task"] == {"id": task["id"], "title": task["title"], "status": "open"}

    def test_bids_for_unknown_task_are_not_found(self, client: TestClient, owner: dict[str, Any]) -> None:
        assert client.get("/api/bids/task/777", headers=owner["headers"]).status_code == 404
