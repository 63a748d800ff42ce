from __future__ import annotations

import asyncio
import datetime as dt

import pytest

from brokerdesk.core.exceptions import NotAuthenticatedError, NotificationStoreError
from brokerdesk.models.enums import NotificationPriority, NotificationType
from brokerdesk.schemas.notification import NotificationCreate
from brokerdesk.services.deadlines.sources import (
    BrokerSnapshot,
    ChallengeSnapshot,
    EventSnapshot,
    GoalSnapshot,
    MeetingSnapshot,
    TaskSnapshot,
)
from brokerdesk.services.notifications_service import InsertResult


def _payload(related_id: str = "sale-1") -> NotificationCreate:
    return NotificationCreate(
        title="Venda registrada",
        message="Venda do imóvel 42 registrada.",
        type="performance",
        related_id=related_id,
        priority="low",
    )


def _assert_unread_invariant(center) -> None:
    assert center.unread_count == len([n for n in center.notifications if not n.is_read])


def test_scenario_a_overdue_task(center, sources, actor, clock) -> None:
    sources.replace_tasks([
        TaskSnapshot(id="task-1", title="Enviar contrato", due_date=clock() - dt.timedelta(days=1), status="Em Progresso"),
    ])

    assert center.is_loading is True

    async def scenario():
        await center.activate(actor)
        return await center.check_and_create_deadline_notifications()

    report = asyncio.run(scenario())

    assert center.is_loading is False
    assert report.emitted == 1
    [notification] = center.notifications
    assert notification.type is NotificationType.task
    assert notification.priority is NotificationPriority.high
    assert "atrasada" in notification.message
    assert notification.related_id == "task-1"


def test_scenario_b_goal_due_in_two_days(center, sources, actor, clock) -> None:
    sources.replace_goals([
        GoalSnapshot(
            id="goal-1",
            title="Vender 10 imóveis",
            end_date=clock() + dt.timedelta(days=2),
            status="active",
            progress=40,
            broker_id="b-1",
        ),
    ])
    sources.replace_brokers([BrokerSnapshot(id="b-1", name="Ana Souza")])

    async def scenario():
        await center.activate(actor)
        await center.check_and_create_deadline_notifications()

    asyncio.run(scenario())

    [notification] = center.notifications
    assert notification.type is NotificationType.goal
    assert notification.priority is NotificationPriority.high
    assert "3 dias" in notification.message
    assert "40" in notification.message
    assert "do corretor Ana Souza" in notification.message


def test_scenario_c_challenge_completion_is_emitted_once(center, sources, actor, clock) -> None:
    sources.replace_challenges([
        ChallengeSnapshot(
            id="ch-1",
            title="Sprint de vendas",
            end_date=clock() + dt.timedelta(days=20),
            status="active",
            total_progress=100,
        ),
    ])

    async def scenario():
        await center.activate(actor)
        first = await center.check_and_create_deadline_notifications()
        clock.advance(minutes=5)
        second = await center.check_and_create_deadline_notifications()
        return first, second

    first, second = asyncio.run(scenario())

    assert first.emitted == 1
    assert second.emitted == 0
    [notification] = center.notifications
    assert notification.type is NotificationType.performance
    assert notification.priority is NotificationPriority.high
    assert "concluído" in notification.title.casefold()


def test_near_completion_only_when_deadline_ladder_is_quiet(center, sources, actor, clock) -> None:
    sources.replace_challenges([
        ChallengeSnapshot(id="far", title="Longo prazo", end_date=clock() + dt.timedelta(days=20), status="active", total_progress=85),
        ChallengeSnapshot(id="near", title="Curto prazo", end_date=clock() + dt.timedelta(hours=10), status="active", total_progress=85),
    ])

    async def scenario():
        await center.activate(actor)
        await center.check_and_create_deadline_notifications()

    asyncio.run(scenario())

    messages = {n.related_id: n.message for n in center.notifications}
    assert len(center.notifications) == 2
    assert "quase concluído" in messages["far"]
    assert "expira em menos de 24 horas" in messages["near"]


def test_scenario_d_past_event_is_ignored(center, sources, actor, clock) -> None:
    sources.replace_events([
        EventSnapshot(id="ev-1", title="Visita ao imóvel", datetime=clock() - dt.timedelta(hours=3), priority="Alta"),
    ])

    async def scenario():
        await center.activate(actor)
        return await center.check_and_create_deadline_notifications()

    report = asyncio.run(scenario())

    assert report.emitted == 0
    assert center.notifications == []


def test_scenario_e_meeting_twelve_hours_away(center, sources, actor, clock) -> None:
    sources.replace_meetings([
        MeetingSnapshot(id="m-1", client_name="Carlos Lima", meeting_date=clock() + dt.timedelta(hours=12)),
    ])

    async def scenario():
        await center.activate(actor)
        first = await center.check_and_create_deadline_notifications()
        clock.advance(minutes=5)
        second = await center.check_and_create_deadline_notifications()
        return first, second

    first, second = asyncio.run(scenario())

    assert first.emitted == 1
    assert second.emitted == 0
    [notification] = center.notifications
    assert notification.type is NotificationType.meeting
    assert notification.priority is NotificationPriority.high


def test_consecutive_passes_do_not_grow_the_list(center, sources, actor, clock) -> None:
    now = clock()
    sources.replace_tasks([TaskSnapshot("t-1", "Ligar para cliente", now + dt.timedelta(days=2), "Backlog")])
    sources.replace_goals([GoalSnapshot("g-1", "Captar 5 imóveis", now + dt.timedelta(days=5), "active", 20)])
    sources.replace_events([EventSnapshot("e-1", "Feirão", now + dt.timedelta(hours=30), "Média")])
    sources.replace_meetings([MeetingSnapshot("m-1", "Beatriz", now + dt.timedelta(days=1, hours=12))])
    sources.replace_challenges([ChallengeSnapshot("c-1", "Mês forte", now + dt.timedelta(days=2), "active", 30)])

    async def scenario():
        await center.activate(actor)
        first = await center.check_and_create_deadline_notifications()
        clock.advance(minutes=5)
        second = await center.check_and_create_deadline_notifications()
        await center.refresh_notifications()
        return first, second

    first, second = asyncio.run(scenario())

    assert first.emitted == 5
    assert [stats.source for stats in first.sources] == ["tasks", "goals", "events", "meetings", "challenges"]
    assert second.emitted == 0
    assert second.suppressed == 5
    assert len(center.notifications) == 5


def test_dismissed_alert_still_blocks_reemission(center, sources, actor, clock) -> None:
    sources.replace_tasks([TaskSnapshot("t-1", "Enviar contrato", clock() - dt.timedelta(hours=1), "Em Revisão")])

    async def scenario():
        await center.activate(actor)
        await center.check_and_create_deadline_notifications()
        [notification] = center.notifications
        assert await center.delete_notification(notification.id)
        assert center.notifications == []

        clock.advance(hours=2)
        await center.refresh_notifications()
        blocked = await center.check_and_create_deadline_notifications()

        clock.advance(hours=23)
        reopened = await center.check_and_create_deadline_notifications()
        return blocked, reopened

    blocked, reopened = asyncio.run(scenario())

    assert blocked.emitted == 0
    assert reopened.emitted == 1
    assert len(center.notifications) == 1


def test_unread_count_tracks_every_mutation(center, actor, clock) -> None:
    async def scenario():
        await center.activate(actor)
        first = await center.create_notification(_payload("sale-1"))
        _assert_unread_invariant(center)
        second = await center.create_notification(_payload("sale-2"))
        await center.create_notification(_payload("sale-3"))
        assert center.unread_count == 3

        assert await center.mark_as_read(first.id)
        _assert_unread_invariant(center)
        assert center.unread_count == 2

        assert await center.delete_notification(second.id)
        _assert_unread_invariant(center)
        assert center.unread_count == 1
        assert len(center.notifications) == 2

        assert await center.mark_all_as_read() == 2
        _assert_unread_invariant(center)
        assert center.unread_count == 0

        assert await center.delete_all_read() == 2
        _assert_unread_invariant(center)
        assert center.notifications == []

    asyncio.run(scenario())


def test_create_without_session_raises(center) -> None:
    with pytest.raises(NotAuthenticatedError):
        asyncio.run(center.create_notification(_payload()))


def test_duplicate_create_returns_none(center, actor) -> None:
    async def scenario():
        await center.activate(actor)
        created = await center.create_notification(_payload())
        duplicate = await center.create_notification(_payload())
        return created, duplicate

    created, duplicate = asyncio.run(scenario())

    assert created is not None
    assert duplicate is None
    assert len(center.notifications) == 1


def test_non_duplicate_store_failure_propagates(center, actor, monkeypatch) -> None:
    async def scenario():
        await center.activate(actor)
        monkeypatch.setattr(center._store, "insert", lambda *_args: InsertResult.failed("disk full"))
        await center.create_notification(_payload())

    with pytest.raises(NotificationStoreError):
        asyncio.run(scenario())


def test_failing_item_does_not_abort_the_pass(center, sources, actor, clock, monkeypatch) -> None:
    now = clock()
    sources.replace_tasks([
        TaskSnapshot("t-broken", "Tarefa A", now - dt.timedelta(hours=1), "Backlog"),
        TaskSnapshot("t-ok", "Tarefa B", now - dt.timedelta(hours=1), "Backlog"),
    ])
    sources.replace_meetings([MeetingSnapshot("m-1", "Beatriz", now + dt.timedelta(hours=3))])
    real_insert = center._store.insert

    def flaky_insert(user_id, payload):
        if payload.related_id == "t-broken":
            return InsertResult.failed("timeout")
        return real_insert(user_id, payload)

    async def scenario():
        await center.activate(actor)
        monkeypatch.setattr(center._store, "insert", flaky_insert)
        return await center.check_and_create_deadline_notifications()

    report = asyncio.run(scenario())

    assert report.failed == 1
    assert report.emitted == 2
    assert {n.related_id for n in center.notifications} == {"t-ok", "m-1"}


def test_failing_source_is_logged_and_skipped(center, sources, actor, clock, monkeypatch) -> None:
    sources.replace_meetings([MeetingSnapshot("m-1", "Beatriz", clock() + dt.timedelta(hours=3))])

    def broken_tasks(*_args, **_kwargs):
        raise RuntimeError("tasks table unavailable")

    monkeypatch.setattr(sources, "list_tasks", broken_tasks)

    async def scenario():
        await center.activate(actor)
        return await center.check_and_create_deadline_notifications()

    report = asyncio.run(scenario())

    assert report.sources[0].failed == 1
    assert report.emitted == 1


def test_overlapping_pass_is_skipped(center, actor) -> None:
    async def scenario():
        await center.activate(actor)
        center._scanning = True
        try:
            return await center.check_and_create_deadline_notifications()
        finally:
            center._scanning = False

    report = asyncio.run(scenario())

    assert report.skipped is True


def test_scan_without_session_is_a_no_op(center) -> None:
    report = asyncio.run(center.check_and_create_deadline_notifications())

    assert report.skipped is True


def test_broker_only_sees_own_challenges(center, sources, clock) -> None:
    from brokerdesk.core.rbac import Actor
    from brokerdesk.models.enums import UserRole
    import uuid

    broker = Actor(user_id=uuid.uuid4(), role=UserRole.broker, broker_id="b-1")
    expiring = clock() + dt.timedelta(hours=6)
    sources.replace_challenges([
        ChallengeSnapshot("c-own", "Meu desafio", expiring, "active", 10, broker_id="b-1"),
        ChallengeSnapshot("c-other", "Outro desafio", expiring, "active", 10, broker_id="b-2"),
    ])

    async def scenario():
        await center.activate(broker)
        await center.check_and_create_deadline_notifications()

    asyncio.run(scenario())

    assert [n.related_id for n in center.notifications] == ["c-own"]


def test_failed_user_actions_leave_the_list_untouched(center, actor, monkeypatch) -> None:
    def unavailable(*_args):
        raise NotificationStoreError("notification_update_failed", reason="connection reset")

    async def scenario():
        await center.activate(actor)
        read = await center.create_notification(_payload("sale-1"))
        await center.create_notification(_payload("sale-2"))
        assert await center.mark_as_read(read.id)
        before = list(center.notifications)

        for name in ("mark_read", "mark_all_read", "dismiss", "dismiss_all_read"):
            monkeypatch.setattr(center._store, name, unavailable)

        actions = [
            center.mark_as_read(before[0].id),
            center.mark_all_as_read(),
            center.delete_notification(before[1].id),
            center.delete_all_read(),
        ]
        for action in actions:
            with pytest.raises(NotificationStoreError):
                await action
        return before

    before = asyncio.run(scenario())

    assert center.notifications == before
    assert center.unread_count == 1
    assert [n.is_read for n in center.notifications] == [False, True]
    assert all(n.dismissed_at is None for n in center.notifications)
