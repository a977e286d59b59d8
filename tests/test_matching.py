from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from transconnect.exceptions import NotFound, ValidationError
from transconnect.models.base import utcnow
from transconnect.models.user import UserType
from transconnect.services.matching import MatchingService
from transconnect.services.messaging import MessagingService


async def test_customer_feed_only_lists_escorts_in_rank_order(db, make_user):
    viewer = await make_user("Max")
    now = utcnow()
    await make_user("OtherCustomer", is_online=True, is_premium=True)
    plain_old = await make_user("Plain", UserType.ESCORT, last_seen=now - timedelta(days=2))
    plain_recent = await make_user("Recent", UserType.ESCORT, last_seen=now - timedelta(hours=1))
    online = await make_user("Online", UserType.ESCORT, is_online=True)
    premium = await make_user("Premium", UserType.ESCORT, is_premium=True)
    premium_online = await make_user("PremiumOnline", UserType.ESCORT, is_premium=True, is_online=True)
    await make_user("Blocked", UserType.ESCORT, is_premium=True, is_blocked=True)

    feed = await MatchingService(db).recommended(viewer, limit=20)

    assert [u.id for u in feed] == [
        premium_online.id,
        premium.id,
        online.id,
        plain_recent.id,
        plain_old.id,
    ]


async def test_escort_feed_lists_everyone_but_self(db, make_user):
    escort = await make_user("Lena", UserType.ESCORT)
    other_escort = await make_user("Sofia", UserType.ESCORT)
    customer = await make_user("Max")

    feed = await MatchingService(db).recommended(escort, limit=20)

    assert {u.id for u in feed} == {other_escort.id, customer.id}


async def test_feed_respects_limit(db, make_user):
    viewer = await make_user("Max")
    for i in range(5):
        await make_user(f"Escort{i}", UserType.ESCORT)

    assert len(await MatchingService(db).recommended(viewer, limit=3)) == 3


async def test_decided_targets_leave_the_feed(db, make_user):
    viewer = await make_user("Max")
    liked = await make_user("Liked", UserType.ESCORT)
    passed = await make_user("Passed", UserType.ESCORT)
    fresh = await make_user("Fresh", UserType.ESCORT)
    service = MatchingService(db)

    await service.record_decision(viewer.id, liked.id, is_like=True)
    await service.record_decision(viewer.id, passed.id, is_like=False)

    assert [u.id for u in await service.recommended(viewer, limit=20)] == [fresh.id]


async def test_one_sided_like_is_not_mutual(db, make_user):
    max_ = await make_user("Max")
    lena = await make_user("Lena", UserType.ESCORT)
    service = MatchingService(db)

    match = await service.record_decision(max_.id, lena.id, is_like=True)

    assert match.is_like is True
    assert match.is_mutual is False
    assert await service.rooms.find_room(max_.id, lena.id) is None


async def test_mutual_like_flags_both_edges_and_opens_room(db, make_user):
    max_ = await make_user("Max")
    lena = await make_user("Lena", UserType.ESCORT)
    service = MatchingService(db)

    first = await service.record_decision(max_.id, lena.id, is_like=True)
    second = await service.record_decision(lena.id, max_.id, is_like=True)

    assert second.is_mutual is True
    await db.refresh(first)
    assert first.is_mutual is True

    messaging = MessagingService(db)
    max_rooms = await messaging.list_rooms(max_.id)
    lena_rooms = await messaging.list_rooms(lena.id)
    assert len(max_rooms) == 1
    assert len(lena_rooms) == 1
    assert max_rooms[0].id == lena_rooms[0].id
    assert max_rooms[0].other_user.id == lena.id
    assert max_rooms[0].last_message is None


async def test_like_then_pass_is_not_mutual(db, make_user):
    max_ = await make_user("Max")
    lena = await make_user("Lena", UserType.ESCORT)
    service = MatchingService(db)

    await service.record_decision(max_.id, lena.id, is_like=True)
    passed = await service.record_decision(lena.id, max_.id, is_like=False)

    assert passed.is_mutual is False
    assert await service.rooms.find_room(max_.id, lena.id) is None


async def test_re_swipe_is_rejected(db, make_user):
    max_ = await make_user("Max")
    lena = await make_user("Lena", UserType.ESCORT)
    service = MatchingService(db)
    await service.record_decision(max_.id, lena.id, is_like=False)

    with pytest.raises(ValidationError):
        await service.record_decision(max_.id, lena.id, is_like=True)

    edge = await service.matches.get_edge(max_.id, lena.id)
    assert edge.is_like is False


async def test_swipe_on_self_is_rejected(db, make_user):
    max_ = await make_user("Max")
    with pytest.raises(ValidationError):
        await MatchingService(db).record_decision(max_.id, max_.id, is_like=True)


async def test_swipe_on_unknown_or_blocked_user_is_not_found(db, make_user):
    max_ = await make_user("Max")
    blocked = await make_user("Blocked", UserType.ESCORT, is_blocked=True)
    service = MatchingService(db)

    with pytest.raises(NotFound):
        await service.record_decision(max_.id, 9999, is_like=True)
    with pytest.raises(NotFound):
        await service.record_decision(max_.id, blocked.id, is_like=True)


async def test_liked_matches_only_lists_likes(db, make_user):
    max_ = await make_user("Max")
    lena = await make_user("Lena", UserType.ESCORT)
    sofia = await make_user("Sofia", UserType.ESCORT)
    service = MatchingService(db)

    await service.record_decision(max_.id, lena.id, is_like=True)
    await service.record_decision(max_.id, sofia.id, is_like=False)

    liked = await service.liked_matches(max_.id)
    assert [m.target_user.id for m in liked] == [lena.id]


async def test_public_escorts_hide_customers_and_blocked(db, make_user):
    await make_user("Max")
    lena = await make_user("Lena", UserType.ESCORT)
    await make_user("Blocked", UserType.ESCORT, is_blocked=True)

    assert [u.id for u in await MatchingService(db).public_escorts(limit=20)] == [lena.id]


async def test_failed_room_creation_leaves_pair_unsettled_until_retry(session_factory, make_user, monkeypatch):
    max_ = await make_user("Max")
    lena = await make_user("Lena", UserType.ESCORT)

    async def lost_connection(user_a, user_b):
        raise OperationalError("INSERT INTO chat_rooms", {}, Exception("connection lost"))

    async with session_factory() as session:
        service = MatchingService(session)
        await service.record_decision(max_.id, lena.id, is_like=True)
        monkeypatch.setattr(service.rooms, "get_or_create_room", lost_connection)
        with pytest.raises(OperationalError):
            await service.record_decision(lena.id, max_.id, is_like=True)

    # Neither half of the settlement was committed
    async with session_factory() as session:
        service = MatchingService(session)
        edges = [
            await service.matches.get_edge(max_.id, lena.id),
            await service.matches.get_edge(lena.id, max_.id),
        ]
        assert [(edge.is_like, edge.is_mutual) for edge in edges] == [(True, False), (True, False)]
        assert await service.rooms.find_room(max_.id, lena.id) is None

        with pytest.raises(ValidationError):
            await service.record_decision(lena.id, max_.id, is_like=True)

        for edge in edges:
            await session.refresh(edge)
        assert all(edge.is_mutual for edge in edges)
        assert await service.rooms.find_room(max_.id, lena.id) is not None
