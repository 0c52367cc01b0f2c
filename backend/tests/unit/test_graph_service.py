import asyncpg
import pytest

from socialcore.domain.common.errors import (
    AlreadyFollowingError,
    AlreadyFriendsError,
    AlreadyRequestedError,
    DuplicateRowError,
    ForbiddenError,
    InternalError,
    InvalidStateError,
    NotFoundError,
    SelfTargetError,
)
from socialcore.domain.social import audit


def _alive_friendships(store, a, b):
    pair = {a, b}
    return [row for row in store.alive_rows("friendships") if {row["user_a_id"], row["user_b_id"]} == pair]


def _following(store, follower, following):
    return bool(store.alive_rows("follows", follower_id=follower, following_id=following))


def _notifications(store, user_id):
    return store.alive_rows("notifications", user_id=user_id)


def _assert_graph_consistent(store):
    """At most one alive friendship per pair; accepted implies both edges."""
    seen = set()
    for row in store.alive_rows("friendships"):
        pair = frozenset((row["user_a_id"], row["user_b_id"]))
        assert pair not in seen
        seen.add(pair)
        if row["status"] == "accepted":
            assert _following(store, row["user_a_id"], row["user_b_id"])
            assert _following(store, row["user_b_id"], row["user_a_id"])


@pytest.fixture
def users(store):
    return store.add_user("alice"), store.add_user("bob"), store.add_user("carol")


@pytest.mark.asyncio
async def test_friend_request_creates_pending_row_follow_and_notification(store, graph_service, users, fake_redis):
    alice, bob, _ = users

    result = await graph_service.send_friend_request(alice, bob)

    assert result.auto_accepted is False
    assert result.friendship.status == "pending"
    rows = _alive_friendships(store, alice, bob)
    assert len(rows) == 1
    assert rows[0]["user_a_id"] == alice
    assert _following(store, alice, bob)
    assert not _following(store, bob, alice)
    received = _notifications(store, bob)
    assert [row["type"] for row in received] == ["friend_request"]
    assert received[0]["sender_id"] == alice
    assert _notifications(store, alice) == []
    events = await fake_redis.xrange(audit.FRIENDSHIP_STREAM)
    assert events[-1][1]["event"] == "friendship.requested"


@pytest.mark.asyncio
async def test_reverse_request_auto_accepts_original(store, graph_service, users):
    alice, bob, _ = users
    first = await graph_service.send_friend_request(alice, bob)

    second = await graph_service.send_friend_request(bob, alice)

    assert second.auto_accepted is True
    assert second.friendship.id == first.friendship.id
    assert second.friendship.status == "accepted"
    rows = _alive_friendships(store, alice, bob)
    assert len(rows) == 1
    assert _following(store, alice, bob) and _following(store, bob, alice)
    assert [row["type"] for row in _notifications(store, alice)] == ["friend_accept"]
    _assert_graph_consistent(store)


@pytest.mark.asyncio
async def test_duplicate_requests_conflict(store, graph_service, users):
    alice, bob, _ = users
    await graph_service.send_friend_request(alice, bob)
    with pytest.raises(AlreadyRequestedError):
        await graph_service.send_friend_request(alice, bob)
    await graph_service.send_friend_request(bob, alice)
    with pytest.raises(AlreadyFriendsError):
        await graph_service.send_friend_request(alice, bob)
    with pytest.raises(SelfTargetError):
        await graph_service.send_friend_request(alice, alice)


@pytest.mark.asyncio
async def test_request_to_deleted_account_is_not_found(store, graph_service, users):
    alice, bob, _ = users
    store.delete("users", bob)
    with pytest.raises(NotFoundError) as exc_info:
        await graph_service.send_friend_request(alice, bob)
    assert exc_info.value.reason == "user_not_found"
    assert _alive_friendships(store, alice, bob) == []


@pytest.mark.asyncio
async def test_accept_by_receiver_only(store, graph_service, users):
    alice, bob, carol = users
    sent = await graph_service.send_friend_request(alice, bob)

    with pytest.raises(ForbiddenError):
        await graph_service.accept_friend_request(sent.friendship.id, alice)
    with pytest.raises(ForbiddenError):
        await graph_service.accept_friend_request(sent.friendship.id, carol)

    accepted = await graph_service.accept_friend_request(sent.friendship.id, bob)
    assert accepted.status == "accepted"
    assert _following(store, bob, alice)
    with pytest.raises(InvalidStateError):
        await graph_service.accept_friend_request(sent.friendship.id, bob)
    _assert_graph_consistent(store)


@pytest.mark.asyncio
async def test_reject_and_cancel_keep_follow_edge(store, graph_service, users):
    alice, bob, carol = users
    to_bob = await graph_service.send_friend_request(alice, bob)
    to_carol = await graph_service.send_friend_request(alice, carol)

    with pytest.raises(ForbiddenError):
        await graph_service.reject_friend_request(to_bob.friendship.id, alice)
    await graph_service.reject_friend_request(to_bob.friendship.id, bob)
    with pytest.raises(ForbiddenError):
        await graph_service.cancel_friend_request(to_carol.friendship.id, carol)
    await graph_service.cancel_friend_request(to_carol.friendship.id, alice)

    assert _alive_friendships(store, alice, bob) == []
    assert _alive_friendships(store, alice, carol) == []
    assert _following(store, alice, bob)
    assert _following(store, alice, carol)
    with pytest.raises(NotFoundError):
        await graph_service.reject_friend_request(to_bob.friendship.id, bob)

    again = await graph_service.send_friend_request(alice, bob)
    assert again.friendship.status == "pending"


@pytest.mark.asyncio
async def test_stale_rejected_row_is_replaced(store, graph_service, users):
    alice, bob, _ = users
    stale = store.add_friendship(alice, bob, status="rejected")

    result = await graph_service.send_friend_request(bob, alice)

    assert result.friendship.status == "pending"
    assert store.get("friendships", stale)["deleted_at"] is not None
    assert len(_alive_friendships(store, alice, bob)) == 1


@pytest.mark.asyncio
async def test_unfriend_removes_friendship_and_both_edges(store, graph_service, users):
    alice, bob, _ = users
    await graph_service.send_friend_request(alice, bob)
    await graph_service.send_friend_request(bob, alice)

    await graph_service.unfriend(alice, bob)

    assert _alive_friendships(store, alice, bob) == []
    assert not _following(store, alice, bob)
    assert not _following(store, bob, alice)
    with pytest.raises(NotFoundError) as exc_info:
        await graph_service.unfriend(alice, bob)
    assert exc_info.value.reason == "not_friends"


@pytest.mark.asyncio
async def test_unfriend_pending_request_is_not_found(store, graph_service, users):
    alice, bob, _ = users
    await graph_service.send_friend_request(alice, bob)
    with pytest.raises(NotFoundError):
        await graph_service.unfriend(alice, bob)
    assert len(_alive_friendships(store, alice, bob)) == 1


@pytest.mark.asyncio
async def test_mutual_follow_creates_friendship(store, graph_service, graph_repo, users):
    alice, bob, _ = users

    first = await graph_service.follow(alice, bob)
    assert first.friendship_created is False
    second = await graph_service.follow(bob, alice)

    assert second.friendship_created is True
    rows = _alive_friendships(store, alice, bob)
    assert len(rows) == 1 and rows[0]["status"] == "accepted"
    assert tuple(sorted((alice, bob))) in graph_repo.locked_pairs
    by_type = {row["type"]: row for row in _notifications(store, alice)}
    assert sorted(by_type) == ["follow", "friend_accept"]
    assert by_type["friend_accept"]["title"] == "Bob followed you back"
    _assert_graph_consistent(store)


@pytest.mark.asyncio
async def test_mutual_follow_leaves_pending_request_alone(store, graph_service, users):
    alice, bob, _ = users
    await graph_service.send_friend_request(alice, bob)

    result = await graph_service.follow(bob, alice)

    assert result.friendship_created is False
    rows = _alive_friendships(store, alice, bob)
    assert [row["status"] for row in rows] == ["pending"]


@pytest.mark.asyncio
async def test_follow_guards(store, graph_service, users):
    alice, bob, _ = users
    await graph_service.follow(alice, bob)
    with pytest.raises(AlreadyFollowingError):
        await graph_service.follow(alice, bob)
    with pytest.raises(SelfTargetError):
        await graph_service.follow(alice, alice)
    store.delete("users", bob)
    with pytest.raises(NotFoundError):
        await graph_service.unfollow(bob, alice)


@pytest.mark.asyncio
async def test_unfollow_breaks_accepted_friendship(store, graph_service, users):
    alice, bob, _ = users
    await graph_service.follow(alice, bob)
    await graph_service.follow(bob, alice)

    result = await graph_service.unfollow(alice, bob)

    assert result.following is False
    assert result.friendship_removed is True
    assert _alive_friendships(store, alice, bob) == []
    assert _following(store, bob, alice)
    with pytest.raises(NotFoundError) as exc_info:
        await graph_service.unfollow(alice, bob)
    assert exc_info.value.reason == "not_following"


@pytest.mark.asyncio
async def test_lost_insert_race_is_rechecked(store, graph_service, graph_repo, users, monkeypatch):
    alice, bob, _ = users
    # A concurrent request from bob committed after alice's read.
    store.add_friendship(bob, alice, status="pending")
    real_find = graph_repo.find_friendship
    calls = {"n": 0}

    async def stale_find(conn, user_id, other_id, *, for_update=False):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return await real_find(conn, user_id, other_id, for_update=for_update)

    monkeypatch.setattr(graph_repo, "find_friendship", stale_find)

    result = await graph_service.send_friend_request(alice, bob)

    assert result.auto_accepted is True
    rows = _alive_friendships(store, alice, bob)
    assert len(rows) == 1 and rows[0]["status"] == "accepted"
    _assert_graph_consistent(store)


@pytest.mark.asyncio
async def test_retries_are_bounded(store, graph_service, graph_repo, users, monkeypatch):
    alice, bob, _ = users

    async def always_conflict(conn, follower_id, following_id):
        raise DuplicateRowError("follow_exists")

    monkeypatch.setattr(graph_repo, "insert_follow", always_conflict)
    with pytest.raises(DuplicateRowError):
        await graph_service.follow(alice, bob)
    assert not _following(store, alice, bob)


@pytest.mark.asyncio
async def test_page_follow_round_trip(store, graph_service, users):
    alice, bob, _ = users
    page = store.add_page(bob, "Bob's Bakery")

    response = await graph_service.follow_page(alice, page)
    assert response.following is True
    assert [row["type"] for row in _notifications(store, bob)] == ["page_follow"]
    with pytest.raises(AlreadyFollowingError):
        await graph_service.follow_page(alice, page)

    await graph_service.unfollow_page(alice, page)
    assert store.alive_rows("page_followers", user_id=alice) == []
    with pytest.raises(NotFoundError):
        await graph_service.unfollow_page(alice, page)


@pytest.mark.asyncio
async def test_following_deleted_page_is_not_found(store, graph_service, users):
    alice, bob, _ = users
    page = store.add_page(bob, "Gone")
    store.delete("pages", page)
    with pytest.raises(NotFoundError) as exc_info:
        await graph_service.follow_page(alice, page)
    assert exc_info.value.reason == "page_not_found"


@pytest.mark.asyncio
async def test_status_views(store, graph_service, users):
    alice, bob, _ = users
    assert (await graph_service.get_status(alice, bob)).status == "none"
    await graph_service.send_friend_request(alice, bob)

    mine = await graph_service.get_status(alice, bob)
    theirs = await graph_service.get_status(bob, alice)
    assert (mine.status, mine.perspective) == ("pending", "sent")
    assert (theirs.status, theirs.perspective) == ("pending", "received")

    follow = await graph_service.follow_status(alice, bob)
    assert follow.is_following is True
    assert follow.is_followed_by is False
    assert follow.is_mutual is False


@pytest.mark.asyncio
async def test_lists_hide_deleted_accounts(store, graph_service, users):
    alice, bob, carol = users
    for other in (bob, carol):
        await graph_service.follow(alice, other)
        await graph_service.follow(other, alice)

    friends = await graph_service.list_friends(alice)
    assert {row.user.id for row in friends.items} == {bob, carol}
    assert friends.pagination.total == 2

    store.delete("users", carol)
    friends = await graph_service.list_friends(alice)
    assert [row.user.id for row in friends.items] == [bob]
    following = await graph_service.list_following(alice)
    assert [row.user.id for row in following.items] == [bob]
    followers = await graph_service.list_followers(alice)
    assert followers.pagination.total == 1


@pytest.mark.asyncio
async def test_friend_search_and_paging(store, graph_service, users):
    alice, bob, carol = users
    for other in (bob, carol):
        store.add_friendship(alice, other)
        store.add_follow(alice, other)
        store.add_follow(other, alice)

    found = await graph_service.list_friends(alice, search="car")
    assert [row.user.username for row in found.items] == ["carol"]

    first_page = await graph_service.list_friends(alice, page=1, limit=1)
    assert len(first_page.items) == 1
    assert first_page.pagination.has_more is True
    assert first_page.pagination.total_pages == 2


@pytest.mark.asyncio
async def test_mutual_friends_and_request_lists(store, graph_service, users):
    alice, bob, carol = users
    store.add_friendship(alice, carol)
    store.add_friendship(bob, carol)
    await graph_service.send_friend_request(alice, bob)

    mutual = await graph_service.list_mutual_friends(alice, bob)
    assert [account.id for account in mutual] == [carol]

    received = await graph_service.list_received_requests(bob)
    sent = await graph_service.list_sent_requests(alice)
    assert [row.user.id for row in received] == [alice]
    assert [row.user.id for row in sent] == [bob]
    assert await graph_service.list_received_requests(alice) == []


def _fail_on_call(method, failing_call):
    calls = {"n": 0}

    async def wrapper(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == failing_call:
            raise asyncpg.PostgresError("connection reset")
        return await method(*args, **kwargs)

    return wrapper


@pytest.mark.asyncio
async def test_accept_failure_rolls_back_every_change(store, graph_service, graph_repo, users, monkeypatch):
    alice, bob, _ = users
    friendship_id = store.add_friendship(alice, bob, status="pending")
    monkeypatch.setattr(graph_repo, "ensure_follow", _fail_on_call(graph_repo.ensure_follow, 2))

    with pytest.raises(InternalError) as exc_info:
        await graph_service.accept_friend_request(friendship_id, bob)

    assert exc_info.value.reason == "store_failure"
    assert [row["status"] for row in _alive_friendships(store, alice, bob)] == ["pending"]
    assert store.alive_rows("follows") == []
    assert _notifications(store, alice) == []


@pytest.mark.asyncio
async def test_unfriend_failure_keeps_friendship_and_edges(store, graph_service, graph_repo, users, monkeypatch):
    alice, bob, _ = users
    await graph_service.follow(alice, bob)
    await graph_service.follow(bob, alice)
    monkeypatch.setattr(graph_repo, "remove_follow", _fail_on_call(graph_repo.remove_follow, 2))

    with pytest.raises(InternalError):
        await graph_service.unfriend(alice, bob)

    assert [row["status"] for row in _alive_friendships(store, alice, bob)] == ["accepted"]
    assert _following(store, alice, bob)
    assert _following(store, bob, alice)
    _assert_graph_consistent(store)
