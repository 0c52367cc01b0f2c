import pytest

from socialcore.domain.common.errors import NotFoundError
from socialcore.domain.notifications import events
from socialcore.domain.notifications.events import (
    Actor,
    PageContext,
    PostContext,
    Skip,
    Target,
)
from socialcore.domain.notifications.models import DispatchSkipped, Notification


def _post(author_id="author", *, page_owner=None, content="Hello world"):
    return PostContext(
        id="post-1",
        author_id=author_id,
        type="page" if page_owner else "user",
        page_id="page-1" if page_owner else None,
        content=content,
        page_owner_id=page_owner,
    )


def test_reaction_goes_to_author_and_page_post_goes_to_owner():
    event = events.PostReaction(actor_id="reader", post_id="post-1")
    assert events.resolve_recipient(event, Target(post=_post())) == "author"
    assert events.resolve_recipient(event, Target(post=_post(page_owner="owner"))) == "owner"


def test_self_action_and_missing_target_are_skipped():
    own = events.PostComment(actor_id="author", post_id="post-1", comment_id="c-1", text="me")
    assert events.resolve_recipient(own, Target(post=_post())) == Skip("self_action")
    assert events.resolve_recipient(own, Target()) == Skip("target_missing")
    follow = events.UserFollow(actor_id="a", target_id="b")
    assert events.resolve_recipient(follow, Target(user_id=None)) == Skip("target_missing")


def test_join_decision_requires_alive_page():
    decision = events.PageJoinDecision(actor_id="owner", page_id="page-1", applicant_id="applicant", approved=True)
    page = PageContext(id="page-1", owner_id="owner", name="Chess Club")
    assert events.resolve_recipient(decision, Target(page=page, user_id="applicant")) == "applicant"
    assert events.resolve_recipient(decision, Target(user_id="applicant")) == Skip("target_missing")


def test_every_event_type_has_rule_and_template():
    for event_type in (
        events.PostReaction,
        events.PostComment,
        events.UserFollow,
        events.PageFollow,
        events.FriendRequest,
        events.FriendAccept,
        events.PageJoinRequest,
        events.PageJoinDecision,
    ):
        assert event_type in events._RECIPIENT_RULES
        assert event_type in events._TEMPLATES


def test_templates_match_stored_types():
    actor = Actor(id="reader", name="Rita", username="rita")
    long_text = "x" * 80

    reaction = events.render(
        events.PostReaction(actor_id="reader", post_id="post-1", reaction="love"),
        actor,
        Target(post=_post(content=long_text)),
    )
    assert reaction.type == "like"
    assert reaction.title == "Rita liked your post"
    assert reaction.content == f'Rita reacted with ❤️ to "{"x" * 50}..."'

    page_reaction = events.render(
        events.PostReaction(actor_id="reader", post_id="post-1"),
        actor,
        Target(post=_post(page_owner="owner")),
    )
    assert page_reaction.type == "page_like"
    assert page_reaction.page_id == "page-1"

    comment = events.render(
        events.PostComment(actor_id="reader", post_id="post-1", comment_id="c-1", text=long_text * 2),
        actor,
        Target(post=_post()),
    )
    assert comment.type == "comment"
    assert comment.comment_id == "c-1"
    assert comment.content == f'Rita: "{"x" * 100}..."'

    accept = events.render(events.FriendAccept(actor_id="reader", requester_id="x"), actor, Target(user_id="x"))
    assert accept.type == "friend_accept"
    assert accept.title == "Rita accepted your friend request"
    assert accept.content == "You and Rita are now friends!"

    follow_back = events.render(
        events.FriendAccept(actor_id="reader", requester_id="x", via="mutual_follow"), actor, Target(user_id="x")
    )
    assert follow_back.type == "friend_accept"
    assert follow_back.title == "Rita followed you back"

    page = PageContext(id="page-1", owner_id="owner", name="Chess Club")
    rejected = events.render(
        events.PageJoinDecision(actor_id="owner", page_id="page-1", applicant_id="reader", approved=False),
        actor,
        Target(page=page, user_id="reader"),
    )
    assert rejected.type == "page_follow"
    assert rejected.title == "Join Request Rejected"


@pytest.fixture
def people(store):
    author = store.add_user("author", name="Ada")
    reader = store.add_user("reader", name="Rita")
    post = store.add_post(author, "A very good post")
    return author, reader, post


@pytest.mark.asyncio
async def test_self_reaction_is_suppressed_and_other_reaction_notifies_author(store, dispatcher, people):
    author, reader, post = people

    skipped = await dispatcher.dispatch(events.PostReaction(actor_id=author, post_id=post))
    assert skipped == DispatchSkipped("self_action")
    assert store.alive_rows("notifications") == []

    created = await dispatcher.dispatch(events.PostReaction(actor_id=reader, post_id=post))
    assert isinstance(created, Notification)
    rows = store.alive_rows("notifications")
    assert len(rows) == 1
    assert rows[0]["user_id"] == author
    assert rows[0]["type"] == "like"
    assert rows[0]["post_id"] == post


@pytest.mark.asyncio
async def test_deleted_post_or_actor_skips(store, dispatcher, people):
    author, reader, post = people
    store.delete("users", reader)
    assert await dispatcher.dispatch(events.PostReaction(actor_id=reader, post_id=post)) == DispatchSkipped(
        "actor_missing"
    )
    store.delete("posts", post)
    assert await dispatcher.dispatch(events.PostReaction(actor_id=author, post_id=post)) == DispatchSkipped(
        "target_missing"
    )
    assert store.alive_rows("notifications") == []


@pytest.mark.asyncio
async def test_dispatch_failure_is_contained(store, dispatcher, notification_repo, people, monkeypatch):
    author, reader, post = people

    async def broken_insert(conn, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(notification_repo, "insert", broken_insert)
    result = await dispatcher.dispatch(events.PostReaction(actor_id=reader, post_id=post))
    assert result == DispatchSkipped("failed")


@pytest.mark.asyncio
async def test_inbox_reads_and_marks(store, dispatcher, people):
    author, reader, post = people
    first = await dispatcher.dispatch(events.PostReaction(actor_id=reader, post_id=post))
    second = await dispatcher.dispatch(
        events.PostComment(actor_id=reader, post_id=post, comment_id=store.add_comment(post, reader, "hi"), text="hi")
    )

    inbox = await dispatcher.list_for_user(author)
    assert [item.id for item in inbox.items] == [second.id, first.id]
    assert inbox.items[0].sender.username == "reader"
    assert (await dispatcher.unread_count(author)).unread_count == 2

    marked = await dispatcher.mark_read(author, [first.id, "not-a-uuid"])
    assert marked.updated == 1
    assert (await dispatcher.mark_read(reader, [second.id])).updated == 0

    opened = await dispatcher.get(author, second.id)
    assert opened.is_read is True
    assert (await dispatcher.unread_count(author)).unread_count == 0

    await dispatcher.delete(author, first.id)
    with pytest.raises(NotFoundError):
        await dispatcher.get(author, first.id)
    with pytest.raises(NotFoundError):
        await dispatcher.delete(reader, second.id)
    assert (await dispatcher.list_for_user(author)).total == 1


@pytest.mark.asyncio
async def test_mark_all_read(store, dispatcher, people):
    author, reader, post = people
    await dispatcher.dispatch(events.PostReaction(actor_id=reader, post_id=post))
    await dispatcher.dispatch(events.UserFollow(actor_id=reader, target_id=author))
    assert (await dispatcher.mark_all_read(author)).updated == 2
    assert (await dispatcher.mark_all_read(author)).updated == 0


@pytest.mark.asyncio
async def test_notifications_of_deleted_sender_are_hidden(store, dispatcher, people):
    author, reader, post = people
    await dispatcher.dispatch(events.UserFollow(actor_id=reader, target_id=author))
    store.delete("users", reader)
    assert (await dispatcher.list_for_user(author)).total == 0
