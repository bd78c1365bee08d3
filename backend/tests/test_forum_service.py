import random

import pytest

from mindspace.models.forum import Comment, ForumValidationError, Post
from mindspace.modules.forum.service import (
    ForumService,
    derive_identity,
    remove_like,
    toggle_like,
)


def _detached_post():
    return Post(
        title="Trouble sleeping lately",
        content="I keep waking up at 3am and cannot get back to sleep.",
        author="Jane",
        avatar="JA",
        category="Sleep Issues",
        likes=0,
        liked_by=[],
    )


async def _create(forum, **overrides):
    fields = {
        "title": "Trouble sleeping lately",
        "content": "I keep waking up at 3am and cannot get back to sleep.",
        "author": "Jane",
        "category": "Sleep Issues",
        "is_anonymous": False,
        "tags": None,
    }
    fields.update(overrides)
    return await forum.create_post(**fields)


# ==================== Identity ====================


def test_derive_identity_named():
    assert derive_identity("jane", False) == ("jane", "JA")
    assert derive_identity("  bob smith ", False) == ("bob smith", "BO")


def test_derive_identity_anonymous_discards_name():
    assert derive_identity("Jane", True) == ("Anonymous", "AN")
    assert derive_identity(None, True) == ("Anonymous", "AN")


# ==================== Like helpers ====================


def test_toggle_twice_restores_state():
    post = _detached_post()
    assert toggle_like(post, "u1") is True
    assert post.likes == 1
    assert post.liked_by == ["u1"]

    assert toggle_like(post, "u1") is False
    assert post.likes == 0
    assert post.liked_by == []


def test_remove_like_is_idempotent():
    post = _detached_post()
    toggle_like(post, "u1")
    toggle_like(post, "u2")

    remove_like(post, "u1")
    remove_like(post, "u1")
    remove_like(post, "never-liked")

    assert post.likes == 1
    assert post.liked_by == ["u2"]


def test_likes_track_membership_under_random_operations():
    post = _detached_post()
    rng = random.Random(1234)
    users = [f"user-{i}" for i in range(5)]

    for _ in range(500):
        user = rng.choice(users)
        if rng.random() < 0.7:
            toggle_like(post, user)
        else:
            remove_like(post, user)
        assert post.likes == len(post.liked_by)
        assert post.likes >= 0


# ==================== Posts ====================


@pytest.mark.asyncio
async def test_create_post_defaults(session):
    forum = ForumService(session)
    post = await _create(forum, tags=[" sleep ", "night"])

    assert len(post.id) == 24
    assert post.avatar == "JA"
    assert post.likes == 0
    assert post.liked_by == []
    assert post.comments == []
    assert post.tags == ["sleep", "night"]
    assert post.is_moderated is False
    assert post.timestamp is not None


@pytest.mark.asyncio
async def test_create_post_rejects_bad_category(session):
    forum = ForumService(session)
    with pytest.raises(ForumValidationError):
        await _create(forum, category="Gaming")


@pytest.mark.asyncio
async def test_list_posts_newest_first(session):
    forum = ForumService(session)
    first = await _create(forum, title="First post of the day")
    second = await _create(forum, title="Second post of the day")

    posts = await forum.list_posts()
    assert [p.id for p in posts] == [second.id, first.id]


@pytest.mark.asyncio
async def test_list_posts_category_filter(session):
    forum = ForumService(session)
    anxious = await _create(forum, category="Anxiety")
    await _create(forum, category="Depression")

    assert [p.id for p in await forum.list_posts(category="Anxiety")] == [anxious.id]
    assert len(await forum.list_posts(category="all")) == 2
    assert await forum.list_posts(category="Not A Category") == []


@pytest.mark.asyncio
async def test_list_posts_search_matches_title_content_and_tags(session):
    forum = ForumService(session)
    by_title = await _create(forum, title="SLEEPLESS before exams", content="x" * 30)
    by_content = await _create(
        forum, title="Need some advice", content="My sleep schedule is a total mess."
    )
    by_tag = await _create(
        forum,
        title="Tired all the time",
        content="Everything feels heavy these days.",
        tags=["Oversleeping"],
    )
    await _create(forum, title="Group project drama", content="Nobody answers my messages.")

    found = {p.id for p in await forum.list_posts(search="sleep")}
    assert found == {by_title.id, by_content.id, by_tag.id}


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(session):
    forum = ForumService(session)
    await _create(forum, title="Completely normal title")

    assert await forum.list_posts(search="%") == []
    assert await forum.list_posts(search="_") == []


@pytest.mark.asyncio
async def test_delete_post_removes_comments(session):
    forum = ForumService(session)
    post = await _create(forum, tags=["sleep"])
    other = await _create(forum)
    await forum.create_comment(post, "Hang in there friend", "Sam")
    await forum.create_comment(other, "Same here honestly", "Lee")

    await forum.delete_post(post)

    assert await forum.get_post(post.id) is None
    assert await forum.list_comments(post.id) == []
    assert len(await forum.list_comments(other.id)) == 1


# ==================== Comments ====================


@pytest.mark.asyncio
async def test_create_comment_links_to_post(session):
    forum = ForumService(session)
    post = await _create(forum)

    comment = await forum.create_comment(post, "  Sending good vibes  ", "Sam")
    assert comment.post_id == post.id
    assert comment.content == "Sending good vibes"
    assert comment.avatar == "SA"

    session.expunge_all()
    reloaded = await forum.get_post(post.id)
    assert [c.id for c in reloaded.comments] == [comment.id]


@pytest.mark.asyncio
async def test_invalid_comment_is_not_persisted(session):
    forum = ForumService(session)
    post = await _create(forum)

    with pytest.raises(ForumValidationError):
        await forum.create_comment(post, "hi", "Sam")

    assert await forum.list_comments(post.id) == []


@pytest.mark.asyncio
async def test_comments_listed_oldest_first(session):
    forum = ForumService(session)
    post = await _create(forum)
    first = await forum.create_comment(post, "First reply here", "Sam")
    second = await forum.create_comment(post, "Second reply here", "Lee")

    comments = await forum.list_comments(post.id)
    assert [c.id for c in comments] == [first.id, second.id]


@pytest.mark.asyncio
async def test_comment_likes_persist(session):
    forum = ForumService(session)
    post = await _create(forum)
    comment = await forum.create_comment(post, "Thanks for sharing", "Sam")

    assert await forum.toggle_comment_like(comment, "u1") is True
    await forum.unlike_comment(comment, "u2")

    session.expunge_all()
    reloaded = await forum.get_comment(comment.id)
    assert isinstance(reloaded, Comment)
    assert reloaded.likes == 1
    assert reloaded.liked_by == ["u1"]


def test_categories_are_static():
    assert ForumService.get_categories()[0] == "Academic Stress"
    assert len(ForumService.get_categories()) == 9
