from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from conftest import make_user
from social_api.errors import AlreadyLiked, DuplicateEdge, EmailTaken, Forbidden, NotFound, ValidationError
from social_api.models import Comment, Follow, Like, Notification
from social_api.stores import comments, likes, notifications, posts, social, users
from social_api.stores.feed import assemble_feed

pytestmark = pytest.mark.anyio

T0 = datetime(2024, 1, 1, 12, 0, 0)


async def _count(db, model, *where):
    return await db.scalar(select(func.count()).select_from(model).where(*where))


async def test_duplicate_email_rejected_by_unique_index(db):
    await make_user(db, "Anna", "anna@example.com")
    with pytest.raises(EmailTaken):
        await users.create_user(db, "Other", "anna@example.com", "hash")


async def test_follow_twice_leaves_one_edge(db):
    anna = await make_user(db, "Anna")
    bob = await make_user(db, "Bob")
    post = await posts.create_post(db, bob.id, "uncommitted")

    await social.follow(db, anna.id, bob.id)
    with pytest.raises(DuplicateEdge):
        await social.follow(db, anna.id, bob.id)

    # Only the duplicate insert is undone; earlier work in the transaction stays
    await db.commit()
    assert await _count(db, Follow, Follow.follower_id == anna.id) == 1
    assert await posts.get_post(db, post.id) is not None
    assert await social.is_following(db, anna.id, bob.id)
    assert not await social.is_following(db, bob.id, anna.id)


async def test_unfollow_missing_edge_is_noop(db):
    anna = await make_user(db, "Anna")
    bob = await make_user(db, "Bob")
    await social.unfollow(db, anna.id, bob.id)
    assert await social.count_following(db, anna.id) == 0


async def test_follow_lists_page_by_recency(db):
    anna = await make_user(db, "Anna")
    others = [await make_user(db, f"User{i}") for i in range(5)]
    for i, other in enumerate(others):
        db.add(Follow(follower_id=anna.id, following_id=other.id,
                      created_at=T0 + timedelta(minutes=i)))
    await db.commit()

    page, cursor = await social.get_following(db, anna.id, limit=2)
    assert [u.id for u in page] == [others[4].id, others[3].id]
    assert cursor == others[3].id

    page, cursor = await social.get_following(db, anna.id, cursor=cursor, limit=2)
    assert [u.id for u in page] == [others[2].id, others[1].id]

    page, cursor = await social.get_following(db, anna.id, cursor=cursor, limit=2)
    assert [u.id for u in page] == [others[0].id]
    assert cursor is None

    followers, _ = await social.get_followers(db, others[0].id)
    assert [u.id for u in followers] == [anna.id]

    with pytest.raises(ValidationError):
        await social.get_following(db, anna.id, cursor="not-an-edge")


async def test_feed_orders_by_time_then_id(db):
    anna = await make_user(db, "Anna")
    bob = await make_user(db, "Bob")
    carl = await make_user(db, "Carl")
    await social.follow(db, anna.id, bob.id)

    older = await posts.create_post(db, bob.id, "older", created_at=T0)
    tie_a = await posts.create_post(db, anna.id, "tie a", created_at=T0 + timedelta(hours=1))
    tie_b = await posts.create_post(db, bob.id, "tie b", created_at=T0 + timedelta(hours=1))
    await posts.create_post(db, carl.id, "stranger", created_at=T0 + timedelta(hours=2))
    await db.commit()

    feed = await assemble_feed(db, anna.id)
    tied = sorted([tie_a.id, tie_b.id], reverse=True)
    assert [p.id for p in feed] == tied + [older.id]

    stamps = [p.created_at for p in feed]
    assert stamps == sorted(stamps, reverse=True)


async def test_feed_counts_and_viewer_likes(db):
    anna = await make_user(db, "Anna")
    bob = await make_user(db, "Bob")
    post = await posts.create_post(db, anna.id, "hello")
    await likes.like_post(db, bob.id, post.id)
    await comments.create_comment(db, post.id, bob, "nice")
    await db.commit()

    [view] = await assemble_feed(db, anna.id)
    assert view.likes_count == 1
    assert view.comments_count == 1
    assert view.liked_by_user is False
    assert view.user.name == "Anna"

    bob_view = await posts.get_post_view(db, post.id, bob.id)
    assert bob_view.liked_by_user is True


async def test_feed_for_user_without_posts_is_empty(db):
    anna = await make_user(db, "Anna")
    assert await assemble_feed(db, anna.id) == []


async def test_like_twice_and_missing_post(db):
    anna = await make_user(db, "Anna")
    post = await posts.create_post(db, anna.id, "p")
    await likes.like_post(db, anna.id, post.id)
    await db.commit()

    with pytest.raises(AlreadyLiked):
        await likes.like_post(db, anna.id, post.id)
    assert post.text == "p"
    assert await likes.count_likes(db, post.id) == 1
    assert await likes.has_liked(db, anna.id, post.id)

    with pytest.raises(NotFound):
        await likes.like_post(db, anna.id, "missing")


async def test_delete_post_removes_likes_and_comments(db):
    anna = await make_user(db, "Anna")
    bob = await make_user(db, "Bob")
    post = await posts.create_post(db, anna.id, "p")
    await likes.like_post(db, bob.id, post.id)
    await comments.create_comment(db, post.id, bob, "c")
    await db.commit()

    with pytest.raises(Forbidden):
        await posts.delete_post(db, post.id, bob.id)

    await posts.delete_post(db, post.id, anna.id)
    await db.commit()

    assert await posts.get_post(db, post.id) is None
    assert await _count(db, Like, Like.post_id == post.id) == 0
    assert await _count(db, Comment, Comment.post_id == post.id) == 0


async def test_failed_cascade_leaves_post_and_children(db, monkeypatch):
    anna = await make_user(db, "Anna")
    bob = await make_user(db, "Bob")
    post = await posts.create_post(db, anna.id, "p")
    await likes.like_post(db, bob.id, post.id)
    await comments.create_comment(db, post.id, bob, "c")
    await db.commit()
    post_id, anna_id = post.id, anna.id

    real_delete = posts.delete

    def delete_failing_on_comments(model):
        if model is Comment:
            raise RuntimeError("comments table unavailable")
        return real_delete(model)

    monkeypatch.setattr(posts, "delete", delete_failing_on_comments)
    with pytest.raises(RuntimeError):
        await posts.delete_post(db, post_id, anna_id)
    await db.rollback()

    # The likes were already deleted when the comment step failed
    assert await posts.get_post(db, post_id) is not None
    assert await _count(db, Like, Like.post_id == post_id) == 1
    assert await _count(db, Comment, Comment.post_id == post_id) == 1


async def test_comment_cursor_on_exact_page_boundary(db):
    anna = await make_user(db, "Anna")
    post = await posts.create_post(db, anna.id, "p")
    for i in range(4):
        await comments.create_comment(db, post.id, anna, f"c{i}", created_at=T0 + timedelta(seconds=i))
    await db.commit()

    page, cursor = await comments.list_comments(db, post.id, limit=2)
    assert [c.text for c in page] == ["c3", "c2"]

    page, cursor = await comments.list_comments(db, post.id, cursor=cursor, limit=2)
    assert [c.text for c in page] == ["c1", "c0"]
    assert cursor is not None

    page, cursor = await comments.list_comments(db, post.id, cursor=cursor, limit=2)
    assert page == []
    assert cursor is None


async def test_self_notification_returns_none(db):
    anna = await make_user(db, "Anna")
    result = await notifications.create_notification(db, anna.id, anna.id, "like", "self")
    assert result is None
    assert await _count(db, Notification) == 0

    with pytest.raises(ValidationError):
        await notifications.create_notification(db, anna.id, "x", "poke", "bad")


async def test_notifications_survive_deleted_sender(db):
    anna = await make_user(db, "Anna")
    await notifications.create_notification(db, anna.id, "gone-user", "follow", "hi")
    await db.commit()

    [note] = await notifications.get_notifications(db, anna.id)
    assert note.sender_name == "Unknown User"
    assert note.sender_avatar == ""


async def test_update_user_ignores_unknown_fields(db):
    anna = await make_user(db, "Anna")
    user = await users.update_user(db, anna.id, {"bio": "hi", "email": "x@y.z"})
    assert user.bio == "hi"
    assert user.email == "anna@example.com"

    with pytest.raises(NotFound):
        await users.update_user(db, "missing", {"bio": "x"})
