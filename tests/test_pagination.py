"""Tests for cursor tokens, page-size clamping and repository pagination."""

import base64
from datetime import timedelta

import pytest

from app.config import FEED_DEFAULT_LIMIT, FEED_MAX_LIMIT
from app.errors import DomainError
from app.pagination import clamp_limit, decode_cursor, encode_cursor
from app.repositories import PostRepository
from factories import BASE_TIME, make_post


class TestCursorTokens:
    def test_decode_returns_position(self):
        cursor = encode_cursor(BASE_TIME, "abc-123")
        assert decode_cursor(cursor) == (BASE_TIME, "abc-123")

    def test_cursor_is_url_safe(self):
        cursor = encode_cursor(BASE_TIME, "abc-123")
        assert "+" not in cursor and "/" not in cursor

    @pytest.mark.parametrize("cursor", [
        "not base64 at all!",
        base64.urlsafe_b64encode(b"no-separator").decode(),
        base64.urlsafe_b64encode(b"yesterday|abc").decode(),
        base64.urlsafe_b64encode(b"2024-01-01T00:00:00|").decode(),
    ])
    def test_malformed_cursor_is_validation_error(self, cursor):
        with pytest.raises(DomainError) as exc_info:
            decode_cursor(cursor)
        assert exc_info.value.code == "VALIDATION_ERROR"
        assert exc_info.value.status_code == 422


class TestClampLimit:
    def test_default(self):
        assert clamp_limit() == FEED_DEFAULT_LIMIT

    def test_bounds(self):
        assert clamp_limit(0) == 1
        assert clamp_limit(-5) == 1
        assert clamp_limit(FEED_MAX_LIMIT + 100) == FEED_MAX_LIMIT
        assert clamp_limit(7) == 7


async def collect_all(repo, viewer_id, limit):
    ids, cursor, pages = [], None, 0
    while True:
        page = await repo.list_page(viewer_id, cursor, limit)
        ids.extend(item.id for item in page.items)
        pages += 1
        if not page.has_more:
            assert page.next_cursor is None
            return ids, pages
        assert page.next_cursor
        cursor = page.next_cursor


class TestPostRepositoryPagination:
    async def test_pages_cover_every_visible_post_once(self, db, alice):
        # groups of three share a timestamp so the id tie-break matters
        expected = []
        for i in range(20):
            created = BASE_TIME - timedelta(minutes=i // 3)
            expected.append((created, await make_post(db, alice, f"post {i}", created_at=created)))
        expected.sort(key=lambda pair: (pair[0], pair[1]), reverse=True)

        ids, pages = await collect_all(PostRepository(db), None, 6)

        assert ids == [post_id for _, post_id in expected]
        assert len(set(ids)) == 20
        assert pages == 4

    async def test_identical_timestamps_ordered_by_id(self, db, alice):
        for post_id in ("a", "c", "b"):
            await make_post(db, alice, post_id, created_at=BASE_TIME, post_id=post_id)

        first = await PostRepository(db).list_page(None, None, 2)
        second = await PostRepository(db).list_page(None, first.next_cursor, 2)

        assert [p.id for p in first.items] == ["c", "b"]
        assert first.has_more is True
        assert [p.id for p in second.items] == ["a"]
        assert second.has_more is False

    async def test_exact_multiple_of_limit_has_no_extra_page(self, db, alice):
        for i in range(4):
            await make_post(db, alice, created_at=BASE_TIME - timedelta(minutes=i))

        first = await PostRepository(db).list_page(None, None, 2)
        second = await PostRepository(db).list_page(None, first.next_cursor, 2)

        assert first.has_more is True
        assert len(second.items) == 2
        assert second.has_more is False
        assert second.next_cursor is None

    async def test_insert_during_paging_does_not_shift_pages(self, db, alice):
        for i in range(4):
            await make_post(db, alice, created_at=BASE_TIME - timedelta(minutes=i))
        repo = PostRepository(db)
        first = await repo.list_page(None, None, 2)

        await make_post(db, alice, "newer", created_at=BASE_TIME + timedelta(minutes=5))
        second = await repo.list_page(None, first.next_cursor, 2)

        seen = {p.id for p in first.items}
        assert not seen & {p.id for p in second.items}
        assert len(second.items) == 2

    async def test_visibility(self, db, alice, bob):
        public = await make_post(db, alice, "public", created_at=BASE_TIME)
        alice_private = await make_post(db, alice, "mine", is_public=False,
                                        created_at=BASE_TIME - timedelta(minutes=1))
        bob_private = await make_post(db, bob, "bob's", is_public=False,
                                      created_at=BASE_TIME - timedelta(minutes=2))
        repo = PostRepository(db)

        anonymous, _ = await collect_all(repo, None, 10)
        as_alice, _ = await collect_all(repo, alice, 10)
        as_bob, _ = await collect_all(repo, bob, 10)

        assert anonymous == [public]
        assert as_alice == [public, alice_private]
        assert as_bob == [public, bob_private]

    async def test_malformed_cursor_rejected(self, db):
        with pytest.raises(DomainError):
            await PostRepository(db).list_page(None, "garbage", 5)

    async def test_page_items_carry_author(self, db, alice):
        await make_post(db, alice)
        page = await PostRepository(db).list_page(None, None, 5)
        author = page.items[0].author
        assert (author.id, author.first_name, author.last_name) == (alice, "Alice", "Anders")
