"""Tests for slug derivation and the Publication Store."""
from datetime import datetime, timedelta

import pytest

from app.models import Post, PostStatus
from app.services import post_store
from app.services.post_store import PostData, slugify

BASE_TIME = datetime(2025, 1, 1, 12, 0, 0)


def make_post(post_id, title, minutes=0, status=PostStatus.PUBLISHED.value, html="<p>Hello</p>"):
    return PostData(
        id=post_id,
        title=title,
        slug=slugify(title),
        html_content=html,
        publish_date=BASE_TIME + timedelta(minutes=minutes),
        status=status,
    )


def snapshot(db):
    rows = db.query(Post).order_by(Post.id).all()
    return [
        (r.id, r.title, r.slug, r.html_content, r.publish_date, r.status, r.drive_file_id)
        for r in rows
    ]


class TestSlugify:
    @pytest.mark.parametrize("title,expected", [
        ("My First Post!", "my-first-post"),
        ("  Hello,   World  ", "hello-world"),
        ("---Already--Dashed---", "already-dashed"),
        ("Python 3.12 Release Notes", "python-3-12-release-notes"),
        ("Café & Crème", "caf-cr-me"),
        ("!!!", ""),
        ("", ""),
    ])
    def test_examples(self, title, expected):
        assert slugify(title) == expected

    def test_deterministic(self):
        assert slugify("Same Title Twice") == slugify("Same Title Twice")

    @pytest.mark.parametrize("title", ["A  B", "x--y", "-lead and trail-", "MiXeD_case.Title"])
    def test_output_shape(self, title):
        slug = slugify(title)
        assert slug == slug.lower()
        assert "--" not in slug
        assert not slug.startswith("-") and not slug.endswith("-")
        assert all(c.isalnum() or c == "-" for c in slug)


class TestUpsert:
    def test_insert_sets_all_fields(self, db):
        post = post_store.upsert_post(db, make_post("doc-1", "My First Post!"))

        assert post.id == "doc-1"
        assert post.drive_file_id == "doc-1"
        assert post.slug == "my-first-post"
        assert post.status == "published"

    def test_upsert_twice_is_idempotent(self, db):
        data = make_post("doc-1", "My First Post!")

        post_store.upsert_post(db, data)
        once = snapshot(db)
        post_store.upsert_post(db, data)

        assert snapshot(db) == once
        assert db.query(Post).count() == 1

    def test_reprocessing_overwrites(self, db):
        post_store.upsert_post(db, make_post("doc-1", "Old Title", html="<p>old</p>"))
        post_store.upsert_post(db, make_post("doc-1", "New Title", minutes=5, html="<p>new</p>"))

        post = post_store.get_post(db, "doc-1")
        assert db.query(Post).count() == 1
        assert post.title == "New Title"
        assert post.slug == "new-title"
        assert post.html_content == "<p>new</p>"


class TestQueries:
    def test_list_published_newest_first_excludes_drafts(self, db):
        post_store.upsert_post(db, make_post("doc-old", "Older", minutes=0))
        post_store.upsert_post(db, make_post("doc-new", "Newer", minutes=10))
        post_store.upsert_post(db, make_post("doc-draft", "Draft", minutes=20, status=PostStatus.DRAFT.value))

        posts = post_store.list_published_posts(db)

        assert [p.id for p in posts] == ["doc-new", "doc-old"]

    def test_get_by_slug(self, db):
        post_store.upsert_post(db, make_post("doc-1", "My First Post!"))

        assert post_store.get_post_by_slug(db, "my-first-post").id == "doc-1"
        assert post_store.get_post_by_slug(db, "unknown-slug") is None

    def test_slug_collision_latest_publish_wins(self, db):
        post_store.upsert_post(db, make_post("doc-a", "Weekly Notes", minutes=0))
        post_store.upsert_post(db, make_post("doc-b", "Weekly  Notes!", minutes=30))

        assert post_store.get_post_by_slug(db, "weekly-notes").id == "doc-b"

    def test_rows_without_publish_date_sort_last(self, db):
        db.add(Post(id="doc-undated", title="Undated", slug="weekly-notes", status=PostStatus.PUBLISHED.value))
        db.commit()
        post_store.upsert_post(db, make_post("doc-dated", "Weekly Notes"))

        assert [p.id for p in post_store.list_published_posts(db)] == ["doc-dated", "doc-undated"]
        assert post_store.get_post_by_slug(db, "weekly-notes").id == "doc-dated"
