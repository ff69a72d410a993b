"""Tests for TableRepository and repository utilities."""

import asyncio
from unittest.mock import patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from core.wide_event import get_wide_event
from repositories.table_repository import TableRepository, get_table
from repositories.utils import log_slow_query

pytestmark = pytest.mark.integration


@pytest.fixture
def repo(db_session: AsyncSession) -> TableRepository:
    return TableRepository(db_session, get_table("articles"))


class TestGetTable:
    def test_registered_table(self):
        assert get_table("articles").name == "articles"

    def test_unknown_table(self):
        with pytest.raises(LookupError, match="not registered"):
            get_table("nope")

    def test_unknown_pk_column(self, db_session: AsyncSession):
        with pytest.raises(LookupError, match="has no column 'uuid'"):
            TableRepository(db_session, get_table("articles"), pk_field="uuid")


class TestTableRepository:
    async def test_column_names(self, repo: TableRepository):
        assert {"id", "title", "slug", "published"} <= set(repo.column_names)
        assert repo.pk_column.name == "id"

    async def test_create_applies_defaults(self, repo: TableRepository):
        row = await repo.create({"title": "Hello", "slug": "hello"})

        assert row["id"] is not None
        assert row["published"] is False
        assert row["created_at"] is not None

    async def test_create_with_columns(self, repo: TableRepository):
        row = await repo.create({"title": "Hello", "slug": "hello"}, ["id", "slug"])
        assert set(row) == {"id", "slug"}

    async def test_get(self, repo: TableRepository):
        created = await repo.create({"title": "Hello", "slug": "hello"})
        assert (await repo.get(created["id"]))["title"] == "Hello"

    async def test_get_missing(self, repo: TableRepository):
        assert await repo.get(123) is None

    async def test_list_orders_by_pk_and_pages(self, repo: TableRepository):
        for i in range(5):
            await repo.create({"title": f"T{i}", "slug": f"t-{i}"})

        page = await repo.list(limit=2, offset=1, columns=["slug"])

        assert page == [{"slug": "t-1"}, {"slug": "t-2"}]

    async def test_count(self, repo: TableRepository):
        assert await repo.count() == 0
        await repo.create({"title": "A", "slug": "a"})
        await repo.create({"title": "B", "slug": "b"})
        assert await repo.count() == 2

    async def test_update(self, repo: TableRepository):
        created = await repo.create({"title": "Old", "slug": "old"})
        updated = await repo.update(created["id"], {"title": "New"})
        assert updated["title"] == "New"
        assert updated["slug"] == "old"

    async def test_update_missing(self, repo: TableRepository):
        assert await repo.update(999, {"title": "New"}) is None

    async def test_delete(self, repo: TableRepository):
        created = await repo.create({"title": "Bye", "slug": "bye"})
        assert await repo.delete(created["id"]) is True
        assert await repo.get(created["id"]) is None
        assert await repo.delete(created["id"]) is False

    async def test_non_integer_pk(self, db_session: AsyncSession):
        await TableRepository(db_session, get_table("articles")).create(
            {"title": "By slug", "slug": "by-slug"}
        )
        repo = TableRepository(db_session, get_table("articles"), pk_field="slug")

        assert (await repo.get("by-slug"))["title"] == "By slug"
        assert await repo.delete("by-slug") is True


@pytest.mark.unit
class TestLogSlowQuery:
    async def test_returns_result(self):
        @log_slow_query("test.fast")
        async def fast():
            return 42

        assert await fast() == 42

    async def test_slow_query_logged(self):
        @log_slow_query("test.slow")
        async def slow():
            await asyncio.sleep(0)
            return "done"

        with (
            patch("repositories.utils.SLOW_QUERY_THRESHOLD_MS", -1),
            patch("repositories.utils.logger") as mock_logger,
        ):
            assert await slow() == "done"

        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args.kwargs["operation"] == "test.slow"
        assert get_wide_event()["db_slow_query"] is True

    async def test_error_recorded_and_reraised(self):
        @log_slow_query("test.error")
        async def broken():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await broken()

        event = get_wide_event()
        assert event["db_query_error"] is True
        assert event["db_operation"] == "test.error"
        assert event["db_error_type"] == "ValueError"
