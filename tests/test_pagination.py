"""Tests for pagination parameters and the paginate helper."""

import pytest

from asset_metadata.db.models import ComponentFirmwareSetModel
from asset_metadata.schemas.pagination import (
    DEFAULT_PAGE_LIMIT,
    MAX_PAGE,
    MAX_PAGE_LIMIT,
    PaginationParams,
)
from asset_metadata.store.pagination import default_order_by, paginate


class TestPaginationParams:
    @pytest.mark.parametrize("limit", [0, -5])
    def test_non_positive_limit_uses_default(self, limit):
        assert PaginationParams(limit=limit).normalized().limit == DEFAULT_PAGE_LIMIT

    def test_limit_is_clamped(self):
        assert PaginationParams(limit=50_000).normalized().limit == MAX_PAGE_LIMIT

    def test_page_below_one_becomes_one(self):
        params = PaginationParams(page=-3, limit=10).normalized()
        assert params.page == 1
        assert params.offset == 0

    def test_page_is_capped(self):
        params = PaginationParams(page=10**20, limit=MAX_PAGE_LIMIT).normalized()
        assert params.page == MAX_PAGE
        assert params.offset < 2**63

    def test_offset(self):
        assert PaginationParams(page=3, limit=25).normalized().offset == 50


class TestPaginate:
    @pytest.fixture
    def sets(self, db_session, clock):
        ids = []
        for i in range(7):
            now = clock()
            row = ComponentFirmwareSetModel(
                name=f"set-{i}", created_at=now, updated_at=now
            )
            db_session.add(row)
            db_session.flush()
            ids.append(row.id)
        db_session.commit()
        return ids

    def test_total_is_the_same_on_every_page(self, db_session, sets):
        query = db_session.query(ComponentFirmwareSetModel)
        order = default_order_by(ComponentFirmwareSetModel)

        seen = []
        for page in (1, 2, 3):
            items, total = paginate(query, PaginationParams(page=page, limit=3), order)
            assert total == 7
            seen.extend(item.id for item in items)

        assert len(seen) == 7
        assert set(seen) == set(sets)

    def test_newest_first(self, db_session, sets):
        items, _ = paginate(
            db_session.query(ComponentFirmwareSetModel),
            PaginationParams(limit=2),
            default_order_by(ComponentFirmwareSetModel),
        )
        assert [item.id for item in items] == [sets[-1], sets[-2]]

    def test_page_past_the_end_is_empty(self, db_session, sets):
        items, total = paginate(
            db_session.query(ComponentFirmwareSetModel),
            PaginationParams(page=10, limit=5),
        )
        assert items == []
        assert total == 7

    def test_huge_page_is_empty(self, db_session, sets):
        items, total = paginate(
            db_session.query(ComponentFirmwareSetModel),
            PaginationParams(page=10**20),
        )
        assert items == []
        assert total == 7

    def test_total_respects_filters(self, db_session, sets):
        query = db_session.query(ComponentFirmwareSetModel).filter(
            ComponentFirmwareSetModel.name == "set-1"
        )
        items, total = paginate(query, PaginationParams())
        assert total == 1
        assert items[0].name == "set-1"
