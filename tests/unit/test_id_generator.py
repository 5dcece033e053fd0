"""Tests for pp_common.id_generator and pp_common.datetime_utils."""

from datetime import UTC, date, datetime

import pytest

from src.pp_common.datetime_utils import days_between, ensure_aware, utc_now, utc_today
from src.pp_common.id_generator import SnowflakeIdGenerator, generate_id


class TestSnowflakeIdGenerator:
    def test_returns_numeric_str(self) -> None:
        result = SnowflakeIdGenerator(node_id=1).next_id()
        assert isinstance(result, str)
        assert result.isdigit()

    def test_unique_ids(self) -> None:
        gen = SnowflakeIdGenerator(node_id=1)
        ids = {gen.next_id() for _ in range(5000)}
        assert len(ids) == 5000

    def test_monotonically_increasing(self) -> None:
        gen = SnowflakeIdGenerator(node_id=1)
        prev = int(gen.next_id())
        for _ in range(100):
            current = int(gen.next_id())
            assert current > prev
            prev = current

    def test_nodes_do_not_collide(self) -> None:
        a = {SnowflakeIdGenerator(node_id=1).next_id() for _ in range(50)}
        b = {SnowflakeIdGenerator(node_id=2).next_id() for _ in range(50)}
        assert a.isdisjoint(b)

    @pytest.mark.parametrize("node_id", [-1, 1024])
    def test_node_id_range(self, node_id: int) -> None:
        with pytest.raises(ValueError):
            SnowflakeIdGenerator(node_id=node_id)

    def test_module_generator(self) -> None:
        assert int(generate_id()) < int(generate_id())


class TestDatetimeUtils:
    def test_utc_now_is_aware_utc(self) -> None:
        assert utc_now().tzinfo == UTC

    def test_utc_today(self) -> None:
        assert utc_today() == datetime.now(UTC).date()

    def test_days_between(self) -> None:
        assert days_between(date(2026, 2, 27), date(2026, 3, 2)) == 3
        assert days_between(date(2026, 3, 2), date(2026, 3, 2)) == 0
        assert days_between(date(2026, 3, 2), date(2026, 3, 1)) == -1

    def test_ensure_aware(self) -> None:
        naive = datetime(2026, 1, 1, 12, 0)
        assert ensure_aware(naive).tzinfo == UTC
        aware = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        assert ensure_aware(aware) is aware
