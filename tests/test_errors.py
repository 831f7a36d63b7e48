import pytest
from sqlalchemy.exc import OperationalError

from viewerstats.core import QueryFailedError, StoreNotInitializedError, store_errors
from viewerstats.core.database import build_engine


def test_missing_table_maps_to_not_initialized():
    with pytest.raises(StoreNotInitializedError) as excinfo:
        with store_errors("Failed to query."):
            raise OperationalError("SELECT 1", {}, Exception("no such table: competitions"))

    assert excinfo.value.status_code == 503
    assert "no such table" in excinfo.value.details


def test_other_store_errors_are_query_failures():
    with pytest.raises(QueryFailedError) as excinfo:
        with store_errors("Failed to query."):
            raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

    assert excinfo.value.status_code == 500
    assert excinfo.value.to_dict() == {
        "error": "db_query_failed",
        "message": "Failed to query.",
        "details": "disk I/O error",
    }


def test_non_store_errors_pass_through():
    with pytest.raises(KeyError):
        with store_errors("Failed to query."):
            raise KeyError("x")


def test_non_sqlite_store_url_is_rejected():
    with pytest.raises(RuntimeError, match="sqlite"):
        build_engine("postgresql://stats@localhost/stats")


def test_in_memory_sqlite_url_is_accepted():
    engine = build_engine("sqlite://")
    try:
        assert engine.dialect.name == "sqlite"
    finally:
        engine.dispose()
