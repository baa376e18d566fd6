from unittest.mock import MagicMock

import pytest

from database.executor import CatalogQueryExecutor, SQLAlchemyCatalogExecutor
from sql.validator import ReadOnlyQueryError


@pytest.mark.asyncio
async def test_runs_select_through_connection():
    connection = MagicMock()
    connection.fetch_all.return_value = [{"table_name": "users"}]
    executor = SQLAlchemyCatalogExecutor(connection)

    rows = await executor.run("SELECT table_name FROM information_schema.tables")

    assert rows == [{"table_name": "users"}]
    connection.fetch_all.assert_called_once_with("SELECT table_name FROM information_schema.tables")


@pytest.mark.asyncio
async def test_rejects_writes_before_touching_database():
    connection = MagicMock()
    executor = SQLAlchemyCatalogExecutor(connection)

    with pytest.raises(ReadOnlyQueryError):
        await executor.run("DROP TABLE users")

    connection.fetch_all.assert_not_called()


def test_satisfies_protocol():
    assert isinstance(SQLAlchemyCatalogExecutor(MagicMock()), CatalogQueryExecutor)
