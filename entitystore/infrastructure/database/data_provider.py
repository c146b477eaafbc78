"""Table provider over an async SQLAlchemy session.

All entity repositories talk to the store through DataProvider. It owns the
few statements that differ between dialects (truncate, stored procedure
calls) and otherwise relies on the ORM.
"""

import re
from collections.abc import AsyncGenerator, Mapping, Sequence
from contextlib import asynccontextmanager
from typing import Any

from loguru import logger
from sqlalchemy import ColumnElement, Select, Table, TextClause, delete, func, text
from sqlalchemy.engine import Dialect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.expression import Executable
from sqlmodel import col, select

from entitystore.domain.base_entity import BaseEntity
from entitystore.domain.exceptions import InvalidArgumentError, UnsupportedOperationError
from entitystore.domain.paged_list import PagedList

_PROCEDURE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


def build_procedure_call(
    dialect_name: str, procedure_name: str, parameters: Mapping[str, Any]
) -> TextClause:
    """Build the statement that runs a stored procedure on the given dialect."""
    if not _PROCEDURE_NAME.match(procedure_name):
        raise InvalidArgumentError(
            "procedure_name", f"Invalid procedure name: {procedure_name!r}"
        )

    names = list(parameters)
    match dialect_name:
        case "postgresql":
            arguments = ", ".join(f"{name} => :{name}" for name in names)
            sql = f"SELECT * FROM {procedure_name}({arguments})"
        case "mysql" | "mariadb":
            arguments = ", ".join(f":{name}" for name in names)
            sql = f"CALL {procedure_name}({arguments})"
        case "mssql":
            arguments = ", ".join(f"@{name} = :{name}" for name in names)
            sql = f"EXEC {procedure_name} {arguments}".rstrip()
        case _:
            raise UnsupportedOperationError(
                f"Stored procedures are not supported on {dialect_name}"
            )

    statement = text(sql)
    if parameters:
        statement = statement.bindparams(**parameters)
    return statement


def build_truncate_statements(
    dialect: Dialect, table: Table, reset_identity: bool
) -> list[Executable]:
    """Statements that empty ``table``, resetting or keeping its identity counter.

    MySQL and SQL Server restart identities on ``TRUNCATE`` and keep them on
    ``DELETE``. SQLite keeps the counter of AUTOINCREMENT tables in
    ``sqlite_sequence``.
    """
    table_name = dialect.identifier_preparer.format_table(table)
    autoincrement = table.dialect_options["sqlite"]["autoincrement"]
    match dialect.name:
        case "postgresql":
            identity = "RESTART IDENTITY" if reset_identity else "CONTINUE IDENTITY"
            return [text(f"TRUNCATE TABLE {table_name} {identity}")]
        case "mysql" | "mariadb" | "mssql" if reset_identity:
            return [text(f"TRUNCATE TABLE {table_name}")]
        case "sqlite" if reset_identity and autoincrement:
            return [
                table.delete(),
                text("DELETE FROM sqlite_sequence WHERE name = :name").bindparams(
                    name=table.name
                ),
            ]
        case _:
            return [table.delete()]


class DataProvider:
    """Store access for entity repositories, bound to one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @property
    def dialect_name(self) -> str:
        return self.session.get_bind().dialect.name

    # ============ Transactions ============

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[None, None]:
        """Explicit transaction scope.

        Opens a savepoint inside an already running transaction, otherwise a
        new transaction. Commits on normal exit and rolls back on exceptions.
        """
        if self.session.in_transaction():
            async with self.session.begin_nested():
                yield
        else:
            async with self.session.begin():
                yield

    # ============ Queries ============

    def get_table[T: BaseEntity](self, entity_type: type[T]) -> Select[tuple[T]]:
        return select(entity_type)

    async def to_list[T](self, query: Select[tuple[T]]) -> list[T]:
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def first_or_default[T](self, query: Select[tuple[T]]) -> T | None:
        result = await self.session.execute(query.limit(1))
        return result.scalars().first()

    async def count(self, query: Select) -> int:
        statement = select(func.count()).select_from(query.order_by(None).subquery())
        result = await self.session.execute(statement)
        return result.scalar_one()

    async def to_paged_list[T](
        self,
        query: Select[tuple[T]],
        page_index: int = 0,
        page_size: int | None = None,
        get_only_total_count: bool = False,
    ) -> PagedList[T]:
        if page_index < 0:
            raise InvalidArgumentError("page_index", "page_index must not be negative")
        if page_size is not None and page_size < 1:
            raise InvalidArgumentError("page_size", "page_size must be positive")

        total_count = await self.count(query)
        items: list[T] = []
        if not get_only_total_count:
            if page_size is not None:
                items = await self.to_list(
                    query.offset(page_index * page_size).limit(page_size)
                )
            elif page_index == 0:
                items = await self.to_list(query)

        return PagedList(
            items=items,
            page_index=page_index,
            page_size=page_size,
            total_count=total_count,
        )

    async def load_row_copy[T: BaseEntity](
        self, entity_type: type[T], entity_id: int | None
    ) -> T | None:
        """Read the stored column values of one row into a new, unattached instance."""
        columns = entity_type.__table__.columns
        statement = select(*columns).where(columns["id"] == entity_id)
        with self.session.no_autoflush:
            result = await self.session.execute(statement)
        row = result.mappings().first()
        if row is None:
            return None
        return entity_type.model_validate(dict(row))

    # ============ Mutations ============

    async def insert_entity[T: BaseEntity](self, entity: T) -> T:
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def bulk_insert_entities[T: BaseEntity](self, entities: Sequence[T]) -> None:
        self.session.add_all(entities)
        await self.session.flush()

    async def update_entity[T: BaseEntity](self, entity: T) -> T:
        if entity not in self.session:
            entity = await self.session.merge(entity)
        await self.session.flush()
        return entity

    async def delete_entity[T: BaseEntity](self, entity: T) -> None:
        if entity not in self.session:
            entity = await self.session.merge(entity)
        await self.session.delete(entity)
        await self.session.flush()

    async def bulk_delete_entities[T: BaseEntity](
        self, entity_type: type[T], entities: Sequence[T]
    ) -> int:
        ids = [entity.id for entity in entities if entity.id is not None]
        if not ids:
            return 0
        return await self.bulk_delete_where(entity_type, col(entity_type.id).in_(ids))

    async def bulk_delete_where(
        self, entity_type: type[BaseEntity], predicate: ColumnElement[bool]
    ) -> int:
        result = await self.session.execute(delete(entity_type).where(predicate))
        return result.rowcount

    async def truncate(
        self, entity_type: type[BaseEntity], reset_identity: bool = False
    ) -> None:
        table = entity_type.__table__
        dialect = self.session.get_bind().dialect
        autoincrement = table.dialect_options["sqlite"]["autoincrement"]
        if dialect.name == "sqlite" and not reset_identity and not autoincrement:
            logger.warning(
                f"Table {table.name} has no AUTOINCREMENT; "
                "SQLite restarts its ids after truncate"
            )

        for statement in build_truncate_statements(dialect, table, reset_identity):
            await self.session.execute(statement)

        # drop instances of removed rows from the identity map
        for instance in list(self.session.identity_map.values()):
            if isinstance(instance, entity_type):
                self.session.expunge(instance)
        logger.info(f"Truncated table {table.name} (reset_identity={reset_identity})")

    async def query_proc[T: BaseEntity](
        self,
        entity_type: type[T],
        procedure_name: str,
        parameters: Mapping[str, Any] | None = None,
    ) -> list[T]:
        call = build_procedure_call(self.dialect_name, procedure_name, parameters or {})
        logger.debug(f"Executing stored procedure {procedure_name}")
        result = await self.session.execute(select(entity_type).from_statement(call))
        return list(result.scalars().all())
