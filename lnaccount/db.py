from __future__ import annotations

import asyncio
import json
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, TypeVar, Union, get_args, get_origin

from loguru import logger
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.sql import text

from lnaccount.settings import settings

POSTGRES = "POSTGRES"
SQLITE = "SQLITE"

TModel = TypeVar("TModel", bound=BaseModel)


def get_db_type(database_url: str | None = None) -> str:
    database_url = database_url or settings.account_database_url
    if database_url:
        if not database_url.startswith("postgres://"):
            raise ValueError(
                "Please use the 'postgres://...' " "format for the database URL."
            )
        return POSTGRES
    return SQLITE


class Compat:
    type: str | None = "<inherited>"
    schema: str | None = "<inherited>"

    @property
    def big_int(self) -> str:
        if self.type == POSTGRES:
            return "BIGINT"
        return "INT"


class Connection(Compat):
    def __init__(self, conn: AsyncConnection, typ, name, schema):
        self.conn = conn
        self.type = typ
        self.name = name
        self.schema = schema

    def rewrite_values(self, values: dict) -> dict:
        clean_values: dict = {}
        for key, raw_value in values.items():
            if isinstance(raw_value, datetime):
                ts = raw_value.timestamp()
                clean_values[key] = int(ts) if self.type == SQLITE else ts
            else:
                clean_values[key] = raw_value
        return clean_values

    async def fetchall(
        self,
        query: str,
        values: dict | None = None,
        model: type[TModel] | None = None,
    ) -> list:
        params = self.rewrite_values(values) if values else {}
        result = await self.conn.execute(text(query), params)
        rows = result.mappings().all()
        result.close()
        if not rows:
            return []
        if model:
            return [dict_to_model(r, model) for r in rows]
        return list(rows)

    async def fetchone(
        self,
        query: str,
        values: dict | None = None,
        model: type[TModel] | None = None,
    ) -> Any:
        params = self.rewrite_values(values) if values else {}
        result = await self.conn.execute(text(query), params)
        row = result.mappings().first()
        result.close()
        if model and row:
            return dict_to_model(row, model)
        return row

    async def insert(self, table_name: str, model: BaseModel):
        await self.execute(insert_query(table_name, model), model_to_dict(model))

    async def update(
        self, table_name: str, model: BaseModel, where: str = "WHERE id = :id"
    ):
        await self.execute(
            update_query(table_name, model, where), model_to_dict(model)
        )

    async def execute(self, query: str, values: dict | None = None):
        params = self.rewrite_values(values) if values else {}
        result = await self.conn.execute(text(query), params)
        await self.conn.commit()
        return result


class Database(Compat):
    def __init__(
        self,
        db_name: str,
        data_folder: str | None = None,
        database_url: str | None = None,
    ):
        self.name = db_name
        self.schema = None
        database_url = database_url or settings.account_database_url
        self.type = get_db_type(database_url)

        if self.type == SQLITE:
            data_folder = data_folder or settings.account_data_folder
            if not os.path.isdir(data_folder):
                os.makedirs(data_folder)
                logger.info(f"Created {data_folder}")
            self.path = os.path.join(data_folder, f"{self.name}.sqlite3")
            database_uri = f"sqlite+aiosqlite:///{self.path}"
        else:
            assert database_url, "database url must be set here"
            database_uri = database_url.replace(
                "postgres://", "postgresql+asyncpg://"
            )

        self.engine: AsyncEngine = create_async_engine(
            database_uri, echo=settings.debug_database
        )
        self.lock = asyncio.Lock()

        logger.trace(f"database {self.type} added for {self.name}")

    @asynccontextmanager
    async def connect(self):
        await self.lock.acquire()
        try:
            async with self.engine.connect() as conn:
                if not conn:
                    raise Exception("Could not connect to the database")
                yield Connection(conn, self.type, self.name, self.schema)
        finally:
            self.lock.release()

    async def fetchall(
        self,
        query: str,
        values: dict | None = None,
        model: type[TModel] | None = None,
    ) -> list:
        async with self.connect() as conn:
            return await conn.fetchall(query, values, model)

    async def fetchone(
        self,
        query: str,
        values: dict | None = None,
        model: type[TModel] | None = None,
    ) -> Any:
        async with self.connect() as conn:
            return await conn.fetchone(query, values, model)

    async def insert(self, table_name: str, model: BaseModel) -> None:
        async with self.connect() as conn:
            await conn.insert(table_name, model)

    async def update(
        self, table_name: str, model: BaseModel, where: str = "WHERE id = :id"
    ) -> None:
        async with self.connect() as conn:
            await conn.update(table_name, model, where)

    async def execute(self, query: str, values: dict | None = None):
        async with self.connect() as conn:
            return await conn.execute(query, values)

    async def dispose(self) -> None:
        await self.engine.dispose()


def insert_query(table_name: str, model: BaseModel) -> str:
    """
    Generate an insert query with placeholders for a given table and model
    :param table_name: Name of the table
    :param model: Pydantic model
    """
    keys = model_to_dict(model).keys()
    # add quotes to keys to avoid SQL conflicts
    fields = ", ".join([f'"{key}"' for key in keys])
    values = ", ".join([f":{key}" for key in keys])
    return f"INSERT INTO {table_name} ({fields}) VALUES ({values})"


def update_query(
    table_name: str, model: BaseModel, where: str = "WHERE id = :id"
) -> str:
    """
    Generate an update query with placeholders for a given table and model
    :param table_name: Name of the table
    :param model: Pydantic model
    :param where: Where string, default to `WHERE id = :id`
    """
    fields = [f'"{key}" = :{key}' for key in model_to_dict(model).keys()]
    return f"UPDATE {table_name} SET {', '.join(fields)} {where}"


def _model_type(annotation: Any) -> type[BaseModel] | None:
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    if get_origin(annotation) is Union or type(annotation).__name__ == "UnionType":
        for arg in get_args(annotation):
            found = _model_type(arg)
            if found:
                return found
    return None


def model_to_dict(model: BaseModel) -> dict:
    """
    Convert a Pydantic model to a dictionary with JSON-encoded nested models
    :param model: Pydantic model
    """
    _dict: dict = {}
    for key, value in model.model_dump().items():
        if isinstance(value, datetime):
            _dict[key] = int(value.timestamp())
            continue
        if isinstance(value, (dict, list)):
            _dict[key] = json.dumps(value)
            continue
        _dict[key] = value
    return _dict


def dict_to_model(_row: Any, model: type[TModel]) -> TModel:
    """
    Convert a database row with JSON-encoded nested models to a Pydantic model
    :param _row: Row mapping from database
    :param model: Pydantic model
    """
    _dict: dict = {}
    for key, value in dict(_row).items():
        if value is None:
            continue
        field = model.model_fields.get(key)
        if not field:
            # Somethimes an SQL JOIN will create additional column
            continue
        if _model_type(field.annotation) and isinstance(value, str):
            _dict[key] = json.loads(value)
            continue
        if field.annotation is datetime and isinstance(value, (int, float)):
            _dict[key] = datetime.fromtimestamp(value, timezone.utc)
            continue
        _dict[key] = value
    return model.model_validate(_dict)
