"""
Database Manager - PostgreSQL-backed resource store.

Persists resources of every registered kind in a single table and enforces
optimistic concurrency on the resource_version column.
"""

import json
import logging
import uuid
from typing import Any, Dict, List, Optional

import asyncpg

from errors import AlreadyExistsError, ConflictError, NotFoundError
from events import EventBus, EventType
from migrate import run_migrations
from resources import ObjectKey, Scheme
from store import ResourceStore

logger = logging.getLogger(__name__)


def _load_json(value: Any, default: Any) -> Any:
    if value is None:
        return default
    if isinstance(value, str):
        return json.loads(value)
    return value


class DatabaseManager(ResourceStore):
    """Resource store on top of an asyncpg connection pool."""

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        scheme: Scheme,
        event_bus: Optional[EventBus] = None,
        min_pool_size: int = 5,
        max_pool_size: int = 20,
    ):
        super().__init__(scheme, event_bus)
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self):
        """Establish connection pool to PostgreSQL."""
        self.pool = await asyncpg.create_pool(
            host=self.host,
            port=self.port,
            database=self.database,
            user=self.user,
            password=self.password,
            min_size=self.min_pool_size,
            max_size=self.max_pool_size,
            command_timeout=60,
        )
        logger.info(
            f"Connected to PostgreSQL (pool: {self.min_pool_size}-{self.max_pool_size})"
        )

    async def close(self):
        """Close the connection pool."""
        if self.pool:
            await self.pool.close()
            logger.info("Closed PostgreSQL connection")

    def _ensure_connected(self) -> None:
        if self.pool is None:
            raise RuntimeError(
                "Database not connected. Call connect() before performing operations."
            )

    async def initialize_schema(self) -> None:
        """Apply database migrations to bring schema up to date."""
        self._ensure_connected()
        await run_migrations(self.pool)
        logger.info("Database schema initialized")

    # ==================== ResourceStore ====================

    async def get(self, kind: str, key: ObjectKey) -> Any:
        self.scheme.type_for(kind)
        self._ensure_connected()
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT * FROM resources
                WHERE kind = $1 AND namespace = $2 AND name = $3
                """,
                kind,
                key.namespace,
                key.name,
            )
        if not row:
            raise NotFoundError(kind, key)
        return self._parse_resource_row(row)

    async def create(self, obj: Any) -> Any:
        kind = self.scheme.kind_for(obj)
        key = obj.metadata.key
        self._ensure_connected()

        async with self.pool.acquire() as conn:
            try:
                row = await conn.fetchrow(
                    """
                    INSERT INTO resources (
                        kind, namespace, name, uid, spec, status,
                        finalizers, annotations
                    )
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                    RETURNING *
                    """,
                    kind,
                    key.namespace,
                    key.name,
                    uuid.uuid4(),
                    json.dumps(obj.spec.to_dict()),
                    json.dumps(obj.status.to_dict()),
                    json.dumps(obj.metadata.finalizers),
                    json.dumps(obj.metadata.annotations),
                )
            except asyncpg.UniqueViolationError:
                raise AlreadyExistsError(kind, key)

        created = self._parse_resource_row(row)
        logger.info(f"Created {kind} {key}")
        await self._publish(EventType.ADDED, created)
        return created

    async def update(self, obj: Any) -> None:
        kind = self.scheme.kind_for(obj)
        key = obj.metadata.key
        self._ensure_connected()

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    """
                    UPDATE resources
                    SET generation = CASE
                            WHEN spec IS DISTINCT FROM $1::jsonb
                            THEN generation + 1
                            ELSE generation
                        END,
                        spec = $1::jsonb,
                        status = $2::jsonb,
                        finalizers = $3::jsonb,
                        annotations = $4::jsonb,
                        resource_version = resource_version + 1,
                        updated_at = NOW()
                    WHERE kind = $5 AND namespace = $6 AND name = $7
                      AND resource_version = $8
                    RETURNING *
                    """,
                    json.dumps(obj.spec.to_dict()),
                    json.dumps(obj.status.to_dict()),
                    json.dumps(obj.metadata.finalizers),
                    json.dumps(obj.metadata.annotations),
                    kind,
                    key.namespace,
                    key.name,
                    obj.metadata.resource_version,
                )

                if row is None:
                    current = await conn.fetchval(
                        """
                        SELECT resource_version FROM resources
                        WHERE kind = $1 AND namespace = $2 AND name = $3
                        """,
                        kind,
                        key.namespace,
                        key.name,
                    )
                    if current is None:
                        raise NotFoundError(kind, key)
                    raise ConflictError(
                        kind,
                        key,
                        expected=obj.metadata.resource_version,
                        actual=current,
                    )

                updated = self._parse_resource_row(row)
                purge = (
                    updated.metadata.is_deleting and not updated.metadata.finalizers
                )
                if purge:
                    await conn.execute("DELETE FROM resources WHERE id = $1", row["id"])

        obj.metadata.resource_version = updated.metadata.resource_version
        obj.metadata.generation = updated.metadata.generation

        if purge:
            logger.info(f"Last finalizer removed, purged {kind} {key}")
            await self._publish(EventType.DELETED, updated)
        else:
            await self._publish(EventType.MODIFIED, updated)

    async def delete(self, kind: str, key: ObjectKey) -> None:
        self.scheme.type_for(kind)
        self._ensure_connected()

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    """
                    SELECT * FROM resources
                    WHERE kind = $1 AND namespace = $2 AND name = $3
                    FOR UPDATE
                    """,
                    kind,
                    key.namespace,
                    key.name,
                )
                if row is None:
                    raise NotFoundError(kind, key)

                current = self._parse_resource_row(row)
                if not current.metadata.finalizers:
                    await conn.execute("DELETE FROM resources WHERE id = $1", row["id"])
                    event_type = EventType.DELETED
                elif current.metadata.is_deleting:
                    return
                else:
                    row = await conn.fetchrow(
                        """
                        UPDATE resources
                        SET deletion_timestamp = NOW(),
                            resource_version = resource_version + 1,
                            updated_at = NOW()
                        WHERE id = $1
                        RETURNING *
                        """,
                        row["id"],
                    )
                    current = self._parse_resource_row(row)
                    event_type = EventType.MODIFIED

        if event_type is EventType.DELETED:
            logger.info(f"Deleted {kind} {key}")
        else:
            logger.info(
                f"Marked {kind} {key} for deletion, "
                f"waiting on finalizers: {current.metadata.finalizers}"
            )
        await self._publish(event_type, current)

    async def list(self, kind: str, namespace: Optional[str] = None) -> List[Any]:
        self.scheme.type_for(kind)
        self._ensure_connected()

        async with self.pool.acquire() as conn:
            query = "SELECT * FROM resources WHERE kind = $1"
            params: List[Any] = [kind]
            if namespace is not None:
                query += " AND namespace = $2"
                params.append(namespace)
            query += " ORDER BY namespace, name"
            rows = await conn.fetch(query, *params)

        return [self._parse_resource_row(row) for row in rows]

    def _parse_resource_row(self, row: asyncpg.Record) -> Any:
        """
        Decode a resources row into a typed resource via the scheme.

        JSONB columns arrive as strings unless a codec is registered on the
        pool, so both forms are accepted.
        """
        data: Dict[str, Any] = {
            "kind": row["kind"],
            "metadata": {
                "name": row["name"],
                "namespace": row["namespace"],
                "uid": str(row["uid"]),
                "resourceVersion": row["resource_version"],
                "generation": row["generation"],
                "creationTimestamp": row.get("created_at"),
                "deletionTimestamp": row.get("deletion_timestamp"),
                "finalizers": _load_json(row.get("finalizers"), []),
                "annotations": _load_json(row.get("annotations"), {}),
            },
            "spec": _load_json(row.get("spec"), {}),
            "status": _load_json(row.get("status"), {}),
        }
        return self.scheme.decode(data)
