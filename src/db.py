"""
Database Manager - PostgreSQL store for machine pools.

Stores machine pools (which own the status conditions), their
infrastructure pools (which declare the desired lifecycle hooks), and
provides condition writes guarded by optimistic concurrency.
"""

import asyncpg
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from conditions import Condition
from errors import ConflictError
from scope import INFRASTRUCTURE_POOL_KINDS, InfrastructurePool, MachinePool

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS machine_pools (
    id SERIAL PRIMARY KEY,
    name VARCHAR(253) NOT NULL,
    namespace VARCHAR(253) NOT NULL DEFAULT 'default',
    conditions JSONB NOT NULL DEFAULT '[]'::jsonb,
    resource_version INTEGER NOT NULL DEFAULT 1,
    created_at TIMESTAMP NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMP NOT NULL DEFAULT NOW(),
    UNIQUE (namespace, name)
);

CREATE TABLE IF NOT EXISTS infrastructure_pools (
    id SERIAL PRIMARY KEY,
    machine_pool_id INTEGER NOT NULL
        REFERENCES machine_pools (id) ON DELETE CASCADE,
    kind VARCHAR(64) NOT NULL,
    name VARCHAR(255) NOT NULL,
    lifecycle_hooks JSONB NOT NULL DEFAULT '[]'::jsonb,
    created_at TIMESTAMP NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMP NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_infrastructure_pools_machine_pool
    ON infrastructure_pools (machine_pool_id);
"""


class DatabaseManager:
    """Manages PostgreSQL database operations for machine pools."""

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        min_pool_size: int = 5,
        max_pool_size: int = 20,
    ):
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
            command_timeout=60,  # Query timeout
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
        """Ensure the database connection pool is established."""
        if self.pool is None:
            raise RuntimeError(
                "Database not connected. Call connect() before performing operations."
            )

    async def initialize_schema(self) -> None:
        """Create the machine pool tables if they do not exist."""
        self._ensure_connected()
        async with self.pool.acquire() as conn:
            await conn.execute(SCHEMA)
        logger.info("Database schema initialized")

    # ==================== Machine Pool Methods ====================

    async def create_machine_pool(self, name: str, namespace: str = "default") -> int:
        """
        Create a new machine pool.

        Args:
            name: Machine pool name
            namespace: Namespace the pool lives in

        Returns:
            The new machine pool ID
        """
        self._ensure_connected()
        async with self.pool.acquire() as conn:
            machine_pool_id = await conn.fetchval(
                """
                INSERT INTO machine_pools (name, namespace)
                VALUES ($1, $2)
                RETURNING id
                """,
                name,
                namespace,
            )
            logger.info(
                f"Created machine pool {namespace}/{name} with ID {machine_pool_id}"
            )
            return machine_pool_id

    async def get_machine_pool(self, machine_pool_id: int) -> Optional[MachinePool]:
        """Get a machine pool by ID."""
        self._ensure_connected()
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM machine_pools WHERE id = $1",
                machine_pool_id,
            )
            if not row:
                return None
            return self._parse_machine_pool_row(row)

    async def list_machine_pool_ids(self, limit: int = 100) -> List[int]:
        """List machine pool IDs in creation order."""
        self._ensure_connected()
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT id FROM machine_pools ORDER BY id LIMIT $1",
                limit,
            )
            return [row["id"] for row in rows]

    # ==================== Infrastructure Pool Methods ====================

    async def create_infrastructure_pool(
        self,
        machine_pool_id: int,
        kind: str,
        name: str,
        lifecycle_hooks: Optional[List[Dict[str, Any]]] = None,
    ) -> int:
        """
        Attach an infrastructure pool to a machine pool.

        Args:
            machine_pool_id: The owning machine pool ID
            kind: 'AWSMachinePool' or 'AWSManagedMachinePool'
            name: Infrastructure pool name (also the scaling group name)
            lifecycle_hooks: Desired lifecycle hooks as authored

        Raises:
            ValueError: If the kind is unknown
        """
        if kind not in INFRASTRUCTURE_POOL_KINDS:
            available = ", ".join(INFRASTRUCTURE_POOL_KINDS)
            raise ValueError(
                f"Unknown infrastructure pool kind: {kind}. "
                f"Available kinds: {available}"
            )
        if lifecycle_hooks is None:
            lifecycle_hooks = []

        self._ensure_connected()
        async with self.pool.acquire() as conn:
            pool_id = await conn.fetchval(
                """
                INSERT INTO infrastructure_pools (
                    machine_pool_id, kind, name, lifecycle_hooks
                )
                VALUES ($1, $2, $3, $4)
                RETURNING id
                """,
                machine_pool_id,
                kind,
                name,
                json.dumps(lifecycle_hooks),
            )
            logger.info(
                f"Created {kind} {name} with ID {pool_id} "
                f"for machine pool {machine_pool_id}"
            )
            return pool_id

    async def update_lifecycle_hooks(
        self, infrastructure_pool_id: int, lifecycle_hooks: List[Dict[str, Any]]
    ) -> None:
        """Replace the desired lifecycle hooks of an infrastructure pool."""
        self._ensure_connected()
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                UPDATE infrastructure_pools
                SET lifecycle_hooks = $1, updated_at = NOW()
                WHERE id = $2
                """,
                json.dumps(lifecycle_hooks),
                infrastructure_pool_id,
            )

    async def get_pool_bundle(
        self, machine_pool_id: int
    ) -> Tuple[Optional[MachinePool], List[InfrastructurePool]]:
        """
        Get a machine pool together with its infrastructure pools.

        Returns:
            Tuple of (machine pool or None, infrastructure pools). More than
            one infrastructure pool means the target is ambiguous; that is
            left for the scope to reject.
        """
        machine_pool = await self.get_machine_pool(machine_pool_id)
        if machine_pool is None:
            return None, []

        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT kind, name, lifecycle_hooks
                FROM infrastructure_pools
                WHERE machine_pool_id = $1
                ORDER BY id
                """,
                machine_pool_id,
            )
        return machine_pool, [self._parse_infrastructure_pool_row(r) for r in rows]

    # ==================== Condition Methods ====================

    async def set_condition(
        self,
        machine_pool_id: int,
        condition: Condition,
        expected_version: Optional[int] = None,
    ) -> int:
        """
        Set one condition on a machine pool, replacing any entry of its type.

        Args:
            machine_pool_id: The machine pool ID
            condition: The condition to store
            expected_version: Resource version the caller last read; the
                write is rejected if the row has moved on

        Returns:
            The new resource version

        Raises:
            ConflictError: If the pool is missing or the version does not match
        """
        self._ensure_connected()
        async with self.pool.acquire() as conn:
            resource_version = await conn.fetchval(
                """
                UPDATE machine_pools
                SET conditions = COALESCE(
                        (SELECT jsonb_agg(elem)
                         FROM jsonb_array_elements(conditions) AS elem
                         WHERE elem ->> 'type' != $2),
                        '[]'::jsonb
                    ) || jsonb_build_array($3::jsonb),
                    resource_version = resource_version + 1,
                    updated_at = NOW()
                WHERE id = $1
                  AND ($4::integer IS NULL OR resource_version = $4)
                RETURNING resource_version
                """,
                machine_pool_id,
                condition.type,
                json.dumps(condition.to_dict()),
                expected_version,
            )
            if resource_version is None:
                raise ConflictError(
                    f"Machine pool {machine_pool_id} was modified or deleted "
                    f"(expected resource version {expected_version})"
                )
            return resource_version

    async def get_conditions(self, machine_pool_id: int) -> List[Condition]:
        """Get the conditions of a machine pool, or an empty list if not found."""
        self._ensure_connected()
        async with self.pool.acquire() as conn:
            result = await conn.fetchval(
                "SELECT conditions FROM machine_pools WHERE id = $1",
                machine_pool_id,
            )
            if result is None:
                return []
            return self._parse_conditions(result)

    # ==================== Row Parsing ====================

    def _parse_machine_pool_row(self, row: asyncpg.Record) -> MachinePool:
        """Parse a machine_pools row into a MachinePool."""
        result = dict(row)
        return MachinePool(
            id=result["id"],
            name=result["name"],
            namespace=result.get("namespace") or "default",
            conditions=self._parse_conditions(result.get("conditions")),
            resource_version=result.get("resource_version", 0),
        )

    def _parse_infrastructure_pool_row(
        self, row: asyncpg.Record
    ) -> InfrastructurePool:
        """Parse an infrastructure_pools row into its pool variant."""
        result = dict(row)
        lifecycle_hooks = result.get("lifecycle_hooks") or []
        if isinstance(lifecycle_hooks, str):
            lifecycle_hooks = json.loads(lifecycle_hooks)
        pool_class = INFRASTRUCTURE_POOL_KINDS[result["kind"]]
        return pool_class(name=result["name"], lifecycle_hooks=lifecycle_hooks)

    def _parse_conditions(self, value: Any) -> List[Condition]:
        if not value:
            return []
        if isinstance(value, str):
            value = json.loads(value)
        return [Condition.from_dict(c) for c in value]
