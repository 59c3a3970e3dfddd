"""
Application wiring for the Lifecycle Hook Reconciler.

Builds the store, the scaling group client and the reconciler from
configuration. Scheduling passes is left to the caller; run at most one
pass per machine pool at a time.
"""

import logging
from typing import Dict, List, Optional

from autoscaling.client import HTTPAutoScalingAPI
from autoscaling.service import LifecycleHookService
from config import Config, configure_logging, get_config
from db import DatabaseManager
from reconciler import LifecycleHookReconciler, ReconcileResult

logger = logging.getLogger(__name__)


class Application:
    """Owns the long-lived components used by reconciliation passes."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()
        self.db: Optional[DatabaseManager] = None
        self.api: Optional[HTTPAutoScalingAPI] = None
        self.reconciler: Optional[LifecycleHookReconciler] = None

    async def initialize(self):
        """Initialize all components."""
        configure_logging(self.config.logging)
        logger.info("Initializing Lifecycle Hook Reconciler")

        db_config = self.config.database
        self.db = DatabaseManager(
            host=db_config.host,
            port=db_config.port,
            database=db_config.database,
            user=db_config.user,
            password=db_config.password,
            min_pool_size=db_config.min_pool_size,
            max_pool_size=db_config.max_pool_size,
        )
        await self.db.connect()
        await self.db.initialize_schema()
        logger.info("Database initialized")

        self.api = HTTPAutoScalingAPI.from_config(self.config.autoscaling)
        self.reconciler = LifecycleHookReconciler(LifecycleHookService(self.api))
        logger.info(
            f"Scaling group API client ready: {self.config.autoscaling.api_base_url}"
        )

    async def reconcile(self, machine_pool_id: int) -> ReconcileResult:
        """Run one lifecycle hook pass for a machine pool."""
        if self.reconciler is None:
            await self.initialize()
        return await self.reconciler.reconcile_machine_pool(self.db, machine_pool_id)

    async def reconcile_all(self, limit: int = 100) -> Dict[int, ReconcileResult]:
        """Run one pass for every stored machine pool, one pool at a time."""
        if self.reconciler is None:
            await self.initialize()
        results: Dict[int, ReconcileResult] = {}
        machine_pool_ids: List[int] = await self.db.list_machine_pool_ids(limit=limit)
        for machine_pool_id in machine_pool_ids:
            try:
                results[machine_pool_id] = await self.reconcile(machine_pool_id)
            except Exception as e:
                logger.error(
                    f"Error reconciling machine pool {machine_pool_id}: {e}",
                    exc_info=True,
                )
                results[machine_pool_id] = ReconcileResult(
                    success=False, message=str(e), error=e
                )
        failed = [i for i, r in results.items() if not r.success]
        if failed:
            logger.warning(f"Lifecycle hook reconciliation failed for pools {failed}")
        return results

    async def stop(self):
        """Release connections."""
        if self.api:
            await self.api.close()
        if self.db:
            await self.db.close()
        logger.info("Lifecycle Hook Reconciler stopped")
