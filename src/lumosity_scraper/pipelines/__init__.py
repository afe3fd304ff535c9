"""Harvesting pipelines: per-account sessions and the batch orchestrator."""

from .batch import BatchOrchestrator, chunk_accounts, run_harvest
from .harvest import SessionHarvester

__all__ = ["BatchOrchestrator", "SessionHarvester", "chunk_accounts", "run_harvest"]
