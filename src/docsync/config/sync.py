"""Synchronization defaults for reconciliation runs."""

from __future__ import annotations

from dataclasses import dataclass

from docsync.domain.reconciliation.settings import DEFAULT_BATCH_SIZE, SyncSettings

from .env import optional_int_env_var


@dataclass(frozen=True, slots=True)
class SyncConfig:
    batch_size: int = DEFAULT_BATCH_SIZE
    ordered: bool = False
    bypass_document_validation: bool = False
    upsert: bool = True

    def to_settings(self) -> SyncSettings:
        return SyncSettings(
            batch_size=self.batch_size,
            ordered=self.ordered,
            bypass_document_validation=self.bypass_document_validation,
            upsert=self.upsert,
        )


def get_sync_config() -> SyncConfig:
    return SyncConfig(batch_size=optional_int_env_var("DOCSYNC_BATCH_SIZE", DEFAULT_BATCH_SIZE))
