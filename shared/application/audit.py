"""Structured audit trail for committed domain events."""

from __future__ import annotations

import dataclasses

import structlog

from shared.domain.base import DomainEvent

audit_logger = structlog.get_logger("audit")

_ENVELOPE = {"event_id", "occurred_at", "aggregate_id"}


def audit_log(event: DomainEvent) -> None:
    payload = {
        f.name: getattr(event, f.name)
        for f in dataclasses.fields(event)
        if f.name not in _ENVELOPE
    }
    audit_logger.info(
        "audit.event",
        **event.to_dict(),
        **{key: str(value) if value is not None else None for key, value in payload.items()},
    )
