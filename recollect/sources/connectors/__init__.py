"""External read-only connector adapters."""

import logging
from typing import Dict, List, Optional, Type

import httpx

from recollect.core.config import ConnectorConfig
from recollect.observability import RetrievalTracer
from recollect.sources.connectors.base import ConnectorSource
from recollect.sources.connectors.google import CalendarConnector, DriveConnector, GmailConnector

logger = logging.getLogger("Recollect.Connectors")

CONNECTOR_TYPES: Dict[str, Type[ConnectorSource]] = {
    GmailConnector.kind: GmailConnector,
    CalendarConnector.kind: CalendarConnector,
    DriveConnector.kind: DriveConnector,
}


def build_connectors(
    config: ConnectorConfig,
    *,
    timeout: float,
    http_client: Optional[httpx.AsyncClient] = None,
    tracer: Optional[RetrievalTracer] = None,
) -> List[ConnectorSource]:
    """Instantiate the enabled connectors in configured order."""
    connectors: List[ConnectorSource] = []
    for kind in config.enabled:
        connector_cls = CONNECTOR_TYPES.get(kind)
        if connector_cls is None:
            logger.warning("Unknown connector kind '%s'; skipping", kind)
            continue
        kwargs = {
            "score": config.scores.get(kind),
            "timeout": timeout,
            "http_client": http_client,
            "tracer": tracer,
        }
        if connector_cls is CalendarConnector:
            kwargs["lookahead_days"] = config.calendar_lookahead_days
        connectors.append(connector_cls(**kwargs))
    return connectors


__all__ = [
    "CONNECTOR_TYPES",
    "ConnectorSource",
    "GmailConnector",
    "CalendarConnector",
    "DriveConnector",
    "build_connectors",
]
