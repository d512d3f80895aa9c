"""
Recollect Core Types
--------------------
Pydantic models and enums for the context retrieval engine.

Retrieved items are frozen snapshots: sources build them once and nothing
downstream (ranking, formatting) mutates them.
"""

import uuid
import time
from enum import Enum
from typing import Optional, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class ItemType(str, Enum):
    MESSAGE = "message"
    FILE = "file"
    MEMORY = "memory"


CONNECTOR_TYPE_PREFIX = "connector:"

# Tie-break order when two items carry the same similarity.
SOURCE_PRIORITY = {
    ItemType.MEMORY.value: 0,
    ItemType.MESSAGE.value: 1,
    ItemType.FILE.value: 2,
}
CONNECTOR_PRIORITY = 3


def connector_type(kind: str) -> str:
    """Item type string for a connector kind, e.g. ``connector:email``."""
    return f"{CONNECTOR_TYPE_PREFIX}{kind}"


def is_connector_type(item_type: str) -> bool:
    return item_type.startswith(CONNECTOR_TYPE_PREFIX)


def connector_kind(item_type: str) -> Optional[str]:
    if not is_connector_type(item_type):
        return None
    return item_type[len(CONNECTOR_TYPE_PREFIX):]


def source_priority(item_type: str) -> int:
    return SOURCE_PRIORITY.get(item_type, CONNECTOR_PRIORITY)


class MemoryCategory(str, Enum):
    PREFERENCE = "preference"
    FACT = "fact"
    INSTRUCTION = "instruction"
    CONTEXT = "context"


class ItemMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    container_id: Optional[str] = None
    container_title: Optional[str] = None
    scope_id: Optional[str] = None
    scope_name: Optional[str] = None
    created_at: Optional[str] = None
    provenance: str = "local"  # local | memory | <connector kind>


class RetrievedItem(BaseModel):
    """One unit of retrieved context from any source."""

    model_config = ConfigDict(frozen=True)

    type: str  # message | file | memory | connector:<kind>
    id: str
    content: str
    summary: Optional[str] = None
    similarity: float = Field(ge=0.0, le=1.0)
    metadata: ItemMetadata = Field(default_factory=ItemMetadata)

    @property
    def provenance(self) -> str:
        return self.metadata.provenance


class ConnectorCredentials(BaseModel):
    """Already-valid credentials for a connector group (no refresh here)."""

    access_token: str
    refresh_token: Optional[str] = None


class ContextRequest(BaseModel):
    owner_id: str
    query_text: str
    scope_id: Optional[str] = None
    exclude_container_id: Optional[str] = None
    include_connectors: bool = True
    max_results: int = 10
    # Keyed by credential group, e.g. "google".
    connector_credentials: Dict[str, ConnectorCredentials] = Field(default_factory=dict)


class RetrievalResult(BaseModel):
    query: str
    items: List[RetrievedItem] = Field(default_factory=list)
    formatted_text: str = ""
    estimated_tokens: int = 0
    cost_units: float = 0.0


class EmbeddingResult(BaseModel):
    vector: List[float]
    cost_units: float = 0.0


class Memory(BaseModel):
    """A user-declared fact, unique per (owner_id, key)."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    owner_id: str
    key: str
    value: str
    category: MemoryCategory = MemoryCategory.FACT
    embedding: Optional[List[float]] = None
    created_at: float = Field(default_factory=time.time)
    updated_at: float = Field(default_factory=time.time)


class RememberCommand(BaseModel):
    """An explicit "remember" instruction extracted from user text."""

    model_config = ConfigDict(frozen=True)

    key: str
    value: str
