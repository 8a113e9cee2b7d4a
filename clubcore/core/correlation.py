"""Correlation and causation id propagation.

- correlation id: shared by every step of one logical request chain
- causation id: unique per step; child steps record their parent's causation
  id so the causal tree can be rebuilt from stored logs
"""

import uuid
from contextvars import ContextVar
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from clubcore.utils.timezone import now_utc

CORRELATION_HEADER = "X-Correlation-ID"
CAUSATION_HEADER = "X-Causation-ID"


class RequestContext(BaseModel):
    """Trace identifiers for one step of a request chain."""

    model_config = ConfigDict(frozen=True)

    correlation_id: str
    causation_id: str
    parent_causation_id: Optional[str] = None
    actor_id: Optional[str] = None
    timestamp: datetime
    meta: Dict[str, Any] = Field(default_factory=dict)


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def generate_causation_id() -> str:
    return str(uuid.uuid4())


def create_context(
    correlation_id: Optional[str] = None,
    actor_id: Optional[str] = None,
    meta: Optional[Mapping[str, Any]] = None,
) -> RequestContext:
    """Create the root context for an inbound request."""
    return RequestContext(
        correlation_id=correlation_id or generate_correlation_id(),
        causation_id=generate_causation_id(),
        actor_id=actor_id,
        timestamp=now_utc(),
        meta=dict(meta or {}),
    )


def create_child_context(
    parent: RequestContext, actor_id: Optional[str] = None
) -> RequestContext:
    """Derive a context for a dependent sub-step."""
    return RequestContext(
        correlation_id=parent.correlation_id,
        causation_id=generate_causation_id(),
        parent_causation_id=parent.causation_id,
        actor_id=actor_id or parent.actor_id,
        timestamp=now_utc(),
        meta=dict(parent.meta),
    )


def extract_correlation_id(headers: Mapping[str, str]) -> Optional[str]:
    """Read the inbound correlation id, if any. Blank values are ignored."""
    value = headers.get(CORRELATION_HEADER) or headers.get(CORRELATION_HEADER.lower())
    if value and value.strip():
        return value.strip()[:255]
    return None


def format_context_for_logging(context: RequestContext) -> Dict[str, Any]:
    return {
        "correlation_id": context.correlation_id,
        "causation_id": context.causation_id,
        "parent_causation_id": context.parent_causation_id,
        "actor_id": context.actor_id,
        "timestamp": context.timestamp.isoformat(),
        **context.meta,
    }


def build_causal_tree(entries: Iterable[Mapping[str, Any]]) -> Dict[Optional[str], list[str]]:
    """Map each parent causation id to the causation ids it spawned.

    Roots are listed under ``None``. Entries need ``causation_id`` and
    ``parent_causation_id`` keys (audit rows provide both).
    """
    tree: Dict[Optional[str], list[str]] = {}
    for entry in entries:
        causation_id = entry["causation_id"]
        if causation_id is None:
            continue
        children = tree.setdefault(entry.get("parent_causation_id"), [])
        if causation_id not in children:
            children.append(causation_id)
    return tree


# Request-scoped; read by the logging filter
_current_context: ContextVar[Optional[RequestContext]] = ContextVar(
    "clubcore_request_context", default=None
)


def get_current_context() -> Optional[RequestContext]:
    return _current_context.get()


def set_current_context(context: Optional[RequestContext]):
    """Bind a context to the running task. Returns a token for ``reset``."""
    return _current_context.set(context)


def reset_current_context(token) -> None:
    _current_context.reset(token)
