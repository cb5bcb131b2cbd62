"""Context object shared by the main loop and per-connection tasks."""

from dataclasses import dataclass, field

from httpengine.bootstrap.config import EngineConfig
from httpengine.lifecycle.state import ServerLifecycle
from httpengine.pipeline.invocation import Handler
from httpengine.transport.connection_manager import ConnectionManager


@dataclass
class EngineContext:
    """Dependencies shared across connection tasks."""

    config: EngineConfig
    handler: Handler
    manager: ConnectionManager
    lifecycle: ServerLifecycle = field(default_factory=ServerLifecycle)
