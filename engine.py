"""
Simulation engine interface and the context object that owns it.

The engine keeps process-wide state (clock, event queue, object registry), so
only one SimulationContext may be open at a time. Opening the context
initializes the engine; closing it tears the engine down, on every exit path.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping

from models import AppRole, DeviceParameters, EngineSetupError, FlowRecord
from topology import Position

logger = logging.getLogger(__name__)


class SimulationEngine(ABC):
    """Narrow view of an external discrete-event network simulator."""

    @abstractmethod
    def configure_defaults(self, device: DeviceParameters) -> None:
        ...

    @abstractmethod
    def create_nodes(self, node_count: int, positions: Mapping[int, Position]) -> Any:
        ...

    @abstractmethod
    def install_network_stack(self, nodes: Any, device: DeviceParameters) -> Dict[int, str]:
        ...

    @abstractmethod
    def install_application(self, nodes: Any, index: int, role: AppRole, config: Any) -> Any:
        ...

    @abstractmethod
    def install_flow_instrumentation(self, nodes: Any) -> Any:
        ...

    @abstractmethod
    def advance_to(self, stop_time: float) -> None:
        ...

    @abstractmethod
    def teardown(self) -> None:
        ...

    @abstractmethod
    def get_flow_records(self, monitor: Any) -> Dict[int, FlowRecord]:
        ...

    @abstractmethod
    def serialize_flow_report(self, monitor: Any, path: str) -> None:
        ...

    @abstractmethod
    def serialize_animation_trace(self, nodes: Any, path: str, positions: Mapping[int, Position]) -> None:
        ...


EngineFactory = Callable[[], SimulationEngine]


class SimulationContext:
    _live = None

    def __init__(self, engine_factory: EngineFactory):
        if SimulationContext._live is not None:
            raise EngineSetupError("another simulation context is still open")
        try:
            self.engine = engine_factory()
        except EngineSetupError:
            raise
        except Exception as exc:
            raise EngineSetupError(f"engine initialization failed: {exc}") from exc
        self._torn_down = False
        self._dirty = False
        self._closed = False
        SimulationContext._live = self
        logger.debug("Simulation context opened (%s)", type(self.engine).__name__)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    def mark_used(self) -> None:
        """Record engine calls made after teardown so close() releases them."""
        if self._torn_down:
            self._dirty = True

    def teardown(self) -> None:
        if self._torn_down and not self._dirty:
            return
        self._torn_down = True
        self._dirty = False
        self.engine.teardown()
        logger.debug("Engine torn down")

    def close(self) -> None:
        if self._closed:
            return
        try:
            self.teardown()
        finally:
            self._closed = True
            if SimulationContext._live is self:
                SimulationContext._live = None
            logger.debug("Simulation context closed")

    def __enter__(self) -> "SimulationContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
