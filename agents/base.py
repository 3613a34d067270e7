"""
Base Agent classes
Brand Social Comparative Analytics
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Dict, Optional
from dataclasses import dataclass, field
from datetime import datetime
import logging
import traceback

logger = logging.getLogger(__name__)


@dataclass
class AgentResult:
    """Standardized success/failure envelope returned by every agent."""
    agent_name: str
    success: bool
    data: Any = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def unwrap_or(self, default: Any) -> Any:
        return self.data if self.success else default

    def __repr__(self):
        status = "✅" if self.success else "❌"
        dur = f" ({self.duration_seconds:.1f}s)" if self.duration_seconds else ""
        return f"{status} {self.agent_name}{dur}"


class Agent(ABC):
    """
    Abstract base class for synchronous (CPU-bound) pipeline agents.
    Subclasses must implement `run(data)`.
    """

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(f"agent.{name}")

    @abstractmethod
    def run(self, data: Any) -> Any:
        raise NotImplementedError

    def execute(self, data: Any) -> AgentResult:
        """
        Wraps `run()` with timing, structured logging, and error handling.
        Never raises.
        """
        started_at = datetime.utcnow()
        self.logger.info(f"[{self.name}] Starting...")
        try:
            result = self.run(data)
        except Exception as e:
            return self._failure(e, started_at)
        return self._success(result, started_at)

    def _success(self, result: Any, started_at: datetime) -> AgentResult:
        finished_at = datetime.utcnow()
        duration = (finished_at - started_at).total_seconds()
        self.logger.info(f"[{self.name}] Completed in {duration:.2f}s")
        return AgentResult(
            agent_name=self.name,
            success=True,
            data=result,
            started_at=started_at,
            finished_at=finished_at,
        )

    def _failure(self, error: Exception, started_at: datetime) -> AgentResult:
        self.logger.error(f"[{self.name}] Failed: {error}\n{traceback.format_exc()}")
        return AgentResult(
            agent_name=self.name,
            success=False,
            error=str(error),
            started_at=started_at,
            finished_at=datetime.utcnow(),
        )

    def __repr__(self):
        return f"<Agent: {self.name}>"


class AsyncAgent(Agent):
    """Agent whose `run()` performs async I/O."""

    @abstractmethod
    async def run(self, data: Any) -> Any:
        raise NotImplementedError

    async def execute(self, data: Any) -> AgentResult:
        started_at = datetime.utcnow()
        self.logger.info(f"[{self.name}] Starting...")
        try:
            result = await self.run(data)
        except Exception as e:
            return self._failure(e, started_at)
        return self._success(result, started_at)


async def capture(name: str, awaitable: Awaitable[Any]) -> AgentResult:
    """Await one task and fold its outcome into an AgentResult."""
    started_at = datetime.utcnow()
    try:
        data = await awaitable
    except Exception as e:
        logger.warning(f"  ⚠️ {name} failed: {e}")
        return AgentResult(
            agent_name=name, success=False, error=str(e),
            started_at=started_at, finished_at=datetime.utcnow(),
        )
    return AgentResult(
        agent_name=name, success=True, data=data,
        started_at=started_at, finished_at=datetime.utcnow(),
    )
