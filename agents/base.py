"""
Base Agent class and Orchestrator
ASO Keyword Combination Engine
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import traceback
import time


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AgentResult:
    """Standardized result envelope returned by every stage."""
    agent_name: str
    success: bool
    data: Any = None
    error: Optional[str] = None
    exception: Optional[BaseException] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def __repr__(self):
        status = "ok" if self.success else "FAILED"
        dur = f" ({self.duration_seconds:.3f}s)" if self.duration_seconds else ""
        return f"[{status}] {self.agent_name}{dur}"


class Agent(ABC):
    """
    Abstract base class for all pipeline stages.
    Subclasses must implement `run(data)`; `run` must be a pure
    transformation of its input.
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
        """
        started_at = _now()
        self.logger.debug(f"[{self.name}] Starting...")
        try:
            result = self.run(data)
            finished_at = _now()
            duration = (finished_at - started_at).total_seconds()
            self.logger.debug(f"[{self.name}] Completed in {duration:.3f}s")
            return AgentResult(
                agent_name=self.name,
                success=True,
                data=result,
                started_at=started_at,
                finished_at=finished_at,
            )
        except Exception as e:
            finished_at = _now()
            self.logger.error(f"[{self.name}] Failed: {e}\n{traceback.format_exc()}")
            return AgentResult(
                agent_name=self.name,
                success=False,
                error=str(e),
                exception=e,
                started_at=started_at,
                finished_at=finished_at,
            )

    def __repr__(self):
        return f"<Agent: {self.name}>"


class Orchestrator:
    """
    Runs stages in order, feeding each stage's output to the next.

    The first failing stage ends the run and its AgentResult is returned,
    so callers can inspect `exception` (e.g. to re-raise a
    ConfigurationError untouched).
    """

    def __init__(self, agents: List[Agent], name: str = "pipeline"):
        self.agents = agents
        self.name = name
        self.logger = logging.getLogger(f"orchestrator.{name}")
        self.run_history: List[AgentResult] = []

    def execute(self, input_data: Any) -> AgentResult:
        self.run_history.clear()
        result = AgentResult(agent_name=self.name, success=True, data=input_data)
        total_start = time.time()

        for i, agent in enumerate(self.agents, 1):
            self.logger.debug(f"[{self.name}] stage {i}/{len(self.agents)}: {agent.name}")
            result = agent.execute(result.data)
            self.run_history.append(result)
            if not result.success:
                self.logger.error(f"[{self.name}] stopped at '{agent.name}': {result.error}")
                return result

        self.logger.info(
            f"[{self.name}] {len(self.agents)} stages done in {time.time() - total_start:.3f}s"
        )
        return result

    @property
    def failed_stage(self) -> Optional[str]:
        failed = [r.agent_name for r in self.run_history if not r.success]
        return failed[0] if failed else None

    def summary(self) -> str:
        lines = [f"{self.name}:"]
        lines.extend(f"  {r}" for r in self.run_history)
        return "\n".join(lines)
