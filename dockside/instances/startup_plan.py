"""Start ordering for a set of server configs."""

import heapq
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..core.errors import CyclicDependencyError, DuplicateNameError, UnknownDependencyError
from ..core.log import Logger, get_logger
from .server_config import ServerConfig


@dataclass
class StartupPlan:
    """Validated start order.

    ``order`` is a topological order of ``configs``; ``waves`` groups it into
    batches whose members depend only on earlier batches.
    """

    order: List[ServerConfig] = field(default_factory=list)
    waves: List[List[ServerConfig]] = field(default_factory=list)

    @property
    def names(self) -> List[str]:
        return [config.container_name() for config in self.order]

    def __len__(self) -> int:
        return len(self.order)


class StartupPlanner:
    """Validates names and dependencies and orders configs for startup."""

    def __init__(self, logger: Optional[Logger] = None) -> None:
        self._logger = logger or get_logger(__name__)

    def plan(self, configs: Sequence[ServerConfig]) -> StartupPlan:
        """Order ``configs`` so every dependency starts before its dependents.

        Ties are broken by registration order, so configs without
        dependencies start in the order they were registered.

        Raises:
            DuplicateNameError: Two configs share a container name
            UnknownDependencyError: A dependency names no registered config
            CyclicDependencyError: The dependencies form a cycle
        """
        by_name: Dict[str, ServerConfig] = {}
        position: Dict[str, int] = {}
        for index, config in enumerate(configs):
            name = config.container_name()
            if name in by_name:
                raise DuplicateNameError(
                    f"Container name {name!r} is registered twice",
                    details={"name": name},
                )
            by_name[name] = config
            position[name] = index

        dependents: Dict[str, List[str]] = {name: [] for name in by_name}
        indegree: Dict[str, int] = {name: 0 for name in by_name}
        for name, config in by_name.items():
            for dependency in dict.fromkeys(config.dependencies()):
                if dependency not in by_name:
                    raise UnknownDependencyError(
                        f"{name} depends on {dependency!r}, which is not registered",
                        details={"container": name, "dependency": dependency},
                    )
                dependents[dependency].append(name)
                indegree[name] += 1

        plan = StartupPlan()
        level: Dict[str, int] = {}
        ready = [(position[name], name) for name, degree in indegree.items() if degree == 0]
        heapq.heapify(ready)
        while ready:
            _, name = heapq.heappop(ready)
            config = by_name[name]
            level[name] = max(
                (level[dep] + 1 for dep in config.dependencies()), default=0
            )
            plan.order.append(config)
            for dependent in dependents[name]:
                indegree[dependent] -= 1
                if indegree[dependent] == 0:
                    heapq.heappush(ready, (position[dependent], dependent))

        if len(plan.order) != len(by_name):
            blocked = [name for name, degree in indegree.items() if degree > 0]
            cycle = self._find_cycle(by_name, blocked)
            raise CyclicDependencyError(
                "Dependency cycle: " + " -> ".join(cycle),
                cycle=cycle,
            )

        for config in plan.order:
            depth = level[config.container_name()]
            if depth == len(plan.waves):
                plan.waves.append([])
            plan.waves[depth].append(config)

        self._logger.debug("Startup order: %s", ", ".join(plan.names))
        return plan

    def _find_cycle(self, by_name: Dict[str, ServerConfig], blocked: List[str]) -> List[str]:
        """Walk dependencies from a blocked node until a name repeats."""
        blocked_set = set(blocked)
        path: List[str] = []
        seen: Dict[str, int] = {}
        current = blocked[0]
        while current not in seen:
            seen[current] = len(path)
            path.append(current)
            current = next(
                dep for dep in by_name[current].dependencies() if dep in blocked_set
            )
        return path[seen[current]:] + [current]
