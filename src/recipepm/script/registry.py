"""Script host registry.

Hosts are probed in registration order and the first one whose
``can_load`` accepts the recipe loads it. ``default_registry()`` returns
the built-in hosts; embedders register additional hosts (for example an
``InProcessHost``) ahead of them.
"""

from __future__ import annotations

from pathlib import Path

from recipepm.exceptions import RecipeError
from recipepm.script.base import ScriptHandle, ScriptHost
from recipepm.script.module_host import ModuleHost


class HostRegistry:
    """Ordered list of script hosts.

    Attributes:
        hosts: Registered hosts, probed in order.
    """

    def __init__(self, hosts: list[ScriptHost] | None = None) -> None:
        self.hosts: list[ScriptHost] = list(hosts or [])

    def register(self, host: ScriptHost, first: bool = False) -> None:
        """Add a host; ``first=True`` probes it before existing hosts."""
        if first:
            self.hosts.insert(0, host)
        else:
            self.hosts.append(host)

    def find(self, path: Path) -> ScriptHost | None:
        for host in self.hosts:
            if host.can_load(path):
                return host
        return None

    def load(self, path: Path) -> ScriptHandle:
        """Load *path* with the first matching host.

        Raises:
            RecipeError: If no registered host can run the recipe.
        """
        host = self.find(path)
        if host is None:
            names = ", ".join(h.name for h in self.hosts) or "none"
            raise RecipeError(
                f"No script host can run {path} (registered hosts: {names})"
            )
        return host.load(path)


def default_registry() -> HostRegistry:
    """A registry with the built-in ``ModuleHost``."""
    return HostRegistry([ModuleHost()])
