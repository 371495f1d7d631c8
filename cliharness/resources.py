"""Registry for scenario-scoped resources that must not outlive the scenario."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Resource:
    """A registered resource and how to dispose of it."""

    kind: str
    handle: Any
    dispose_fn: Callable[[Any], None]
    label: str = ""
    disposed: bool = field(default=False, compare=False)


class ResourceRegistry:
    """Tracks resources and disposes of them in reverse creation order.

    Cleanup continues when an individual disposal fails; failures are logged
    as warnings.

    Attributes
    ----------
    resources : list[Resource]
        Live resources in creation order
    """

    def __init__(self) -> None:
        self.resources: list[Resource] = []

    def register(
        self,
        kind: str,
        handle: Any,
        dispose_fn: Callable[[Any], None],
        label: str = "",
    ) -> Resource:
        """Register a resource for disposal at scenario end.

        Parameters
        ----------
        kind : str
            Type of resource (e.g. "process-group")
        handle : Any
            Passed to ``dispose_fn``
        dispose_fn : Callable
            Called as ``dispose_fn(handle)`` during cleanup
        label : str, optional
            Descriptive label for logs

        Returns
        -------
        Resource
            Entry that can later be passed to ``release``
        """
        entry = Resource(kind=kind, handle=handle, dispose_fn=dispose_fn, label=label)
        self.resources.append(entry)
        logger.debug("Registered %s: %s", kind, label)
        return entry

    def release(self, entry: Resource) -> None:
        """Forget a resource that was disposed of by its owner."""
        try:
            self.resources.remove(entry)
            logger.debug("Released %s: %s", entry.kind, entry.label)
        except ValueError:
            pass

    def cleanup_all(self) -> None:
        """Dispose of every live resource, newest first."""
        while self.resources:
            entry = self.resources.pop()
            try:
                entry.dispose_fn(entry.handle)
                entry.disposed = True
                logger.debug("Cleaned up %s: %s", entry.kind, entry.label)
            except Exception as e:
                logger.warning(
                    "Cleanup failed for %s '%s': %s", entry.kind, entry.label, e
                )
