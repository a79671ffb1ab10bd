"""Update planning — full reinstall vs. patch chain.

Chain resolution searches backwards from the desired version. Only the
target's own patch sources are fetched from the index; when the current
version is not among them, the nearest source above the current version
becomes a waypoint and the search recurses towards it. Targets strictly
decrease, so the search terminates.
"""

import logging

from patchlauncher.core.models import (
    FullReinstall, PatchChain, PlanDecision, Unreachable, UpToDate,
)
from patchlauncher.core.patch_index import PatchIndexClient

logger = logging.getLogger(__name__)


class UpdatePlanner:
    """Decides how to bring the installation from current to desired."""

    def __init__(self, index: PatchIndexClient):
        self.index = index

    def plan(self, current: int, desired: int, origin_server: str,
             expected_origin_server: str, stable: int) -> PlanDecision:
        if origin_server != expected_origin_server:
            logger.info("Installed from %r, expected %r: full reinstall",
                        origin_server, expected_origin_server)
            return FullReinstall(stable)

        if current > desired:
            # Patches only go forward
            logger.info("Installed %d is newer than desired %d: full reinstall",
                        current, desired)
            return FullReinstall(stable)

        if current == desired:
            return UpToDate()

        chain = self.resolve(current, desired)
        if chain is None:
            logger.warning("No patch chain from %d to %d", current, desired)
            return Unreachable()

        logger.info("Patch chain from %d: %s", current, chain)
        return PatchChain(tuple(chain))

    def resolve(self, current: int, target: int) -> list[int] | None:
        """Return destination versions leading from current to target, or None."""
        sources = self.index.list_sources(target)

        if current in sources:
            return [target]

        # Sources at or above target would not shrink the search
        candidates = [s for s in sources if current < s < target]
        if not candidates:
            return None

        waypoint = min(candidates)
        logger.debug("No patch %d -> %d, trying waypoint %d", current, target, waypoint)

        subplan = self.resolve(current, waypoint)
        if subplan is None:
            return None
        return subplan + [target]
