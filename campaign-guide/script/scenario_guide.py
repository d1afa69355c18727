import logging
from typing import Dict, List, Optional, Set

from scenario.campaign_log import CampaignLogView
from scenario.errors import ScenarioDataError
from scenario.fixed_steps import (
    CHOOSE_RESOLUTION_STEP_ID,
    get_fixed_step,
    scenario_step_ids,
)
from scenario.types import BranchStep, InputStep, Scenario

logger = logging.getLogger(__name__)


class ScenarioGuide:
    """
    Step index for one scenario.

    Steps reference each other by id, so the graph is never materialized:
    authored steps are indexed once, fixed steps are generated on first
    request and memoized (they depend only on scenario metadata).
    """

    def __init__(self, scenario: Scenario):
        self.scenario = scenario
        self._authored: Dict[str, object] = {}
        self._fixed: Dict[str, object] = {}

        for step in scenario.steps:
            if step.id in self._authored:
                raise ScenarioDataError(
                    f"Duplicate step id {step.id} in scenario {scenario.id}"
                )
            self._authored[step.id] = step

        logger.debug("Indexed %d authored steps for %s", len(self._authored), scenario.id)

    @property
    def id(self) -> str:
        return self.scenario.id

    def step_ids(self) -> List[str]:
        return scenario_step_ids(self.scenario)

    def get_step(self, step_id: str, campaign_log: Optional[CampaignLogView] = None):
        if step_id in self._fixed:
            return self._fixed[step_id]

        fixed = get_fixed_step(step_id, self.scenario, campaign_log)
        if fixed is not None:
            self._fixed[step_id] = fixed
            return fixed

        return self._authored.get(step_id)

    # ──────────────────────────────────────────────
    # Graph walking
    # ──────────────────────────────────────────────

    def _children(self, step) -> List[str]:
        if isinstance(step, BranchStep):
            options = list(step.condition.options)
            default = getattr(step.condition, "defaultOption", None)
            if default is not None:
                options.append(default)
            return [sid for option in options for sid in option.steps]
        if isinstance(step, InputStep):
            choices = getattr(step.input, "choices", None) or []
            return [sid for choice in choices for sid in choice.steps]
        return []

    def reachable_step_ids(self) -> List[str]:
        """
        Every step id reachable from the top-level list, in discovery order.
        Unknown ids are included so callers can report them.
        """
        roots = self.step_ids()
        if self.scenario.resolutions and CHOOSE_RESOLUTION_STEP_ID not in roots:
            roots.append(CHOOSE_RESOLUTION_STEP_ID)

        seen: Set[str] = set()
        order: List[str] = []
        stack = list(reversed(roots))
        while stack:
            step_id = stack.pop()
            if step_id in seen:
                continue
            seen.add(step_id)
            order.append(step_id)
            step = self.get_step(step_id)
            if step is not None:
                stack.extend(reversed(self._children(step)))
        return order

    def missing_step_ids(self) -> List[str]:
        return [sid for sid in self.reachable_step_ids() if self.get_step(sid) is None]
