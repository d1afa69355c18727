import logging
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from scenario.campaign_log import GuidedCampaignLog
from scenario.conditions import ConditionRegistry
from scenario.errors import RunnerStateError, UnknownStepError
from scenario.types import (
    BranchStep,
    CampaignLogEffect,
    InputStep,
    InvestigatorResult,
    ResolutionStep,
    ScenarioDataEffect,
)
from script.effects import EffectRegistry
from script.scenario_guide import ScenarioGuide

logger = logging.getLogger(__name__)


class ScenarioRunner:
    """
    Walks a scenario's steps against a campaign log.

    Branch steps and effect-only steps are resolved automatically; the
    runner stops at each input step until submit() answers it. Every answer
    produces a new campaign log snapshot.
    """

    def __init__(
        self,
        guide: ScenarioGuide,
        campaign_log: GuidedCampaignLog,
        effects: Optional[EffectRegistry] = None,
        conditions: Optional[ConditionRegistry] = None,
    ):
        """
        guide: step index for the scenario being played
        campaign_log: starting snapshot
        effects / conditions: optional registries (injected for tests)
        """
        self.guide = guide
        self.effects = effects or EffectRegistry()
        self.conditions = conditions or ConditionRegistry()

        if campaign_log.scenario_id != guide.id:
            state = campaign_log.snapshot()
            state["scenarioId"] = guide.id
            campaign_log = GuidedCampaignLog(state)
        self.campaign_log = campaign_log

        # progression state
        self.pending: Deque[str] = deque(guide.step_ids())
        self.current_step: Optional[InputStep] = None

        # history
        self.event_log: List[Dict[str, Any]] = []
        self.resolutions: List[str] = []

        self._submit_handlers = {
            "choose_one": self._submit_choose_one,
            "investigator_choice": self._submit_investigator_choice,
            "scenario_investigators": self._submit_scenario_investigators,
            "supplies": self._submit_supplies,
        }

    @property
    def finished(self) -> bool:
        return self.current_step is None and not self.pending

    # ──────────────────────────────────────────────
    # Progression
    # ──────────────────────────────────────────────

    def advance(self) -> Optional[InputStep]:
        """
        Runs until an input step is reached (returned) or the scenario ends (None).
        """
        while self.current_step is None and self.pending:
            step_id = self.pending.popleft()
            step = self.guide.get_step(step_id, self.campaign_log)
            if step is None:
                raise UnknownStepError(step_id)

            self.event_log.append({"step": step_id, "type": step.type})

            if isinstance(step, InputStep):
                self.current_step = step
            elif isinstance(step, BranchStep):
                self._run_branch(step)
            elif isinstance(step, ResolutionStep):
                logger.info("Scenario %s reached resolution %s", self.guide.id, step.resolution)
                self.resolutions.append(step.resolution)
            else:
                self._apply(step.effects)

        return self.current_step

    def submit(self, value: Any = None) -> Optional[InputStep]:
        """
        Answers the current input step, then advances.
          choose_one:             "<choice id>"
          investigator_choice:    {"<code>": "<choice id>"} (or a bare code for a single choice)
          scenario_investigators: ["<code>", ...]
          supplies:               {"<code>": ["<supply id>", ...]}
        Other input kinds take no value.
        """
        step = self.current_step
        if step is None:
            raise RunnerStateError("No input step is waiting for an answer")

        handler = self._submit_handlers.get(step.input.type)
        if handler:
            handler(step, value)

        self.event_log.append({"step": step.id, "type": "input", "value": value})
        self.current_step = None
        return self.advance()

    # ──────────────────────────────────────────────
    # Steps
    # ──────────────────────────────────────────────

    def _run_branch(self, step: BranchStep):
        result = self.conditions.evaluate(step.condition, self.campaign_log)

        if isinstance(result, InvestigatorResult):
            spliced: List[str] = []
            pending = []
            for option in result.options:
                chosen = [
                    code for code, ids in result.investigatorChoices.items()
                    if option.id in ids
                ]
                if not chosen:
                    continue
                pending.extend((option.effects, code) for code in chosen)
                spliced.extend(option.steps)
            self._apply_each(pending)
            self._splice(spliced)
            return

        if result.option is None:
            logger.debug("Branch %s has no transition", step.id)
            return
        self._apply(result.option.effects)
        self._splice(result.option.steps)

    def _splice(self, step_ids: List[str]):
        self.pending.extendleft(reversed(step_ids))

    def _apply(self, effects, input_value: Optional[str] = None):
        self.campaign_log = self.effects.apply(effects, self.campaign_log, input_value)

    def _apply_each(self, pending):
        """
        pending: (effects, input_value) pairs
        The log is replaced only once every pair has applied.
        """
        log = self.campaign_log
        for effects, input_value in pending:
            log = self.effects.apply(effects, log, input_value)
        self.campaign_log = log

    # ──────────────────────────────────────────────
    # Inputs
    # ──────────────────────────────────────────────

    def _find_choice(self, step: InputStep, choice_id: str):
        for choice in step.input.choices:
            if choice.id == choice_id:
                return choice
        raise ValueError(f"Unknown choice {choice_id} for step {step.id}")

    def _submit_choose_one(self, step: InputStep, value):
        choice = self._find_choice(step, value)
        self._apply(choice.effects)
        self._splice(choice.steps)

    def _submit_investigator_choice(self, step: InputStep, value):
        if isinstance(value, str):
            value = {value: step.input.choices[0].id}
        if not isinstance(value, dict) or not value:
            raise ValueError(f"Step {step.id} expects investigator choices")

        codes = self.campaign_log.investigator_codes(False)
        unknown = [code for code in value if code not in codes]
        if unknown:
            raise ValueError(f"Unknown investigators: {', '.join(unknown)}")
        if step.input.investigator == "all":
            missing = [code for code in codes if code not in value]
            if missing:
                raise ValueError(f"Step {step.id} needs a choice for: {', '.join(missing)}")

        picked = {code: self._find_choice(step, choice_id) for code, choice_id in value.items()}
        self._apply_each([(choice.effects, code) for code, choice in picked.items()])

        spliced: List[str] = []
        for choice in step.input.choices:
            if any(c.id == choice.id for c in picked.values()):
                spliced.extend(choice.steps)
        self._splice(spliced)

    def _submit_scenario_investigators(self, step: InputStep, value):
        codes = list(value or [])
        known = set(self.campaign_log.investigator_codes(True))
        unknown = [code for code in codes if code not in known]
        if unknown:
            raise ValueError(f"Unknown investigators: {', '.join(unknown)}")
        self._apply([
            ScenarioDataEffect(type="scenario_data", setting="investigators", investigators=codes),
        ])

    def _submit_supplies(self, step: InputStep, value):
        if value is None:
            value = {}
        if not isinstance(value, dict):
            raise ValueError(f"Step {step.id} expects supplies per investigator")

        supplies = {s.id: s for s in step.input.supplies}
        effects = []
        for code, supply_ids in value.items():
            if not isinstance(supply_ids, list):
                raise ValueError(f"Supplies for {code} must be a list of supply ids")
            spent = 0
            for supply_id in supply_ids:
                if supply_id not in supplies:
                    raise ValueError(f"Unknown supply {supply_id} for step {step.id}")
                spent += supplies[supply_id].cost
                effects.append(CampaignLogEffect(
                    type="campaign_log",
                    section=step.input.section,
                    id=supply_id,
                    investigator=code,
                ))
            if step.input.points and spent > step.input.points:
                raise ValueError(f"{code} spent {spent} of {step.input.points} supply points")
        self._apply(effects)
