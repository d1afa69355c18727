import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from scenario.campaign_log import COUNT_ENTRY_ID, CampaignLogView
from scenario.errors import ScenarioDataError
from scenario.types import (
    BinaryResult,
    ConditionResult,
    InvestigatorResult,
    NumberResult,
    Option,
    OptionWithId,
    StringResult,
    parse_condition,
)

logger = logging.getLogger(__name__)


ConditionFn = Callable[[Any, CampaignLogView], Any]


# ──────────────────────────────────────────────
# Result builders
# ──────────────────────────────────────────────

def binary_result(decision: bool, options: List[Option]) -> BinaryResult:
    if_true = next((o for o in options if o.boolCondition is True), None)
    if_false = next((o for o in options if o.boolCondition is False), None)
    return BinaryResult(decision=decision, option=if_true if decision else if_false)


def number_result(
    value: int,
    options: List[Option],
    default_option: Optional[Option] = None,
) -> NumberResult:
    choice = next((o for o in options if o.numCondition == value), None)
    return NumberResult(number=value, option=choice if choice is not None else default_option)


def string_result(
    value: str,
    options: List[Option],
    default_option: Optional[Option] = None,
) -> StringResult:
    choice = next((o for o in options if o.condition == value), None)
    return StringResult(string=value, option=choice if choice is not None else default_option)


def _bool_id(value: Optional[bool]) -> str:
    return "true" if value else "false"


def investigator_result(
    decisions: Dict[str, bool],
    options: List[Option],
) -> InvestigatorResult:
    """
    Investigators whose decision has no matching option are dropped.
    """
    choices: Dict[str, List[str]] = {}
    for code, decision in decisions.items():
        if any(o.boolCondition == decision for o in options):
            choices[code] = [_bool_id(decision)]
    return InvestigatorResult(
        investigatorChoices=choices,
        options=[
            OptionWithId.model_validate({**o.model_dump(), "id": _bool_id(o.boolCondition)})
            for o in options
        ],
    )


# ──────────────────────────────────────────────
# Operands
# ──────────────────────────────────────────────

def operand_value(op, campaign_log: CampaignLogView) -> int:
    if op.type == "campaign_log_count":
        return campaign_log.count(op.section, op.id or COUNT_ENTRY_ID)
    if op.type == "chaos_bag":
        return campaign_log.chaos_bag.get(op.token, 0)
    return op.value


def perform_op(op_a: int, op_b: int, operation: str) -> int:
    if operation == "compare":
        if op_a < op_b:
            return -1
        if op_a == op_b:
            return 0
        return 1
    if operation == "sum":
        return op_a + op_b
    raise ScenarioDataError(f"Unsupported math operation: {operation}")


def _has_supply(supplies: Dict[str, Any], supply_id: str) -> bool:
    if supplies.get("crossedOut", {}).get(supply_id):
        return False
    return any(e.get("id") == supply_id for e in supplies.get("entries", []))


class ConditionRegistry:
    """
    Evaluates scenario conditions against a campaign log.
    Conditions are:
      - pure (the log is only read)
      - deterministic
      - total over well-formed content; a value with no matching
        option yields option=None, not an error
    """

    def __init__(self):
        self._conditions: Dict[str, ConditionFn] = {}

        # register built-ins
        self.register("multi", self._multi)
        self.register("check_supplies", self._check_supplies)
        self.register("campaign_log", self._campaign_log)
        self.register("campaign_log_section_exists", self._campaign_log)
        self.register("campaign_log_count", self._campaign_log_count)
        self.register("math", self._math)
        self.register("campaign_data", self._campaign_data)
        self.register("has_card", self._has_card)
        self.register("trauma", self._trauma)
        self.register("scenario_data", self._scenario_data)

    # ──────────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────────

    def register(self, name: str, fn: ConditionFn):
        if name in self._conditions:
            raise ValueError(f"Condition already registered: {name}")
        self._conditions[name] = fn

    def evaluate(self, condition, campaign_log: CampaignLogView) -> ConditionResult:
        """
        condition: a Condition model, or its raw authored dict
        Returns one of BinaryResult / NumberResult / StringResult / InvestigatorResult.
        """
        if isinstance(condition, dict):
            try:
                condition = parse_condition(condition)
            except ValidationError as e:
                raise ScenarioDataError(f"Invalid condition: {e}") from e

        ctype = condition.type
        if ctype not in self._conditions:
            raise KeyError(f"Unknown condition type: {ctype}")

        result = self._conditions[ctype](condition, campaign_log)
        if getattr(result, "option", True) is None:
            logger.debug("Condition %s matched no option (%s)", ctype, result.type)
        else:
            logger.debug("Condition %s evaluated to %s", ctype, result.type)
        return result

    # ──────────────────────────────────────────────
    # Campaign log
    # ──────────────────────────────────────────────

    def _campaign_log(self, cond, log) -> BinaryResult:
        if cond.type == "campaign_log":
            decision = log.check(cond.section, cond.id)
        else:
            decision = log.section_exists(cond.section)
        return binary_result(decision, cond.options)

    def _campaign_log_count(self, cond, log) -> NumberResult:
        return number_result(
            log.count(cond.section, cond.id),
            cond.options,
            cond.defaultOption,
        )

    def _multi(self, cond, log) -> BinaryResult:
        """
        Each sub-condition counts once when it selects an option.
        """
        count = sum(
            1 for sub in cond.conditions
            if self._campaign_log(sub, log).option is not None
        )
        return binary_result(count >= cond.count, cond.options)

    def _check_supplies(self, cond, log):
        supplies_by_code = log.investigator_sections.get(cond.section, {})
        if cond.investigator == "any":
            return binary_result(
                any(_has_supply(s, cond.id) for s in supplies_by_code.values()),
                cond.options,
            )
        return investigator_result(
            {code: _has_supply(s, cond.id) for code, s in supplies_by_code.items()},
            cond.options,
        )

    # ──────────────────────────────────────────────
    # Math
    # ──────────────────────────────────────────────

    def _math(self, cond, log):
        op_a = operand_value(cond.opA, log)
        op_b = operand_value(cond.opB, log)
        if cond.operation == "equals":
            return binary_result(op_a == op_b, cond.options)
        # Only sum falls back to the default option.
        return number_result(
            perform_op(op_a, op_b, cond.operation),
            cond.options,
            cond.defaultOption if cond.operation == "sum" else None,
        )

    # ──────────────────────────────────────────────
    # Campaign data
    # ──────────────────────────────────────────────

    def _campaign_data(self, cond, log):
        kind = cond.campaign_data
        if kind == "scenario_completed":
            return binary_result(
                log.scenario_status(cond.scenario) == "completed",
                cond.options,
            )
        if kind == "difficulty":
            return string_result(
                log.campaign_data.get("difficulty") or "standard",
                cond.options,
            )
        if kind == "chaos_bag":
            return number_result(log.chaos_bag.get(cond.token, 0), cond.options)
        return self._campaign_data_investigator(cond, log)

    def _campaign_data_investigator(self, cond, log) -> BinaryResult:
        """
        First investigator (in log order) matching any option wins.
        With no match the decision is False and the default option is used
        directly, rather than the usual boolCondition lookup.
        """
        for card in log.investigators(False):
            for option in cond.options:
                if option.condition is None:
                    continue
                if card.data_matches(cond.investigator_data, option.condition):
                    return BinaryResult(decision=True, option=option)
        return BinaryResult(decision=False, option=cond.defaultOption)

    # ──────────────────────────────────────────────
    # Investigators
    # ──────────────────────────────────────────────

    def _has_card(self, cond, log):
        if cond.investigator == "each":
            return investigator_result(
                {code: log.has_card(code, cond.card) for code in log.investigator_codes(False)},
                cond.options,
            )
        # Card conditions still care about eliminated investigators.
        decision = any(
            (cond.investigator != "defeated" or log.is_defeated(code))
            and log.has_card(code, cond.card)
            for code in log.investigator_codes(True)
        )
        return binary_result(decision, cond.options)

    def _trauma_check(self, trauma: str, log) -> Callable[[str], bool]:
        if trauma == "mental":
            return log.has_mental_trauma
        if trauma == "physical":
            return log.has_physical_trauma
        return log.is_killed

    def _trauma(self, cond, log):
        check = self._trauma_check(cond.trauma, log)
        if cond.investigator == "lead_investigator":
            return binary_result(check(log.lead_investigator_choice()), cond.options)
        if cond.investigator == "all":
            # Checking all of them, so eliminated ones count; none at all is vacuously true.
            codes = log.investigator_codes(True)
            return binary_result(
                len(codes) == 0 or all(check(code) for code in codes),
                cond.options,
            )
        return investigator_result(
            {code: check(code) for code in log.investigator_codes(False)},
            cond.options,
        )

    # ──────────────────────────────────────────────
    # Scenario data
    # ──────────────────────────────────────────────

    def _scenario_data(self, cond, log):
        kind = cond.scenario_data
        if kind == "player_count":
            return number_result(log.player_count(), cond.options)
        if kind == "resolution":
            return string_result(log.resolution(), cond.options)
        if cond.investigator != "defeated":
            raise ScenarioDataError(
                f"Unexpected investigator_status scenario condition: {cond.investigator}"
            )
        return binary_result(
            any(log.is_defeated(code) for code in log.investigator_codes(False)),
            cond.options,
        )


DEFAULT_REGISTRY = ConditionRegistry()


def condition_result(condition, campaign_log: CampaignLogView) -> ConditionResult:
    return DEFAULT_REGISTRY.evaluate(condition, campaign_log)
