import logging
from typing import Any, Callable, Dict, Iterable, Optional

from pydantic import ValidationError

from scenario.campaign_log import COUNT_ENTRY_ID, GuidedCampaignLog
from scenario.errors import ScenarioDataError
from scenario.types import parse_effect

logger = logging.getLogger(__name__)


INPUT_VALUE = "$input_value"

EffectFn = Callable[[Any, Dict[str, Any], Optional[str]], None]


def resolve_investigator(value: Optional[str], input_value: Optional[str]) -> str:
    if value == INPUT_VALUE:
        if not input_value:
            raise ScenarioDataError("Effect needs an investigator but no input value was given")
        return input_value
    if not value:
        raise ScenarioDataError("Effect is missing its investigator")
    return value


def _entries_block(container: Dict[str, Any], key: str) -> Dict[str, Any]:
    block = container.setdefault(key, {})
    block.setdefault("entries", [])
    block.setdefault("crossedOut", {})
    return block


class EffectRegistry:
    """
    Applies effects emitted by scenario steps to a campaign log.

    Effects are data, not logic. Handlers get a private copy of the log
    state and edit it in place; the caller's snapshot is never touched and a
    new GuidedCampaignLog is returned.
    """

    def __init__(self):
        self._effects: Dict[str, EffectFn] = {}

        # register built-ins
        self.register("scenario_data", self._scenario_data)
        self.register("campaign_log", self._campaign_log)
        self.register("campaign_log_count", self._campaign_log_count)
        self.register("campaign_data", self._campaign_data)
        self.register("trauma", self._trauma)
        self.register("add_chaos_bag", self._chaos_bag)
        self.register("remove_chaos_bag", self._chaos_bag)
        self.register("add_card", self._card)
        self.register("remove_card", self._card)

    # ──────────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────────

    def register(self, name: str, fn: EffectFn):
        if name in self._effects:
            raise ValueError(f"Effect already registered: {name}")
        self._effects[name] = fn

    def apply(
        self,
        effects: Iterable[Any],
        campaign_log: GuidedCampaignLog,
        input_value: Optional[str] = None,
    ) -> GuidedCampaignLog:
        """
        effects: Effect models or raw dicts
        input_value: substituted for "$input_value" investigator placeholders
        """
        effects = list(effects)
        if not effects:
            return campaign_log

        state = campaign_log.snapshot()
        for effect in effects:
            if isinstance(effect, dict):
                try:
                    effect = parse_effect(effect)
                except ValidationError as e:
                    raise ScenarioDataError(f"Invalid effect: {e}") from e

            etype = effect.type
            if etype not in self._effects:
                raise KeyError(f"Unknown effect type: {etype}")

            logger.debug("Applying effect %s", etype)
            self._effects[etype](effect, state, input_value)
        return GuidedCampaignLog(state)

    # ──────────────────────────────────────────────
    # Built-in Effects
    # ──────────────────────────────────────────────

    def _scenario_data(self, effect, state, input_value):
        """
        effect:
          { "type": "scenario_data", "setting": "scenario_status", "status": "completed" }
          { "type": "scenario_data", "setting": "investigator_status",
            "investigator": "$input_value", "investigator_status": "resigned" }
        """
        scenario = state.setdefault("scenarioData", {})
        setting = effect.setting

        if setting == "scenario_status":
            scenario["status"] = effect.status
            if effect.status == "resolution":
                scenario["resolution"] = effect.resolution
            scenario_id = state.get("scenarioId")
            if scenario_id:
                statuses = state.setdefault("campaignData", {}).setdefault("scenarioStatus", {})
                statuses[scenario_id] = effect.status
        elif setting == "lead_investigator":
            scenario["leadInvestigator"] = resolve_investigator(effect.investigator, input_value)
        elif setting == "investigator_status":
            code = resolve_investigator(effect.investigator, input_value)
            scenario.setdefault("investigatorStatus", {})[code] = effect.investigator_status
        elif setting == "player_count":
            scenario["playerCount"] = effect.value
        elif setting == "investigators":
            scenario["investigators"] = list(effect.investigators or [])

    def _campaign_log(self, effect, state, input_value):
        """
        effect:
          { "type": "campaign_log", "section": "campaign_notes", "id": "door_opened" }
          { "type": "campaign_log", "section": "supplies", "id": "rope",
            "investigator": "$input_value", "cross_out": true }
        """
        if effect.investigator:
            code = resolve_investigator(effect.investigator, input_value)
            by_code = state.setdefault("investigatorSections", {}).setdefault(effect.section, {})
            block = _entries_block(by_code, code)
        else:
            block = _entries_block(state.setdefault("sections", {}), effect.section)

        if effect.remove:
            block["entries"] = [e for e in block["entries"] if e.get("id") != effect.id]
            block["crossedOut"].pop(effect.id, None)
            return
        if effect.cross_out:
            block["crossedOut"][effect.id] = True
            return
        if not any(e.get("id") == effect.id for e in block["entries"]):
            entry = {"id": effect.id}
            if effect.text:
                entry["text"] = effect.text
            block["entries"].append(entry)

    def _campaign_log_count(self, effect, state, input_value):
        """
        effect:
          { "type": "campaign_log_count", "section": "doom", "operation": "add", "value": 2 }
        Without "id" the section tally is updated.
        """
        if not effect.id or effect.id == COUNT_ENTRY_ID:
            target = state.setdefault("countSections", {}).setdefault(effect.section, {})
        else:
            block = _entries_block(state.setdefault("sections", {}), effect.section)
            target = next((e for e in block["entries"] if e.get("id") == effect.id), None)
            if target is None:
                target = {"id": effect.id}
                block["entries"].append(target)

        current = int(target.get("count", 0))
        if effect.operation == "add":
            target["count"] = current + effect.value
        elif effect.operation == "subtract":
            target["count"] = max(0, current - effect.value)
        else:
            target["count"] = effect.value

    def _campaign_data(self, effect, state, input_value):
        state.setdefault("campaignData", {})[effect.setting] = effect.value

    def _trauma(self, effect, state, input_value):
        """
        effect:
          { "type": "trauma", "investigator": "$input_value", "mental": 1 }
        """
        code = resolve_investigator(effect.investigator, input_value)
        by_code = state.setdefault("campaignData", {}).setdefault("investigatorData", {})
        data = by_code.setdefault(code, {})
        data["mental"] = int(data.get("mental", 0)) + effect.mental
        data["physical"] = int(data.get("physical", 0)) + effect.physical
        if effect.killed:
            data["killed"] = True
        if effect.insane:
            data["insane"] = True

    def _chaos_bag(self, effect, state, input_value):
        """
        effect:
          { "type": "add_chaos_bag", "tokens": {"skull": 1} }
        """
        bag = state.setdefault("chaosBag", {})
        sign = 1 if effect.type == "add_chaos_bag" else -1
        for token, amount in effect.tokens.items():
            count = max(0, bag.get(token, 0) + sign * amount)
            if count:
                bag[token] = count
            else:
                bag.pop(token, None)

    def _card(self, effect, state, input_value):
        code = resolve_investigator(effect.investigator, input_value)
        for inv in state.get("investigators", []):
            if inv.get("code") != code:
                continue
            cards = inv.setdefault("cards", [])
            if effect.type == "add_card":
                cards.append(effect.card)
            elif effect.card in cards:
                cards.remove(effect.card)
            return
        raise ScenarioDataError(f"Unknown investigator for card effect: {code}")
