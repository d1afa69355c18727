"""
Read side of the campaign log.

CampaignLogView is the query contract the condition evaluator and step
generator consume. GuidedCampaignLog is the in-memory implementation over a
plain JSON snapshot:

    {
      "scenarioId": "the_vanishing",
      "sections": {"campaign_notes": {"entries": [{"id": "door_opened"}], "crossedOut": {}}},
      "countSections": {"doom": {"count": 2}},
      "investigatorSections": {"supplies": {"01001": {"entries": [...], "crossedOut": {}}}},
      "chaosBag": {"skull": 2, "elder_sign": 1},
      "campaignData": {"difficulty": "hard", "scenarioStatus": {...}, "investigatorData": {...}},
      "scenarioData": {"leadInvestigator": "01001", "investigatorStatus": {...}},
      "investigators": [{"code": "01001", "faction_code": "guardian", "traits": [...], "cards": [...]}]
    }

Snapshots are never changed in place; effects build a new log.
"""
import copy
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel, Field, ValidationError

from scenario.errors import ScenarioDataError


COUNT_ENTRY_ID = "$count"

DEFEATED_STATUSES = {"physical", "mental", "eliminated"}


class InvestigatorCard(BaseModel):
    code: str
    name: Optional[str] = None
    faction_code: Optional[str] = None
    traits: List[str] = Field(default_factory=list)
    cards: List[str] = Field(default_factory=list)

    def data_matches(self, field: str, value: str) -> bool:
        if field == "trait":
            return value.lower() in {t.lower() for t in self.traits}
        if field == "faction":
            return self.faction_code == value
        if field == "code":
            return self.code == value
        return False


class CampaignLogView(Protocol):
    @property
    def chaos_bag(self) -> Dict[str, int]: ...
    @property
    def campaign_data(self) -> Dict[str, Any]: ...
    @property
    def investigator_sections(self) -> Dict[str, Dict[str, Dict[str, Any]]]: ...
    def count(self, section: str, entry_id: str) -> int: ...
    def check(self, section: str, entry_id: str) -> bool: ...
    def section_exists(self, section: str) -> bool: ...
    def investigator_codes(self, include_eliminated: bool) -> List[str]: ...
    def investigators(self, include_eliminated: bool) -> List[InvestigatorCard]: ...
    def is_killed(self, code: str) -> bool: ...
    def is_defeated(self, code: str) -> bool: ...
    def has_mental_trauma(self, code: str) -> bool: ...
    def has_physical_trauma(self, code: str) -> bool: ...
    def has_card(self, code: str, card: str) -> bool: ...
    def lead_investigator_choice(self) -> str: ...
    def player_count(self) -> int: ...
    def resolution(self) -> str: ...
    def scenario_status(self, scenario_id: str) -> str: ...


class GuidedCampaignLog:
    """
    Pure read queries over one campaign log snapshot.
    """

    def __init__(self, state: Optional[Dict[str, Any]] = None):
        self._state: Dict[str, Any] = copy.deepcopy(state) if state else {}
        try:
            self._investigators = [
                InvestigatorCard.model_validate(inv)
                for inv in self._state.get("investigators", [])
            ]
        except ValidationError as e:
            raise ScenarioDataError(f"Invalid campaign log investigators: {e}") from e

    @classmethod
    def from_json(cls, path: str | Path) -> "GuidedCampaignLog":
        p = path if isinstance(path, Path) else Path(str(path))
        return cls(json.loads(p.read_text(encoding="utf-8")))

    def snapshot(self) -> Dict[str, Any]:
        """
        Independent copy of the underlying state, safe to mutate.
        """
        return copy.deepcopy(self._state)

    # ──────────────────────────────────────────────
    # Sections
    # ──────────────────────────────────────────────

    @property
    def scenario_id(self) -> Optional[str]:
        return self._state.get("scenarioId")

    def _section(self, section: str) -> Dict[str, Any]:
        return self._state.get("sections", {}).get(section) or {}

    def count(self, section: str, entry_id: str) -> int:
        if entry_id == COUNT_ENTRY_ID:
            tally = self._state.get("countSections", {}).get(section) or {}
            return int(tally.get("count", 0))
        for entry in self._section(section).get("entries", []):
            if entry.get("id") == entry_id:
                return int(entry.get("count", 0))
        return 0

    def check(self, section: str, entry_id: str) -> bool:
        data = self._section(section)
        if data.get("crossedOut", {}).get(entry_id):
            return False
        return any(e.get("id") == entry_id for e in data.get("entries", []))

    def section_exists(self, section: str) -> bool:
        return (
            section in self._state.get("sections", {})
            or section in self._state.get("countSections", {})
            or section in self._state.get("investigatorSections", {})
        )

    @property
    def investigator_sections(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        return self._state.get("investigatorSections", {})

    @property
    def chaos_bag(self) -> Dict[str, int]:
        return self._state.get("chaosBag", {})

    @property
    def campaign_data(self) -> Dict[str, Any]:
        data = self._state.get("campaignData", {})
        return {**data, "difficulty": data.get("difficulty") or "standard"}

    # ──────────────────────────────────────────────
    # Investigators
    # ──────────────────────────────────────────────

    def _investigator_data(self, code: str) -> Dict[str, Any]:
        return self._state.get("campaignData", {}).get("investigatorData", {}).get(code) or {}

    def _scenario_data(self) -> Dict[str, Any]:
        return self._state.get("scenarioData", {})

    def _is_eliminated(self, code: str) -> bool:
        return self.is_killed(code) or self.is_insane(code)

    def investigators(self, include_eliminated: bool) -> List[InvestigatorCard]:
        """
        Investigators in log order. When the scenario has picked its
        investigators, only those take part.
        """
        chosen = self._scenario_data().get("investigators")
        result = []
        for inv in self._investigators:
            if chosen is not None and inv.code not in chosen:
                continue
            if not include_eliminated and self._is_eliminated(inv.code):
                continue
            result.append(inv)
        return result

    def investigator_codes(self, include_eliminated: bool) -> List[str]:
        return [inv.code for inv in self.investigators(include_eliminated)]

    def is_killed(self, code: str) -> bool:
        return bool(self._investigator_data(code).get("killed"))

    def is_insane(self, code: str) -> bool:
        return bool(self._investigator_data(code).get("insane"))

    def is_defeated(self, code: str) -> bool:
        status = self._scenario_data().get("investigatorStatus", {}).get(code)
        return status in DEFEATED_STATUSES

    def has_mental_trauma(self, code: str) -> bool:
        return int(self._investigator_data(code).get("mental", 0)) > 0

    def has_physical_trauma(self, code: str) -> bool:
        return int(self._investigator_data(code).get("physical", 0)) > 0

    def has_card(self, code: str, card: str) -> bool:
        for inv in self._investigators:
            if inv.code == code:
                return card in inv.cards
        return False

    # ──────────────────────────────────────────────
    # Scenario data
    # ──────────────────────────────────────────────

    def lead_investigator_choice(self) -> str:
        lead = self._scenario_data().get("leadInvestigator")
        if lead:
            return lead
        codes = self.investigator_codes(False)
        return codes[0] if codes else ""

    def player_count(self) -> int:
        count = self._scenario_data().get("playerCount")
        if count is not None:
            return int(count)
        return len(self.investigator_codes(False))

    def resolution(self) -> str:
        return self._scenario_data().get("resolution") or ""

    def scenario_status(self, scenario_id: str) -> str:
        statuses = self._state.get("campaignData", {}).get("scenarioStatus", {})
        return statuses.get(scenario_id, "not_started")
