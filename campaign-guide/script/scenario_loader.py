import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from pydantic import ValidationError

from scenario.errors import ScenarioDataError
from scenario.types import Scenario
from script.scenario_guide import ScenarioGuide

logger = logging.getLogger(__name__)


class ScenarioLoader:
    """
    Loads authored scenario files into validated Scenario models.

    Layout under data_root:
      scenarios/<scenario_id>.json

    No interpretation here. Pure data wiring.
    """

    def __init__(self, data_root: str | Path):
        self.data_root = Path(data_root)

        self._cache: Dict[str, Scenario] = {}
        self._guides: Dict[str, ScenarioGuide] = {}

    # ──────────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────────

    def list_scenarios(self) -> List[str]:
        folder = self.data_root / "scenarios"
        if not folder.exists():
            return []
        return sorted(p.stem for p in folder.glob("*.json"))

    def load_scenario(self, scenario_id: str) -> Scenario:
        if scenario_id in self._cache:
            return self._cache[scenario_id]

        data = self._load_json("scenarios", scenario_id)
        try:
            scenario = Scenario.model_validate(data)
        except ValidationError as e:
            raise ScenarioDataError(f"Invalid scenario {scenario_id}: {e}") from e

        if scenario.id != scenario_id:
            raise ScenarioDataError(
                f"Scenario file {scenario_id}.json declares id {scenario.id}"
            )

        logger.info(
            "Loaded scenario %s (%d steps, %d resolutions)",
            scenario_id, len(scenario.steps), len(scenario.resolutions),
        )
        self._cache[scenario_id] = scenario
        return scenario

    def load_guide(self, scenario_id: str) -> ScenarioGuide:
        if scenario_id not in self._guides:
            self._guides[scenario_id] = ScenarioGuide(self.load_scenario(scenario_id))
        return self._guides[scenario_id]

    # ──────────────────────────────────────────────
    # JSON loading
    # ──────────────────────────────────────────────

    def _load_json(self, folder: str, item_id: str) -> Dict[str, Any]:
        """
        item_id maps directly to filename: <id>.json
        Ids that resolve outside the folder are treated as missing.
        """
        base = (self.data_root / folder).resolve()
        path = (base / f"{item_id}.json").resolve()
        if path.parent != base or not path.exists():
            raise FileNotFoundError(f"Missing data file: {folder}/{item_id}.json")

        with open(path, "r", encoding="utf-8") as f:
            try:
                return json.load(f)
            except json.JSONDecodeError as e:
                raise ScenarioDataError(f"Malformed JSON in {path}: {e}") from e
