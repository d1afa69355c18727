"""
Check authored scenario content: every file validates, step ids are unique,
and every step reachable from a scenario resolves to an authored or fixed step.

    python tools/validate_scenarios.py --data-root guide-data
"""
import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import guide_config  # noqa: E402
from scenario.errors import ScenarioDataError  # noqa: E402
from script.scenario_loader import ScenarioLoader  # noqa: E402


def validate(loader: ScenarioLoader) -> list[str]:
    problems = []
    for scenario_id in loader.list_scenarios():
        try:
            guide = loader.load_guide(scenario_id)
        except ScenarioDataError as e:
            problems.append(f"{scenario_id}: {e}")
            continue
        for step_id in guide.missing_step_ids():
            problems.append(f"{scenario_id}: unknown step id {step_id}")
    return problems


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--data-root", default=str(guide_config.DATA_ROOT))
    args = parser.parse_args(argv)

    loader = ScenarioLoader(args.data_root)
    problems = validate(loader)
    for line in problems:
        print(line)
    print(f"{len(loader.list_scenarios())} scenarios checked, {len(problems)} problems")
    return 1 if problems else 0


if __name__ == "__main__":
    sys.exit(main())
