import sys
from pathlib import Path
import unittest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from scenario.campaign_log import GuidedCampaignLog  # noqa: E402
from scenario.fixed_steps import get_fixed_step, scenario_step_ids  # noqa: E402
from scenario.types import BranchStep, GenericStep, InputStep, ResolutionStep, Scenario  # noqa: E402


def make_scenario(with_defeat=True, **extra):
    resolutions = [
        {"id": "no_resolution", "title": "No resolution", "steps": ["nr_1"]},
        {"id": "resolution_1", "title": "Resolution 1", "steps": ["r1_1", "r1_2"],
         "investigator_status": ["alive", "resigned"]},
    ]
    if with_defeat:
        resolutions.append({"id": "investigator_defeat", "title": "Defeat", "steps": ["defeat_1"]})
    data = {"id": "sample", "setup": ["C"], "resolutions": resolutions}
    data.update(extra)
    return Scenario.model_validate(data)


class TestChooseResolution(unittest.TestCase):
    def setUp(self):
        self.log = GuidedCampaignLog()

    def test_skips_investigator_defeat(self):
        step = get_fixed_step("$choose_resolution", make_scenario(), self.log)
        self.assertIsInstance(step, InputStep)
        self.assertEqual(step.input.type, "choose_one")
        self.assertEqual([c.id for c in step.input.choices], ["no_resolution", "resolution_1"])

        step = get_fixed_step("$choose_resolution", make_scenario(with_defeat=False), self.log)
        self.assertEqual(len(step.input.choices), 2)

    def test_choice_steps_and_effect(self):
        step = get_fixed_step("$choose_resolution", make_scenario(), self.log)
        choice = step.input.choices[1]
        self.assertEqual(choice.steps, [
            "$r_resolution_1#investigator_status",
            "$check_investigator_defeat",
            "$r_resolution_1",
            "r1_1",
            "r1_2",
            "$proceed",
        ])
        effect = choice.effects[0]
        self.assertEqual(effect.setting, "scenario_status")
        self.assertEqual(effect.status, "resolution")
        self.assertEqual(effect.resolution, "resolution_1")

    def test_no_defeat_check_without_defeat_resolution(self):
        step = get_fixed_step("$choose_resolution", make_scenario(with_defeat=False), self.log)
        self.assertNotIn("$check_investigator_defeat", step.input.choices[0].steps)

    def test_every_choice_records_its_resolution(self):
        step = get_fixed_step("$choose_resolution", make_scenario(), self.log)
        self.assertEqual(
            [c.effects[0].resolution for c in step.input.choices],
            [c.id for c in step.input.choices],
        )


class TestResolutionSteps(unittest.TestCase):
    def test_check_investigator_defeat_splices_defeat_steps(self):
        step = get_fixed_step("$check_investigator_defeat", make_scenario(), None)
        self.assertIsInstance(step, BranchStep)
        self.assertEqual(step.condition.scenario_data, "investigator_status")
        self.assertEqual(step.condition.investigator, "defeated")
        self.assertEqual(len(step.condition.options), 1)
        option = step.condition.options[0]
        self.assertTrue(option.boolCondition)
        self.assertEqual(option.steps, ["$r_investigator_defeat", "defeat_1"])

    def test_investigator_status_defaults(self):
        step = get_fixed_step("$r_no_resolution#investigator_status", make_scenario(), None)
        self.assertEqual(step.input.type, "investigator_choice")
        self.assertEqual(step.input.investigator, "all")
        self.assertEqual(
            [c.id for c in step.input.choices],
            ["alive", "resigned", "physical", "mental", "eliminated"],
        )
        effect = step.input.choices[2].effects[0]
        self.assertEqual(effect.setting, "investigator_status")
        self.assertEqual(effect.investigator, "$input_value")
        self.assertEqual(effect.investigator_status, "physical")

    def test_investigator_status_declared(self):
        step = get_fixed_step("$r_resolution_1#investigator_status", make_scenario(), None)
        self.assertEqual([c.id for c in step.input.choices], ["alive", "resigned"])

    def test_resolution_marker(self):
        step = get_fixed_step("$r_resolution_1", make_scenario(), None)
        self.assertIsInstance(step, ResolutionStep)
        self.assertEqual(step.resolution, "resolution_1")
        self.assertTrue(step.generated)

    def test_unknown_suffix_or_resolution(self):
        scenario = make_scenario()
        self.assertIsNone(get_fixed_step("$r_resolution_1#something_else", scenario, None))
        self.assertIsNone(get_fixed_step("$r_resolution_9#investigator_status", scenario, None))


class TestSingletonSteps(unittest.TestCase):
    def test_proceed_completes_scenario(self):
        step = get_fixed_step("$proceed", make_scenario(), None)
        self.assertIsInstance(step, GenericStep)
        self.assertEqual(step.effects[0].status, "completed")

    def test_lead_investigator_starts_scenario(self):
        step = get_fixed_step("$lead_investigator", make_scenario(), None)
        settings = [e.setting for e in step.input.choices[0].effects]
        self.assertEqual(settings, ["lead_investigator", "scenario_status"])
        self.assertEqual(step.input.choices[0].effects[1].status, "started")

    def test_input_singletons(self):
        self.assertEqual(get_fixed_step("$choose_investigators", make_scenario(), None).input.type,
                         "scenario_investigators")
        self.assertEqual(get_fixed_step("$upgrade_decks", make_scenario(), None).input.type,
                         "upgrade_decks")

    def test_authored_ids_are_not_fixed(self):
        self.assertIsNone(get_fixed_step("r1_1", make_scenario(), None))


class TestScenarioStepIds(unittest.TestCase):
    def test_interlude(self):
        scenario = Scenario.model_validate({"id": "i", "type": "interlude", "setup": ["A", "B"]})
        self.assertEqual(scenario_step_ids(scenario), ["A", "B", "$proceed"])

    def test_epilogue(self):
        scenario = Scenario.model_validate({"id": "e", "type": "epilogue", "setup": ["A"]})
        self.assertEqual(scenario_step_ids(scenario), ["A", "$proceed"])

    def test_regular(self):
        self.assertEqual(
            scenario_step_ids(make_scenario()),
            ["$choose_investigators", "$lead_investigator", "C"],
        )


if __name__ == "__main__":
    unittest.main()
