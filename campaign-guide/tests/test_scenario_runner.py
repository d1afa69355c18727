import sys
from pathlib import Path
import unittest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from scenario.campaign_log import GuidedCampaignLog  # noqa: E402
from scenario.errors import RunnerStateError, ScenarioDataError, UnknownStepError  # noqa: E402
from scenario.types import Scenario  # noqa: E402
from script.scenario_guide import ScenarioGuide  # noqa: E402
from script.scenario_loader import ScenarioLoader  # noqa: E402
from script.scenario_runner import ScenarioRunner  # noqa: E402

DATA_ROOT = ROOT / "guide-data"


def make_log():
    return GuidedCampaignLog({
        "sections": {"campaign_notes": {"entries": [{"id": "lantern_lit"}]}},
        "countSections": {"doom": {"count": 2}},
        "chaosBag": {"skull": 2},
        "investigators": [
            {"code": "inv_a", "name": "Ada"},
            {"code": "inv_b", "name": "Bram"},
            {"code": "inv_c", "name": "Cora"},
        ],
    })


class TestLighthouseRun(unittest.TestCase):
    def setUp(self):
        loader = ScenarioLoader(DATA_ROOT)
        self.runner = ScenarioRunner(loader.load_guide("the_lost_lighthouse"), make_log())

    def _play_to_resolution(self, path="cliffs"):
        runner = self.runner
        self.assertEqual(runner.advance().id, "$choose_investigators")
        self.assertEqual(runner.submit(["inv_a", "inv_b"]).id, "$lead_investigator")
        self.assertEqual(runner.submit("inv_a").id, "choose_path")
        return runner.submit(path)

    def test_setup_steps(self):
        step = self._play_to_resolution()
        log = self.runner.campaign_log
        self.assertEqual(step.id, "$choose_resolution")
        self.assertEqual(log.investigator_codes(False), ["inv_a", "inv_b"])
        self.assertEqual(log.lead_investigator_choice(), "inv_a")
        self.assertEqual(log.scenario_status("the_lost_lighthouse"), "started")
        # lantern branch removed a skull, doom 2 + 1 collapsed the cliffs
        self.assertEqual(log.chaos_bag, {"skull": 1})
        self.assertTrue(log.check("campaign_notes", "took_the_cliffs"))
        self.assertTrue(log.check("campaign_notes", "cliffs_collapsed"))

    def test_village_path_skips_cliff_branch(self):
        self._play_to_resolution("village")
        log = self.runner.campaign_log
        self.assertTrue(log.check("campaign_notes", "visited_village"))
        self.assertFalse(log.check("campaign_notes", "cliffs_collapsed"))

    def test_resolution_without_defeat(self):
        self._play_to_resolution()
        step = self.runner.submit("resolution_1")
        self.assertEqual(step.id, "$r_resolution_1#investigator_status")
        self.assertEqual([c.id for c in step.input.choices], ["alive", "resigned"])

        self.assertIsNone(self.runner.submit({"inv_a": "alive", "inv_b": "resigned"}))
        log = self.runner.campaign_log
        self.assertTrue(self.runner.finished)
        self.assertEqual(self.runner.resolutions, ["resolution_1"])
        self.assertEqual(log.resolution(), "resolution_1")
        self.assertTrue(log.check("campaign_notes", "lighthouse_saved"))
        self.assertEqual(log.scenario_status("the_lost_lighthouse"), "completed")

    def test_defeat_is_spliced_in_when_it_happened(self):
        self._play_to_resolution()
        self.runner.submit("no_resolution")
        self.runner.submit({"inv_a": "physical", "inv_b": "alive"})
        log = self.runner.campaign_log
        self.assertTrue(self.runner.finished)
        self.assertEqual(self.runner.resolutions, ["investigator_defeat", "no_resolution"])
        self.assertEqual(log.count("doom", "$count"), 3)
        self.assertTrue(log.check("campaign_notes", "lighthouse_dark"))

    def test_bad_answers_keep_step_pending(self):
        self._play_to_resolution()
        with self.assertRaises(ValueError):
            self.runner.submit("resolution_9")
        self.assertEqual(self.runner.current_step.id, "$choose_resolution")

    def test_unknown_investigators_rejected(self):
        self.runner.advance()
        with self.assertRaises(ValueError):
            self.runner.submit(["inv_z"])

    def test_status_answers_checked_against_investigators(self):
        self._play_to_resolution()
        self.runner.submit("resolution_1")
        with self.assertRaises(ValueError):
            self.runner.submit({"nobody": "alive"})
        with self.assertRaises(ValueError):
            self.runner.submit({"inv_a": "alive"})
        self.assertEqual(self.runner.current_step.id, "$r_resolution_1#investigator_status")
        self.assertNotIn("investigatorStatus", self.runner.campaign_log.snapshot()["scenarioData"])

        self.assertIsNone(self.runner.submit({"inv_a": "alive", "inv_b": "alive"}))

    def test_starting_log_untouched(self):
        starting = self.runner.campaign_log
        self._play_to_resolution()
        self.assertIsNot(starting, self.runner.campaign_log)
        self.assertEqual(starting.chaos_bag, {"skull": 2})


class TestInterludeRun(unittest.TestCase):
    def test_interlude_proceeds(self):
        guide = ScenarioLoader(DATA_ROOT).load_guide("the_keepers_rest")
        runner = ScenarioRunner(guide, make_log())
        self.assertEqual(runner.advance().id, "rest_choice")
        self.assertIsNone(runner.submit("press_on"))
        self.assertTrue(runner.finished)
        self.assertEqual(runner.campaign_log.chaos_bag, {"skull": 2, "cultist": 1})
        self.assertEqual(runner.campaign_log.scenario_status("the_keepers_rest"), "completed")

        with self.assertRaises(RunnerStateError):
            runner.submit("rest")

    def test_unknown_step(self):
        scenario = Scenario.model_validate({"id": "gap", "type": "interlude", "setup": ["missing"]})
        runner = ScenarioRunner(ScenarioGuide(scenario), GuidedCampaignLog())
        with self.assertRaises(UnknownStepError):
            runner.advance()

    def test_supplies(self):
        scenario = Scenario.model_validate({
            "id": "provisions",
            "type": "interlude",
            "setup": ["buy"],
            "steps": [{
                "id": "buy",
                "type": "input",
                "input": {
                    "type": "supplies",
                    "section": "supplies",
                    "points": 3,
                    "supplies": [{"id": "rope", "cost": 2}, {"id": "torches"}],
                },
            }],
        })
        runner = ScenarioRunner(ScenarioGuide(scenario), make_log())
        runner.advance()
        with self.assertRaises(ValueError):
            runner.submit({"inv_a": ["rope", "rope"]})
        self.assertEqual(runner.current_step.id, "buy")

        runner.submit({"inv_a": ["rope", "torches"]})
        supplies = runner.campaign_log.investigator_sections["supplies"]["inv_a"]["entries"]
        self.assertEqual([e["id"] for e in supplies], ["rope", "torches"])
        self.assertTrue(runner.finished)

    def test_rejected_answer_applies_nothing(self):
        hurt = [
            {"type": "trauma", "investigator": "$input_value", "mental": 1},
            {"type": "add_card", "investigator": "$input_value", "card": "wound"},
        ]
        scenario = Scenario.model_validate({
            "id": "aftermath",
            "type": "interlude",
            "setup": ["pick"],
            "steps": [{
                "id": "pick",
                "type": "input",
                "input": {
                    "type": "investigator_choice",
                    "investigator": "all",
                    "choices": [
                        {"id": "hurt", "effects": hurt},
                        # lead_investigator without an investigator fails when applied
                        {"id": "broken", "effects": hurt + [
                            {"type": "scenario_data", "setting": "lead_investigator"},
                        ]},
                    ],
                },
            }],
        })
        log = GuidedCampaignLog({"investigators": [{"code": "inv_a"}, {"code": "inv_b"}]})
        runner = ScenarioRunner(ScenarioGuide(scenario), log)
        runner.advance()

        with self.assertRaises(ScenarioDataError):
            runner.submit({"inv_a": "hurt", "inv_b": "broken"})
        self.assertEqual(runner.current_step.id, "pick")
        self.assertFalse(runner.campaign_log.has_mental_trauma("inv_a"))
        self.assertFalse(runner.campaign_log.has_card("inv_a", "wound"))

        self.assertIsNone(runner.submit({"inv_a": "hurt", "inv_b": "hurt"}))
        state = runner.campaign_log.snapshot()
        self.assertEqual(state["campaignData"]["investigatorData"]["inv_a"]["mental"], 1)
        self.assertEqual(state["investigators"][0]["cards"], ["wound"])

    def test_supplies_answer_must_be_a_mapping(self):
        scenario = Scenario.model_validate({
            "id": "provisions",
            "type": "interlude",
            "setup": ["buy"],
            "steps": [{
                "id": "buy",
                "type": "input",
                "input": {"type": "supplies", "section": "supplies", "supplies": [{"id": "rope"}]},
            }],
        })
        runner = ScenarioRunner(ScenarioGuide(scenario), make_log())
        runner.advance()
        with self.assertRaises(ValueError):
            runner.submit(["rope"])
        with self.assertRaises(ValueError):
            runner.submit({"inv_a": "rope"})
        self.assertEqual(runner.current_step.id, "buy")

    def test_investigator_branch_applies_effects_per_investigator(self):
        scenario = Scenario.model_validate({
            "id": "supplies_check",
            "type": "interlude",
            "setup": ["check_rope"],
            "steps": [
                {
                    "id": "check_rope",
                    "type": "branch",
                    "condition": {
                        "type": "check_supplies",
                        "investigator": "all",
                        "section": "supplies",
                        "id": "rope",
                        "options": [{
                            "boolCondition": False,
                            "steps": ["fell"],
                            "effects": [{"type": "trauma", "investigator": "$input_value", "physical": 1}],
                        }],
                    },
                },
                {"id": "fell", "text": "Without rope, the climb is brutal."},
            ],
        })
        log = GuidedCampaignLog({
            "investigators": [{"code": "inv_a"}, {"code": "inv_b"}],
            "investigatorSections": {"supplies": {
                "inv_a": {"entries": [{"id": "rope"}]},
                "inv_b": {"entries": []},
            }},
        })
        runner = ScenarioRunner(ScenarioGuide(scenario), log)
        self.assertIsNone(runner.advance())
        self.assertFalse(runner.campaign_log.has_physical_trauma("inv_a"))
        self.assertTrue(runner.campaign_log.has_physical_trauma("inv_b"))
        self.assertIn({"step": "fell", "type": None}, runner.event_log)


if __name__ == "__main__":
    unittest.main()
