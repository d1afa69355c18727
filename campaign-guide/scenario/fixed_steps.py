"""
Steps that are never authored but derived from scenario metadata.

Fixed ids:
  $choose_resolution            pick a (non-defeat) resolution
  $check_investigator_defeat    splice in the defeat resolution if anyone was defeated
  $r_<id>#investigator_status   record each investigator's end-of-scenario status
  $r_<id>                       marker: resolution <id> fired
  $proceed                      mark the scenario completed
  $choose_investigators, $upgrade_decks, $lead_investigator
"""
from typing import List, Optional

from scenario.campaign_log import CampaignLogView
from scenario.types import (
    BranchStep,
    Choice,
    ChooseOneInput,
    GenericStep,
    InputStep,
    InvestigatorChoiceInput,
    Option,
    Resolution,
    ResolutionStep,
    Scenario,
    ScenarioDataEffect,
    ScenarioDataInvestigatorStatusCondition,
    ScenarioInvestigatorsInput,
    UpgradeDecksInput,
)


INVESTIGATOR_DEFEAT_RESOLUTION_ID = "investigator_defeat"

RESOLUTION_STEP_PREFIX = "$r_"
CHOOSE_RESOLUTION_STEP_ID = "$choose_resolution"
CHECK_INVESTIGATOR_DEFEAT_STEP_ID = "$check_investigator_defeat"
PROCEED_STEP_ID = "$proceed"
INVESTIGATOR_STATUS_STEP_SUFFIX = "investigator_status"

DEFAULT_INVESTIGATOR_STATUSES = ["alive", "resigned", "physical", "mental", "eliminated"]

STATUS_TEXT = {
    "alive": "Alive",
    "resigned": "Resigned",
    "physical": "Eliminated by damage",
    "mental": "Eliminated by horror",
    "eliminated": "Eliminated by scenario",
}


CHOOSE_INVESTIGATORS_STEP = InputStep(
    id="$choose_investigators",
    type="input",
    input=ScenarioInvestigatorsInput(type="scenario_investigators"),
)

UPGRADE_DECKS_STEP = InputStep(
    id="$upgrade_decks",
    type="input",
    input=UpgradeDecksInput(type="upgrade_decks"),
)

LEAD_INVESTIGATOR_STEP = InputStep(
    id="$lead_investigator",
    type="input",
    text="Choose lead investigator",
    input=InvestigatorChoiceInput(
        type="investigator_choice",
        investigator="any",
        source="scenario",
        choices=[
            Choice(
                id="lead",
                text="Lead Investigator",
                effects=[
                    ScenarioDataEffect(
                        type="scenario_data",
                        setting="lead_investigator",
                        investigator="$input_value",
                    ),
                    ScenarioDataEffect(
                        type="scenario_data",
                        setting="scenario_status",
                        status="started",
                    ),
                ],
            ),
        ],
    ),
)

PROCEED_STEP = GenericStep(
    id=PROCEED_STEP_ID,
    text="Proceed to the next scenario",
    effects=[
        ScenarioDataEffect(
            type="scenario_data",
            setting="scenario_status",
            status="completed",
        ),
    ],
)

_SINGLETON_STEPS = {
    CHOOSE_INVESTIGATORS_STEP.id: CHOOSE_INVESTIGATORS_STEP,
    UPGRADE_DECKS_STEP.id: UPGRADE_DECKS_STEP,
    LEAD_INVESTIGATOR_STEP.id: LEAD_INVESTIGATOR_STEP,
    PROCEED_STEP.id: PROCEED_STEP,
}


def _find_resolution(resolutions: List[Resolution], resolution_id: str) -> Optional[Resolution]:
    return next((r for r in resolutions if r.id == resolution_id), None)


def resolution_step_id(resolution_id: str) -> str:
    return f"{RESOLUTION_STEP_PREFIX}{resolution_id}"


def investigator_status_step_id(resolution: Resolution) -> str:
    return f"{resolution_step_id(resolution.id)}#{INVESTIGATOR_STATUS_STEP_SUFFIX}"


# ──────────────────────────────────────────────
# Resolutions
# ──────────────────────────────────────────────

def choose_resolution_step(resolutions: List[Resolution]) -> InputStep:
    has_investigator_defeat = _find_resolution(resolutions, INVESTIGATOR_DEFEAT_RESOLUTION_ID) is not None
    choices = []
    for resolution in resolutions:
        if resolution.id == INVESTIGATOR_DEFEAT_RESOLUTION_ID:
            continue
        steps = [investigator_status_step_id(resolution)]
        if has_investigator_defeat:
            steps.append(CHECK_INVESTIGATOR_DEFEAT_STEP_ID)
        steps.append(resolution_step_id(resolution.id))
        steps.extend(resolution.steps)
        steps.append(PROCEED_STEP_ID)
        choices.append(Choice(
            id=resolution.id,
            text=resolution.title,
            steps=steps,
            effects=[
                ScenarioDataEffect(
                    type="scenario_data",
                    setting="scenario_status",
                    status="resolution",
                    resolution=resolution.id,
                ),
            ],
        ))
    return InputStep(
        id=CHOOSE_RESOLUTION_STEP_ID,
        type="input",
        title="Resolutions",
        text="Select resolution",
        bullet_type="none",
        input=ChooseOneInput(type="choose_one", style="picker", choices=choices),
    )


def check_investigator_defeat_step(resolutions: List[Resolution]) -> BranchStep:
    investigator_defeat = _find_resolution(resolutions, INVESTIGATOR_DEFEAT_RESOLUTION_ID)
    return BranchStep(
        id=CHECK_INVESTIGATOR_DEFEAT_STEP_ID,
        type="branch",
        condition=ScenarioDataInvestigatorStatusCondition(
            type="scenario_data",
            scenario_data="investigator_status",
            investigator="defeated",
            options=[
                Option(
                    boolCondition=True,
                    steps=[
                        resolution_step_id(INVESTIGATOR_DEFEAT_RESOLUTION_ID),
                        *(investigator_defeat.steps if investigator_defeat else []),
                    ],
                ),
            ],
        ),
    )


def investigator_status_step(step_id: str, resolutions: List[Resolution]) -> Optional[InputStep]:
    """
    $r_<resolution>#investigator_status, or None for any other suffix or
    an unknown resolution.
    """
    resolution_id, _, suffix = step_id[len(RESOLUTION_STEP_PREFIX):].partition("#")
    if suffix != INVESTIGATOR_STATUS_STEP_SUFFIX:
        return None
    resolution = _find_resolution(resolutions, resolution_id)
    if resolution is None:
        return None
    statuses = resolution.investigator_status or DEFAULT_INVESTIGATOR_STATUSES
    return InputStep(
        id=step_id,
        type="input",
        text="Investigator status at end of scenario:",
        input=InvestigatorChoiceInput(
            type="investigator_choice",
            investigator="all",
            source="scenario",
            choices=[
                Choice(
                    id=status,
                    text=STATUS_TEXT[status],
                    effects=[
                        ScenarioDataEffect(
                            type="scenario_data",
                            setting="investigator_status",
                            investigator="$input_value",
                            investigator_status=status,
                        ),
                    ],
                )
                for status in statuses
            ],
        ),
    )


def resolution_step(step_id: str, resolutions: List[Resolution]):
    if not step_id.startswith(RESOLUTION_STEP_PREFIX):
        return None
    if "#" in step_id:
        # A suffixed id never degrades to the plain $r_<id> marker; unknown
        # suffixes and resolutions stay unknown steps.
        return investigator_status_step(step_id, resolutions)
    return ResolutionStep(
        id=step_id,
        type="resolution",
        generated=True,
        resolution=step_id[len(RESOLUTION_STEP_PREFIX):],
    )


# ──────────────────────────────────────────────
# Public API
# ──────────────────────────────────────────────

def get_fixed_step(
    step_id: str,
    scenario: Scenario,
    campaign_log: Optional[CampaignLogView] = None,
):
    """
    Returns the derived step for step_id, or None when the id is not a fixed
    one and must be looked up in the scenario's authored steps.
    campaign_log is accepted for symmetry with authored lookups; derivation
    only reads scenario metadata.
    """
    if step_id == CHOOSE_RESOLUTION_STEP_ID:
        return choose_resolution_step(scenario.resolutions)
    if step_id == CHECK_INVESTIGATOR_DEFEAT_STEP_ID:
        return check_investigator_defeat_step(scenario.resolutions)
    if step_id in _SINGLETON_STEPS:
        return _SINGLETON_STEPS[step_id]
    return resolution_step(step_id, scenario.resolutions)


def scenario_step_ids(scenario: Scenario) -> List[str]:
    if scenario.is_interlude:
        return [*scenario.setup, PROCEED_STEP_ID]
    return [
        CHOOSE_INVESTIGATORS_STEP.id,
        LEAD_INVESTIGATOR_STEP.id,
        *scenario.setup,
    ]
