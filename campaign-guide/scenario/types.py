"""
Declarative scenario data: conditions, options, steps, resolutions, effects.

Field names follow the authored JSON exactly (boolCondition, defaultOption,
opA, investigator_status, ...) so content produced by the content pipeline
round-trips unchanged. Unknown authored fields are kept as extras.
"""
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter


InvestigatorStatus = Literal["alive", "resigned", "physical", "mental", "eliminated"]


class GuideModel(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)


# ──────────────────────────────────────────────
# Effects
# ──────────────────────────────────────────────

class ScenarioDataEffect(GuideModel):
    type: Literal["scenario_data"]
    setting: Literal[
        "scenario_status",
        "lead_investigator",
        "investigator_status",
        "player_count",
        "investigators",
    ]
    status: Optional[Literal["started", "resolution", "completed"]] = None
    resolution: Optional[str] = None
    investigator: Optional[str] = None
    investigator_status: Optional[InvestigatorStatus] = None
    investigators: Optional[List[str]] = None
    value: Optional[int] = None


class CampaignLogEffect(GuideModel):
    """
    { "type": "campaign_log", "section": "campaign_notes", "id": "the_door_opened" }
    With "investigator" set, the entry goes to that investigator's section.
    """
    type: Literal["campaign_log"]
    section: str
    id: str
    text: Optional[str] = None
    investigator: Optional[str] = None
    cross_out: bool = False
    remove: bool = False


class CampaignLogCountEffect(GuideModel):
    type: Literal["campaign_log_count"]
    section: str
    id: Optional[str] = None
    operation: Literal["add", "subtract", "set"] = "add"
    value: int = 1


class CampaignDataEffect(GuideModel):
    type: Literal["campaign_data"]
    setting: Literal["difficulty"]
    value: str


class TraumaEffect(GuideModel):
    type: Literal["trauma"]
    investigator: str
    mental: int = 0
    physical: int = 0
    killed: bool = False
    insane: bool = False


class ChaosBagEffect(GuideModel):
    type: Literal["add_chaos_bag", "remove_chaos_bag"]
    tokens: Dict[str, int]


class CardEffect(GuideModel):
    type: Literal["add_card", "remove_card"]
    investigator: str
    card: str


Effect = Annotated[
    Union[
        ScenarioDataEffect,
        CampaignLogEffect,
        CampaignLogCountEffect,
        CampaignDataEffect,
        TraumaEffect,
        ChaosBagEffect,
        CardEffect,
    ],
    Field(discriminator="type"),
]


# ──────────────────────────────────────────────
# Options
# ──────────────────────────────────────────────

class Option(GuideModel):
    boolCondition: Optional[bool] = None
    numCondition: Optional[int] = None
    condition: Optional[str] = None
    steps: List[str] = Field(default_factory=list)
    effects: List[Effect] = Field(default_factory=list)


# A DefaultOption is an Option whose keys are never consulted.
DefaultOption = Option


class OptionWithId(Option):
    id: str


# ──────────────────────────────────────────────
# Operands
# ──────────────────────────────────────────────

class CampaignLogCountOperand(GuideModel):
    type: Literal["campaign_log_count"]
    section: str
    id: Optional[str] = None


class ChaosBagOperand(GuideModel):
    type: Literal["chaos_bag"]
    token: str


class ConstantOperand(GuideModel):
    type: Literal["constant"]
    value: int


Operand = Annotated[
    Union[CampaignLogCountOperand, ChaosBagOperand, ConstantOperand],
    Field(discriminator="type"),
]


# ──────────────────────────────────────────────
# Conditions
# ──────────────────────────────────────────────

class CampaignLogCondition(GuideModel):
    type: Literal["campaign_log"]
    section: str
    id: str
    options: List[Option]


class CampaignLogSectionExistsCondition(GuideModel):
    type: Literal["campaign_log_section_exists"]
    section: str
    options: List[Option]


class MultiCondition(GuideModel):
    type: Literal["multi"]
    count: int
    conditions: List[
        Annotated[
            Union[CampaignLogCondition, CampaignLogSectionExistsCondition],
            Field(discriminator="type"),
        ]
    ]
    options: List[Option]


class CheckSuppliesCondition(GuideModel):
    type: Literal["check_supplies"]
    investigator: Literal["any", "all"]
    section: str
    id: str
    options: List[Option]


class CampaignLogCountCondition(GuideModel):
    type: Literal["campaign_log_count"]
    section: str
    id: str
    options: List[Option]
    defaultOption: Optional[Option] = None


class MathCondition(GuideModel):
    type: Literal["math"]
    operation: Literal["equals", "compare", "sum"]
    opA: Operand
    opB: Operand
    options: List[Option]
    defaultOption: Optional[Option] = None


class CampaignDataDifficultyCondition(GuideModel):
    type: Literal["campaign_data"]
    campaign_data: Literal["difficulty"]
    options: List[Option]


class CampaignDataChaosBagCondition(GuideModel):
    type: Literal["campaign_data"]
    campaign_data: Literal["chaos_bag"]
    token: str
    options: List[Option]


class CampaignDataScenarioCondition(GuideModel):
    type: Literal["campaign_data"]
    campaign_data: Literal["scenario_completed"]
    scenario: str
    options: List[Option]


class CampaignDataInvestigatorCondition(GuideModel):
    type: Literal["campaign_data"]
    campaign_data: Literal["investigator"]
    investigator_data: Literal["trait", "faction", "code"]
    options: List[Option]
    defaultOption: Optional[Option] = None


CampaignDataCondition = Annotated[
    Union[
        CampaignDataDifficultyCondition,
        CampaignDataChaosBagCondition,
        CampaignDataScenarioCondition,
        CampaignDataInvestigatorCondition,
    ],
    Field(discriminator="campaign_data"),
]


class HasCardCondition(GuideModel):
    type: Literal["has_card"]
    investigator: Literal["any", "defeated", "each"]
    card: str
    options: List[Option]


class TraumaCondition(GuideModel):
    type: Literal["trauma"]
    investigator: Literal["lead_investigator", "all", "each"]
    trauma: Literal["killed", "mental", "physical"] = "killed"
    options: List[Option]


class ScenarioDataPlayerCountCondition(GuideModel):
    type: Literal["scenario_data"]
    scenario_data: Literal["player_count"]
    options: List[Option]


class ScenarioDataResolutionCondition(GuideModel):
    type: Literal["scenario_data"]
    scenario_data: Literal["resolution"]
    options: List[Option]


class ScenarioDataInvestigatorStatusCondition(GuideModel):
    # Only "defeated" is meaningful; anything else is rejected at evaluation.
    type: Literal["scenario_data"]
    scenario_data: Literal["investigator_status"]
    investigator: str
    options: List[Option]


ScenarioDataCondition = Annotated[
    Union[
        ScenarioDataPlayerCountCondition,
        ScenarioDataResolutionCondition,
        ScenarioDataInvestigatorStatusCondition,
    ],
    Field(discriminator="scenario_data"),
]


Condition = Annotated[
    Union[
        MultiCondition,
        CheckSuppliesCondition,
        CampaignLogCondition,
        CampaignLogSectionExistsCondition,
        CampaignLogCountCondition,
        MathCondition,
        CampaignDataCondition,
        HasCardCondition,
        TraumaCondition,
        ScenarioDataCondition,
    ],
    Field(discriminator="type"),
]


# ──────────────────────────────────────────────
# Condition results
# ──────────────────────────────────────────────

class BinaryResult(GuideModel):
    type: Literal["binary"] = "binary"
    decision: bool
    option: Optional[Option] = None


class NumberResult(GuideModel):
    type: Literal["number"] = "number"
    number: int
    option: Optional[Option] = None


class StringResult(GuideModel):
    type: Literal["string"] = "string"
    string: str
    option: Optional[Option] = None


class InvestigatorResult(GuideModel):
    type: Literal["investigator"] = "investigator"
    investigatorChoices: Dict[str, List[str]]
    options: List[OptionWithId]


ConditionResult = Annotated[
    Union[BinaryResult, NumberResult, StringResult, InvestigatorResult],
    Field(discriminator="type"),
]


# ──────────────────────────────────────────────
# Inputs
# ──────────────────────────────────────────────

class Choice(GuideModel):
    id: str
    text: Optional[str] = None
    steps: List[str] = Field(default_factory=list)
    effects: List[Effect] = Field(default_factory=list)


class ChooseOneInput(GuideModel):
    type: Literal["choose_one"]
    style: Optional[str] = None
    choices: List[Choice]


class InvestigatorChoiceInput(GuideModel):
    type: Literal["investigator_choice"]
    investigator: Literal["all", "any", "choice"] = "all"
    source: str = "campaign"
    choices: List[Choice]


class ScenarioInvestigatorsInput(GuideModel):
    type: Literal["scenario_investigators"]


class UpgradeDecksInput(GuideModel):
    type: Literal["upgrade_decks"]


class Supply(GuideModel):
    id: str
    name: Optional[str] = None
    cost: int = 1


class SuppliesInput(GuideModel):
    type: Literal["supplies"]
    section: str
    points: int = 0
    supplies: List[Supply]


class GenericInput(GuideModel):
    type: str


_INPUT_KINDS = {
    "choose_one",
    "investigator_choice",
    "scenario_investigators",
    "upgrade_decks",
    "supplies",
}


def _input_kind(value: Any) -> str:
    kind = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    return kind if kind in _INPUT_KINDS else "generic"


Input = Annotated[
    Union[
        Annotated[ChooseOneInput, Tag("choose_one")],
        Annotated[InvestigatorChoiceInput, Tag("investigator_choice")],
        Annotated[ScenarioInvestigatorsInput, Tag("scenario_investigators")],
        Annotated[UpgradeDecksInput, Tag("upgrade_decks")],
        Annotated[SuppliesInput, Tag("supplies")],
        Annotated[GenericInput, Tag("generic")],
    ],
    Discriminator(_input_kind),
]


# ──────────────────────────────────────────────
# Steps
# ──────────────────────────────────────────────

class InputStep(GuideModel):
    id: str
    type: Literal["input"]
    title: Optional[str] = None
    text: Optional[str] = None
    input: Input


class BranchStep(GuideModel):
    id: str
    type: Literal["branch"]
    text: Optional[str] = None
    condition: Condition


class ResolutionStep(GuideModel):
    id: str
    type: Literal["resolution"]
    resolution: str
    generated: bool = False


class GenericStep(GuideModel):
    """Any other authored step: story text, encounter sets, effect-only bookkeeping."""
    id: str
    type: Optional[str] = None
    text: Optional[str] = None
    effects: List[Effect] = Field(default_factory=list)


_STEP_KINDS = {"input", "branch", "resolution"}


def _step_kind(value: Any) -> str:
    kind = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    return kind if kind in _STEP_KINDS else "generic"


Step = Annotated[
    Union[
        Annotated[InputStep, Tag("input")],
        Annotated[BranchStep, Tag("branch")],
        Annotated[ResolutionStep, Tag("resolution")],
        Annotated[GenericStep, Tag("generic")],
    ],
    Discriminator(_step_kind),
]


# ──────────────────────────────────────────────
# Scenarios
# ──────────────────────────────────────────────

class Resolution(GuideModel):
    id: str
    title: Optional[str] = None
    text: Optional[str] = None
    steps: List[str] = Field(default_factory=list)
    investigator_status: Optional[List[InvestigatorStatus]] = None


class Scenario(GuideModel):
    id: str
    scenario_name: Optional[str] = None
    type: Optional[str] = None
    setup: List[str] = Field(default_factory=list)
    resolutions: List[Resolution] = Field(default_factory=list)
    steps: List[Step] = Field(default_factory=list)

    @property
    def is_interlude(self) -> bool:
        return self.type in ("interlude", "epilogue")


# ──────────────────────────────────────────────
# Parsing helpers
# ──────────────────────────────────────────────

CONDITION_ADAPTER: TypeAdapter = TypeAdapter(Condition)
EFFECT_ADAPTER: TypeAdapter = TypeAdapter(Effect)


def parse_condition(data: Dict[str, Any]):
    return CONDITION_ADAPTER.validate_python(data)


def parse_effect(data: Dict[str, Any]):
    return EFFECT_ADAPTER.validate_python(data)
