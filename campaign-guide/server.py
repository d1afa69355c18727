import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

import guide_config
from scenario.campaign_log import GuidedCampaignLog
from scenario.conditions import condition_result
from scenario.errors import GuideError
from script.scenario_loader import ScenarioLoader
from script.scenario_runner import ScenarioRunner

logging.basicConfig(level=guide_config.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=guide_config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


loader = ScenarioLoader(guide_config.DATA_ROOT)
sessions: Dict[str, ScenarioRunner] = {}


class EvaluateRequest(BaseModel):
    condition: Dict[str, Any]
    campaign_log: Dict[str, Any] = Field(default_factory=dict)


class StepRequest(BaseModel):
    step_id: str
    campaign_log: Dict[str, Any] = Field(default_factory=dict)


class SessionStartRequest(BaseModel):
    session_id: str
    scenario_id: str
    campaign_log: Dict[str, Any] = Field(default_factory=dict)


class SessionInputRequest(BaseModel):
    session_id: str
    value: Optional[Any] = None


def _dump(model) -> Optional[Dict[str, Any]]:
    if model is None:
        return None
    return model.model_dump(mode="json", exclude_none=True)


def _session_payload(runner: ScenarioRunner) -> Dict[str, Any]:
    return {
        "ok": True,
        "finished": runner.finished,
        "step": _dump(runner.current_step),
        "resolutions": list(runner.resolutions),
        "campaign_log": runner.campaign_log.snapshot(),
    }


@app.get("/scenarios")
def list_scenarios():
    return loader.list_scenarios()


@app.get("/scenarios/{scenario_id}/steps")
def scenario_steps(scenario_id: str):
    """
    Top-level step ids the runner starts from.
    """
    try:
        guide = loader.load_guide(scenario_id)
    except (FileNotFoundError, GuideError) as e:
        return {"ok": False, "error": str(e)}
    return {"ok": True, "step_ids": guide.step_ids()}


@app.post("/scenarios/{scenario_id}/step")
def scenario_step(scenario_id: str, req: StepRequest):
    """
    Resolve one step id: a fixed step if the id is a derived one, else the authored step.
    """
    try:
        guide = loader.load_guide(scenario_id)
        step = guide.get_step(req.step_id, GuidedCampaignLog(req.campaign_log))
    except (FileNotFoundError, GuideError) as e:
        return {"ok": False, "error": str(e)}

    if step is None:
        return {"ok": False, "error": f"Unknown step id: {req.step_id}"}
    return {"ok": True, "step": _dump(step)}


@app.post("/evaluate")
def evaluate(req: EvaluateRequest):
    try:
        result = condition_result(req.condition, GuidedCampaignLog(req.campaign_log))
    except GuideError as e:
        logger.warning("Rejected condition: %s", e)
        return {"ok": False, "error": str(e)}
    return {"ok": True, "result": _dump(result)}


@app.post("/session/start")
def start_session(req: SessionStartRequest):
    try:
        guide = loader.load_guide(req.scenario_id)
        runner = ScenarioRunner(guide, GuidedCampaignLog(req.campaign_log))
        runner.advance()
    except (FileNotFoundError, GuideError) as e:
        return {"ok": False, "error": str(e)}

    sessions[req.session_id] = runner
    return _session_payload(runner)


@app.post("/session/input")
def session_input(req: SessionInputRequest):
    runner = sessions.get(req.session_id)
    if runner is None:
        return {"ok": False, "error": f"Unknown session: {req.session_id}"}

    try:
        runner.submit(req.value)
    except (GuideError, ValueError) as e:
        return {"ok": False, "error": str(e)}
    return _session_payload(runner)
