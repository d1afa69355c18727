class GuideError(Exception):
    """Base class for every error raised by the campaign guide interpreter."""


class ScenarioDataError(GuideError, ValueError):
    """
    Authored scenario content is malformed or inconsistent.
    These are content bugs, never retried.
    """


class UnknownStepError(GuideError, KeyError):
    """A step id is neither a fixed step nor present in the authored table."""

    def __init__(self, step_id: str):
        super().__init__(step_id)
        self.step_id = step_id

    def __str__(self) -> str:
        return f"Unknown step id: {self.step_id}"


class RunnerStateError(GuideError, RuntimeError):
    """The scenario runner was driven out of order (e.g. input with nothing pending)."""
