from typing import NamedTuple


class ProgressStep(NamedTuple):
    name: str
    agent: str


# Display only. The server has no such states; the step shown is a function
# of elapsed time and says nothing about how far the analysis really is.
WORKFLOW_STEPS = (
    ProgressStep("Ingesting Data", "Extraction Agent"),
    ProgressStep("Scanning for Red Flags", "Toxic Detector Bot"),
    ProgressStep("Analyzing Skills Gap", "Match Engine"),
    ProgressStep("Drafting Tailored Summary", "Writer Agent"),
    ProgressStep("Validating Format", "QA Agent"),
)

STEP_SECONDS = 1.5


def progress_index(elapsed: float, step_seconds: float = STEP_SECONDS) -> int:
    if elapsed <= 0 or step_seconds <= 0:
        return 0
    return min(int(elapsed // step_seconds), len(WORKFLOW_STEPS) - 1)


def progress_step(elapsed: float, step_seconds: float = STEP_SECONDS) -> ProgressStep:
    return WORKFLOW_STEPS[progress_index(elapsed, step_seconds)]
