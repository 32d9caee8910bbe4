from enum import Enum


STAGE_ORDER = [
    "need_category",
    "need_service_type",
    "need_job_type",
    "need_property_and_postcode",
    "need_rooms",
    "complete",
]
TERMINAL_STAGES = {"complete"}


class Stage(Enum):
    NEED_CATEGORY = "need_category"
    NEED_SERVICE_TYPE = "need_service_type"
    NEED_JOB_TYPE = "need_job_type"
    NEED_PROPERTY_AND_POSTCODE = "need_property_and_postcode"
    NEED_ROOMS = "need_rooms"
    COMPLETE = "complete"

    @property
    def order(self) -> int:
        return STAGE_ORDER.index(self.value)

    @property
    def is_terminal(self) -> bool:
        return self.value in TERMINAL_STAGES


INITIAL_STAGE = Stage.NEED_CATEGORY


class Outcome(Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    NO_INPUT = "no_input"


# (stage, outcome) -> next stage. A dict value branches on service_category.
# Rejected and no-input turns always hold the current stage.
TRANSITIONS = {
    (Stage.NEED_CATEGORY, Outcome.ACCEPTED): Stage.NEED_SERVICE_TYPE,
    (Stage.NEED_SERVICE_TYPE, Outcome.ACCEPTED): {
        "commercial": Stage.NEED_JOB_TYPE,
        "domestic": Stage.NEED_PROPERTY_AND_POSTCODE,
    },
    (Stage.NEED_JOB_TYPE, Outcome.ACCEPTED): Stage.NEED_PROPERTY_AND_POSTCODE,
    (Stage.NEED_PROPERTY_AND_POSTCODE, Outcome.ACCEPTED): Stage.NEED_ROOMS,
    (Stage.NEED_ROOMS, Outcome.ACCEPTED): Stage.COMPLETE,
}


def next_stage(stage: Stage, outcome: Outcome, service_category: str | None = None) -> Stage:
    """Resolve the stage that follows `stage` for a turn with `outcome`."""
    if outcome is not Outcome.ACCEPTED:
        return stage

    target = TRANSITIONS.get((stage, outcome), stage)
    if isinstance(target, dict):
        # service_category is always set once need_category has been passed
        return target[service_category]
    return target
