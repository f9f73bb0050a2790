"""
applications/stages.py

The closed set of hiring-pipeline stages and the single canonical ordering
used for every "is earlier than" / "is terminal" question.
"""

from django.db import models


class Stage(models.TextChoices):
    SHORTLISTING = "shortlisting", "Shortlisting"
    SCREENING = "screening", "Screening Call"
    ASSIGNMENT_SENT = "assignment-sent", "Assignment Sent"
    ASSIGNMENT_SUBMITTED = "assignment-submitted", "Assignment Submitted"
    INTERVIEW = "interview", "Interview"
    OFFER_SENT = "offer-sent", "Offer Sent"
    OFFER_ACCEPTED = "offer-accepted", "Offer Accepted"
    HIRED = "hired", "Hired"

    # Absorbing; reachable from any non-terminal stage, has no position in
    # PIPELINE_ORDER.
    REJECTED = "rejected", "Rejected"


INITIAL_STAGE = Stage.SHORTLISTING

PIPELINE_ORDER: tuple[Stage, ...] = (
    Stage.SHORTLISTING,
    Stage.SCREENING,
    Stage.ASSIGNMENT_SENT,
    Stage.ASSIGNMENT_SUBMITTED,
    Stage.INTERVIEW,
    Stage.OFFER_SENT,
    Stage.OFFER_ACCEPTED,
    Stage.HIRED,
)

TERMINAL_STAGES = frozenset({Stage.HIRED, Stage.REJECTED})

_POSITION = {stage: idx for idx, stage in enumerate(PIPELINE_ORDER)}


def parse_stage(value) -> Stage | None:
    """Return the Stage for a raw value, or None if it is not one of the nine."""
    try:
        return Stage(value)
    except ValueError:
        return None


def is_terminal(stage) -> bool:
    return stage in TERMINAL_STAGES


def is_earlier(stage, than) -> bool:
    """
    True when `stage` precedes `than` in PIPELINE_ORDER.
    Always False if either side is REJECTED.
    """
    if stage not in _POSITION or than not in _POSITION:
        return False
    return _POSITION[stage] < _POSITION[than]


def stage_label(stage) -> str:
    parsed = parse_stage(stage)
    return parsed.label if parsed is not None else str(stage)
