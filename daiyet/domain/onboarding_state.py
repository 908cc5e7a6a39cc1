"""Provider/client onboarding stages.

Stages advance linearly:
STARTED -> PERSONAL_INFO -> PROFESSIONAL_INFO -> TERMS -> COMPLETED
"""

from enum import Enum


class OnboardingStage(str, Enum):
    """Onboarding wizard stages, in order."""

    STARTED = "STARTED"
    PERSONAL_INFO = "PERSONAL_INFO"
    PROFESSIONAL_INFO = "PROFESSIONAL_INFO"
    TERMS = "TERMS"
    COMPLETED = "COMPLETED"


STAGE_ORDER: list[OnboardingStage] = list(OnboardingStage)


def is_valid_stage(stage: str) -> bool:
    return stage in {s.value for s in OnboardingStage}


def next_stage(current: OnboardingStage) -> OnboardingStage | None:
    """Stage after ``current``, or None once completed."""
    index = STAGE_ORDER.index(current)
    if index + 1 >= len(STAGE_ORDER):
        return None
    return STAGE_ORDER[index + 1]


def previous_stage(current: OnboardingStage) -> OnboardingStage | None:
    """Stage before ``current``, or None at the start."""
    index = STAGE_ORDER.index(current)
    if index == 0:
        return None
    return STAGE_ORDER[index - 1]
