from typing import List

from pydantic import BaseModel

from app.schemas.base import ActionResponse, BaseSchema
from app.schemas.enums import OnboardingStep, StepStatus, UserRole


# ---------- state ----------
class OnboardingRequirementOut(BaseSchema):
    step: OnboardingStep
    title: str
    description: str
    is_required: bool
    is_completed: bool
    depends_on: List[OnboardingStep] = []
    roles: List[UserRole]
    status: StepStatus


class OnboardingStateResponse(BaseModel):
    current_step: OnboardingStep
    completed_steps: List[OnboardingStep]
    next_step: OnboardingStep | None = None
    can_proceed: bool
    is_completed: bool
    completion_percentage: int
    blockers: List[str]
    requirements: List[OnboardingRequirementOut]


# ---------- status ----------
class OnboardingStatusResponse(BaseModel):
    needs_onboarding: bool
    message: str


# ---------- complete ----------
class OnboardingCompleteResponse(ActionResponse):
    redirect_to: str
