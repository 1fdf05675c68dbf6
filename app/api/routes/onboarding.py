from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from loguru import logger
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.core.db import get_db
from app.models.user import User
from app.schemas.enums import OnboardingStep
from app.schemas.onboarding import (
    OnboardingCompleteResponse,
    OnboardingRequirementOut,
    OnboardingStateResponse,
    OnboardingStatusResponse,
)
from app.services.onboarding_state import (
    compute_onboarding_state,
    dashboard_route_for,
    get_onboarding_status_message,
    get_step_status,
    needs_onboarding,
)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


# ----------------------------
# STATE
# ----------------------------
@router.get("/state", response_model=OnboardingStateResponse)
def get_state(user: User = Depends(get_current_user)):
    state = compute_onboarding_state(user)

    logger.info(
        f"Onboarding state | user={user.id} role={user.role.value} "
        f"pct={state.completion_percentage} next={state.next_step}"
    )

    return OnboardingStateResponse(
        current_step=state.current_step,
        completed_steps=state.completed_steps,
        next_step=state.next_step,
        can_proceed=state.can_proceed,
        is_completed=state.is_completed,
        completion_percentage=state.completion_percentage,
        blockers=state.blockers,
        requirements=[
            OnboardingRequirementOut(
                step=req.step,
                title=req.title,
                description=req.description,
                is_required=req.is_required,
                is_completed=req.is_completed,
                depends_on=list(req.depends_on),
                roles=list(req.roles),
                status=get_step_status(state, req.step),
            )
            for req in state.requirements
        ],
    )


# ----------------------------
# STATUS
# ----------------------------
@router.get("/status", response_model=OnboardingStatusResponse)
def get_status(user: User = Depends(get_current_user)):
    return OnboardingStatusResponse(
        needs_onboarding=needs_onboarding(user),
        message=get_onboarding_status_message(user),
    )


# ----------------------------
# COMPLETE
# ----------------------------
@router.post("/complete", response_model=OnboardingCompleteResponse)
def complete_onboarding(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    user.onboarding_completed = True
    user.onboarding_completed_at = datetime.now(timezone.utc)
    user.onboarding_step = OnboardingStep.COMPLETED
    db.commit()

    logger.info(f"Onboarding completed | user={user.id}")

    return OnboardingCompleteResponse(
        success=True,
        message="Onboarding completed successfully",
        redirect_to=dashboard_route_for(user.role),
    )
