from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple

from app.models.user import User
from app.schemas.enums import (
    DocumentVerificationStatus,
    IdentityVerificationStatus,
    OnboardingStep,
    StepStatus,
    UserRole,
    VerificationStatus,
)


@dataclass(frozen=True)
class OnboardingRequirement:
    step: OnboardingStep
    title: str
    description: str
    roles: Tuple[UserRole, ...]
    is_required: bool = True
    is_completed: bool = False
    depends_on: Tuple[OnboardingStep, ...] = ()


@dataclass(frozen=True)
class OnboardingState:
    current_step: OnboardingStep
    completed_steps: List[OnboardingStep]
    next_step: Optional[OnboardingStep]
    can_proceed: bool
    is_completed: bool
    completion_percentage: int
    blockers: List[str] = field(default_factory=list)
    requirements: List[OnboardingRequirement] = field(default_factory=list)


_ALL_ROLES = tuple(UserRole)
_NON_ADMIN_ROLES = (
    UserRole.CLIENT,
    UserRole.AGENT,
    UserRole.INSPECTOR,
    UserRole.COMPANY_ADMIN,
)
_FIELD_ROLES = (UserRole.AGENT, UserRole.INSPECTOR)

# Declaration order is the walk order for next-step resolution.
ONBOARDING_REQUIREMENTS: Tuple[OnboardingRequirement, ...] = (
    OnboardingRequirement(
        step=OnboardingStep.EMAIL_VERIFICATION,
        title="Email Verification",
        description="Verify your email address to secure your account",
        roles=_ALL_ROLES,
    ),
    OnboardingRequirement(
        step=OnboardingStep.PHONE_VERIFICATION,
        title="Phone Verification",
        description="Verify your phone number for WhatsApp notifications",
        roles=_NON_ADMIN_ROLES,
        depends_on=(OnboardingStep.EMAIL_VERIFICATION,),
    ),
    OnboardingRequirement(
        step=OnboardingStep.PROFILE_SETUP,
        title="Profile Setup",
        description="Complete your profile information",
        roles=_NON_ADMIN_ROLES,
        depends_on=(OnboardingStep.EMAIL_VERIFICATION,),
    ),
    OnboardingRequirement(
        step=OnboardingStep.IDENTITY_VERIFICATION,
        title="Identity Verification",
        description="Verify your identity with NIN/BVN (Agents & Inspectors only)",
        roles=_FIELD_ROLES,
        depends_on=(OnboardingStep.PROFILE_SETUP,),
    ),
    OnboardingRequirement(
        step=OnboardingStep.DOCUMENT_UPLOAD,
        title="Document Upload",
        description="Upload required verification documents",
        roles=(UserRole.AGENT, UserRole.INSPECTOR, UserRole.COMPANY_ADMIN),
        depends_on=(OnboardingStep.IDENTITY_VERIFICATION,),
    ),
    OnboardingRequirement(
        step=OnboardingStep.TERMS_ACCEPTANCE,
        title="Terms & Conditions",
        description="Accept terms of service and privacy policy",
        roles=_NON_ADMIN_ROLES,
        depends_on=(OnboardingStep.PROFILE_SETUP,),
    ),
)

BLOCKER_EMAIL = "Email verification required"
BLOCKER_PHONE = "Phone verification required"
BLOCKER_IDENTITY_REJECTED = "Identity verification was rejected — please contact support"
BLOCKER_IDENTITY_PENDING = "Identity verification is under review"
BLOCKER_DOCUMENTS_REJECTED = "Document verification was rejected — please resubmit"
BLOCKER_DOCUMENTS_UNDER_REVIEW = "Documents are under review"


def _find_requirement(step: OnboardingStep) -> Optional[OnboardingRequirement]:
    return next((req for req in ONBOARDING_REQUIREMENTS if req.step == step), None)


def is_step_completed(user: User, step: OnboardingStep) -> bool:
    if step == OnboardingStep.EMAIL_VERIFICATION:
        return user.verification_status == VerificationStatus.VERIFIED
    if step == OnboardingStep.PHONE_VERIFICATION:
        return bool(user.phone_verified)
    if step == OnboardingStep.PROFILE_SETUP:
        return bool(user.profile_setup_completed)
    if step == OnboardingStep.IDENTITY_VERIFICATION:
        return user.identity_verification_status == IdentityVerificationStatus.VERIFIED
    if step == OnboardingStep.DOCUMENT_UPLOAD:
        return user.documents_verification_status == DocumentVerificationStatus.APPROVED
    if step == OnboardingStep.TERMS_ACCEPTANCE:
        return bool(user.terms_accepted) and bool(user.privacy_policy_accepted)
    if step == OnboardingStep.COMPLETED:
        return bool(user.onboarding_completed)
    return False


def get_user_requirements(user: User) -> List[OnboardingRequirement]:
    """Catalog entries that apply to the user's role, annotated with completion."""
    return [
        replace(req, is_completed=is_step_completed(user, req.step))
        for req in ONBOARDING_REQUIREMENTS
        if user.role in req.roles
    ]


def get_completed_steps(user: User) -> List[OnboardingStep]:
    """
    Every catalog step whose flag holds, regardless of role.

    A CLIENT with a verified identity will list IDENTITY_VERIFICATION here even
    though it is not one of their requirements. Percentage and next-step only
    look at the role-filtered requirements, so this never changes them.
    """
    return [
        req.step
        for req in ONBOARDING_REQUIREMENTS
        if is_step_completed(user, req.step)
    ]


def get_current_step(user: User) -> OnboardingStep:
    return user.onboarding_step or OnboardingStep.EMAIL_VERIFICATION


def get_next_step(user: User) -> Optional[OnboardingStep]:
    """
    First required, incomplete requirement whose prerequisites are all done.

    Blocked requirements are skipped rather than stopping the walk, so a later
    step can be offered while an earlier one is still waiting on its own
    prerequisites.
    """
    completed = set(get_completed_steps(user))

    for req in get_user_requirements(user):
        if not req.is_required or req.step in completed:
            continue
        if all(dep in completed for dep in req.depends_on):
            return req.step

    return None


def can_proceed_to_next(user: User) -> bool:
    next_step = get_next_step(user)
    if next_step is None:
        return False

    requirement = _find_requirement(next_step)
    if requirement is None:
        return False

    completed = set(get_completed_steps(user))
    return all(dep in completed for dep in requirement.depends_on)


def is_onboarding_completed(
    user: User,
    requirements: Optional[List[OnboardingRequirement]] = None,
) -> bool:
    # the stored flag is authoritative once set
    if user.onboarding_completed:
        return True

    if requirements is None:
        requirements = get_user_requirements(user)
    return all(req.is_completed for req in requirements if req.is_required)


def calculate_completion_percentage(requirements: List[OnboardingRequirement]) -> int:
    required = [req for req in requirements if req.is_required]
    if not required:
        return 100

    done = sum(1 for req in required if req.is_completed)
    # half-up, not banker's rounding
    return int(math.floor(done * 100 / len(required) + 0.5))


def get_blockers(user: User) -> List[str]:
    blockers: List[str] = []

    if user.verification_status != VerificationStatus.VERIFIED:
        blockers.append(BLOCKER_EMAIL)

    if user.role in (UserRole.AGENT, UserRole.INSPECTOR, UserRole.COMPANY_ADMIN) and not user.phone_verified:
        blockers.append(BLOCKER_PHONE)

    if user.role in _FIELD_ROLES:
        if user.identity_verification_status == IdentityVerificationStatus.REJECTED:
            blockers.append(BLOCKER_IDENTITY_REJECTED)
        elif user.identity_verification_status == IdentityVerificationStatus.PENDING:
            blockers.append(BLOCKER_IDENTITY_PENDING)

    if user.documents_verification_status == DocumentVerificationStatus.REJECTED:
        blockers.append(BLOCKER_DOCUMENTS_REJECTED)
    elif user.documents_verification_status == DocumentVerificationStatus.UNDER_REVIEW:
        blockers.append(BLOCKER_DOCUMENTS_UNDER_REVIEW)

    return blockers


def compute_onboarding_state(user: User) -> OnboardingState:
    requirements = get_user_requirements(user)

    return OnboardingState(
        current_step=get_current_step(user),
        completed_steps=get_completed_steps(user),
        next_step=get_next_step(user),
        can_proceed=can_proceed_to_next(user),
        is_completed=is_onboarding_completed(user, requirements),
        completion_percentage=calculate_completion_percentage(requirements),
        blockers=get_blockers(user),
        requirements=requirements,
    )


# ----------------------------
# Helpers for callers
# ----------------------------
def needs_onboarding(user: User) -> bool:
    return not compute_onboarding_state(user).is_completed


def get_onboarding_status_message(user: User) -> str:
    state = compute_onboarding_state(user)

    if state.is_completed:
        return "Onboarding completed"

    if state.blockers:
        return state.blockers[0]

    if state.next_step is not None:
        requirement = _find_requirement(state.next_step)
        return f"Next: {requirement.title}" if requirement else "Continue onboarding"

    return "Continue onboarding"


def get_step_status(state: OnboardingState, step: OnboardingStep) -> StepStatus:
    if step in state.completed_steps:
        return StepStatus.COMPLETED
    if step == state.current_step:
        return StepStatus.CURRENT
    if step == state.next_step:
        return StepStatus.NEXT

    requirement = next((req for req in state.requirements if req.step == step), None)
    if requirement is not None and not requirement.is_required:
        return StepStatus.OPTIONAL
    return StepStatus.PENDING


def dashboard_route_for(role: UserRole) -> str:
    if role == UserRole.CLIENT:
        return "/client"
    if role == UserRole.AGENT:
        return "/agent"
    if role == UserRole.INSPECTOR:
        return "/inspector"
    if role == UserRole.COMPANY_ADMIN:
        return "/company"
    if role == UserRole.PLATFORM_ADMIN:
        return "/admin"
    raise ValueError(f"Unknown role: {role}")
