import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Enum, func

from app.core.db import Base
from app.schemas.enums import (
    UserRole,
    VerificationStatus,
    IdentityVerificationStatus,
    DocumentVerificationStatus,
    OnboardingStep,
)


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)

    role = Column(Enum(UserRole, name="user_role_enum"), nullable=False, default=UserRole.CLIENT)

    # email verification
    verification_status = Column(
        Enum(VerificationStatus, name="verification_status_enum"),
        nullable=False,
        default=VerificationStatus.UNVERIFIED,
    )
    phone_verified = Column(Boolean, nullable=False, default=False)
    profile_setup_completed = Column(Boolean, nullable=False, default=False)

    identity_verification_status = Column(
        Enum(IdentityVerificationStatus, name="identity_verification_status_enum"),
        nullable=False,
        default=IdentityVerificationStatus.NOT_STARTED,
    )
    documents_verification_status = Column(
        Enum(DocumentVerificationStatus, name="document_verification_status_enum"),
        nullable=False,
        default=DocumentVerificationStatus.NOT_STARTED,
    )

    terms_accepted = Column(Boolean, nullable=False, default=False)
    privacy_policy_accepted = Column(Boolean, nullable=False, default=False)

    onboarding_completed = Column(Boolean, nullable=False, default=False)
    onboarding_completed_at = Column(DateTime(timezone=True), nullable=True)
    onboarding_step = Column(
        Enum(OnboardingStep, name="onboarding_step_enum"),
        nullable=True,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
