from enum import Enum

class UserRole(str, Enum):
    CLIENT = "CLIENT"
    AGENT = "AGENT"
    INSPECTOR = "INSPECTOR"
    COMPANY_ADMIN = "COMPANY_ADMIN"
    PLATFORM_ADMIN = "PLATFORM_ADMIN"

class VerificationStatus(str, Enum):
    UNVERIFIED = "UNVERIFIED"
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"

class IdentityVerificationStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"

class DocumentVerificationStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

class OnboardingStep(str, Enum):
    EMAIL_VERIFICATION = "EMAIL_VERIFICATION"
    PHONE_VERIFICATION = "PHONE_VERIFICATION"
    PROFILE_SETUP = "PROFILE_SETUP"
    IDENTITY_VERIFICATION = "IDENTITY_VERIFICATION"
    DOCUMENT_UPLOAD = "DOCUMENT_UPLOAD"
    TERMS_ACCEPTANCE = "TERMS_ACCEPTANCE"
    COMPLETED = "COMPLETED"

# badge shown next to each step in the progress widget
class StepStatus(str, Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    NEXT = "next"
    OPTIONAL = "optional"
    PENDING = "pending"

class NotificationType(str, Enum):
    INSPECTION_SCHEDULED = "INSPECTION_SCHEDULED"
    INSPECTION_ACCEPTED = "INSPECTION_ACCEPTED"
    INSPECTION_COMPLETED = "INSPECTION_COMPLETED"
    INQUIRY_RECEIVED = "INQUIRY_RECEIVED"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    LISTING_SAVED = "LISTING_SAVED"
    VERIFICATION_APPROVED = "VERIFICATION_APPROVED"
    VERIFICATION_REJECTED = "VERIFICATION_REJECTED"
    SYSTEM = "SYSTEM"
