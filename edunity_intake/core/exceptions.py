class EdunityError(Exception):
    """Base class for all Edunity intake domain exceptions.

    Every custom exception in this module inherits from here so that a
    single ``except EdunityError`` clause can catch any domain error.
    """

    code: str = "EDUNITY_ERROR"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(detail)


class MissingContactKeyError(EdunityError):
    """Raised before allocation when the normalized email or phone is empty."""

    code = "MISSING_CONTACT_KEY"

    def __init__(self, detail: str = "email and phone are required."):
        super().__init__(detail)


class DuplicateContactError(EdunityError):
    """A live lead of the same type already claims this contact identity."""

    code = "DUPLICATE_CONTACT"
    duplicate_email: bool = False
    duplicate_phone: bool = False


class DuplicateEmailError(DuplicateContactError):
    """Raised when the normalized email belongs to another live lead."""

    code = "DUPLICATE_EMAIL"
    duplicate_email = True

    def __init__(self, detail: str = "This email is already registered."):
        super().__init__(detail)


class DuplicatePhoneError(DuplicateContactError):
    """Raised when the normalized phone belongs to another live lead."""

    code = "DUPLICATE_PHONE"
    duplicate_phone = True

    def __init__(self, detail: str = "This phone number is already registered."):
        super().__init__(detail)


class AllocationExhaustedError(EdunityError):
    """Raised when every allocation attempt hit a retryable collision.

    Transient: the submission is safe to retry.
    """

    code = "ALLOCATION_EXHAUSTED"

    def __init__(
        self,
        detail: str = "Could not allocate a unique Edunity ID after multiple retries.",
    ):
        super().__init__(detail)


class LeadNotFoundError(EdunityError):
    """Raised when a requested lead does not exist."""

    code = "LEAD_NOT_FOUND"

    def __init__(self, detail: str = "Lead not found"):
        super().__init__(detail)


class AssignmentNotFoundError(EdunityError):
    """Raised when a lead assignment does not exist."""

    code = "ASSIGNMENT_NOT_FOUND"

    def __init__(self, detail: str = "Assignment not found"):
        super().__init__(detail)


class UnknownLeadTypeError(EdunityError):
    """Raised when a path or CLI argument names an unsupported lead type."""

    code = "UNKNOWN_LEAD_TYPE"

    def __init__(self, detail: str = "Unknown lead type"):
        super().__init__(detail)
