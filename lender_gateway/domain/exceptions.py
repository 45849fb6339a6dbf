"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class LenderNotFoundError(DomainException):
    """Lender id is not in the catalogue"""

    pass


class LenderAPIError(DomainException):
    """Lender API returned an error or is unavailable"""

    pass


class DuplicateSubmissionError(DomainException):
    """Application is already being fanned out"""

    def __init__(self, application_id: str):
        super().__init__(f"Application {application_id} is already being processed")
        self.application_id = application_id


class NoEligibleLendersError(DomainException):
    """No lender could be resolved for the application"""

    pass


class InvalidStatusUpdateError(DomainException):
    """Status update payload or transition is not acceptable"""

    pass
