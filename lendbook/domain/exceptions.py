"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input rejected before any mutation took place"""

    pass


class NotFoundError(DomainException):
    """Referenced debtor, agreement or installment does not exist"""

    pass


class PersistenceError(DomainException):
    """Commit failed; every mutation of the operation was rolled back"""

    def __init__(self, operation: str, message: str = "Could not save changes"):
        super().__init__(f"{message} ({operation})")
        self.operation = operation
