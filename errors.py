from typing import Dict, List


class ClinicError(Exception):
    """Base class for every error raised by the clinic core."""


class NotFound(ClinicError):
    def __init__(self, entity: str, item_id):
        self.entity = entity
        self.item_id = item_id
        super().__init__(f"{entity} with ID {item_id} not found")


class ReferencedRecord(ClinicError):
    """A delete was refused because other records still point at the target."""

    def __init__(self, entity: str, item_id, referenced_by: List[str]):
        self.entity = entity
        self.item_id = item_id
        self.referenced_by = referenced_by
        super().__init__(
            f"{entity} with ID {item_id} is referenced by {', '.join(referenced_by)} and cannot be deleted"
        )


class ValidationError(ClinicError):
    """Field-level input errors, keyed by field name."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))


class AuthenticationError(ClinicError):
    def __init__(self, message: str = "Invalid credentials"):
        self.message = message
        super().__init__(message)


class StoreStateError(ClinicError):
    pass
