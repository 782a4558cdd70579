from django.core.exceptions import ValidationError


class NotFoundError(Exception):
    """Raised when a record is absent or belongs to another company."""
    pass


class ConflictError(Exception):
    """Raised on a per-company uniqueness clash (e.g. duplicate document number)
    or when a delete would orphan dependent records."""
    pass


class UnresolvedReferenceError(ValidationError):
    """Raised when a customer/vendor/invoice reference cannot be resolved
    to a record owned by the current company."""
    pass


class MalformedIdentifierError(ValueError):
    """Raised when a value that must be a record id is not one."""
    pass
