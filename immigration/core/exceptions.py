"""
Domain exceptions raised by the service layer.

The app factory maps each type to one HTTP status and the JSON body
``{"error": str(exc), "details": {...}}``:

    NotFoundError    404   missing row, or a row of another tenant
    ValidationError  422   malformed payload; ``details`` maps field → message
    ConflictError    409   duplicate unique value, entity in use, lost race
    TransitionError  409   status move not in the transition table
"""


class NotFoundError(Exception):
    """Missing and cross-tenant lookups look the same to the caller."""

    def __init__(self, resource: str, resource_id=None, tenant_id: int | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.tenant_id = tenant_id
        where = f" id={resource_id}" if resource_id is not None else ""
        super().__init__(f"{resource}{where} not found")


class ValidationError(Exception):
    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    def __init__(self, resource: str, field: str, value=None, message: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(message or f"{resource} with {field}={value!r} already exists")

    @property
    def details(self) -> dict:
        return {self.field: "conflict"}


class TransitionError(Exception):
    """``current`` is None when the entity has no status yet."""

    def __init__(self, entity: str, current: str | None, candidate: str,
                 reason: str | None = None) -> None:
        self.entity = entity
        self.current = current
        self.candidate = candidate
        self.reason = reason
        message = f"Cannot move {entity} from '{current}' to '{candidate}'"
        super().__init__(f"{message}: {reason}" if reason else message)
