"""Errors raised by the workflow services and mapped to HTTP responses by the routes."""


class WorkflowError(Exception):
    """Base class for workflow failures a caller can act on."""


class NotFoundError(WorkflowError):
    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class ValidationError(WorkflowError):
    """Missing input or an illegal state change (e.g. deciding a resolved approval)."""


class ConflictError(WorkflowError):
    """A concurrent writer changed the same row; the caller may retry."""
