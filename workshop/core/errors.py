"""HTTP-facing error taxonomy.

Services raise these directly, the same way they would raise a plain
``HTTPException``; each carries a structured ``detail`` so callers can
point at the offending field.
"""
from fastapi import HTTPException, status


class ValidationFailed(HTTPException):
    def __init__(self, field: str, message: str):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"field": field, "message": message},
        )
        self.field = field
        self.message = message


class NotFound(HTTPException):
    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{entity} not found: {entity_id}",
        )


class TransitionConflict(HTTPException):
    def __init__(self, message: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=message)


class PersistenceFailure(HTTPException):
    def __init__(self, message: str = "Storage temporarily unavailable, retry the operation"):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=message)
