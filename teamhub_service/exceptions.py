from fastapi import HTTPException, status


class NotFoundException(HTTPException):
    def __init__(self, detail: str = "Object not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class EntityNotFoundException(NotFoundException):
    def __init__(self, entity: str, entity_id):
        super().__init__(detail=f"{entity} with id={entity_id} not found")


class NotFoundOrNotPermittedException(NotFoundException):
    """An update or delete matched zero rows."""

    def __init__(self, entity: str, entity_id):
        super().__init__(detail=f"{entity} with id={entity_id} not found or not permitted")


class ForbiddenException(HTTPException):
    def __init__(self, detail: str = "Not permitted"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ValidationFailedException(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class ConflictException(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class PartialWriteException(HTTPException):
    """A multi-step write failed; everything before ``step`` was rolled back."""

    def __init__(self, step: str, error: str):
        self.step = step
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed at step '{step}': {error}",
        )


class UpstreamServiceException(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)
