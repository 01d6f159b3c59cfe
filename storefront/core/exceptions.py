# storefront/core/exceptions.py
from fastapi import HTTPException, status


class ValidationError(HTTPException):
    """Malformed or missing input: empty cart, missing customer fields, bad enum value."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BusinessRuleViolation(HTTPException):
    """Input is well formed but a rule refuses it (expired promo, percentage over 100)."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class PersistenceFailure(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
