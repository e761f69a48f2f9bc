# rideapp/errors.py
from fastapi import HTTPException, status


class BadRequest(HTTPException):
    def __init__(self, detail="Bad request"):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail)


class Unauthorized(HTTPException):
    def __init__(self, detail="Not authenticated"):
        super().__init__(
            status.HTTP_401_UNAUTHORIZED,
            detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class Forbidden(HTTPException):
    def __init__(self, detail="Forbidden"):
        super().__init__(status.HTTP_403_FORBIDDEN, detail)


class NotFound(HTTPException):
    def __init__(self, detail="Not found"):
        super().__init__(status.HTTP_404_NOT_FOUND, detail)


class Conflict(HTTPException):
    def __init__(self, detail="Conflict"):
        super().__init__(status.HTTP_409_CONFLICT, detail)
