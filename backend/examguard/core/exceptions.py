"""
Error taxonomy shared by the session and proctoring services.

Services raise these; the API layer renders them as
``{"error": <kind>, "message": <text>}`` with the matching status code.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse


class ServiceError(Exception):
    kind = "error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class NotFoundError(ServiceError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(ServiceError):
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(ServiceError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class InvalidArgumentError(ServiceError):
    kind = "invalid_argument"
    status_code = status.HTTP_400_BAD_REQUEST


async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
