from pydantic import BaseModel


class AcceptedResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Body of every 4xx/5xx answer raised through ``HTTPException``."""

    detail: str


ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}
