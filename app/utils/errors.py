from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Entity is missing or its id is malformed."""

    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class UnauthorizedError(HTTPException):
    """Caller's role or ownership does not permit the operation."""

    def __init__(self, detail: str = "Not authorized"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class BadRequestError(HTTPException):
    """Request breaks a booking rule."""

    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UpstreamError(HTTPException):
    """Payment gateway call failed."""

    def __init__(self, detail: str = "Payment gateway error"):
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)
