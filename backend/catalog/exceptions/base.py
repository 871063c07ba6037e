from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "An unexpected error occurred"

    def __init__(self, detail: str | None = None):
        if detail:
            self.detail = detail
        super().__init__(self.detail)


class StorageUnavailableError(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "The database is currently unavailable."


class OperationCancelledError(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "The operation was cancelled before it completed."
