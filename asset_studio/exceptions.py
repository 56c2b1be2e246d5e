from fastapi import HTTPException, status


class StudioError(Exception):
    """Base class for every failure surfaced by the studio."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class BadRequestError(StudioError):
    """Custom exception for bad client requests."""

    def __init__(self, message: str = "Bad request"):
        super().__init__(message)


class ImageBusyError(BadRequestError):
    """Raised when an edit targets an image that is already being processed."""

    def __init__(self, message: str = "This image is already being processed."):
        super().__init__(message)


class NotFoundError(StudioError):
    """Custom exception for resource not found."""

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")


class GenerationError(StudioError):
    """The generation service failed or returned nothing usable.

    ``step`` is the 1-based step of a series run that failed, if any.
    """

    def __init__(self, message: str = "Image generation failed.", step: int | None = None):
        self.step = step
        if step is not None:
            message = f"Error on step {step}: {message}"
        super().__init__(message)


class GenerationRefusedError(GenerationError):
    """The model answered but produced no image (safety block or refusal)."""

    def __init__(
        self,
        message: str = (
            "No images were generated. The model may have refused the request "
            "due to safety policies or an inability to fulfill it. "
            "Try adjusting your prompt."
        ),
        step: int | None = None,
    ):
        super().__init__(message, step=step)


class StorageError(StudioError):
    """Custom exception for storage failures."""

    def __init__(self, message: str = "Failed to save data to storage."):
        super().__init__(message)


class StorageFullError(StorageError):
    """Storage is full and nothing is eligible for automatic removal."""

    def __init__(
        self,
        message: str = (
            "Storage is full and every history entry contains a favorite. "
            "Unfavorite or delete some images to free space."
        ),
    ):
        super().__init__(message)


class StorageQuotaExceededError(Exception):
    """Raised by a storage backend when a write would exceed its quota."""

    def __init__(self, key: str, required: int, quota: int):
        self.key = key
        self.required = required
        self.quota = quota
        super().__init__(
            f"Storage quota exceeded while saving key {key}: {required} > {quota} bytes"
        )


def http_error(error: StudioError) -> HTTPException:
    """Translate a studio failure into the HTTP error the API reports."""
    if isinstance(error, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, BadRequestError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, GenerationError):
        status_code = status.HTTP_502_BAD_GATEWAY
    elif isinstance(error, StorageFullError):
        status_code = status.HTTP_507_INSUFFICIENT_STORAGE
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=status_code, detail=error.message)
