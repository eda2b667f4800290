"""Error taxonomy shared by services and the HTTP layer."""


class PetWallError(Exception):
    """Base error carrying an HTTP status and a user-facing message."""

    status_code = 500
    public_message = "Something went wrong. Please try again."
    expose_detail = False

    def public_detail(self) -> str:
        """Return the message that is safe to show to the caller."""
        if self.expose_detail and self.args:
            return str(self.args[0])
        return self.public_message


class InvalidImage(PetWallError):
    """Source image is unreadable or has a zero dimension."""

    status_code = 422
    public_message = "Invalid image."
    expose_detail = True


class ProcessingUnavailable(PetWallError):
    """The output surface could not be created."""

    status_code = 503
    public_message = "Could not process the image."


class InvalidFrameOptions(PetWallError):
    """Framing parameters are not usable."""

    status_code = 422
    public_message = "Invalid framing options."
    expose_detail = True


class UnsupportedMediaType(PetWallError):
    """Uploaded file is not an image."""

    status_code = 415
    public_message = "Choose an image (JPG/PNG/WebP)."


class RequiredFieldMissing(PetWallError):
    """A required form field is blank."""

    status_code = 422
    public_message = "A required field is missing."
    expose_detail = True

    def __init__(self, field: str) -> None:
        super().__init__(f"{field} is required")
        self.field = field


class UploadFailed(PetWallError):
    """Storage rejected the composed asset."""

    status_code = 502
    public_message = "Upload failed. Please try again."


class PersistFailed(PetWallError):
    """The record store rejected a write or read."""

    status_code = 502
    public_message = "Upload failed. Please try again."


class Unauthorized(PetWallError):
    """Operator credential did not match."""

    status_code = 401
    public_message = "Unauthorized."


class InvalidTarget(PetWallError):
    """Moderation target state is not approved or rejected."""

    status_code = 400
    public_message = "Invalid payload."
    expose_detail = True


class RecordNotFound(PetWallError):
    """No record exists for the given id."""

    status_code = 404
    public_message = "Submission not found."


class AlreadyModerated(PetWallError):
    """The record already left the pending state."""

    status_code = 409
    public_message = "Submission was already moderated."
