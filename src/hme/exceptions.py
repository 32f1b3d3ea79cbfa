"""Custom exceptions for the hme application."""


class HmeError(Exception):
    """Base exception for all hme errors."""

    def __init__(self, message: str = "An error occurred with Hide My Email") -> None:
        self.message = message
        super().__init__(self.message)


class ParseError(HmeError):
    """Raised when a session cookie string is malformed."""

    def __init__(self, message: str = "Malformed cookie string") -> None:
        super().__init__(message)


class CredentialNotFoundError(ParseError):
    """Raised when no session cookie string is configured anywhere."""

    def __init__(
        self,
        message: str = (
            "No iCloud session cookie configured. Set HME_COOKIE or create ~/.hme/cookie.txt "
            "with the Cookie header copied from an icloud.com browser session."
        ),
    ) -> None:
        super().__init__(message)


class AuthError(HmeError):
    """Raised when iCloud rejects the session or validation can't complete."""

    def __init__(
        self,
        message: str = "Session rejected. Please login to icloud.com in your browser and export the cookies again.",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code


class GenerationError(HmeError):
    """Raised when a new alias can't be generated."""

    def __init__(
        self,
        message: str = "Failed to generate alias",
        error_code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.status_code = status_code


class ValidationError(HmeError):
    """Raised when caller-supplied claim data is invalid."""

    def __init__(self, message: str = "Label must not be empty") -> None:
        super().__init__(message)


class ClaimError(HmeError):
    """Raised when a generated alias can't be claimed."""

    def __init__(
        self,
        message: str = "Failed to claim alias",
        address: str | None = None,
        error_code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.address = address
        self.error_code = error_code
        self.status_code = status_code


class AliasConsumedError(ClaimError):
    """Raised when claiming an alias that was already claimed or orphaned."""

    def __init__(self, address: str, state: str) -> None:
        super().__init__(
            f"Alias {address} can't be claimed again (state: {state})",
            address=address,
        )
        self.state = state


class ListError(HmeError):
    """Raised when the alias list can't be fetched."""

    def __init__(self, message: str = "Failed to list aliases") -> None:
        super().__init__(message)


class SessionInUseError(HmeError):
    """Raised when a second manager is bound to an already owned client."""

    def __init__(self, message: str = "Client is already owned by another HideMyEmailManager") -> None:
        super().__init__(message)
