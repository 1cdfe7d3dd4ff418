"""
Exception types shared by the Lightsprint CLI and hooks
"""

from typing import Optional


class LightsprintError(Exception):
    """Base class for every error the CLI reports to the user"""


class NotConnectedError(LightsprintError):
    """No project is linked to the current folder"""

    def __init__(self, folder: str, skipped: bool = False) -> None:
        self.folder = folder
        self.skipped = skipped
        if skipped:
            message = f"Lightsprint is not connected for {folder} (previously skipped)."
        else:
            message = f"No Lightsprint project linked to {folder}. Run 'lightsprint connect'."
        super().__init__(message)


class AuthenticationError(LightsprintError):
    """Token refresh failed or authorization produced no token"""


class ApiError(LightsprintError):
    """Non-2xx response from the Lightsprint API"""

    def __init__(self, status: int, body: str = "", url: Optional[str] = None) -> None:
        self.status = status
        self.body = body
        self.url = url
        super().__init__(f"Lightsprint API {status}: {body}")


class CallbackTimeout(LightsprintError):
    """The browser never called back before the deadline"""
