from __future__ import annotations


class AnalysisError(Exception):
    """Base for failures reported back to the caller as a structured error."""

    status_code = 400

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, str]:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InputValidationError(AnalysisError, ValueError):
    pass


class FetchError(AnalysisError):
    def __init__(self, details: str):
        super().__init__("Could not fetch the website", details)


class SSLInspectionError(AnalysisError):
    pass
