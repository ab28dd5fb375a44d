from typing import Optional


class IntakeError(Exception):
    """Error base del servicio. El mensaje se muestra tal cual al usuario."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigIncomplete(IntakeError):
    status_code = 400


class TransportFailure(IntakeError):
    status_code = 502

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class MissingJobLocation(IntakeError):
    status_code = 502

    def __init__(self, message: str = "Operation-Location header not returned by the analysis service"):
        super().__init__(message)


class RemoteJobFailed(IntakeError):
    status_code = 502

    def __init__(self, reason: str):
        super().__init__(f"OCR analysis failed: {reason}")
        self.reason = reason


class PollTimeout(IntakeError):
    status_code = 504

    def __init__(self, attempts: int):
        super().__init__(
            f"OCR analysis did not finish after {attempts} polling attempts. "
            "Large or multi-page documents may take longer."
        )
        self.attempts = attempts


class AllCandidatesExhausted(IntakeError):
    status_code = 502

    def __init__(self, last_error: Optional[Exception]):
        detail = str(last_error) if last_error else "every API endpoint failed"
        super().__init__(f"Azure OCR processing failed: {detail}")
        self.last_error = last_error


class InvalidResponseShape(IntakeError):
    status_code = 502


class InvalidTemplate(IntakeError):
    status_code = 400


class EmptyOcrText(IntakeError):
    status_code = 400

    def __init__(self, message: str = "No OCR text was provided"):
        super().__init__(message)


class EmptyCompletion(IntakeError):
    status_code = 502

    def __init__(self, message: str = "Unexpected Azure OpenAI response: no completion choices"):
        super().__init__(message)


class LlmRequestFailed(IntakeError):
    status_code = 502

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
