"""
Workflow failure taxonomy.

Every error is fatal to the workflow instance that raised it; the user
re-initiates the upload. ``status_code`` is what the HTTP layer answers with.
"""
from __future__ import annotations

from typing import Any


class ReceiptWorkflowError(Exception):
    status_code = 500
    message = "Receipt analysis failed"

    def __init__(self, error: str, **detail: Any):
        super().__init__(error)
        self.error = error
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "error": self.error, **self.detail}


class InvalidUpload(ReceiptWorkflowError):
    status_code = 400
    message = "Invalid receipt image"


class UnsupportedImageType(InvalidUpload):
    status_code = 415


class StorageUnavailable(ReceiptWorkflowError):
    status_code = 503
    message = "Image storage unavailable"


class AnalysisSubmissionFailed(ReceiptWorkflowError):
    status_code = 502
    message = "Analysis request was rejected"

    def __init__(self, error: str, vendor_status: int | None = None, vendor_body: str = ""):
        super().__init__(error, vendor_status=vendor_status, vendor_body=vendor_body)
        self.vendor_status = vendor_status
        self.vendor_body = vendor_body


class AnalysisPollError(ReceiptWorkflowError):
    status_code = 502
    message = "Analysis status check failed"

    def __init__(self, error: str, vendor_status: int, vendor_body: str = ""):
        super().__init__(error, vendor_status=vendor_status, vendor_body=vendor_body)
        self.vendor_status = vendor_status
        self.vendor_body = vendor_body


class AnalysisFailed(ReceiptWorkflowError):
    status_code = 502
    message = "Analysis service could not read the receipt"

    def __init__(self, error: str, diagnostics: Any = None):
        super().__init__(error, diagnostics=diagnostics)
        self.diagnostics = diagnostics


class AnalysisTimeout(ReceiptWorkflowError):
    status_code = 504
    message = "Analysis timed out"

    def __init__(self, error: str, attempts_made: int):
        super().__init__(error, attempts_made=attempts_made)
        self.attempts_made = attempts_made
