"""
Models for the upload → analyze → poll workflow.
"""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AnalysisConfig(BaseModel):
    """Everything the analysis client and poll loop need from the outside."""
    model_config = ConfigDict(frozen=True)

    endpoint: str = ""
    api_key: str = ""
    model_id: str = "prebuilt-receipt"
    api_version: str = "2023-07-31"
    models_path: str = "formrecognizer/documentModels"
    request_timeout: float = 30.0
    poll_interval_seconds: float = Field(default=1.0, ge=0)
    poll_max_attempts: int = Field(default=30, ge=1)

    def analyze_url(self, model_id: str | None = None) -> str:
        base = self.endpoint.rstrip("/")
        path = self.models_path.strip("/")
        return f"{base}/{path}/{model_id or self.model_id}:analyze"


class JobState(str, Enum):
    SUBMITTED = "submitted"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.SUCCEEDED, JobState.FAILED, JobState.TIMED_OUT)


class AnalysisJob(BaseModel):
    """One in-flight request to the analysis service."""
    operation_handle: str
    state: JobState = JobState.SUBMITTED
    attempts_made: int = 0


class UploadedImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    permanent_url: str
    readable_url: str = Field(..., description="Short-lived URL the vendor fetches")


class WorkflowState(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    SUBMITTED = "submitted"
    POLLING = "polling"
    EXTRACTED = "extracted"
    NORMALIZED = "normalized"
    UPLOAD_FAILED = "upload_failed"
    SUBMISSION_FAILED = "submission_failed"
    POLL_FAILED = "poll_failed"
    TIMED_OUT = "timed_out"
