"""
Receipt upload pipeline.

Orchestrates: store image → submit for analysis → poll → normalize fields.
"""
from __future__ import annotations

import logging

import httpx
from fastapi.concurrency import run_in_threadpool

from receipt_tracker.pipeline.analysis import AnalysisClient
from receipt_tracker.pipeline.errors import (
    AnalysisFailed,
    AnalysisPollError,
    AnalysisSubmissionFailed,
    AnalysisTimeout,
    InvalidUpload,
    ReceiptWorkflowError,
    StorageUnavailable,
)
from receipt_tracker.pipeline.normalizer import normalize
from receipt_tracker.pipeline.poller import AnalysisPoller
from receipt_tracker.pipeline.storage import BlobStore, BlobUploader
from receipt_tracker.schemas import AnalysisConfig, CanonicalReceipt, WorkflowState

logger = logging.getLogger(__name__)

_FAILURE_STATES: dict[type[ReceiptWorkflowError], WorkflowState] = {
    InvalidUpload: WorkflowState.UPLOAD_FAILED,
    StorageUnavailable: WorkflowState.UPLOAD_FAILED,
    AnalysisSubmissionFailed: WorkflowState.SUBMISSION_FAILED,
    AnalysisPollError: WorkflowState.POLL_FAILED,
    AnalysisFailed: WorkflowState.POLL_FAILED,
    AnalysisTimeout: WorkflowState.TIMED_OUT,
}


def failure_state(exc: ReceiptWorkflowError) -> WorkflowState:
    for cls in type(exc).__mro__:
        if cls in _FAILURE_STATES:
            return _FAILURE_STATES[cls]
    return WorkflowState.POLL_FAILED


class ReceiptWorkflow:
    """One upload-and-analyze run. Create a fresh instance per request."""

    def __init__(self, uploader: BlobUploader, client: AnalysisClient, poller: AnalysisPoller):
        self.uploader = uploader
        self.client = client
        self.poller = poller
        self.state = WorkflowState.IDLE

    def _enter(self, state: WorkflowState) -> None:
        logger.info("Workflow %s → %s", self.state.value, state.value)
        self.state = state

    async def run(
        self, image_bytes: bytes, content_type: str, filename_hint: str = ""
    ) -> CanonicalReceipt:
        if self.state is not WorkflowState.IDLE:
            raise RuntimeError(f"workflow already ran (state={self.state.value})")
        try:
            self._enter(WorkflowState.UPLOADING)
            # blob writes are blocking I/O
            image = await run_in_threadpool(
                self.uploader.store, image_bytes, content_type, filename_hint
            )

            job = await self.client.submit(image.readable_url)
            self._enter(WorkflowState.SUBMITTED)

            self._enter(WorkflowState.POLLING)
            payload = await self.poller.wait_for_result(job)
            self._enter(WorkflowState.EXTRACTED)
        except ReceiptWorkflowError as exc:
            self._enter(failure_state(exc))
            logger.warning("Workflow failed: %s", exc.error)
            raise

        receipt = normalize(payload, image.permanent_url)
        self._enter(WorkflowState.NORMALIZED)
        return receipt


def build_workflow(
    store: BlobStore,
    http: httpx.AsyncClient,
    config: AnalysisConfig,
    ttl_seconds: int,
    max_bytes: int | None = None,
) -> ReceiptWorkflow:
    return ReceiptWorkflow(
        uploader=BlobUploader(store, ttl_seconds=ttl_seconds, max_bytes=max_bytes),
        client=AnalysisClient(http, config),
        poller=AnalysisPoller(http, config),
    )
