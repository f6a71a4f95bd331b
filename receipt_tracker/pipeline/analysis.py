"""
Analysis client: submits a receipt image URL to the document-analysis
service and returns a handle to the asynchronous job.

No retries here: anything other than ``202 Accepted`` with an
``operation-location`` header aborts the workflow.
"""
from __future__ import annotations

import logging

import httpx

from receipt_tracker.pipeline.errors import AnalysisSubmissionFailed
from receipt_tracker.schemas import AnalysisConfig, AnalysisJob, JobState

logger = logging.getLogger(__name__)

SUBSCRIPTION_KEY_HEADER = "Ocp-Apim-Subscription-Key"
OPERATION_LOCATION_HEADER = "operation-location"

# Vendor bodies can be large HTML error pages; keep diagnostics bounded.
_MAX_BODY_CHARS = 2000


def vendor_headers(config: AnalysisConfig) -> dict[str, str]:
    return {SUBSCRIPTION_KEY_HEADER: config.api_key}


def response_excerpt(response: httpx.Response) -> str:
    try:
        return response.text[:_MAX_BODY_CHARS]
    except (UnicodeDecodeError, httpx.ResponseNotRead):
        return ""


class AnalysisClient:
    def __init__(self, http: httpx.AsyncClient, config: AnalysisConfig):
        self.http = http
        self.config = config

    async def submit(self, image_url: str, model_id: str | None = None) -> AnalysisJob:
        if not self.config.endpoint or not self.config.api_key:
            raise AnalysisSubmissionFailed("analysis service endpoint/key are not configured")

        url = self.config.analyze_url(model_id)
        logger.info("Submitting analysis: model=%s", model_id or self.config.model_id)
        try:
            response = await self.http.post(
                url,
                params={"api-version": self.config.api_version},
                headers=vendor_headers(self.config),
                json={"urlSource": image_url},
                timeout=self.config.request_timeout,
            )
        except httpx.HTTPError as exc:
            logger.warning("Analysis submit transport error: %s", type(exc).__name__)
            raise AnalysisSubmissionFailed(f"could not reach analysis service: {exc}") from exc

        if response.status_code != 202:
            logger.warning("Analysis submit rejected: status=%d", response.status_code)
            raise AnalysisSubmissionFailed(
                f"analysis submit failed with HTTP {response.status_code}",
                vendor_status=response.status_code,
                vendor_body=response_excerpt(response),
            )

        operation = response.headers.get(OPERATION_LOCATION_HEADER)
        if not operation:
            logger.warning("Analysis submit accepted without %s header", OPERATION_LOCATION_HEADER)
            raise AnalysisSubmissionFailed(
                f"missing {OPERATION_LOCATION_HEADER} header",
                vendor_status=response.status_code,
                vendor_body=response_excerpt(response),
            )

        logger.info("Analysis accepted")
        return AnalysisJob(operation_handle=operation, state=JobState.SUBMITTED)
