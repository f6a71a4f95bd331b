"""
Poll loop: waits for an analysis job to reach a terminal vendor state.

Attempts are sequential and spaced by ``poll_interval_seconds``; the caller's
task is suspended (not blocked) between attempts. A failed request (network,
timeout, undecodable body) or non-JSON payload on a single attempt is
inconclusive and only costs that attempt. An HTTP error status, or a
``failed`` vendor status, ends the loop.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx

from receipt_tracker.pipeline.analysis import response_excerpt, vendor_headers
from receipt_tracker.pipeline.errors import (
    AnalysisFailed,
    AnalysisPollError,
    AnalysisTimeout,
)
from receipt_tracker.schemas import AnalysisConfig, AnalysisJob, JobState

logger = logging.getLogger(__name__)


def vendor_status(payload: dict[str, Any]) -> str:
    status = payload.get("status")
    if not status and isinstance(payload.get("analyzeResult"), dict):
        status = payload["analyzeResult"].get("status")
    return str(status or "").lower()


class AnalysisPoller:
    def __init__(
        self,
        http: httpx.AsyncClient,
        config: AnalysisConfig,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.http = http
        self.config = config
        self._sleep = sleep

    async def wait_for_result(self, job: AnalysisJob) -> dict[str, Any]:
        """Poll until ``succeeded`` and return the vendor payload."""
        if job.state.is_terminal:
            raise ValueError(f"job already finished ({job.state.value})")

        budget = self.config.poll_max_attempts
        while job.attempts_made < budget:
            await self._sleep(self.config.poll_interval_seconds)
            job.attempts_made += 1
            job.state = JobState.RUNNING

            payload = await self._poll_once(job)
            if payload is None:
                continue

            status = vendor_status(payload)
            if status == "succeeded":
                job.state = JobState.SUCCEEDED
                logger.info("Analysis succeeded after %d attempt(s)", job.attempts_made)
                return payload
            if status == "failed":
                job.state = JobState.FAILED
                logger.warning("Analysis failed on attempt %d", job.attempts_made)
                raise AnalysisFailed(
                    "analysis service reported failure",
                    diagnostics=payload.get("error") or payload,
                )
            logger.debug("Analysis %s (attempt %d/%d)", status or "pending", job.attempts_made, budget)

        job.state = JobState.TIMED_OUT
        logger.warning("Analysis timed out after %d attempt(s)", job.attempts_made)
        raise AnalysisTimeout(
            f"analysis did not finish within {budget} attempts",
            attempts_made=job.attempts_made,
        )

    async def _poll_once(self, job: AnalysisJob) -> dict[str, Any] | None:
        """One GET. ``None`` means inconclusive."""
        try:
            response = await self.http.get(
                job.operation_handle,
                headers=vendor_headers(self.config),
                timeout=self.config.request_timeout,
            )
        except httpx.RequestError as exc:
            logger.warning(
                "Poll attempt %d inconclusive: %s", job.attempts_made, type(exc).__name__
            )
            return None

        if response.status_code >= 400:
            job.state = JobState.FAILED
            logger.warning("Poll attempt %d got HTTP %d", job.attempts_made, response.status_code)
            raise AnalysisPollError(
                f"analysis status check failed with HTTP {response.status_code}",
                vendor_status=response.status_code,
                vendor_body=response_excerpt(response),
            )

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Poll attempt %d returned a non-JSON body", job.attempts_made)
            return None
        if not isinstance(payload, dict):
            logger.warning("Poll attempt %d returned unexpected JSON", job.attempts_made)
            return None
        return payload
