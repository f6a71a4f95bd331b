"""
receipt-tracker schemas: pydantic v2 models used across the pipeline and API.
"""
from receipt_tracker.schemas.analysis import (  # noqa: F401
    AnalysisConfig,
    AnalysisJob,
    JobState,
    UploadedImage,
    WorkflowState,
)
from receipt_tracker.schemas.receipt import (  # noqa: F401
    CanonicalReceipt,
    CategorySummary,
    DailyTotal,
    DailyTotalsResponse,
    MonthlyCategoryResponse,
    ReceiptCreate,
    ReceiptOut,
    UploadResponse,
)
