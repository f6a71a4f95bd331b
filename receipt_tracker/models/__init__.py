from receipt_tracker.models.receipt import ReceiptModel  # noqa: F401
