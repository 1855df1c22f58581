"""HTTP and queue entry points for the OCR processing engine."""
