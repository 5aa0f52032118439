"""Vision package: pure image ops, grid tracing and template matching.

Submodules:
- geometry: integer vectors, bounding boxes and slot arithmetic
- preprocess: stateless image preprocessing utilities
- grid: grid line and highlight mask extraction
- walker: boundary tracing and cell deduplication
- matcher: parallel template identification
- ocr: short-name reading for the OCR fallback
"""
