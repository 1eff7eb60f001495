"""
File Conversion Service package.

Accepts uploaded documents, converts them through named conversion kinds
(office to PDF, PDF to images, split/merge, OCR, AI summaries, ...) and serves
the result for download before reclaiming storage. The FastAPI surface lives
in `file_converter.webapi`; the framework-agnostic core in
`file_converter.conversion`.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
