"""Domain error taxonomy.

Every error is an ``HTTPException`` so services can raise them directly and
FastAPI renders the status code and detail without extra handlers. The
``code`` attribute is a stable machine-readable identifier that is also sent
to clients in the ``X-Error-Code`` response header.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status


class TrackerError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "SRV_001"
    default_detail: str = "Unexpected server error."

    def __init__(self, detail: Any = None) -> None:
        super().__init__(
            status_code=self.status_code,
            detail=self.default_detail if detail is None else detail,
            headers={"X-Error-Code": self.code},
        )


class ValidationError(TrackerError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VAL_001"
    default_detail = "Invalid request."


class InvalidRange(TrackerError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "RANGE_001"
    default_detail = "Invalid date range specified."


class MissingColumns(TrackerError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "UPLOAD_001"

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing required columns: {', '.join(missing)}.")


class EmptyFile(TrackerError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "UPLOAD_002"
    default_detail = "Uploaded file has no data rows."


class SessionExpired(TrackerError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "UPLOAD_003"
    default_detail = "Upload session not found or expired. Please upload the file again."


class NoRowsSelected(TrackerError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "UPLOAD_004"
    default_detail = "No valid rows selected for import."


class NotFound(TrackerError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "RES_404"
    default_detail = "Resource not found."


class FileTooLarge(TrackerError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    code = "UPLOAD_005"
    default_detail = "Uploaded file exceeds the size limit."
