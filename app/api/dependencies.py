"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation and caller identity.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, File, Header, HTTPException, UploadFile, status

from app.config import AuthSettings, get_auth_settings
from pipelines.base import Identity

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
}


def get_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    is_csv_filename = filename.endswith(".csv")
    is_csv_content_type = content_type in CSV_CONTENT_TYPES

    if not is_csv_filename and not is_csv_content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed.",
        )

    return file


def get_identity(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    auth_settings: AuthSettings = Depends(get_auth_settings),
) -> Identity:
    """
    Resolve the caller from the X-API-Key header.
    """

    if not x_api_key or not x_api_key.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-API-Key header.",
        )

    role = auth_settings.role_for(x_api_key)
    if role is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unknown API key.",
        )

    # Subject is the role plus a short key prefix; full keys are never echoed.
    return Identity.for_role(subject=f"{role}:{x_api_key.strip()[:4]}", role=role)


def require_permission(permission: str) -> Callable[[Identity], Identity]:
    """
    Build a dependency that rejects callers lacking ``permission`` with 403.
    """

    def _dependency(identity: Identity = Depends(get_identity)) -> Identity:
        if not identity.has_permission(permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission '{permission}' required.",
            )
        return identity

    return _dependency
