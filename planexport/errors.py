from __future__ import annotations

from .config import PERMISSION_DENIED_MESSAGE


class ExportError(Exception):
    """Base class for everything the export core raises."""


class PermissionDenied(ExportError):
    def __init__(self, message: str = PERMISSION_DENIED_MESSAGE) -> None:
        super().__init__(message)


class SourceNotFound(ExportError):
    def __init__(self, ref: str) -> None:
        super().__init__(f"Content region not found: {ref}")
        self.ref = ref


class RasterCaptureFailure(ExportError):
    def __init__(self, ref: str, detail: str = "") -> None:
        message = f"Raster capture failed for {ref}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.ref = ref


class AssetResolutionFailure(ExportError):
    def __init__(self, ref: str, detail: str = "") -> None:
        message = f"Could not resolve asset {ref}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.ref = ref
