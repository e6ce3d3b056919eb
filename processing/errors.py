"""
Error taxonomy for the choropleth map pipeline.

Every stage raises one of these so the CLI can tell a misconfiguration
from a broken input file from a failed export.
"""

from pathlib import Path
from typing import List, Optional, Sequence, Union


class MapPipelineError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(MapPipelineError):
    """No usable geometry source (or conflicting sources) configured."""


class DataSourceError(MapPipelineError):
    """A remote fetch or a file read failed."""


class InputValidationError(MapPipelineError):
    """An input table is missing required columns or carries invalid keys."""

    def __init__(
        self,
        message: str,
        missing_fields: Optional[Sequence[str]] = None,
        available_columns: Optional[Sequence[str]] = None,
    ):
        super().__init__(message)
        self.missing_fields: List[str] = list(missing_fields or [])
        self.available_columns: List[str] = list(available_columns or [])


class MetricNotFoundError(MapPipelineError):
    """The requested metric column is absent from the region collection."""

    def __init__(self, metric: str, available_columns: Sequence[str]):
        self.metric = metric
        self.available_columns: List[str] = list(available_columns)
        super().__init__(
            f"Metric column '{metric}' not found. "
            f"Available columns: {', '.join(self.available_columns)}"
        )


class ExportError(MapPipelineError):
    """Writing one output artifact failed."""

    def __init__(self, artifact: str, path: Union[str, Path], cause: BaseException):
        self.artifact = artifact
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Failed to export {artifact} to {self.path}: {cause}")
