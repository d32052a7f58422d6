"""Error taxonomy for the map pipeline.

Every loader wraps the lower-level exception (requests, pandas, the GIS
driver, pyproj) in one of these so callers only need to catch
``MapPipelineError``. None of them is recoverable within a run.
"""


class MapPipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class FetchError(MapPipelineError):
    """Raised when a remote feed or service request fails."""

    error_code = "FETCH_ERROR"


class DataLoadError(MapPipelineError):
    """Raised when a local input file is missing or unreadable."""

    error_code = "DATA_LOAD_ERROR"


class SchemaError(MapPipelineError):
    """Raised when an expected field is absent after parsing."""

    error_code = "SCHEMA_ERROR"


class ProjectionError(MapPipelineError):
    """Raised when a coordinate reference system is missing or unsupported."""

    error_code = "PROJECTION_ERROR"
