"""Error types surfaced by the podcraft pipeline.

Every public error carries a short, display-safe message. The underlying
provider exception is chained (``raise ... from exc``) and logged, never shown.
"""


class PipelineError(RuntimeError):
    """A stage failed and has no fallback (episode planning, scripts, audio)."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PipelineValidationError(PipelineError):
    """Caller-supplied input was rejected before any external call."""

    status_code = 400


class ProjectNotFoundError(PipelineError):
    status_code = 404

    def __init__(self, project_id: str):
        super().__init__("Project not found")
        self.project_id = project_id


class StaleProjectError(PipelineError):
    """Optimistic-concurrency token did not match the stored project."""

    status_code = 409

    def __init__(self, project_id: str):
        super().__init__("Project was modified by another request")
        self.project_id = project_id
