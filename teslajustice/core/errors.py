"""
Exception hierarchy shared by the pipeline components.
"""


class TeslaJusticeError(Exception):
    """Base class for all pipeline errors."""


class RepositoryError(TeslaJusticeError):
    """A read or write against the case store failed."""


class CaseNotFoundError(RepositoryError):
    def __init__(self, case_id):
        super().__init__(f"Case {case_id} not found")
        self.case_id = case_id


class InvalidStatusError(TeslaJusticeError):
    def __init__(self, status: str):
        super().__init__(f"Invalid case status: {status}")
        self.status = status


class IngestorError(TeslaJusticeError):
    """The social media search backend could not be reached or answered badly."""


class AnalyzerError(TeslaJusticeError):
    """Content analysis failed for a post."""
