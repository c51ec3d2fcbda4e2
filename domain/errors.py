class AnalysisError(Exception):
    """Base class for every error raised by the analysis pipeline."""

    status_code = 500


class ValidationError(AnalysisError):
    status_code = 400


class AuthError(AnalysisError):
    status_code = 401


class AnalysisNotFound(AnalysisError):
    status_code = 404


class StorageError(AnalysisError):
    status_code = 500


class ProviderUnavailable(AnalysisError):
    """Provider answered with a status that triggers the canned fallback."""

    def __init__(self, provider: str, status: int):
        super().__init__(f"{provider} unavailable ({status})")
        self.provider = provider
        self.status = status


class ProviderHardFailure(AnalysisError):
    pass


class ExtractionTimeout(AnalysisError):
    pass


class MalformedProviderOutput(AnalysisError):
    pass
