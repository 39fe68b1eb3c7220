class DocQAError(RuntimeError):
    pass


class ValidationError(DocQAError):
    """Caller-supplied input was rejected (blank question, unsupported file type)."""


class NotFoundError(DocQAError):
    pass


class StorageError(DocQAError):
    """Session storage could not be written or modified."""


class ModelUnavailableError(DocQAError):
    """No LLM credentials are configured, so no answer can be produced."""
