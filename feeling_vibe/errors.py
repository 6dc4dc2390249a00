# feeling_vibe/errors.py


class ConfigurationError(RuntimeError):
    """No usable backend could be initialized"""


class ServiceNotInitializedError(RuntimeError):
    """A service was used before initialize() completed"""

    def __init__(self, service: str):
        super().__init__(f"{service} not initialized")
        self.service = service


class InvalidRequestError(ValueError):
    """Client supplied input that fails a precondition"""


class UnsupportedCapabilityError(NotImplementedError):
    """The active backend does not implement the requested operation"""

    def __init__(self, backend: str, operation: str):
        super().__init__(f"{operation} is not supported by the {backend} backend")
        self.backend = backend
        self.operation = operation
