"""Typed failure taxonomy for the dispatch engine.

Architectural role:
    Every layer (registry, URL resolver, request builder, argument normalizer,
    dispatcher) raises one of these classes at the point of detection. Nothing
    in the package converts them to return values.

Hierarchy:
    - `MistralAIError` is the common base, so callers can catch one type.
    - Caller-input failures also subclass `ValueError`.
    - `APIError` covers both remote status >= 400 and transport failures
      (status code 0).
"""


class MistralAIError(Exception):
    """Base class for all errors raised by `mistral_api`."""


class ConfigurationError(MistralAIError):
    """Raised when required settings (the API key) cannot be resolved."""


class UnknownOperation(MistralAIError, ValueError):
    """Operation name is not present in the endpoint registry."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Invalid Mistral AI URL key "{name}".')


class MissingPathParameter(MistralAIError, ValueError):
    """A `{placeholder}` in the path template has no supplied value."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f'Missing path parameter "{key}".')


class InvalidParameterType(MistralAIError, ValueError):
    """A path parameter value cannot be stringified into a path segment."""

    def __init__(self, key: str, value):
        self.key = key
        type_name = "array" if isinstance(value, (list, tuple, dict)) else type(value).__name__
        super().__init__(f'Parameter "{key}" must be a scalar value, {type_name} given.')


class InvalidArgument(MistralAIError, ValueError):
    """Positional call arguments do not have a usable shape."""


class EncodingError(MistralAIError, ValueError):
    """Request body could not be serialized; the request is never sent."""


class APIError(MistralAIError):
    """Remote service answered with status >= 400, or the transport failed.

    Attributes:
        status_code: HTTP status, or 0 for pure transport failures.
        body: Raw response body text (transport message for status 0).
    """

    def __init__(self, body: str, status_code: int = 0):
        self.status_code = status_code
        self.body = body
        super().__init__(body)


class StreamDecodeError(MistralAIError):
    """A `data: ` frame in an event stream is not valid JSON."""

    def __init__(self, message: str, line: str = ""):
        self.line = line
        super().__init__(message)
