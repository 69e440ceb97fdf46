"""Mistral AI REST API client.

Architectural role:
    Maps the fixed Mistral AI endpoint catalog onto callable operations and
    handles request construction, dispatch, event-stream decoding and error
    normalization.

Module split:
    - `config`: environment-driven settings and key lookup.
    - `core`: endpoint registry, URL resolver, request builder, argument
      normalizer and error taxonomy.
    - `transport`: dispatcher and server-sent-event stream reader.
    - `client`: `MistralAI` entry point and generated operation wrappers.
    - `cli`: demonstration request runner.
"""

from mistral_api.client import MistralAI, create_client
from mistral_api.core.errors import (
    APIError,
    ConfigurationError,
    EncodingError,
    InvalidArgument,
    InvalidParameterType,
    MissingPathParameter,
    MistralAIError,
    StreamDecodeError,
    UnknownOperation,
)

__version__ = "0.1.0"

__all__ = [
    "MistralAI",
    "create_client",
    "APIError",
    "ConfigurationError",
    "EncodingError",
    "InvalidArgument",
    "InvalidParameterType",
    "MissingPathParameter",
    "MistralAIError",
    "StreamDecodeError",
    "UnknownOperation",
]
