"""Static endpoint registry for the Mistral AI REST API.

Architectural role:
    Maps every supported operation name to its HTTP method, path template and
    streaming flag. `client.MistralAI.call` resolves names here before any URL
    or body is built.

Lifecycle:
    The table is built once at import time and exposed read-only through a
    `MappingProxyType`. Entries are frozen dataclasses, so the registry can be
    shared across threads without locking.

Path templates:
    Paths are relative to the version prefix (`/v1`). `{name}` segments are
    substituted by `url_builder.replace_path_parameters`.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType

from mistral_api.core.errors import UnknownOperation


HTTP_METHOD_GET = "GET"
HTTP_METHOD_POST = "POST"
HTTP_METHOD_PUT = "PUT"
HTTP_METHOD_PATCH = "PATCH"
HTTP_METHOD_DELETE = "DELETE"

HTTP_METHODS = frozenset({
    HTTP_METHOD_GET,
    HTTP_METHOD_POST,
    HTTP_METHOD_PUT,
    HTTP_METHOD_PATCH,
    HTTP_METHOD_DELETE,
})

# Methods whose options travel in the query string instead of a body.
BODILESS_METHODS = frozenset({HTTP_METHOD_GET, HTTP_METHOD_DELETE})

PLACEHOLDER_PATTERN = re.compile(r"\{(\w+)\}")


@dataclass(frozen=True)
class EndpointSpec:
    """One remote operation.

    Attributes:
        name: Operation name used by callers (camelCase, as in the API docs).
        http_method: One of `HTTP_METHODS`.
        path_template: Path below the version prefix, with `{placeholder}` segments.
        is_streaming: Operation always answers with an event stream.
    """

    name: str
    http_method: str
    path_template: str
    is_streaming: bool = False

    def __post_init__(self):
        if self.http_method not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method for {self.name}: {self.http_method}")

    @property
    def placeholders(self) -> tuple:
        return path_placeholders(self.path_template)

    @property
    def has_placeholders(self) -> bool:
        return bool(self.placeholders)


def path_placeholders(path_template: str) -> tuple:
    """Return placeholder names in template order."""
    return tuple(PLACEHOLDER_PATTERN.findall(path_template))


_ENDPOINT_TABLE = (
    # Chat / completions
    ("createChatCompletion", HTTP_METHOD_POST, "/chat/completions", False),
    ("createFimCompletion", HTTP_METHOD_POST, "/fim/completions", False),
    ("createAgentsCompletion", HTTP_METHOD_POST, "/agents/completions", False),

    # Embeddings, moderation, classification
    ("createEmbedding", HTTP_METHOD_POST, "/embeddings", False),
    ("createModeration", HTTP_METHOD_POST, "/moderations", False),
    ("createChatModeration", HTTP_METHOD_POST, "/chat/moderations", False),
    ("createClassification", HTTP_METHOD_POST, "/classifications", False),
    ("createChatClassification", HTTP_METHOD_POST, "/chat/classifications", False),

    # OCR
    ("createOcr", HTTP_METHOD_POST, "/ocr", False),

    # Audio
    ("createAudioTranscription", HTTP_METHOD_POST, "/audio/transcriptions", False),
    ("createAudioTranscriptionStream", HTTP_METHOD_POST, "/audio/transcriptions", True),

    # Models
    ("listModels", HTTP_METHOD_GET, "/models", False),
    ("retrieveModel", HTTP_METHOD_GET, "/models/{model_id}", False),
    ("deleteModel", HTTP_METHOD_DELETE, "/models/{model_id}", False),
    ("updateFineTunedModel", HTTP_METHOD_PATCH, "/fine_tuning/models/{model_id}", False),
    ("archiveModel", HTTP_METHOD_POST, "/fine_tuning/models/{model_id}/archive", False),
    ("unarchiveModel", HTTP_METHOD_DELETE, "/fine_tuning/models/{model_id}/archive", False),

    # Files
    ("uploadFile", HTTP_METHOD_POST, "/files", False),
    ("listFiles", HTTP_METHOD_GET, "/files", False),
    ("retrieveFile", HTTP_METHOD_GET, "/files/{file_id}", False),
    ("deleteFile", HTTP_METHOD_DELETE, "/files/{file_id}", False),
    ("downloadFile", HTTP_METHOD_GET, "/files/{file_id}/content", False),
    ("getFileSignedUrl", HTTP_METHOD_GET, "/files/{file_id}/url", False),

    # Fine-tuning jobs
    ("listFineTuningJobs", HTTP_METHOD_GET, "/fine_tuning/jobs", False),
    ("retrieveFineTuningJob", HTTP_METHOD_GET, "/fine_tuning/jobs/{job_id}", False),
    ("createFineTuningJob", HTTP_METHOD_POST, "/fine_tuning/jobs", False),
    ("cancelFineTuningJob", HTTP_METHOD_POST, "/fine_tuning/jobs/{job_id}/cancel", False),
    ("startFineTuningJob", HTTP_METHOD_POST, "/fine_tuning/jobs/{job_id}/start", False),

    # Batch jobs
    ("listBatchJobs", HTTP_METHOD_GET, "/batch/jobs", False),
    ("createBatchJob", HTTP_METHOD_POST, "/batch/jobs", False),
    ("retrieveBatchJob", HTTP_METHOD_GET, "/batch/jobs/{job_id}", False),
    ("cancelBatchJob", HTTP_METHOD_POST, "/batch/jobs/{job_id}/cancel", False),

    # Agents (beta)
    ("createAgent", HTTP_METHOD_POST, "/agents", False),
    ("listAgents", HTTP_METHOD_GET, "/agents", False),
    ("retrieveAgent", HTTP_METHOD_GET, "/agents/{agent_id}", False),
    ("updateAgent", HTTP_METHOD_PATCH, "/agents/{agent_id}", False),
    ("updateAgentVersion", HTTP_METHOD_PATCH, "/agents/{agent_id}/version", False),

    # Conversations (beta)
    ("startConversation", HTTP_METHOD_POST, "/conversations", False),
    ("startConversationStream", HTTP_METHOD_POST, "/conversations", True),
    ("listConversations", HTTP_METHOD_GET, "/conversations", False),
    ("retrieveConversation", HTTP_METHOD_GET, "/conversations/{conversation_id}", False),
    ("appendConversation", HTTP_METHOD_POST, "/conversations/{conversation_id}", False),
    ("appendConversationStream", HTTP_METHOD_POST, "/conversations/{conversation_id}", True),
    ("getConversationHistory", HTTP_METHOD_GET, "/conversations/{conversation_id}/history", False),
    ("getConversationMessages", HTTP_METHOD_GET, "/conversations/{conversation_id}/messages", False),
    ("restartConversation", HTTP_METHOD_POST, "/conversations/{conversation_id}/restart", False),
    ("restartConversationStream", HTTP_METHOD_POST, "/conversations/{conversation_id}/restart", True),

    # Libraries (beta)
    ("listLibraries", HTTP_METHOD_GET, "/libraries", False),
    ("createLibrary", HTTP_METHOD_POST, "/libraries", False),
    ("retrieveLibrary", HTTP_METHOD_GET, "/libraries/{library_id}", False),
    ("updateLibrary", HTTP_METHOD_PUT, "/libraries/{library_id}", False),
    ("deleteLibrary", HTTP_METHOD_DELETE, "/libraries/{library_id}", False),
    ("listLibraryDocuments", HTTP_METHOD_GET, "/libraries/{library_id}/documents", False),
    ("uploadLibraryDocument", HTTP_METHOD_POST, "/libraries/{library_id}/documents", False),
    ("retrieveLibraryDocument", HTTP_METHOD_GET, "/libraries/{library_id}/documents/{document_id}", False),
    ("deleteLibraryDocument", HTTP_METHOD_DELETE, "/libraries/{library_id}/documents/{document_id}", False),
)


ENDPOINTS = MappingProxyType({
    name: EndpointSpec(name, method, path, streaming)
    for name, method, path, streaming in _ENDPOINT_TABLE
})


def resolve(name: str) -> EndpointSpec:
    """Look up an operation by name.

    Raises:
        UnknownOperation: `name` is not registered.
    """
    try:
        return ENDPOINTS[name]
    except (KeyError, TypeError):
        raise UnknownOperation(name) from None
