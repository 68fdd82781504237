"""Job application tracker for Gmail."""

from .classifier import ClassificationRules, EmailClassifier, LabelDefinition
from .database import ApplicationStore
from .email_processor import EmailProcessor
from .errors import (
    AuthenticationError,
    ConfigurationError,
    FetchError,
    PipelineError,
    ValidationError,
)
from .extractor import JobInfoExtractor
from .factory import (
    create_application_store,
    create_classifier,
    create_database_connection,
    create_message_source,
    create_pipeline,
    load_access_credentials,
)
from .message_source import GmailMessageSource, MessageSource
from .models import (
    AccessCredentials,
    Application,
    NormalizedEmail,
    ProcessRequest,
    RawMessage,
)

__version__ = "1.0.0"
__all__ = [
    "ApplicationStore",
    "EmailProcessor",
    "EmailClassifier",
    "ClassificationRules",
    "LabelDefinition",
    "JobInfoExtractor",
    "MessageSource",
    "GmailMessageSource",
    # Models
    "AccessCredentials",
    "Application",
    "NormalizedEmail",
    "ProcessRequest",
    "RawMessage",
    # Errors
    "PipelineError",
    "ConfigurationError",
    "ValidationError",
    "AuthenticationError",
    "FetchError",
    # Factory functions
    "create_application_store",
    "create_classifier",
    "create_database_connection",
    "create_message_source",
    "create_pipeline",
    "load_access_credentials",
]
