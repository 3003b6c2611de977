"""Plugin configuration: document models, loading, defaults and errors.

The validation pipeline lives in ``aciplugin.config.bootstrap``; it is not
imported here because it depends on the security and transport packages,
which themselves use these models.
"""

from .defaulting import DefaultRecorder, Substitution
from .errors import (
    ConfigurationError,
    DecryptionError,
    FileReadError,
    InvalidValueError,
    MissingFieldError,
    SchemaParseError,
)
from .loader import load_document, parse_document, resolve_config_path
from .models import (
    ConfigurationDocument,
    DataStoreConfig,
    EventDelivery,
    KeyCertMaterial,
    LoadBalancer,
    MessageBusConfig,
    PluginIdentity,
    TLSPolicyConfig,
    UpstreamControllerCredentials,
    UpstreamEndpoint,
    URLTranslation,
    translate_url,
)

__all__ = [
    # Errors
    "ConfigurationError",
    "FileReadError",
    "SchemaParseError",
    "MissingFieldError",
    "InvalidValueError",
    "DecryptionError",
    # Models
    "ConfigurationDocument",
    "PluginIdentity",
    "UpstreamEndpoint",
    "EventDelivery",
    "LoadBalancer",
    "MessageBusConfig",
    "KeyCertMaterial",
    "URLTranslation",
    "TLSPolicyConfig",
    "UpstreamControllerCredentials",
    "DataStoreConfig",
    "translate_url",
    # Loading and defaults
    "load_document",
    "parse_document",
    "resolve_config_path",
    "DefaultRecorder",
    "Substitution",
]
