from .tls import (
    DEFAULT_TLS_POLICY,
    NegotiationParameters,
    create_ssl_context,
    install_default_tls_policy,
    install_tls_policy,
)

__all__ = [
    "DEFAULT_TLS_POLICY",
    "NegotiationParameters",
    "install_tls_policy",
    "install_default_tls_policy",
    "create_ssl_context",
]
