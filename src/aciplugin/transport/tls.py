"""TLS negotiation parameters for the plugin's secured connections.

``install_tls_policy`` turns the validated ``TLSConf`` settings into an
immutable ``NegotiationParameters`` value. The network layer builds its
``ssl.SSLContext`` objects from that value with ``create_ssl_context``.
"""

from __future__ import annotations

import logging
import ssl
import tempfile
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict

from aciplugin.config.defaulting import DefaultRecorder
from aciplugin.config.errors import InvalidValueError
from aciplugin.config.models import KeyCertMaterial, TLSPolicyConfig

logger = logging.getLogger(__name__)

__all__ = [
    "TLS_VERSIONS",
    "SUPPORTED_CIPHER_SUITES",
    "DEFAULT_TLS_VERSION",
    "DEFAULT_CIPHER_SUITES",
    "DEFAULT_TLS_POLICY",
    "NegotiationParameters",
    "install_tls_policy",
    "install_default_tls_policy",
    "create_ssl_context",
]

TLS_VERSIONS: dict[str, ssl.TLSVersion] = {
    "TLS_1.2": ssl.TLSVersion.TLSv1_2,
    "TLS_1.3": ssl.TLSVersion.TLSv1_3,
}

# IANA suite name -> OpenSSL name. TLS 1.3 suites are negotiated by OpenSSL
# on their own and cannot be restricted through set_ciphers.
SUPPORTED_CIPHER_SUITES: dict[str, str] = {
    "TLS_ECDHE_RSA_WITH_AES_256_GCM_SHA384": "ECDHE-RSA-AES256-GCM-SHA384",
    "TLS_ECDHE_RSA_WITH_AES_128_GCM_SHA256": "ECDHE-RSA-AES128-GCM-SHA256",
    "TLS_ECDHE_ECDSA_WITH_AES_256_GCM_SHA384": "ECDHE-ECDSA-AES256-GCM-SHA384",
    "TLS_ECDHE_ECDSA_WITH_AES_128_GCM_SHA256": "ECDHE-ECDSA-AES128-GCM-SHA256",
    "TLS_ECDHE_RSA_WITH_CHACHA20_POLY1305_SHA256": "ECDHE-RSA-CHACHA20-POLY1305",
    "TLS_ECDHE_ECDSA_WITH_CHACHA20_POLY1305_SHA256": "ECDHE-ECDSA-CHACHA20-POLY1305",
    "TLS_RSA_WITH_AES_128_GCM_SHA256": "AES128-GCM-SHA256",
    "TLS_RSA_WITH_AES_256_GCM_SHA384": "AES256-GCM-SHA384",
    "TLS_AES_128_GCM_SHA256": "TLS_AES_128_GCM_SHA256",
    "TLS_AES_256_GCM_SHA384": "TLS_AES_256_GCM_SHA384",
    "TLS_CHACHA20_POLY1305_SHA256": "TLS_CHACHA20_POLY1305_SHA256",
}
_TLS13_SUITES = frozenset(
    {"TLS_AES_128_GCM_SHA256", "TLS_AES_256_GCM_SHA384", "TLS_CHACHA20_POLY1305_SHA256"}
)

DEFAULT_TLS_VERSION = "TLS_1.2"
DEFAULT_CIPHER_SUITES: tuple[str, ...] = (
    "TLS_ECDHE_RSA_WITH_AES_256_GCM_SHA384",
    "TLS_ECDHE_RSA_WITH_AES_128_GCM_SHA256",
    "TLS_ECDHE_ECDSA_WITH_AES_256_GCM_SHA384",
    "TLS_ECDHE_ECDSA_WITH_AES_128_GCM_SHA256",
)

DEFAULT_TLS_POLICY = TLSPolicyConfig.model_validate(
    {
        "MinVersion": DEFAULT_TLS_VERSION,
        "MaxVersion": DEFAULT_TLS_VERSION,
        "VerifyPeer": True,
        "PreferredCipherSuites": DEFAULT_CIPHER_SUITES,
    }
)


class NegotiationParameters(BaseModel):
    """Validated, immutable TLS negotiation settings."""

    model_config = ConfigDict(frozen=True)

    min_version: ssl.TLSVersion
    max_version: ssl.TLSVersion
    verify_peer: bool
    cipher_suites: tuple[str, ...]

    @property
    def openssl_cipher_string(self) -> str:
        return ":".join(
            SUPPORTED_CIPHER_SUITES[name]
            for name in self.cipher_suites
            if name not in _TLS13_SUITES
        )


def _resolve_version(field: str, value: str, recorder: DefaultRecorder) -> ssl.TLSVersion:
    if not value:
        value = recorder.substitute("TLSConf", field, DEFAULT_TLS_VERSION)
    try:
        return TLS_VERSIONS[value]
    except KeyError:
        raise InvalidValueError(
            f"TLSConf.{field}",
            value,
            f"invalid TLS {field} {value!r}, supported values are {', '.join(TLS_VERSIONS)}",
        ) from None


def _resolve_cipher_suites(
    suites: tuple[str, ...], recorder: DefaultRecorder
) -> tuple[str, ...]:
    if not suites:
        return recorder.substitute("TLSConf", "PreferredCipherSuites", DEFAULT_CIPHER_SUITES)
    for suite in suites:
        if suite not in SUPPORTED_CIPHER_SUITES:
            raise InvalidValueError(
                "TLSConf.PreferredCipherSuites", suite, f"unsupported cipher suite {suite!r}"
            )
    return tuple(suites)


def install_tls_policy(
    policy: TLSPolicyConfig, recorder: DefaultRecorder | None = None
) -> NegotiationParameters:
    """Validate TLS settings and produce the negotiation parameters.

    Empty versions and an empty cipher list take the defaults; each
    substitution is recorded on ``recorder`` when one is given.

    Raises:
        InvalidValueError: If a version or cipher suite is unknown, or if the
            minimum version is greater than the maximum version.
    """
    recorder = recorder if recorder is not None else DefaultRecorder()
    min_version = _resolve_version("MinVersion", policy.min_version, recorder)
    max_version = _resolve_version("MaxVersion", policy.max_version, recorder)
    if min_version > max_version:
        raise InvalidValueError(
            "TLSConf.MinVersion",
            policy.min_version,
            f"TLS MinVersion {policy.min_version!r} is greater than "
            f"TLS MaxVersion {policy.max_version!r}",
        )
    params = NegotiationParameters(
        min_version=min_version,
        max_version=max_version,
        verify_peer=policy.verify_peer,
        cipher_suites=_resolve_cipher_suites(policy.preferred_cipher_suites, recorder),
    )
    logger.debug(
        "TLS policy installed: min=%s max=%s verify_peer=%s",
        params.min_version.name,
        params.max_version.name,
        params.verify_peer,
    )
    return params


def install_default_tls_policy() -> NegotiationParameters:
    return install_tls_policy(DEFAULT_TLS_POLICY)


def create_ssl_context(
    params: NegotiationParameters,
    material: KeyCertMaterial | None = None,
    purpose: Literal["server", "client"] = "server",
) -> ssl.SSLContext:
    """Build an ``ssl.SSLContext`` honouring the negotiation parameters.

    When ``material`` is given the plugin certificate and key are loaded and
    the root CA certificate is trusted for peer verification.
    """
    protocol = ssl.PROTOCOL_TLS_SERVER if purpose == "server" else ssl.PROTOCOL_TLS_CLIENT
    context = ssl.SSLContext(protocol)
    context.minimum_version = params.min_version
    context.maximum_version = params.max_version

    cipher_string = params.openssl_cipher_string
    if cipher_string:
        context.set_ciphers(cipher_string)

    if params.verify_peer:
        context.verify_mode = ssl.CERT_REQUIRED
    else:
        if purpose == "client":
            context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    if material is not None:
        if material.root_ca_certificate:
            context.load_verify_locations(cadata=material.root_ca_certificate.decode("ascii"))
        if material.certificate and material.private_key:
            _load_cert_chain(context, material.certificate, material.private_key)
    return context


def _load_cert_chain(context: ssl.SSLContext, certificate: bytes, private_key: bytes) -> None:
    # SSLContext only loads certificate chains from files.
    with tempfile.TemporaryDirectory() as tmp:
        cert_file = Path(tmp) / "cert.pem"
        key_file = Path(tmp) / "key.pem"
        cert_file.write_bytes(certificate)
        key_file.write_bytes(private_key)
        key_file.chmod(0o600)
        context.load_cert_chain(certfile=str(cert_file), keyfile=str(key_file))
