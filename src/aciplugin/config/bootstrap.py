"""Startup bootstrap of the plugin configuration.

The bootstrap loads the configuration document and runs every domain check in
a fixed order, stopping at the first error. It runs once, before any listener
is opened; its result is immutable and can be shared by request workers.

Example:
    >>> result = bootstrap_or_exit()
    >>> result.config.db.password  # decrypted data store password
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from aciplugin.config.defaulting import DefaultRecorder, Substitution
from aciplugin.config.errors import ConfigurationError
from aciplugin.config.loader import load_document
from aciplugin.config.models import ConfigurationDocument
from aciplugin.config.validators import (
    apply_load_balancer_defaults,
    apply_url_translation_defaults,
    load_key_cert_material,
    validate_data_store,
    validate_event_delivery,
    validate_message_bus,
    validate_plugin_identity,
    validate_root,
    validate_tls_policy,
    validate_upstream_controller,
    validate_upstream_endpoint,
)
from aciplugin.security.decryption import SecretDecryptor
from aciplugin.transport.tls import NegotiationParameters

logger = logging.getLogger(__name__)

__all__ = [
    "BootstrapState",
    "BootstrapResult",
    "ConfigBootstrap",
    "VALIDATION_ORDER",
    "validate_document",
    "bootstrap",
    "bootstrap_or_exit",
]

VALIDATION_ORDER: tuple[str, ...] = (
    "root",
    "PluginConf",
    "ODIMConf",
    "EventConf",
    "MessageBusConf",
    "KeyCertConf",
    "TLSConf",
    "LoadBalancerConf",
    "URLTranslation",
    "APICConf",
    "DBConf",
)


class BootstrapState(Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"
    VALIDATING = "validating"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class BootstrapResult:
    """Everything request handlers need from a successful bootstrap."""

    config: ConfigurationDocument
    tls: NegotiationParameters
    decryptor: SecretDecryptor
    substitutions: tuple[Substitution, ...] = ()


def validate_document(
    document: ConfigurationDocument,
    *,
    recorder: DefaultRecorder | None = None,
    on_stage: Callable[[str], None] | None = None,
) -> BootstrapResult:
    """Validate a parsed document and apply defaults.

    Stages run in ``VALIDATION_ORDER``; the first error propagates and no
    later stage runs. Validating an already validated document returns an
    equal result.

    Args:
        document: The parsed configuration document.
        recorder: Collector for default substitutions. A new one is used if omitted.
        on_stage: Called with the domain name before each stage starts.

    Raises:
        ConfigurationError: The first problem found.
    """
    recorder = recorder if recorder is not None else DefaultRecorder()

    def stage(domain: str) -> None:
        logger.debug("Validating %s", domain)
        if on_stage is not None:
            on_stage(domain)

    stage("root")
    document = validate_root(document, recorder)
    stage("PluginConf")
    plugin = validate_plugin_identity(document.plugin, recorder)
    stage("ODIMConf")
    odim = validate_upstream_endpoint(document.odim)
    stage("EventConf")
    event = validate_event_delivery(document.event)
    stage("MessageBusConf")
    message_bus = validate_message_bus(document.message_bus, recorder)
    stage("KeyCertConf")
    key_cert = load_key_cert_material(document.key_cert)
    stage("TLSConf")
    tls_conf, tls_params = validate_tls_policy(document.tls, recorder)
    stage("LoadBalancerConf")
    load_balancer = apply_load_balancer_defaults(document.load_balancer, event, recorder)
    stage("URLTranslation")
    url_translation = apply_url_translation_defaults(document.url_translation, recorder)
    stage("APICConf")
    apic = validate_upstream_controller(document.apic)
    stage("DBConf")
    decryptor = SecretDecryptor(key_cert.rsa_private_key)
    db = validate_data_store(document.db, decryptor, recorder)

    validated = document.model_copy(
        update={
            "plugin": plugin,
            "odim": odim,
            "event": event,
            "message_bus": message_bus,
            "key_cert": key_cert,
            "tls": tls_conf,
            "load_balancer": load_balancer,
            "url_translation": url_translation,
            "apic": apic,
            "db": db,
        }
    )
    return BootstrapResult(
        config=validated,
        tls=tls_params,
        decryptor=decryptor,
        substitutions=tuple(recorder.substitutions),
    )


class ConfigBootstrap:
    """Single-use driver for the load and validate pipeline.

    ``state`` moves from UNLOADED to LOADED, then VALIDATING (with ``domain``
    naming the current stage), and finally READY or FAILED. Both final states
    are terminal; ``run`` may only be called once.
    """

    def __init__(self, config_path: str | os.PathLike[str] | None = None):
        self._config_path = config_path
        self.state = BootstrapState.UNLOADED
        self.domain: str | None = None
        self.error: ConfigurationError | None = None
        self.result: BootstrapResult | None = None

    def _enter(self, domain: str) -> None:
        self.state = BootstrapState.VALIDATING
        self.domain = domain

    def run(self) -> BootstrapResult:
        if self.state is not BootstrapState.UNLOADED:
            raise RuntimeError(f"configuration bootstrap already ran (state: {self.state.value})")

        try:
            document = load_document(self._config_path)
            self.state = BootstrapState.LOADED
            result = validate_document(document, on_stage=self._enter)
        except ConfigurationError as exc:
            self.state = BootstrapState.FAILED
            self.error = exc
            logger.error(
                "Plugin configuration failed%s: %s",
                f" while validating {self.domain}" if self.domain else "",
                exc,
            )
            raise

        self.state = BootstrapState.READY
        self.domain = None
        self.result = result
        logger.info(
            "Plugin configuration ready (%d default value(s) applied)", len(result.substitutions)
        )
        return result


def bootstrap(config_path: str | os.PathLike[str] | None = None) -> BootstrapResult:
    return ConfigBootstrap(config_path).run()


def bootstrap_or_exit(config_path: str | os.PathLike[str] | None = None) -> BootstrapResult:
    """Run the bootstrap, terminating the process with status 1 on failure."""
    try:
        return bootstrap(config_path)
    except ConfigurationError as exc:
        raise SystemExit(1) from exc
