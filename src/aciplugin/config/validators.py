"""Per-domain validation of the plugin configuration document.

Each function checks one configuration block. It returns the block, possibly
a copy with documented defaults substituted, or raises the first
``ConfigurationError`` it finds. Blocks are never modified in place.
"""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from types import MappingProxyType

from aciplugin.config import defaults
from aciplugin.config.defaulting import DefaultRecorder
from aciplugin.config.errors import (
    DecryptionError,
    FileReadError,
    InvalidValueError,
    MissingFieldError,
)
from aciplugin.config.models import (
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
)
from aciplugin.security.decryption import SecretDecryptor
from aciplugin.transport.tls import (
    DEFAULT_TLS_POLICY,
    DEFAULT_TLS_VERSION,
    NegotiationParameters,
    install_default_tls_policy,
    install_tls_policy,
)

logger = logging.getLogger(__name__)

__all__ = [
    "validate_root",
    "validate_plugin_identity",
    "validate_upstream_endpoint",
    "validate_event_delivery",
    "validate_message_bus",
    "load_key_cert_material",
    "validate_tls_policy",
    "apply_load_balancer_defaults",
    "apply_url_translation_defaults",
    "validate_upstream_controller",
    "validate_data_store",
]


def validate_root(
    document: ConfigurationDocument, recorder: DefaultRecorder
) -> ConfigurationDocument:
    if not document.root_service_uuid:
        raise MissingFieldError("RootServiceUUID", "no value set for rootServiceUUID")
    try:
        uuid.UUID(document.root_service_uuid)
    except ValueError:
        raise InvalidValueError(
            "RootServiceUUID",
            document.root_service_uuid,
            f"rootServiceUUID {document.root_service_uuid!r} is not a valid UUID",
        ) from None

    updates: dict[str, object] = {}
    if not document.firmware_version:
        updates["firmware_version"] = recorder.substitute(
            "root", "FirmwareVersion", defaults.DEFAULT_FIRMWARE_VERSION
        )
    if document.session_timeout_minutes == 0:
        updates["session_timeout_minutes"] = recorder.substitute(
            "root", "SessionTimeoutInMinutes", defaults.DEFAULT_SESSION_TIMEOUT_MINUTES
        )
    elif document.session_timeout_minutes < 0:
        raise InvalidValueError("SessionTimeoutInMinutes", document.session_timeout_minutes)
    return document.model_copy(update=updates) if updates else document


def validate_plugin_identity(
    conf: PluginIdentity | None, recorder: DefaultRecorder
) -> PluginIdentity:
    if conf is None:
        raise MissingFieldError("PluginConf", "no value found for PluginConf")
    if not conf.id:
        conf = conf.model_copy(
            update={"id": recorder.substitute("PluginConf", "ID", defaults.DEFAULT_PLUGIN_ID)}
        )
    if not conf.host:
        raise MissingFieldError("PluginConf.Host", "no value set for Plugin Host")
    if not conf.port:
        raise MissingFieldError("PluginConf.Port", "no value set for Plugin Port")
    if not conf.username:
        raise MissingFieldError("PluginConf.UserName", "no value set for Plugin Username")
    if not conf.password:
        raise MissingFieldError("PluginConf.Password", "no value set for Plugin Password")
    return conf


def validate_upstream_endpoint(conf: UpstreamEndpoint | None) -> UpstreamEndpoint:
    if conf is None:
        raise MissingFieldError("ODIMConf", "no value found for ODIMConf")
    if not conf.url:
        raise MissingFieldError("ODIMConf.URL", "no value set for ODIM URL")
    if not conf.password:
        raise MissingFieldError("ODIMConf.Password", "no value set for ODIM Password")
    if not conf.username:
        raise MissingFieldError("ODIMConf.UserName", "no value set for ODIM Username")
    return conf


def validate_event_delivery(conf: EventDelivery | None) -> EventDelivery:
    if conf is None:
        raise MissingFieldError("EventConf", "no value found for EventConf")
    if not conf.destination_uri:
        raise MissingFieldError("EventConf.DestinationURI", "no value set for EventURI")
    if not conf.listener_host:
        raise MissingFieldError("EventConf.ListenerHost", "no value set for ListenerHost")
    if not conf.listener_port:
        raise MissingFieldError("EventConf.ListenerPort", "no value set for ListenerPort")
    return conf


def validate_message_bus(
    conf: MessageBusConfig | None, recorder: DefaultRecorder
) -> MessageBusConfig:
    if conf is None:
        raise MissingFieldError("MessageBusConf", "no value found for MessageBusConf")

    updates: dict[str, object] = {}
    bus_type = conf.bus_type
    if not bus_type:
        bus_type = updates["bus_type"] = recorder.substitute(
            "MessageBusConf",
            "MessageBusType",
            defaults.DEFAULT_MESSAGE_BUS_TYPE,
            level=logging.WARNING,
        )

    try:
        os.stat(conf.queue_config_file_path)
    except (OSError, ValueError) as exc:
        raise FileReadError(
            f"value check failed for MessageQueueConfigFilePath:{conf.queue_config_file_path} "
            f"with {exc}",
            path=conf.queue_config_file_path,
            field="MessageBusConf.MessageQueueConfigFilePath",
        ) from exc

    if not conf.queues:
        updates["queues"] = recorder.substitute(
            "MessageBusConf",
            "MessageBusQueue",
            defaults.DEFAULT_MESSAGE_BUS_QUEUE,
            level=logging.WARNING,
        )

    if bus_type not in defaults.ALLOWED_MESSAGE_BUS_TYPES:
        raise InvalidValueError(
            "MessageBusConf.MessageBusType",
            bus_type,
            f"invalid value {bus_type!r} configured for MessageBusType, allowed values are "
            f"{', '.join(sorted(defaults.ALLOWED_MESSAGE_BUS_TYPES))}",
        )
    return conf.model_copy(update=updates) if updates else conf


def _read_material(path: str, field_name: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except (OSError, ValueError) as exc:
        raise FileReadError(
            f"value check failed for {field_name}:{path} with {exc}",
            path=path,
            field=f"KeyCertConf.{field_name}",
        ) from exc


def load_key_cert_material(conf: KeyCertMaterial | None) -> KeyCertMaterial:
    """Read the certificate, private key, root CA and RSA decryption key files."""
    if conf is None:
        raise MissingFieldError("KeyCertConf", "no value found for KeyCertConf")
    return conf.model_copy(
        update={
            "certificate": _read_material(conf.certificate_path, "CertificatePath"),
            "private_key": _read_material(conf.private_key_path, "PrivateKeyPath"),
            "root_ca_certificate": _read_material(
                conf.root_ca_certificate_path, "RootCACertificatePath"
            ),
            "rsa_private_key": _read_material(conf.rsa_private_key_path, "RSAPrivateKeyPath"),
        }
    )


def validate_tls_policy(
    conf: TLSPolicyConfig | None, recorder: DefaultRecorder
) -> tuple[TLSPolicyConfig, NegotiationParameters]:
    """Install the configured TLS policy, or the built-in one if none is configured."""
    if conf is None:
        recorder.substitute(
            "TLSConf", "*", MappingProxyType(DEFAULT_TLS_POLICY.model_dump(by_alias=True))
        )
        return DEFAULT_TLS_POLICY, install_default_tls_policy()

    params = install_tls_policy(conf, recorder)
    updates: dict[str, object] = {}
    if not conf.min_version:
        updates["min_version"] = DEFAULT_TLS_VERSION
    if not conf.max_version:
        updates["max_version"] = DEFAULT_TLS_VERSION
    if not conf.preferred_cipher_suites:
        updates["preferred_cipher_suites"] = params.cipher_suites
    return (conf.model_copy(update=updates) if updates else conf), params


def apply_load_balancer_defaults(
    conf: LoadBalancer | None, event: EventDelivery, recorder: DefaultRecorder
) -> LoadBalancer:
    """Fall back to the event listener address when no load balancer is configured."""
    if conf is not None and conf.host and conf.port:
        return conf
    recorder.substitute("LoadBalancerConf", "LBHost", event.listener_host)
    recorder.substitute("LoadBalancerConf", "LBPort", event.listener_port)
    return LoadBalancer.model_validate(
        {"LBHost": event.listener_host, "LBPort": event.listener_port}
    )


def apply_url_translation_defaults(
    conf: URLTranslation | None, recorder: DefaultRecorder
) -> URLTranslation:
    if conf is None:
        conf = URLTranslation()
    updates: dict[str, object] = {}
    if not conf.northbound:
        updates["northbound"] = recorder.substitute(
            "URLTranslation", "NorthBoundURL", defaults.DEFAULT_NORTHBOUND_URL
        )
    if not conf.southbound:
        updates["southbound"] = recorder.substitute(
            "URLTranslation", "SouthBoundURL", defaults.DEFAULT_SOUTHBOUND_URL
        )
    return conf.model_copy(update=updates) if updates else conf


def validate_upstream_controller(
    conf: UpstreamControllerCredentials | None,
) -> UpstreamControllerCredentials:
    if conf is None:
        raise MissingFieldError("APICConf", "no value found for APICConf")
    if not conf.host:
        raise MissingFieldError("APICConf.APICHost", "no value set for APIC Host")
    if not conf.username:
        raise MissingFieldError("APICConf.UserName", "no value set for APIC Username")
    if not conf.password:
        raise MissingFieldError("APICConf.Password", "no value set for APIC Password")
    return conf


def validate_data_store(
    conf: DataStoreConfig | None, decryptor: SecretDecryptor, recorder: DefaultRecorder
) -> DataStoreConfig:
    """Validate data store settings and decrypt the on-disk password."""
    if conf is None:
        raise MissingFieldError("DBConf", "DBConf is not provided")

    updates: dict[str, object] = {}
    if conf.protocol != defaults.DEFAULT_DB_PROTOCOL:
        updates["protocol"] = recorder.substitute(
            "DBConf",
            "Protocol",
            defaults.DEFAULT_DB_PROTOCOL,
            reason=f"incorrect value {conf.protocol!r} configured",
            level=logging.WARNING,
        )
    if not conf.host:
        raise MissingFieldError("DBConf.Host", "no value configured for DB Host")
    if not conf.port:
        raise MissingFieldError("DBConf.Port", "no value configured for DB Port")
    if conf.pool_size == 0:
        updates["pool_size"] = recorder.substitute(
            "DBConf", "PoolSize", defaults.DEFAULT_DB_POOL_SIZE, level=logging.WARNING
        )
    elif conf.pool_size < 0:
        raise InvalidValueError("DBConf.PoolSize", conf.pool_size)
    if conf.min_idle_conns == 0:
        updates["min_idle_conns"] = recorder.substitute(
            "DBConf", "MinIdleConns", defaults.DEFAULT_DB_MIN_IDLE_CONNS, level=logging.WARNING
        )
    elif conf.min_idle_conns < 0:
        raise InvalidValueError("DBConf.MinIdleConns", conf.min_idle_conns)
    if not conf.encrypted_password:
        raise MissingFieldError(
            "DBConf.RedisOnDiskEncryptedPassword",
            "no value configured for Redis OnDisk Encrypted Password",
        )

    try:
        updates["password"] = decryptor.decrypt(conf.encrypted_password)
    except DecryptionError as exc:
        raise DecryptionError(
            f"failed to decrypt DBConf.RedisOnDiskEncryptedPassword: {exc.message}",
            field="DBConf.RedisOnDiskEncryptedPassword",
        ) from exc

    if conf.ha_enabled:
        if not conf.sentinel_port:
            raise MissingFieldError(
                "DBConf.SentinelPort", "no value configured for DB SentinelPort"
            )
        if not conf.master_set:
            raise MissingFieldError("DBConf.MasterSet", "no value configured for DB MasterSet")
    return conf.model_copy(update=updates)
