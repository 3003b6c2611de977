from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Annotated, Any, ClassVar

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    ValidationInfo,
    field_validator,
    model_validator,
)

__all__ = [
    "ConfigModel",
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
    "ConfigurationDocument",
    "read_only",
    "translate_url",
]


def translate_url(url: str, mapping: Mapping[str, str]) -> str:
    """Rewrite every occurrence of each mapping key in ``url`` with its value."""
    for source, target in mapping.items():
        url = url.replace(source, target)
    return url


def read_only(mapping: Mapping[str, str]) -> Mapping[str, str]:
    """Return a read-only copy of ``mapping``."""
    return MappingProxyType(dict(mapping))


def _empty_mapping() -> Mapping[str, str]:
    return MappingProxyType({})


def _port_as_str(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


Port = Annotated[str, BeforeValidator(_port_as_str)]

# Validated as a dict, held as a read-only view, dumped as a plain dict.
StringMap = Annotated[
    Mapping[str, str],
    AfterValidator(read_only),
    PlainSerializer(dict, return_type=dict[str, str]),
]


class ConfigModel(BaseModel):
    """Base model for the plugin configuration document.

    Instances are frozen and hold only immutable values, so a validated
    document can be shared between request workers without locking. Fields
    are read by their document alias only; unknown keys are ignored.

    Fields listed in ``loaded_fields`` are filled in during validation from
    files or decrypted secrets and are never read from the document.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    loaded_fields: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="before")
    @classmethod
    def _drop_loaded_fields(cls, data: Any) -> Any:
        if isinstance(data, dict) and cls.loaded_fields:
            return {key: value for key, value in data.items() if key not in cls.loaded_fields}
        return data

    @field_validator("*", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None and info.field_name is not None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return value


class PluginIdentity(ConfigModel):
    """How the plugin identifies itself and authenticates its own clients (``PluginConf``)."""

    id: str = Field("", alias="ID")
    host: str = Field("", alias="Host")
    port: Port = Field("", alias="Port")
    username: str = Field("", alias="UserName")
    password: str = Field("", alias="Password", repr=False)


class UpstreamEndpoint(ConfigModel):
    """The resource aggregator the plugin registers with (``ODIMConf``).

    ``password`` stays encrypted; collaborators decrypt it with the
    bootstrap's ``SecretDecryptor`` when they authenticate.
    """

    url: str = Field("", alias="URL")
    username: str = Field("", alias="UserName")
    password: str = Field("", alias="Password", repr=False)


class EventDelivery(ConfigModel):
    """Where controller events are received (``EventConf``)."""

    destination_uri: str = Field("", alias="DestinationURI")
    listener_host: str = Field("", alias="ListenerHost")
    listener_port: Port = Field("", alias="ListenerPort")


class LoadBalancer(ConfigModel):
    host: str = Field("", alias="LBHost")
    port: Port = Field("", alias="LBPort")


class MessageBusConfig(ConfigModel):
    """Message bus kind, topology file and topics (``MessageBusConf``)."""

    queue_config_file_path: str = Field("", alias="MessageQueueConfigFilePath")
    bus_type: str = Field("", alias="MessageBusType")
    queues: tuple[str, ...] = Field((), alias="MessageBusQueue")


class KeyCertMaterial(ConfigModel):
    """Paths to the plugin's key material and, once validated, their contents."""

    loaded_fields: ClassVar[frozenset[str]] = frozenset(
        {"certificate", "private_key", "root_ca_certificate", "rsa_private_key"}
    )

    certificate_path: str = Field("", alias="CertificatePath")
    private_key_path: str = Field("", alias="PrivateKeyPath")
    root_ca_certificate_path: str = Field("", alias="RootCACertificatePath")
    rsa_private_key_path: str = Field("", alias="RSAPrivateKeyPath")

    certificate: bytes = Field(b"", exclude=True, repr=False)
    private_key: bytes = Field(b"", exclude=True, repr=False)
    root_ca_certificate: bytes = Field(b"", exclude=True, repr=False)
    rsa_private_key: bytes = Field(b"", exclude=True, repr=False)


class URLTranslation(ConfigModel):
    """Substring rewrites between upstream and Redfish URIs."""

    northbound: StringMap = Field(default_factory=_empty_mapping, alias="NorthBoundURL")
    southbound: StringMap = Field(default_factory=_empty_mapping, alias="SouthBoundURL")

    def to_northbound(self, url: str) -> str:
        return translate_url(url, self.northbound)

    def to_southbound(self, url: str) -> str:
        return translate_url(url, self.southbound)


class TLSPolicyConfig(ConfigModel):
    """TLS settings as written in ``TLSConf``.

    Version names are ``TLS_1.2`` or ``TLS_1.3``; cipher suites use IANA names.
    """

    min_version: str = Field("", alias="MinVersion")
    max_version: str = Field("", alias="MaxVersion")
    verify_peer: bool = Field(False, alias="VerifyPeer")
    preferred_cipher_suites: tuple[str, ...] = Field((), alias="PreferredCipherSuites")


class UpstreamControllerCredentials(ConfigModel):
    """APIC controller address and credentials (``APICConf``)."""

    host: str = Field("", alias="APICHost")
    username: str = Field("", alias="UserName")
    password: str = Field("", alias="Password", repr=False)
    domain_data: StringMap = Field(default_factory=_empty_mapping, alias="DomainData")


class DataStoreConfig(ConfigModel):
    """Redis connection settings (``DBConf``).

    ``password`` holds the plaintext recovered from ``encrypted_password``
    during validation; it is never serialised.
    """

    loaded_fields: ClassVar[frozenset[str]] = frozenset({"password"})

    protocol: str = Field("", alias="Protocol")
    host: str = Field("", alias="Host")
    port: Port = Field("", alias="Port")
    min_idle_conns: int = Field(0, alias="MinIdleConns")
    pool_size: int = Field(0, alias="PoolSize")
    ha_enabled: bool = Field(False, alias="RedisHAEnabled")
    sentinel_port: Port = Field("", alias="SentinelPort")
    master_set: str = Field("", alias="MasterSet")
    encrypted_password: str = Field("", alias="RedisOnDiskEncryptedPassword", repr=False)

    password: bytes = Field(b"", exclude=True, repr=False)


class ConfigurationDocument(ConfigModel):
    """Root of the plugin configuration document."""

    root_service_uuid: str = Field("", alias="RootServiceUUID")
    firmware_version: str = Field("", alias="FirmwareVersion")
    session_timeout_minutes: float = Field(0, alias="SessionTimeoutInMinutes")

    plugin: PluginIdentity | None = Field(None, alias="PluginConf")
    odim: UpstreamEndpoint | None = Field(None, alias="ODIMConf")
    event: EventDelivery | None = Field(None, alias="EventConf")
    load_balancer: LoadBalancer | None = Field(None, alias="LoadBalancerConf")
    message_bus: MessageBusConfig | None = Field(None, alias="MessageBusConf")
    key_cert: KeyCertMaterial | None = Field(None, alias="KeyCertConf")
    url_translation: URLTranslation | None = Field(None, alias="URLTranslation")
    tls: TLSPolicyConfig | None = Field(None, alias="TLSConf")
    apic: UpstreamControllerCredentials | None = Field(None, alias="APICConf")
    db: DataStoreConfig | None = Field(None, alias="DBConf")
