"""
Global pytest configuration and fixtures.
"""

import base64
import datetime
import json
import logging
import logging.handlers
from pathlib import Path
from typing import Any, Callable

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.x509.oid import NameOID

ROOT_SERVICE_UUID = "3b7a6e55-8c4f-4d0e-9a41-7f4b2e9c1d20"
DB_PASSWORD = b"redis-on-disk-secret"


def generate_rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def pkcs1_pem(key: rsa.RSAPrivateKey, passphrase: bytes | None = None) -> bytes:
    encryption = (
        serialization.BestAvailableEncryption(passphrase)
        if passphrase
        else serialization.NoEncryption()
    )
    return key.private_bytes(
        serialization.Encoding.PEM, serialization.PrivateFormat.TraditionalOpenSSL, encryption
    )


def encrypt_secret(key: rsa.RSAPrivateKey, plaintext: bytes) -> str:
    ciphertext = key.public_key().encrypt(
        plaintext,
        padding.OAEP(
            mgf=padding.MGF1(algorithm=hashes.SHA512()), algorithm=hashes.SHA512(), label=None
        ),
    )
    return base64.b64encode(ciphertext).decode("ascii")


def self_signed_certificate(key: rsa.RSAPrivateKey) -> bytes:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "plugin.test")])
    now = datetime.datetime.now(datetime.timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    return certificate.public_bytes(serialization.Encoding.PEM)


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return generate_rsa_key()


@pytest.fixture(scope="session")
def other_rsa_key() -> rsa.RSAPrivateKey:
    return generate_rsa_key()


@pytest.fixture
def plugin_files(tmp_path: Path, rsa_key: rsa.RSAPrivateKey) -> dict[str, Path]:
    """Key material and message bus topology files for a plugin deployment."""
    files = {
        "certificate": tmp_path / "plugin.crt",
        "private_key": tmp_path / "plugin.key",
        "root_ca": tmp_path / "rootCA.crt",
        "rsa_key": tmp_path / "odimra_rsa.private",
        "message_bus": tmp_path / "platformconfig.toml",
    }
    certificate = self_signed_certificate(rsa_key)
    files["certificate"].write_bytes(certificate)
    files["private_key"].write_bytes(pkcs1_pem(rsa_key))
    files["root_ca"].write_bytes(certificate)
    files["rsa_key"].write_bytes(pkcs1_pem(rsa_key))
    files["message_bus"].write_text('[KafkaF]\nKServers = ["kafka:9092"]\n')
    return files


@pytest.fixture
def minimal_config(plugin_files: dict[str, Path], rsa_key: rsa.RSAPrivateKey) -> dict[str, Any]:
    """A valid configuration that leaves every optional setting unset."""
    return {
        "RootServiceUUID": ROOT_SERVICE_UUID,
        "PluginConf": {
            "Host": "aciplugin",
            "Port": "45020",
            "UserName": "admin",
            "Password": "plugin-password-hash",
        },
        "ODIMConf": {
            "URL": "https://odim.local:45000",
            "UserName": "admin",
            "Password": encrypt_secret(rsa_key, b"odim-password"),
        },
        "EventConf": {
            "DestinationURI": "/redfishEventListener",
            "ListenerHost": "aciplugin-events",
            "ListenerPort": "45021",
        },
        "MessageBusConf": {
            "MessageQueueConfigFilePath": str(plugin_files["message_bus"]),
        },
        "KeyCertConf": {
            "CertificatePath": str(plugin_files["certificate"]),
            "PrivateKeyPath": str(plugin_files["private_key"]),
            "RootCACertificatePath": str(plugin_files["root_ca"]),
            "RSAPrivateKeyPath": str(plugin_files["rsa_key"]),
        },
        "APICConf": {
            "APICHost": "apic.local",
            "UserName": "apic-admin",
            "Password": "apic-password",
        },
        "DBConf": {
            "Protocol": "tcp",
            "Host": "redis",
            "Port": "6380",
            "RedisOnDiskEncryptedPassword": encrypt_secret(rsa_key, DB_PASSWORD),
        },
    }


@pytest.fixture
def full_config(minimal_config: dict[str, Any]) -> dict[str, Any]:
    """A valid configuration with every optional setting given explicitly."""
    config = json.loads(json.dumps(minimal_config))
    config["FirmwareVersion"] = "2.1"
    config["SessionTimeoutInMinutes"] = 45
    config["PluginConf"]["ID"] = "ACI"
    config["LoadBalancerConf"] = {"LBHost": "lb.local", "LBPort": "30080"}
    config["MessageBusConf"]["MessageBusType"] = "RedisStreams"
    config["MessageBusConf"]["MessageBusQueue"] = ["ACI-EVENTS-TOPIC"]
    config["URLTranslation"] = {
        "NorthBoundURL": {"ODIM": "redfish"},
        "SouthBoundURL": {"redfish": "ODIM"},
    }
    config["TLSConf"] = {
        "MinVersion": "TLS_1.2",
        "MaxVersion": "TLS_1.3",
        "VerifyPeer": True,
        "PreferredCipherSuites": [
            "TLS_ECDHE_RSA_WITH_AES_256_GCM_SHA384",
            "TLS_ECDHE_RSA_WITH_AES_128_GCM_SHA256",
        ],
    }
    config["DBConf"]["PoolSize"] = 20
    config["DBConf"]["MinIdleConns"] = 4
    return config


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., Path]:
    def _write(data: Any, name: str = "config.json") -> Path:
        path = tmp_path / name
        if isinstance(data, (bytes, str)):
            path.write_bytes(data.encode() if isinstance(data, str) else data)
        else:
            path.write_text(json.dumps(data))
        return path

    return _write


@pytest.fixture(autouse=True)
def clean_plugin_env(monkeypatch: pytest.MonkeyPatch):
    """Keep the developer's plugin environment out of the tests."""
    monkeypatch.delenv("PLUGIN_CONFIG_FILE_PATH", raising=False)
    monkeypatch.delenv("PLUGIN_DEBUG", raising=False)
    root_logger = logging.getLogger()
    level = root_logger.level
    yield
    # configure_logging installs handlers bound to CliRunner streams that are closed by now
    for handler in root_logger.handlers[:]:
        if type(handler) in (logging.StreamHandler, logging.handlers.RotatingFileHandler):
            root_logger.removeHandler(handler)
    root_logger.setLevel(level)


@pytest.fixture
def encrypt(rsa_key: rsa.RSAPrivateKey) -> Callable[..., str]:
    """Encrypt plaintext the way operators produce on-disk secrets."""

    def _encrypt(plaintext: bytes, key: rsa.RSAPrivateKey | None = None) -> str:
        return encrypt_secret(key or rsa_key, plaintext)

    return _encrypt


@pytest.fixture
def key_pem() -> Callable[..., bytes]:
    """PKCS#1 PEM encoding of a key, optionally encrypted with a passphrase."""
    return pkcs1_pem


@pytest.fixture
def cert_pem() -> Callable[[rsa.RSAPrivateKey], bytes]:
    """Self-signed CA certificate for a key, PEM encoded."""
    return self_signed_certificate
