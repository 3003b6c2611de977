"""Documented default values and allow-lists for the plugin configuration."""

from types import MappingProxyType

CONFIG_FILE_PATH_ENV = "PLUGIN_CONFIG_FILE_PATH"

DEFAULT_FIRMWARE_VERSION = "1.0"
DEFAULT_SESSION_TIMEOUT_MINUTES = 30.0
DEFAULT_PLUGIN_ID = "GRF"

DEFAULT_MESSAGE_BUS_TYPE = "Kafka"
DEFAULT_MESSAGE_BUS_QUEUE = ("REDFISH-EVENTS-TOPIC",)
ALLOWED_MESSAGE_BUS_TYPES = frozenset({"Kafka", "RedisStreams"})

DEFAULT_NORTHBOUND_URL = MappingProxyType({"ODIM": "redfish"})
DEFAULT_SOUTHBOUND_URL = MappingProxyType({"redfish": "ODIM"})

DEFAULT_DB_PROTOCOL = "tcp"
DEFAULT_DB_POOL_SIZE = 10
DEFAULT_DB_MIN_IDLE_CONNS = 2
