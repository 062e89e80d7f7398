import shlex
from dataclasses import dataclass, field
from enum import Enum

from ..errors import ConfigError


DEFAULT_COMMAND_TAG_PREFIX = "groonga.command."


class Protocol(Enum):
    HTTP = "http"
    GQTP = "gqtp"
    COMMAND = "command"


DEFAULT_PORTS = {
    Protocol.HTTP: 10041,
    Protocol.GQTP: 10043,
}


@dataclass
class NetworkConfig:
    protocol: str = Protocol.HTTP.value
    host: str = "localhost"
    port: int = None
    timeout: float = 10.0


@dataclass
class CommandConfig:
    database: str
    groonga: str = "groonga"
    arguments: list = field(default_factory=list)
    shutdown_timeout: float = 10.0


@dataclass
class OutputConfig:
    protocol: Protocol = Protocol.HTTP
    table: str = None
    command_tag_prefix: str = DEFAULT_COMMAND_TAG_PREFIX
    network: NetworkConfig = None
    command: CommandConfig = None

    @classmethod
    def from_dict(cls, conf) -> "OutputConfig":
        conf = dict(conf or {})
        protocol = parse_protocol(conf.get("protocol", Protocol.HTTP.value))

        table = conf.get("table")
        if table is not None and not str(table).strip():
            raise ConfigError("table must not be empty")

        prefix = conf.get("command_tag_prefix", DEFAULT_COMMAND_TAG_PREFIX)
        if not prefix:
            raise ConfigError("command_tag_prefix must not be empty")

        config = cls(
            protocol=protocol,
            table=str(table) if table is not None else None,
            command_tag_prefix=prefix,
        )
        if protocol == Protocol.COMMAND:
            config.command = _command_config(conf)
        else:
            config.network = _network_config(conf, protocol)
        return config


def parse_protocol(value) -> Protocol:
    if isinstance(value, Protocol):
        return value
    try:
        return Protocol(str(value).strip().lower())
    except ValueError:
        raise ConfigError(f"must be http, gqtp or command: <{value}>") from None


def parse_arguments(value):
    if value is None:
        return []
    if isinstance(value, str):
        try:
            return shlex.split(value)
        except ValueError as e:
            raise ConfigError(f"Invalid arguments <{value}>: {e}") from e
    if isinstance(value, (list, tuple)):
        return [str(argument) for argument in value]
    raise ConfigError(f"arguments must be a string or a list: <{value!r}>")


def _positive_number(conf, key, default):
    value = conf.get(key, default)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be a number: <{value}>") from None
    if number <= 0:
        raise ConfigError(f"{key} must be positive: <{value}>")
    return number


def _network_config(conf, protocol):
    port = conf.get("port")
    if port is None:
        port = DEFAULT_PORTS[protocol]
    try:
        port = int(port)
    except (TypeError, ValueError):
        raise ConfigError(f"port must be an integer: <{port}>") from None
    if not 0 < port < 65536:
        raise ConfigError(f"port out of range: <{port}>")

    return NetworkConfig(
        protocol=protocol.value,
        host=conf.get("host") or "localhost",
        port=port,
        timeout=_positive_number(conf, "timeout", 10.0),
    )


def _command_config(conf):
    database = conf.get("database")
    if not database:
        raise ConfigError("database is required for the command protocol")

    return CommandConfig(
        database=str(database),
        groonga=conf.get("groonga") or "groonga",
        arguments=parse_arguments(conf.get("arguments")),
        shutdown_timeout=_positive_number(conf, "shutdown_timeout", 10.0),
    )
