class GroongaRelayError(Exception):
    """Base class for every error raised by groonga_relay."""


class ConfigError(GroongaRelayError, ValueError):
    pass


class ProtocolEncodingError(GroongaRelayError, ValueError):
    """A record or command argument cannot be encoded for the wire."""


class SchemaError(GroongaRelayError):
    """A table or column could not be created on the engine."""

    def __init__(self, message, command_name=None, arguments=None, response=None):
        super().__init__(message)
        self.command_name = command_name
        self.arguments = dict(arguments or {})
        self.response = response


class ClientError(GroongaRelayError):
    """The engine could not be reached or replied with something unparsable."""


class SubprocessError(GroongaRelayError):
    pass


class ClientIOError(SubprocessError):
    """Reading from or writing to the engine's pipes failed."""


class InvalidStateError(GroongaRelayError, RuntimeError):
    pass
