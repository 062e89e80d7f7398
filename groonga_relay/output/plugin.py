import msgpack

from .config import OutputConfig, Protocol
from .emitter import Emitter
from ..client.command_client import CommandClient
from ..client.network_client import NetworkClient
from ..errors import InvalidStateError

import logging

logger = logging.getLogger(__name__)


CLIENT_FACTORIES = {
    Protocol.HTTP: lambda config: NetworkClient(config.network),
    Protocol.GQTP: lambda config: NetworkClient(config.network),
    Protocol.COMMAND: lambda config: CommandClient(config.command),
}


def create_client(config):
    return CLIENT_FACTORIES[config.protocol](config)


class GroongaOutput:
    """Buffered-output hooks for writing events into Groonga.

    The host calls configure(), start(), then format() for every event and
    write() for every buffered chunk, and finally shutdown(). Errors raised by
    write() are meant to make the host retry the same chunk.
    """

    def __init__(self, client_factory=create_client):
        self.client_factory = client_factory
        self.config = None
        self.client = None
        self.emitter = None

    def configure(self, conf):
        self.config = OutputConfig.from_dict(conf)
        self.client = self.client_factory(self.config)
        self.emitter = Emitter(
            self.client, self.config.table, self.config.command_tag_prefix
        )
        logger.info(
            f"Configured {self.config.protocol.value} output (table: {self.config.table})"
        )

    def start(self):
        if self.client is None:
            raise InvalidStateError("configure() must be called before start()")
        self.client.start()
        self.emitter.start()

    def shutdown(self):
        if self.client is None:
            raise InvalidStateError("configure() must be called before shutdown()")
        self.emitter.shutdown()
        self.client.shutdown()
        totals = self.emitter.totals
        logger.info(
            f"Shut down after {totals.loads} load(s), {totals.commands} command(s), "
            f"{totals.records_loaded} record(s) loaded, {totals.records_rejected} rejected"
        )

    def format(self, tag, time, record) -> bytes:
        return msgpack.packb([tag, time, record], use_bin_type=True)

    def write(self, chunk):
        return self.emitter.emit(self._unpack(chunk))

    @staticmethod
    def _unpack(chunk):
        unpacker = msgpack.Unpacker(raw=False, strict_map_key=False)
        unpacker.feed(chunk)
        for message in unpacker:
            tag, time, record = message
            yield tag, time, record
