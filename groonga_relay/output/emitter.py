import json
from dataclasses import dataclass
from enum import Enum

from .config import DEFAULT_COMMAND_TAG_PREFIX
from ..errors import InvalidStateError, ProtocolEncodingError
from ..schema.schema import Schema

import logging

logger = logging.getLogger(__name__)


class TagKind(Enum):
    DATA = "data"
    COMMAND = "command"


@dataclass(frozen=True)
class TagClassification:
    kind: TagKind
    command_name: str = None


def classify_tag(tag, prefix=DEFAULT_COMMAND_TAG_PREFIX) -> TagClassification:
    """Tags starting with the control prefix name a command; the rest carry data."""
    if isinstance(tag, str) and tag.startswith(prefix):
        return TagClassification(TagKind.COMMAND, tag[len(prefix):])
    return TagClassification(TagKind.DATA)


def encode_record(record):
    if not isinstance(record, dict):
        raise ProtocolEncodingError(f"Record must be a mapping, got {type(record).__name__}")
    try:
        return json.dumps(record, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as e:
        raise ProtocolEncodingError(f"Record cannot be encoded as JSON: {e}") from e


@dataclass
class EmitStatistics:
    loads: int = 0
    commands: int = 0
    records_loaded: int = 0
    records_rejected: int = 0

    def merge(self, other):
        self.loads += other.loads
        self.commands += other.commands
        self.records_loaded += other.records_loaded
        self.records_rejected += other.records_rejected


class Emitter:
    """Turns delivered events into load and control commands, in order.

    Data records are accumulated and stored as one load. A control record
    first flushes the pending data so that it runs after everything that
    preceded it in the chunk.
    """

    def __init__(self, client, table=None, command_tag_prefix=DEFAULT_COMMAND_TAG_PREFIX):
        self.client = client
        self.table = table
        self.command_tag_prefix = command_tag_prefix
        self.schema = None
        self.totals = EmitStatistics()

    def start(self):
        self.schema = Schema(self.client, self.table)

    def shutdown(self):
        self.schema = None

    def emit(self, events) -> EmitStatistics:
        if self.schema is None:
            raise InvalidStateError("Emitter has not been started")

        stats = EmitStatistics()
        records = []
        for tag, _time, record in events:
            classification = classify_tag(tag, self.command_tag_prefix)
            if classification.kind == TagKind.COMMAND:
                if records:
                    self._store_records(records, stats)
                    records = []
                self._execute_command(classification.command_name, record, stats)
            else:
                records.append(record)

        if records:
            self._store_records(records, stats)

        if stats.records_rejected:
            logger.warning(f"Rejected {stats.records_rejected} record(s) in this chunk")
        self.totals.merge(stats)
        return stats

    def _execute_command(self, name, record, stats):
        try:
            self.client.execute(name, record or {})
        except ProtocolEncodingError as e:
            stats.records_rejected += 1
            logger.warning(f"Skipped command record {name!r}: {e}")
            return
        stats.commands += 1

    def _store_records(self, records, stats):
        if self.table is None:
            logger.debug(f"No table configured; dropping {len(records)} record(s)")
            return

        accepted = []
        encoded = []
        for record in records:
            try:
                encoded.append(encode_record(record))
            except ProtocolEncodingError as e:
                stats.records_rejected += 1
                logger.warning(f"Skipped record: {e}")
                continue
            accepted.append(record)

        if not accepted:
            return

        self.schema.update(accepted)
        arguments = {
            "table": self.table,
            "values": "[" + ",".join(encoded) + "]",
        }
        self.client.execute("load", arguments)
        stats.loads += 1
        stats.records_loaded += len(accepted)
