#!/usr/bin/env python3

"""
relay.py

Entry point for relaying JSON-lines event files into Groonga.

Each file holds one event per line, either {"tag": ..., "time": ..., "record": {...}}
or [tag, time, record]. Events are buffered into chunks and written the same way a
log router would hand them to the output.
"""

import argparse
import logging
import sys

from .errors import GroongaRelayError
from .output.config import DEFAULT_COMMAND_TAG_PREFIX
from .output.plugin import GroongaOutput
from .output.utils import EventReader, chunked

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="groonga-relay", description="Relay JSON-lines events into Groonga."
    )
    parser.add_argument("files", nargs="+", help="event files (.gz/.bz2/.xz/.lzma accepted)")
    parser.add_argument("--protocol", default="http", help="http, gqtp or command")
    parser.add_argument("--table", help="table that receives data records")
    parser.add_argument("--host", help="server host for http/gqtp")
    parser.add_argument("--port", type=int, help="server port for http/gqtp")
    parser.add_argument("--timeout", type=float, default=10.0)
    parser.add_argument("--groonga", default="groonga", help="groonga binary for the command protocol")
    parser.add_argument("--database", help="database path for the command protocol")
    parser.add_argument("--arguments", default="", help="extra groonga arguments")
    parser.add_argument("--shutdown-timeout", type=float, default=10.0)
    parser.add_argument("--command-tag-prefix", default=DEFAULT_COMMAND_TAG_PREFIX)
    parser.add_argument("--default-tag", default="groonga.data")
    parser.add_argument("--chunk-size", type=int, default=1000)
    parser.add_argument("--log-level", default="INFO")
    return parser


def config_from_args(args):
    conf = {
        "protocol": args.protocol,
        "table": args.table,
        "host": args.host,
        "port": args.port,
        "timeout": args.timeout,
        "groonga": args.groonga,
        "database": args.database,
        "arguments": args.arguments,
        "shutdown_timeout": args.shutdown_timeout,
        "command_tag_prefix": args.command_tag_prefix,
    }
    return {key: value for key, value in conf.items() if value is not None}


def relay(output, files, reader, chunk_size):
    written = 0
    for filepath in files:
        for chunk in chunked(reader.read_file(filepath), chunk_size):
            buffer = b"".join(output.format(tag, time, record) for tag, time, record in chunk)
            stats = output.write(buffer)
            written += stats.records_loaded
            logger.debug(f"Chunk from {filepath}: {stats}")
    return written


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.chunk_size <= 0:
        logger.error("--chunk-size must be positive")
        return 2

    output = GroongaOutput()
    try:
        output.configure(config_from_args(args))
        output.start()
    except GroongaRelayError as e:
        logger.error(f"Cannot start: {e}")
        return 1

    reader = EventReader(default_tag=args.default_tag)
    status = 0
    try:
        written = relay(output, args.files, reader, args.chunk_size)
        logger.info(f"Loaded {written} record(s), skipped {reader.skipped_lines} line(s)")
    except (GroongaRelayError, OSError, ValueError) as e:
        logger.error(f"Relay failed: {e}")
        status = 1
    finally:
        try:
            output.shutdown()
        except GroongaRelayError as e:
            logger.error(f"Shutdown failed: {e}")
            status = 1
    return status


if __name__ == "__main__":
    sys.exit(main())
