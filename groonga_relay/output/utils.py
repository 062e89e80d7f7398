import bz2
import gzip
import json
import lzma
from pathlib import Path

import logging

logger = logging.getLogger(__name__)


class EventReader:
    """Read (tag, time, record) events from JSON-lines files.

    A line is either ``{"tag": ..., "time": ..., "record": {...}}`` or
    ``[tag, time, record]``. Lines that are neither are skipped and counted.
    """

    OPENERS = {".gz": gzip.open, ".bz2": bz2.open, ".xz": lzma.open, ".lzma": lzma.open}

    def __init__(self, default_tag="groonga.data"):
        self.default_tag = default_tag
        self.skipped_lines = 0

    def read_file(self, filepath):
        filepath = Path(filepath)

        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filepath}")

        if not filepath.is_file():
            raise ValueError(f"Path is not a file: {filepath}")

        for line_number, line in enumerate(self._open_lines(filepath), 1):
            line = line.strip()
            if not line:
                continue
            event = self.parse_line(line)
            if event is None:
                self.skipped_lines += 1
                logger.warning(f"{filepath}:{line_number}: not an event, skipped")
                continue
            yield event

    def _open_lines(self, filepath):
        opener = self.OPENERS.get(filepath.suffix.lower(), open)
        with opener(filepath, "rt", encoding="utf-8") as f:
            yield from f

    def parse_line(self, line):
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            return None

        if isinstance(data, list) and len(data) == 3 and isinstance(data[2], dict):
            tag, time, record = data
            return str(tag), time, record

        if isinstance(data, dict) and isinstance(data.get("record"), dict):
            return str(data.get("tag") or self.default_tag), data.get("time"), data["record"]

        return None


def chunked(events, size):
    chunk = []
    for event in events:
        chunk.append(event)
        if len(chunk) >= size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk
