import json
from dataclasses import dataclass

from ..errors import ClientError


@dataclass
class Response:
    """Reply to one command.

    ``status_code`` is None when no reply was observed, which is always the
    case for commands sent through the subprocess bridge.
    """

    status_code: int = None
    start_time: float = None
    elapsed: float = None
    error_message: str = None
    body: object = None
    raw: str = ""
    error_output: str = ""

    @property
    def status_known(self):
        return self.status_code is not None

    @property
    def success(self):
        return self.status_code == 0

    def records(self):
        """Turn a ``[[header...], row, ...]`` list body into dicts.

        table_list and column_list reply with a header of ``[name, type]``
        pairs followed by one list per row.
        """
        if not isinstance(self.body, list) or not self.body:
            return []

        header, *rows = self.body
        if not isinstance(header, list):
            return []
        names = [
            column[0] if isinstance(column, list) and column else str(column)
            for column in header
        ]
        return [dict(zip(names, row)) for row in rows if isinstance(row, list)]

    @classmethod
    def unknown(cls, raw="", error_output=""):
        return cls(raw=raw, error_output=error_output)

    @classmethod
    def from_http(cls, text):
        """Parse the ``[[status, start, elapsed, message?, ...], body]`` envelope."""
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, TypeError) as e:
            raise ClientError(f"Unparsable reply: {text[:200]!r}") from e

        if not isinstance(data, list) or not data or not isinstance(data[0], list):
            raise ClientError(f"Unexpected reply shape: {text[:200]!r}")

        header = data[0]
        body = data[1] if len(data) > 1 else None
        return cls(
            status_code=header[0] if len(header) > 0 else None,
            start_time=header[1] if len(header) > 1 else None,
            elapsed=header[2] if len(header) > 2 else None,
            error_message=header[3] if len(header) > 3 else None,
            body=body,
            raw=text,
        )

    @classmethod
    def from_gqtp(cls, status_code, payload):
        text = payload.decode("utf-8", errors="replace")
        try:
            body = json.loads(text) if text else None
        except json.JSONDecodeError:
            body = text
        error_message = None
        if status_code != 0:
            error_message = body if isinstance(body, str) else text
        return cls(
            status_code=status_code,
            error_message=error_message,
            body=body,
            raw=text,
        )
