import re
from dataclasses import dataclass, field
from urllib.parse import quote

from ..errors import ProtocolEncodingError


COMMAND_NAME_PATTERN = re.compile(r"[A-Za-z0-9_]+")

LOAD_COMMAND = "load"
LOAD_BODY_ARGUMENT = "values"
OUTPUT_TYPE_ARGUMENT = "output_type"


def encode_argument_value(name, value):
    """Render one argument value as the text Groonga expects, or None to omit it."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolEncodingError(f"Argument {name!r} is not valid UTF-8: {e}") from e
    raise ProtocolEncodingError(
        f"Argument {name!r} has unsupported type {type(value).__name__}"
    )


@dataclass
class Command:
    """A single Groonga request: a name plus ordered arguments.

    Arguments keep insertion order so the encoded form is deterministic.
    """

    name: str
    arguments: dict = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.name, str) or not COMMAND_NAME_PATTERN.fullmatch(self.name):
            raise ProtocolEncodingError(f"Invalid command name: {self.name!r}")

        encoded = {}
        for key, value in dict(self.arguments or {}).items():
            text = encode_argument_value(key, value)
            if text is not None:
                encoded[str(key)] = text
        self.arguments = encoded

    @property
    def is_load(self):
        return self.name == LOAD_COMMAND

    def split_body(self):
        """Return (command without the load body, body text or None)."""
        if not self.is_load or LOAD_BODY_ARGUMENT not in self.arguments:
            return self, None
        arguments = dict(self.arguments)
        body = arguments.pop(LOAD_BODY_ARGUMENT)
        return Command(self.name, arguments), body

    def to_uri_format(self) -> str:
        arguments = dict(self.arguments)
        path = f"/d/{self.name}"
        output_type = arguments.pop(OUTPUT_TYPE_ARGUMENT, None)
        if output_type:
            path += f".{quote(output_type, safe='')}"
        if arguments:
            query = "&".join(
                f"{quote(key, safe='')}={quote(value, safe='')}"
                for key, value in arguments.items()
            )
            path += f"?{query}"
        return path

    def to_command_format(self) -> str:
        parts = [self.name]
        for key, value in self.arguments.items():
            parts.append(f"--{key}")
            parts.append(self._quote_command_value(value))
        return " ".join(parts)

    @staticmethod
    def _quote_command_value(value):
        if value and not re.search(r"[\s\"'\\]", value):
            return value
        escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
        return f'"{escaped}"'


def body_lines(body):
    """Split a load body into newline-terminated lines.

    Only the newline character separates lines. Other Unicode line breaks
    (U+0085, U+2028, ...) can sit unescaped inside JSON strings and are kept.
    """
    if body is None:
        return []
    lines = body.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [f"{line}\n" for line in lines]
