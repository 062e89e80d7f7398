import pytest

from groonga_relay.client.base_client import BaseClient
from groonga_relay.client.response import Response


TABLE_LIST_HEADER = [
    ["id", "UInt32"],
    ["name", "ShortText"],
    ["path", "ShortText"],
    ["flags", "ShortText"],
    ["domain", "ShortText"],
    ["range", "ShortText"],
    ["default_tokenizer", "ShortText"],
    ["normalizer", "ShortText"],
]

COLUMN_LIST_HEADER = [
    ["id", "UInt32"],
    ["name", "ShortText"],
    ["path", "ShortText"],
    ["type", "ShortText"],
    ["flags", "ShortText"],
    ["domain", "ShortText"],
    ["range", "ShortText"],
    ["source", "ShortText"],
]


def ok(body=True):
    return Response(status_code=0, start_time=0.0, elapsed=0.0, body=body)


class RecordingClient(BaseClient):
    """Remembers every command and answers from a table of canned replies."""

    def __init__(self, replies=None):
        super().__init__()
        self.calls = []
        self.replies = dict(replies or {})
        self.started = False
        self.stopped = False

    def start(self):
        self.started = True

    def shutdown(self):
        self.stopped = True

    def execute(self, name, arguments=None):
        command = self.build_command(name, arguments)
        self.calls.append((command.name, dict(command.arguments)))
        reply = self.replies.get(name)
        if callable(reply):
            return reply(command)
        if reply is not None:
            return reply
        if name == "table_list":
            return ok([TABLE_LIST_HEADER])
        if name == "column_list":
            return ok([COLUMN_LIST_HEADER])
        return ok()

    def names(self):
        return [name for name, _ in self.calls]


@pytest.fixture
def recording_client():
    return RecordingClient()
