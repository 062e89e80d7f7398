import json

import pytest

from groonga_relay.client.command import Command, body_lines
from groonga_relay.errors import ProtocolEncodingError
from groonga_relay.output.emitter import encode_record


def test_uri_format_without_arguments():
    assert Command("status").to_uri_format() == "/d/status"


def test_uri_format_keeps_insertion_order():
    command = Command("table_create", {"name": "Users", "flags": "TABLE_NO_KEY"})
    assert command.to_uri_format() == "/d/table_create?name=Users&flags=TABLE_NO_KEY"

    reordered = Command("table_create", {"flags": "TABLE_NO_KEY", "name": "Users"})
    assert reordered.to_uri_format() == "/d/table_create?flags=TABLE_NO_KEY&name=Users"


def test_uri_format_percent_encodes_with_percent_20():
    command = Command("select", {"table": "Logs", "query": "message:@hello world&x=/y"})
    assert command.to_uri_format() == (
        "/d/select?table=Logs&query=message%3A%40hello%20world%26x%3D%2Fy"
    )


def test_uri_format_encodes_non_ascii_as_utf8():
    command = Command("select", {"query": "日本"})
    assert command.to_uri_format() == "/d/select?query=%E6%97%A5%E6%9C%AC"


def test_output_type_becomes_path_suffix():
    command = Command("status", {"output_type": "json"})
    assert command.to_uri_format() == "/d/status.json"


def test_argument_values_are_stringified():
    command = Command("select", {"limit": 10, "ratio": 0.5, "cache": False, "skip": None})
    assert command.arguments == {"limit": "10", "ratio": "0.5", "cache": "false"}


@pytest.mark.parametrize("value", [[1, 2], {"a": 1}, object()])
def test_unencodable_argument_is_rejected(value):
    with pytest.raises(ProtocolEncodingError):
        Command("select", {"query": value})


@pytest.mark.parametrize("name", ["", "table create", "../x", None])
def test_invalid_command_name_is_rejected(name):
    with pytest.raises(ProtocolEncodingError):
        Command(name)


def test_load_body_is_separated_from_query():
    command = Command("load", {"table": "Users", "values": '[{"a":1}]'})
    head, body = command.split_body()
    assert head.to_uri_format() == "/d/load?table=Users"
    assert "values" not in head.arguments
    assert body == '[{"a":1}]'
    assert body_lines(body) == ['[{"a":1}]\n']


def test_split_body_leaves_other_commands_alone():
    command = Command("select", {"table": "Users", "values": "x"})
    head, body = command.split_body()
    assert head is command
    assert body is None


def test_multi_line_body_is_split_per_line():
    assert body_lines('[\n{"a":1},\n{"a":2}\n]') == ["[\n", '{"a":1},\n', '{"a":2}\n', "]\n"]


def test_command_format_quotes_values_with_spaces():
    command = Command("select", {"table": "Logs", "query": 'say "hi"'})
    assert command.to_command_format() == 'select --table Logs --query "say \\"hi\\""'


@pytest.mark.parametrize("separator", ["\u2028", "\u2029", "\u0085", "\x0b", "\x0c", "\x1e"])
def test_body_keeps_unicode_line_breaks_inside_strings(separator):
    record = {"msg": f"a{separator}b"}
    command = Command("load", {"table": "Logs", "values": "[" + encode_record(record) + "]"})
    _, body = command.split_body()

    lines = body_lines(body)
    assert len(lines) == 1
    assert json.loads("".join(lines)) == [record]


def test_body_lines_of_empty_body():
    assert body_lines("") == []
    assert body_lines(None) == []
