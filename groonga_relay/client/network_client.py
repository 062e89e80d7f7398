import socket
import struct

import httpx

from .base_client import BaseClient
from .response import Response
from ..errors import ClientError, ConfigError

import logging

logger = logging.getLogger(__name__)


class HTTPTransport:

    def __init__(self, host, port, timeout):
        self.base_url = f"http://{host}:{port}"
        self.client = httpx.Client(base_url=self.base_url, timeout=timeout, trust_env=False)

    def send(self, command) -> Response:
        command, body = command.split_body()
        path = command.to_uri_format()
        try:
            if body is None:
                r = self.client.get(path)
            else:
                r = self.client.post(
                    path,
                    content=body.encode("utf-8"),
                    headers={"Content-Type": "application/json"},
                )
        except httpx.HTTPError as e:
            raise ClientError(f"HTTP request to {self.base_url}{path} failed: {e}") from e

        logger.debug(f"{path} -> HTTP {r.status_code}")
        return Response.from_http(r.text or "")

    def close(self):
        self.client.close()


class GQTPTransport:
    """Groonga Query Transfer Protocol over a single TCP connection.

    Every packet starts with a 24-byte big-endian header:
    protocol, query_type, key_length, level, flags, status, size, opaque, cas.
    """

    HEADER = struct.Struct(">BBHBBHIIQ")
    PROTOCOL = 0xC7
    FLAG_MORE = 0x01
    FLAG_TAIL = 0x02

    def __init__(self, host, port, timeout):
        self.address = (host, port)
        try:
            self.sock = socket.create_connection(self.address, timeout=timeout)
        except OSError as e:
            raise ClientError(f"Cannot connect to gqtp://{host}:{port}: {e}") from e

    def send(self, command) -> Response:
        payload = command.to_uri_format().encode("utf-8")
        header = self.HEADER.pack(
            self.PROTOCOL, 0, 0, 0, self.FLAG_TAIL, 0, len(payload), 0, 0
        )
        try:
            self.sock.sendall(header + payload)
            status, body = self._receive()
        except OSError as e:
            raise ClientError(f"GQTP exchange with {self.address} failed: {e}") from e
        return Response.from_gqtp(status, body)

    def _receive(self):
        chunks = []
        while True:
            (
                protocol, _query_type, _key_length, _level,
                flags, status, size, _opaque, _cas,
            ) = self.HEADER.unpack(self._read_exactly(self.HEADER.size))
            if protocol != self.PROTOCOL:
                raise ClientError(f"Unexpected GQTP protocol byte: {protocol:#x}")
            chunks.append(self._read_exactly(size))
            if not flags & self.FLAG_MORE:
                break
        if status >= 0x8000:
            status -= 0x10000
        return status, b"".join(chunks)

    def _read_exactly(self, size):
        data = bytearray()
        while len(data) < size:
            chunk = self.sock.recv(size - len(data))
            if not chunk:
                raise ClientError(f"Connection to {self.address} closed mid-reply")
            data.extend(chunk)
        return bytes(data)

    def close(self):
        self.sock.close()


class NetworkClient(BaseClient):
    """Talks to an already running Groonga server over HTTP or GQTP.

    The connection is opened by the first execute() and reused afterwards.
    """

    TRANSPORTS = {
        "http": HTTPTransport,
        "gqtp": GQTPTransport,
    }

    def __init__(self, config):
        super().__init__()
        if config.protocol not in self.TRANSPORTS:
            raise ConfigError(f"Unsupported network protocol: {config.protocol}")
        self.config = config
        self.transport = None

    def start(self):
        self.transport = None

    def shutdown(self):
        if self.transport is None:
            return
        self.transport.close()
        self.transport = None

    def execute(self, name, arguments=None) -> Response:
        command = self.build_command(name, arguments)
        if self.transport is None:
            transport_class = self.TRANSPORTS[self.config.protocol]
            self.transport = transport_class(
                self.config.host, self.config.port, self.config.timeout
            )
            logger.info(
                f"Connected to {self.config.protocol}://{self.config.host}:{self.config.port}"
            )
        head, _ = command.split_body()
        logger.debug(f"Sending {head.to_command_format()}")
        response = self.transport.send(command)
        if response.status_known and not response.success:
            logger.warning(
                f"{command.name} failed with status {response.status_code}: {response.error_message}"
            )
        return response
