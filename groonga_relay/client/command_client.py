import os
import select
import subprocess
from enum import Enum
from pathlib import Path

from .base_client import BaseClient
from .command import body_lines
from .response import Response
from ..errors import ClientIOError, InvalidStateError, SubprocessError

import logging

logger = logging.getLogger(__name__)


class ClientState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    BROKEN = "broken"
    SHUT_DOWN = "shut_down"


class CommandClient(BaseClient):
    """Runs groonga as a child process and feeds it commands over pipes.

    Requests go through a dedicated input fd and replies come back on a
    dedicated output fd, so nothing the child prints on its standard streams
    can be mistaken for protocol traffic. The child's stderr is the third pipe.

    Replies are never waited for. After each request a drain pass reads
    whatever output is ready at that moment and logs it.
    """

    READ_SIZE = 65536
    MAX_DRAIN_READS = 1024

    def __init__(self, config):
        super().__init__()
        self.config = config
        self.state = ClientState.STOPPED
        self.process = None
        self.input = None
        self.output_fd = None
        self.error_fd = None
        self._child_input_fd = None
        self._child_output_fd = None

    def start(self):
        if self.state != ClientState.STOPPED:
            raise InvalidStateError(f"Cannot start a {self.state.value} command client")
        self._run_groonga()
        self.state = ClientState.RUNNING

    def shutdown(self):
        if self.state not in (ClientState.RUNNING, ClientState.BROKEN):
            raise InvalidStateError(f"Cannot shut down a {self.state.value} command client")

        try:
            try:
                self.input.close()
            except OSError as e:
                logger.warning(f"Closing groonga input failed: {e}")
            try:
                self.read_output("shutdown")
            finally:
                self._close_readers()
            self._wait_for_exit()
        finally:
            self.state = ClientState.SHUT_DOWN

    def execute(self, name, arguments=None) -> Response:
        if self.state != ClientState.RUNNING:
            raise InvalidStateError(f"Cannot execute on a {self.state.value} command client")

        command = self.build_command(name, arguments)
        command, body = command.split_body()
        uri = command.to_uri_format()
        logger.debug(f"Sending {command.to_command_format()}")
        try:
            self.input.write(f"{uri}\n".encode("utf-8"))
            for line in body_lines(body):
                self.input.write(line.encode("utf-8"))
            self.input.flush()
        except OSError as e:
            self.state = ClientState.BROKEN
            raise ClientIOError(f"Writing {command.name} to groonga failed: {e}") from e

        output, error = self.read_output(uri)
        return Response.unknown(raw=output, error_output=error)

    def build_arguments(self):
        database = Path(self.config.database)
        arguments = [self.config.groonga, *self.config.arguments]
        arguments += [
            "--input-fd", str(self._child_input_fd),
            "--output-fd", str(self._child_output_fd),
        ]
        if not database.exists():
            database.parent.mkdir(parents=True, exist_ok=True)
            arguments.append("-n")
        arguments.append(str(database))
        return arguments

    def read_output(self, context):
        """Read and log whatever the child has written so far without blocking."""
        output = bytearray()
        error = bytearray()
        open_fds = [fd for fd in (self.output_fd, self.error_fd) if fd is not None]

        try:
            for _ in range(self.MAX_DRAIN_READS):
                if not open_fds:
                    break
                readables, _, _ = select.select(open_fds, [], [], 0)
                if not readables:
                    break
                for fd in readables:
                    data = os.read(fd, self.READ_SIZE)
                    if not data:
                        open_fds.remove(fd)
                    elif fd == self.output_fd:
                        output.extend(data)
                    else:
                        error.extend(data)
        except OSError as e:
            self.state = ClientState.BROKEN
            raise ClientIOError(f"Reading groonga output failed ({context}): {e}") from e

        output_message = output.decode("utf-8", errors="replace")
        error_message = error.decode("utf-8", errors="replace")
        if output_message:
            logger.debug(f"[output][groonga][output] context={context} message={output_message}")
        if error_message:
            logger.error(f"[output][groonga][error] context={context} message={error_message}")
        return output_message, error_message

    def _run_groonga(self):
        input_read, input_write = os.pipe()
        output_read, output_write = os.pipe()
        error_read, error_write = os.pipe()
        self._child_input_fd = input_read
        self._child_output_fd = output_write

        try:
            arguments = self.build_arguments()
            logger.info(f"Spawning {' '.join(arguments)}")
            self.process = subprocess.Popen(
                arguments,
                stdin=subprocess.DEVNULL,
                stderr=error_write,
                pass_fds=(input_read, output_write),
            )
        except OSError as e:
            for fd in (input_read, input_write, output_read, output_write, error_read, error_write):
                os.close(fd)
            raise SubprocessError(f"Cannot spawn {self.config.groonga}: {e}") from e

        os.close(input_read)
        os.close(output_write)
        os.close(error_write)
        self.input = os.fdopen(input_write, "wb")
        self.output_fd = output_read
        self.error_fd = error_read

    def _close_readers(self):
        for fd in (self.output_fd, self.error_fd):
            if fd is not None:
                os.close(fd)
        self.output_fd = None
        self.error_fd = None

    def _wait_for_exit(self):
        timeout = self.config.shutdown_timeout
        try:
            returncode = self.process.wait(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            self.process.kill()
            self.process.wait()
            raise SubprocessError(
                f"groonga (pid {self.process.pid}) did not exit within {timeout}s and was killed"
            ) from e

        if returncode != 0:
            logger.warning(f"groonga (pid {self.process.pid}) exited with status {returncode}")
        else:
            logger.info(f"groonga (pid {self.process.pid}) exited")
