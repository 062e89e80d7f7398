from abc import ABC, abstractmethod

from .command import Command


class BaseClient(ABC):

    def __init__(self):
        self.name = self.__class__.__name__

    @abstractmethod
    def start(self):
        """Acquire whatever the client needs before the first command."""
        pass

    @abstractmethod
    def shutdown(self):
        """Release everything acquired by start()."""
        pass

    @abstractmethod
    def execute(self, name, arguments=None):
        """Send one command and return a Response."""
        pass

    def build_command(self, name, arguments=None) -> Command:
        return Command(name, arguments or {})
