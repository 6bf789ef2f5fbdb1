from abc import ABC, abstractmethod


class LoggingPort(ABC):
    """Log sink used by the poller core and settings.

    Messages use %-style args; the current job name is attached by the
    configured handlers, not by callers.
    """

    @abstractmethod
    def set_level(self, log_level: int | str) -> None:
        pass

    @abstractmethod
    def info(self, msg: str, *args):
        pass

    @abstractmethod
    def warning(self, msg: str, *args):
        pass

    @abstractmethod
    def error(self, msg: str, *args):
        pass

    @abstractmethod
    def debug(self, msg: str, *args):
        pass
