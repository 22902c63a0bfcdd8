# pinger/errors.py


class PingerError(Exception):
    """Base class for errors raised by the pinger."""


class SocketSetupError(PingerError, RuntimeError):
    """A socket could not be created or configured; no run is attempted."""


class InvalidArgumentError(PingerError, ValueError):
    """Run parameters were rejected before any socket I/O."""
