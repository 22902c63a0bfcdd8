from dataclasses import dataclass
from typing import Optional

from pinger.errors import InvalidArgumentError

MAX_SEQUENCE = 0xFFFF

@dataclass
class Settings:
    timeout_ms: int = 1000
    count: int = 1
    delay_ms: int = 0

    # None -> a fresh random identifier for every run
    identifier: Optional[int] = None

    payload_size: int = 20            # zero bytes after the 8-byte ICMP header
    poll_interval_ms: int = 100       # longest single wait, so cancel() is noticed
    recv_buffer: int = 1024

    def validate(self) -> None:
        if self.timeout_ms <= 0:
            raise InvalidArgumentError(f"timeout should be positive and non null: {self.timeout_ms}")
        if self.count < 0 or self.count > MAX_SEQUENCE + 1:
            raise InvalidArgumentError(f"count must be in [0, {MAX_SEQUENCE + 1}]: {self.count}")
        if self.delay_ms < 0:
            raise InvalidArgumentError(f"delay must not be negative: {self.delay_ms}")
        if self.identifier is not None and not 0 <= self.identifier <= 0xFFFF:
            raise InvalidArgumentError(f"identifier must fit in 16 bits: {self.identifier}")
        if self.payload_size < 0:
            raise InvalidArgumentError(f"payload size must not be negative: {self.payload_size}")
        if self.poll_interval_ms <= 0:
            raise InvalidArgumentError(f"poll interval must be positive: {self.poll_interval_ms}")
