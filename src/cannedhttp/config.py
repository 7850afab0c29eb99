"""Listener and request limit settings."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """
    Settings for a canned server.

    Attributes:
        host: Interface to bind. Loopback by default.
        port: TCP port to bind. 0 picks an ephemeral port.
        max_header_bytes: Largest request line + header block accepted.
        max_body_bytes: Largest request body accepted (the body is discarded).
    """
    host: str = "127.0.0.1"
    port: int = 0
    max_header_bytes: int = 64 * 1024
    max_body_bytes: int = 1 * 1024 * 1024

    def __post_init__(self):
        """Validate the settings."""
        if not isinstance(self.host, str):
            raise ValueError(f"host must be a string, got {self.host!r}")
        if not 0 <= self.port <= 65535:
            raise ValueError(f"port out of range: {self.port}")
        if self.max_header_bytes <= 0:
            raise ValueError("max_header_bytes must be positive")
        if self.max_body_bytes < 0:
            raise ValueError("max_body_bytes cannot be negative")
