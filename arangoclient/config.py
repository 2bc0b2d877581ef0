"""
Client configuration.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .exceptions import ValidationError


@dataclass
class ClientConfig:
    """
    Configuration consumed by the connection layer.

    Args:
        hosts: Ordered endpoint URLs (default: ['http://localhost:8529'])
        database: Database name (default: '_system')
        username: Basic auth username
        password: Basic auth password
        timeout: Default per-request timeout in seconds (default: 30)
        max_retries: Maximum number of endpoints tried per request (default:
                     all configured endpoints)
        allow_dirty_read: Default read-consistency preference (default: False)
        max_connections: Maximum number of pooled connections per host
        headers: Extra headers sent with every request
    """

    hosts: List[str] = field(default_factory=lambda: ["http://localhost:8529"])
    database: str = "_system"
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: float = 30.0
    max_retries: Optional[int] = None
    allow_dirty_read: bool = False
    max_connections: int = 10
    headers: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.hosts, str):
            self.hosts = [self.hosts]
        if not self.hosts:
            raise ValidationError("At least one host must be configured")
        if self.timeout is None or self.timeout <= 0:
            raise ValidationError("timeout must be positive")
        if self.max_retries is not None and self.max_retries < 1:
            raise ValidationError("max_retries must be at least 1")
        if not self.database:
            raise ValidationError("database name must not be empty")
