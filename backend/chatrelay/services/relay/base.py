"""Abstract relay client interface and the shared result/error types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any


@dataclass
class HistoryMessage:
    role: str  # "user" | "ai"
    content: str


@dataclass
class RelayResult:
    response: str
    model: str
    target_url: str


class RelayErrorKind(str, Enum):
    BAD_STATUS = "bad_status"
    NON_JSON = "non_json"
    INVALID_RESPONSE = "invalid_response"
    TIMEOUT = "timeout"
    NETWORK = "network"


_STATUS_CODES = {
    RelayErrorKind.TIMEOUT: 408,
    RelayErrorKind.NETWORK: 503,
}


class RelayError(Exception):
    """A failed upstream call, classified so clients can render tailored guidance."""

    def __init__(
        self,
        kind: RelayErrorKind,
        message: str,
        upstream_status: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.upstream_status = upstream_status
        self.details = details or {}

    @property
    def status_code(self) -> int:
        return _STATUS_CODES.get(self.kind, 502)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"detail": self.message, "kind": self.kind.value}
        if self.upstream_status is not None:
            body["upstream_status"] = self.upstream_status
        return body


@dataclass
class ProbeResult:
    target_url: str
    reachable: bool
    status: int | None = None
    error: str | None = None


class BaseRelayClient(ABC):
    @abstractmethod
    async def generate(self, target_url: str, model: str, prompt: str) -> str:
        """Send one non-streaming generation request and return the response text.

        Raises RelayError for every failure mode.
        """
        ...

    @abstractmethod
    async def probe(self, target_url: str) -> ProbeResult:
        """Check that the relay target answers at all."""
        ...
