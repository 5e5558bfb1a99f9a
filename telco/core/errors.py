"""
Network error taxonomy
----------------------
Every failure raised by the terminal state machine or the network registry is
a NetworkError. All of them are raised before any mutation happens, so a
caller can catch, report and carry on with the network unchanged.

`code` is stable and is what the HTTP layer returns to clients; the
target-unavailable family keeps one code per refusal reason so callers can
tell "target off" from "target busy" from "target silent".
"""
from __future__ import annotations

from typing import Optional


class NetworkError(Exception):
    code = "network_error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.code
        super().__init__(self.detail)


class InvalidArgumentError(NetworkError):
    code = "invalid_argument"


class InvalidStateError(NetworkError):
    code = "invalid_state"


class UnsupportedCommunicationError(NetworkError):
    """A terminal type cannot take part in the requested kind (e.g. BASIC + VIDEO)."""

    code = "unsupported_communication"

    def __init__(self, key: str, kind: str, at: str):
        self.key = key
        self.kind = kind
        self.at = at
        super().__init__(f"terminal {key} does not support {kind} at {at}")


class DuplicateKeyError(NetworkError):
    code = "duplicate_key"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"{self.code}: {key}")


class DuplicateClientKeyError(DuplicateKeyError):
    code = "duplicate_client_key"


class DuplicateTerminalKeyError(DuplicateKeyError):
    code = "duplicate_terminal_key"


class UnknownKeyError(NetworkError):
    code = "unknown_key"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"{self.code}: {key}")


class UnknownClientKeyError(UnknownKeyError):
    code = "unknown_client_key"


class UnknownTerminalKeyError(UnknownKeyError):
    code = "unknown_terminal_key"


class TargetUnavailableError(NetworkError):
    code = "target_unavailable"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"{self.code}: {key}")


class TargetOffError(TargetUnavailableError):
    code = "target_off"


class TargetBusyError(TargetUnavailableError):
    code = "target_busy"


class TargetSilentError(TargetUnavailableError):
    code = "target_silent"
