"""Exception taxonomy for provisioning flows.

Conflict and unavailability are not exceptions; they are outcome kinds
resolved inside the provisioning driver.
"""


class BridgeError(Exception):
    """Base class for errors that end a single flow."""


class TransportError(BridgeError):
    def __init__(self, service: str, operation: str, reason: str):
        self.service = service
        self.operation = operation
        self.reason = reason
        super().__init__(f"{service} {operation} transport error: {reason}")


class MalformedResponseError(BridgeError):
    def __init__(self, service: str, operation: str, reason: str):
        self.service = service
        self.operation = operation
        self.reason = reason
        super().__init__(f"{service} {operation} returned a malformed response: {reason}")


class BackendError(BridgeError):
    """The backend answered, but with an error envelope."""

    def __init__(self, service: str, operation: str, status_code: int, reason: str):
        self.service = service
        self.operation = operation
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"{service} {operation} failed with {status_code}: {reason}")


class CredentialExpiredError(BackendError):
    pass


class ResolutionError(BridgeError):
    def __init__(self, match_id: str, reason: str):
        self.match_id = match_id
        self.reason = reason
        super().__init__(f"Could not resolve match {match_id}: {reason}")


class FlowCancelled(BridgeError):
    def __init__(self, flow_key: str = None):
        self.flow_key = flow_key
        super().__init__(f"Flow {flow_key} cancelled" if flow_key else "Flow cancelled")


class MatchAlreadyClaimed(BridgeError):
    """Another flow is provisioning, or recently reported, this match."""

    def __init__(self, match_id: str):
        self.match_id = match_id
        super().__init__(f"Match {match_id} already claimed by another flow")
