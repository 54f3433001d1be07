class BillingError(Exception):
    """Base class for billing and suspension domain errors."""

    code = "billing_error"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationGapError(BillingError):
    """A subscriber has a router account but no resolvable router."""

    code = "configuration_gap"


class RemoteGatewayError(BillingError):
    code = "router_gateway_error"


class CapacityExceededError(BillingError):
    """ODP has no free slots."""

    code = "odp_capacity_exceeded"


class PersistenceError(BillingError):
    code = "persistence_error"


class SubscriberNotFoundError(BillingError):
    code = "subscriber_not_found"
