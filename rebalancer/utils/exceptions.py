"""Custom exceptions for the rebalancer.

This module defines the exception hierarchy for the application.
"""


class RebalancerError(Exception):
    """Base exception for all rebalancer errors.

    All custom exceptions in the application should inherit from this class.
    """

    pass


class ConfigurationError(RebalancerError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Drift threshold is zero or negative
        - Unknown venue selected
        - Target allocations do not sum to 100%
    """

    pass


class DataError(RebalancerError):
    """Base exception for data layer errors.

    Parent class for all data-related exceptions.
    """

    pass


class StorageError(DataError):
    """Raised when trade-log database operations fail.

    Examples:
        - Database connection failed
        - SQL statement failed
    """

    pass


class ExecutionError(RebalancerError):
    """Base exception for trade execution errors.

    Parent class for all venue-related exceptions.
    """

    pass


class BrokerConnectionError(ExecutionError):
    """Raised when the trading venue cannot be reached.

    Examples:
        - Network connection failed
        - Venue endpoint returned a non-JSON response
    """

    pass


class OrderRejectedError(ExecutionError):
    """Raised when the venue answers but refuses the order.

    Examples:
        - Invalid signature
        - Insufficient margin
    """

    pass
