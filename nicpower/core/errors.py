"""Domain-specific errors for nicpower."""


class NicpowerError(Exception):
    """Base error for nicpower."""


class CatalogValidationError(NicpowerError):
    """Raised when a feature catalog file does not conform to schema or semantics."""


class CatalogLoadError(NicpowerError):
    """Raised when reading feature catalog sources fails."""


class EnumerationError(NicpowerError):
    """Raised when the adapter enumeration backend itself is unavailable."""


class AdapterNotFoundError(NicpowerError):
    """Raised when an adapter identifier cannot be resolved."""


class ProviderError(NicpowerError):
    """Base error for power-management and advanced-property queries."""


class PowerShellError(ProviderError):
    """Raised when a PowerShell query fails, times out, or returns bad JSON."""
