class ManifestError(Exception):
    """Base class for manifest building errors."""


class RouteResolutionError(ManifestError, ValueError):
    """Raised when a request path cannot be mapped back to an entity route."""


class EntityNotFoundError(ManifestError, LookupError):
    """Raised when a referenced entity does not exist in the store."""


class TokenIssuerError(ManifestError):
    """Raised when a bearer token cannot be issued for the image server."""


class ConfigurationError(ManifestError, ValueError):
    """Raised for unreadable fixtures or invalid configuration values."""
