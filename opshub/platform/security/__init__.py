from opshub.platform.security.context import ASSIGN_CUSTOMERS, ActorUser, GeographyContext, ScopeFilter, ScopeLevel
from opshub.platform.security.errors import (
    AccessDeniedError,
    ConflictError,
    CryptoError,
    DataIntegrityError,
    NotFoundError,
    OpsHubError,
    ValidationError,
)
from opshub.platform.security.roles import CanonicalRole, UnknownRole, is_above, normalize, normalize_user_type, rank

__all__ = [
    "ASSIGN_CUSTOMERS",
    "ActorUser",
    "GeographyContext",
    "ScopeFilter",
    "ScopeLevel",
    "OpsHubError",
    "ValidationError",
    "NotFoundError",
    "DataIntegrityError",
    "ConflictError",
    "CryptoError",
    "AccessDeniedError",
    "CanonicalRole",
    "UnknownRole",
    "normalize",
    "normalize_user_type",
    "rank",
    "is_above",
]
