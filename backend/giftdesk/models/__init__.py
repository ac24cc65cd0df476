from .directory import AllowedUser
from .gifts import ClientRow, CatalogItemRow
from .auth import OtpCode, SessionToken

__all__ = [
    'AllowedUser',
    'ClientRow', 'CatalogItemRow',
    'OtpCode', 'SessionToken',
]
