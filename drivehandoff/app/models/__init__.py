from .contracts import (
    PermissionGrant,
    PermissionRecord,
    PermissionRole,
    PrincipalType,
    TransferOptions,
    TransferPreview,
)

__all__ = [
    "PermissionGrant",
    "PermissionRecord",
    "PermissionRole",
    "PrincipalType",
    "TransferOptions",
    "TransferPreview",
]
