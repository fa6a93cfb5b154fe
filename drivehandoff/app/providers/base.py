from abc import ABC, abstractmethod
from typing import Any, Dict, List

from ..models.contracts import PermissionRecord

DEFAULT_FIELDS = "nextPageToken,permissions(id,type,emailAddress,role,pendingOwner)"


class PermissionStore(ABC):
    """Remote permission list of a file.

    Implementations must give read-after-write consistency between
    create_permission and list_permissions.
    """

    @abstractmethod
    async def list_permissions(self, file_id: str, token: str, fields: str = DEFAULT_FIELDS) -> List[PermissionRecord]:
        pass

    @abstractmethod
    async def create_permission(self, file_id: str, token: str, body: Dict[str, Any]) -> PermissionRecord:
        pass

    @abstractmethod
    async def update_permission(
        self,
        file_id: str,
        permission_id: str,
        token: str,
        body: Dict[str, Any],
        transfer_ownership: bool = False,
        supports_all_drives: bool = True,
    ) -> PermissionRecord:
        pass

    @abstractmethod
    async def delete_permission(self, file_id: str, permission_id: str, token: str, supports_all_drives: bool = True) -> None:
        pass
