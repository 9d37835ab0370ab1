from typing import Dict, List, Optional, Protocol
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)


class DirectoryService(Protocol):
    async def get_email_addresses_for_group(self, group_name: str) -> List[str]:
        ...


class StaticDirectoryService:
    """Group membership from configuration (DIRECTORY_GROUP_MEMBERS).

    Stands in for a real directory lookup; group names match case-insensitively.
    """

    def __init__(self, groups: Optional[Dict[str, List[str]]] = None):
        source = settings.DIRECTORY_GROUP_MEMBERS if groups is None else groups
        self.groups = {name.lower(): list(members) for name, members in source.items()}

    async def get_email_addresses_for_group(self, group_name: str) -> List[str]:
        members = self.groups.get(group_name.lower())
        if members is None:
            logger.warning("Directory group %s not found", group_name)
            return []
        return [m.strip() for m in members if m and m.strip()]
