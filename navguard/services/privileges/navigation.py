"""
Navigation menu derived from a privilege snapshot.
"""
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from navguard.domain.schemas.privileges import ConsolidatedPrivilegeSet

from .slugs import to_slug, to_slug_path


class NavigationItemType(str, Enum):
    DROPDOWN = "dropdown"
    LINK = "link"


class NavigationSubmodule(BaseModel):
    id: Optional[int] = None
    submodule_id: Optional[int] = None
    name: str
    slug: str
    path: str


class NavigationModule(BaseModel):
    name: str
    slug: str
    path: str
    type: NavigationItemType
    submodules: List[NavigationSubmodule] = Field(default_factory=list)


class NavigationTree(BaseModel):
    role_id: Optional[int] = None
    modules: List[NavigationModule] = Field(default_factory=list)


def _href(*names: str) -> str:
    return "/" + "/".join(to_slug_path(names))


def build_navigation_tree(
    privileges: ConsolidatedPrivilegeSet,
    role_id: Optional[int] = None,
) -> NavigationTree:
    """
    Build the menu for a role.

    Only viewable records appear. Modules keep backend order and are
    deduplicated by name; a module with viewable submodules is a dropdown,
    otherwise a plain link. Entry paths use the same slugs the route
    authorizer resolves.
    """
    submodules_by_module: Dict[str, List[NavigationSubmodule]] = {}
    for sub in privileges.submodules:
        if not sub.can_view or not to_slug(sub.submodule_name):
            continue
        submodules_by_module.setdefault(sub.module_name, []).append(
            NavigationSubmodule(
                id=sub.id,
                submodule_id=sub.submodule,
                name=sub.submodule_name,
                slug=to_slug(sub.submodule_name),
                path=_href(sub.module_name, sub.submodule_name),
            )
        )

    modules: List[NavigationModule] = []
    seen = set()
    for module in privileges.modules:
        if not module.can_view or module.module_name in seen or not to_slug(module.module_name):
            continue
        seen.add(module.module_name)

        children = submodules_by_module.get(module.module_name, [])
        modules.append(
            NavigationModule(
                name=module.module_name,
                slug=to_slug(module.module_name),
                path=_href(module.module_name),
                type=NavigationItemType.DROPDOWN if children else NavigationItemType.LINK,
                submodules=children,
            )
        )

    return NavigationTree(role_id=role_id, modules=modules)
