"""
Privilege hierarchy schemas.

Module, Submodule and Functionality nodes, the per-level privilege records
and the consolidated per-role snapshot returned by the privilege backend.
"""
from __future__ import annotations

from enum import Enum
from typing import Annotated, Dict, Generic, Iterator, List, Literal, Optional, Tuple, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field


class HierarchyLevel(str, Enum):
    """Levels of the navigable hierarchy."""
    MODULE = "module"
    SUBMODULE = "submodule"
    FUNCTIONALITY = "functionality"

    @property
    def depth(self) -> int:
        return _DEPTHS[self]

    @classmethod
    def from_depth(cls, depth: int) -> Optional["HierarchyLevel"]:
        """Level addressed by a path with ``depth`` segments, if any."""
        for level, level_depth in _DEPTHS.items():
            if level_depth == depth:
                return level
        return None


_DEPTHS = {
    HierarchyLevel.MODULE: 1,
    HierarchyLevel.SUBMODULE: 2,
    HierarchyLevel.FUNCTIONALITY: 3,
}


class PrivilegeAction(str, Enum):
    """Capability flags carried by every privilege record."""
    VIEW = "view"
    ADD = "add"
    EDIT = "edit"
    DELETE = "delete"


# Hierarchy nodes

class HierarchyNodeBase(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: int
    name: str
    is_active: bool = True


class ModuleNode(HierarchyNodeBase):
    level: Literal[HierarchyLevel.MODULE] = HierarchyLevel.MODULE
    parent_id: None = None


class SubmoduleNode(HierarchyNodeBase):
    level: Literal[HierarchyLevel.SUBMODULE] = HierarchyLevel.SUBMODULE
    parent_id: Optional[int] = Field(default=None, description="Owning module id")


class FunctionalityNode(HierarchyNodeBase):
    level: Literal[HierarchyLevel.FUNCTIONALITY] = HierarchyLevel.FUNCTIONALITY
    parent_id: Optional[int] = Field(default=None, description="Owning submodule id")


HierarchyNode = Annotated[
    Union[ModuleNode, SubmoduleNode, FunctionalityNode],
    Field(discriminator="level"),
]


# Privilege records

class PrivilegeFlags(BaseModel):
    """The four capability flags."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    can_view: bool = False
    can_add: bool = False
    can_edit: bool = False
    can_delete: bool = False

    def allows(self, action: PrivilegeAction) -> bool:
        return bool(getattr(self, f"can_{PrivilegeAction(action).value}"))

    def capabilities(self) -> Dict[str, bool]:
        return {
            "can_view": self.can_view,
            "can_add": self.can_add,
            "can_edit": self.can_edit,
            "can_delete": self.can_delete,
        }


class PrivilegeRecordBase(PrivilegeFlags):
    id: Optional[int] = None
    role: Optional[int] = None
    role_name: Optional[str] = None

    @property
    def names(self) -> Tuple[str, ...]:
        """Display names from the module down to this record's own level."""
        raise NotImplementedError

    @property
    def display_name(self) -> str:
        return self.names[-1]


class ModulePrivilege(PrivilegeRecordBase):
    level: Literal[HierarchyLevel.MODULE] = HierarchyLevel.MODULE
    module: Optional[int] = None
    module_name: str = ""

    @property
    def names(self) -> Tuple[str, ...]:
        return (self.module_name,)


class SubmodulePrivilege(PrivilegeRecordBase):
    level: Literal[HierarchyLevel.SUBMODULE] = HierarchyLevel.SUBMODULE
    submodule: Optional[int] = None
    module_name: str = ""
    submodule_name: str = ""

    @property
    def names(self) -> Tuple[str, ...]:
        return (self.module_name, self.submodule_name)


class FunctionalityPrivilege(PrivilegeRecordBase):
    level: Literal[HierarchyLevel.FUNCTIONALITY] = HierarchyLevel.FUNCTIONALITY
    functionality: Optional[int] = None
    module_name: str = ""
    submodule_name: str = ""
    functionality_name: str = ""

    @property
    def names(self) -> Tuple[str, ...]:
        return (self.module_name, self.submodule_name, self.functionality_name)


PrivilegeRecord = Annotated[
    Union[ModulePrivilege, SubmodulePrivilege, FunctionalityPrivilege],
    Field(discriminator="level"),
]


# Backend pages and the consolidated snapshot

RecordT = TypeVar("RecordT")


class PaginatedResult(BaseModel, Generic[RecordT]):
    """One page of one collection, as returned by the backend."""
    model_config = ConfigDict(extra="ignore")

    count: int = 0
    total_pages: int = 1
    current_page: int = 1
    page_size: Optional[int] = None
    next: Optional[str] = None
    previous: Optional[str] = None
    results: List[RecordT] = Field(default_factory=list)


class RolePrivilegesPage(BaseModel):
    """One page of ``GET /Privilege/role/privileges/{role_id}/``."""
    model_config = ConfigDict(extra="ignore")

    modules: PaginatedResult[ModulePrivilege] = Field(default_factory=PaginatedResult[ModulePrivilege])
    submodules: PaginatedResult[SubmodulePrivilege] = Field(default_factory=PaginatedResult[SubmodulePrivilege])
    functionalities: PaginatedResult[FunctionalityPrivilege] = Field(
        default_factory=PaginatedResult[FunctionalityPrivilege]
    )

    @property
    def max_total_pages(self) -> int:
        return max(
            self.modules.total_pages or 1,
            self.submodules.total_pages or 1,
            self.functionalities.total_pages or 1,
        )


class ConsolidatedPrivilegeSet(BaseModel):
    """Complete, immutable privilege snapshot for one role."""
    model_config = ConfigDict(frozen=True)

    modules: Tuple[ModulePrivilege, ...] = ()
    submodules: Tuple[SubmodulePrivilege, ...] = ()
    functionalities: Tuple[FunctionalityPrivilege, ...] = ()

    @classmethod
    def merge(cls, pages: List[RolePrivilegesPage]) -> "ConsolidatedPrivilegeSet":
        """Concatenate every page of the three collections in page order."""
        return cls(
            modules=tuple(r for page in pages for r in page.modules.results),
            submodules=tuple(r for page in pages for r in page.submodules.results),
            functionalities=tuple(r for page in pages for r in page.functionalities.results),
        )

    def records(self) -> Iterator[Union[ModulePrivilege, SubmodulePrivilege, FunctionalityPrivilege]]:
        """All records, modules first, in backend order."""
        yield from self.modules
        yield from self.submodules
        yield from self.functionalities

    @property
    def total(self) -> int:
        return len(self.modules) + len(self.submodules) + len(self.functionalities)


# Direct access by id

class DirectAccessSchema(BaseModel):
    """Combined schema returned for a single submodule or functionality.

    Only ``role_privileges`` is interpreted here; the rest of the page
    configuration is passed through to the renderer untouched.
    """
    model_config = ConfigDict(extra="allow")

    role_privileges: List[PrivilegeFlags] = Field(default_factory=list)

    @property
    def privilege(self) -> Optional[PrivilegeFlags]:
        return self.role_privileges[0] if self.role_privileges else None


# Privilege updates

class ModulePrivilegeUpdate(PrivilegeFlags):
    role: int
    module: int


class SubmodulePrivilegeUpdate(PrivilegeFlags):
    role: int
    submodule: int


class FunctionalityPrivilegeUpdate(PrivilegeFlags):
    role: int
    functionality: int


PrivilegeUpdate = Union[ModulePrivilegeUpdate, SubmodulePrivilegeUpdate, FunctionalityPrivilegeUpdate]
