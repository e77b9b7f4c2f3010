"""
Privilege test data: roles, records and tokens.
"""
import time
from typing import Any, Dict, List, Optional

from jose import jwt

from navguard.domain.schemas.privileges import (
    ConsolidatedPrivilegeSet,
    FunctionalityPrivilege,
    ModulePrivilege,
    SubmodulePrivilege,
)

from tests.mocks.backend import (
    FakePrivilegeBackend,
    functionality_record,
    module_record,
    submodule_record,
)

ACCOUNTANT_ROLE = 1
CLERK_ROLE = 2


def make_token(expires_in: int = 3600, **claims: Any) -> str:
    """Test JWT; only the ``exp`` claim is ever read."""
    payload = {"sub": "42", "exp": int(time.time()) + expires_in, **claims}
    return jwt.encode(payload, "test-secret", algorithm="HS256")


async def no_sleep(delay: float) -> None:
    return None


def privilege_set(
    modules: Optional[List[Dict[str, Any]]] = None,
    submodules: Optional[List[Dict[str, Any]]] = None,
    functionalities: Optional[List[Dict[str, Any]]] = None,
) -> ConsolidatedPrivilegeSet:
    """Snapshot built from raw backend records."""
    return ConsolidatedPrivilegeSet(
        modules=tuple(ModulePrivilege.model_validate(r) for r in modules or []),
        submodules=tuple(SubmodulePrivilege.model_validate(r) for r in submodules or []),
        functionalities=tuple(FunctionalityPrivilege.model_validate(r) for r in functionalities or []),
    )


def accountant_records() -> Dict[str, List[Dict[str, Any]]]:
    """Accountant sees File/Tax but not File/Audit."""
    return {
        "modules": [
            module_record(ACCOUNTANT_ROLE, 1, "File", can_view=True),
            module_record(ACCOUNTANT_ROLE, 2, "Reports", can_view=True),
            module_record(ACCOUNTANT_ROLE, 3, "Settings", can_view=False),
        ],
        "submodules": [
            submodule_record(ACCOUNTANT_ROLE, 11, "File", "Tax", can_view=True, can_add=True, can_edit=True),
            submodule_record(ACCOUNTANT_ROLE, 12, "File", "Audit", can_view=False),
        ],
        "functionalities": [
            functionality_record(ACCOUNTANT_ROLE, 21, "File", "Tax", "Export", can_view=True),
        ],
    }


def clerk_records() -> Dict[str, List[Dict[str, Any]]]:
    """Clerk holds the File/Tax record without the view flag."""
    return {
        "modules": [module_record(CLERK_ROLE, 1, "File", can_view=True)],
        "submodules": [submodule_record(CLERK_ROLE, 11, "File", "Tax", can_view=False)],
        "functionalities": [],
    }


def seed_roles(backend: FakePrivilegeBackend) -> None:
    backend.set_role(ACCOUNTANT_ROLE, **accountant_records())
    backend.set_role(CLERK_ROLE, **clerk_records())
