"""
Tests for the navigation menu builder.
"""
from navguard.domain.schemas.privileges import ConsolidatedPrivilegeSet
from navguard.services.privileges.navigation import NavigationItemType, build_navigation_tree

from tests.fixtures.privileges import ACCOUNTANT_ROLE, accountant_records, privilege_set
from tests.mocks.backend import module_record, submodule_record


def test_viewable_modules_in_backend_order():
    """Test only viewable modules appear, dropdown when they have submodules."""
    tree = build_navigation_tree(privilege_set(**accountant_records()), role_id=ACCOUNTANT_ROLE)

    assert tree.role_id == ACCOUNTANT_ROLE
    assert [m.name for m in tree.modules] == ["File", "Reports"]

    file_menu, reports = tree.modules
    assert file_menu.type is NavigationItemType.DROPDOWN
    assert file_menu.path == "/file"
    assert [s.name for s in file_menu.submodules] == ["Tax"]
    assert file_menu.submodules[0].path == "/file/tax"
    assert file_menu.submodules[0].submodule_id == 11

    assert reports.type is NavigationItemType.LINK
    assert reports.submodules == []


def test_duplicate_module_names_collapse():
    """Test a module name listed twice yields one menu entry."""
    privileges = privilege_set(
        modules=[
            module_record(ACCOUNTANT_ROLE, 1, "Stock", can_view=True),
            module_record(ACCOUNTANT_ROLE, 4, "Stock", can_view=True),
        ],
        submodules=[submodule_record(ACCOUNTANT_ROLE, 31, "Stock", "Low Stock Report", can_view=True)],
    )

    tree = build_navigation_tree(privileges)

    assert len(tree.modules) == 1
    assert tree.modules[0].submodules[0].slug == "low-stock-report"
    assert tree.modules[0].submodules[0].path == "/stock/low-stock-report"


def test_hidden_module_hides_its_submodules():
    """Test submodules of a module without view never surface."""
    privileges = privilege_set(
        modules=[module_record(ACCOUNTANT_ROLE, 3, "Settings", can_view=False)],
        submodules=[submodule_record(ACCOUNTANT_ROLE, 41, "Settings", "Users", can_view=True)],
    )

    assert build_navigation_tree(privileges).modules == []


def test_empty_snapshot():
    assert build_navigation_tree(ConsolidatedPrivilegeSet()).modules == []
