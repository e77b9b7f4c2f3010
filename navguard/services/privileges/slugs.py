"""
Slug normalization and the per-snapshot slug index.

URL path segments name hierarchy nodes by slug rather than by id, so every
privilege record is indexed under the slugs of its module, submodule and
functionality names at the record's own depth.
"""
import re
from typing import Dict, List, Optional, Sequence, Tuple, Union

import structlog

from navguard.core.exceptions import AmbiguousSlugError
from navguard.domain.schemas.privileges import (
    ConsolidatedPrivilegeSet,
    FunctionalityPrivilege,
    HierarchyLevel,
    ModulePrivilege,
    SubmodulePrivilege,
)

logger = structlog.get_logger(__name__)

SlugPath = Tuple[str, ...]
IndexedRecord = Union[ModulePrivilege, SubmodulePrivilege, FunctionalityPrivilege]

_WHITESPACE = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^\w-]+", re.ASCII)


def to_slug(name: Optional[str]) -> str:
    """
    Normalize a display name into a path segment.

    Lowercases, turns whitespace runs into hyphens and drops every character
    that is not an ASCII word character or a hyphen. Idempotent.

    >>> to_slug(" Full Body Checkup ")
    'full-body-checkup'
    """
    if not name:
        return ""
    slug = _WHITESPACE.sub("-", name.strip().lower())
    slug = _NON_WORD.sub("", slug)
    return slug.strip("-")


def to_slug_path(names: Sequence[str]) -> SlugPath:
    return tuple(to_slug(name) for name in names)


def join_slug_path(path: Sequence[str]) -> str:
    return "/".join(path)


class SlugIndex:
    """
    Lookup table from ``(level, slug path)`` to privilege record.

    Built once per privilege snapshot. When two records at the same level
    normalize to the same slug path the first one in backend order is kept;
    the others are recorded as ``AmbiguousSlugError`` entries for audit.
    """

    def __init__(
        self,
        buckets: Dict[HierarchyLevel, Dict[SlugPath, IndexedRecord]],
        collisions: Sequence[AmbiguousSlugError] = (),
        skipped: int = 0,
    ):
        self._buckets = buckets
        self._collisions = tuple(collisions)
        self._skipped = skipped

    @classmethod
    def build(cls, privileges: ConsolidatedPrivilegeSet) -> "SlugIndex":
        """Index every record of the snapshot at its own depth."""
        buckets: Dict[HierarchyLevel, Dict[SlugPath, IndexedRecord]] = {
            level: {} for level in HierarchyLevel
        }
        collisions: List[AmbiguousSlugError] = []
        skipped = 0

        for record in privileges.records():
            path = to_slug_path(record.names)
            if not all(path):
                skipped += 1
                logger.warning(
                    "privilege_record_unroutable",
                    level=record.level.value,
                    names=list(record.names),
                    record_id=record.id,
                )
                continue

            bucket = buckets[record.level]
            kept = bucket.get(path)
            if kept is None:
                bucket[path] = record
                continue

            collision = AmbiguousSlugError(
                level=record.level.value,
                slug_path=path,
                kept_name=" / ".join(kept.names),
                dropped_name=" / ".join(record.names),
                kept_id=kept.id,
                dropped_id=record.id,
            )
            collisions.append(collision)
            logger.warning("slug_collision", **collision.details)

        index = cls(buckets, collisions, skipped)
        logger.debug(
            "slug_index_built",
            modules=len(buckets[HierarchyLevel.MODULE]),
            submodules=len(buckets[HierarchyLevel.SUBMODULE]),
            functionalities=len(buckets[HierarchyLevel.FUNCTIONALITY]),
            collisions=len(collisions),
            skipped=skipped,
        )
        return index

    def lookup(self, level: HierarchyLevel, path: Sequence[str]) -> Optional[IndexedRecord]:
        """Find the record at exactly ``level``; other levels are never consulted."""
        if len(path) != level.depth:
            return None
        return self._buckets[level].get(to_slug_path(path))

    def paths(self, level: HierarchyLevel) -> List[SlugPath]:
        return list(self._buckets[level])

    @property
    def collisions(self) -> Tuple[AmbiguousSlugError, ...]:
        return self._collisions

    @property
    def skipped(self) -> int:
        return self._skipped

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._buckets.values())

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, tuple):
            return False
        level = HierarchyLevel.from_depth(len(path))
        return level is not None and self.lookup(level, path) is not None
