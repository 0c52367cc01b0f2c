"""Soft-delete visibility predicates shared by every read path.

Each soft-deletable table is described once by an :class:`EntitySpec` listing the
columns that point at other soft-deletable tables. :func:`alive` turns a spec and a
query alias into a :class:`Predicate` that keeps a row only when its own
``deleted_at`` marker is unset and every referenced row is alive as well.

Only one hop is checked per call. A query that joins posts to comments composes
``alive(COMMENT, "c") & alive(POST, "p")`` explicitly rather than relying on the
comment predicate to reach the post's author.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable


@dataclass(frozen=True, slots=True)
class Reference:
	column: str
	target: "EntitySpec"
	nullable: bool = False


@dataclass(frozen=True, slots=True)
class EntitySpec:
	table: str
	references: tuple[Reference, ...] = ()
	id_column: str = "id"
	marker: str = "deleted_at"


@dataclass(frozen=True, slots=True)
class Predicate:
	"""Conjunction of SQL boolean clauses."""

	clauses: tuple[str, ...] = ()

	def __and__(self, other: "Predicate | str") -> "Predicate":
		if isinstance(other, str):
			return Predicate(self.clauses + (other,))
		return Predicate(self.clauses + other.clauses)

	@property
	def sql(self) -> str:
		if not self.clauses:
			return "TRUE"
		if len(self.clauses) == 1:
			return self.clauses[0]
		return " AND ".join(f"({clause})" for clause in self.clauses)

	def __str__(self) -> str:
		return self.sql


ACCOUNT = EntitySpec("users")
PAGE = EntitySpec("pages", (Reference("owner_id", ACCOUNT),))
POST = EntitySpec(
	"posts",
	(
		Reference("author_id", ACCOUNT),
		Reference("page_id", PAGE, nullable=True),
	),
)
COMMENT = EntitySpec("comments", (Reference("post_id", POST), Reference("user_id", ACCOUNT)))
REACTION = EntitySpec("reactions", (Reference("post_id", POST), Reference("user_id", ACCOUNT)))
FOLLOW_EDGE = EntitySpec(
	"follows",
	(Reference("follower_id", ACCOUNT), Reference("following_id", ACCOUNT)),
)
FRIENDSHIP = EntitySpec(
	"friendships",
	(Reference("user_a_id", ACCOUNT), Reference("user_b_id", ACCOUNT)),
)
PAGE_FOLLOW = EntitySpec("page_followers", (Reference("user_id", ACCOUNT), Reference("page_id", PAGE)))
PAGE_MEMBERSHIP = EntitySpec("page_members", (Reference("user_id", ACCOUNT), Reference("page_id", PAGE)))
BOOSTED_POST = EntitySpec("boosted_posts", (Reference("post_id", POST),))
NOTIFICATION = EntitySpec(
	"notifications",
	(
		Reference("user_id", ACCOUNT),
		Reference("sender_id", ACCOUNT, nullable=True),
		Reference("post_id", POST, nullable=True),
		Reference("comment_id", COMMENT, nullable=True),
		Reference("page_id", PAGE, nullable=True),
	),
)

ENTITIES: dict[str, EntitySpec] = {
	spec.table: spec
	for spec in (
		ACCOUNT,
		PAGE,
		POST,
		COMMENT,
		REACTION,
		FOLLOW_EDGE,
		FRIENDSHIP,
		PAGE_FOLLOW,
		PAGE_MEMBERSHIP,
		BOOSTED_POST,
		NOTIFICATION,
	)
}


def _reference_clause(alias: str, ref: Reference) -> str:
	target = ref.target
	ref_alias = f"{alias}_{ref.column}"
	exists = (
		f"EXISTS (SELECT 1 FROM {target.table} {ref_alias}"
		f" WHERE {ref_alias}.{target.id_column} = {alias}.{ref.column}"
		f" AND {ref_alias}.{target.marker} IS NULL)"
	)
	if ref.nullable:
		return f"{alias}.{ref.column} IS NULL OR {exists}"
	return exists


def alive(spec: EntitySpec, alias: str, *, skip: Iterable[str] = ()) -> Predicate:
	"""Return the predicate keeping alive rows of ``spec`` referenced as ``alias``.

	``skip`` names reference columns the caller already constrains through an
	explicit join on an alive row, so the redundant EXISTS can be left out.
	"""
	skipped = set(skip)
	clauses = [f"{alias}.{spec.marker} IS NULL"]
	for ref in spec.references:
		if ref.column in skipped:
			continue
		clauses.append(_reference_clause(alias, ref))
	return Predicate(tuple(clauses))


def affected_rows(status: str | None) -> int:
	"""Row count from an asyncpg command status such as ``UPDATE 3``."""
	parts = (status or "").split()
	try:
		return int(parts[-1])
	except (IndexError, ValueError):
		return 0


async def soft_delete(conn: Any, spec: EntitySpec, row_id: Any) -> bool:
	"""Set the soft-delete marker if it is not already set.

	Table and column names come from the module-level specs, never from callers.
	"""
	status = await conn.execute(
		f"UPDATE {spec.table} SET {spec.marker} = NOW()"
		f" WHERE {spec.id_column} = $1 AND {spec.marker} IS NULL",
		row_id,
	)
	return affected_rows(status) > 0


__all__ = [
	"Reference",
	"EntitySpec",
	"Predicate",
	"alive",
	"soft_delete",
	"affected_rows",
	"ENTITIES",
	"ACCOUNT",
	"PAGE",
	"POST",
	"COMMENT",
	"REACTION",
	"FOLLOW_EDGE",
	"FRIENDSHIP",
	"PAGE_FOLLOW",
	"PAGE_MEMBERSHIP",
	"BOOSTED_POST",
	"NOTIFICATION",
]
