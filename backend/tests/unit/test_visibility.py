from unittest.mock import AsyncMock

import pytest

from socialcore.domain.common import visibility
from socialcore.domain.common.visibility import (
    ACCOUNT,
    BOOSTED_POST,
    COMMENT,
    FOLLOW_EDGE,
    NOTIFICATION,
    POST,
    Predicate,
    alive,
)


def test_account_predicate_is_only_its_own_marker():
    assert alive(ACCOUNT, "u").sql == "u.deleted_at IS NULL"


def test_follow_edge_requires_both_endpoints_alive():
    sql = alive(FOLLOW_EDGE, "fe").sql
    assert "(fe.deleted_at IS NULL)" in sql
    assert "fe_follower_id.id = fe.follower_id AND fe_follower_id.deleted_at IS NULL" in sql
    assert "fe_following_id.id = fe.following_id AND fe_following_id.deleted_at IS NULL" in sql


def test_nullable_reference_accepts_missing_page():
    sql = alive(POST, "p").sql
    assert "p.page_id IS NULL OR EXISTS (SELECT 1 FROM pages p_page_id" in sql
    assert "EXISTS (SELECT 1 FROM users p_author_id WHERE p_author_id.id = p.author_id" in sql


def test_skip_drops_reference_already_joined():
    sql = alive(COMMENT, "c", skip=("post_id",)).sql
    assert "posts" not in sql
    assert "users c_user_id" in sql


def test_boosted_post_checks_one_hop_only():
    sql = alive(BOOSTED_POST, "b").sql
    assert "FROM posts b_post_id" in sql
    assert "users" not in sql


def test_notification_references_are_all_nullable_except_recipient():
    clauses = alive(NOTIFICATION, "n").clauses
    assert clauses[0] == "n.deleted_at IS NULL"
    assert clauses[1].startswith("EXISTS (SELECT 1 FROM users n_user_id")
    assert all(" IS NULL OR EXISTS" in clause for clause in clauses[2:])
    assert len(clauses) == 6


def test_predicates_compose():
    combined = alive(ACCOUNT, "u") & alive(ACCOUNT, "v") & "u.id <> v.id"
    assert isinstance(combined, Predicate)
    assert combined.sql == "(u.deleted_at IS NULL) AND (v.deleted_at IS NULL) AND (u.id <> v.id)"
    assert Predicate().sql == "TRUE"


def test_every_reference_targets_a_registered_entity():
    for spec in visibility.ENTITIES.values():
        for ref in spec.references:
            assert visibility.ENTITIES[ref.target.table] is ref.target


@pytest.mark.parametrize(
    "status,expected",
    [("UPDATE 3", 3), ("UPDATE 0", 0), ("DELETE 1", 1), (None, 0), ("", 0), ("SELECT", 0)],
)
def test_affected_rows(status, expected):
    assert visibility.affected_rows(status) == expected


@pytest.mark.asyncio
async def test_soft_delete_only_touches_alive_rows():
    conn = AsyncMock()
    conn.execute.return_value = "UPDATE 1"
    assert await visibility.soft_delete(conn, POST, "post-1") is True
    sql, row_id = conn.execute.await_args.args
    assert sql == "UPDATE posts SET deleted_at = NOW() WHERE id = $1 AND deleted_at IS NULL"
    assert row_id == "post-1"

    conn.execute.return_value = "UPDATE 0"
    assert await visibility.soft_delete(conn, POST, "post-1") is False

