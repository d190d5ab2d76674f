"""
Ordering — scope resolution and authorization
"""
from __future__ import annotations

import pytest

from backend.ordering.domain import COURSES, LESSONS, TEACHERS, TEXTBOOKS, Scope
from backend.ordering.errors import ItemNotFound, ScopeForbidden, ScopeNotFound
from backend.ordering.policy import REQUIRE_ANY, STRICT
from backend.ordering.repo_memory import InMemoryOrderedItemStore
from backend.ordering.scopes import ScopeResolver

ADMIN = {"sub": "admin-1", "roles": ["admin"]}
TEACHER = {"sub": "teacher-1", "roles": ["teacher"]}
STUDENT = {"sub": "student-1", "roles": ["student"]}


@pytest.fixture
def resolver() -> ScopeResolver:
    store = InMemoryOrderedItemStore()
    store.append(COURSES, "c1", scope_value="teacher-1")
    store.append(COURSES, "c2", scope_value="teacher-2")
    store.append(LESSONS, "l1", scope_value="c1")
    store.append(TEACHERS, "t1")
    return ScopeResolver(store)


def test_owner_kinds_scope_to_the_caller(resolver):
    resolved = resolver.for_list(COURSES, TEACHER)
    assert resolved.scope == Scope(COURSES, "teacher-1")
    assert resolved.policy == REQUIRE_ANY
    assert resolver.for_list(TEXTBOOKS, ADMIN).scope == Scope(TEXTBOOKS, "admin-1")


@pytest.mark.parametrize("user", [None, {}, STUDENT, {"sub": "", "roles": ["teacher"]}, {"sub": "x", "roles": "teacher"}])
def test_owner_kinds_require_a_teacher_or_admin(resolver, user):
    with pytest.raises(ScopeForbidden):
        resolver.for_list(COURSES, user)


def test_lessons_need_admin_and_an_existing_course(resolver):
    resolved = resolver.for_list(LESSONS, ADMIN, "c1")
    assert resolved.scope == Scope(LESSONS, "c1")
    assert resolved.policy == STRICT

    with pytest.raises(ScopeForbidden):
        resolver.for_list(LESSONS, TEACHER, "c1")
    with pytest.raises(ScopeNotFound):
        resolver.for_list(LESSONS, ADMIN, "missing")
    with pytest.raises(ScopeNotFound):
        resolver.for_list(LESSONS, ADMIN, None)


def test_teachers_are_one_global_scope(resolver):
    assert resolver.for_list(TEACHERS, ADMIN).scope == Scope(TEACHERS)
    with pytest.raises(ScopeForbidden):
        resolver.for_list(TEACHERS, TEACHER)


def test_item_scope_for_owner(resolver):
    assert resolver.for_item(COURSES, TEACHER, "c1") == Scope(COURSES, "teacher-1")


def test_foreign_items_look_missing(resolver):
    with pytest.raises(ItemNotFound):
        resolver.for_item(COURSES, TEACHER, "c2")
    with pytest.raises(ItemNotFound):
        resolver.for_item(COURSES, TEACHER, "nope")


def test_admin_item_scope(resolver):
    assert resolver.for_item(LESSONS, ADMIN, "l1") == Scope(LESSONS, "c1")
    assert resolver.for_item(TEACHERS, ADMIN, "t1") == Scope(TEACHERS)
    with pytest.raises(ItemNotFound):
        resolver.for_item(LESSONS, ADMIN, "l9")
    with pytest.raises(ScopeForbidden):
        resolver.for_item(LESSONS, TEACHER, "l1")
