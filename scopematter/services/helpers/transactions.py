"""
Transaction helper.

Every mutating service operation runs its reads and writes inside one
``atomic(session)`` block: commit on success, rollback and re-raise on any
exception. Cache invalidation belongs AFTER the block, never inside it.

Usage:
    with atomic(session):
        project = assert_project_ownership(session, project_id, user_id)
        session.add(ScopeItem(...))
    cache.invalidate_project(project_id, user_id)
"""

from contextlib import contextmanager


@contextmanager
def atomic(session):
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
