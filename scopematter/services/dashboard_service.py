"""
Dashboard service — per-user aggregates over projects, scope items,
requests and change orders.

Read-only. Result cached under ``dashboard:{user_id}`` for 5 minutes and
dropped by every project / scope item / request / change order mutation.

Growth windows (UTC):
    projects, change orders  → since the first day of the current month
    scope items, requests    → since the most recent Sunday 00:00
"Pending requests" are OUT_OF_SCOPE requests, i.e. candidates for a change
order.
"""

import logging

from sqlalchemy import func, select

from scopematter.models import _iso
from scopematter.models.change_order import ChangeOrder, Request
from scopematter.models.project import Project, ScopeItem
from scopematter.services.cache_service import DASHBOARD_TTL, dashboard_key
from scopematter.utils.helpers import as_utc, start_of_month, start_of_week, utcnow

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 5


def _count(session, model, user_id, *criteria) -> int:
    stmt = select(func.count(model.id))
    if model is Project:
        stmt = stmt.where(Project.user_id == user_id)
    else:
        stmt = stmt.join(Project, Project.id == model.project_id).where(Project.user_id == user_id)
    for criterion in criteria:
        stmt = stmt.where(criterion)
    return session.execute(stmt).scalar_one()


def _recent_activity(session, user_id) -> list[dict]:
    limit = RECENT_ACTIVITY_LIMIT
    projects = session.execute(
        select(Project)
        .where(Project.user_id == user_id)
        .order_by(Project.created_at.desc())
        .limit(limit)
    ).scalars()
    requests = session.execute(
        select(Request)
        .join(Project, Project.id == Request.project_id)
        .where(Project.user_id == user_id)
        .order_by(Request.created_at.desc())
        .limit(limit)
    ).scalars()
    change_orders = session.execute(
        select(ChangeOrder)
        .join(Project, Project.id == ChangeOrder.project_id)
        .where(Project.user_id == user_id)
        .order_by(ChangeOrder.updated_at.desc())
        .limit(limit)
    ).scalars()

    activity = []
    for p in projects:
        activity.append({
            "id": p.id,
            "type": "PROJECT_CREATED",
            "message": f"New project created: {p.name}",
            "at": as_utc(p.created_at),
        })
    for r in requests:
        activity.append({
            "id": r.id,
            "type": "REQUEST_SUBMITTED",
            "message": f"Scope request submitted: {r.description}",
            "at": as_utc(r.created_at),
        })
    for c in change_orders:
        activity.append({
            "id": c.id,
            "type": f"CHANGE_ORDER_{c.status}",
            "message": f"Change order {c.status.lower()}",
            "at": as_utc(c.updated_at),
        })

    activity.sort(key=lambda a: a["at"], reverse=True)
    return [
        {"id": a["id"], "type": a["type"], "message": a["message"], "created_at": _iso(a["at"])}
        for a in activity[:limit]
    ]


def compute_dashboard(*, session, user_id, now=None) -> dict:
    """Build the dashboard payload straight from the database."""
    now = now or utcnow()
    month_start = start_of_month(now)
    week_start = start_of_week(now)

    total_projects = _count(session, Project, user_id)
    new_projects = _count(session, Project, user_id, Project.created_at >= month_start)
    completed_projects = _count(session, Project, user_id, Project.status == "COMPLETED")

    total_scope_items = _count(session, ScopeItem, user_id)
    new_scope_items = _count(session, ScopeItem, user_id, ScopeItem.created_at >= week_start)

    total_requests = _count(session, Request, user_id)
    new_requests = _count(session, Request, user_id, Request.created_at >= week_start)
    pending_requests = _count(session, Request, user_id, Request.status == "OUT_OF_SCOPE")

    total_change_orders = _count(session, ChangeOrder, user_id)
    new_change_orders = _count(session, ChangeOrder, user_id, ChangeOrder.created_at >= month_start)
    by_status = dict(
        session.execute(
            select(ChangeOrder.status, func.count(ChangeOrder.id))
            .join(Project, Project.id == ChangeOrder.project_id)
            .where(Project.user_id == user_id)
            .group_by(ChangeOrder.status)
        ).all()
    )
    approved = by_status.get("APPROVED", 0)
    pending = by_status.get("PENDING", 0)
    rejected = by_status.get("REJECTED", 0)

    return {
        "metrics": {
            "projects": {"total": total_projects, "growth": new_projects, "growth_period": "month"},
            "scope_items": {"total": total_scope_items, "growth": new_scope_items, "growth_period": "week"},
            "requests": {
                "total": total_requests,
                "pending": pending_requests,
                "growth": new_requests,
                "growth_period": "week",
            },
            "change_orders": {
                "total": total_change_orders,
                "approved": approved,
                "pending": pending,
                "rejected": rejected,
                "growth": new_change_orders,
                "growth_period": "month",
            },
        },
        "recent_activity": _recent_activity(session, user_id),
        "quick_stats": {
            "projects_completed": {"value": completed_projects, "total": total_projects},
            "pending_requests": {"value": pending_requests, "total": total_requests},
            "change_orders": {
                "total": total_change_orders,
                "breakdown": f"{approved} approved, {pending} pending, {rejected} rejected",
            },
        },
    }


def get_dashboard(*, session, cache, user_id) -> dict:
    """Cached dashboard for *user_id*."""
    return cache.get_or_load(
        dashboard_key(user_id),
        lambda: compute_dashboard(session=session, user_id=user_id),
        DASHBOARD_TTL,
    )
