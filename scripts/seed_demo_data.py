#!/usr/bin/env python3
"""
Scopematter — demo seed.

One freelancer with one client project: three scope items, an out-of-scope
request and a pending change order priced for it.

Usage:
    python scripts/seed_demo_data.py              # add to the current DB
    python scripts/seed_demo_data.py --reset      # drop_all + create_all first
"""

import argparse
import sys
from decimal import Decimal

sys.path.insert(0, ".")

from scopematter import create_app
from scopematter.models import db
from scopematter.models.auth import AppUser
from scopematter.models.change_order import ChangeOrder, Request
from scopematter.models.project import Client, Project, ScopeItem

DEMO_EXTERNAL_ID = "demo_user_alice"

SCOPE_ITEMS = [
    ("Landing page", "Landing page design"),
    ("Blog", "3-page blog implementation"),
    ("Contact form", "Contact form integration"),
]


def seed_user():
    user = AppUser(
        external_id=DEMO_EXTERNAL_ID,
        email="freelancer@example.com",
        first_name="Alice",
        last_name="Johnson",
        image_url="https://via.placeholder.com/150",
        is_active=True,
    )
    db.session.add(user)
    db.session.flush()
    return user


def seed_project(user):
    project = Project(
        user_id=user.id,
        name="Marketing Website Revamp",
        description="Build a new landing page and blog for Acme Corp",
        status="PENDING",
    )
    db.session.add(project)
    db.session.flush()
    db.session.add(Client(
        project_id=project.id,
        name="Acme Corp",
        email="client@acme.com",
        company="Acme Corporation",
    ))
    return project


def seed_scope_items(project):
    for name, description in SCOPE_ITEMS:
        db.session.add(ScopeItem(
            project_id=project.id, name=name, description=description, status="PENDING",
        ))


def seed_change_order(user, project):
    request = Request(
        project_id=project.id,
        description="Add a dashboard export to CSV",
        status="OUT_OF_SCOPE",
    )
    db.session.add(request)
    db.session.flush()
    db.session.add(ChangeOrder(
        request_id=request.id,
        project_id=project.id,
        user_id=user.id,
        price_usd=Decimal("300.00"),
        extra_days=5,
        status="PENDING",
    ))


def main():
    parser = argparse.ArgumentParser(description="Seed Scopematter demo data")
    parser.add_argument("--reset", action="store_true", help="drop and recreate all tables first")
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        if args.reset:
            print("Resetting database (drop_all + create_all)...")
            db.drop_all()
            db.create_all()

        if db.session.query(AppUser).filter_by(external_id=DEMO_EXTERNAL_ID).first():
            print("Demo user already present; use --reset to reseed.")
            return

        user = seed_user()
        project = seed_project(user)
        seed_scope_items(project)
        seed_change_order(user, project)
        db.session.commit()

        print("Demo data inserted:")
        print("  1 user     freelancer@example.com")
        print("  1 project  Marketing Website Revamp (Acme Corp)")
        print("  3 scope items, 1 OUT_OF_SCOPE request, 1 PENDING change order ($300.00, 5 days)")


if __name__ == "__main__":
    main()
