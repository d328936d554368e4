"""
Pytest configuration and fixtures.
"""
import pytest

from app import create_app
from config import TestConfig
from extensions import db as _db
from models import Profile, Role


@pytest.fixture
def app():
    """Application bound to a fresh in-memory SQLite database."""
    app = create_app(TestConfig)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def make_admin(db):
    def _make_admin(name="Admin", phone="+910000000000"):
        admin = Profile(name=name, phone=phone, role=Role.ADMIN.value, status="active")
        admin.set_password("admin-pass")
        db.session.add(admin)
        db.session.commit()
        return admin
    return _make_admin


@pytest.fixture
def make_promoter(db):
    counter = {"n": 0}

    def _make_promoter(name=None, parent=None, pins=5):
        counter["n"] += 1
        promoter = Profile(
            name=name or f"Promoter {counter['n']}",
            phone=f"+91900000{counter['n']:04d}",
            role=Role.PROMOTER.value,
            status="active",
            promoter_id=f"BPVP{counter['n']:02d}",
            parent_promoter_id=parent.id if parent else None,
            pins=pins,
        )
        promoter.set_password("promoter-pass")
        db.session.add(promoter)
        db.session.commit()
        return promoter
    return _make_promoter


@pytest.fixture
def make_customer(db):
    """Bare customer row: no schedule, no commission."""
    counter = {"n": 0}

    def _make_customer(parent=None, customer_id=None):
        counter["n"] += 1
        customer = Profile(
            name=f"Customer {counter['n']}",
            phone=f"+91800000{counter['n']:04d}",
            role=Role.CUSTOMER.value,
            status="active",
            customer_id=customer_id or f"CUST{counter['n']:03d}",
            parent_promoter_id=parent.id if parent else None,
        )
        db.session.add(customer)
        db.session.commit()
        return customer
    return _make_customer


@pytest.fixture
def chain(make_admin, make_promoter):
    """admin <- p1 <- p2 <- p3 <- p4 <- p5 (p5 is the deepest promoter)."""
    admin = make_admin()
    p1 = make_promoter("Top", parent=admin)
    p2 = make_promoter("Second", parent=p1)
    p3 = make_promoter("Third", parent=p2)
    p4 = make_promoter("Fourth", parent=p3)
    p5 = make_promoter("Fifth", parent=p4)
    return {"admin": admin, "p1": p1, "p2": p2, "p3": p3, "p4": p4, "p5": p5}


@pytest.fixture
def concurrent_update(db):
    """Write a profile row without touching objects already loaded in the session."""
    from sqlalchemy import update

    def _concurrent_update(profile, **values):
        db.session.execute(
            update(Profile).where(Profile.id == profile.id).values(**values)
            .execution_options(synchronize_session=False)
        )
    return _concurrent_update
