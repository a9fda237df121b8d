import os
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app import create_app
from app.extensions import db
from app.models.competency import Competency
from app.models.module import Module
from app.models.organization import Organization
from app.models.qualifier import Qualifier, QualifierOption
from app.services.accounts import create_account
from app.utils.rate_limit import reset_rate_limits

PASSWORD = "motdepasse-123"


@pytest.fixture
def app(tmp_path):
    app = create_app("config.TestConfig")
    app.config["LOCAL_STORAGE_DIR"] = str(tmp_path / "storage")
    with app.app_context():
        db.create_all()
    reset_rate_limits()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def org_id(app):
    with app.app_context():
        org = Organization(name="Audition Plus")
        db.session.add(org)
        db.session.commit()
        return org.id


@pytest.fixture
def make_user(app, org_id):
    """Create an account and return its profile id."""
    def _make(email, role="worker", first_name="Test", last_name="User", manager_id=None, org=None):
        with app.app_context():
            profile = create_account(org or org_id, email, first_name, last_name, role=role,
                                     password=PASSWORD, manager_id=manager_id)
            db.session.commit()
            return profile.id
    return _make


@pytest.fixture
def login():
    def _login(client, email, password=PASSWORD):
        return client.post("/auth/login", data={"email": email, "password": password})
    return _login


@pytest.fixture
def taxonomy(app, org_id):
    """One module with two competencies, a single and a multiple choice qualifier.

    Per competency the best score is 3 (level) + 2 (contexts) = 5.
    """
    with app.app_context():
        module = Module(org_id=org_id, code="M1", name="Accueil", sort_order=1)
        other = Module(org_id=org_id, code="M2", name="Technique", sort_order=2)
        db.session.add_all([module, other])
        db.session.flush()
        c1 = Competency(org_id=org_id, module_id=module.id, name="Accueillir le patient", sort_order=1)
        c2 = Competency(org_id=org_id, module_id=module.id, name="Présenter l'offre", sort_order=2)
        c3 = Competency(org_id=org_id, module_id=other.id, name="Régler un appareil", sort_order=1)
        level = Qualifier(org_id=org_id, name="Maîtrise", qualifier_type="single_choice", sort_order=1)
        contexts = Qualifier(org_id=org_id, name="Contextes", qualifier_type="multiple_choice", sort_order=2)
        db.session.add_all([c1, c2, c3, level, contexts])
        db.session.flush()
        levels = [QualifierOption(qualifier_id=level.id, label=label, value=value, sort_order=value)
                  for label, value in (("Non acquis", 0), ("En cours", 1), ("Acquis", 2), ("Expert", 3))]
        ctx = [QualifierOption(qualifier_id=contexts.id, label=label, value=value, sort_order=i)
               for i, (label, value) in enumerate((("Cabine", 1), ("Domicile", 1), ("Aucun", 0)))]
        db.session.add_all(levels + ctx)
        db.session.commit()
        return {
            "module": module.id,
            "other_module": other.id,
            "c1": c1.id,
            "c2": c2.id,
            "c3": c3.id,
            "level": level.id,
            "contexts": contexts.id,
            "levels": [o.id for o in levels],
            "ctx": [o.id for o in ctx],
        }
