import os

os.environ.setdefault("DB_BACKEND", "sqlite")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from core.db import DB
from core.models import (
    AppModel,
    Base,
    BuildModel,
    DropletModel,
    DropletState,
    Organization,
    PackageModel,
    ProcessModel,
    ServiceBinding,
    Space,
    User,
)

SPACE_ROLE_COLLECTIONS = {
    "developer": "developers",
    "manager": "managers",
    "auditor": "auditors",
}


@pytest.fixture
def server_db(tmp_path, monkeypatch):
    import core.config as config

    db_path = tmp_path / "appcontrol.sqlite"
    monkeypatch.setattr(config, "DATABASE_URL", f"sqlite:///{db_path}")
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    previous_engine = DB.engine
    previous_session = DB.SessionLocal
    DB.engine = engine
    DB.SessionLocal = sessionmaker(bind=engine)
    try:
        yield engine
    finally:
        DB.engine = previous_engine
        DB.SessionLocal = previous_session
        engine.dispose()


@pytest.fixture
def db_session(server_db):
    session = DB.SessionLocal()
    try:
        yield session
    finally:
        session.close()


class Factory:
    """Inserts rows directly, bypassing the application services."""

    def __init__(self, db):
        self.db = db
        self._counter = 0

    def _next(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter}"

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        return obj

    def organization(self, name=None):
        return self._save(Organization(name=name or self._next("org")))

    def space(self, organization=None, name=None):
        organization = organization or self.organization()
        return self._save(Space(name=name or self._next("space"), organization_guid=organization.guid))

    def user(self, username=None):
        return self._save(User(username=username or self._next("user")))

    def app(self, space=None, name=None, **kwargs):
        space = space or self.space()
        kwargs.setdefault("enable_ssh", False)
        return self._save(AppModel(name=name or self._next("app"), space_guid=space.guid, **kwargs))

    def process(self, app, type="web"):
        return self._save(ProcessModel(app_guid=app.guid, type=type))

    def package(self, app):
        return self._save(PackageModel(app_guid=app.guid))

    def droplet(self, app, state=DropletState.STAGED.value, package=None):
        return self._save(
            DropletModel(app_guid=app.guid, state=state, package_guid=package.guid if package else None)
        )

    def build(self, app, state="STAGING"):
        return self._save(BuildModel(app_guid=app.guid, state=state))

    def binding(self, app, credentials):
        return self._save(ServiceBinding(app_guid=app.guid, credentials=credentials))

    def grant_space_role(self, role, space, user):
        getattr(space, SPACE_ROLE_COLLECTIONS[role]).append(user)
        self.db.commit()

    def grant_org_manager(self, organization, user):
        organization.managers.append(user)
        self.db.commit()


@pytest.fixture
def factory(db_session):
    return Factory(db_session)
