"""
Pytest fixtures for testing
"""
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from pilotage.infrastructure.db.session import Base
from pilotage.infrastructure.db.models import (
    CategoryModel,
    NoteModel,
    NoteShare,
    Organization,
    OrganizationMember,
    Profile,
    RefundModel,
    SubCategoryModel,
    TransactionModel,
)
from pilotage.infrastructure.remote.gateway import RPC_FUNCTIONS, RemoteGateway


USER_ID = "11111111-1111-1111-1111-111111111111"
OTHER_USER_ID = "22222222-2222-2222-2222-222222222222"
OUTSIDER_ID = "33333333-3333-3333-3333-333333333333"


class FakeRpcGateway(RemoteGateway):
    """
    Gateway whose server-side functions are computed from the SQLite tables,
    the way the hosted backend computes them.
    """

    def call_rpc(self, name, **params):
        expected = RPC_FUNCTIONS.get(name)
        if expected is None:
            raise ValueError(f"Unknown RPC function: {name}")
        assert set(params) == set(expected), f"{name} called with {params}"
        return getattr(self, f"_rpc_{name}")(**params)

    def _rpc_get_organization_transactions(self, org_id, filter_type, current_user_id):
        rows = self.db.query(TransactionModel).filter(TransactionModel.organization_id == org_id).all()
        categories = {c.id: c for c in self.db.query(CategoryModel).all()}
        sub_categories = {s.id: s for s in self.db.query(SubCategoryModel).all()}
        profiles = {p.id: p for p in self.db.query(Profile).all()}

        result = []
        for t in sorted(rows, key=lambda r: r.accounting_date, reverse=True):
            own = t.user_id == current_user_id
            if filter_type == "common" and t.is_personal:
                continue
            if filter_type == "personal" and not (t.is_personal and own):
                continue
            if filter_type == "all" and t.is_personal and not own:
                continue

            refunded = sum(
                (r.amount for r in self.db.query(RefundModel).filter(RefundModel.transaction_id == t.id)),
                Decimal("0"),
            )
            category = categories.get(t.category_id)
            sub_category = sub_categories.get(t.subcategory_id)
            profile = profiles.get(t.user_id)
            result.append({
                "id": t.id,
                "amount": t.amount,
                "net_amount": t.amount - refunded,
                "total_refunded": refunded,
                "description": t.description,
                "transaction_date": t.transaction_date,
                "accounting_date": t.accounting_date,
                "category_id": t.category_id,
                "category_type": category.type if category else "expense",
                "category_name": category.name if category else None,
                "subcategory_id": t.subcategory_id,
                "subcategory_name": sub_category.name if sub_category else None,
                "is_personal": t.is_personal,
                "user_id": t.user_id,
                "organization_id": t.organization_id,
                "user_name": profile.full_name if profile else None,
                "user_email": profile.email if profile else None,
            })
        return result

    def _rpc_get_organization_members(self, org_id):
        members = self.db.query(OrganizationMember).filter(OrganizationMember.organization_id == org_id).all()
        result = []
        for m in members:
            profile = self.db.get(Profile, m.user_id)
            result.append({
                "user_id": m.user_id,
                "role": m.role,
                "email": profile.email if profile else None,
                "full_name": profile.full_name if profile else None,
                "avatar_url": profile.avatar_url if profile else None,
            })
        return result

    def _rpc_get_note_collaborators(self, note_id_param):
        note = self.db.get(NoteModel, note_id_param)
        if note is None:
            return []
        result = []
        creator = self.db.get(Profile, note.created_by)
        result.append({
            "user_id": note.created_by,
            "full_name": creator.full_name if creator else "",
            "email": creator.email if creator else "",
            "can_edit": True,
            "is_creator": True,
        })
        for share in self.db.query(NoteShare).filter(NoteShare.note_id == note_id_param).all():
            profile = self.db.get(Profile, share.user_id)
            result.append({
                "user_id": share.user_id,
                "full_name": profile.full_name if profile else "",
                "email": profile.email if profile else "",
                "can_edit": share.can_edit,
                "is_creator": False,
            })
        return result


@pytest.fixture
def db_engine():
    """In-memory SQLite engine shared across threads (TestClient runs sync routes in a pool)."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine)


@pytest.fixture
def db_session(session_factory) -> Session:
    """Create database session for tests"""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def gateway(db_session):
    return FakeRpcGateway(db_session)


@pytest.fixture
def user_id():
    return USER_ID


@pytest.fixture
def other_user_id():
    return OTHER_USER_ID


@pytest.fixture
def profiles(db_session):
    """Three users: the current one, a colleague, and someone outside the organization"""
    rows = [
        Profile(id=USER_ID, email="alice@example.com", full_name="Alice Martin"),
        Profile(id=OTHER_USER_ID, email="bob@example.com", full_name="Bob Durand"),
        Profile(id=OUTSIDER_ID, email="carol@example.com", full_name="Carol Petit"),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return rows


@pytest.fixture
def organization(db_session, profiles):
    """Organization owned by the current user, with the colleague as member"""
    org = Organization(name="Famille", owner_id=USER_ID)
    db_session.add(org)
    db_session.flush()
    db_session.add_all([
        OrganizationMember(organization_id=org.id, user_id=USER_ID, role="owner"),
        OrganizationMember(organization_id=org.id, user_id=OTHER_USER_ID, role="member"),
    ])
    db_session.commit()
    return org


@pytest.fixture
def chart_of_accounts(db_session, organization):
    """Categories and sub-categories of the organization, keyed by name"""
    categories = {
        "Alimentation": CategoryModel(name="Alimentation", type="expense", organization_id=organization.id),
        "Logement": CategoryModel(name="Logement", type="expense", organization_id=organization.id),
        "Salaire": CategoryModel(name="Salaire", type="income", organization_id=organization.id),
        "Divers": CategoryModel(
            name="Divers", type="expense", organization_id=organization.id, is_system=True
        ),
    }
    db_session.add_all(categories.values())
    db_session.flush()
    sub_categories = {
        "Courses": SubCategoryModel(name="Courses", category_id=categories["Alimentation"].id),
        "Restaurant": SubCategoryModel(name="Restaurant", category_id=categories["Alimentation"].id),
        "Loyer": SubCategoryModel(name="Loyer", category_id=categories["Logement"].id),
    }
    db_session.add_all(sub_categories.values())
    db_session.commit()
    return {**{k: v.id for k, v in categories.items()}, **{k: v.id for k, v in sub_categories.items()}}
