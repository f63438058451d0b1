"""
Tests for the HTTP API.

Covers:
- Health endpoints and route protection
- Login / logout
- Commission tier administration and preview
- Admin wallet overview, detail and payouts (incl. error mapping)
- Manager panel wallet
"""

from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from factories import add_sale, add_tiers, create_user, load_wallet
from shopledger.auth.jwt import COOKIE_NAME, create_access_token
from shopledger.db import get_db
from shopledger.main import create_app
from shopledger.models import UserRole
from shopledger.services.exceptions import ConcurrencyConflictError, PersistenceFailureError
from shopledger.services.payouts import PayoutProcessor, get_payout_processor
from shopledger.utils.password import hash_password


@pytest_asyncio.fixture
async def app(session_factory):
    application = create_app()

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    processor = PayoutProcessor(session_factory)
    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_payout_processor] = lambda: processor
    return application


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def accounts(session_factory):
    """Admin plus one manager with 7500 in completed sales under the reference tiers."""
    async with session_factory() as db:
        admin = await create_user(
            db,
            "root",
            role=UserRole.ADMIN,
            display_name="Administrator",
            password_hash=hash_password("admin-pass"),
        )
        manager = await create_user(
            db,
            "alice",
            display_name="Alice",
            password_hash=hash_password("alice-pass"),
        )
        await add_tiers(db)
        await add_sale(db, manager, "3000")
        await add_sale(db, manager, "4500")
        await db.commit()
    return admin, manager


def _authenticate(client, user):
    client.cookies.set(COOKIE_NAME, create_access_token(user.id, user.role.value))


# ── Health and protection ─────────────────────────────────


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_ready(self, client):
        response = await client.get("/api/health/ready")
        assert response.status_code == 200
        assert response.json()["database"] == "connected"

    @pytest.mark.asyncio
    async def test_live(self, client):
        response = await client.get("/api/health/live")
        assert response.json() == {"status": "alive"}


class TestProtection:
    @pytest.mark.asyncio
    async def test_panel_requires_login(self, client):
        response = await client.get("/api/panel/wallet")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_admin_requires_login(self, client):
        response = await client.get("/api/admin/wallets")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_manager_cannot_use_admin_routes(self, client, accounts):
        _, manager = accounts
        _authenticate(client, manager)

        response = await client.get("/api/admin/commission-tiers")
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_has_no_panel_wallet(self, client, accounts):
        admin, _ = accounts
        _authenticate(client, admin)

        response = await client.get("/api/panel/wallet")
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_garbage_token(self, client):
        client.cookies.set(COOKIE_NAME, "not-a-token")
        response = await client.get("/api/panel/wallet")
        assert response.status_code == 401


# ── Auth ──────────────────────────────────────────────────


class TestAuth:
    @pytest.mark.asyncio
    async def test_login_sets_cookie(self, client, accounts):
        response = await client.post(
            "/api/auth/login", json={"username": "alice", "password": "alice-pass"}
        )

        assert response.status_code == 200
        assert response.json()["role"] == "manager"
        assert COOKIE_NAME in response.cookies

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client, accounts):
        response = await client.post(
            "/api/auth/login", json={"username": "alice", "password": "nope"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_login_unknown_user(self, client, accounts):
        response = await client.post(
            "/api/auth/login", json={"username": "mallory", "password": "x"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_logout(self, client, accounts):
        _, manager = accounts
        _authenticate(client, manager)

        response = await client.post("/api/auth/logout")
        assert response.status_code == 200
        assert response.json()["success"] is True


# ── Commission tiers ──────────────────────────────────────


class TestCommissionTiers:
    @pytest.mark.asyncio
    async def test_list_sorted_by_threshold(self, client, accounts):
        admin, _ = accounts
        _authenticate(client, admin)

        response = await client.get("/api/admin/commission-tiers")

        assert response.status_code == 200
        thresholds = [Decimal(t["sales_threshold"]) for t in response.json()]
        assert thresholds == [Decimal("1000"), Decimal("5000"), Decimal("10000")]

    @pytest.mark.asyncio
    async def test_create_tier(self, client, accounts):
        admin, _ = accounts
        _authenticate(client, admin)

        response = await client.post(
            "/api/admin/commission-tiers",
            json={"sales_threshold": "20000", "commission_amount": "1200", "description": "Top"},
        )

        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["sales_threshold"]) == Decimal("20000")
        assert data["is_active"] is True
        assert data["description"] == "Top"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"sales_threshold": "0", "commission_amount": "10"},
            {"sales_threshold": "100", "commission_amount": "-1"},
            {"sales_threshold": "100.001", "commission_amount": "10"},
        ],
    )
    async def test_create_rejects_bad_amounts(self, client, accounts, payload):
        admin, _ = accounts
        _authenticate(client, admin)

        response = await client.post("/api/admin/commission-tiers", json=payload)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_update_tier(self, client, accounts):
        admin, _ = accounts
        _authenticate(client, admin)
        tiers = (await client.get("/api/admin/commission-tiers")).json()

        response = await client.put(
            f"/api/admin/commission-tiers/{tiers[0]['id']}",
            json={"commission_amount": "75"},
        )

        assert response.status_code == 200
        assert Decimal(response.json()["commission_amount"]) == Decimal("75")
        assert Decimal(response.json()["sales_threshold"]) == Decimal("1000")

    @pytest.mark.asyncio
    async def test_toggle_and_delete(self, client, accounts):
        admin, _ = accounts
        _authenticate(client, admin)
        tier_id = (await client.get("/api/admin/commission-tiers")).json()[0]["id"]

        toggled = await client.post(f"/api/admin/commission-tiers/{tier_id}/toggle")
        assert toggled.status_code == 200
        assert toggled.json()["is_active"] is False

        deleted = await client.delete(f"/api/admin/commission-tiers/{tier_id}")
        assert deleted.status_code == 200

        missing = await client.delete(f"/api/admin/commission-tiers/{tier_id}")
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_preview(self, client, accounts):
        admin, _ = accounts
        _authenticate(client, admin)

        response = await client.get(
            "/api/admin/commission-tiers/preview", params={"sales_amount": "7500"}
        )

        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["total_commission"]) == Decimal("250")
        assert Decimal(data["qualified_sales"]) == Decimal("5000")
        assert Decimal(data["carry_forward"]) == Decimal("2500")
        assert Decimal(data["next_milestone"]) == Decimal("2500")
        assert [e["earned_at_this_tier"] for e in data["breakdown"]] == [True, True, False]


# ── Admin wallets ─────────────────────────────────────────


class TestAdminWallets:
    @pytest.mark.asyncio
    async def test_overview_reconciles(self, client, accounts, session_factory):
        admin, manager = accounts
        _authenticate(client, admin)

        response = await client.get("/api/admin/wallets")

        assert response.status_code == 200
        items = response.json()["items"]
        assert len(items) == 1
        assert items[0]["id"] == manager.id
        assert items[0]["sales_count"] == 2
        assert Decimal(items[0]["total_sales"]) == Decimal("7500")
        assert Decimal(items[0]["balance"]) == Decimal("250")

        wallet = await load_wallet(session_factory, manager.id)
        assert wallet.total_earned == Decimal("250")

    @pytest.mark.asyncio
    async def test_detail(self, client, accounts):
        admin, manager = accounts
        _authenticate(client, admin)

        response = await client.get(f"/api/admin/wallets/{manager.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["display_name"] == "Alice"
        assert Decimal(data["wallet"]["balance"]) == Decimal("250")
        assert Decimal(data["wallet"]["carry_forward"]) == Decimal("2500")
        assert data["wallet"]["currency"] == "KSH"
        assert data["payouts"]["total"] == 0
        assert data["payouts"]["pages"] == 0
        assert len(data["recent_sales"]) == 2

    @pytest.mark.asyncio
    async def test_detail_paginates_payouts(self, client, accounts, app):
        admin, manager = accounts
        _authenticate(client, admin)
        processor = app.dependency_overrides[get_payout_processor]()
        for amount in ("10", "20", "30"):
            await processor.process_payout(manager.id, Decimal(amount), None, admin.id)

        response = await client.get(
            f"/api/admin/wallets/{manager.id}", params={"page": 2, "per_page": 2}
        )

        payouts = response.json()["payouts"]
        assert payouts["total"] == 3
        assert payouts["pages"] == 2
        assert len(payouts["items"]) == 1
        assert payouts["items"][0]["processed_by_name"] == "Administrator"

    @pytest.mark.asyncio
    async def test_detail_unknown_manager(self, client, accounts):
        admin, _ = accounts
        _authenticate(client, admin)

        response = await client.get(f"/api/admin/wallets/{admin.id}")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_payout(self, client, accounts, session_factory):
        admin, manager = accounts
        _authenticate(client, admin)

        response = await client.post(
            f"/api/admin/wallets/{manager.id}/payouts",
            json={"amount": "200", "notes": "Weekly"},
        )

        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["amount"]) == Decimal("200")
        assert data["status"] == "completed"
        assert data["processed_by_name"] == "Administrator"

        wallet = await load_wallet(session_factory, manager.id)
        assert wallet.balance == Decimal("50")
        assert wallet.total_paid_out == Decimal("200")

    @pytest.mark.asyncio
    async def test_payout_insufficient_balance(self, client, accounts, session_factory):
        admin, manager = accounts
        _authenticate(client, admin)

        response = await client.post(
            f"/api/admin/wallets/{manager.id}/payouts", json={"amount": "251"}
        )

        assert response.status_code == 400
        data = response.json()
        assert Decimal(data["balance"]) == Decimal("250")
        assert Decimal(data["requested"]) == Decimal("251")

    @pytest.mark.asyncio
    async def test_payout_rejects_zero(self, client, accounts):
        admin, manager = accounts
        _authenticate(client, admin)

        response = await client.post(
            f"/api/admin/wallets/{manager.id}/payouts", json={"amount": "0"}
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error, status_code",
        [
            (ConcurrencyConflictError("lost the race"), 409),
            (PersistenceFailureError("db down"), 503),
        ],
    )
    async def test_payout_error_mapping(self, client, accounts, app, error, status_code):
        admin, manager = accounts
        _authenticate(client, admin)

        class FailingProcessor:
            async def process_payout(self, **kwargs):
                raise error

        app.dependency_overrides[get_payout_processor] = lambda: FailingProcessor()

        response = await client.post(
            f"/api/admin/wallets/{manager.id}/payouts", json={"amount": "10"}
        )
        assert response.status_code == status_code
        assert "detail" in response.json()


# ── Manager panel ─────────────────────────────────────────


class TestPanelWallet:
    @pytest.mark.asyncio
    async def test_own_wallet(self, client, accounts):
        _, manager = accounts
        _authenticate(client, manager)

        response = await client.get("/api/panel/wallet")

        assert response.status_code == 200
        wallet = response.json()["wallet"]
        assert wallet["manager_id"] == manager.id
        assert Decimal(wallet["total_sales"]) == Decimal("7500")
        assert Decimal(wallet["qualified_commission"]) == Decimal("250")
        assert Decimal(wallet["next_milestone"]) == Decimal("2500")
        assert response.json()["recent_payouts"] == []

    @pytest.mark.asyncio
    async def test_wallet_after_payout(self, client, accounts, session_factory):
        admin, manager = accounts
        processor = PayoutProcessor(session_factory)
        await processor.process_payout(manager.id, Decimal("100"), "Advance", admin.id)

        _authenticate(client, manager)
        response = await client.get("/api/panel/wallet")

        data = response.json()
        assert Decimal(data["wallet"]["balance"]) == Decimal("150")
        assert Decimal(data["wallet"]["paid_sales"]) == Decimal("7500")
        assert len(data["recent_payouts"]) == 1
        assert data["recent_payouts"][0]["notes"] == "Advance"
