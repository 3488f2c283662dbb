import httpx
import pytest_asyncio

from citylocal.app import app
from citylocal.database import get_session
from citylocal.models import ROLE_ADMIN
from citylocal.security import create_access_token, hash_password
from citylocal.services.activity import get_activity_log
from citylocal.services.notifications import get_notifier

from conftest import make_business, make_user


@pytest_asyncio.fixture
async def client(session_factory, activity, notifier):
    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_activity_log] = lambda: activity
    app.dependency_overrides[get_notifier] = lambda: notifier

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def auth(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest_asyncio.fixture
async def admin_headers(admin):
    return auth(admin)


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


async def test_register_login_and_me(client, activity):
    resp = await client.post(
        "/auth/register", json={"name": "Ana", "email": "Ana@Example.com", "password": "secret1"}
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["user"]["email"] == "ana@example.com"
    assert body["user"]["role"] == "user"
    assert activity.types == ["user_registered"]

    resp = await client.post("/auth/register", json={"name": "Ana", "email": "ana@example.com", "password": "secret1"})
    assert resp.status_code == 409
    assert resp.json() == {"success": False, "error": "User already exists with this email"}

    resp = await client.post("/auth/login", json={"email": "ana@example.com", "password": "wrong!"})
    assert resp.status_code == 401

    resp = await client.post("/auth/login", json={"email": "ana@example.com", "password": "secret1"})
    assert resp.status_code == 200
    token = resp.json()["token"]

    resp = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.json()["name"] == "Ana"


async def test_admin_must_use_admin_login(client, session):
    await make_user(session, email="root@example.com", role=ROLE_ADMIN, password_hash=hash_password("topsecret"))

    resp = await client.post("/auth/login", json={"email": "root@example.com", "password": "topsecret"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "Invalid credentials"

    resp = await client.post("/auth/admin/login", json={"email": "root@example.com", "password": "topsecret"})
    assert resp.status_code == 200
    assert resp.json()["user"]["role"] == ROLE_ADMIN


async def test_protected_routes_need_a_token(client):
    assert (await client.get("/auth/me")).status_code == 401
    assert (await client.post("/businesses", json={"name": "x"})).status_code == 401
    resp = await client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


async def test_admin_routes_forbidden_to_users(client, session):
    user = await make_user(session)
    resp = await client.get("/admin/stats", headers=auth(user))
    assert resp.status_code == 403
    assert resp.json()["success"] is False


async def test_business_flow_over_http(client, session, category, admin_headers, notifier):
    user = await make_user(session, email="owner@example.com")
    payload = {
        "name": "Tea House",
        "description": "Loose leaf teas",
        "category_id": str(category.id),
        "address": "9 Pine Rd",
        "city": "Springfield",
        "state": "IL",
        "phone": "555-0123",
    }

    resp = await client.post("/businesses", json=payload, headers=auth(user))
    assert resp.status_code == 201
    business = resp.json()["business"]
    assert business["status"] == "pending"
    assert business["is_active"] is False
    assert business["category"]["name"] == category.name
    assert notifier.sent[-1]["to"] == "admin@citylocal.test"

    listing = (await client.get("/businesses")).json()
    assert listing["total"] == 0
    own_view = (await client.get("/businesses", headers=auth(user))).json()
    assert [b["id"] for b in own_view["businesses"]] == [business["id"]]

    resp = await client.put(
        f"/admin/businesses/{business['id']}/reject", json={"reason": ""}, headers=admin_headers
    )
    assert resp.status_code == 400

    resp = await client.put(
        f"/admin/businesses/{business['id']}/reject", json={"reason": "Add opening hours"}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert resp.json()["business"]["status"] == "rejected"

    resp = await client.post(f"/businesses/{business['id']}/resubmit", headers=auth(user))
    assert resp.status_code == 200
    assert resp.json()["business"]["status"] == "pending"

    resp = await client.post(f"/businesses/{business['id']}/resubmit", headers=auth(user))
    assert resp.status_code == 409

    resp = await client.put(f"/admin/businesses/{business['id']}/approve", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["business"]["status"] == "active"

    listing = (await client.get("/businesses", params={"publicOnly": "true"})).json()
    assert [b["id"] for b in listing["businesses"]] == [business["id"]]

    detail = (await client.get(f"/businesses/{business['id']}")).json()
    assert detail["business"]["views"] == 1


async def test_listing_query_parameters(client, session, category):
    a = await make_business(session, category, name="A", rating_average=4.2, rating_count=10)
    await make_business(session, category, name="B", rating_average=2.0, city="Albany", state="NY")

    resp = await client.get("/businesses", params=[("ratings", "4"), ("ratings", "5")])
    assert [b["id"] for b in resp.json()["businesses"]] == [a.id]

    resp = await client.get("/businesses", params={"ratings": "5"})
    assert resp.json()["businesses"] == []

    resp = await client.get("/businesses", params={"ratings": "seven"})
    assert resp.status_code == 400

    resp = await client.get("/businesses", params={"category": "food"})
    assert resp.status_code == 400

    resp = await client.get("/businesses", params={"limit": 1, "page": 2, "sort": "name"})
    body = resp.json()
    assert (body["count"], body["total"], body["pages"], body["page"]) == (1, 2, 2, 2)
    assert body["businesses"][0]["name"] == "B"

    resp = await client.get("/businesses/filter-options")
    assert resp.json()["cities"] == ["Albany", "Springfield"]


async def test_missing_business_is_404(client):
    resp = await client.get("/businesses/9999")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Business not found"}


async def test_claim_twice_conflicts(client, session, category):
    business = await make_business(session, category, name="Unclaimed")
    first = await make_user(session, email="first@example.com")
    second = await make_user(session, email="second@example.com")

    assert (await client.post(f"/businesses/{business.id}/claim", headers=auth(first))).status_code == 200
    resp = await client.post(f"/businesses/{business.id}/claim", headers=auth(second))
    assert resp.status_code == 409


async def test_suggestion_endpoints(client, session, category):
    await make_business(session, category, name="Springfield Diner", city="Springfield", state="IL")

    resp = await client.get("/search/suggestions", params={"q": "s"})
    assert resp.json()["suggestions"] == []

    resp = await client.get("/search/suggestions", params={"q": "diner"})
    assert [s["name"] for s in resp.json()["suggestions"]] == ["Springfield Diner"]

    resp = await client.get("/search/location-suggestions", params={"q": "spr"})
    assert resp.json()["suggestions"][0]["name"] == "Springfield, IL"


async def test_review_flow(client, session, category, admin_headers):
    business = await make_business(session, category)
    reviewer = await make_user(session, email="reviewer@example.com")

    resp = await client.post(
        f"/businesses/{business.id}/reviews",
        json={"rating": 5, "comment": "Lovely"},
        headers=auth(reviewer),
    )
    assert resp.status_code == 201
    review_id = resp.json()["review"]["id"]

    resp = await client.put(f"/admin/reviews/{review_id}/approve", headers=admin_headers)
    assert resp.status_code == 200

    reviews = (await client.get(f"/businesses/{business.id}/reviews")).json()
    assert reviews["count"] == 1
    assert reviews["reviews"][0]["user"]["name"] == "Test User"

    detail = (await client.get(f"/businesses/{business.id}")).json()["business"]
    assert (detail["rating_average"], detail["rating_count"]) == (5.0, 1)


async def test_admin_stats_and_categories(client, session, category, admin_headers):
    await make_business(session, category, name="Live")
    await make_business(session, category, name="Waiting", is_active=False)

    stats = (await client.get("/admin/stats", headers=admin_headers)).json()["stats"]
    assert stats["businesses"] == 2
    assert stats["active_businesses"] == 1
    assert stats["pending_businesses"] == 1
    assert len(stats["recent_businesses"]) == 2

    resp = await client.post("/admin/categories", json={"name": "Florists", "icon": "flower"}, headers=admin_headers)
    assert resp.status_code == 201
    assert resp.json()["slug"] == "florists"

    resp = await client.delete(f"/admin/categories/{category.id}", headers=admin_headers)
    assert resp.status_code == 409

    resp = await client.get("/categories")
    assert {c["name"] for c in resp.json()["categories"]} == {"Restaurants", "Florists"}


async def test_general_search_is_public_only(client, session, category):
    owner = await make_user(session, email="owner@example.com", role="business_owner")
    live = await make_business(session, category, name="Pizza Live", rating_average=4.5)
    await make_business(session, category, name="Pizza Low", rating_average=2.0)
    await make_business(session, category, name="Pizza Pending", owner_id=owner.id, is_active=False)

    resp = await client.get("/search", params={"q": "pizza"}, headers=auth(owner))
    body = resp.json()
    assert body["total"] == 2
    assert "Pizza Pending" not in {b["name"] for b in body["businesses"]}

    resp = await client.get("/search", params={"q": "pizza", "minRating": "4", "category": str(category.id)})
    assert [b["id"] for b in resp.json()["businesses"]] == [live.id]

    resp = await client.get("/search", params={"q": "pizza", "sort": "name", "limit": 1, "page": 2})
    body = resp.json()
    assert (body["count"], body["pages"]) == (1, 2)
    assert body["businesses"][0]["name"] == "Pizza Low"

    resp = await client.get("/search", params={"minRating": "ten"})
    assert resp.status_code == 400


async def test_contact_endpoint(client, session, category, notifier, activity):
    business = await make_business(session, category, name="Deli", email="hello@deli.example")

    resp = await client.post(
        f"/businesses/{business.id}/contact",
        json={"name": "Sam", "email": "sam@example.com", "message": "Open on Sunday?"},
    )
    assert resp.status_code == 200
    assert resp.json()["message"] == "Your message has been sent to the business"
    assert notifier.sent[-1]["to"] == "hello@deli.example"
    assert activity.types == ["business_contact"]

    resp = await client.post(f"/businesses/{business.id}/contact", json={"name": "Sam", "email": "sam@example.com"})
    assert resp.status_code == 400

    resp = await client.post("/businesses/9999/contact", json={"name": "S", "email": "s@example.com", "message": "x"})
    assert resp.status_code == 404


async def test_update_profile(client, session, activity):
    user = await make_user(session, email="pat@example.com", name="Pat")

    resp = await client.put(
        "/auth/updateprofile",
        json={"name": " Patricia ", "first_name": "Patricia", "phone": "555-0404", "avatar": "data:image/png;base64,AAAA"},
        headers=auth(user),
    )
    assert resp.status_code == 200
    body = resp.json()["user"]
    assert (body["name"], body["first_name"], body["phone"]) == ("Patricia", "Patricia", "555-0404")
    assert body["avatar"] == "data:image/png;base64,AAAA"
    assert body["email"] == "pat@example.com"
    assert activity.types == ["profile_updated"]

    resp = await client.put("/auth/updateprofile", json={"avatar": None}, headers=auth(user))
    assert resp.json()["user"]["avatar"] is None
    assert resp.json()["user"]["name"] == "Patricia"

    resp = await client.put("/auth/updateprofile", json={"avatar": "http://img.example/me.png"}, headers=auth(user))
    assert resp.status_code == 400
    resp = await client.put(
        "/auth/updateprofile", json={"avatar": "data:image/png;base64," + "A" * 500_000}, headers=auth(user)
    )
    assert resp.status_code == 400
    resp = await client.put("/auth/updateprofile", json={"name": "  "}, headers=auth(user))
    assert resp.status_code == 400
    assert (await client.put("/auth/updateprofile", json={"name": "X"})).status_code == 401


async def test_change_password_and_logout(client, session):
    user = await make_user(session, email="kim@example.com", password_hash=hash_password("oldpass"))

    resp = await client.put(
        "/auth/changepassword", json={"current_password": "wrong", "new_password": "newpass1"}, headers=auth(user)
    )
    assert resp.status_code == 401
    assert resp.json()["error"] == "Current password is incorrect"

    resp = await client.put(
        "/auth/changepassword", json={"current_password": "oldpass", "new_password": "123"}, headers=auth(user)
    )
    assert resp.status_code == 400

    resp = await client.put(
        "/auth/changepassword", json={"current_password": "oldpass", "new_password": "newpass1"}, headers=auth(user)
    )
    assert resp.status_code == 200
    assert resp.json()["token"]

    old = await client.post("/auth/login", json={"email": "kim@example.com", "password": "oldpass"})
    assert old.status_code == 401
    new = await client.post("/auth/login", json={"email": "kim@example.com", "password": "newpass1"})
    assert new.status_code == 200

    resp = await client.post("/auth/logout", headers=auth(user))
    assert resp.json() == {"success": True, "message": "Logged out successfully"}
    assert (await client.post("/auth/logout")).status_code == 401
