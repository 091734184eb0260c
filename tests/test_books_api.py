from __future__ import annotations

from conftest import bearer

BOOKS = "/api/v1/books"


def _book(**overrides) -> dict:
    book = {
        "img": "https://img.example.com/dune.jpg",
        "isbn": "978-0-441-17271-9",
        "title": "Dune",
        "firstName": "Frank",
        "lastName": "Herbert",
        "editorial": "Ace",
        "price": "9.99",
        "stock": 3,
        "url": "https://shop.example.com/dune",
    }
    book.update(overrides)
    return book


def test_admin_creates_book(client, admin_token) -> None:
    r = client.post(BOOKS, json=_book(), headers=bearer(admin_token))
    assert r.status_code == 201, r.text
    data = r.get_json()["data"]
    assert data["isbn"] == "9780441172719"
    assert data["authorFullName"] == "Frank Herbert"
    assert data["price"] == "9.99"
    assert data["inStock"] is True
    assert data["fanzine"] is False


def test_catalog_writes_require_admin(client, user_token) -> None:
    assert client.post(BOOKS, json=_book()).status_code == 401

    r = client.post(BOOKS, json=_book(), headers=bearer(user_token))
    assert r.status_code == 403, r.text
    assert r.get_json()["error"] == "FORBIDDEN"

    assert client.patch(f"{BOOKS}/x", json={"stock": 1}, headers=bearer(user_token)).status_code == 403
    assert client.delete(f"{BOOKS}/x", headers=bearer(user_token)).status_code == 403


def test_duplicate_isbn_is_conflict(client, admin_token) -> None:
    assert client.post(BOOKS, json=_book(), headers=bearer(admin_token)).status_code == 201
    r = client.post(BOOKS, json=_book(isbn="9780441172719", title="Dune again"), headers=bearer(admin_token))
    assert r.status_code == 409, r.text
    assert r.get_json()["error"] == "DUPLICATE_ISBN"


def test_invalid_book_is_rejected(client, admin_token) -> None:
    r = client.post(BOOKS, json=_book(isbn="123", price="-1"), headers=bearer(admin_token))
    assert r.status_code == 422, r.text
    details = r.get_json()["details"]
    assert "price" in details


def test_list_filters_and_paginates(client, admin_token) -> None:
    client.post(BOOKS, json=_book(), headers=bearer(admin_token))
    client.post(
        BOOKS,
        json=_book(isbn="0441013597", title="Zine", fanzine=True, latestBook=True),
        headers=bearer(admin_token),
    )

    r = client.get(BOOKS)
    assert r.status_code == 200, r.text
    body = r.get_json()
    assert body["meta"]["total"] == 2
    assert body["data"][0]["title"] == "Zine"

    fanzines = client.get(f"{BOOKS}?fanzine=true").get_json()
    assert [b["title"] for b in fanzines["data"]] == ["Zine"]
    latest = client.get(f"{BOOKS}?latest_book=false").get_json()
    assert [b["title"] for b in latest["data"]] == ["Dune"]

    page = client.get(f"{BOOKS}?page=2&limit=1").get_json()
    assert page["meta"] == {"page": 2, "limit": 1, "total": 2}
    assert len(page["data"]) == 1

    assert client.get(f"{BOOKS}?limit=500").get_json()["meta"]["limit"] == 100
    assert client.get(f"{BOOKS}?page=abc").status_code == 400


def test_search(client, admin_token) -> None:
    client.post(BOOKS, json=_book(), headers=bearer(admin_token))

    assert [b["title"] for b in client.get(f"{BOOKS}/search?term=herb").get_json()["data"]] == ["Dune"]
    assert len(client.get(f"{BOOKS}/search?term=9780441172719").get_json()["data"]) == 1
    assert client.get(f"{BOOKS}/search?term=tolkien").get_json()["data"] == []
    assert client.get(f"{BOOKS}/search").status_code == 422


def test_get_update_delete(client, admin_token) -> None:
    book_id = client.post(BOOKS, json=_book(), headers=bearer(admin_token)).get_json()["data"]["id"]

    r = client.get(f"{BOOKS}/{book_id}")
    assert r.status_code == 200
    assert r.get_json()["data"]["title"] == "Dune"

    r = client.patch(f"{BOOKS}/{book_id}", json={"stock": 0, "title": "Dune Messiah"}, headers=bearer(admin_token))
    assert r.status_code == 200, r.text
    data = r.get_json()["data"]
    assert data["title"] == "Dune Messiah"
    assert data["inStock"] is False
    assert data["isbn"] == "9780441172719"

    assert client.patch(f"{BOOKS}/{book_id}", json={}, headers=bearer(admin_token)).status_code == 400

    r = client.delete(f"{BOOKS}/{book_id}", headers=bearer(admin_token))
    assert r.status_code == 200, r.text
    assert client.get(f"{BOOKS}/{book_id}").status_code == 404
    assert client.delete(f"{BOOKS}/{book_id}", headers=bearer(admin_token)).status_code == 404


def test_unknown_book_is_not_found(client, admin_token) -> None:
    r = client.get(f"{BOOKS}/missing")
    assert r.status_code == 404
    assert r.get_json()["error"] == "NOT_FOUND"
    r = client.patch(f"{BOOKS}/missing", json={"stock": 1}, headers=bearer(admin_token))
    assert r.status_code == 404
