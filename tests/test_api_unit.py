import pytest
from fastapi.testclient import TestClient

from backend.app import main as api
from backend.app.main import app


@pytest.fixture
def client() -> TestClient:
    client = TestClient(app)
    client.post("/api/reset")
    return client


def _symbols(data: dict) -> dict:
    return data["symbols"]


def test_new_worksheet(client: TestClient) -> None:
    resp = client.get("/api/worksheet")
    assert resp.status_code == 200
    data = resp.json()
    assert [s["id"] for s in data["statements"]] == [1, 2]
    assert data["symbols"] == {}
    assert data["diagnostic"] == ""


def test_edit_and_enter_value(client: TestClient) -> None:
    resp = client.put("/api/statements/1", json={"markup": "x + y = 5"})
    assert resp.status_code == 200
    assert resp.json()["kind"] == "equation"
    assert resp.json()["display"] == "x + y = 5"

    resp = client.post("/api/symbols/x/entry", json={"text": "2"})
    assert resp.status_code == 200
    symbols = _symbols(resp.json())
    assert symbols["x"] == {"value": 2.0, "given": True}
    assert symbols["y"] == {"value": 3.0, "given": False}


def test_set_symbol(client: TestClient) -> None:
    client.put("/api/statements/1", json={"markup": "2a = b"})
    resp = client.put("/api/symbols/a", json={"value": 1.5, "given": True})
    assert resp.status_code == 200
    assert _symbols(resp.json())["b"]["value"] == pytest.approx(3.0)


def test_parse_warning_is_returned(client: TestClient) -> None:
    resp = client.put("/api/statements/2", json={"markup": "x = = 1"})
    assert resp.status_code == 200
    assert resp.json()["warning"].startswith("Failed to parse markup: ")
    assert resp.json()["kind"] is None


def test_add_and_remove_statement(client: TestClient) -> None:
    resp = client.post("/api/statements", json={"markup": "q + 1"})
    assert resp.status_code == 200
    new_id = resp.json()["id"]
    assert resp.json()["symbols"] == ["q"]

    resp = client.delete(f"/api/statements/{new_id}")
    assert resp.status_code == 200
    assert "q" not in _symbols(resp.json())


def test_apply_simplification(client: TestClient) -> None:
    stmt = client.put("/api/statements/1", json={"markup": "2x + 3x"}).json()
    index = [s["name"] for s in stmt["simplifications"]].index("evaluate")
    resp = client.post(f"/api/statements/1/simplifications/{index}")
    assert resp.status_code == 200
    assert resp.json()["markup"] == "5*x"


def test_substitution(client: TestClient) -> None:
    client.put("/api/statements/1", json={"markup": "x = 2y"})
    client.put("/api/statements/2", json={"markup": "x + y = 9"})
    resp = client.post("/api/substitutions", json={"held_id": 1, "target_id": 2})
    assert resp.status_code == 200
    assert resp.json()["symbols"] == ["y"]


def test_substitution_rejected(client: TestClient) -> None:
    client.put("/api/statements/1", json={"markup": "x + 1 = y"})
    client.put("/api/statements/2", json={"markup": "x = 4"})
    resp = client.post("/api/substitutions", json={"held_id": 1, "target_id": 2})
    assert resp.status_code == 400


@pytest.mark.parametrize(
    "method,url,body",
    [
        ("put", "/api/statements/99", {"markup": "x"}),
        ("delete", "/api/statements/99", None),
        ("post", "/api/statements/1/simplifications/0", None),
        ("put", "/api/symbols/zz", {"value": 1, "given": True}),
        ("post", "/api/symbols/zz/entry", {"text": "1"}),
    ],
)
def test_not_found(client: TestClient, method: str, url: str, body) -> None:
    kwargs = {"json": body} if body is not None else {}
    resp = getattr(client, method)(url, **kwargs)
    assert resp.status_code == 404


def test_worksheet_is_looked_up_under_the_lock(client: TestClient, monkeypatch) -> None:
    seen = []
    lookup = api.get_worksheet

    def locked_lookup(request):
        seen.append(api._lock.locked())
        return lookup(request)

    monkeypatch.setattr(api, "get_worksheet", locked_lookup)
    client.get("/api/worksheet")
    client.put("/api/statements/1", json={"markup": "x = 2"})
    client.post("/api/symbols/x/entry", json={"text": "3"})

    assert seen and all(seen)
