from fastapi.testclient import TestClient


def _register(client: TestClient, username: str, password: str):
    return client.post("/register", data={"username": username, "password": password})


def _login(client: TestClient, username: str, password: str):
    return client.post("/login", data={"username": username, "password": password})


def _token(app, client: TestClient):
    return app.state.signer.unsign(client.cookies.get(app.state.settings.cookie_name, ""))


def test_landing_page_for_anonymous(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/html")
    assert "/register" in r.text


def test_forms_are_served(client):
    assert client.get("/register").status_code == 200
    assert client.get("/login").status_code == 200


def test_register_authenticates_immediately(client):
    r = _register(client, "alice", "pw1")
    assert r.status_code == 302
    assert r.headers["location"] == "/lobby"

    r = client.get("/")
    assert r.status_code == 302
    assert r.headers["location"] == "/lobby"
    assert client.get("/lobby").status_code == 200


def test_session_cookie_flags(client):
    r = _register(client, "alice", "pw1")
    cookie = r.headers["set-cookie"].lower()
    assert "httponly" in cookie
    assert "samesite=lax" in cookie


def test_full_scenario(app, client):
    r = _register(client, "alice", "pw1")
    assert r.status_code == 302 and r.headers["location"] == "/lobby"
    original_hash = app.state.users.find_by_username("alice").password_hash

    client.get("/logout")
    r = _register(client, "alice", "pw2")
    assert r.status_code == 200
    assert "Username already taken." in r.text
    assert app.state.users.find_by_username("alice").password_hash == original_hash

    r = _login(client, "alice", "wrongpw")
    assert r.status_code == 200
    assert "Invalid login." in r.text

    r = _login(client, "alice", "pw1")
    assert r.status_code == 302 and r.headers["location"] == "/lobby"

    r = client.get("/api/users")
    assert r.status_code == 200
    assert r.json()["current"]["username"] == "alice"


def test_duplicate_registration_leaves_other_sessions_alone(app, client, other_client):
    _register(client, "alice", "pw1")
    r = _register(other_client, "alice", "pw2")
    assert "Username already taken." in r.text
    assert client.get("/lobby").status_code == 200
    assert other_client.get("/lobby").headers["location"] == "/login"


def test_invalid_login_message_is_identical(client):
    _register(client, "alice", "pw1")
    client.get("/logout")

    wrong_pw = _login(client, "alice", "nope")
    unknown = _login(client, "mallory", "nope")
    assert wrong_pw.status_code == unknown.status_code == 200
    assert wrong_pw.text.replace("alice", "") == unknown.text.replace("mallory", "")

    r = client.get("/lobby")
    assert r.status_code == 302
    assert r.headers["location"] == "/login"


def test_json_body_is_accepted(client):
    r = client.post("/register", json={"username": "bob", "password": "pw"})
    assert r.status_code == 302
    client.get("/logout")
    r = client.post("/login", json={"username": "bob", "password": "pw"})
    assert r.status_code == 302
    assert r.headers["location"] == "/lobby"


def test_missing_fields_are_rejected(client, app):
    r = client.post("/register", data={"username": "bob"})
    assert r.status_code == 400
    assert app.state.users.find_by_username("bob") is None
    assert client.post("/login", json={"password": "x"}).status_code == 400


def test_gated_routes_redirect_to_login(client):
    for method, path in (("get", "/lobby"), ("get", "/api/users"), ("post", "/delete")):
        r = getattr(client, method)(path)
        assert r.status_code == 302
        assert r.headers["location"] == "/login"


def test_api_users_partitions_self_and_others(client, other_client):
    _register(other_client, "bob", "pw")
    _register(client, "alice", "pw")

    data = client.get("/api/users").json()
    me = data["current"]
    assert me["username"] == "alice"
    assert me["id"] not in [u["id"] for u in data["others"]]
    assert [u["username"] for u in data["others"]] == ["bob"]
    assert all("password_hash" not in u for u in data["others"])


def test_login_issues_a_fresh_token(app, client):
    _register(client, "alice", "pw1")
    before = _token(app, client)
    _login(client, "alice", "pw1")
    after = _token(app, client)
    assert before != after
    assert app.state.sessions.get(before) is None


def test_delete_account(app, client, other_client):
    _register(client, "alice", "pw1")
    _login(other_client, "alice", "pw1")
    token = _token(app, client)
    other_token = _token(app, other_client)

    r = client.post("/delete")
    assert r.status_code == 302
    assert r.headers["location"] == "/"

    assert app.state.users.find_by_username("alice") is None
    assert app.state.sessions.get(token) is None
    assert app.state.sessions.get(other_token) is None
    assert client.get("/lobby").headers["location"] == "/login"
    assert other_client.get("/lobby").headers["location"] == "/login"


def test_logout_destroys_session(app, client):
    _register(client, "alice", "pw1")
    token = _token(app, client)

    r = client.get("/logout")
    assert r.status_code == 302
    assert r.headers["location"] == "/"
    assert app.state.sessions.get(token) is None
    assert client.get("/lobby").headers["location"] == "/login"


def test_logout_without_session(client):
    r = client.get("/logout")
    assert r.status_code == 302
    assert r.headers["location"] == "/"


def test_tampered_cookie_is_anonymous(app, client, other_client):
    _register(client, "alice", "pw1")
    name = app.state.settings.cookie_name
    tampered = client.cookies.get(name) + "x"
    r = other_client.get("/lobby", headers={"cookie": f"{name}={tampered}"})
    assert r.headers["location"] == "/login"


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_username_is_stored_as_submitted(app, client, other_client):
    r = _register(client, " alice ", "pw1")
    assert r.status_code == 302
    assert app.state.users.find_by_username(" alice ") is not None

    r = _register(other_client, "alice", "pw2")
    assert r.status_code == 302
    assert [u.username for u in app.state.users.list_all()] == [" alice ", "alice"]


def test_blank_username_is_rejected(app, client):
    r = _register(client, "   ", "pw1")
    assert r.status_code == 400
    assert app.state.users.list_all() == []


def test_unexpected_integrity_error_is_a_server_error(app, monkeypatch):
    from sqlalchemy.exc import IntegrityError
    from sqlalchemy.orm import Session

    def failing_flush(self, objects=None):
        raise IntegrityError("INSERT INTO users", {}, Exception("NOT NULL constraint failed: users.password_hash"))

    monkeypatch.setattr(Session, "flush", failing_flush)
    client = TestClient(app, follow_redirects=False, raise_server_exceptions=False)
    r = client.post("/register", data={"username": "alice", "password": "pw1"})
    assert r.status_code == 500
    assert "Username already taken." not in r.text
