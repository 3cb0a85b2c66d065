def create_user(client, name="Jane Doe", email="jane@example.com", role="labour"):
    return client.post("/api/users", json={"name": name, "email": email, "role": role})


def test_create_get_and_duplicate_email(client):
    r = create_user(client)
    assert r.status_code == 201, r.text
    user = r.json()
    assert user["role"] == "labour"
    assert user["profileCompleted"] is False
    assert user["skills"] == []

    r2 = client.get(f"/api/users/{user['id']}")
    assert r2.status_code == 200
    assert r2.json()["email"] == "jane@example.com"

    dup = create_user(client, name="Other Jane")
    assert dup.status_code == 409
    assert dup.json()["code"] == "CONFLICT"

    listed = client.get("/api/users").json()
    assert [u["id"] for u in listed] == [user["id"]]


def test_create_rejects_bad_role(client):
    r = create_user(client, role="admin")
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_ERROR"


def test_unknown_user_404(client):
    r = client.get("/api/users/nope")
    assert r.status_code == 404
    assert r.json() == {"error": "User not found", "code": "NOT_FOUND"}


def test_sign_in_matches_name_case_insensitively(client):
    user = create_user(client).json()
    ok = client.post("/api/users/sign-in", json={"name": "  jane doe", "email": "jane@example.com "})
    assert ok.status_code == 200, ok.text
    assert ok.json()["id"] == user["id"]

    bad = client.post("/api/users/sign-in", json={"name": "John", "email": "jane@example.com"})
    assert bad.status_code == 401

    unknown = client.post("/api/users/sign-in", json={"name": "Jane Doe", "email": "who@example.com"})
    assert unknown.status_code == 401


def test_profile_completed_for_labour_needs_skills_and_experience(client):
    user = create_user(client).json()
    url = f"/api/users/{user['id']}"

    r = client.put(url, json={"location": "London", "bio": "Plumber for 10 years"})
    assert r.status_code == 200, r.text
    assert r.json()["profileCompleted"] is False

    r = client.put(url, json={"skills": ["plumbing"], "yearsOfExperience": 10})
    body = r.json()
    assert body["profileCompleted"] is True
    assert body["skills"] == ["plumbing"]
    assert body["location"] == "London"

    # clearing the bio drops the flag again
    r = client.put(url, json={"bio": None})
    assert r.json()["bio"] is None
    assert r.json()["profileCompleted"] is False


def test_profile_completed_for_client(client):
    user = create_user(client, email="cara@example.com", role="client").json()
    r = client.put(f"/api/users/{user['id']}", json={"location": "Leeds", "bio": "Homeowner"})
    assert r.json()["profileCompleted"] is True


def test_update_validation(client):
    user = create_user(client).json()
    create_user(client, name="Taken", email="taken@example.com")
    url = f"/api/users/{user['id']}"

    assert client.put(url, json={"yearsOfExperience": -1}).status_code == 400
    assert client.put(url, json={"role": "boss"}).status_code == 400
    assert client.put(url, json={"name": None}).status_code == 400
    assert client.put(url, json={"email": "taken@example.com"}).status_code == 409
    assert client.put("/api/users/missing", json={"bio": "x"}).status_code == 404
