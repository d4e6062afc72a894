from conftest import register


def test_follow_and_public_profile(client):
    _, anna = register(client, "Anna")
    bob_id, _ = register(client, "Bob")

    resp = client.post(f"/users/{bob_id}/follow", headers=anna)
    assert resp.status_code == 200

    profile = client.get(f"/users/{bob_id}", headers=anna).json()
    assert profile["followers_count"] == 1
    assert profile["following_count"] == 0
    assert profile["is_following"] is True
    assert profile["username"] == "bob"

    anonymous = client.get(f"/users/{bob_id}").json()
    assert anonymous["is_following"] is False


def test_duplicate_follow_conflicts_and_keeps_one_edge(client):
    _, anna = register(client, "Anna")
    bob_id, bob = register(client, "Bob")

    assert client.post(f"/users/{bob_id}/follow", headers=anna).status_code == 200
    resp = client.post(f"/users/{bob_id}/follow", headers=anna)
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Already following this user"

    followers = client.get(f"/users/{bob_id}/followers").json()
    assert len(followers["users"]) == 1

    # Only the first follow notified Bob
    notes = client.get("/notifications", headers=bob).json()
    assert [n["type"] for n in notes] == ["follow"]


def test_follow_self_and_missing_user(client):
    anna_id, anna = register(client, "Anna")
    assert client.post(f"/users/{anna_id}/follow", headers=anna).status_code == 400
    assert client.post("/users/nobody/follow", headers=anna).status_code == 404
    assert client.post(f"/users/{anna_id}/follow").status_code == 401


def test_unfollow_is_silent_when_not_following(client):
    _, anna = register(client, "Anna")
    bob_id, _ = register(client, "Bob")

    assert client.post(f"/users/{bob_id}/unfollow", headers=anna).status_code == 200

    client.post(f"/users/{bob_id}/follow", headers=anna)
    assert client.post(f"/users/{bob_id}/unfollow", headers=anna).status_code == 200
    assert client.get(f"/users/{bob_id}").json()["followers_count"] == 0


def test_following_lists(client):
    anna_id, anna = register(client, "Anna")
    bob_id, _ = register(client, "Bob")
    carl_id, _ = register(client, "Carl")
    client.post(f"/users/{bob_id}/follow", headers=anna)
    client.post(f"/users/{carl_id}/follow", headers=anna)

    mine = client.get("/users/me/following", headers=anna).json()
    assert {u["id"] for u in mine["users"]} == {bob_id, carl_id}

    public = client.get(f"/users/{anna_id}/following").json()
    assert {u["id"] for u in public["users"]} == {bob_id, carl_id}

    paged = client.get(f"/users/{anna_id}/following", params={"limit": 1}).json()
    assert len(paged["users"]) == 1
    assert paged["cursor"] == paged["users"][0]["id"]

    rest = client.get(
        f"/users/{anna_id}/following", params={"limit": 1, "cursor": paged["cursor"]}
    ).json()
    assert len(rest["users"]) == 1
    assert rest["users"][0]["id"] != paged["users"][0]["id"]

    assert client.get("/users/nobody/followers").status_code == 404


def test_search_is_case_insensitive_substring(client):
    _, anna = register(client, "Anna")
    bob_id, _ = register(client, "Bob")
    dan_id, _ = register(client, "Dan")
    client.post(f"/users/{dan_id}/follow", headers=anna)

    results = client.get("/users/search", params={"query": "AN"}, headers=anna).json()
    names = {r["name"]: r for r in results}
    assert set(names) == {"Anna", "Dan"}
    assert names["Dan"]["is_following"] is True
    assert names["Anna"]["is_following"] is False
    assert bob_id not in {r["id"] for r in results}


def test_search_limit_bounds(client):
    for name in ("Anna", "Bob", "Carl"):
        register(client, name)

    assert len(client.get("/users/search", params={"limit": 2}).json()) == 2
    assert len(client.get("/users/search").json()) == 3
    assert client.get("/users/search", params={"limit": 0}).status_code == 400
    assert client.get("/users/search", params={"limit": 101}).status_code == 400


def test_me_and_missing_profile(client):
    anna_id, anna = register(client, "Anna")
    me = client.get("/users/me", headers=anna).json()
    assert me["id"] == anna_id
    assert me["email"] == "anna@example.com"

    assert client.get("/users/nobody").status_code == 404
