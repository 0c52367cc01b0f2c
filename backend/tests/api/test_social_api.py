import pytest


def _headers(user_id: str) -> dict[str, str]:
	return {"X-User-Id": user_id}


@pytest.mark.asyncio
async def test_friend_request_flow(api_client, store):
	alice = store.add_user("alice")
	bob = store.add_user("bob")

	response = await api_client.post("/friends/requests", json={"receiver_id": bob}, headers=_headers(alice))
	assert response.status_code == 201
	friendship_id = response.json()["friendship"]["id"]
	assert response.json()["auto_accepted"] is False

	received = await api_client.get("/friends/requests/received", headers=_headers(bob))
	assert [row["user"]["id"] for row in received.json()] == [alice]

	forbidden = await api_client.post(f"/friends/requests/{friendship_id}/accept", headers=_headers(alice))
	assert forbidden.status_code == 403
	assert forbidden.json()["detail"] == "not_request_receiver"

	accepted = await api_client.post(f"/friends/requests/{friendship_id}/accept", headers=_headers(bob))
	assert accepted.status_code == 200
	assert accepted.json()["status"] == "accepted"

	status = await api_client.get(f"/users/{bob}/friendship", headers=_headers(alice))
	assert status.json()["status"] == "accepted"

	friends = await api_client.get("/friends", headers=_headers(alice))
	assert friends.json()["pagination"]["total"] == 1

	removed = await api_client.delete(f"/friends/{bob}", headers=_headers(alice))
	assert removed.status_code == 204
	follow_status = await api_client.get(f"/users/{bob}/follow-status", headers=_headers(alice))
	assert follow_status.json()["is_following"] is False


@pytest.mark.asyncio
async def test_conflicts_map_to_bad_request(api_client, store):
	alice = store.add_user("alice")
	bob = store.add_user("bob")
	await api_client.post("/friends/requests", json={"receiver_id": bob}, headers=_headers(alice))

	again = await api_client.post("/friends/requests", json={"receiver_id": bob}, headers=_headers(alice))
	assert again.status_code == 400
	assert again.json()["detail"] == "already_requested"

	self_request = await api_client.post("/friends/requests", json={"receiver_id": alice}, headers=_headers(alice))
	assert self_request.status_code == 400
	assert self_request.json()["detail"] == "self_target"


@pytest.mark.asyncio
async def test_follow_endpoints(api_client, store):
	alice = store.add_user("alice")
	bob = store.add_user("bob")

	first = await api_client.post(f"/users/{bob}/follow", headers=_headers(alice))
	assert first.status_code == 201
	assert first.json() == {"following": True, "friendship_created": False}
	mutual = await api_client.post(f"/users/{alice}/follow", headers=_headers(bob))
	assert mutual.json()["friendship_created"] is True

	followers = await api_client.get(f"/users/{bob}/followers", headers=_headers(alice))
	assert [row["user"]["id"] for row in followers.json()["items"]] == [alice]

	unfollow = await api_client.delete(f"/users/{bob}/follow", headers=_headers(alice))
	assert unfollow.json() == {"following": False, "friendship_removed": True}

	missing = await api_client.delete(f"/users/{bob}/follow", headers=_headers(alice))
	assert missing.status_code == 404
	assert missing.json()["detail"] == "not_following"


@pytest.mark.asyncio
async def test_page_follow_endpoints(api_client, store):
	alice = store.add_user("alice")
	page = store.add_page(store.add_user("owner"), "Garden")

	followed = await api_client.post(f"/pages/{page}/follow", headers=_headers(alice))
	assert followed.status_code == 201
	assert followed.json() == {"page_id": page, "following": True}
	unfollowed = await api_client.delete(f"/pages/{page}/follow", headers=_headers(alice))
	assert unfollowed.json()["following"] is False


@pytest.mark.asyncio
async def test_invalid_ids_and_missing_auth(api_client, store):
	alice = store.add_user("alice")

	invalid = await api_client.post("/users/not-a-uuid/follow", headers=_headers(alice))
	assert invalid.status_code == 422

	unauthenticated = await api_client.get("/friends")
	assert unauthenticated.status_code == 401
	assert unauthenticated.json()["detail"] == "invalid_token"

	unknown = await api_client.post(
		"/users/00000000-0000-0000-0000-000000000001/follow", headers=_headers(alice)
	)
	assert unknown.status_code == 404
	assert unknown.json()["detail"] == "user_not_found"


@pytest.mark.asyncio
async def test_uppercase_caller_id_is_treated_as_same_user(api_client, store):
	alice = store.add_user("alice")
	bob = store.add_user("bob")

	own = await api_client.post(f"/users/{alice}/follow", headers=_headers(alice.upper()))
	assert own.status_code == 400
	assert own.json()["detail"] == "self_target"

	sent = await api_client.post("/friends/requests", json={"receiver_id": bob}, headers=_headers(alice))
	friendship_id = sent.json()["friendship"]["id"]
	accepted = await api_client.post(
		f"/friends/requests/{friendship_id}/accept", headers=_headers(bob.upper())
	)
	assert accepted.status_code == 200
	assert accepted.json()["status"] == "accepted"

	garbage = await api_client.get("/friends", headers=_headers("alice"))
	assert garbage.status_code == 401
