import pytest

NEW_VENUE = {
    "name": "Goal Box Turf",
    "description": "5-a-side turf",
    "sports": ["Football"],
    "category": "Football",
    "pricePerHour": 800,
    "address": {"line1": "7 Ring Road", "city": "Nagpur", "state": "MH", "pincode": "440001"},
    "courts": ["Turf A"],
    "openHours": {"open": "07:00", "close": "22:00"},
}


@pytest.fixture
def owner_client(make_user, login):
    make_user("owner@example.com", roles=("FACILITY_OWNER",))
    return login("owner@example.com")


def test_public_search_filters(app, make_user, make_facility):
    owner = make_user("owner@example.com", roles=("FACILITY_OWNER",))
    make_facility(owner, name="Smash Arena", city="Pune", sports=["Badminton"])
    make_facility(owner, name="Goal Turf", city="Mumbai", sports=["Football"])
    make_facility(owner, name="Hidden Courts", city="Pune", is_approved=False)
    make_facility(owner, name="Closed Courts", city="Pune", is_active=False)

    client = app.test_client()
    names = lambda resp: sorted(f["name"] for f in resp.get_json()["facilities"])

    assert names(client.get("/facilities")) == ["Goal Turf", "Smash Arena"]
    assert names(client.get("/facilities?city=pune")) == ["Smash Arena"]
    assert names(client.get("/facilities?sport=foot")) == ["Goal Turf"]
    assert names(client.get("/facilities?q=smash")) == ["Smash Arena"]


def test_search_text_is_matched_literally(app, make_user, make_facility):
    owner = make_user("owner@example.com", roles=("FACILITY_OWNER",))
    make_facility(owner, name="100% Sports")
    make_facility(owner, name="Court_One")
    make_facility(owner, name="Smash Arena")

    client = app.test_client()
    names = lambda resp: sorted(f["name"] for f in resp.get_json()["facilities"])

    assert names(client.get("/facilities", query_string={"q": "%"})) == ["100% Sports"]
    assert names(client.get("/facilities", query_string={"q": "_"})) == ["Court_One"]


def test_get_single_facility_hides_unapproved(app, make_user, make_facility):
    owner = make_user("owner@example.com", roles=("FACILITY_OWNER",))
    hidden = make_facility(owner, is_approved=False)
    resp = app.test_client().get(f"/facilities/{hidden}")
    assert resp.status_code == 404
    assert resp.get_json()["success"] is False


def test_owner_creates_and_lists_facility(owner_client):
    resp = owner_client.post("/facilities", json=NEW_VENUE)
    assert resp.status_code == 201
    facility = resp.get_json()["facility"]
    assert facility["pricePerHour"] == 800.0
    assert facility["openHours"] == {"open": "07:00", "close": "22:00"}
    assert facility["address"]["city"] == "Nagpur"
    assert (facility["rating"], facility["ratingCount"]) == (0, 0)

    mine = owner_client.get("/facilities/mine").get_json()["facilities"]
    assert [f["id"] for f in mine] == [facility["id"]]


def test_create_facility_validation(owner_client):
    resp = owner_client.post("/facilities", json={"name": "No address", "pricePerHour": 100})
    assert resp.status_code == 400

    bad_price = dict(NEW_VENUE, pricePerHour=-1)
    assert owner_client.post("/facilities", json=bad_price).status_code == 400

    bad_hours = dict(NEW_VENUE, openHours={"open": "22:00", "close": "07:00"})
    assert owner_client.post("/facilities", json=bad_hours).status_code == 400


def test_plain_user_cannot_create_facility(make_user, login):
    make_user("player@example.com")
    resp = login("player@example.com").post("/facilities", json=NEW_VENUE)
    assert resp.status_code == 403


def test_update_ignores_rating_fields(owner_client):
    facility_id = owner_client.post("/facilities", json=NEW_VENUE).get_json()["facility"]["id"]
    resp = owner_client.put(f"/facilities/{facility_id}", json={
        "pricePerHour": 900,
        "rating": 5,
        "ratingCount": 100,
        "isApproved": False,
    })
    assert resp.status_code == 200
    facility = resp.get_json()["facility"]
    assert facility["pricePerHour"] == 900.0
    assert (facility["rating"], facility["ratingCount"]) == (0, 0)
    assert facility["isApproved"] is True


def test_only_owner_can_update(owner_client, make_user, login):
    facility_id = owner_client.post("/facilities", json=NEW_VENUE).get_json()["facility"]["id"]
    make_user("rival@example.com", roles=("FACILITY_OWNER",))
    resp = login("rival@example.com").put(f"/facilities/{facility_id}", json={"name": "Mine now"})
    assert resp.status_code == 403
    assert owner_client.put("/facilities/99999", json={"name": "x"}).status_code == 404
