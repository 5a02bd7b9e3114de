import pytest


def test_point_marker_has_null_end_time(make_marker, session):
    response = make_marker(5)
    assert response.status_code == 201
    body = response.json()
    assert body["start_time"] == 5
    assert body["end_time"] is None
    assert body["session_id"] == session["id"]


def test_range_marker_round_trips_exactly(client, session, make_marker):
    created = make_marker(10, 20).json()
    view = client.get(
        f"/api/sessions/{session['id']}", params={"token": session["creator_token"]}
    ).json()
    marker = next(m for m in view["markers"] if m["id"] == created["id"])
    assert marker["start_time"] == 10
    assert marker["end_time"] == 20


def test_overlapping_range_is_rejected(make_marker):
    assert make_marker(5, 15).status_code == 201
    response = make_marker(10, 20)
    assert response.status_code == 409
    assert response.json()["code"] == "conflict"


@pytest.mark.parametrize("start, end", [(0, 5), (15, 30), (0, 5.5)])
def test_adjacent_or_disjoint_ranges_are_accepted(make_marker, start, end):
    assert make_marker(5.5, 15).status_code == 201
    assert make_marker(start, end).status_code == 201


def test_point_markers_never_conflict(make_marker):
    assert make_marker(5, 15).status_code == 201
    assert make_marker(10).status_code == 201
    assert make_marker(10).status_code == 201
    assert make_marker(5).status_code == 201


def test_overlap_is_scoped_to_the_session(client, make_marker):
    other = client.post("/api/sessions", json={"youtube_url": "https://youtu.be/other"}).json()
    assert make_marker(5, 15).status_code == 201
    assert make_marker(5, 15, target=other).status_code == 201


@pytest.mark.parametrize(
    "payload",
    [
        {"start_time": -1},
        {"start_time": 10, "end_time": 10},
        {"start_time": 10, "end_time": 3},
        {"start_time": "soon"},
        {},
    ],
)
def test_invalid_marker_input(client, session, payload):
    response = client.post(
        f"/api/sessions/{session['id']}/markers",
        params={"token": session["creator_token"]},
        json=payload,
    )
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


def test_helper_cannot_create_markers(make_marker, session):
    response = make_marker(1, token=session["helper_token"])
    assert response.status_code == 403


def test_update_marker_defaults_to_current_values(client, session, make_marker):
    marker = make_marker(10, 20).json()
    token = {"token": session["creator_token"]}

    moved = client.put(f"/api/markers/{marker['id']}", params=token, json={"start_time": 12})
    assert moved.status_code == 200
    assert (moved.json()["start_time"], moved.json()["end_time"]) == (12, 20)

    stretched = client.put(f"/api/markers/{marker['id']}", params=token, json={"end_time": 25})
    assert (stretched.json()["start_time"], stretched.json()["end_time"]) == (12, 25)

    untouched = client.put(f"/api/markers/{marker['id']}", params=token, json={})
    assert (untouched.json()["start_time"], untouched.json()["end_time"]) == (12, 25)


def test_update_marker_revalidates_bounds(client, session, make_marker):
    marker = make_marker(10, 20).json()
    response = client.put(
        f"/api/markers/{marker['id']}",
        params={"token": session["creator_token"]},
        json={"start_time": 25},
    )
    assert response.status_code == 400


def test_update_marker_rejects_new_overlap_but_not_itself(client, session, make_marker):
    first = make_marker(0, 10).json()
    second = make_marker(20, 30).json()
    token = {"token": session["creator_token"]}

    clash = client.put(f"/api/markers/{second['id']}", params=token, json={"start_time": 5})
    assert clash.status_code == 409

    shrink_self = client.put(f"/api/markers/{first['id']}", params=token, json={"end_time": 8})
    assert shrink_self.status_code == 200


def test_update_point_marker_into_range(client, session, make_marker):
    point = make_marker(3).json()
    response = client.put(
        f"/api/markers/{point['id']}",
        params={"token": session["creator_token"]},
        json={"end_time": 4.5},
    )
    assert response.status_code == 200
    assert response.json()["end_time"] == 4.5


def test_update_marker_requires_creator_and_existing_marker(client, session, make_marker):
    marker = make_marker(1, 2).json()
    as_helper = client.put(
        f"/api/markers/{marker['id']}",
        params={"token": session["helper_token"]},
        json={"start_time": 0},
    )
    missing = client.put(
        "/api/markers/9999", params={"token": session["creator_token"]}, json={}
    )
    assert as_helper.status_code == 403
    assert missing.status_code == 404


def test_delete_marker_cascades_posts_and_audio(client, session, settings, make_marker, make_post):
    import os

    marker = make_marker(1, 2).json()
    keep = make_marker(5).json()
    helper_post = make_post(marker["id"], session["helper_token"], audio=b"ID3").json()
    make_post(keep["id"], session["helper_token"], audio=b"ID3keep")

    response = client.delete(
        f"/api/markers/{marker['id']}", params={"token": session["creator_token"]}
    )

    assert response.status_code == 200
    remaining = os.listdir(settings.audio_dir)
    assert helper_post["audio_filename"] not in remaining
    assert len(remaining) == 1
    view = client.get(
        f"/api/sessions/{session['id']}", params={"token": session["creator_token"]}
    ).json()
    assert [m["id"] for m in view["markers"]] == [keep["id"]]


def test_delete_marker_requires_creator(client, session, make_marker):
    marker = make_marker(1).json()
    response = client.delete(
        f"/api/markers/{marker['id']}", params={"token": session["helper_token"]}
    )
    assert response.status_code == 403
