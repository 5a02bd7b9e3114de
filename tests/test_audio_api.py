import pytest


@pytest.fixture
def stored_audio(make_marker, make_post, session) -> str:
    marker = make_marker(1).json()
    post = make_post(marker["id"], session["helper_token"], audio=b"ID3sound").json()
    return post["audio_filename"]


@pytest.mark.parametrize("prefix", ["/api/audio", "/audio"])
def test_audio_is_served_without_token(client, stored_audio, prefix):
    response = client.get(f"{prefix}/{stored_audio}")

    assert response.status_code == 200
    assert response.content == b"ID3sound"
    assert response.headers["content-type"] == "audio/mpeg"
    assert "max-age=31536000" in response.headers["cache-control"]


def test_unknown_audio_is_404(client):
    response = client.get("/api/audio/missing.mp3")
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


@pytest.mark.parametrize("name", ["..", ".hidden.mp3", "..%5Csecret.db"])
def test_traversal_names_are_rejected(client, name):
    response = client.get(f"/api/audio/{name}")
    assert response.status_code in (400, 404)
    assert response.headers["content-type"].startswith("application/json")


def test_audio_outside_the_audio_dir_is_not_reachable(client, settings, tmp_path):
    (tmp_path / "secret.txt").write_text("top secret")
    response = client.get("/api/audio/..%2Fsecret.txt")
    assert response.status_code in (400, 404)
    assert b"top secret" not in response.content
