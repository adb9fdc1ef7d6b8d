import io

import pytest

from app import app
from veiltext import service
from veiltext.encoder import encode
from veiltext.schemes import get_scheme


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def test_characters_endpoint(client):
    resp = client.get("/api/characters")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["count"] == 182
    assert data["characters"][0]["code"] == "U+200B"


def test_schemes_endpoint(client):
    resp = client.get("/api/schemes")
    data = resp.get_json()
    ids = [scheme["id"] for scheme in data["schemes"]]
    assert ids[0] == "unicode_tags"
    assert "steganographr" in ids
    fixed4 = next(scheme for scheme in data["schemes"] if scheme["id"] == "fixed4_zw")
    assert "stegcloak" in fixed4["aliases"]


def test_encode_then_decode(client):
    resp = client.post(
        "/api/encode",
        json={"message": "hi!", "scheme": "binary_8", "carrier_text": "cover text"},
    )
    assert resp.status_code == 200
    encoded = resp.get_json()
    assert encoded["invisible_count"] == 24
    assert encoded["assignment"] == {"0": "U+200B", "1": "U+200C"}

    resp = client.post("/api/decode", json={"text": encoded["text"], "limit": 3})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["best"]["text"] == "hi!"
    assert data["best"]["is_text"] is True
    assert len(data["candidates"]) <= 3


def test_encode_hex_message_with_tags(client):
    resp = client.post(
        "/api/encode", json={"message": "6869", "message_format": "hex", "scheme": "tags"}
    )
    assert resp.status_code == 200
    assert resp.get_json()["text"] == chr(0xE0068) + chr(0xE0069)


def test_encode_form_assignment_json(client):
    resp = client.post(
        "/api/encode",
        data={
            "message": "A",
            "scheme": "binary_8",
            "assignment": '{"0": "U+2060", "1": "U+200D"}',
            "position": "start",
        },
    )
    assert resp.status_code == 200
    text = resp.get_json()["text"]
    assert text == "\u2060\u200d\u2060\u2060\u2060\u2060\u2060\u200d"


def test_decode_without_invisible_chars(client):
    resp = client.post("/api/decode", json={"text": "nothing hidden"})
    assert resp.status_code == 404
    assert resp.get_json()["kind"] == "NoInvisibleCharactersFound"


def test_unknown_scheme(client):
    resp = client.post("/api/encode", json={"message": "x", "scheme": "morse"})
    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "UnsupportedScheme"


def test_insufficient_carrier(client):
    resp = client.post(
        "/api/encode", json={"message": "hello", "scheme": "segmented_8", "carrier_text": "ab"}
    )
    assert resp.status_code == 422
    assert resp.get_json()["kind"] == "InsufficientCarrier"


def test_malformed_assignment(client):
    resp = client.post(
        "/api/encode",
        json={"message": "x", "scheme": "binary_8", "assignment": {"0": "U+200B"}},
    )
    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "MalformedAssignment"


def test_missing_text(client):
    resp = client.post("/api/analyze", json={})
    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "InvalidRequest"


def test_analyze_text(client):
    resp = client.post("/api/analyze", json={"text": "a\u200b\u200cb"})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["invisible"] == 2
    assert data["visible"] == 2
    assert len(data["runs"]) == 1


def test_dump_uploaded_file(client):
    upload = io.BytesIO("a\u200bb".encode("utf-16"))
    resp = client.post(
        "/api/dump",
        data={"file": (upload, "sample.txt")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["count"] == 1
    assert data["entries"][0]["code"] == "U+200B"


def test_decode_upload_keeps_leading_feff(client):
    stego = encode(
        b"hello", get_scheme("steganographr"), carrier_text="cover", position="start"
    )
    assert stego.startswith("\ufeff")
    resp = client.post(
        "/api/decode",
        data={
            "file": (io.BytesIO(stego.encode("utf-8")), "stego.txt"),
            "schemes": "steganographr",
        },
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    assert resp.get_json()["best"]["text"] == "hello"


def test_unexpected_failure_reports_kind(client, monkeypatch):
    def broken():
        raise RuntimeError("registry unavailable")

    monkeypatch.setattr(service, "list_schemes", broken)
    resp = client.get("/api/schemes")
    assert resp.status_code == 500
    data = resp.get_json()
    assert data["kind"] == "InternalError"
    assert "registry unavailable" in data["error"]
