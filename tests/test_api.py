import itertools
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from pastebin.database import InMemoryStorage
from pastebin.errors import StorageError
from pastebin.main import create_app

from conftest import FIREFOX, PNG, PREFIX


def _paste(client, body, path="/", **kwargs):
    response = client.post(path, content=body, **kwargs)
    assert response.status_code == 201, response.text
    assert response.text.startswith(PREFIX) and response.text.endswith("\n")
    return response.text[len(PREFIX):-1]


def test_create_and_get_paste(client, storage):
    response = client.post("/", content=b"lol")
    assert response.status_code == 201
    assert response.text == f"{PREFIX}AQ\n"

    response = client.get("/AQ")
    assert response.status_code == 200
    assert response.content == b"lol"
    assert response.headers["content-type"].startswith("text/plain")


def test_put_is_post(client, storage):
    response = client.put("/", content=b"via put")
    assert response.status_code == 201
    paste_id = response.text[len(PREFIX):-1]
    assert client.get(f"/{paste_id}").content == b"via put"


def test_stored_entry(client, storage):
    before = datetime.now(timezone.utc)
    _paste(client, b"hello", "/notes.txt")
    after = datetime.now(timezone.utc)

    entry = storage.load(1)
    assert entry.data == b"hello"
    assert entry.file_name == "notes.txt"
    assert entry.mime_type == "text/plain"
    assert before + timedelta(seconds=3600) <= entry.best_before <= after + timedelta(seconds=3600)


def test_expires_never(client, storage):
    _paste(client, b"forever", "/?expires=never")
    assert storage.load(1).best_before is None


def test_expires_timestamp(client, storage):
    ts = int((datetime.now(timezone.utc) + timedelta(days=30)).timestamp())
    _paste(client, b"later", f"/?expires={ts}")
    assert storage.load(1).best_before == datetime.fromtimestamp(ts, tz=timezone.utc)


def test_expires_invalid(client, storage):
    response = client.post("/?expires=soon", content=b"data")
    assert response.status_code == 400
    assert "expires" in response.json()["detail"]
    assert storage.pastes == {}


def test_expired_paste_is_not_found(client):
    ts = int((datetime.now(timezone.utc) - timedelta(minutes=1)).timestamp())
    paste_id = _paste(client, b"stale", f"/?expires={ts}")
    assert client.get(f"/{paste_id}").status_code == 404


def test_binary_paste(client):
    paste_id = _paste(client, PNG, "/pixel.png")
    response = client.get(f"/{paste_id}/pixel.png", headers={"User-Agent": FIREFOX})
    assert response.status_code == 200
    assert response.content == PNG
    assert response.headers["content-type"] == "image/png"


def test_sniffed_mime_type(client, storage):
    _paste(client, PNG)
    assert storage.load(1).mime_type == "image/png"


def test_redirect_to_file_name(client):
    paste_id = _paste(client, b"hello", "/notes.txt")
    response = client.get(f"/{paste_id}", follow_redirects=False)
    assert response.status_code == 301
    assert response.headers["location"] == f"{PREFIX}{paste_id}/notes.txt"


def test_redirect_quotes_file_name(client):
    paste_id = _paste(client, b"hello", "/my%20notes.txt")
    response = client.get(f"/{paste_id}", follow_redirects=False)
    assert response.headers["location"] == f"{PREFIX}{paste_id}/my%20notes.txt"


def test_file_name_in_path_is_ignored_for_lookup(client):
    paste_id = _paste(client, b"hello", "/notes.txt")
    response = client.get(f"/{paste_id}/whatever.bin")
    assert response.status_code == 200
    assert response.content == b"hello"


def test_no_redirect_without_file_name(client):
    paste_id = _paste(client, b"hello")
    response = client.get(f"/{paste_id}", follow_redirects=False)
    assert response.status_code == 200


def test_browser_gets_html(client):
    paste_id = _paste(client, b"<script>alert(1)</script>", "/x.txt")
    response = client.get(f"/{paste_id}/x.txt", headers={"User-Agent": FIREFOX})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in response.text
    assert "<script>alert(1)</script>" not in response.text
    assert "x.txt" in response.text
    assert "text/plain" in response.text


def test_shell_script_is_text(client):
    paste_id = _paste(client, b"echo hi\n", "/run.sh")
    response = client.get(f"/{paste_id}/run.sh", headers={"User-Agent": FIREFOX})
    assert response.headers["content-type"].startswith("text/html")


def test_command_line_client_gets_raw_text(client):
    paste_id = _paste(client, b"<b>raw</b>", "/x.txt")
    response = client.get(f"/{paste_id}/x.txt", headers={"User-Agent": "curl/8.4.0"})
    assert response.text == "<b>raw</b>"
    assert response.headers["content-type"].startswith("text/plain")


def test_invalid_utf8_text_is_served_raw(client, storage):
    paste_id = storage.codec.encode(storage.store(b"\xff\xfe", None, "text/plain", None))
    response = client.get(f"/{paste_id}", headers={"User-Agent": FIREFOX})
    assert response.status_code == 200
    assert response.content == b"\xff\xfe"


def test_unparsable_stored_mime_type(client, storage):
    paste_id = storage.codec.encode(storage.store(b"data", None, "not a mime", None))
    response = client.get(f"/{paste_id}")
    assert response.headers["content-type"].startswith("text/plain")


def test_delete(client):
    paste_id = _paste(client, b"bye")
    assert client.delete(f"/{paste_id}").status_code == 200
    response = client.get(f"/{paste_id}")
    assert response.status_code == 404


def test_delete_by_named_url(client):
    paste_id = _paste(client, b"bye", "/bye.txt")
    assert client.delete(f"/{paste_id}/bye.txt").status_code == 200
    assert client.get(f"/{paste_id}/bye.txt").status_code == 404


def test_post_uses_first_segment_as_file_name(client, storage):
    paste_id = _paste(client, b"x", "/notes.txt/extra")
    entry = storage.load(storage.codec.decode(paste_id))
    assert entry.file_name == "notes.txt"


def test_delete_twice(client):
    paste_id = _paste(client, b"bye")
    assert client.delete(f"/{paste_id}").status_code == 200
    assert client.delete(f"/{paste_id}").status_code == 200


def test_delete_without_id(client):
    response = client.delete("/")
    assert response.status_code == 400
    assert response.json()["detail"] == "ID segment not found in the URL"


def test_delete_malformed_id(client):
    assert client.delete("/not!valid").status_code == 400


def test_unknown_id(client):
    response = client.get("/Zm9v")
    assert response.status_code == 404
    assert response.json()["detail"] == "Id Zm9v not found"


@pytest.mark.parametrize("paste_id", ["a+b", "AAAAAAAAAAAAAAAAAA", "AB"])
def test_malformed_id(client, paste_id):
    assert client.get(f"/{paste_id}").status_code == 400


def test_paste_ids_are_not_shadowed(client, storage):
    # 7767852 encodes to "docs".
    storage._ids = itertools.count(7767852)
    assert _paste(client, b"lol") == "docs"
    response = client.get("/docs")
    assert response.status_code == 200
    assert response.content == b"lol"
    assert client.get("/openapi.json").status_code == 400


def test_method_not_allowed(client):
    assert client.patch("/", content=b"x").status_code == 405
    assert client.patch("/AQ", content=b"x").status_code == 405


def test_too_big_declared(settings):
    storage = SmallStorage()
    client = TestClient(create_app(storage, settings))
    response = client.post("/", content=b"x" * 11)
    assert response.status_code == 413
    assert storage.pastes == {}


def test_too_big_chunked(settings):
    storage = SmallStorage()
    client = TestClient(create_app(storage, settings))
    response = client.post("/", content=iter([b"12345", b"67890", b"1"]))
    assert response.status_code == 413
    assert storage.pastes == {}


def test_limit_is_inclusive(settings):
    storage = SmallStorage()
    client = TestClient(create_app(storage, settings))
    assert client.post("/", content=b"x" * 10).status_code == 201


def test_upload_form(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "<title>Pastebin</title>" in response.text


def test_readme(client):
    response = client.get("/readme")
    assert response.status_code == 200
    assert f"curl --data-binary @notes.txt {PREFIX}notes.txt" in response.text


def test_paste_sh(client):
    response = client.get("/paste.sh")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert f'URL="{PREFIX}"' in response.text


def test_static_file(client):
    response = client.get("/style.css")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/css")
    assert "body" in response.text


def test_health(client):
    response = client.get("/api/healthz")
    assert response.status_code == 200
    assert response.json() == {"ok": True, "backend": "memory"}


def test_storage_errors_are_hidden(settings):
    client = TestClient(create_app(BrokenStorage(), settings))
    response = client.get("/AQ")
    assert response.status_code == 500
    assert response.json() == {"detail": "Internal storage error"}

    response = client.post("/", content=b"data")
    assert response.status_code == 500
    assert PREFIX not in response.text


class SmallStorage(InMemoryStorage):
    def max_data_size(self):
        return 10


class BrokenStorage(InMemoryStorage):
    def _fail(self, *args):
        raise StorageError("secret connection string leaked") from ConnectionError("down")

    store = load = get_file_name = remove = _fail
