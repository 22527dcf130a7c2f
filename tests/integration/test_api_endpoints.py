import json

import pytest
from fastapi.testclient import TestClient

from tests.fakes import TEST_EMAIL, decode_size


def _files(data: bytes, mime: str = "image/png", name: str = "sample.png"):
    return {"image": (name, data, mime)}


def test_root_and_health(client):
    assert client.get("/").json()["service"] == "imagepipe-backend"
    assert client.get("/health").json() == {"status": "healthy"}


def test_lifespan_opens_request_logger(client, request_log):
    assert request_log.opened


def test_resize(client, auth_header, make_image, request_log):
    r = client.post(
        "/images/resize",
        headers=auth_header,
        files=_files(make_image(200, 100)),
        data={"width": "100", "height": "100", "fit": "INSIDE"},
    )
    assert r.status_code == 200, r.text
    assert r.headers["content-type"] == "image/png"
    assert r.headers["content-disposition"] == 'attachment; filename="processed-image.png"'
    assert decode_size(r.content) == (100, 50)

    [entry] = request_log.entries
    data = entry.to_dict()
    assert data["endpoint"] == "/images/resize"
    assert data["result"] == "success"
    assert data["user"] == TEST_EMAIL
    assert data["params"] == {"width": 100.0, "height": 100.0, "fit": "inside"}


def test_resize_twice_gives_identical_dimensions(client, auth_header, make_image):
    src = make_image(150, 90)
    sizes = []
    for _ in range(2):
        r = client.post(
            "/images/resize",
            headers=auth_header,
            files=_files(src),
            data={"width": "100", "height": "100"},
        )
        assert r.status_code == 200
        sizes.append(decode_size(r.content))
    assert sizes == [(100, 100), (100, 100)]


def test_rotate_keeps_upload_type(client, auth_header, make_image):
    r = client.post(
        "/images/rotate",
        headers=auth_header,
        files=_files(make_image(100, 50, fmt="JPEG"), "image/jpeg", "photo.jpg"),
        data={"angle": "90"},
    )
    assert r.status_code == 200, r.text
    assert r.headers["content-type"] == "image/jpeg"
    assert 'filename="processed-image.jpg"' in r.headers["content-disposition"]
    assert decode_size(r.content) == (50, 100)


def test_filter(client, auth_header, make_image):
    r = client.post("/images/filter", headers=auth_header, files=_files(make_image()), data={"filter": "grayscale"})
    assert r.status_code == 200, r.text


def test_format_sets_content_type_and_filename(client, auth_header, make_image):
    r = client.post("/images/format", headers=auth_header, files=_files(make_image()), data={"format": "WEBP"})
    assert r.status_code == 200, r.text
    assert r.headers["content-type"] == "image/webp"
    assert 'filename="processed-image.webp"' in r.headers["content-disposition"]
    assert r.content[:4] == b"RIFF" and r.content[8:12] == b"WEBP"


def test_pipeline_rotate_then_png(client, auth_header, make_image, request_log):
    pipeline = [{"op": "rotate", "angle": 90}, {"op": "format", "format": "png"}]
    r = client.post(
        "/images/process",
        headers=auth_header,
        files=_files(make_image(100, 50, fmt="JPEG"), "image/jpeg", "photo.jpg"),
        data={"pipeline": json.dumps(pipeline)},
    )
    assert r.status_code == 200, r.text
    assert r.headers["content-type"] == "image/png"
    assert r.headers["content-disposition"].endswith('.png"')
    assert decode_size(r.content) == (50, 100)
    assert [e.params for e in request_log.entries] == [{"angle": 90}, {"format": "png"}]
    assert all(e.endpoint == "/images/process" for e in request_log.entries)


def test_pipeline_format_first_is_rejected_before_running(client, auth_header, make_image, request_log):
    pipeline = [{"op": "format", "format": "jpeg"}, {"op": "rotate", "angle": 90}]
    r = client.post(
        "/images/process",
        headers=auth_header,
        files=_files(make_image()),
        data={"pipeline": json.dumps(pipeline)},
    )
    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "INVALID_PIPELINE"
    assert set(body) == {"error", "code", "timestamp"}
    assert request_log.entries == []


@pytest.mark.parametrize(
    "pipeline,code",
    [
        ("not json", "INVALID_PIPELINE"),
        ("[]", "INVALID_PIPELINE"),
        (json.dumps([{"op": "filter", "filter": "blur"}] * 11), "INVALID_PIPELINE"),
        (json.dumps([{"op": "crop"}]), "UNKNOWN_OPERATION"),
        (json.dumps([{"op": "rotate", "angle": 45}]), "INVALID_PARAMS"),
        (json.dumps([{"op": "resize", "width": 10}]), "MISSING_PARAMS"),
    ],
)
def test_pipeline_validation_errors(client, auth_header, make_image, pipeline, code):
    r = client.post("/images/process", headers=auth_header, files=_files(make_image()), data={"pipeline": pipeline})
    assert r.status_code == 400
    assert r.json()["code"] == code


def test_pipeline_field_is_required(client, auth_header, make_image):
    r = client.post("/images/process", headers=auth_header, files=_files(make_image()))
    assert r.status_code == 400
    assert r.json()["code"] == "MISSING_PARAMS"


def test_missing_token(client, make_image, request_log):
    r = client.post("/images/rotate", files=_files(make_image()), data={"angle": "90"})
    assert r.status_code == 401
    assert r.json()["code"] == "MISSING_TOKEN"
    assert [e.result for e in request_log.entries] == ["error"]
    assert "user" not in request_log.entries[0].to_dict()


def test_invalid_token(client, make_image, request_log, auth_service):
    r = client.post(
        "/images/rotate",
        headers={"Authorization": "Bearer nope"},
        files=_files(make_image()),
        data={"angle": "90"},
    )
    assert r.status_code == 401
    assert r.json()["code"] == "INVALID_TOKEN"
    assert auth_service.verified == ["nope"]
    assert [e.level for e in request_log.entries] == ["error"]


@pytest.mark.parametrize(
    "data,code",
    [
        ({"width": "0", "height": "10"}, "INVALID_PARAMS"),
        ({"width": "9000", "height": "10"}, "INVALID_PARAMS"),
        ({"width": "10", "height": "10", "fit": "xyz"}, "INVALID_PARAMS"),
        ({"width": "10"}, "MISSING_PARAMS"),
    ],
)
def test_resize_param_errors(client, auth_header, make_image, request_log, data, code):
    r = client.post("/images/resize", headers=auth_header, files=_files(make_image()), data=data)
    assert r.status_code == 400
    assert r.json()["code"] == code
    assert request_log.entries == []


def test_missing_image(client, auth_header):
    r = client.post("/images/rotate", headers=auth_header, data={"angle": "90"})
    assert r.status_code == 400
    assert r.json()["code"] == "MISSING_IMAGE"


def test_unsupported_media_type(client, auth_header):
    r = client.post(
        "/images/rotate",
        headers=auth_header,
        files=_files(b"GIF89a", "image/gif", "a.gif"),
        data={"angle": "90"},
    )
    assert r.status_code == 415
    assert r.json()["code"] == "UNSUPPORTED_MEDIA_TYPE"


def test_payload_too_large(client, auth_header, make_image, monkeypatch):
    monkeypatch.setenv("MAX_UPLOAD_BYTES", "16")
    r = client.post("/images/rotate", headers=auth_header, files=_files(make_image(32, 32)), data={"angle": "90"})
    assert r.status_code == 413
    assert r.json()["code"] == "PAYLOAD_TOO_LARGE"


def test_corrupt_image_is_an_operation_error(client, auth_header, request_log):
    r = client.post(
        "/images/rotate",
        headers=auth_header,
        files=_files(b"\x89PNG not really"),
        data={"angle": "90"},
    )
    assert r.status_code == 422
    assert r.json()["code"] == "OPERATION_FAILED"
    assert request_log.entries[0].result == "error"


def test_response_type_follows_decoded_bytes(client, auth_header, make_image):
    r = client.post(
        "/images/rotate",
        headers=auth_header,
        files=_files(make_image(10, 20, fmt="PNG"), "image/jpeg", "mislabelled.jpg"),
        data={"angle": "90"},
    )
    assert r.status_code == 200, r.text
    assert r.headers["content-type"] == "image/png"
    assert r.headers["content-disposition"] == 'attachment; filename="processed-image.png"'
    assert decode_size(r.content) == (20, 10)


class _FailingRotate:
    async def execute(self, image: bytes, params) -> bytes:
        raise RuntimeError("secret detail")


def test_unexpected_failure_is_internal_error_without_details(auth_service, request_log, auth_header, make_image):
    from src.domain.entities.operation import OperationKind
    from src.domain.services.operation_registry import OperationRegistry
    from src.main import create_app

    registry = OperationRegistry.default()
    registry.register(OperationKind.ROTATE, _FailingRotate())
    app = create_app(auth_service=auth_service, request_logger=request_log, registry=registry)
    with TestClient(app, raise_server_exceptions=False) as c:
        r = c.post("/images/rotate", headers=auth_header, files=_files(make_image()), data={"angle": "90"})

    assert r.status_code == 500
    body = r.json()
    assert set(body) == {"error", "code", "timestamp"}
    assert body["code"] == "INTERNAL_ERROR"
    assert "secret detail" not in r.text
    assert [e.result for e in request_log.entries] == ["error"]


class TestAuthRoutes:
    """Register / login against the local-mode Supabase auth service."""

    @pytest.fixture()
    def local_client(self, request_log):
        from src.infrastructure.auth.supabase_auth import SupabaseAuthService
        from src.main import create_app

        app = create_app(auth_service=SupabaseAuthService(None), request_logger=request_log)
        with TestClient(app) as c:
            yield c

    def test_register_login_and_use_token(self, local_client, make_image, request_log):
        creds = {"email": "new@example.com", "password": "pw"}
        assert local_client.post("/auth/register", json=creds).status_code == 201

        dup = local_client.post("/auth/register", json=creds)
        assert dup.status_code == 400
        assert dup.json()["code"] == "EMAIL_EXISTS"

        r = local_client.post("/auth/login", json=creds)
        assert r.status_code == 200
        token = r.json()["token"]

        r = local_client.post(
            "/images/filter",
            headers={"Authorization": f"Bearer {token}"},
            files=_files(make_image()),
            data={"filter": "blur"},
        )
        assert r.status_code == 200, r.text
        assert request_log.entries[-1].user == "new@example.com"

    @pytest.mark.parametrize("body", [{}, {"email": "a@b.c"}, {"password": "x"}, {"email": " ", "password": "x"}])
    def test_missing_fields(self, local_client, body):
        r = local_client.post("/auth/login", json=body)
        assert r.status_code == 400
        assert r.json()["code"] == "MISSING_FIELDS"

    def test_wrong_password(self, local_client):
        local_client.post("/auth/register", json={"email": "x@y.z", "password": "right"})
        r = local_client.post("/auth/login", json={"email": "x@y.z", "password": "wrong"})
        assert r.status_code == 401
        assert r.json()["code"] == "INVALID_CREDENTIALS"
