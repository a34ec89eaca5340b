import pytest

from app.config import Settings


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("https://app.example.com", ["https://app.example.com"]),
        (
            "https://app.example.com, http://localhost:5173",
            ["https://app.example.com", "http://localhost:5173"],
        ),
        ('["https://a.example.com", "https://b.example.com"]', [
            "https://a.example.com",
            "https://b.example.com",
        ]),
    ],
)
def test_cors_origin_from_environment(monkeypatch, raw, expected):
    monkeypatch.setenv("CORS_ORIGIN", raw)
    assert Settings(_env_file=None).cors_allow_origins == expected


def test_cors_origin_default():
    assert Settings(_env_file=None).cors_allow_origins == [
        "http://localhost:5173",
        "http://localhost:3000",
    ]


def test_json_body_limit_defaults_to_16kb(monkeypatch):
    assert Settings(_env_file=None).max_json_body_bytes == 16384
    monkeypatch.setenv("MAX_JSON_BODY_BYTES", "1024")
    assert Settings(_env_file=None).max_json_body_bytes == 1024


@pytest.mark.parametrize("workers, expect_import_string", [(1, False), (4, True)])
def test_server_entry_point_uses_import_string_for_workers(
    monkeypatch, workers, expect_import_string
):
    import main

    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda target, **kwargs: calls.append((target, kwargs)))
    monkeypatch.setattr(main.app.state.settings, "server_workers", workers)

    main.main()

    target, kwargs = calls[0]
    assert kwargs["workers"] == workers
    if expect_import_string:
        assert target == "main:app"
    else:
        assert target is main.app
