import main as entry


def test_main_configures_logging_and_serves(monkeypatch) -> None:
    called = {}

    monkeypatch.setattr(entry, "configure_logging", lambda: called.setdefault("logging", True))

    def fake_run(app, host, port):
        called["run"] = (app, host, port)

    monkeypatch.setattr(entry.uvicorn, "run", fake_run)
    entry.main()

    assert called["logging"] is True
    assert called["run"] == ("backend.app.main:app", entry.HOST, entry.PORT)
