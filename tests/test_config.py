import config


def test_env_int_reads_value(monkeypatch) -> None:
    monkeypatch.setenv("PORT", "9443")
    assert config.env_int("PORT", 8080) == 9443


def test_env_int_defaults_when_unset_or_blank(monkeypatch) -> None:
    monkeypatch.delenv("PORT", raising=False)
    assert config.env_int("PORT", 8080) == 8080
    monkeypatch.setenv("PORT", "  ")
    assert config.env_int("PORT", 8080) == 8080


def test_env_int_ignores_garbage(monkeypatch, caplog) -> None:
    monkeypatch.setenv("PORT", "eighty")
    assert config.env_int("PORT", 8080) == 8080
    assert "Ignoring invalid PORT" in caplog.text


def test_env_float(monkeypatch) -> None:
    monkeypatch.setenv("CLOSE_TIMEOUT", "0.5")
    assert config.env_float("CLOSE_TIMEOUT", 5.0) == 0.5
    monkeypatch.setenv("CLOSE_TIMEOUT", "soon")
    assert config.env_float("CLOSE_TIMEOUT", 5.0) == 5.0


def test_env_path_blank_is_unset(monkeypatch) -> None:
    monkeypatch.setenv("SSL_KEY_PATH", "")
    assert config.env_path("SSL_KEY_PATH") is None
    monkeypatch.setenv("SSL_KEY_PATH", " /etc/ssl/server.key ")
    assert config.env_path("SSL_KEY_PATH") == "/etc/ssl/server.key"
