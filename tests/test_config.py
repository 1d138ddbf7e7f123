from config import Settings


def test_defaults(monkeypatch):
    for name in ("DB_NAME", "DB_TIMEOUT", "TRANSACTION_RETRIES", "APP_ENV", "LOG_LEVEL", "CORS_ORIGIN", "HOST", "PORT"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.db_name == "contacts.db"
    assert settings.transaction_retries == 1
    assert settings.cors_origins == ("*",)
    assert not settings.is_development


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("DB_NAME", "/tmp/identity.db")
    monkeypatch.setenv("DB_TIMEOUT", "2.5")
    monkeypatch.setenv("TRANSACTION_RETRIES", "3")
    monkeypatch.setenv("APP_ENV", "Development")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("CORS_ORIGIN", "http://localhost:3000, https://shop.example.com")
    monkeypatch.setenv("PORT", "9000")

    settings = Settings.from_env()

    assert settings.db_name == "/tmp/identity.db"
    assert settings.db_timeout == 2.5
    assert settings.transaction_retries == 3
    assert settings.is_development
    assert settings.log_level == "DEBUG"
    assert settings.cors_origins == ("http://localhost:3000", "https://shop.example.com")
    assert settings.port == 9000
