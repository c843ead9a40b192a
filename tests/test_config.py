import pytest

from linkgate.config import load_settings

ENV_VARS = ["SECRET_KEY", "ALGORITHM", "HOST", "PORT", "ENVIRONMENT", "DATABASE_URL", "DB_TIMEOUT",
            "PUBLIC_BASE_URL", "BCRYPT_ROUNDS", "CODE_LENGTH", "CODE_ATTEMPTS", "LOG_LEVEL"]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # set first so monkeypatch also undoes whatever load_dotenv writes
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_missing_secret_is_fatal():
    with pytest.raises(RuntimeError, match="SECRET_KEY"):
        load_settings(env_file=None)


def test_defaults(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "s3cret")

    settings = load_settings(env_file=None)

    assert settings.secret_key == "s3cret"
    assert settings.port == 4001
    assert settings.code_length == 5
    assert settings.bcrypt_rounds == 10
    assert settings.is_sqlite


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "s3cret")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://sho.rt/")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings(env_file=None)

    assert settings.port == 8080
    assert settings.public_base_url == "https://sho.rt"
    assert settings.log_level == "DEBUG"


def test_env_file_is_loaded(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("SECRET_KEY=from-file\nCODE_LENGTH=7\n")

    settings = load_settings(env_file=env_file)

    assert settings.secret_key == "from-file"
    assert settings.code_length == 7


def test_prod_requires_database_url(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "s3cret")
    monkeypatch.setenv("ENVIRONMENT", "prod")

    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        load_settings(env_file=None)
