import pytest
from skillzcollab import config as cfg
from skillzcollab.config import ConfigError, load_config, reload_config, get_config_value, export_as_env_vars
from skillzcollab.rbac import has_permission


@pytest.fixture
def restore_config():
    yield
    # drop whatever a test loaded so the next caller re-reads the test file
    load_config.cache_clear()


def _write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


VALID = """
env: {name: test}
server: {host: 0.0.0.0, port: 9000}
storage: {database: {url: "sqlite+aiosqlite:///:memory:"}}
auth: {jwt: {signing_key: k}}
logging: {level: DEBUG}
"""


def test_loads_test_config():
    c = load_config()
    assert c.env.name == "test"
    assert c.auth.password.bcrypt_rounds == 4
    assert c.server.file_upload.max_files == 3


def test_memoized_until_reload(restore_config):
    first = load_config()
    assert load_config() is first
    assert cfg.is_config_loaded()
    assert reload_config() is not first


def test_get_config_value_walks_dotted_paths():
    assert get_config_value("auth.jwt.issuer") == "skillzcollab-test"
    assert get_config_value("server.file_upload.max_file_size") == 2048
    assert get_config_value("auth.jwt.nope") is None
    assert get_config_value("nope.at.all") is None


def test_export_as_env_vars_flattens():
    env = export_as_env_vars()
    assert env["SERVER_PORT"] == 8000
    assert env["AUTH_JWT_ISSUER"] == "skillzcollab-test"
    assert env["STORAGE_DATABASE_URL"].startswith("sqlite")


@pytest.mark.parametrize("section", ["env", "server", "storage", "auth", "logging"])
def test_missing_section_is_rejected(tmp_path, monkeypatch, restore_config, section):
    lines = [l for l in VALID.strip().splitlines() if not l.startswith(f"{section}:")]
    monkeypatch.setenv("SKILLZ_CONFIG", str(_write(tmp_path, "\n".join(lines))))
    with pytest.raises(ConfigError, match=f"Missing required configuration section: {section}"):
        reload_config()


def test_missing_signing_key_is_rejected(tmp_path, monkeypatch, restore_config):
    text = VALID.replace("auth: {jwt: {signing_key: k}}", "auth: {jwt: {issuer: x}}")
    monkeypatch.setenv("SKILLZ_CONFIG", str(_write(tmp_path, text)))
    with pytest.raises(ConfigError, match="auth.jwt.signing_key"):
        reload_config()


def test_missing_file_is_rejected(tmp_path, monkeypatch, restore_config):
    monkeypatch.setenv("SKILLZ_CONFIG", str(tmp_path / "absent.yaml"))
    with pytest.raises(ConfigError, match="Configuration file not found"):
        reload_config()


def test_valid_minimal_file_gets_defaults(tmp_path, monkeypatch, restore_config):
    monkeypatch.setenv("SKILLZ_CONFIG", str(_write(tmp_path, VALID)))
    c = reload_config()
    assert c.server.port == 9000
    assert c.server.file_upload.max_files == 10
    assert c.server.file_upload.max_file_size == 100 * 1024 * 1024
    assert "application/pdf" in c.server.file_upload.allowed_mime_types


def test_rbac_fails_closed_without_config(tmp_path, monkeypatch, restore_config):
    monkeypatch.setenv("SKILLZ_CONFIG", str(tmp_path / "absent.yaml"))
    load_config.cache_clear()
    assert has_permission("super_admin", "brief", "read") is False
