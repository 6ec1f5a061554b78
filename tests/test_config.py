"""
Tests for configuration loading and saving
"""
import pytest
import yaml

from cifclient.config import ClientConfig, load_config, save_config
from cifclient.exceptions import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's own CIF_* variables out of the tests"""
    for var in ("CIF_REMOTE", "CIF_TOKEN", "CIF_PROXY"):
        monkeypatch.delenv(var, raising=False)


@pytest.mark.unit
class TestLoadConfig:
    """Test YAML and environment loading"""

    def test_missing_file_gives_defaults(self, tmp_path):
        """Should fall back to defaults when the file is absent"""
        config = load_config(tmp_path / "missing.yml")

        assert config.remote == ""
        assert config.token == ""
        assert config.proxy is None
        assert config.verbose is False
        assert config.raw is False
        assert config.max_retry_attempts == 5
        assert config.timeout == 30

    def test_reads_yaml(self, tmp_path):
        """Should load remote, token, proxy and flags"""
        path = tmp_path / "cif.yml"
        path.write_text(
            "remote: https://cif.example.com/\n"
            "token: abc123\n"
            "proxy: http://proxy:3128\n"
            "verbose: true\n"
            "raw: false\n"
            "max_retry_attempts: 8\n"
        )

        config = load_config(path)

        assert config.remote == "https://cif.example.com/"
        assert config.base_url == "https://cif.example.com"
        assert config.token == "abc123"
        assert config.proxy == "http://proxy:3128"
        assert config.verbose is True
        assert config.max_retry_attempts == 8

    def test_unknown_keys_ignored(self, tmp_path):
        """Should ignore keys it does not know"""
        path = tmp_path / "cif.yml"
        path.write_text("token: abc\ncolumns: [indicator, tlp]\n")

        assert load_config(path).token == "abc"

    def test_empty_file(self, tmp_path):
        """Should treat an empty file as defaults"""
        path = tmp_path / "cif.yml"
        path.write_text("")

        assert load_config(path) == ClientConfig()

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        """Should let CIF_* variables win over the file"""
        path = tmp_path / "cif.yml"
        path.write_text("remote: https://file.example.com\ntoken: from-file\n")
        monkeypatch.setenv("CIF_TOKEN", "from-env")

        config = load_config(path)

        assert config.token == "from-env"
        assert config.remote == "https://file.example.com"

    def test_invalid_yaml(self, tmp_path):
        """Should raise ConfigError on malformed YAML"""
        path = tmp_path / "cif.yml"
        path.write_text("remote: [unclosed\n")

        with pytest.raises(ConfigError):
            load_config(path)

    def test_non_mapping(self, tmp_path):
        """Should raise ConfigError when the document is not a mapping"""
        path = tmp_path / "cif.yml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigError):
            load_config(path)

    def test_invalid_value(self, tmp_path):
        """Should raise ConfigError on out-of-range values"""
        path = tmp_path / "cif.yml"
        path.write_text("timeout: -1\n")

        with pytest.raises(ConfigError, match="timeout"):
            load_config(path)


@pytest.mark.unit
class TestSaveConfig:
    """Test writing config files"""

    def test_save_then_load(self, tmp_path):
        """Should write a file that loads back to the same settings"""
        path = tmp_path / "nested" / "cif.yml"
        config = ClientConfig(remote="https://cif.example.com", token="abc", raw=True)

        written = save_config(config, path)

        assert written == path
        assert yaml.safe_load(path.read_text())["token"] == "abc"
        assert load_config(path) == config
