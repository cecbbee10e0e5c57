from pathlib import Path

import tomli_w

from config import CategorizationSettings, Config, _write_config, load_config


class TestLoadConfig:
    """Tests for reading and writing the TOML config."""

    def test_creates_default_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        config_path = tmp_path / "ledgerly.toml"

        config = load_config(config_path)

        assert config_path.exists()
        assert config.db_filename == "ledgerly.db"
        assert config.llm_enabled is False
        assert config.categorization == CategorizationSettings()

    def test_round_trip(self, tmp_path, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        config_path = tmp_path / "ledgerly.toml"
        config = Config(
            base_dir=tmp_path,
            db_data_dir=tmp_path / "db",
            db_filename="custom.db",
            log_level="DEBUG",
            log_dir=tmp_path / "logs",
            llm_enabled=True,
            llm_openai_api_key="sk-file",
            categorization=CategorizationSettings(rule_accept=0.95, llm_batch_size=10),
        )

        _write_config(config, config_path)
        loaded = load_config(config_path)

        assert loaded.db_path == tmp_path / "db" / "custom.db"
        assert loaded.log_level == "DEBUG"
        assert loaded.llm_enabled is True
        assert loaded.llm_openai_api_key == "sk-file"
        assert loaded.categorization.rule_accept == 0.95
        assert loaded.categorization.llm_batch_size == 10

    def test_partial_file_uses_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        config_path = tmp_path / "ledgerly.toml"
        with open(config_path, "wb") as f:
            tomli_w.dump(
                {
                    "base_dir": str(tmp_path),
                    "categorization": {"vector_accept": 0.8, "unknown_key": 1},
                },
                f,
            )

        config = load_config(config_path)

        assert config.db_data_dir == Path(tmp_path) / "db"
        assert config.llm_timeout_seconds == 20.0
        assert config.categorization.vector_accept == 0.8
        assert config.categorization.rule_accept == 0.9

    def test_api_key_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")

        config = load_config(tmp_path / "ledgerly.toml")

        assert config.llm_openai_api_key == "sk-env"
