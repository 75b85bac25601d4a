"""
Tests for configuration loading — hostsweep.yml parsing and validation.
"""

import textwrap
from pathlib import Path

import pytest

from hostsweep.core.config.loader import default_search_paths, find_config_file, load_config
from hostsweep.core.errors import ConfigError
from hostsweep.core.models import MaintenanceConfig
from hostsweep.core.use_cases.config_check import check_config


@pytest.fixture
def config_yml(tmp_path: Path) -> Path:
    content = textwrap.dedent("""\
        kernels_to_keep: 2
        journal_retention: 7d
        tmp_max_age_days: 3
        purge_apt_lists: true
        continue_on_error: false
        tasks:
          docker: false
          locales: true
        keep_locales: [en_US, de_DE, C]
    """)
    path = tmp_path / "hostsweep.yml"
    path.write_text(content)
    return path


class TestDefaults:
    def test_defaults(self):
        cfg = MaintenanceConfig()
        assert cfg.kernels_to_keep == 1
        assert cfg.journal_retention == "2d"
        assert cfg.nix_gc_older_than == "14d"
        assert cfg.continue_on_error is True
        assert cfg.tasks.locales is False
        assert "docker" in cfg.tasks.enabled()

    def test_plan_params_projection(self, config_yml: Path):
        params = load_config(config_yml).plan_params()
        assert params.kernels_to_keep == 2
        assert params.journal_retention == "7d"
        assert params.purge_apt_lists is True
        assert params.installed_kernels is None


class TestLoad:
    def test_load_valid(self, config_yml: Path):
        cfg = load_config(config_yml)
        assert cfg.kernels_to_keep == 2
        assert cfg.tasks.docker is False
        assert cfg.tasks.locales is True
        assert cfg.keep_locales == ["en_US", "de_DE", "C"]
        assert cfg.continue_on_error is False

    def test_empty_file_is_defaults(self, tmp_path: Path):
        path = tmp_path / "hostsweep.yml"
        path.write_text("")
        assert load_config(path) == MaintenanceConfig()

    def test_no_file_anywhere_is_defaults(self, home, monkeypatch):
        monkeypatch.setattr("hostsweep.core.config.loader.SYSTEM_CONFIG", home / "absent.yml")
        assert load_config() == MaintenanceConfig()

    def test_explicit_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "hostsweep.yml"
        path.write_text("tasks: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "hostsweep.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    @pytest.mark.parametrize(
        "body",
        [
            "kernels_to_keep: 0\n",
            "journal_retention: forever\n",
            "nix_gc_older_than: '14'\n",
            "nix_gc_older_than: 12h\n",
            "nix_gc_older_than: 2w\n",
            "command_timeout: -1\n",
            "tmp_max_age_days: -2\n",
        ],
    )
    def test_invalid_values(self, tmp_path: Path, body: str):
        path = tmp_path / "hostsweep.yml"
        path.write_text(body)
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(path)


class TestTimeSpans:
    @pytest.mark.parametrize("span", ["2d", "12h", "2days", "3hours", "30 min", "4weeks", "1M", "90s"])
    def test_journal_units_accepted(self, span: str):
        assert MaintenanceConfig(journal_retention=span).journal_retention == span

    @pytest.mark.parametrize("span", ["12h", "2w", "1month", "d", "14 days"])
    def test_nix_age_is_days_only(self, span: str):
        with pytest.raises(ValueError):
            MaintenanceConfig(nix_gc_older_than=span)

    def test_nix_age_days(self):
        assert MaintenanceConfig(nix_gc_older_than="30d").nix_gc_older_than == "30d"


class TestSearch:
    def test_env_var_wins(self, home, tmp_path: Path, monkeypatch):
        env_cfg = tmp_path / "env.yml"
        env_cfg.write_text("kernels_to_keep: 3\n")
        user_cfg = home / ".config" / "hostsweep" / "hostsweep.yml"
        user_cfg.parent.mkdir(parents=True)
        user_cfg.write_text("kernels_to_keep: 4\n")
        monkeypatch.setenv("HOSTSWEEP_CONFIG", str(env_cfg))

        assert find_config_file() == env_cfg
        assert load_config().kernels_to_keep == 3

    def test_user_config(self, home):
        user_cfg = home / ".config" / "hostsweep" / "hostsweep.yml"
        user_cfg.parent.mkdir(parents=True)
        user_cfg.write_text("kernels_to_keep: 4\n")
        assert find_config_file() == user_cfg

    def test_xdg_config_home(self, home, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        assert default_search_paths()[0] == tmp_path / "xdg" / "hostsweep" / "hostsweep.yml"

    def test_system_config_last(self, home):
        assert default_search_paths()[-1] == Path("/etc/hostsweep.yml")

    def test_explicit_list(self, tmp_path: Path):
        present = tmp_path / "b.yml"
        present.write_text("{}")
        assert find_config_file([tmp_path / "a.yml", present]) == present
        assert find_config_file([tmp_path / "a.yml"]) is None


class TestConfigCheck:
    def test_valid(self, config_yml: Path):
        result = check_config(config_yml)
        assert result.valid
        assert result.config_path == config_yml
        assert result.to_dict()["config"]["kernels_to_keep"] == 2

    def test_invalid(self, tmp_path: Path):
        path = tmp_path / "hostsweep.yml"
        path.write_text("kernels_to_keep: 0\n")
        result = check_config(path)
        assert not result.valid
        assert result.errors

    def test_warns_on_locales_without_keep_list(self, tmp_path: Path):
        path = tmp_path / "hostsweep.yml"
        path.write_text("keep_locales: []\ntasks:\n  locales: true\n")
        result = check_config(path)
        assert result.valid
        assert any("keep list" in w for w in result.warnings)

    def test_defaults_warning(self, home, monkeypatch):
        monkeypatch.setattr("hostsweep.core.config.loader.SYSTEM_CONFIG", home / "absent.yml")
        result = check_config()
        assert result.valid
        assert any("defaults" in w for w in result.warnings)
