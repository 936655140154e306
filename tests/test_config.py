"""Tests for configuration loading and validation."""

import pytest
import yaml

from border_controller.config import load_config
from border_controller.exceptions import ConfigError

API = {
    "service_name": "ingress",
    "controller_hosts": ["ctl1", "ctl2"],
    "dns_domain": "svc.local",
    "port": 8080,
    "api_key": "secret",
}
DNS = {"task_dns_name": "tasks.web", "service_port": 9090}


def _write_config(tmp_path, data: dict) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(data))
    return str(path)


class TestLoadConfig:
    def test_minimal_api_config(self, tmp_path):
        config = load_config(_write_config(tmp_path, {"discovery": {"api": API}}))
        assert config.discovery.api_enabled
        assert not config.discovery.dns_enabled
        assert config.discovery.api.controller_hosts == ["ctl1", "ctl2"]
        assert config.discovery.api.port == "8080"
        assert config.discovery.api.timeout_seconds == 10
        assert config.polling.interval_seconds == 10
        assert config.polling.error_cooldown_seconds == 5
        assert config.proxy.start_command == ["nginx", "-g", "daemon off;"]
        assert config.proxy.config_path == "/etc/nginx/nginx.conf"

    def test_minimal_dns_config(self, tmp_path):
        config = load_config(_write_config(tmp_path, {"discovery": {"dns": DNS}}))
        assert config.discovery.dns_enabled
        assert config.discovery.dns.service_port == "9090"

    def test_missing_file_raises(self):
        with pytest.raises(ConfigError, match="not found"):
            load_config("/nonexistent/file.yaml")

    def test_both_strategies_raises(self, tmp_path):
        data = {"discovery": {"api": API, "dns": DNS}}
        with pytest.raises(ConfigError, match="only one discovery strategy"):
            load_config(_write_config(tmp_path, data))

    def test_no_strategy_raises(self, tmp_path):
        with pytest.raises(ConfigError, match="No discovery strategy"):
            load_config(_write_config(tmp_path, {"proxy": {"process_name": "nginx"}}))

    def test_empty_names_count_as_unconfigured(self, tmp_path):
        data = {"discovery": {"api": {**API, "service_name": ""}, "dns": {"task_dns_name": ""}}}
        with pytest.raises(ConfigError, match="No discovery strategy"):
            load_config(_write_config(tmp_path, data))

    def test_dns_without_port_raises(self, tmp_path):
        data = {"discovery": {"dns": {"task_dns_name": "tasks.web"}}}
        with pytest.raises(ConfigError, match="service_port"):
            load_config(_write_config(tmp_path, data))

    def test_api_without_hosts_raises(self, tmp_path):
        data = {"discovery": {"api": {**API, "controller_hosts": []}}}
        with pytest.raises(ConfigError, match="controller_hosts"):
            load_config(_write_config(tmp_path, data))

    def test_api_without_domain_raises(self, tmp_path):
        data = {"discovery": {"api": {**API, "dns_domain": ""}}}
        with pytest.raises(ConfigError, match="dns_domain"):
            load_config(_write_config(tmp_path, data))

    def test_cooldown_must_be_shorter_than_interval(self, tmp_path):
        data = {"discovery": {"dns": DNS}, "polling": {"interval_seconds": 5, "error_cooldown_seconds": 5}}
        with pytest.raises(ConfigError, match="shorter"):
            load_config(_write_config(tmp_path, data))

    def test_invalid_logging_format(self, tmp_path):
        data = {"discovery": {"dns": DNS}, "logging": {"format": "xml"}}
        with pytest.raises(ConfigError, match="logging.format"):
            load_config(_write_config(tmp_path, data))

    def test_empty_start_command(self, tmp_path):
        data = {"discovery": {"dns": DNS}, "proxy": {"start_command": []}}
        with pytest.raises(ConfigError, match="start_command"):
            load_config(_write_config(tmp_path, data))

    def test_env_var_interpolation(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TEST_API_KEY", "from-env")
        data = {"discovery": {"api": {**API, "api_key": "${TEST_API_KEY}"}}}
        config = load_config(_write_config(tmp_path, data))
        assert config.discovery.api.api_key == "from-env"

    def test_env_var_missing_raises(self, tmp_path, monkeypatch):
        monkeypatch.delenv("SURELY_MISSING_VAR", raising=False)
        data = {"discovery": {"api": {**API, "api_key": "${SURELY_MISSING_VAR}"}}}
        with pytest.raises(ConfigError, match="SURELY_MISSING_VAR"):
            load_config(_write_config(tmp_path, data))

    def test_full_config(self, tmp_path):
        data = {
            "discovery": {"api": {**API, "timeout_seconds": 3}},
            "proxy": {
                "process_name": "openresty",
                "start_command": ["openresty", "-g", "daemon off;"],
                "reload_command": ["openresty", "-s", "reload"],
                "reload_timeout_seconds": 5,
                "template_path": "/tpl/nginx.tpl",
                "config_path": "/etc/openresty/nginx.conf",
            },
            "polling": {"interval_seconds": 30, "error_cooldown_seconds": 2},
            "logging": {"level": "DEBUG", "format": "text"},
        }
        config = load_config(_write_config(tmp_path, data))
        assert config.discovery.api.timeout_seconds == 3
        assert config.proxy.process_name == "openresty"
        assert config.proxy.reload_command == ["openresty", "-s", "reload"]
        assert config.proxy.template_path == "/tpl/nginx.tpl"
        assert config.polling.interval_seconds == 30
        assert config.logging.format == "text"

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("just a string")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(str(path))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("discovery: [unclosed")
        with pytest.raises(ConfigError, match="YAML"):
            load_config(str(path))


class TestValueTypes:
    def test_scalar_controller_hosts_rejected(self, tmp_path):
        data = {"discovery": {"api": {**API, "controller_hosts": "swarm-1"}}}
        with pytest.raises(ConfigError, match="controller_hosts must be a non-empty list"):
            load_config(_write_config(tmp_path, data))

    def test_non_string_controller_host_rejected(self, tmp_path):
        data = {"discovery": {"api": {**API, "controller_hosts": ["ctl1", 7]}}}
        with pytest.raises(ConfigError, match="non-empty strings"):
            load_config(_write_config(tmp_path, data))

    def test_scalar_start_command_rejected(self, tmp_path):
        data = {"discovery": {"dns": DNS}, "proxy": {"start_command": "nginx -g 'daemon off;'"}}
        with pytest.raises(ConfigError, match="start_command"):
            load_config(_write_config(tmp_path, data))

    @pytest.mark.parametrize("section, key", [
        ("polling", "interval_seconds"),
        ("polling", "error_cooldown_seconds"),
        ("proxy", "reload_timeout_seconds"),
    ])
    def test_quoted_number_rejected(self, tmp_path, section, key):
        data = {"discovery": {"dns": DNS}, section: {key: "10"}}
        with pytest.raises(ConfigError, match=f"{section}.{key} must be a number"):
            load_config(_write_config(tmp_path, data))

    def test_quoted_api_timeout_rejected(self, tmp_path):
        data = {"discovery": {"api": {**API, "timeout_seconds": "3"}}}
        with pytest.raises(ConfigError, match="timeout_seconds must be a number"):
            load_config(_write_config(tmp_path, data))

    def test_boolean_is_not_a_number(self, tmp_path):
        data = {"discovery": {"dns": DNS}, "polling": {"interval_seconds": True}}
        with pytest.raises(ConfigError, match="must be a number"):
            load_config(_write_config(tmp_path, data))

    def test_section_must_be_mapping(self, tmp_path):
        data = {"discovery": {"dns": DNS}, "proxy": "nginx"}
        with pytest.raises(ConfigError, match="'proxy' must be a mapping"):
            load_config(_write_config(tmp_path, data))

    def test_null_discovery_rejected(self, tmp_path):
        with pytest.raises(ConfigError, match="'discovery' must be a mapping"):
            load_config(_write_config(tmp_path, {"discovery": None}))

    def test_unknown_key_ignored_with_warning(self, tmp_path, caplog):
        data = {"discovery": {"dns": {**DNS, "ttl": 30}}}
        config = load_config(_write_config(tmp_path, data))
        assert config.discovery.dns.task_dns_name == "tasks.web"
        assert "discovery.dns.ttl" in caplog.text
