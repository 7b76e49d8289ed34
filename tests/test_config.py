import pytest

from pureescpos.config import CaptureConfig
from pureescpos.emulation.codepages import Codepage
from pureescpos.exceptions import ConfigurationError


class TestCaptureConfig:
    def test_defaults(self):
        config = CaptureConfig()
        assert config.capture_enabled is True
        assert config.host == "127.0.0.1"
        assert config.port == 9100
        assert config.noise_filter_enabled is True
        assert config.noise_threshold_bytes == 32
        assert config.max_jobs == 25
        assert config.max_bytes is None
        assert config.max_age is None
        assert config.default_codepage is Codepage.AUTO
        assert config.idle_timeout == 5.0

    def test_codepage_by_name(self):
        assert CaptureConfig(default_codepage="cp850").default_codepage is (
            Codepage.CP850
        )
        assert CaptureConfig(default_codepage=0).default_codepage is Codepage.CP437

    @pytest.mark.parametrize(
        "kwargs,key",
        [
            ({"port": 70000}, "port"),
            ({"port": -1}, "port"),
            ({"host": ""}, "host"),
            ({"noise_threshold_bytes": -1}, "noise_threshold_bytes"),
            ({"max_jobs": 0}, "max_jobs"),
            ({"max_bytes": 0}, "max_bytes"),
            ({"max_age": 0}, "max_age"),
            ({"idle_timeout": 0}, "idle_timeout"),
            ({"default_codepage": "klingon"}, "default_codepage"),
        ],
    )
    def test_invalid_values(self, kwargs, key):
        with pytest.raises(ConfigurationError) as exc_info:
            CaptureConfig(**kwargs)
        assert key in exc_info.value.context

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            CaptureConfig(port=99999)

    def test_to_dict(self):
        data = CaptureConfig(port=9101, max_bytes=1024).to_dict()
        assert data["port"] == 9101
        assert data["max_bytes"] == 1024
        assert data["default_codepage"] == "AUTO"

    def test_repr(self):
        assert repr(CaptureConfig()) == (
            "CaptureConfig(host='127.0.0.1', port=9100, "
            "capture_enabled=True, default_codepage=AUTO)"
        )


class TestFromEnv:
    def test_empty_environment_gives_defaults(self):
        config = CaptureConfig.from_env({})
        assert config.to_dict() == CaptureConfig().to_dict()

    def test_reads_prefixed_variables(self):
        env = {
            "PUREESCPOS_PORT": "9101",
            "PUREESCPOS_HOST": "0.0.0.0",
            "PUREESCPOS_CAPTURE_ENABLED": "no",
            "PUREESCPOS_NOISE_FILTER_ENABLED": "off",
            "PUREESCPOS_MAX_JOBS": "none",
            "PUREESCPOS_MAX_AGE": "3600",
            "PUREESCPOS_DEFAULT_CODEPAGE": "cp858",
            "PUREESCPOS_IDLE_TIMEOUT": "1.5",
            "UNRELATED": "ignored",
        }
        config = CaptureConfig.from_env(env)
        assert config.port == 9101
        assert config.host == "0.0.0.0"
        assert config.capture_enabled is False
        assert config.noise_filter_enabled is False
        assert config.max_jobs is None
        assert config.max_age == 3600.0
        assert config.default_codepage is Codepage.CP858
        assert config.idle_timeout == 1.5

    def test_blank_values_are_ignored(self):
        config = CaptureConfig.from_env({"PUREESCPOS_PORT": "  "})
        assert config.port == 9100

    def test_overrides_win(self):
        config = CaptureConfig.from_env({"PUREESCPOS_PORT": "9101"}, port=0)
        assert config.port == 0

    def test_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("PUREESCPOS_NOISE_THRESHOLD_BYTES", "8")
        assert CaptureConfig.from_env().noise_threshold_bytes == 8

    @pytest.mark.parametrize(
        "name,value",
        [
            ("PUREESCPOS_PORT", "printer"),
            ("PUREESCPOS_CAPTURE_ENABLED", "maybe"),
            ("PUREESCPOS_MAX_BYTES", "lots"),
        ],
    )
    def test_unparseable_values(self, name, value):
        with pytest.raises(ConfigurationError) as exc_info:
            CaptureConfig.from_env({name: value})
        assert isinstance(exc_info.value.original_exception, ValueError)

    def test_out_of_range_value(self):
        with pytest.raises(ConfigurationError):
            CaptureConfig.from_env({"PUREESCPOS_PORT": "70000"})
