"""
Unit tests for the command-line entry point.
"""

import pytest

from frontdoor.__main__ import build_parser, config_from_args, main
from frontdoor.config import ServerConfig


def parse(*argv: str):
    return build_parser().parse_args(list(argv))


class TestConfigFromArgs:

    def test_no_flags_keeps_base(self):
        base = ServerConfig(port=4443)

        config = config_from_args(parse(), base)

        assert config.port == 4443
        assert config.tls_enabled is True

    def test_flags_override(self):
        args = parse(
            "--host", "127.0.0.1",
            "--port", "8443",
            "--cert", "c.pem",
            "--key", "k.pem",
            "--read-timeout", "2",
            "--write-timeout", "4",
            "--idle-timeout", "8",
            "--log-level", "DEBUG",
        )

        config = config_from_args(args, ServerConfig())

        assert (config.host, config.port) == ("127.0.0.1", 8443)
        assert (config.cert_file, config.key_file) == ("c.pem", "k.pem")
        assert (config.read_timeout, config.write_timeout, config.idle_timeout) == (2.0, 4.0, 8.0)
        assert config.log_level == "DEBUG"

    def test_insecure_disables_tls(self):
        assert config_from_args(parse("--insecure"), ServerConfig()).tls_enabled is False

    def test_secure_headers(self):
        args = parse(
            "--secure-header", "X-Frame-Options=deny",
            "--secure-header", "Referrer-Policy = origin-when-cross-origin",
        )

        config = config_from_args(args, ServerConfig())

        assert config.security_headers == {
            "X-Frame-Options": "deny",
            "Referrer-Policy": "origin-when-cross-origin",
        }

    def test_malformed_secure_header(self):
        with pytest.raises(SystemExit):
            parse("--secure-header", "no-equals-sign")


class TestMain:

    def test_invalid_config_exits_2(self, capsys, monkeypatch):
        monkeypatch.delenv("ADDR_PORT", raising=False)

        assert main(["--port", "70000"]) == 2
        assert "Invalid port" in capsys.readouterr().err

    def test_missing_certificate_exits_1(self, tmp_path, monkeypatch):
        monkeypatch.setattr("frontdoor.__main__.install_fatal_excepthook", lambda error_log: None)

        with pytest.raises(SystemExit) as exc_info:
            main([
                "--host", "127.0.0.1",
                "--port", "0",
                "--cert", str(tmp_path / "missing-cert.pem"),
                "--key", str(tmp_path / "missing-key.pem"),
            ])

        assert exc_info.value.code == 1
