"""
Unit tests for CLI helpers.

Tests the syslog audit line and configuration loading.
"""
from unittest.mock import patch

import pytest

import qvs.cli.helpers as helpers


class TestAudit:
    """Tests for the syslog audit line."""

    @pytest.mark.parametrize(
        "argv",
        [
            ["qvscli", "login", "-U", "bob", "-P", "hunter2"],
            ["qvscli", "login", "-U", "bob", "--password", "hunter2"],
            ["qvscli", "login", "-U", "bob", "--password=hunter2"],
            ["qvscli", "login", "-U", "bob", "-Phunter2"],
            ["qvscli", "vm", "create", "web", "--vnc-password", "hunter2"],
            ["qvscli", "vm", "create", "web", "--vnc-password=hunter2"],
        ],
    )
    def test_secrets_not_logged(self, argv):
        """Test password values never reach syslog."""
        with patch("qvs.cli.helpers.argv", argv), patch(
            "qvs.cli.helpers.syslog"
        ) as syslog, patch("qvs.cli.helpers.openlog"), patch("qvs.cli.helpers.closelog"):
            helpers.audit()

        message = syslog.call_args[0][0]
        assert "hunter2" not in message
        assert helpers.SECRET_MASK in message

    def test_command_logged(self):
        """Test the rest of the command line is kept."""
        argv = ["/usr/bin/qvscli", "vm", "stop", "web", "--force"]
        with patch("qvs.cli.helpers.argv", argv), patch(
            "qvs.cli.helpers.syslog"
        ) as syslog, patch("qvs.cli.helpers.openlog") as openlog, patch(
            "qvs.cli.helpers.closelog"
        ):
            helpers.audit()

        assert '"/usr/bin/qvscli vm stop web --force"' in syslog.call_args[0][0]
        assert openlog.call_args[1]["ident"].startswith("qvscli[")

    def test_mask_secrets(self):
        assert helpers.mask_secrets(["qvscli", "login", "-U", "bob", "-P", "pw", "-v"]) == [
            "qvscli",
            "login",
            "-U",
            "bob",
            "-P",
            helpers.SECRET_MASK,
            "-v",
        ]


class TestConfig:
    """Tests for building the CLI configuration."""

    def test_defaults(self, tmp_path):
        config = helpers.get_config(str(tmp_path / "absent.yaml"), {})

        assert config["qvs_disks_dir"] == "/VirtualMachines/disks"
        assert config["verify_ssl"] is True
        assert config["qvs_api"] is True

    def test_precedence(self, tmp_path):
        """Test options win over the file, and the file over defaults."""
        cfgfile = tmp_path / "qvscli.yaml"
        cfgfile.write_text(
            "qvscli:\n  qts_url: https://file.example.com/\n  qvs_images_dir: /images\n"
        )

        config = helpers.get_config(
            str(cfgfile), {"qts_url": "https://nas.example.com", "verify_ssl": "False"}
        )

        assert config["qts_url"] == "https://nas.example.com"
        assert config["qvs_images_dir"] == "/images"
        assert config["verify_ssl"] is False

    def test_bad_file(self, tmp_path):
        cfgfile = tmp_path / "qvscli.yaml"
        cfgfile.write_text("- just\n- a list\n")

        config = helpers.get_config(str(cfgfile), {})

        assert config["badcfg"] is True
