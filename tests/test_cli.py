"""
Unit tests for the qvscli command line.
"""
import json
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from qvs.cli.cli import cli
from qvs.cli.helpers import VERSION
from qvs.lib.errors import InvalidCredentials, PersistFailed
from qvs.lib.store import SessionRecord

from tests.conftest import QTS_URL


VM = {
    "id": 3,
    "name": "web",
    "power_state": "running",
    "adapters": [{"bridge": "br0", "mac": "00:11:32:aa:bb:cc"}],
    "graphics": [{"port": 5901}],
    "disks": [{"path": "/VirtualMachines/disks/web/boot_disk_1.img"}],
}


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def base_args(tmp_path):
    """Global options that keep the CLI away from the user's own files."""
    return [
        "--config",
        str(tmp_path / "qvscli.yaml"),
        "--qts-url",
        QTS_URL,
        "--loginfile",
        str(tmp_path / ".qvs_login"),
    ]


@pytest.fixture
def logged_in():
    """Replaces the session so commands run as if already logged in."""
    with patch("qvs.cli.cli.QVSSession") as session_class:
        session_class.return_value.base_url = QTS_URL
        yield session_class.return_value


class TestGlobal:
    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert VERSION in result.output

    def test_bad_config(self, runner, base_args, tmp_path):
        """Test a config file without a qvscli section is refused."""
        (tmp_path / "qvscli.yaml").write_text("other: {}\n")

        result = runner.invoke(cli, base_args + ["vm", "list"])

        assert result.exit_code == 1
        assert "Invalid configuration file" in result.output

    def test_not_logged_in(self, runner, base_args):
        """Test commands without a stored session ask the user to log in."""
        result = runner.invoke(cli, base_args + ["vm", "list"])

        assert result.exit_code == 1
        assert "qvscli login" in result.output


class TestLogin:
    def test_login(self, runner, base_args, logged_in):
        logged_in.login.return_value = SessionRecord(qts_url=QTS_URL, username="bob")

        result = runner.invoke(cli, base_args + ["login", "-U", "bob", "-P", "pw"])

        assert result.exit_code == 0
        assert "Logged in to https://nas.example.com as bob" in result.output
        args = logged_in.login.call_args[0]
        assert args[:2] == ("bob", "pw")

    def test_login_prompts(self, runner, base_args, logged_in):
        logged_in.login.return_value = SessionRecord(qts_url=QTS_URL, username="bob")

        result = runner.invoke(cli, base_args + ["login"], input="bob\npw\n")

        assert result.exit_code == 0
        assert logged_in.login.call_args[0][:2] == ("bob", "pw")

    def test_login_invalid(self, runner, base_args, logged_in):
        logged_in.login.side_effect = InvalidCredentials()

        result = runner.invoke(cli, base_args + ["login", "-U", "bob", "-P", "bad"])

        assert result.exit_code == 1
        assert "invalid credentials" in result.output

    def test_login_not_saved(self, runner, base_args, logged_in):
        """Test an unsaved login warns but succeeds."""
        logged_in.login.side_effect = PersistFailed(
            "failed to open login file", record=SessionRecord(username="bob")
        )

        result = runner.invoke(cli, base_args + ["login", "-U", "bob", "-P", "pw"])

        assert result.exit_code == 0
        assert "WARN" in result.output
        assert "log in again" in result.output

    def test_login_security_code_prompt(self, runner, base_args, logged_in):
        """Test the security code is read from the terminal when QTS asks for it."""

        def login(username, password, code_prompt):
            assert code_prompt() == "123456"
            return SessionRecord(qts_url=QTS_URL, username=username)

        logged_in.login.side_effect = login

        result = runner.invoke(
            cli, base_args + ["login", "-U", "bob", "-P", "pw"], input="123456\n"
        )

        assert result.exit_code == 0


class TestVM:
    def test_list_json(self, runner, base_args, logged_in):
        with patch("qvs.lib.vm.vm_list", return_value=(True, [VM])):
            result = runner.invoke(cli, base_args + ["vm", "list", "-f", "json"])

        assert result.exit_code == 0
        assert json.loads(result.output) == [VM]

    def test_list_pretty(self, runner, base_args, logged_in):
        with patch("qvs.lib.vm.vm_list", return_value=(True, [VM])):
            result = runner.invoke(cli, base_args + ["vm", "list"])

        assert result.exit_code == 0
        assert "web" in result.output
        assert "5901" in result.output

    def test_list_error(self, runner, base_args, logged_in):
        with patch("qvs.lib.vm.vm_list", return_value=(False, "error making request, response status was 12: quota exceeded")):
            result = runner.invoke(cli, base_args + ["vm", "list"])

        assert result.exit_code == 1
        assert "quota exceeded" in result.output

    def test_stop_force(self, runner, base_args, logged_in):
        with patch("qvs.lib.vm.vm_get_id", return_value=(True, "3")), patch(
            "qvs.lib.vm.vm_shutdown", return_value=(True, "")
        ) as vm_shutdown:
            result = runner.invoke(cli, base_args + ["vm", "stop", "web", "--force"])

        assert result.exit_code == 0
        vm_shutdown.assert_called_once_with(logged_in, "3", force=True)

    def test_delete(self, runner, base_args, logged_in):
        """Test deleting a running VM stops it and removes its disk folder."""
        with patch("qvs.lib.vm.vm_get", return_value=(True, VM)), patch(
            "qvs.lib.vm.vm_shutdown", return_value=(True, "")
        ) as vm_shutdown, patch(
            "qvs.lib.vm.vm_remove", return_value=(True, "")
        ) as vm_remove, patch(
            "qvs.lib.files.delete_file", return_value=(True, "")
        ) as delete_file:
            result = runner.invoke(cli, base_args + ["vm", "delete", "web", "--yes"])

        assert result.exit_code == 0
        vm_shutdown.assert_called_once_with(logged_in, "3", force=True)
        vm_remove.assert_called_once_with(logged_in, "3")
        delete_file.assert_called_once_with(logged_in, "/VirtualMachines/disks/web")

    def test_delete_keep_disks(self, runner, base_args, logged_in):
        stopped = dict(VM, power_state="stop")
        with patch("qvs.lib.vm.vm_get", return_value=(True, stopped)), patch(
            "qvs.lib.vm.vm_shutdown"
        ) as vm_shutdown, patch(
            "qvs.lib.vm.vm_remove", return_value=(True, "")
        ), patch("qvs.lib.files.delete_file") as delete_file:
            result = runner.invoke(
                cli, base_args + ["vm", "delete", "web", "--yes", "--no-disk-del"]
            )

        assert result.exit_code == 0
        vm_shutdown.assert_not_called()
        delete_file.assert_not_called()
        assert "skipping disk deletion" in result.output

    def test_delete_declined(self, runner, base_args, logged_in):
        with patch("qvs.lib.vm.vm_get", return_value=(True, VM)), patch(
            "qvs.lib.vm.vm_remove"
        ) as vm_remove:
            result = runner.invoke(cli, base_args + ["vm", "delete", "web"], input="n\n")

        assert result.exit_code == 0
        assert "Aborted" in result.output
        vm_remove.assert_not_called()

    @pytest.mark.parametrize("name", ["-web", "web_1", "a" * 64, "web-"])
    def test_create_invalid_name(self, runner, base_args, logged_in, name):
        with patch("qvs.lib.vm.mac_create") as mac_create:
            result = runner.invoke(cli, base_args + ["vm", "create", "--", name])

        assert result.exit_code == 1
        assert "invalid instance name" in result.output
        mac_create.assert_not_called()

    def test_create_missing_image(self, runner, base_args, logged_in):
        with patch("qvs.lib.files.list_dir", return_value=(True, [])):
            result = runner.invoke(
                cli, base_args + ["vm", "create", "web", "--mac", "00:11:32:aa:bb:cc"]
            )

        assert result.exit_code == 1
        assert "VM image file not found" in result.output

    def test_create(self, runner, base_args, logged_in, tmp_path):
        """Test the full create flow without cloud-init."""
        images = [{"filename": "xenial.img", "isfolder": 0}]
        list_dir = MagicMock(side_effect=[(True, images), (True, [])])
        with patch("qvs.lib.files.list_dir", list_dir), patch(
            "qvs.lib.files.create_dir", return_value=(True, "")
        ) as create_dir, patch(
            "qvs.lib.files.copy_file", return_value=(True, "")
        ) as copy_file, patch(
            "qvs.lib.files.rename_file", return_value=(True, "")
        ) as rename_file, patch(
            "qvs.lib.vm.vm_create", return_value=(True, "")
        ) as vm_create, patch(
            "qvs.lib.vm.vm_get", return_value=(True, VM)
        ), patch(
            "qvs.lib.vm.vm_start", return_value=(True, "")
        ) as vm_start:
            result = runner.invoke(
                cli,
                base_args
                + [
                    "vm",
                    "create",
                    "web",
                    "--no-cloud-init",
                    "--mac",
                    "00:11:32:aa:bb:cc",
                    "--vnc-password",
                    "vncpass1",
                    "--cores",
                    "2",
                ],
            )

        assert result.exit_code == 0, result.output
        create_dir.assert_called_once_with(logged_in, "/VirtualMachines/disks/web")
        copy_file.assert_called_once_with(
            logged_in,
            "/VirtualMachines/images/ubuntu-cloud/xenial.img",
            "/VirtualMachines/disks/web/xenial.img",
        )
        assert rename_file.call_args[0][2] == "xenial.img"
        assert rename_file.call_args[0][3].startswith("boot_disk_")
        create_args = vm_create.call_args[0]
        assert create_args[1] == "web"
        assert create_args[4:8] == (2, 2, "br0", "00:11:32:aa:bb:cc")
        assert create_args[8] == ""
        assert create_args[10] == "vncpass1"
        vm_start.assert_called_once_with(logged_in, "3")
        assert "VNC port: 5901" in result.output


class TestListings:
    def test_networks(self, runner, base_args, logged_in):
        networks = [{"display_name": "Virtual Switch 1", "name": "br0", "ip": "", "nics": ["eth0"]}]
        with patch("qvs.lib.network.network_list", return_value=(True, networks)):
            result = runner.invoke(cli, base_args + ["networks", "list", "-f", "json"])

        assert result.exit_code == 0
        assert json.loads(result.output) == networks

    def test_images(self, runner, base_args, logged_in):
        listing = [{"filename": "xenial.img", "isfolder": 0}]
        with patch("qvs.lib.files.list_dir", return_value=(True, listing)) as list_dir:
            result = runner.invoke(cli, base_args + ["images", "list", "ubuntu-cloud"])

        assert result.exit_code == 0
        list_dir.assert_called_once_with(logged_in, "/VirtualMachines/images/ubuntu-cloud")
        assert "ubuntu-cloud/xenial.img" in result.output

    def test_mac_create(self, runner, base_args, logged_in):
        with patch("qvs.lib.vm.mac_create", return_value=(True, "00:11:32:12:34:56")):
            result = runner.invoke(cli, base_args + ["mac", "create"])

        assert result.exit_code == 0
        assert result.output.strip() == "00:11:32:12:34:56"

    def test_snapshot_create(self, runner, base_args, logged_in):
        with patch(
            "qvs.lib.vm.vm_snapshot_create",
            return_value=(True, "/VirtualMachines/images/snapshots/qvs-snap-s1.img"),
        ) as snapshot_create:
            result = runner.invoke(cli, base_args + ["vm", "snapshot", "create", "s1", "--vm", "db"])

        assert result.exit_code == 0
        snapshot_create.assert_called_once_with(
            logged_in, "db", "s1", "/VirtualMachines/images/snapshots"
        )
