#!/usr/bin/env python3

# cloudinit.py - QVS CLI client function library, cloud-init media functions
# Part of qvscli, a QNAP Virtualization Station command-line client
#
#    Copyright (C) 2024 qvscli contributors
#
#    This program is free software: you can redistribute it and/or modify
#    it under the terms of the GNU General Public License as published by
#    the Free Software Foundation, version 3.
#
#    This program is distributed in the hope that it will be useful,
#    but WITHOUT ANY WARRANTY; without even the implied warranty of
#    MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#    GNU General Public License for more details.
#
#    You should have received a copy of the GNU General Public License
#    along with this program.  If not, see <https://www.gnu.org/licenses/>.
#
###############################################################################

import subprocess

from os import path
from secrets import SystemRandom
from shutil import copyfile, which
from string import ascii_letters, digits
from tempfile import TemporaryDirectory
from yaml import SafeDumper
from yaml import dump as ydump

from qvs.lib.errors import ISOCreateFailed


ISO_TOOLS = ["genisoimage", "mkisofs"]

ISSUE_IP_SCRIPT = r"""#!/bin/sh
egrep -q -e "eth0=[0-9].*" /etc/issue && exit 0
sed -i'' 's/\\n \\l.*$/\\n \\l '"eth0=$(hostname -I)"'/g' /etc/issue
"""


class CloudConfigDumper(SafeDumper):
    pass


def represent_str(dumper, data):
    # Multi-line strings (scripts, keys) are emitted as literal blocks
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


CloudConfigDumper.add_representer(str, represent_str)


def generate_password(length=8, num_digits=2):
    """
    Generate a password of {length} letters and digits with {num_digits} digits and no repeated characters
    """
    rng = SystemRandom()
    chars = rng.sample(digits, num_digits) + rng.sample(
        ascii_letters, length - num_digits
    )
    rng.shuffle(chars)
    return "".join(chars)


def default_meta_data(name, ts):
    return ydump(
        {"instance-id": f"{name}-{ts}", "local-hostname": name},
        Dumper=CloudConfigDumper,
        default_flow_style=False,
        sort_keys=False,
    )


def render_user_data(hostname, password, authorized_key, startup_script=None):
    """
    Render a #cloud-config user-data document

    If {password} is None, local password login is disabled and only the
    {authorized_key} can be used to reach the VM.
    """
    user_data = {"hostname": hostname}

    if password is not None:
        user_data["password"] = password
        user_data["ssh_pwauth"] = True
        user_data["chpasswd"] = {"expire": False}
    else:
        user_data["ssh_pwauth"] = False

    write_files = [
        {
            "path": "/etc/network/if-up.d/show-ip-address",
            "permissions": "0755",
            "content": ISSUE_IP_SCRIPT,
        }
    ]
    if startup_script:
        write_files.append(
            {
                "path": "/var/lib/cloud/scripts/per-instance/startup-script.sh",
                "permissions": "0755",
                "content": startup_script,
            }
        )
    user_data["write_files"] = write_files

    user_data["ssh_authorized_keys"] = [authorized_key.strip()]
    user_data["power_state"] = {"mode": "reboot"}

    return "#cloud-config\n" + ydump(
        user_data,
        Dumper=CloudConfigDumper,
        default_flow_style=False,
        sort_keys=False,
    )


def find_iso_tool():
    for tool in ISO_TOOLS:
        tool_path = which(tool)
        if tool_path is not None:
            return tool_path
    return None


def make_config_iso(iso_file, meta_data_file, user_data_file):
    """
    Build a "cidata" ISO at {iso_file} holding {meta_data_file} and {user_data_file}
    """
    iso_tool = find_iso_tool()
    if iso_tool is None:
        raise ISOCreateFailed(
            "no ISO tool found, is 'genisoimage' (or 'mkisofs' from cdrtools) installed?"
        )

    with TemporaryDirectory(prefix="ci-tmp-data") as tmp_dir:
        tmp_user_data = path.join(tmp_dir, "user-data")
        tmp_meta_data = path.join(tmp_dir, "meta-data")
        copyfile(user_data_file, tmp_user_data)
        copyfile(meta_data_file, tmp_meta_data)

        command = [
            iso_tool,
            "-output",
            iso_file,
            "-volid",
            "cidata",
            "-joliet",
            "-rock",
            tmp_user_data,
            tmp_meta_data,
        ]
        command_output = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )

    if command_output.returncode != 0:
        stderr = command_output.stderr.decode("utf-8", errors="replace").strip()
        raise ISOCreateFailed(
            f"{stderr}, {path.basename(iso_tool)} exited {command_output.returncode}"
        )

    return iso_file


def prepare_config_iso(
    work_dir,
    name,
    ts,
    meta_data_file=None,
    user_data_file=None,
    authorized_key_file=None,
    password=None,
    startup_script_file=None,
):
    """
    Write any missing meta-data/user-data into {work_dir} and build the config ISO from them

    Returns (True, iso_path) or (False, message).
    """
    try:
        if not meta_data_file:
            meta_data_file = path.join(work_dir, "meta-data")
            with open(meta_data_file, "w") as fh:
                fh.write(default_meta_data(name, ts))

        if not user_data_file:
            try:
                with open(authorized_key_file) as fh:
                    authorized_key = fh.read()
            except (OSError, TypeError) as e:
                return (
                    False,
                    f"could not generate user-data, error reading {authorized_key_file} and --authorized-key not provided, {e}",
                )

            startup_script = None
            if startup_script_file and path.isfile(startup_script_file):
                with open(startup_script_file) as fh:
                    startup_script = fh.read()

            user_data_file = path.join(work_dir, "user-data")
            with open(user_data_file, "w") as fh:
                fh.write(
                    render_user_data(name, password, authorized_key, startup_script)
                )

        if not path.isfile(user_data_file):
            return False, f"user-data file does not exist: {user_data_file}"
        if not path.isfile(meta_data_file):
            return False, f"meta-data file does not exist: {meta_data_file}"

        iso_file = path.join(work_dir, f"metadata_{ts}.iso")
        make_config_iso(iso_file, meta_data_file, user_data_file)
    except ISOCreateFailed as e:
        return False, str(e)
    except OSError as e:
        return False, f"failed to write cloud-init data: {e}"

    return True, iso_file
