#!/usr/bin/env python3

# helpers.py - QVS Click CLI helper function library
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

from click import echo as click_echo
from os import environ, getpid, path, get_terminal_size
from sys import argv
from syslog import syslog, openlog, closelog, LOG_USER
from yaml import load as yload
from yaml import SafeLoader
from yaml import YAMLError


VERSION = "0.0.3"

DEFAULT_CONFIG_FILE = path.join(
    environ.get("HOME", "/tmp"), ".config", "qvscli", "qvscli.yaml"
)
DEFAULT_CONFIG = {
    "qts_url": "https://qnap.homelab.cloud",
    "qvs_disks_dir": "/VirtualMachines/disks",
    "qvs_images_dir": "/VirtualMachines/images",
    "login_file": path.join(environ.get("HOME", "/tmp"), ".qvs_login"),
    "verify_ssl": True,
    "qvs_api": True,
}

SECRET_OPTIONS = ["-P", "--password", "--vnc-password"]
SECRET_MASK = "********"

try:
    # Define the content width to be the maximum terminal size
    MAX_CONTENT_WIDTH = get_terminal_size().columns - 1
except OSError:
    # Fall back to 80 columns if "Inappropriate ioctl for device"
    MAX_CONTENT_WIDTH = 80


def echo(config, message, newline=True, stderr=False):
    """
    Output a message with click.echo respecting our configuration
    """

    if config.get("colour", False):
        colour = True
    else:
        colour = None

    if config.get("silent", False):
        pass
    elif config.get("quiet", False) and stderr:
        pass
    else:
        click_echo(message=message, color=colour, nl=newline, err=stderr)


def mask_secrets(args):
    """
    Replace the values of secret-bearing options in {args} with a mask
    """

    masked_args = list()
    mask_next = False
    for arg in args:
        if mask_next:
            masked_args.append(SECRET_MASK)
            mask_next = False
            continue

        option, separator, _ = arg.partition("=")
        if arg in SECRET_OPTIONS:
            masked_args.append(arg)
            mask_next = True
        elif separator and option in SECRET_OPTIONS:
            masked_args.append(f"{option}={SECRET_MASK}")
        elif arg.startswith("-P") and len(arg) > 2:
            # Short option with an attached value, e.g. -Psecret
            masked_args.append(f"-P{SECRET_MASK}")
        else:
            masked_args.append(arg)

    return masked_args


def audit():
    """
    Log an audit message to the local syslog USER facility
    """

    args = mask_secrets(argv)
    pid = getpid()

    openlog(facility=LOG_USER, ident=f"{args[0].split('/')[-1]}[{pid}]")
    syslog(
        f"""client audit: command "{' '.join(args)}" by user {environ.get('USER', None)}"""
    )
    closelog()


def read_config_from_yaml(cfgfile):
    """
    Read the qvscli section of the YAML configuration file {cfgfile}
    """

    if not path.isfile(cfgfile):
        return dict()

    try:
        with open(cfgfile) as fh:
            file_config = yload(fh, Loader=SafeLoader)["qvscli"]
    except (KeyError, TypeError, YAMLError):
        return {"badcfg": True}

    if not isinstance(file_config, dict):
        return {"badcfg": True}

    return {
        key: value for key, value in file_config.items() if key in DEFAULT_CONFIG
    }


def get_config(cfgfile, overrides):
    """
    Build the CLI configuration: {overrides} (options and environment), then {cfgfile}, then defaults
    """

    file_config = read_config_from_yaml(cfgfile)
    if file_config.get("badcfg", False):
        return {"badcfg": True, "cfgfile": cfgfile}

    config = dict()
    config["debug"] = False
    config["cfgfile"] = cfgfile
    for key, default in DEFAULT_CONFIG.items():
        value = overrides.get(key)
        if value is None:
            value = file_config.get(key)
        if value is None:
            value = default
        config[key] = value

    config["qts_url"] = str(config["qts_url"]).strip().rstrip("/")
    config["login_file"] = path.expanduser(str(config["login_file"]).strip())
    if isinstance(config["verify_ssl"], str):
        config["verify_ssl"] = config["verify_ssl"] == "True"

    return config
