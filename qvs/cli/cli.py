#!/usr/bin/env python3

# cli.py - QVS Click CLI main library
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

from datetime import datetime, timezone
from functools import wraps
from json import dumps as jdumps
from os import environ
from posixpath import basename, dirname, join
from re import match
from tempfile import TemporaryDirectory

from qvs.cli.helpers import *
from qvs.cli.formatters import *
from qvs.lib.errors import NotLoggedIn, PersistFailed, QVSError
from qvs.lib.session import QVSSession

import qvs.lib.cloudinit
import qvs.lib.files
import qvs.lib.network
import qvs.lib.vm

import click


###############################################################################
# Context and completion handler, globals
###############################################################################


CONTEXT_SETTINGS = dict(
    help_option_names=["-h", "--help"], max_content_width=MAX_CONTENT_WIDTH
)

CLI_CONFIG = dict()

VM_NAME_REGEX = r"^([A-Za-z0-9][A-Za-z0-9-]{0,61}[A-Za-z0-9]|[A-Za-z])$"


###############################################################################
# Local helper functions
###############################################################################


def finish(success=True, data=None, formatter=None):
    """
    Output data to the terminal and exit based on code (T/F or integer code)
    """

    if data is not None:
        if formatter is not None and success:
            if formatter.__name__ == "<lambda>":
                # We don't pass CLI_CONFIG into lambdas
                echo(CLI_CONFIG, formatter(data))
            else:
                echo(CLI_CONFIG, formatter(CLI_CONFIG, data))
        elif success:
            echo(CLI_CONFIG, data)
        else:
            echo(CLI_CONFIG, data, stderr=True)

    # Allow passing raw values if not a bool
    if isinstance(success, bool):
        if success:
            exit(0)
        else:
            exit(1)
    else:
        exit(success)


def info(message):
    echo(CLI_CONFIG, f"INFO: {message}", stderr=True)


def warn(message):
    echo(CLI_CONFIG, f"WARN: {message}", stderr=True)


def version(ctx, param, value):
    """
    Show the version of the CLI client
    """

    if not value or ctx.resilient_parsing:
        return

    echo(CLI_CONFIG, f"QNAP Virtualization Station CLI client version {VERSION}")
    ctx.exit()


###############################################################################
# Click command decorators
###############################################################################


def config_req(function):
    """
    General Decorator:
    Wraps a Click command which requires a valid configuration
    """

    @wraps(function)
    def validate_config(*args, **kwargs):
        if CLI_CONFIG.get("badcfg", None):
            echo(
                CLI_CONFIG,
                f"""Invalid configuration file "{CLI_CONFIG.get('cfgfile')}"; it must contain a "qvscli" mapping.""",
                stderr=True,
            )
            exit(1)

        return function(*args, **kwargs)

    return validate_config


def login_req(function):
    """
    General Decorator:
    Wraps a Click command which requires an active session; injects a "session" argument
    """

    @config_req
    @wraps(function)
    def validate_login(*args, **kwargs):
        session = QVSSession(CLI_CONFIG)
        try:
            session.ensure_login()
        except NotLoggedIn as e:
            echo(CLI_CONFIG, str(e), stderr=True)
            exit(1)

        kwargs["session"] = session

        return function(*args, **kwargs)

    return validate_login


def confirm_opt(message):
    """
    Click Option Decorator with argument:
    Wraps a Click command which requires confirm_flag or unsafe option or asks for confirmation with message
    """

    def confirm_decorator(function):
        @click.option(
            "-y",
            "--yes",
            "--no-input",
            "confirm_flag",
            envvar="QVSCLI_VM_NO_DEL_INPUT",
            is_flag=True,
            default=False,
            help="Pre-confirm any unsafe operations.",
        )
        @wraps(function)
        def confirm_action(*args, **kwargs):
            if not kwargs.get("confirm_flag", False) and not CLI_CONFIG.get(
                "unsafe", False
            ):
                # Interpolate any arguments, e.g. {domain}, into the message
                _message = message.format(**kwargs)
                try:
                    click.confirm(_message, prompt_suffix="? ", abort=True)
                except click.exceptions.Abort:
                    echo(CLI_CONFIG, "Aborted.")
                    exit(0)

            del kwargs["confirm_flag"]

            return function(*args, **kwargs)

        return confirm_action

    return confirm_decorator


def format_opt(formats, default_format="pretty"):
    """
    Click Option Decorator with argument:
    Wraps a Click command that can output in multiple formats; {formats} defines a dictionary of
    formatting functions for the command with keys as valid format types.
    e.g. { "json": lambda d: json.dumps(d), "pretty": format_function_pretty, ... }
    Injects a "format_function" argument into the function for this purpose.
    """

    if default_format not in formats.keys():
        echo(CLI_CONFIG, f"Fatal code error: {default_format} not in {formats.keys()}")
        exit(255)

    def format_decorator(function):
        @click.option(
            "-f",
            "--format",
            "-o",
            "--output",
            "output_format",
            default=default_format,
            show_default=True,
            type=click.Choice(formats.keys()),
            help="Output information in this format.",
        )
        @wraps(function)
        def format_action(*args, **kwargs):
            kwargs["format_function"] = formats[kwargs["output_format"]]

            del kwargs["output_format"]

            return function(*args, **kwargs)

        return format_action

    return format_decorator


###############################################################################
# Click command definitions
###############################################################################


###############################################################################
# > qvscli login
###############################################################################
@click.command(
    name="login",
    short_help="Log in to QTS and QVS.",
)
@config_req
@click.option(
    "-U",
    "--username",
    "username",
    envvar="QVSCLI_USERNAME",
    prompt="Enter Username",
    help="The QTS user to log in as.",
)
@click.option(
    "-P",
    "--password",
    "password",
    envvar="QVSCLI_PASSWORD",
    prompt="Enter Password",
    hide_input=True,
    help="The password of the QTS user.",
)
def cli_login(username, password):
    """
    Log in to QTS and obtain the QVS session, storing the session in the login file.

    If the account requires 2-step verification, the security code is prompted for.
    """

    if not username.strip() or not password:
        finish(False, "no username and/or password provided.")

    def prompt_security_code():
        return click.prompt("Enter Security Code", default="", show_default=False)

    session = QVSSession(CLI_CONFIG)
    try:
        record = session.login(username, password, prompt_security_code)
    except PersistFailed as e:
        warn(f"{e}; you will need to log in again next time.")
        finish(True, f"Logged in to {session.base_url} as {e.record.username}.")
    except QVSError as e:
        finish(False, str(e))

    finish(True, f"Logged in to {session.base_url} as {record.username}.")


###############################################################################
# > qvscli mac
###############################################################################
@click.group(
    name="mac",
    short_help="Manage MAC addresses.",
    context_settings=CONTEXT_SETTINGS,
)
def cli_mac():
    """
    Manage MAC addresses for VM network adapters.
    """
    pass


###############################################################################
# > qvscli mac create
###############################################################################
@click.command(
    name="create",
    short_help="Generate a new MAC address.",
)
@login_req
def cli_mac_create(session):
    """
    Generate a new MAC address from QVS.
    """

    retcode, retdata = qvs.lib.vm.mac_create(session)
    finish(retcode, retdata)


###############################################################################
# > qvscli images
###############################################################################
@click.group(
    name="images",
    short_help="Manage VM disk images.",
    context_settings=CONTEXT_SETTINGS,
)
def cli_images():
    """
    Manage VM base disk images stored in the images directory.
    """
    pass


###############################################################################
# > qvscli images list
###############################################################################
@click.command(
    name="list",
    short_help="List disk images.",
)
@login_req
@click.argument("image_path", default="", required=False)
@format_opt(
    {
        "pretty": cli_images_list_format_pretty,
        "json": lambda d: jdumps(d[1]),
        "json-pretty": lambda d: jdumps(d[1], indent=2),
    }
)
def cli_images_list(image_path, format_function, session):
    """
    List images (*.img files and folders) found in IMAGE_PATH under the images directory.
    """

    list_path = join(CLI_CONFIG["qvs_images_dir"], image_path)
    retcode, retdata = qvs.lib.files.list_dir(session, list_path)
    if retcode:
        retdata = (image_path, retdata)
    finish(retcode, retdata, format_function)


###############################################################################
# > qvscli networks
###############################################################################
@click.group(
    name="networks",
    short_help="Manage virtual networks.",
    context_settings=CONTEXT_SETTINGS,
)
def cli_networks():
    """
    Manage the virtual switches VMs can be attached to.
    """
    pass


###############################################################################
# > qvscli networks list
###############################################################################
@click.command(
    name="list",
    short_help="List virtual networks.",
)
@login_req
@format_opt(
    {
        "pretty": cli_networks_list_format_pretty,
        "json": lambda d: jdumps(d),
        "json-pretty": lambda d: jdumps(d, indent=2),
    }
)
def cli_networks_list(format_function, session):
    """
    List virtual networks.
    """

    retcode, retdata = qvs.lib.network.network_list(session)
    finish(retcode, retdata, format_function)


###############################################################################
# > qvscli vm
###############################################################################
@click.group(
    name="vm",
    short_help="Manage virtual machines.",
    context_settings=CONTEXT_SETTINGS,
)
def cli_vm():
    """
    Manage the state of virtual machines in QVS.
    """
    pass


###############################################################################
# > qvscli vm list
###############################################################################
@click.command(
    name="list",
    short_help="List virtual machines.",
)
@login_req
@format_opt(
    {
        "pretty": cli_vm_list_format_pretty,
        "json": lambda d: jdumps(d),
        "json-pretty": lambda d: jdumps(d, indent=2),
    }
)
def cli_vm_list(format_function, session):
    """
    List virtual machines.
    """

    retcode, retdata = qvs.lib.vm.vm_list(session)
    finish(retcode, retdata, format_function)


###############################################################################
# > qvscli vm describe
###############################################################################
@click.command(
    name="describe",
    short_help="Describe a virtual machine.",
)
@login_req
@click.argument("domain")
def cli_vm_describe(domain, session):
    """
    Show the full QVS description of virtual machine DOMAIN (ID or name).
    """

    retcode, retdata = qvs.lib.vm.vm_get_id(session, domain)
    if not retcode:
        finish(retcode, retdata)

    retcode, retdata = qvs.lib.vm.vm_describe(session, retdata)
    finish(retcode, retdata, lambda d: jdumps(d, indent=2))


###############################################################################
# > qvscli vm start
###############################################################################
@click.command(
    name="start",
    short_help="Start a virtual machine.",
)
@login_req
@click.argument("domain")
def cli_vm_start(domain, session):
    """
    Start a stopped virtual machine DOMAIN (ID or name).
    """

    retcode, retdata = qvs.lib.vm.vm_get_id(session, domain)
    if not retcode:
        finish(retcode, retdata)

    retcode, retdata = qvs.lib.vm.vm_start(session, retdata)
    if retcode:
        retdata = f"Started VM: {domain}."
    finish(retcode, retdata)


###############################################################################
# > qvscli vm reset
###############################################################################
@click.command(
    name="reset",
    short_help="Reset a virtual machine.",
)
@login_req
@click.argument("domain")
def cli_vm_reset(domain, session):
    """
    Reset virtual machine DOMAIN (ID or name).
    """

    retcode, retdata = qvs.lib.vm.vm_get_id(session, domain)
    if not retcode:
        finish(retcode, retdata)

    retcode, retdata = qvs.lib.vm.vm_reset(session, retdata)
    if retcode:
        retdata = f"Reset VM: {domain}."
    finish(retcode, retdata)


###############################################################################
# > qvscli vm stop
###############################################################################
@click.command(
    name="stop",
    short_help="Stop a virtual machine.",
)
@login_req
@click.argument("domain")
@click.option(
    "--force",
    "force_flag",
    is_flag=True,
    default=False,
    help="Force shutdown the VM instead of sending an ACPI signal.",
)
def cli_vm_stop(domain, force_flag, session):
    """
    Stop virtual machine DOMAIN (ID or name).
    """

    retcode, retdata = qvs.lib.vm.vm_get_id(session, domain)
    if not retcode:
        finish(retcode, retdata)

    retcode, retdata = qvs.lib.vm.vm_shutdown(session, retdata, force=force_flag)
    if retcode:
        if force_flag:
            retdata = f"VM stopped: {domain}."
        else:
            retdata = f"Sent ACPI shutdown signal to VM: {domain}."
    finish(retcode, retdata)


###############################################################################
# > qvscli vm delete
###############################################################################
@click.command(
    name="delete",
    short_help="Delete a virtual machine.",
)
@login_req
@click.argument("domain")
@click.option(
    "--no-disk-del",
    "no_disk_del_flag",
    envvar="QVSCLI_VM_NO_DISK_DEL",
    is_flag=True,
    default=False,
    help="Do not delete disks after deleting VM.",
)
@confirm_opt("Delete VM {domain}")
def cli_vm_delete(domain, no_disk_del_flag, session):
    """
    Delete virtual machine DOMAIN (ID or name), stopping it first if needed, and remove its disk folder.
    """

    retcode, vm = qvs.lib.vm.vm_get(session, domain)
    if not retcode:
        finish(retcode, vm)
    vm_id = str(vm["id"])

    if vm.get("power_state") != "stop":
        warn(f"forcing shutdown of running vm: {domain}")
        retcode, retdata = qvs.lib.vm.vm_shutdown(session, vm_id, force=True)
        if not retcode:
            finish(retcode, retdata)

    retcode, retdata = qvs.lib.vm.vm_remove(session, vm_id)
    if not retcode:
        finish(retcode, retdata)
    info(f"Deleted VM: {domain}")

    disks = vm.get("disks") or list()
    if no_disk_del_flag:
        vm_disk_path = join(CLI_CONFIG["qvs_disks_dir"], vm["name"])
        warn(f"skipping disk deletion, disk data remains on NAS: {vm_disk_path}")
    elif len(disks) > 0:
        vm_disk_folder = dirname(disks[0]["path"])
        retcode, retdata = qvs.lib.files.delete_file(session, vm_disk_folder)
        if not retcode:
            finish(retcode, retdata)
        info(f"Deleted VM disk folder: {vm_disk_folder}")

    finish(True)


###############################################################################
# > qvscli vm create
###############################################################################
@click.command(
    name="create",
    short_help="Create a virtual machine.",
)
@login_req
@click.argument("name")
@click.option(
    "--no-start",
    "no_start_flag",
    envvar="QVSCLI_VM_NO_START",
    is_flag=True,
    default=False,
    help="Do not auto-start VM after creation.",
)
@click.option(
    "--startup-script",
    "startup_script",
    envvar="QVSCLI_STARTUP_SCRIPT",
    default="",
    help="Path to startup script to run once per instance through cloud-init.",
)
@click.option(
    "--meta-data",
    "meta_data_file",
    envvar="QVSCLI_META_DATA_FILE",
    default="",
    help="Path to meta-data file override for cloud-init; default is generated automatically.",
)
@click.option(
    "--user-data",
    "user_data_file",
    envvar="QVSCLI_USER_DATA_FILE",
    default="",
    help="Path to user-data file for cloud-init; default is generated automatically.",
)
@click.option(
    "--authorized-key",
    "authorized_key_file",
    envvar="QVSCLI_AUTHORIZED_KEY",
    default=lambda: join(environ.get("HOME", ""), ".ssh", "id_rsa.pub"),
    show_default="~/.ssh/id_rsa.pub",
    help="Path to public SSH key file when --user-data is not provided.",
)
@click.option(
    "--no-local-login",
    "no_local_login_flag",
    envvar="QVSCLI_NO_LOCAL_LOGIN",
    is_flag=True,
    default=False,
    help="Disable local login; no password is generated and only SSH can be used to access the VM.",
)
@click.option(
    "--no-cloud-init",
    "no_cloud_init_flag",
    envvar="QVSCLI_NO_CLOUD_INIT",
    is_flag=True,
    default=False,
    help="Disable cloud-init metadata ISO creation.",
)
@click.option(
    "--image",
    "image",
    envvar="QVSCLI_VM_IMAGE",
    default="ubuntu-cloud/xenial.img",
    show_default=True,
    help="Path to VM base image relative to the images directory.",
)
@click.option(
    "--mac",
    "mac",
    envvar="QVSCLI_VM_MAC",
    default="",
    help="MAC address of the network interface; one is generated if not set.",
)
@click.option(
    "--network",
    "--net",
    "network",
    envvar="QVSCLI_VM_NET",
    default="br0",
    show_default=True,
    help="Network to attach; get names from 'qvscli networks list'.",
)
@click.option(
    "--description",
    "--desc",
    "description",
    envvar="QVSCLI_VM_DESCRIPTION",
    default="",
    help="VM description; default is generated from the creation time.",
)
@click.option(
    "--cores",
    "cores",
    envvar="QVSCLI_VM_CORES",
    type=int,
    default=1,
    show_default=True,
    help="Number of cores for VM.",
)
@click.option(
    "--memory",
    "--mem",
    "memory_gb",
    envvar="QVSCLI_VM_MEM_GB",
    type=int,
    default=2,
    show_default=True,
    help="Memory for VM in integer gigabytes.",
)
@click.option(
    "--vnc-password",
    "vnc_password",
    envvar="QVSCLI_VM_VNC_PASSWORD",
    default="",
    help="VNC password up to 8 characters long; one is generated if not set.",
)
def cli_vm_create(
    name,
    no_start_flag,
    startup_script,
    meta_data_file,
    user_data_file,
    authorized_key_file,
    no_local_login_flag,
    no_cloud_init_flag,
    image,
    mac,
    network,
    description,
    cores,
    memory_gb,
    vnc_password,
    session,
):
    """
    Create virtual machine NAME from a base image, with generated or provided cloud-init meta-data and user-data.
    """

    if not match(VM_NAME_REGEX, name):
        finish(False, f"invalid instance name: {name}")

    disks_dir = CLI_CONFIG["qvs_disks_dir"]
    images_dir = CLI_CONFIG["qvs_images_dir"]

    if not mac:
        retcode, retdata = qvs.lib.vm.mac_create(session)
        if not retcode:
            finish(retcode, retdata)
        mac = retdata
        info(f"Generated new MAC address for instance: {mac}")

    image_src = join(images_dir, image)
    retcode, retdata = qvs.lib.files.list_dir(session, dirname(image_src))
    if not retcode:
        finish(retcode, retdata)
    if basename(image) not in [f.get("filename") for f in retdata]:
        finish(False, f"VM image file not found: {image}")

    now = datetime.now(timezone.utc)
    ts = int(now.timestamp())
    vm_dir = join(disks_dir, name)

    with TemporaryDirectory(prefix="ci-metadata-iso") as work_dir:
        iso_dest = ""
        if no_cloud_init_flag:
            warn(
                "cloud-init disabled, skipping metadata ISO creation. You may not be able log into the VM after booting."
            )
        else:
            login_password = None
            if not no_local_login_flag and not user_data_file:
                login_password = qvs.lib.cloudinit.generate_password()
                info(f"Your SSH password is: {login_password}")

            retcode, retdata = qvs.lib.cloudinit.prepare_config_iso(
                work_dir,
                name,
                ts,
                meta_data_file=meta_data_file,
                user_data_file=user_data_file,
                authorized_key_file=authorized_key_file,
                password=login_password,
                startup_script_file=startup_script,
            )
            if not retcode:
                finish(retcode, retdata)
            iso_file = retdata
            iso_dest = join(vm_dir, basename(iso_file))

        retcode, retdata = qvs.lib.files.list_dir(session, disks_dir)
        if not retcode:
            finish(retcode, retdata)
        if name not in [f.get("filename") for f in retdata]:
            info(f"Creating directory on NAS for VM: {vm_dir}")
            retcode, retdata = qvs.lib.files.create_dir(session, vm_dir)
            if not retcode:
                finish(retcode, retdata)

        if iso_dest:
            info(f"Uploading metadata ISO image to NAS: {iso_dest}")
            retcode, retdata = qvs.lib.files.upload_file(session, iso_file, iso_dest)
            if not retcode:
                finish(retcode, retdata)

    image_dest = join(vm_dir, basename(image))
    boot_disk_file = f"boot_disk_{ts}.img"
    boot_disk_path = join(vm_dir, boot_disk_file)

    info(f"Remote copy VM image {image_src} -> {boot_disk_path}")
    retcode, retdata = qvs.lib.files.copy_file(session, image_src, image_dest)
    if not retcode:
        finish(retcode, retdata)
    retcode, retdata = qvs.lib.files.rename_file(
        session, vm_dir, basename(image_dest), boot_disk_file
    )
    if not retcode:
        finish(retcode, retdata)

    if not vnc_password:
        vnc_password = qvs.lib.cloudinit.generate_password()
        info(f"Your VNC password is: {vnc_password}")

    if not description:
        description = f"Created with qvscli at {now.strftime('%Y%m%d%H%M%S')}"

    retcode, retdata = qvs.lib.vm.vm_create(
        session,
        name,
        description,
        "linux",
        cores,
        memory_gb,
        network,
        mac,
        iso_dest,
        boot_disk_path,
        vnc_password,
    )
    if not retcode:
        finish(retcode, retdata)
    info(f"VM Created: {name}.")

    if no_start_flag:
        warn(
            f"not starting newly created vm because --no-start flag was passed. To start VM, run: 'qvscli vm start {name}'"
        )
        finish(True)

    retcode, vm = qvs.lib.vm.vm_get(session, name)
    if not retcode:
        finish(retcode, vm)
    retcode, retdata = qvs.lib.vm.vm_start(session, str(vm["id"]))
    if not retcode:
        finish(retcode, retdata)

    retcode, vm = qvs.lib.vm.vm_get(session, name)
    if not retcode:
        finish(retcode, vm)
    finish(True, f"VM started. VNC port: {qvs.lib.vm.get_vnc_port(vm) or 'N/A'}")


###############################################################################
# > qvscli vm snapshot
###############################################################################
@click.group(
    name="snapshot",
    short_help="Manage VM disk snapshots.",
    context_settings=CONTEXT_SETTINGS,
)
def cli_vm_snapshot():
    """
    Manage VM disk snapshots stored in the "snapshots" folder of the images directory.
    """
    pass


###############################################################################
# > qvscli vm snapshot list
###############################################################################
@click.command(
    name="list",
    short_help="List all VM disk snapshots.",
)
@login_req
@format_opt(
    {
        "pretty": cli_vm_snapshot_list_format_pretty,
        "json": lambda d: jdumps(d),
        "json-pretty": lambda d: jdumps(d, indent=2),
    }
)
def cli_vm_snapshot_list(format_function, session):
    """
    List all VM disk snapshots.
    """

    snap_dir = join(CLI_CONFIG["qvs_images_dir"], "snapshots")
    retcode, retdata = qvs.lib.vm.vm_snapshot_list(session, snap_dir)
    finish(retcode, retdata, format_function)


###############################################################################
# > qvscli vm snapshot create
###############################################################################
@click.command(
    name="create",
    short_help="Create a VM disk snapshot.",
)
@login_req
@click.argument("name")
@click.option(
    "--vm",
    "domain",
    required=True,
    help="The ID or name of the VM to snapshot.",
)
def cli_vm_snapshot_create(name, domain, session):
    """
    Create disk snapshot NAME of the first disk of a stopped VM.
    """

    snap_dir = join(CLI_CONFIG["qvs_images_dir"], "snapshots")
    retcode, retdata = qvs.lib.vm.vm_snapshot_create(session, domain, name, snap_dir)
    if retcode:
        retdata = f"Created disk snapshot {retdata}"
    finish(retcode, retdata)


###############################################################################
# > qvscli vm snapshot delete
###############################################################################
@click.command(
    name="delete",
    short_help="Delete a VM disk snapshot.",
)
@login_req
@click.argument("snapshot")
def cli_vm_snapshot_delete(snapshot, session):
    """
    Delete disk snapshot file SNAPSHOT.
    """

    snap_dir = join(CLI_CONFIG["qvs_images_dir"], "snapshots")
    info(f"Deleting snapshot file: {snapshot}")
    retcode, retdata = qvs.lib.vm.vm_snapshot_remove(session, snap_dir, snapshot)
    finish(retcode, retdata)


###############################################################################
# > qvscli
###############################################################################
@click.group(context_settings=CONTEXT_SETTINGS)
@click.option(
    "-c",
    "--config",
    "_cfgfile",
    envvar="QVSCLI_CONFIG",
    default=DEFAULT_CONFIG_FILE,
    show_default=False,
    help="Read defaults from this YAML configuration file.",
)
@click.option(
    "--qts-url",
    "_qts_url",
    envvar="QVSCLI_QTS_URL",
    default=None,
    help="URL of QTS, typically the https DNS name of your QNAP NAS.",
)
@click.option(
    "--qvs-disks-dir",
    "_qvs_disks_dir",
    envvar="QVSCLI_QVS_DISKS_DIR",
    default=None,
    help="NAS path to folder where disk images are stored.",
)
@click.option(
    "--qvs-images-dir",
    "_qvs_images_dir",
    envvar="QVSCLI_QVS_IMAGES_DIR",
    default=None,
    help="NAS path to base image directory containing folders or .img files.",
)
@click.option(
    "--loginfile",
    "_login_file",
    envvar="QVSCLI_LOGIN_FILE",
    default=None,
    help="Override default login file.",
)
@click.option(
    "-v",
    "--debug",
    "_debug",
    envvar="QVSCLI_HTTP_DEBUG",
    is_flag=True,
    default=False,
    help="Enable HTTP response debugging.",
)
@click.option(
    "-q",
    "--quiet",
    "_quiet",
    envvar="QVSCLI_QUIET",
    is_flag=True,
    default=False,
    help="Suppress informational output to stderr.",
)
@click.option(
    "-s",
    "--silent",
    "_silent",
    envvar="QVSCLI_SILENT",
    is_flag=True,
    default=False,
    help="Suppress information sent to stdout and stderr.",
)
@click.option(
    "-u",
    "--unsafe",
    "_unsafe",
    envvar="QVSCLI_UNSAFE",
    is_flag=True,
    default=False,
    help='Perform unsafe operations without confirmation/"--yes" argument.',
)
@click.option(
    "--colour",
    "--color",
    "_colour",
    envvar="QVSCLI_COLOUR",
    is_flag=True,
    default=False,
    help="Force colourized output.",
)
@click.option(
    "--version",
    is_flag=True,
    callback=version,
    expose_value=False,
    is_eager=True,
    help="Show CLI version and exit.",
)
def cli(
    _cfgfile,
    _qts_url,
    _qvs_disks_dir,
    _qvs_images_dir,
    _login_file,
    _debug,
    _quiet,
    _silent,
    _unsafe,
    _colour,
):
    """
    QNAP Virtualization Station CLI management tool

    Environment variables:

      "QVSCLI_QTS_URL": Set the QTS URL instead of using --qts-url

      "QVSCLI_LOGIN_FILE": Set the login file instead of using --loginfile

      "QVSCLI_CONFIG": Set the YAML configuration file instead of using --config/-c

      "QVSCLI_VERIFY_SSL": Set to "False" to skip TLS certificate verification

      "QVSCLI_HTTP_DEBUG": Enable HTTP response debugging instead of using --debug/-v

      "QVSCLI_UNSAFE": Always suppress confirmations instead of needing --unsafe/-u or --yes/-y

    Run "qvscli login" first; the session is stored in the login file and reused
    until QTS expires it.
    """

    global CLI_CONFIG

    overrides = {
        "qts_url": _qts_url,
        "qvs_disks_dir": _qvs_disks_dir,
        "qvs_images_dir": _qvs_images_dir,
        "login_file": _login_file,
        "verify_ssl": environ.get("QVSCLI_VERIFY_SSL", None),
    }
    CLI_CONFIG = get_config(_cfgfile, overrides)

    CLI_CONFIG["debug"] = _debug
    CLI_CONFIG["unsafe"] = _unsafe
    CLI_CONFIG["colour"] = _colour
    CLI_CONFIG["quiet"] = _quiet
    CLI_CONFIG["silent"] = _silent

    audit()


###############################################################################
# Click command tree
###############################################################################

cli.add_command(cli_login)
cli_mac.add_command(cli_mac_create)
cli.add_command(cli_mac)
cli_images.add_command(cli_images_list)
cli_images.add_command(cli_images_list, name="ls")
cli.add_command(cli_images)
cli.add_command(cli_images, name="image")
cli_networks.add_command(cli_networks_list)
cli_networks.add_command(cli_networks_list, name="ls")
cli.add_command(cli_networks)
cli.add_command(cli_networks, name="net")
cli_vm.add_command(cli_vm_list)
cli_vm.add_command(cli_vm_list, name="ls")
cli_vm.add_command(cli_vm_describe)
cli_vm.add_command(cli_vm_describe, name="desc")
cli_vm.add_command(cli_vm_start)
cli_vm.add_command(cli_vm_reset)
cli_vm.add_command(cli_vm_stop)
cli_vm.add_command(cli_vm_stop, name="shutdown")
cli_vm.add_command(cli_vm_delete)
cli_vm.add_command(cli_vm_delete, name="rm")
cli_vm.add_command(cli_vm_create)
cli_vm_snapshot.add_command(cli_vm_snapshot_list)
cli_vm_snapshot.add_command(cli_vm_snapshot_create)
cli_vm_snapshot.add_command(cli_vm_snapshot_delete)
cli_vm.add_command(cli_vm_snapshot)
cli.add_command(cli_vm)
