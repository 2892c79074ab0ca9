#!/usr/bin/env python3

# vm.py - QVS CLI client function library, VM functions
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

from base64 import b64encode
from json import dumps as jdumps
from posixpath import basename, dirname, join

import qvs.lib.ansiprint as ansiprint
import qvs.lib.files
from qvs.lib.common import call_api, get_data
from qvs.lib.errors import QVSError


QVS_VMS = "/qvs/vms"
QVS_GET_MAC = "/qvs/vms/mac"
QVS_VM_START = "/qvs/vms/{}/start"
QVS_VM_RESET = "/qvs/vms/{}/reset"
QVS_VM_SHUTDOWN = "/qvs/vms/{}/shutdown"
QVS_VM_FORCE_SHUTDOWN = "/qvs/vms/{}/forceshutdown"

SNAPSHOT_PREFIX = "qvs-snap-"


#
# Primary functions
#
def mac_create(session):
    """
    Generate a new MAC address

    API endpoint: GET /qvs/vms/mac
    API arguments:
    API schema: {"status":0,"data":"{mac}"}
    """
    try:
        response = call_api(session, "get", QVS_GET_MAC)
        mac = get_data(response)
    except QVSError as e:
        return False, str(e)

    if not mac:
        return False, "No MAC address returned by QVS."
    return True, mac


def vm_list(session):
    """
    Get list information about VMs

    API endpoint: GET /qvs/vms
    API arguments:
    API schema: {"status":0,"data":[{json_data_object},{json_data_object},etc.]}
    """
    try:
        response = call_api(session, "get", QVS_VMS)
        vms = get_data(response)
    except QVSError as e:
        return False, str(e)

    if vms is None:
        vms = list()
    if not isinstance(vms, list):
        return False, "Invalid VM list returned by QVS."

    return True, vms


def vm_get(session, id_or_name):
    """
    Find a (single) VM by name or numeric ID
    """
    retcode, retdata = vm_list(session)
    if not retcode:
        return retcode, retdata

    for vm in retdata:
        if vm.get("name") == id_or_name or str(vm.get("id")) == id_or_name:
            return True, vm

    return False, f"VM with id or name '{id_or_name}' not found"


def vm_get_id(session, id_or_name):
    retcode, retdata = vm_get(session, id_or_name)
    if not retcode:
        return retcode, retdata
    return True, str(retdata["id"])


def vm_describe(session, vm_id):
    """
    Get full information about VM {vm_id}

    API endpoint: GET /qvs/vms/{vm_id}
    API arguments:
    API schema: {"status":0,"data":{json_data_object}}
    """
    try:
        response = call_api(session, "get", f"{QVS_VMS}/{vm_id}")
        return True, get_data(response)
    except QVSError as e:
        return False, str(e)


def vm_create(
    session,
    name,
    description,
    os_type,
    cores,
    memory_gb,
    network,
    mac,
    boot_iso_path,
    disk_image_path,
    vnc_password,
):
    """
    Create a new VM from an existing disk image

    API endpoint: POST /qvs/vms
    API arguments: {json_data_object}
    API schema: {"status":0,"data":{json_data_object}}
    """
    vm = {
        "name": name,
        "description": description,
        "os_type": "ubuntuzesty" if os_type == "linux" else "win100",
        "is_agent_enabled": True,
        "cores": cores,
        "memory": memory_gb * 1024 * 1024 * 1024,
        "adapters": [{"mac": mac, "bridge": network, "model": "virtio"}],
        "cdroms": [{"path": boot_iso_path}],
        "disks": [{"creating_image": "false", "path": disk_image_path}],
    }
    if vnc_password:
        vm["graphics"] = [
            {
                "type": "vnc",
                "enable_password": True,
                "password": b64encode(vnc_password.encode("utf-8")).decode("ascii"),
            }
        ]

    try:
        call_api(session, "post", QVS_VMS, data=jdumps(vm))
    except QVSError as e:
        return False, str(e)

    return True, f"VM Created: {name}."


def vm_start(session, vm_id):
    """
    Start VM {vm_id}

    API endpoint: POST /qvs/vms/{vm_id}/start
    """
    try:
        call_api(session, "post", QVS_VM_START.format(vm_id), data="{}")
    except QVSError as e:
        return False, str(e)

    return True, f"Started VM {vm_id}."


def vm_reset(session, vm_id):
    """
    Reset VM {vm_id}

    API endpoint: POST /qvs/vms/{vm_id}/reset
    """
    try:
        call_api(session, "post", QVS_VM_RESET.format(vm_id), data="{}")
    except QVSError as e:
        return False, str(e)

    return True, f"Reset VM {vm_id}."


def vm_shutdown(session, vm_id, force=False):
    """
    Shut down VM {vm_id} with an ACPI signal, or stop it immediately if {force}

    API endpoint: POST /qvs/vms/{vm_id}/shutdown or /qvs/vms/{vm_id}/forceshutdown
    """
    if force:
        path = QVS_VM_FORCE_SHUTDOWN.format(vm_id)
    else:
        path = QVS_VM_SHUTDOWN.format(vm_id)

    try:
        call_api(session, "post", path, data="{}")
    except QVSError as e:
        return False, str(e)

    if force:
        return True, f"VM stopped: {vm_id}."
    return True, f"Sent ACPI shutdown signal to VM: {vm_id}."


def vm_remove(session, vm_id):
    """
    Delete VM {vm_id}; its disk files are left on the NAS

    API endpoint: DELETE /qvs/vms/{vm_id}
    """
    try:
        call_api(session, "delete", f"{QVS_VMS}/{vm_id}", data="{}")
    except QVSError as e:
        return False, str(e)

    return True, f"Deleted VM {vm_id}."


#
# Disk snapshot functions
#
def vm_snapshot_list(session, snap_dir):
    retcode, retdata = qvs.lib.files.list_dir(session, snap_dir)
    if not retcode:
        return retcode, retdata

    return True, [f for f in retdata if f.get("isfolder") == 0]


def vm_snapshot_create(session, id_or_name, name, snap_dir):
    """
    Copy the first disk of stopped VM {id_or_name} into {snap_dir} as qvs-snap-{name}.img
    """
    retcode, vm = vm_get(session, id_or_name)
    if not retcode:
        return retcode, vm

    if vm.get("power_state") != "stop":
        return False, "VM must be stopped before creating disk snapshot"

    disks = vm.get("disks") or list()
    if not disks or not disks[0].get("root_path"):
        return False, f"VM {vm.get('name')} has no disk to snapshot"

    src_path = disks[0]["root_path"]
    src_base = basename(src_path)
    dest_path = join(snap_dir, f"{SNAPSHOT_PREFIX}{name}.img")

    retcode, retdata = qvs.lib.files.list_dir(session, dirname(snap_dir))
    if not retcode:
        return retcode, retdata

    found = False
    for qts_file in retdata:
        if qts_file.get("filename") == basename(snap_dir) and qts_file.get("isfolder") == 1:
            found = True
            break
    if not found:
        retcode, retdata = qvs.lib.files.create_dir(session, snap_dir)
        if not retcode:
            return retcode, retdata

    retcode, retdata = qvs.lib.files.copy_file(session, src_path, join(snap_dir, src_base))
    if not retcode:
        return retcode, retdata

    retcode, retdata = qvs.lib.files.rename_file(
        session, snap_dir, src_base, basename(dest_path)
    )
    if not retcode:
        return retcode, retdata

    return True, dest_path


def vm_snapshot_remove(session, snap_dir, snap_file):
    retcode, retdata = qvs.lib.files.list_dir(session, snap_dir)
    if not retcode:
        return retcode, retdata

    for qts_file in retdata:
        if basename(qts_file.get("filename", "")) == snap_file:
            return qvs.lib.files.delete_file(session, join(snap_dir, qts_file["filename"]))

    return False, f"failed to find snapshot file '{snap_file}' in snapshot directory"


#
# Output display functions
#
def get_vnc_port(vm_information):
    graphics = vm_information.get("graphics") or list()
    if len(graphics) > 0 and (graphics[0].get("port") or 0) > 0:
        return str(graphics[0]["port"])
    return ""


def format_list(config, vm_list):
    # Function to pull the first adapter's bridge and MAC, if any
    def getFirstAdapter(vm_information):
        adapters = vm_information.get("adapters") or list()
        if len(adapters) < 1:
            return "", ""
        return adapters[0].get("bridge", ""), adapters[0].get("mac", "")

    vm_list_output = []

    # Determine optimal column widths
    vm_name_length = 5
    vm_id_length = 3
    vm_state_length = 6
    vm_network_length = 8
    vm_mac_length = 12
    vm_vnc_length = 9
    for vm_information in vm_list:
        bridge, mac = getFirstAdapter(vm_information)
        # vm_name column
        _vm_name_length = len(vm_information["name"]) + 1
        if _vm_name_length > vm_name_length:
            vm_name_length = _vm_name_length
        # vm_id column
        _vm_id_length = len(str(vm_information["id"])) + 1
        if _vm_id_length > vm_id_length:
            vm_id_length = _vm_id_length
        # vm_state column
        _vm_state_length = len(vm_information.get("power_state", "")) + 1
        if _vm_state_length > vm_state_length:
            vm_state_length = _vm_state_length
        # vm_network column
        _vm_network_length = len(bridge) + 1
        if _vm_network_length > vm_network_length:
            vm_network_length = _vm_network_length
        # vm_mac column
        _vm_mac_length = len(mac) + 1
        if _vm_mac_length > vm_mac_length:
            vm_mac_length = _vm_mac_length

    vm_list_output.append(
        "{bold}{vm_name: <{vm_name_length}} \
{vm_id: <{vm_id_length}} \
{vm_state_colour}{vm_state: <{vm_state_length}}{end_colour} \
{vm_network: <{vm_network_length}} \
{vm_mac: <{vm_mac_length}} \
{vm_vnc: <{vm_vnc_length}}{end_bold}".format(
            vm_name_length=vm_name_length,
            vm_id_length=vm_id_length,
            vm_state_length=vm_state_length,
            vm_network_length=vm_network_length,
            vm_mac_length=vm_mac_length,
            vm_vnc_length=vm_vnc_length,
            bold=ansiprint.bold(),
            end_bold=ansiprint.end(),
            vm_state_colour="",
            end_colour="",
            vm_name="Name",
            vm_id="ID",
            vm_state="State",
            vm_network="Network",
            vm_mac="MAC Address",
            vm_vnc="VNC Port",
        )
    )

    for vm_information in sorted(vm_list, key=lambda v: v["name"].lower()):
        bridge, mac = getFirstAdapter(vm_information)
        vm_list_output.append(
            "{bold}{vm_name: <{vm_name_length}} \
{vm_id: <{vm_id_length}} \
{vm_state_colour}{vm_state: <{vm_state_length}}{end_colour} \
{vm_network: <{vm_network_length}} \
{vm_mac: <{vm_mac_length}} \
{vm_vnc: <{vm_vnc_length}}{end_bold}".format(
                vm_name_length=vm_name_length,
                vm_id_length=vm_id_length,
                vm_state_length=vm_state_length,
                vm_network_length=vm_network_length,
                vm_mac_length=vm_mac_length,
                vm_vnc_length=vm_vnc_length,
                bold="",
                end_bold="",
                vm_state_colour=ansiprint.state_colour(
                    vm_information.get("power_state", "")
                ),
                end_colour=ansiprint.end(),
                vm_name=vm_information["name"],
                vm_id=str(vm_information["id"]),
                vm_state=vm_information.get("power_state", ""),
                vm_network=bridge,
                vm_mac=mac,
                vm_vnc=get_vnc_port(vm_information),
            )
        )

    return "\n".join(vm_list_output)
