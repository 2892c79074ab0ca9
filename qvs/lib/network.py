#!/usr/bin/env python3

# network.py - QVS CLI client function library, Network functions
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

import qvs.lib.ansiprint as ansiprint
from qvs.lib.common import FAMILY_NETMGR, QTS_NET_MANAGER, call_api
from qvs.lib.errors import QVSError


#
# Primary functions
#
def netmgr_list(session):
    """
    Get the raw network list from the QTS network manager

    API endpoint: GET /netmgr/api.cgi/list
    API arguments: sid={session id}
    API schema: [{"display_name":"{name}","vswitch_name":"{bridge}","vswitch_ip":"{ip}","nic":"{nic}"},...]
    """
    try:
        response = call_api(
            session, "get", f"{QTS_NET_MANAGER}/list", family=FAMILY_NETMGR
        )
        networks = response.json()
    except QVSError as e:
        return False, str(e)
    except ValueError:
        return False, "Invalid network list returned by the network manager."

    if not isinstance(networks, list):
        return False, "Invalid network list returned by the network manager."

    return True, networks


def network_list(session):
    """
    Get the virtual switches usable by QVS (those with a display name)
    """
    retcode, retdata = netmgr_list(session)
    if not retcode:
        return retcode, retdata

    networks = list()
    for network in retdata:
        if not network.get("display_name"):
            continue
        networks.append(
            {
                "display_name": network.get("display_name"),
                "name": network.get("vswitch_name") or "",
                "ip": network.get("vswitch_ip") or "",
                "nics": [network.get("nic") or ""],
            }
        )

    return True, networks


#
# Output display functions
#
def format_list(config, network_list):
    # Determine optimal column widths
    net_display_name_length = 5
    net_name_length = 7
    net_ip_length = 3
    for network_information in network_list:
        # display_name column
        _net_display_name_length = len(network_information["display_name"]) + 1
        if _net_display_name_length > net_display_name_length:
            net_display_name_length = _net_display_name_length
        # name column
        _net_name_length = len(network_information["name"]) + 1
        if _net_name_length > net_name_length:
            net_name_length = _net_name_length
        # ip column
        _net_ip_length = len(network_information["ip"]) + 1
        if _net_ip_length > net_ip_length:
            net_ip_length = _net_ip_length

    network_list_output = []

    network_list_output.append(
        "{bold}{net_display_name: <{net_display_name_length}} \
{net_name: <{net_name_length}} \
{net_ip: <{net_ip_length}} \
{net_nics}{end_bold}".format(
            bold=ansiprint.bold(),
            end_bold=ansiprint.end(),
            net_display_name_length=net_display_name_length,
            net_name_length=net_name_length,
            net_ip_length=net_ip_length,
            net_display_name="Name",
            net_name="Bridge",
            net_ip="IP",
            net_nics="Interfaces",
        )
    )

    for network_information in sorted(
        network_list, key=lambda n: n["display_name"].lower()
    ):
        network_list_output.append(
            "{bold}{net_display_name: <{net_display_name_length}} \
{net_name: <{net_name_length}} \
{net_ip: <{net_ip_length}} \
{net_nics}{end_bold}".format(
                bold="",
                end_bold="",
                net_display_name_length=net_display_name_length,
                net_name_length=net_name_length,
                net_ip_length=net_ip_length,
                net_display_name=network_information["display_name"],
                net_name=network_information["name"],
                net_ip=network_information["ip"],
                net_nics=",".join(network_information["nics"]),
            )
        )

    return "\n".join(network_list_output)
