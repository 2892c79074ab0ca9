#!/usr/bin/env python3

# formatters.py - QVS Click CLI output formatters library
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

from qvs.lib.vm import format_list as vm_format_list
from qvs.lib.network import format_list as network_format_list
from qvs.lib.files import format_list_images as files_format_images_list
from qvs.lib.files import format_list_snapshots as files_format_snapshots_list


def cli_images_list_format_pretty(CLI_CONFIG, data):
    """
    Pretty format the output of cli_images_list
    """

    return files_format_images_list(CLI_CONFIG, data)


def cli_networks_list_format_pretty(CLI_CONFIG, data):
    """
    Pretty format the output of cli_networks_list
    """

    return network_format_list(CLI_CONFIG, data)


def cli_vm_list_format_pretty(CLI_CONFIG, data):
    """
    Pretty format the output of cli_vm_list
    """

    return vm_format_list(CLI_CONFIG, data)


def cli_vm_snapshot_list_format_pretty(CLI_CONFIG, data):
    """
    Pretty format the output of cli_vm_snapshot_list
    """

    return files_format_snapshots_list(CLI_CONFIG, data)
