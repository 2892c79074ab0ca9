#!/usr/bin/env python3

# ansiprint.py - Colour helpers for formatted output
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

from colorama import Fore, Style


def red():
    return Fore.LIGHTRED_EX


def blue():
    return Fore.LIGHTBLUE_EX


def green():
    return Fore.LIGHTGREEN_EX


def yellow():
    return Fore.LIGHTYELLOW_EX


def purple():
    return Fore.LIGHTMAGENTA_EX


def bold():
    return Style.BRIGHT


def end():
    return Style.RESET_ALL


def state_colour(power_state):
    """
    Pick the colour for a VM power state as reported by QVS
    """
    if power_state in ["running"]:
        return green()
    elif power_state in ["paused", "suspended", "starting", "stopping"]:
        return yellow()
    elif power_state in ["stop", "stopped", "crashed"]:
        return red()
    else:
        return blue()
