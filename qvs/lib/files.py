#!/usr/bin/env python3

# files.py - QVS CLI client function library, QTS File Station functions
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

from posixpath import basename, dirname, join
from requests_toolbelt.multipart.encoder import MultipartEncoder, MultipartEncoderMonitor

from qvs.lib.common import (
    FAMILY_FILEMANAGER,
    QTS_FILE_STATION,
    UploadProgressBar,
    call_api,
)
from qvs.lib.errors import QVSError
import qvs.lib.ansiprint as ansiprint


def filemanager_request(session, function, form=None, params=None, headers=None):
    """
    Issue a File Station {function} request with an URL-encoded {form}
    """
    request_params = {"func": function}
    if params:
        request_params.update(params)

    return call_api(
        session,
        "post",
        QTS_FILE_STATION,
        family=FAMILY_FILEMANAGER,
        headers=headers,
        params=request_params,
        data=form,
    )


#
# Primary functions
#
def list_dir(session, qts_path):
    """
    List the contents of directory {qts_path} on the NAS

    API endpoint: POST /cgi-bin/filemanager/utilRequest.cgi?func=get_list
    API arguments: path={qts_path}, start=0, limit=500, sort=natural, dir=ASC
    API schema: {"datas":[{"filename":"{name}","isfolder":{0|1},"mt":"{mtime}",...},...]}
    """
    form = {
        "path": qts_path,
        "start": "0",
        "limit": "500",
        "sort": "natural",
        "dir": "ASC",
    }

    try:
        response = filemanager_request(session, "get_list", form=form)
        datas = response.json().get("datas", list())
    except QVSError as e:
        return False, str(e)
    except (ValueError, AttributeError):
        return False, f"Invalid directory listing returned for {qts_path}."

    if datas is None:
        datas = list()
    return True, datas


def create_dir(session, dest_dir):
    """
    Create directory {dest_dir} on the NAS

    API endpoint: POST /cgi-bin/filemanager/utilRequest.cgi?func=createdir
    API arguments: dest_path={parent}, dest_folder={name}
    """
    form = {
        "dest_path": dirname(dest_dir),
        "dest_folder": basename(dest_dir),
    }

    try:
        filemanager_request(session, "createdir", form=form)
    except QVSError as e:
        return False, str(e)

    return True, f"Created directory {dest_dir}."


def copy_file(session, src_path, dest_path):
    """
    Copy file {src_path} into the directory of {dest_path} on the NAS

    API endpoint: POST /cgi-bin/filemanager/utilRequest.cgi?func=copy
    API arguments: source_total=1, mode=0, source_file={name}, source_path={dir}, dest_path={dir}
    """
    form = {
        "source_total": "1",
        "mode": "0",
        "source_file": basename(src_path),
        "source_path": dirname(src_path),
        "dest_path": dirname(dest_path),
    }

    try:
        filemanager_request(session, "copy", form=form)
    except QVSError as e:
        return False, str(e)

    return True, f"Copied {src_path} to {dirname(dest_path)}."


def rename_file(session, qts_path, src_name, dest_name):
    """
    Rename {src_name} to {dest_name} inside directory {qts_path}

    API endpoint: POST /cgi-bin/filemanager/utilRequest.cgi?func=rename
    API arguments: path={qts_path}, source_name={src_name}, dest_name={dest_name}
    """
    form = {
        "path": qts_path,
        "source_name": src_name,
        "dest_name": dest_name,
    }

    try:
        filemanager_request(session, "rename", form=form)
    except QVSError as e:
        return False, str(e)

    return True, f"Renamed {join(qts_path, src_name)} to {dest_name}."


def delete_file(session, qts_path):
    """
    Delete file or directory {qts_path} on the NAS

    API endpoint: POST /cgi-bin/filemanager/utilRequest.cgi?func=delete
    API arguments: path={dir}, file_total=1, file_name={name}
    """
    form = {
        "path": dirname(qts_path),
        "file_total": "1",
        "file_name": basename(qts_path),
    }

    try:
        filemanager_request(session, "delete", form=form)
    except QVSError as e:
        return False, str(e)

    return True, f"Deleted {qts_path}."


def upload_file(session, local_file, dest_path):
    """
    Upload {local_file} to {dest_path} on the NAS, overwriting any existing file

    API endpoint: POST /cgi-bin/filemanager/utilRequest.cgi?func=upload
    API arguments: type=standard, dest_path={dir}, overwrite=1, progress={token}
    API schema: multipart/form-data with the file in part "data"
    """
    params = {
        "type": "standard",
        "dest_path": dirname(dest_path),
        "overwrite": "1",
        "progress": dest_path.replace("/", "-"),
    }

    try:
        with open(local_file, "rb") as fh:
            bar = UploadProgressBar(local_file, config=session.config)
            upload_data = MultipartEncoder(
                fields={
                    "data": (basename(dest_path), fh, "application/octet-stream")
                }
            )
            upload_monitor = MultipartEncoderMonitor(upload_data, bar.update)

            headers = {"Content-Type": upload_monitor.content_type}

            filemanager_request(
                session,
                "upload",
                params=params,
                headers=headers,
                form=upload_monitor,
            )
    except OSError as e:
        return False, f"Failed to read {local_file}: {e}"
    except QVSError as e:
        return False, str(e)

    return True, f"Uploaded {local_file} to {dest_path}."


#
# Output display functions
#
def is_image_file(qts_file):
    return (
        ".img" in qts_file.get("filename", "") or qts_file.get("isfolder") == 1
    ) and "@" not in qts_file.get("filename", "")


def format_list_images(config, data):
    """
    Format an image directory listing; {data} is a tuple of (subpath, files)
    """
    image_path, image_files = data

    image_list_output = []

    image_list_output.append(
        "{bold}{image_header}{end_bold}".format(
            bold=ansiprint.bold(),
            end_bold=ansiprint.end(),
            image_header="Name",
        )
    )

    for image_file in sorted(image_files, key=lambda f: f["filename"].lower()):
        if not is_image_file(image_file):
            continue
        display_name = join(image_path, image_file["filename"])
        if image_file.get("isfolder") == 1:
            display_name += "/"
        image_list_output.append(display_name)

    return "\n".join(image_list_output)


def format_list_snapshots(config, snapshot_files):
    snapshot_name_length = 5
    for snapshot_file in snapshot_files:
        _snapshot_name_length = len(snapshot_file["filename"]) + 1
        if _snapshot_name_length > snapshot_name_length:
            snapshot_name_length = _snapshot_name_length

    snapshot_list_output = []

    snapshot_list_output.append(
        "{bold}{snapshot_name: <{snapshot_name_length}} {snapshot_time}{end_bold}".format(
            bold=ansiprint.bold(),
            end_bold=ansiprint.end(),
            snapshot_name_length=snapshot_name_length,
            snapshot_name="Name",
            snapshot_time="Timestamp",
        )
    )

    for snapshot_file in snapshot_files:
        snapshot_list_output.append(
            "{snapshot_name: <{snapshot_name_length}} {snapshot_time}".format(
                snapshot_name_length=snapshot_name_length,
                snapshot_name=snapshot_file["filename"],
                snapshot_time=snapshot_file.get("mt", ""),
            )
        )

    return "\n".join(snapshot_list_output)
