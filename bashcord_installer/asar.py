"""Writes the small app.asar that loads the mod from elsewhere on disk."""

from __future__ import annotations

import json
import os
import struct

PACKAGE_JSON = '{\n\t"name": "discord",\n\t"main": "index.js"\n}'

_DATA_SIZE = 4

_GO_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _json_string(value: str) -> str:
    encoded = json.dumps(value, ensure_ascii=False)
    for char, escape in _GO_ESCAPES.items():
        encoded = encoded.replace(char, escape)
    return encoded


def build_app_asar(equicord_asar_path: str) -> bytes:
    """Return the bytes of an asar archive holding index.js and package.json."""
    index_js = f"require({_json_string(equicord_asar_path)})".encode()
    package_json = PACKAGE_JSON.encode()

    header = {
        "files": {
            "index.js": {"size": len(index_js), "offset": "0"},
            "package.json": {"size": len(package_json), "offset": str(len(index_js))},
        }
    }
    header_bytes = json.dumps(header, separators=(",", ":"), ensure_ascii=False).encode()
    header_string_size = len(header_bytes)
    aligned_size = (header_string_size + _DATA_SIZE - 1) & ~(_DATA_SIZE - 1)
    header_size = aligned_size + 8
    header_object_size = aligned_size + _DATA_SIZE
    padding = b"0" * (aligned_size - header_string_size)

    prefix = struct.pack("<4i", _DATA_SIZE, header_size, header_object_size, header_string_size)
    return prefix + header_bytes + padding + index_js + package_json


def write_app_asar(out_file: str | os.PathLike, equicord_asar_path: str) -> None:
    """Write the loader archive to ``out_file``, replacing it if it exists."""
    with open(out_file, "wb") as fh:
        fh.write(build_app_asar(equicord_asar_path))