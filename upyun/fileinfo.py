# fileinfo.py
from __future__ import annotations

from dataclasses import dataclass

FILE = "file"
FOLDER = "folder"

# one-letter type codes used in listing bodies
_LIST_TYPES = {"N": FILE, "F": FOLDER}


@dataclass
class FileInfo:
    name: str
    type: str
    size: int
    time: int

    @property
    def is_folder(self) -> bool:
        return self.type == FOLDER

    @classmethod
    def from_line(cls, line: str) -> "FileInfo":
        """Parse one ``name\\ttype\\tsize\\ttime`` line of a listing body."""
        fields = line.split("\t")
        fields += [""] * (4 - len(fields))
        name, kind, size, mtime = fields[:4]
        return cls(
            name=name,
            type=_LIST_TYPES.get(kind, FILE),
            size=_to_int(size),
            time=_to_int(mtime),
        )

    @classmethod
    def from_headers(cls, name: str, headers) -> "FileInfo":
        """Build an entry from the ``x-upyun-file-*`` headers of a HEAD response."""
        return cls(
            name=name,
            type=FOLDER if headers.get("x-upyun-file-type") == FOLDER else FILE,
            size=_to_int(headers.get("x-upyun-file-size")),
            time=_to_int(headers.get("x-upyun-file-date")),
        )


def parse_listing(body: str) -> list[FileInfo]:
    return [FileInfo.from_line(line) for line in body.split("\n") if line]


def _to_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
