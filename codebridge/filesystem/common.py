"""Conversions between native file system values and their wire representation."""

import base64
import binascii
from datetime import datetime, timedelta, timezone
import os
import stat
from typing import Optional

from codebridge.schema import ENCODINGS, FLAGS
from codebridge.schema.fs import Stat

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def open_flags(flag: str) -> int:
    """Combine the os.O_* constants of a file flag like 'w+' into a single value."""
    flags = 0

    # Not every platform has every constant (O_SYNC on Windows)
    for name in FLAGS[flag]:
        flags |= getattr(os, name, 0)

    return flags


def decode(data: bytes, encoding: str) -> str:
    """Turn raw bytes into text using a wire encoding name."""
    encoding = encoding.lower()

    if encoding == "base64":
        return base64.b64encode(data).decode("ascii")
    elif encoding == "base64url":
        return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")
    elif encoding == "hex":
        return data.hex()
    else:
        return data.decode(ENCODINGS[encoding], errors="replace")


def encode(text: str, encoding: str) -> bytes:
    """Turn text into raw bytes using a wire encoding name."""
    encoding = encoding.lower()

    try:
        if encoding == "base64":
            return base64.b64decode(text + "=" * (-len(text) % 4))
        elif encoding == "base64url":
            return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))
        elif encoding == "hex":
            return bytes.fromhex(text)
        else:
            return text.encode(ENCODINGS[encoding])
    except (binascii.Error, UnicodeEncodeError, ValueError) as e:
        raise ValueError(f"data cannot be encoded as {encoding}: {e}")


def to_millis(ns: int) -> int:
    """Convert a nanosecond timestamp to whole milliseconds."""
    return ns // 1_000_000


def to_iso(millis: int) -> str:
    """Format a millisecond timestamp like 2024-01-01T00:00:00.000Z."""
    instant = EPOCH + timedelta(milliseconds=millis)
    return instant.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _birthtime_ns(st: os.stat_result) -> Optional[int]:
    if hasattr(st, "st_birthtime_ns"):
        return st.st_birthtime_ns
    elif hasattr(st, "st_birthtime"):
        return int(st.st_birthtime * 1_000_000_000)
    else:
        return None


def stat_to_wire(st: os.stat_result) -> Stat:
    """
    Describe an os.stat_result as a Stat.

    Platforms that do not record creation time report the change time as birth time.
    Fields that only exist on some platforms (st_blksize, st_blocks) are reported as 0.
    """
    birthtime_ns = _birthtime_ns(st)

    if birthtime_ns is None:
        birthtime_ns = st.st_ctime_ns

    times = {
        "atime": to_millis(st.st_atime_ns),
        "mtime": to_millis(st.st_mtime_ns),
        "ctime": to_millis(st.st_ctime_ns),
        "birthtime": to_millis(birthtime_ns),
    }

    return Stat(
        dev=st.st_dev,
        ino=st.st_ino,
        mode=st.st_mode,
        nlink=st.st_nlink,
        uid=st.st_uid,
        gid=st.st_gid,
        rdev=getattr(st, "st_rdev", 0),
        size=st.st_size,
        blksize=getattr(st, "st_blksize", 0),
        blocks=getattr(st, "st_blocks", 0),
        atime_ms=times["atime"],
        mtime_ms=times["mtime"],
        ctime_ms=times["ctime"],
        birthtime_ms=times["birthtime"],
        atime=to_iso(times["atime"]),
        mtime=to_iso(times["mtime"]),
        ctime=to_iso(times["ctime"]),
        birthtime=to_iso(times["birthtime"]),
        is_file=stat.S_ISREG(st.st_mode),
        is_directory=stat.S_ISDIR(st.st_mode),
        is_symbolic_link=stat.S_ISLNK(st.st_mode),
    )
