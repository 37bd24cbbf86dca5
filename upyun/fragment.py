# fragment.py
import hashlib
import io
import os

_READ_BLOCK = 64 * 1024


def stream_size(fileobj) -> int:
    try:
        return os.fstat(fileobj.fileno()).st_size
    except (AttributeError, OSError, io.UnsupportedOperation):
        pos = fileobj.tell()
        end = fileobj.seek(0, os.SEEK_END)
        fileobj.seek(pos)
        return end


class FragmentFile:
    """Read-only window ``[offset, offset + length)`` over ``base``.

    The window keeps its own cursor and seeks ``base`` before every read, so
    several windows over the same file never disturb each other's position.
    ``__len__`` and ``tell`` are what ``requests`` uses to size a streamed
    body. It must not grow a ``fileno``: requests would then size the body
    from the whole file.
    """

    def __init__(self, base, offset: int, length: int):
        size = stream_size(base)
        if offset < 0 or offset > size:
            raise ValueError(f"fragment offset {offset} is outside a {size} byte file")
        self.base = base
        self.offset = offset
        self.length = max(0, min(length, size - offset))
        self._pos = 0

    def __len__(self):
        return self.length

    def __repr__(self):
        return f"FragmentFile(offset={self.offset}, length={self.length})"

    def tell(self) -> int:
        return self._pos

    def seekable(self) -> bool:
        return True

    def readable(self) -> bool:
        return True

    def seek(self, pos: int, whence: int = os.SEEK_SET) -> int:
        if whence == os.SEEK_SET:
            target = pos
        elif whence == os.SEEK_CUR:
            target = self._pos + pos
        elif whence == os.SEEK_END:
            target = self.length + pos
        else:
            raise ValueError(f"invalid whence ({whence})")
        if target < 0 or target > self.length:
            raise ValueError(f"seek to {target} outside fragment of {self.length} bytes")
        self._pos = target
        return self._pos

    def read(self, size: int = -1) -> bytes:
        remaining = self.length - self._pos
        if remaining <= 0:
            return b""
        if size is None or size < 0 or size > remaining:
            size = remaining
        self.base.seek(self.offset + self._pos)
        data = self.base.read(size)
        self._pos += len(data)
        return data

    def md5(self) -> str:
        """Hex MD5 of the whole window; the cursor is back at 0 afterwards."""
        h = hashlib.md5()
        self.seek(0)
        while True:
            block = self.read(_READ_BLOCK)
            if not block:
                break
            h.update(block)
        self.seek(0)
        return h.hexdigest()
