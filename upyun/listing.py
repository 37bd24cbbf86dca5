# listing.py
from __future__ import annotations

import logging
import posixpath
import queue
import threading
from typing import Callable, Iterator, Optional

from .errors import AmbiguousCursorError
from .fileinfo import FileInfo

log = logging.getLogger(__name__)

PAGE_LIMIT = 50
ENTRY_CAPACITY = 1000
ERROR_CAPACITY = 10
# cursor the server sends on the last page instead of an empty one
END_CURSOR = "g2gCZAAEbmV4dGQAA2VvZg"

# fetch_page(key, cursor, order, limit) -> (entries, next_cursor or None if the header is absent)
PageFetcher = Callable[[str, str, str, int], "tuple[list[FileInfo], Optional[str]]"]

_CLOSED = object()


class _Cancelled(Exception):
    pass


class ListingStream:
    """Two bounded streams fed by one traversal thread.

    ``entries()`` yields FileInfo records, ``errors()`` yields at most one
    exception. Both end once the worker is done. ``cancel()`` stops the worker
    even while it is blocked on a full queue.
    """

    poll_interval = 0.1

    def __init__(self, entry_capacity: int = ENTRY_CAPACITY, error_capacity: int = ERROR_CAPACITY):
        self._entries: queue.Queue = queue.Queue(entry_capacity)
        self._errors: queue.Queue = queue.Queue(error_capacity)
        self._cancel = threading.Event()
        self._done = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def __iter__(self):
        return self.entries()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def cancel(self):
        self._cancel.set()

    def entries(self) -> Iterator[FileInfo]:
        return self._drain(self._entries)

    def errors(self) -> Iterator[BaseException]:
        return self._drain(self._errors)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the worker thread exits; False on timeout."""
        if self._thread is not None:
            self._thread.join(timeout)
            return not self._thread.is_alive()
        return self._done.wait(timeout)

    def push_entry(self, info: FileInfo):
        self._put(self._entries, info)

    def push_error(self, ex: BaseException):
        self._put(self._errors, ex)

    def _put(self, q: queue.Queue, item):
        while True:
            if self._cancel.is_set():
                raise _Cancelled()
            try:
                q.put(item, timeout=self.poll_interval)
                return
            except queue.Full:
                continue

    def close(self):
        try:
            self._put(self._errors, _CLOSED)
            self._put(self._entries, _CLOSED)
        except _Cancelled:
            pass
        finally:
            self._done.set()

    def _drain(self, q: queue.Queue):
        while True:
            try:
                item = q.get(timeout=self.poll_interval)
            except queue.Empty:
                if self._done.is_set() and q.empty():
                    return
                continue
            if item is _CLOSED:
                return
            yield item


class ListTraverser:
    def __init__(self, fetch_page: PageFetcher, page_limit: int = PAGE_LIMIT, strict_cursor: bool = False,
                 on_exit: Optional[Callable[[], None]] = None):
        self.fetch_page = fetch_page
        self.page_limit = page_limit
        self.strict_cursor = strict_cursor
        # runs on the worker thread after both streams are closed
        self.on_exit = on_exit

    def traverse(self, root: str, ascending: bool = False, recursive: bool = False,
                 stream: Optional[ListingStream] = None) -> ListingStream:
        if not root.endswith("/"):
            root += "/"
        order = "asc" if ascending else "desc"
        if stream is None:
            stream = ListingStream()
        t = threading.Thread(
            target=self._run, args=(stream, root, order, recursive),
            name=f"upyun-list:{root}", daemon=True,
        )
        stream._thread = t
        t.start()
        return stream

    def _run(self, stream: ListingStream, root: str, order: str, recursive: bool):
        try:
            self._walk(stream, root, root, order, recursive)
        except _Cancelled:
            log.debug("Listing of %s cancelled", root)
        except Exception as ex:
            log.debug("Listing of %s halted: %s", root, ex)
            try:
                stream.push_error(ex)
            except _Cancelled:
                pass
        finally:
            stream.close()
            if self.on_exit is not None:
                self.on_exit()

    def _walk(self, stream: ListingStream, root: str, key: str, order: str, recursive: bool):
        cursor = ""
        while True:
            if stream.cancelled:
                raise _Cancelled()
            infos, next_cursor = self.fetch_page(key, cursor, order, self.page_limit)
            if next_cursor is None:
                if self.strict_cursor:
                    raise AmbiguousCursorError(key)
                # no cursor header: stop this level and drop the page
                log.debug("No list cursor for %s, stopping", key)
                return
            if next_cursor == END_CURSOR:
                next_cursor = ""
            for f in infos:
                abs_path = posixpath.join(key, f.name)
                name = abs_path.replace(root, "", 1)
                f.name = name[1:] if name.startswith("/") else name
                if recursive and f.is_folder:
                    self._walk(stream, root, abs_path + "/", order, recursive)
                stream.push_entry(f)
            cursor = next_cursor
            if not cursor:
                return
