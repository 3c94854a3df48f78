"""
Chunked Transfer Framing
========================
Encoder for HTTP/1.1 chunked transfer-encoding frames.
"""

from typing import BinaryIO

CRLF = b"\r\n"


class ChunkedWriter:
    """
    Writes each call to ``write`` as one HTTP chunk on the wrapped sink.

    ``close`` emits the terminal zero-length chunk but leaves the sink open;
    the caller appends the final CRLF that follows any trailers.
    """

    def __init__(self, sink: BinaryIO):
        self._sink = sink
        self._closed = False

    def write(self, data: bytes) -> int:
        if self._closed:
            raise ValueError("write to closed ChunkedWriter")
        # A zero-length chunk would terminate the body early
        if not data:
            return 0
        self._sink.write(b"%x" % len(data))
        self._sink.write(CRLF)
        self._sink.write(data)
        self._sink.write(CRLF)
        return len(data)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._sink.write(b"0")
        self._sink.write(CRLF)

    @property
    def closed(self) -> bool:
        return self._closed
